import io

from reportlab.pdfgen import canvas

from modules.jobs.services.job_dispatcher import JobDispatcher


class RecordingDispatcher(JobDispatcher):
    """Encola de verdad y además recuerda el orden"""

    def __init__(self, session):
        super().__init__(session)
        self.jobs = []

    def enqueue(self, job_name, payload):
        self.jobs.append((job_name, payload))
        return super().enqueue(job_name, payload)

    def names(self):
        return [name for name, _ in self.jobs]


class RecordingWebhooks:
    def __init__(self):
        self.events = []

    def emit(self, event, payload, user_id, team_id=None):
        self.events.append((event, payload))
        return 0


def make_pdf_bytes(pages=1, text="PDF para test"):
    buf = io.BytesIO()
    c = canvas.Canvas(buf)
    for page in range(pages):
        c.drawString(50, 750, f"{text} - página {page + 1}")
        c.showPage()
    c.save()
    return buf.getvalue()
