# create_tables.py
from database import engine, Base
from logger import get_logger
# Importa todos los modelos para que se registren con Base
from modules.documents.models import (
    User, Envelope, Recipient, Field, Signature, DocumentAuditLog
)
from modules.notifications.models.notification import Notification
from modules.jobs.models.background_job import BackgroundJob
from modules.webhooks.models.webhook import Webhook

logger = get_logger(__name__)

def crear_tablas():
    """Crea todas las tablas en la base de datos"""
    logger.info("Creating tables", tables=list(Base.metadata.tables.keys()))
    Base.metadata.create_all(bind=engine)

if __name__ == "__main__":
    crear_tablas()
