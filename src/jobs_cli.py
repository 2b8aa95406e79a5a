import argparse
import json
import sys

from database import SessionLocal
from modules.documents.exceptions import DocumentBaseException
from modules.jobs.services.job_dispatcher import list_jobs, retry_all_jobs, retry_job

STATUSES = ["failed", "pending", "processing", "completed", "all"]


def _fmt(value) -> str:
    return value.isoformat() if value else "N/A"


def cmd_list(session, args) -> int:
    jobs = list_jobs(session, status=args.status, job_type=args.type, limit=args.limit)
    if not jobs:
        print(f"No jobs found with status: {args.status}")
        return 0

    print(f"\nFound {len(jobs)} job(s) with status: {args.status}\n")
    print("-" * 100)
    for job in jobs:
        payload = json.dumps(job.payload) if job.payload is not None else "null"
        print(f"ID:          {job.id}")
        print(f"Job Type:    {job.job_id}")
        print(f"Status:      {job.status.value}")
        print(f"Retried:     {job.retried}/{job.max_retries}")
        print(f"Submitted:   {_fmt(job.submitted_at)}")
        print(f"Last Retry:  {_fmt(job.last_retried_at)}")
        print(f"Completed:   {_fmt(job.completed_at)}")
        print(f"Last Error:  {job.last_error or 'N/A'}")
        print(f"Payload:     {payload[:60]}{'...' if len(payload) > 60 else ''}")
        print("-" * 100)
    return 0


def cmd_retry(session, args) -> int:
    try:
        job = retry_job(session, args.job_id)
    except DocumentBaseException as e:
        print(e.message, file=sys.stderr)
        return 1
    print(f"Job {job.id} ({job.job_id}) reset to PENDING")
    return 0


def cmd_retry_all(session, args) -> int:
    count = retry_all_jobs(session, job_type=args.type)
    if not count:
        print("No failed jobs to retry")
        return 0
    print(f"Reset {count} failed job(s) to PENDING")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage background jobs")
    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="List jobs")
    list_parser.add_argument("--status", choices=STATUSES, default="failed", help="Filter by status (default: failed)")
    list_parser.add_argument("--type", help='Filter by job type, e.g. "seal" matches "internal.seal-document"')
    list_parser.add_argument("--limit", type=int, default=50, help="Limit number of results (default: 50)")
    list_parser.set_defaults(func=cmd_list)

    retry_parser = subparsers.add_parser("retry", help="Retry a specific failed job")
    retry_parser.add_argument("job_id")
    retry_parser.set_defaults(func=cmd_retry)

    retry_all_parser = subparsers.add_parser("retry-all", help="Retry all failed jobs")
    retry_all_parser.add_argument("--type", help="Only retry jobs whose type contains this text")
    retry_all_parser.set_defaults(func=cmd_retry_all)

    return parser


def main(argv=None, session_factory=SessionLocal) -> int:
    args = build_parser().parse_args(argv)
    with session_factory() as session:
        return args.func(session, args)


if __name__ == "__main__":
    sys.exit(main())
