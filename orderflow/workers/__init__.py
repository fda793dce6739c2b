"""Background workers (Celery app and scheduled tasks)."""
