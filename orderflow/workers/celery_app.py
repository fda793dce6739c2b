"""
Celery Application Configuration

Run the scheduled sweep with a worker plus beat:

    celery -A orderflow.workers.celery_app:celery_app worker --beat -Q sweeps
"""

from celery import Celery

from orderflow.infrastructure.config import settings

celery_app = Celery(
    "orderflow",
    broker=settings.redis_url,
    backend=settings.redis_url,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    worker_prefetch_multiplier=1,
    task_routes={
        "orderflow.workers.auto_close.*": {"queue": "sweeps"},
    },
)

# ── Celery Beat Schedule ─────────────────────────────────────────
if settings.auto_close_enabled:
    celery_app.conf.beat_schedule = {
        "auto-close-sweep": {
            "task": "orderflow.workers.auto_close.run_auto_close_sweep",
            "schedule": settings.auto_close_interval_seconds,
            "options": {"queue": "sweeps", "expires": settings.auto_close_interval_seconds},
        },
    }

celery_app.autodiscover_tasks(["orderflow.workers"], related_name="auto_close")
