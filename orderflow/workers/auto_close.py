"""Scheduled auto-close sweep.

Beat enqueues ``run_auto_close_sweep`` every ``auto_close_interval_seconds``
(see ``celery_app.beat_schedule``). The task body is one
``AutoCloseSweeper.run(now)`` against the configured order store.
"""

from __future__ import annotations

import asyncio
from datetime import datetime

import structlog

from orderflow.application.auto_close import (
    AutoCloseSweeper,
    SweepResult,
    get_auto_close_sweeper,
    get_business_clock,
)
from orderflow.application.notifications import LoggingNotificationSink
from orderflow.domain.base import utc_now
from orderflow.infrastructure.config import settings
from orderflow.workers.celery_app import celery_app

logger = structlog.get_logger()


async def _sweep(now: datetime) -> SweepResult:
    if not settings.database_url:
        # Only sees orders held by this process
        logger.warning("Auto-close sweep running against the in-memory store")
        return await get_auto_close_sweeper().run(now)

    from orderflow.infrastructure.database import (
        build_engine,
        build_session_factory,
        create_tables,
    )
    from orderflow.infrastructure.sql_repository import SqlOrderRepository

    engine = build_engine(settings.database_url)
    try:
        await create_tables(engine)
        sweeper = AutoCloseSweeper(
            order_repo=SqlOrderRepository(build_session_factory(engine)),
            clock=get_business_clock(),
            sla_hours=settings.auto_close_sla_hours,
            notifier=LoggingNotificationSink(),
        )
        return await sweeper.run(now)
    finally:
        await engine.dispose()


@celery_app.task(
    name="orderflow.workers.auto_close.run_auto_close_sweep",
    bind=True,
    max_retries=2,
    default_retry_delay=60,
    acks_late=True,
)
def run_auto_close_sweep(self, now: str | None = None) -> dict:
    """
    Close every CONFIRM_PENDING order whose working-hours SLA has elapsed.

    Args:
        now: ISO-8601 instant to sweep as of; defaults to the current time.

    Returns:
        Summary of the sweep (closed and failed order ids).
    """
    run_id = self.request.id or "manual"
    as_of = datetime.fromisoformat(now) if now else utc_now()

    try:
        result = asyncio.run(_sweep(as_of))
    except Exception as exc:
        logger.error("Auto-close sweep crashed", run_id=run_id, error=str(exc), exc_info=True)
        raise self.retry(exc=exc)

    summary = {
        "status": "success",
        "run_id": run_id,
        "ran_at": result.ran_at.isoformat(),
        "checked": result.checked,
        "closed": result.closed,
        "failed": [
            {"order_id": f.order_id, "error": f.error, "error_code": f.error_code}
            for f in result.failed
        ],
    }
    logger.info(
        "Auto-close task complete",
        run_id=run_id,
        checked=result.checked,
        closed_count=len(result.closed),
        failed_count=len(result.failed),
    )
    return summary
