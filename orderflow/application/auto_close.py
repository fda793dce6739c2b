"""Auto-close sweep for unconfirmed orders.

Orders waiting in CONFIRM_PENDING longer than the SLA (counted in working
hours from ``confirm_pending_at``) are moved to AUTO_CLOSED. Each order is
closed independently through the aggregate's guarded transition and a
version-checked save; a failure on one order is collected in the result
and the sweep carries on.
"""

from dataclasses import dataclass, field
from datetime import datetime

import structlog

from orderflow.application.notifications import (
    LoggingNotificationSink,
    NotificationSink,
    publish_events,
)
from orderflow.application.repository import OrderRepository, get_order_repository
from orderflow.domain.business_hours import BusinessHoursClock
from orderflow.domain.entities import Order
from orderflow.domain.exceptions import DomainError
from orderflow.domain.state_machines import OrderStatus
from orderflow.infrastructure.config import settings

logger = structlog.get_logger()


@dataclass(frozen=True)
class SweepFailure:
    """An order the sweep tried and failed to close."""

    order_id: str
    error: str
    error_code: str = "INTERNAL_ERROR"


@dataclass
class SweepResult:
    """Outcome of one auto-close sweep."""

    ran_at: datetime
    checked: int = 0
    closed: list[str] = field(default_factory=list)
    failed: list[SweepFailure] = field(default_factory=list)


class AutoCloseSweeper:
    """Closes CONFIRM_PENDING orders whose working-hours SLA has elapsed.

    Args:
        order_repo: Order store shared with the request path.
        clock: Business-hours clock used to measure elapsed time.
        sla_hours: Working hours an order may wait for confirmation.
        notifier: Sink for AUTO_CLOSED events.
    """

    def __init__(
        self,
        order_repo: OrderRepository | None = None,
        clock: BusinessHoursClock | None = None,
        sla_hours: float | None = None,
        notifier: NotificationSink | None = None,
    ) -> None:
        self.order_repo = order_repo or get_order_repository()
        self.clock = clock or get_business_clock()
        self.sla_hours = settings.auto_close_sla_hours if sla_hours is None else sla_hours
        self.notifier = notifier

    async def run(self, now: datetime) -> SweepResult:
        """Run one sweep as of ``now``.

        Never raises for per-order problems; they are returned in
        ``SweepResult.failed``.
        """
        result = SweepResult(ran_at=now)
        candidates = await self.order_repo.list_by_status(OrderStatus.CONFIRM_PENDING)
        result.checked = len(candidates)

        for order in candidates:
            order_id = str(order.id)
            try:
                if await self._close_if_due(order, now):
                    result.closed.append(order_id)
            except DomainError as e:
                logger.warning(
                    "Auto-close failed for order",
                    order_id=order_id,
                    error_code=e.error_code,
                    error=e.message,
                )
                result.failed.append(SweepFailure(order_id, e.message, e.error_code))
            except Exception as e:  # noqa: BLE001
                logger.exception("Unexpected auto-close failure", order_id=order_id)
                result.failed.append(SweepFailure(order_id, str(e)))

        logger.info(
            "Auto-close sweep complete",
            checked=result.checked,
            closed_count=len(result.closed),
            failed_count=len(result.failed),
            sla_hours=self.sla_hours,
        )
        return result

    async def _close_if_due(self, order: Order, now: datetime) -> bool:
        if not order.status.is_sla_tracked():
            return False
        if order.confirm_pending_at is None:
            logger.warning("Order has no SLA anchor; skipping", order_id=str(order.id))
            return False

        elapsed = order.working_hours_pending(self.clock, now)
        if elapsed < self.sla_hours:
            return False

        expected_version = order.version
        order.auto_close(now=now, elapsed_working_hours=elapsed, sla_hours=self.sla_hours)
        await self.order_repo.save(order, expected_version)
        logger.info(
            "Order auto-closed",
            order_id=str(order.id),
            elapsed_working_hours=round(elapsed, 4),
            sla_hours=self.sla_hours,
        )
        await publish_events(self.notifier, order.collect_events())
        return True


# ============================================================================
# Factories
# ============================================================================


def get_business_clock() -> BusinessHoursClock:
    """Business-hours clock configured from settings."""
    return BusinessHoursClock(
        start_hour=settings.business_start_hour,
        end_hour=settings.business_end_hour,
        tz=settings.business_tz,
    )


def get_auto_close_sweeper() -> AutoCloseSweeper:
    """Sweeper wired to the shared repository and configured SLA."""
    return AutoCloseSweeper(
        order_repo=get_order_repository(),
        clock=get_business_clock(),
        sla_hours=settings.auto_close_sla_hours,
        notifier=LoggingNotificationSink(),
    )
