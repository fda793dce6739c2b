"""Order application service.

Orchestrates the order approval lifecycle:
- Branch users request orders and accept, dispute or receive them
- Managers approve quantities (repricing from the catalog) and answer issues
- Every write is a version-checked save; notifications follow the commit
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

import structlog

from orderflow.application.access import can_view, require_branch_user, require_manager
from orderflow.application.catalog import PriceCatalog, StaticPriceCatalog
from orderflow.application.notifications import (
    LoggingNotificationSink,
    NotificationSink,
    publish_events,
)
from orderflow.application.repository import OrderRepository, get_order_repository
from orderflow.domain.base import utc_now
from orderflow.domain.entities import Order, OrderItem
from orderflow.domain.exceptions import (
    ConcurrencyConflictError,
    DomainError,
    OrderNotFoundError,
    PriceLookupError,
    UnauthorizedError,
)
from orderflow.domain.state_machines import OrderStatus, require_order_status
from orderflow.domain.value_objects import Actor, ApprovedQuantity, Money, QuantityChange

logger = structlog.get_logger()


# ============================================================================
# Service Result Types
# ============================================================================


@dataclass
class ApprovalResult:
    """Result of approving an order."""

    order: Order
    quantity_changes: dict[str, QuantityChange] = field(default_factory=dict)


@dataclass
class ListOrdersResult:
    """Result of listing orders."""

    orders: list[Order] = field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 20

    @property
    def has_more(self) -> bool:
        return self.page * self.page_size < self.total


# ============================================================================
# Order Service
# ============================================================================


class OrderService:
    """Application service for the order approval lifecycle.

    Operations raise domain errors (see ``orderflow.domain.exceptions``)
    and never leave a partially applied change in the store.
    """

    def __init__(
        self,
        order_repo: OrderRepository | None = None,
        catalog: PriceCatalog | None = None,
        notifier: NotificationSink | None = None,
        time_source: Callable[[], datetime] = utc_now,
        request_id: str | None = None,
    ) -> None:
        """Initialize service.

        Args:
            order_repo: Order repository.
            catalog: Unit price source used at approval.
            notifier: Sink for committed domain events.
            time_source: Returns the current instant.
            request_id: Request ID for correlation.
        """
        self.order_repo = order_repo or get_order_repository()
        self.catalog = catalog or StaticPriceCatalog()
        self.notifier = notifier
        self.time_source = time_source
        self.request_id = request_id

    # -------------------------------------------------------------------------
    # Branch requests and reads
    # -------------------------------------------------------------------------

    async def create_order(
        self,
        actor: Actor,
        items: list[OrderItem],
        remarks: str | None = None,
    ) -> Order:
        """Place a new order for the actor's branch.

        Raises:
            UnauthorizedError: If the actor is not a branch user.
            InvalidPayloadError: If items are empty or repeat a SKU.
        """
        if actor.branch_id is None:
            raise UnauthorizedError(actor.user_id, "create an order", "no branch assigned")
        require_branch_user(actor, actor.branch_id, "create an order")

        order = Order.create(
            branch_id=actor.branch_id,
            requested_by_id=actor.user_id,
            items=items,
            remarks=remarks,
            now=self.time_source(),
        )
        await self.order_repo.add(order)
        logger.info(
            "Order created",
            order_id=str(order.id),
            order_number=order.order_number,
            branch_id=order.branch_id,
            item_count=len(order.items),
            request_id=self.request_id,
        )
        await publish_events(self.notifier, order.collect_events(), self.request_id)
        return order

    async def get_order(self, order_id: str, actor: Actor) -> Order:
        """Fetch an order visible to the actor.

        Orders of other branches are reported as missing to branch users.
        """
        order = await self._load(order_id)
        if not can_view(actor, order.branch_id):
            raise OrderNotFoundError(order_id)
        return order

    async def list_orders(
        self,
        actor: Actor,
        page: int = 1,
        page_size: int = 20,
        status: OrderStatus | None = None,
        branch_id: str | None = None,
    ) -> ListOrdersResult:
        """List orders; branch users only ever see their own branch."""
        if not can_view(actor, branch_id or ""):
            branch_id = actor.branch_id
        orders, total = await self.order_repo.list_orders(
            page=page,
            page_size=page_size,
            status=status,
            branch_id=branch_id,
        )
        return ListOrdersResult(orders=orders, total=total, page=page, page_size=page_size)

    # -------------------------------------------------------------------------
    # Lifecycle operations
    # -------------------------------------------------------------------------

    async def approve(
        self,
        order_id: str,
        actor: Actor,
        items: list[ApprovedQuantity],
    ) -> ApprovalResult:
        """Approve an order with manager-decided quantities.

        Every line is repriced from the catalog. The result reports a
        quantity change for every SKU in ``items``, unchanged ones included.

        Raises:
            UnauthorizedError: If the actor is not a manager.
            OrderNotFoundError: If the order does not exist.
            InvalidStateTransitionError: If not in PENDING_REVIEW.
            OrderItemNotFoundError: If a SKU is not part of the order.
            PriceLookupError: If the catalog cannot price a line.
            ConcurrencyConflictError: If the order changed meanwhile.
        """
        require_manager(actor, "approve orders")
        order = await self._load(order_id)
        expected_version = order.version
        require_order_status(
            order_id, order.status, OrderStatus.PENDING_REVIEW, OrderStatus.CONFIRM_PENDING
        )

        prices = await self._price_items(order)
        changes = order.approve(
            manager_id=actor.user_id,
            approvals=items,
            prices=prices,
            now=self.time_source(),
        )

        for sku, change in changes.items():
            if change.is_increased:
                logger.info(
                    "Manager increased approved quantity",
                    order_id=order_id,
                    sku=sku,
                    requested=change.requested,
                    approved=change.approved,
                    change=change.change,
                    request_id=self.request_id,
                )

        await self._commit(order, expected_version, "approve")
        return ApprovalResult(order=order, quantity_changes=changes)

    async def confirm(self, order_id: str, actor: Actor) -> Order:
        """Branch accepts approved quantities; the order is dispatched."""
        order = await self._load(order_id)
        require_branch_user(actor, order.branch_id, "confirm orders")
        expected_version = order.version
        order.confirm(confirmed_by=actor.user_id, now=self.time_source())
        await self._commit(order, expected_version, "confirm")
        return order

    async def raise_issue(self, order_id: str, actor: Actor, note: str) -> Order:
        """Branch disputes approved quantities."""
        order = await self._load(order_id)
        require_branch_user(actor, order.branch_id, "raise issues")
        expected_version = order.version
        order.raise_issue(author=actor, note=note, now=self.time_source())
        await self._commit(order, expected_version, "raise_issue")
        return order

    async def reply(self, order_id: str, actor: Actor, note: str) -> Order:
        """Manager answers an issue; the SLA window restarts."""
        require_manager(actor, "reply to issues")
        order = await self._load(order_id)
        expected_version = order.version
        order.reply(author=actor, note=note, now=self.time_source())
        await self._commit(order, expected_version, "reply")
        return order

    async def confirm_received(self, order_id: str, actor: Actor) -> Order:
        """Branch confirms receipt; the order is closed."""
        order = await self._load(order_id)
        require_branch_user(actor, order.branch_id, "confirm receipt")
        expected_version = order.version
        order.confirm_received(received_by=actor.user_id, now=self.time_source())
        await self._commit(order, expected_version, "confirm_received")
        return order

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _load(self, order_id: str) -> Order:
        order = await self.order_repo.get(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    async def _price_items(self, order: Order) -> dict[str, Money]:
        prices: dict[str, Money] = {}
        for item in order.items:
            try:
                prices[item.sku] = await self.catalog.get_unit_price(item.sku)
            except DomainError:
                raise
            except Exception as e:
                raise PriceLookupError(item.sku, str(e)) from e
        return prices

    async def _commit(self, order: Order, expected_version: int, operation: str) -> None:
        from_status = order.status_history[-1].from_status if order.status_history else None
        try:
            await self.order_repo.save(order, expected_version)
        except ConcurrencyConflictError:
            logger.warning(
                "Order changed concurrently",
                order_id=str(order.id),
                operation=operation,
                expected_version=expected_version,
                request_id=self.request_id,
            )
            raise

        logger.info(
            "Order status transitioned",
            order_id=str(order.id),
            operation=operation,
            from_status=from_status.value if from_status else None,
            to_status=order.status.value,
            version=order.version,
            request_id=self.request_id,
        )
        await publish_events(self.notifier, order.collect_events(), self.request_id)


# ============================================================================
# Service Factory
# ============================================================================


_catalog: PriceCatalog | None = None


def get_price_catalog() -> PriceCatalog:
    """Get the configured price catalog singleton."""
    global _catalog
    if _catalog is None:
        from orderflow.infrastructure.catalog_client import build_price_catalog

        _catalog = build_price_catalog()
    return _catalog


def set_price_catalog(catalog: PriceCatalog | None) -> None:
    """Replace the price catalog (None rebuilds it from settings)."""
    global _catalog
    _catalog = catalog


def get_order_service(request_id: str | None = None) -> OrderService:
    """Get order service instance.

    Args:
        request_id: Request ID for correlation.

    Returns:
        OrderService instance.
    """
    return OrderService(
        catalog=get_price_catalog(),
        notifier=LoggingNotificationSink(),
        request_id=request_id,
    )
