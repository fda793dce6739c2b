"""Domain entities.

The Order aggregate root owns its line items, its issue thread and its
status history. Every lifecycle operation validates the source status and
its whole payload before touching any field, so a rejected call leaves the
aggregate exactly as it was.
"""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import uuid4

from orderflow.domain.base import AggregateRoot, utc_now
from orderflow.domain.business_hours import BusinessHoursClock
from orderflow.domain.events import (
    OrderApproved,
    OrderAutoClosed,
    OrderConfirmed,
    OrderCreated,
    OrderIssueRaised,
    OrderIssueReplied,
    OrderReceived,
)
from orderflow.domain.exceptions import (
    InvalidPayloadError,
    InvalidQuantityError,
    OrderItemNotFoundError,
    PriceLookupError,
)
from orderflow.domain.state_machines import (
    OrderStatus,
    StateTransition,
    require_order_status,
)
from orderflow.domain.value_objects import (
    Actor,
    ActorRole,
    ApprovedQuantity,
    Money,
    OrderId,
    QuantityChange,
)


# ============================================================================
# Order Line Item
# ============================================================================


@dataclass
class OrderItem:
    """A line item in an order.

    Attributes:
        sku: Stock keeping unit, unique within the order.
        qty_requested: Quantity the branch asked for. Never changes.
        name: Product name at time of request.
        unit_price: Catalog price, refreshed at approval time.
        qty_approved: Quantity the manager approved; None until approval.
    """

    sku: str
    qty_requested: int
    name: str | None = None
    unit_price: Money = field(default_factory=Money.zero)
    qty_approved: int | None = None

    def __post_init__(self) -> None:
        if not self.sku or not self.sku.strip():
            raise InvalidPayloadError("SKU cannot be empty", field="sku")
        if self.qty_requested < 0:
            raise InvalidQuantityError(
                self.qty_requested,
                reason="Requested quantity cannot be negative",
                sku=self.sku,
            )

    @property
    def total_price(self) -> Money:
        """Unit price multiplied by approved quantity.

        Zero until the item has been approved.
        """
        return self.unit_price * (self.qty_approved or 0)


@dataclass(frozen=True)
class IssueMessage:
    """One message in an order's issue thread."""

    author_id: str
    author_role: ActorRole
    message: str
    created_at: datetime


@dataclass(frozen=True)
class StatusHistoryEntry:
    """One entry in an order's status timeline."""

    from_status: OrderStatus | None
    to_status: OrderStatus
    actor: str
    created_at: datetime
    reason: str | None = None


# ============================================================================
# Order Aggregate Root
# ============================================================================


@dataclass(kw_only=True)
class Order(AggregateRoot[OrderId]):
    """Branch replenishment order aggregate root.

    Attributes:
        id: Unique order identifier.
        order_number: Human-readable reference.
        branch_id: Branch the order belongs to.
        requested_by_id: Branch user who placed the order.
        status: Current order status.
        items: Order line items, keyed by SKU.
        manager_id: Manager who approved the order.
        approved_at: When the order was approved.
        confirm_pending_at: Anchor of the auto-close SLA window.
        dispatched_at: When the branch confirmed and the order was dispatched.
        closed_at: When the order reached a terminal status.
        closed_by: Who closed the order ("system" for the SLA sweep).
        remarks: Free text supplied with the request.
        issues: Issue thread between branch and manager.
        status_history: Timeline of status changes.
    """

    id: OrderId
    order_number: str
    branch_id: str
    requested_by_id: str
    status: OrderStatus = OrderStatus.PENDING_REVIEW
    items: list[OrderItem] = field(default_factory=list)
    manager_id: str | None = None
    approved_at: datetime | None = None
    confirm_pending_at: datetime | None = None
    dispatched_at: datetime | None = None
    closed_at: datetime | None = None
    closed_by: str | None = None
    remarks: str | None = None
    issues: list[IssueMessage] = field(default_factory=list)
    status_history: list[StatusHistoryEntry] = field(default_factory=list)

    @classmethod
    def create(
        cls,
        branch_id: str,
        requested_by_id: str,
        items: list[OrderItem],
        remarks: str | None = None,
        now: datetime | None = None,
        order_id: OrderId | None = None,
    ) -> "Order":
        """Create a new order awaiting manager review.

        Args:
            branch_id: Branch placing the order.
            requested_by_id: Branch user placing the order.
            items: Requested line items.
            remarks: Optional free text.
            now: Creation time.
            order_id: Optional pre-generated ID.

        Returns:
            New Order in PENDING_REVIEW.

        Raises:
            InvalidPayloadError: If there are no items or a SKU repeats.
        """
        if not items:
            raise InvalidPayloadError("An order needs at least one item", field="items")
        seen: set[str] = set()
        for item in items:
            if item.sku in seen:
                raise InvalidPayloadError(f"Duplicate SKU {item.sku} in order", field="items")
            seen.add(item.sku)

        now = now or utc_now()
        order = cls(
            id=order_id or OrderId.generate(),
            order_number=f"ORD-{now:%Y%m%d}-{uuid4().hex[:6].upper()}",
            branch_id=branch_id,
            requested_by_id=requested_by_id,
            items=list(items),
            remarks=remarks,
            created_at=now,
            updated_at=now,
            status_history=[
                StatusHistoryEntry(
                    from_status=None,
                    to_status=OrderStatus.PENDING_REVIEW,
                    actor=requested_by_id,
                    created_at=now,
                    reason="Order requested by branch",
                )
            ],
        )
        order._record_event(
            OrderCreated(
                occurred_at=now,
                aggregate_id=str(order.id),
                aggregate_type="Order",
                order_id=str(order.id),
                order_number=order.order_number,
                branch_id=branch_id,
                requested_by_id=requested_by_id,
                item_count=len(order.items),
            )
        )
        return order

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------

    def get_item(self, sku: str) -> OrderItem | None:
        """Find a line item by SKU."""
        for item in self.items:
            if item.sku == sku:
                return item
        return None

    @property
    def total(self) -> Money:
        """Sum of line totals; zero before approval."""
        if not self.items:
            return Money.zero()
        total = Money.zero(self.items[0].unit_price.currency)
        for item in self.items:
            total = total + item.total_price
        return total

    def sla_deadline(self, clock: BusinessHoursClock, sla_hours: float) -> datetime | None:
        """Instant at which the order becomes eligible for auto-close."""
        if not self.status.is_sla_tracked() or self.confirm_pending_at is None:
            return None
        return clock.add_working_hours(self.confirm_pending_at, sla_hours)

    def working_hours_pending(self, clock: BusinessHoursClock, now: datetime) -> float:
        """Working hours spent waiting for branch confirmation."""
        if not self.status.is_sla_tracked() or self.confirm_pending_at is None:
            return 0.0
        return clock.elapsed_working_hours(self.confirm_pending_at, now)

    # -------------------------------------------------------------------------
    # State Transitions
    # -------------------------------------------------------------------------

    def approve(
        self,
        manager_id: str,
        approvals: list[ApprovedQuantity],
        prices: dict[str, Money],
        now: datetime,
    ) -> dict[str, QuantityChange]:
        """Approve the order with manager-decided quantities.

        Quantities may be lower, equal to or higher than requested. Items
        not named in ``approvals`` are approved at their requested quantity.
        Every item is repriced from ``prices``.

        Args:
            manager_id: Approving manager.
            approvals: Approved quantity per SKU.
            prices: Catalog unit price per SKU, covering every item.
            now: Approval time.

        Returns:
            One QuantityChange per SKU named in ``approvals``.

        Raises:
            InvalidStateTransitionError: If not in PENDING_REVIEW.
            InvalidPayloadError: If a SKU is approved twice.
            OrderItemNotFoundError: If a SKU is not part of the order.
            PriceLookupError: If a price is missing for any item, or the
                prices do not share one currency.
        """
        transition = require_order_status(
            str(self.id), self.status, OrderStatus.PENDING_REVIEW, OrderStatus.CONFIRM_PENDING
        )

        decided: dict[str, int] = {}
        changes: dict[str, QuantityChange] = {}
        for approval in approvals:
            if approval.sku in decided:
                raise InvalidPayloadError(
                    f"SKU {approval.sku} appears more than once in the approval",
                    field="items",
                )
            item = self.get_item(approval.sku)
            if item is None:
                raise OrderItemNotFoundError(str(self.id), approval.sku)
            decided[approval.sku] = approval.qty_approved
            changes[approval.sku] = QuantityChange(
                requested=item.qty_requested,
                approved=approval.qty_approved,
            )

        currency: str | None = None
        for item in self.items:
            price = prices.get(item.sku)
            if price is None:
                raise PriceLookupError(item.sku, "no catalog price available")
            currency = currency or price.currency
            if price.currency != currency:
                raise PriceLookupError(
                    item.sku, f"priced in {price.currency}, other items in {currency}"
                )

        for item in self.items:
            item.unit_price = prices[item.sku]
            item.qty_approved = decided.get(item.sku, item.qty_requested)

        self.manager_id = manager_id
        self.approved_at = now
        self.confirm_pending_at = now
        self._apply(transition, actor=manager_id, now=now, reason="Approved by manager")
        total = self.total
        self._record_event(
            OrderApproved(
                occurred_at=now,
                aggregate_id=str(self.id),
                aggregate_type="Order",
                order_id=str(self.id),
                manager_id=manager_id,
                requested_by_id=self.requested_by_id,
                total_cents=total.amount_cents,
                currency=total.currency,
                quantity_changes={sku: c.to_dict() for sku, c in changes.items()},
            )
        )
        return changes

    def confirm(self, confirmed_by: str, now: datetime) -> None:
        """Branch accepts the approved quantities; the order is dispatched.

        Raises:
            InvalidStateTransitionError: If not in CONFIRM_PENDING.
        """
        transition = require_order_status(
            str(self.id), self.status, OrderStatus.CONFIRM_PENDING, OrderStatus.DISPATCHED
        )
        self.dispatched_at = now
        self._apply(transition, actor=confirmed_by, now=now, reason="Confirmed by branch")
        self._record_event(
            OrderConfirmed(
                occurred_at=now,
                aggregate_id=str(self.id),
                aggregate_type="Order",
                order_id=str(self.id),
                confirmed_by=confirmed_by,
            )
        )

    def raise_issue(self, author: Actor, note: str, now: datetime) -> None:
        """Branch flags a discrepancy with the approved quantities.

        Raises:
            InvalidStateTransitionError: If not in CONFIRM_PENDING.
            InvalidPayloadError: If the note is blank.
        """
        transition = require_order_status(
            str(self.id), self.status, OrderStatus.CONFIRM_PENDING, OrderStatus.ISSUE_RAISED
        )
        message = _clean_note(note)
        self.issues.append(IssueMessage(author.user_id, author.role, message, now))
        self._apply(transition, actor=author.user_id, now=now, reason=message)
        self._record_event(
            OrderIssueRaised(
                occurred_at=now,
                aggregate_id=str(self.id),
                aggregate_type="Order",
                order_id=str(self.id),
                raised_by=author.user_id,
                note=message,
            )
        )

    def reply(self, author: Actor, note: str, now: datetime) -> None:
        """Manager answers an issue; the SLA window restarts from ``now``.

        Raises:
            InvalidStateTransitionError: If not in ISSUE_RAISED.
            InvalidPayloadError: If the note is blank.
        """
        transition = require_order_status(
            str(self.id), self.status, OrderStatus.ISSUE_RAISED, OrderStatus.CONFIRM_PENDING
        )
        message = _clean_note(note)
        self.issues.append(IssueMessage(author.user_id, author.role, message, now))
        self.confirm_pending_at = now
        self._apply(transition, actor=author.user_id, now=now, reason=message)
        self._record_event(
            OrderIssueReplied(
                occurred_at=now,
                aggregate_id=str(self.id),
                aggregate_type="Order",
                order_id=str(self.id),
                replied_by=author.user_id,
                note=message,
                confirm_pending_at=now,
            )
        )

    def confirm_received(self, received_by: str, now: datetime) -> None:
        """Branch confirms the goods arrived; the order is closed.

        Raises:
            InvalidStateTransitionError: If not in DISPATCHED.
        """
        transition = require_order_status(
            str(self.id), self.status, OrderStatus.DISPATCHED, OrderStatus.CLOSED
        )
        self.closed_at = now
        self.closed_by = received_by
        self._apply(transition, actor=received_by, now=now, reason="Received by branch")
        self._record_event(
            OrderReceived(
                occurred_at=now,
                aggregate_id=str(self.id),
                aggregate_type="Order",
                order_id=str(self.id),
                received_by=received_by,
            )
        )

    def auto_close(self, now: datetime, elapsed_working_hours: float, sla_hours: float) -> None:
        """Close an order whose confirmation SLA has run out.

        Raises:
            InvalidStateTransitionError: If not in CONFIRM_PENDING.
        """
        transition = require_order_status(
            str(self.id), self.status, OrderStatus.CONFIRM_PENDING, OrderStatus.AUTO_CLOSED
        )
        self.closed_at = now
        self.closed_by = "system"
        self._apply(
            transition,
            actor="system",
            now=now,
            reason=f"Not confirmed within {sla_hours:g} working hours",
        )
        self._record_event(
            OrderAutoClosed(
                occurred_at=now,
                aggregate_id=str(self.id),
                aggregate_type="Order",
                order_id=str(self.id),
                elapsed_working_hours=elapsed_working_hours,
                sla_hours=sla_hours,
            )
        )

    def _apply(
        self,
        transition: StateTransition[OrderStatus],
        actor: str,
        now: datetime,
        reason: str | None = None,
    ) -> None:
        self.status = transition.to_state
        self.status_history.append(
            StatusHistoryEntry(
                from_status=transition.from_state,
                to_status=transition.to_state,
                actor=actor,
                created_at=now,
                reason=reason,
            )
        )
        self._touch(now)


def _clean_note(note: str) -> str:
    cleaned = (note or "").strip()
    if not cleaned:
        raise InvalidPayloadError("Note cannot be empty", field="note")
    return cleaned
