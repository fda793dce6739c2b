"""Domain layer - Order aggregate, business-hours clock, state machine, events.

Example usage:
    from orderflow.domain import ApprovedQuantity, Money, Order, OrderItem

    order = Order.create(
        branch_id="branch-1",
        requested_by_id="user-7",
        items=[OrderItem(sku="SKU-001", qty_requested=50)],
    )
    changes = order.approve(
        manager_id="manager-2",
        approvals=[ApprovedQuantity(sku="SKU-001", qty_approved=100)],
        prices={"SKU-001": Money.from_decimal(Decimal("2.50"))},
        now=datetime.now(timezone.utc),
    )
    changes["SKU-001"].is_increased  # True
"""

from orderflow.domain.base import AggregateRoot, DomainEvent, Entity, ValueObject, utc_now
from orderflow.domain.business_hours import (
    BusinessHoursClock,
    add_working_hours,
    elapsed_working_hours,
)
from orderflow.domain.entities import IssueMessage, Order, OrderItem, StatusHistoryEntry
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
    ConcurrencyConflictError,
    CurrencyMismatchError,
    DomainError,
    InvalidPayloadError,
    InvalidQuantityError,
    InvalidStateTransitionError,
    NegativeMoneyError,
    NotFoundError,
    OrderItemNotFoundError,
    OrderNotFoundError,
    PriceLookupError,
    UnauthorizedError,
    UpstreamError,
    ValidationError,
)
from orderflow.domain.state_machines import (
    OrderStatus,
    StateTransition,
    require_order_status,
    validate_order_transition,
)
from orderflow.domain.value_objects import (
    Actor,
    ActorRole,
    ApprovedQuantity,
    Money,
    OrderId,
    QuantityChange,
)

__all__ = [
    # Base classes
    "AggregateRoot",
    "DomainEvent",
    "Entity",
    "ValueObject",
    "utc_now",
    # Business hours
    "BusinessHoursClock",
    "add_working_hours",
    "elapsed_working_hours",
    # Entities
    "IssueMessage",
    "Order",
    "OrderItem",
    "StatusHistoryEntry",
    # Value Objects
    "Actor",
    "ActorRole",
    "ApprovedQuantity",
    "Money",
    "OrderId",
    "QuantityChange",
    # State Machine
    "OrderStatus",
    "StateTransition",
    "require_order_status",
    "validate_order_transition",
    # Domain Events
    "OrderCreated",
    "OrderApproved",
    "OrderConfirmed",
    "OrderIssueRaised",
    "OrderIssueReplied",
    "OrderReceived",
    "OrderAutoClosed",
    # Exceptions
    "DomainError",
    "InvalidStateTransitionError",
    "NotFoundError",
    "OrderNotFoundError",
    "OrderItemNotFoundError",
    "ValidationError",
    "InvalidQuantityError",
    "InvalidPayloadError",
    "UnauthorizedError",
    "ConcurrencyConflictError",
    "UpstreamError",
    "PriceLookupError",
    "NegativeMoneyError",
    "CurrencyMismatchError",
]
