"""Domain events for the order lifecycle.

Domain events represent significant occurrences in the domain.
They are used for:
- Triggering notifications to branch users and managers
- Audit logging
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar

from orderflow.domain.base import DomainEvent


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    """Event raised when a branch user submits an order."""

    event_type: ClassVar[str] = "order.created"

    order_id: str = ""
    order_number: str = ""
    branch_id: str = ""
    requested_by_id: str = ""
    item_count: int = 0

    def _payload(self) -> dict[str, Any]:
        return {
            "order_id": self.order_id,
            "order_number": self.order_number,
            "branch_id": self.branch_id,
            "requested_by_id": self.requested_by_id,
            "item_count": self.item_count,
        }


@dataclass(frozen=True)
class OrderApproved(DomainEvent):
    """Event raised when a manager approves quantities."""

    event_type: ClassVar[str] = "order.approved"

    order_id: str = ""
    manager_id: str = ""
    requested_by_id: str = ""
    total_cents: int = 0
    currency: str = "USD"
    quantity_changes: dict[str, dict[str, Any]] = field(default_factory=dict)

    def _payload(self) -> dict[str, Any]:
        return {
            "order_id": self.order_id,
            "manager_id": self.manager_id,
            "requested_by_id": self.requested_by_id,
            "total_cents": self.total_cents,
            "currency": self.currency,
            "quantity_changes": self.quantity_changes,
        }


@dataclass(frozen=True)
class OrderConfirmed(DomainEvent):
    """Event raised when the branch accepts approved quantities."""

    event_type: ClassVar[str] = "order.confirmed"

    order_id: str = ""
    confirmed_by: str = ""

    def _payload(self) -> dict[str, Any]:
        return {"order_id": self.order_id, "confirmed_by": self.confirmed_by}


@dataclass(frozen=True)
class OrderIssueRaised(DomainEvent):
    """Event raised when the branch disputes approved quantities."""

    event_type: ClassVar[str] = "order.issue_raised"

    order_id: str = ""
    raised_by: str = ""
    note: str = ""

    def _payload(self) -> dict[str, Any]:
        return {"order_id": self.order_id, "raised_by": self.raised_by, "note": self.note}


@dataclass(frozen=True)
class OrderIssueReplied(DomainEvent):
    """Event raised when a manager answers a raised issue."""

    event_type: ClassVar[str] = "order.issue_replied"

    order_id: str = ""
    replied_by: str = ""
    note: str = ""
    confirm_pending_at: datetime | None = None

    def _payload(self) -> dict[str, Any]:
        return {
            "order_id": self.order_id,
            "replied_by": self.replied_by,
            "note": self.note,
            "confirm_pending_at": (
                self.confirm_pending_at.isoformat() if self.confirm_pending_at else None
            ),
        }


@dataclass(frozen=True)
class OrderReceived(DomainEvent):
    """Event raised when the branch confirms it received the goods."""

    event_type: ClassVar[str] = "order.received"

    order_id: str = ""
    received_by: str = ""

    def _payload(self) -> dict[str, Any]:
        return {"order_id": self.order_id, "received_by": self.received_by}


@dataclass(frozen=True)
class OrderAutoClosed(DomainEvent):
    """Event raised when the SLA sweep closes an unconfirmed order."""

    event_type: ClassVar[str] = "order.auto_closed"

    order_id: str = ""
    elapsed_working_hours: float = 0.0
    sla_hours: float = 0.0

    def _payload(self) -> dict[str, Any]:
        return {
            "order_id": self.order_id,
            "elapsed_working_hours": round(self.elapsed_working_hours, 4),
            "sla_hours": self.sla_hours,
        }
