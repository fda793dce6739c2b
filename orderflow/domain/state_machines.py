"""State machine for branch orders.

Deterministic state machine that defines the valid status transitions of
an order and the guards every lifecycle operation runs before mutating.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

from orderflow.domain.exceptions import InvalidStateTransitionError

S = TypeVar("S", bound=Enum)


# ============================================================================
# Order State Machine
# ============================================================================


class OrderStatus(str, Enum):
    """Order lifecycle states.

    State diagram:
        PENDING_REVIEW
          │
          │ approve (manager)
          ▼
        CONFIRM_PENDING ─────────────────────────────► AUTO_CLOSED
          │    ▲      │          SLA sweep (system)
          │    │      │ raise_issue (branch)
          │    │      ▼
          │    └── ISSUE_RAISED
          │   reply (manager)
          │
          │ confirm (branch)
          ▼
        DISPATCHED
          │
          │ confirm_received (branch)
          ▼
        CLOSED

    UNDER_REVIEW is part of the persisted vocabulary but no operation
    moves an order into it.
    """

    PENDING_REVIEW = "PENDING_REVIEW"
    UNDER_REVIEW = "UNDER_REVIEW"
    CONFIRM_PENDING = "CONFIRM_PENDING"
    ISSUE_RAISED = "ISSUE_RAISED"
    DISPATCHED = "DISPATCHED"
    CLOSED = "CLOSED"
    AUTO_CLOSED = "AUTO_CLOSED"

    def can_transition_to(self, target: "OrderStatus") -> bool:
        """Check if transition to target state is valid.

        Args:
            target: Target state to transition to.

        Returns:
            True if transition is valid.
        """
        return target in _ORDER_TRANSITIONS.get(self, set())

    def allowed_transitions(self) -> list["OrderStatus"]:
        """Get list of valid target states, in declaration order."""
        targets = _ORDER_TRANSITIONS.get(self, set())
        return [status for status in OrderStatus if status in targets]

    def is_terminal(self) -> bool:
        """Check if this is a terminal (final) state."""
        return self in {OrderStatus.CLOSED, OrderStatus.AUTO_CLOSED}

    def is_sla_tracked(self) -> bool:
        """Check if the auto-close SLA clock applies in this state.

        Only orders waiting on branch confirmation are eligible for the
        auto-close sweep.
        """
        return self == OrderStatus.CONFIRM_PENDING


# Order state transitions (defined outside enum to avoid Enum restrictions)
_ORDER_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.PENDING_REVIEW: {OrderStatus.CONFIRM_PENDING},
    OrderStatus.UNDER_REVIEW: set(),
    OrderStatus.CONFIRM_PENDING: {
        OrderStatus.DISPATCHED,
        OrderStatus.ISSUE_RAISED,
        OrderStatus.AUTO_CLOSED,
    },
    OrderStatus.ISSUE_RAISED: {OrderStatus.CONFIRM_PENDING},
    OrderStatus.DISPATCHED: {OrderStatus.CLOSED},
    OrderStatus.CLOSED: set(),  # Terminal state
    OrderStatus.AUTO_CLOSED: set(),  # Terminal state
}


# ============================================================================
# State Transition Result
# ============================================================================


@dataclass(frozen=True)
class StateTransition(Generic[S]):
    """Represents a completed state transition.

    Attributes:
        from_state: Previous state.
        to_state: New state.
    """

    from_state: S
    to_state: S


# ============================================================================
# State Machine Helpers
# ============================================================================


def validate_order_transition(
    order_id: str,
    current_status: OrderStatus,
    target_status: OrderStatus,
) -> None:
    """Validate and raise if order state transition is invalid.

    Args:
        order_id: Order identifier for error message.
        current_status: Current order status.
        target_status: Target order status.

    Raises:
        InvalidStateTransitionError: If transition is not valid.
    """
    if not current_status.can_transition_to(target_status):
        raise InvalidStateTransitionError(
            entity_type="Order",
            entity_id=order_id,
            current_state=current_status.value,
            target_state=target_status.value,
            allowed_transitions=[s.value for s in current_status.allowed_transitions()],
        )


def require_order_status(
    order_id: str,
    current_status: OrderStatus,
    required_status: OrderStatus,
    target_status: OrderStatus,
) -> StateTransition[OrderStatus]:
    """Guard an operation that must start from exactly one status.

    Args:
        order_id: Order identifier for error message.
        current_status: Status the order is in now.
        required_status: Status the operation starts from.
        target_status: Status the operation moves to.

    Returns:
        The transition that is about to be applied.

    Raises:
        InvalidStateTransitionError: If the order is not in required_status.
    """
    if current_status != required_status:
        raise InvalidStateTransitionError(
            entity_type="Order",
            entity_id=order_id,
            current_state=current_status.value,
            target_state=target_status.value,
            required_state=required_status.value,
            allowed_transitions=[s.value for s in current_status.allowed_transitions()],
        )
    validate_order_transition(order_id, current_status, target_status)
    return StateTransition(from_state=current_status, to_state=target_status)
