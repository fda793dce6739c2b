"""Domain exceptions.

All domain-level errors that represent business rule violations.
These exceptions are raised by entities, state machines and application
services, and are mapped to transport errors at the API boundary.
"""

from typing import Any


class DomainError(Exception):
    """Base class for all domain exceptions.

    All domain errors should inherit from this class to allow
    catching domain-specific errors at the application layer.
    """

    error_code: str = "DOMAIN_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize domain error.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ============================================================================
# State Machine Errors
# ============================================================================


class InvalidStateTransitionError(DomainError):
    """Raised when an operation is attempted from the wrong order status.

    Carries both the status the operation requires and the status the
    order is actually in.
    """

    error_code = "INVALID_STATE"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        current_state: str,
        target_state: str,
        required_state: str | None = None,
        allowed_transitions: list[str] | None = None,
    ) -> None:
        """Initialize invalid state transition error.

        Args:
            entity_type: Type of entity (e.g., "Order").
            entity_id: ID of the entity.
            current_state: Current state of the entity.
            target_state: Attempted target state.
            required_state: State the operation must start from.
            allowed_transitions: List of allowed target states from current state.
        """
        allowed = allowed_transitions or []
        if required_state is not None:
            message = (
                f"Cannot transition {entity_type}({entity_id}) to '{target_state}': "
                f"requires status '{required_state}' but status is '{current_state}'"
            )
        else:
            message = (
                f"Cannot transition {entity_type}({entity_id}) "
                f"from '{current_state}' to '{target_state}'. "
                f"Allowed transitions: {allowed}"
            )
        super().__init__(
            message,
            details={
                "entity_type": entity_type,
                "entity_id": entity_id,
                "current_state": current_state,
                "target_state": target_state,
                "required_state": required_state,
                "allowed_transitions": allowed,
            },
        )
        self.current_state = current_state
        self.required_state = required_state


# ============================================================================
# Lookup Errors
# ============================================================================


class NotFoundError(DomainError):
    """Base class for missing orders or order lines."""

    error_code = "NOT_FOUND"


class OrderNotFoundError(NotFoundError):
    """Raised when an order does not exist."""

    error_code = "ORDER_NOT_FOUND"

    def __init__(self, order_id: str) -> None:
        super().__init__(
            f"Order not found: {order_id}",
            details={"order_id": order_id},
        )


class OrderItemNotFoundError(NotFoundError):
    """Raised when an approval references a SKU the order does not contain."""

    error_code = "ORDER_ITEM_NOT_FOUND"

    def __init__(self, order_id: str, sku: str) -> None:
        super().__init__(
            f"Order item with SKU {sku} not found in order {order_id}",
            details={"order_id": order_id, "sku": sku},
        )


# ============================================================================
# Validation Errors
# ============================================================================


class ValidationError(DomainError):
    """Base class for malformed quantities or payloads."""

    error_code = "VALIDATION_ERROR"


class InvalidQuantityError(ValidationError):
    """Raised when an invalid quantity is provided."""

    error_code = "INVALID_QUANTITY"

    def __init__(
        self,
        quantity: int,
        reason: str = "Quantity cannot be negative",
        sku: str | None = None,
    ) -> None:
        """Initialize invalid quantity error.

        Args:
            quantity: The invalid quantity value.
            reason: Explanation of why the quantity is invalid.
            sku: SKU the quantity was submitted for.
        """
        prefix = f"Invalid quantity {quantity}"
        if sku:
            prefix += f" for SKU {sku}"
        super().__init__(
            f"{prefix}: {reason}",
            details={"quantity": quantity, "reason": reason, "sku": sku},
        )


class InvalidPayloadError(ValidationError):
    """Raised when a request payload is structurally unusable."""

    error_code = "INVALID_PAYLOAD"

    def __init__(self, reason: str, field: str | None = None) -> None:
        super().__init__(reason, details={"field": field})


# ============================================================================
# Access Errors
# ============================================================================


class UnauthorizedError(DomainError):
    """Raised when the calling actor lacks the role or branch for an operation."""

    error_code = "UNAUTHORIZED"

    def __init__(self, actor_id: str, operation: str, reason: str) -> None:
        super().__init__(
            f"User {actor_id} may not {operation}: {reason}",
            details={"actor_id": actor_id, "operation": operation, "reason": reason},
        )


# ============================================================================
# Concurrency Errors
# ============================================================================


class ConcurrencyConflictError(DomainError):
    """Raised when a write loses the version check against a concurrent write.

    Safe to retry once after re-reading the order.
    """

    error_code = "CONFLICT"

    def __init__(self, order_id: str, expected_version: int, actual_version: int | None) -> None:
        super().__init__(
            f"Order {order_id} was modified concurrently "
            f"(expected version {expected_version}, found {actual_version})",
            details={
                "order_id": order_id,
                "expected_version": expected_version,
                "actual_version": actual_version,
            },
        )


# ============================================================================
# Upstream Errors
# ============================================================================


class UpstreamError(DomainError):
    """Base class for failures of external collaborators."""

    error_code = "UPSTREAM_ERROR"


class PriceLookupError(UpstreamError):
    """Raised when the product catalog cannot price a SKU."""

    error_code = "PRICE_LOOKUP_FAILED"

    def __init__(self, sku: str, reason: str) -> None:
        super().__init__(
            f"Unable to look up unit price for SKU {sku}: {reason}",
            details={"sku": sku, "reason": reason},
        )


# ============================================================================
# Money Errors
# ============================================================================


class NegativeMoneyError(ValidationError):
    """Raised when attempting to create money with negative amount."""

    def __init__(self, amount: int) -> None:
        """Initialize negative money error.

        Args:
            amount: The negative amount in cents.
        """
        super().__init__(
            f"Money amount cannot be negative: {amount}",
            details={"amount": amount},
        )


class CurrencyMismatchError(ValidationError):
    """Raised when attempting to combine money with different currencies."""

    def __init__(self, currency1: str, currency2: str) -> None:
        super().__init__(
            f"Cannot combine money with different currencies: {currency1} and {currency2}",
            details={"currency1": currency1, "currency2": currency2},
        )
