"""API schemas for the order service.

Pydantic models for request/response validation and serialization.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


# ============================================================================
# Common Schemas
# ============================================================================


class PriceSchema(BaseModel):
    """Price representation."""

    amount: int = Field(..., description="Amount in smallest currency unit (cents)")
    currency: str = Field(default="USD", description="Currency code")


class ErrorDetail(BaseModel):
    """Detailed error information."""

    field: str | None = Field(default=None, description="Field that caused the error")
    message: str = Field(..., description="Error message")


class ErrorResponse(BaseModel):
    """Standard error response.

    All API errors follow this format for consistency.
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: list[ErrorDetail] = Field(
        default_factory=list, description="Additional error details"
    )
    request_id: str | None = Field(
        default=None, description="Request ID for correlation"
    )


class PaginatedResponse(BaseModel):
    """Base paginated response."""

    total: int = Field(..., description="Total number of items")
    page: int = Field(..., description="Current page number")
    page_size: int = Field(..., description="Items per page")
    has_more: bool = Field(..., description="Whether there are more pages")


# ============================================================================
# Order Schemas
# ============================================================================


class OrderStatusEnum(str, Enum):
    """Order lifecycle status."""

    PENDING_REVIEW = "PENDING_REVIEW"
    UNDER_REVIEW = "UNDER_REVIEW"
    CONFIRM_PENDING = "CONFIRM_PENDING"
    ISSUE_RAISED = "ISSUE_RAISED"
    DISPATCHED = "DISPATCHED"
    CLOSED = "CLOSED"
    AUTO_CLOSED = "AUTO_CLOSED"


class OrderItemRequest(BaseModel):
    """Line item in a new order."""

    sku: str = Field(..., min_length=1, max_length=100, description="Product SKU")
    name: str | None = Field(default=None, max_length=500, description="Product name")
    quantity: int = Field(..., ge=0, description="Quantity requested")


class OrderCreateRequest(BaseModel):
    """Request to place a replenishment order."""

    items: list[OrderItemRequest] = Field(..., min_length=1, description="Requested items")
    remarks: str | None = Field(default=None, max_length=2000, description="Free text")


class ApprovedItemRequest(BaseModel):
    """Approved quantity for one SKU."""

    sku: str = Field(..., min_length=1, description="Product SKU")
    qty_approved: int = Field(..., ge=0, description="Approved quantity")


class OrderApproveRequest(BaseModel):
    """Request to approve an order."""

    items: list[ApprovedItemRequest] = Field(
        default_factory=list,
        description="Approved quantities; SKUs left out keep the requested quantity",
    )


class NoteRequest(BaseModel):
    """Issue or reply note."""

    note: str = Field(..., max_length=2000, description="Message text")


class OrderItemSchema(BaseModel):
    """Item in an order."""

    sku: str = Field(..., description="Product SKU")
    name: str | None = Field(default=None, description="Product name")
    qty_requested: int = Field(..., description="Quantity requested by the branch")
    qty_approved: int | None = Field(default=None, description="Quantity approved")
    unit_price: PriceSchema = Field(..., description="Catalog unit price at approval")
    total_price: PriceSchema = Field(..., description="Unit price times approved quantity")


class QuantityChangeSchema(BaseModel):
    """Requested vs. approved quantity for one SKU."""

    requested: int
    approved: int
    change: int
    is_increased: bool
    is_decreased: bool


class IssueMessageSchema(BaseModel):
    """Message in an order's issue thread."""

    author_id: str
    author_role: str
    message: str
    created_at: datetime


class OrderStatusHistorySchema(BaseModel):
    """Status history entry for audit trail."""

    from_status: str | None = Field(default=None, description="Previous status")
    to_status: str = Field(..., description="New status")
    reason: str | None = Field(default=None, description="Reason for transition")
    actor: str | None = Field(default=None, description="Who initiated transition")
    created_at: datetime = Field(..., description="When transition occurred")


class OrderResponse(BaseModel):
    """Order details response."""

    id: str = Field(..., description="Order ID")
    order_number: str = Field(..., description="Human-readable reference")
    branch_id: str = Field(..., description="Branch the order belongs to")
    requested_by_id: str = Field(..., description="Branch user who placed the order")
    status: OrderStatusEnum = Field(..., description="Current order status")
    version: int = Field(..., description="Concurrency token")
    items: list[OrderItemSchema] = Field(..., description="Order items")
    total: PriceSchema = Field(..., description="Order total")
    remarks: str | None = Field(default=None, description="Request remarks")
    manager_id: str | None = Field(default=None, description="Approving manager")
    closed_by: str | None = Field(default=None, description="Who closed the order")
    issues: list[IssueMessageSchema] = Field(default_factory=list, description="Issue thread")
    status_history: list[OrderStatusHistorySchema] = Field(
        default_factory=list, description="Order status history"
    )
    sla_deadline: datetime | None = Field(
        default=None, description="When the order becomes eligible for auto-close"
    )
    created_at: datetime = Field(..., description="When order was created")
    updated_at: datetime = Field(..., description="When order was last updated")
    approved_at: datetime | None = Field(default=None, description="When order was approved")
    confirm_pending_at: datetime | None = Field(
        default=None, description="Start of the current confirmation window"
    )
    dispatched_at: datetime | None = Field(default=None, description="When order was dispatched")
    closed_at: datetime | None = Field(default=None, description="When order was closed")


class ApprovalResponse(OrderResponse):
    """Approved order with its per-SKU quantity changes."""

    quantity_changes: dict[str, QuantityChangeSchema] = Field(
        default_factory=dict, description="Requested vs. approved per SKU"
    )


class OrderSummarySchema(BaseModel):
    """Order summary for listings."""

    id: str = Field(..., description="Order ID")
    order_number: str = Field(..., description="Human-readable reference")
    branch_id: str = Field(..., description="Branch")
    status: OrderStatusEnum = Field(..., description="Current status")
    total: PriceSchema = Field(..., description="Order total")
    item_count: int = Field(..., description="Number of line items")
    created_at: datetime = Field(..., description="When created")


class OrdersListResponse(PaginatedResponse):
    """Paginated list of orders."""

    items: list[OrderSummarySchema] = Field(..., description="List of orders")


# ============================================================================
# Auto-Close Schemas
# ============================================================================


class SweepFailureSchema(BaseModel):
    """Order the sweep failed to close."""

    order_id: str
    error: str
    error_code: str


class SweepResponse(BaseModel):
    """Outcome of an auto-close sweep."""

    ran_at: datetime
    checked: int
    closed: list[str]
    failed: list[SweepFailureSchema]
