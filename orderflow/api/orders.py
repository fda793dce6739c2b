"""Order API endpoints.

Provides endpoints for the order approval lifecycle:
- POST /orders - branch user places an order
- GET /orders - list orders (paginated)
- GET /orders/{id} - order details and status
- POST /orders/{id}/approve - manager approves with quantity adjustment
- POST /orders/{id}/confirm - branch accepts; order is dispatched
- POST /orders/{id}/issues - branch disputes approved quantities
- POST /orders/{id}/reply - manager answers an issue
- POST /orders/{id}/receive - branch confirms receipt; order is closed
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status

from orderflow.api.identity import get_actor
from orderflow.api.schemas import (
    ApprovalResponse,
    ErrorResponse,
    IssueMessageSchema,
    NoteRequest,
    OrderApproveRequest,
    OrderCreateRequest,
    OrderItemSchema,
    OrderResponse,
    OrdersListResponse,
    OrderStatusEnum,
    OrderStatusHistorySchema,
    OrderSummarySchema,
    PriceSchema,
    QuantityChangeSchema,
)
from orderflow.application.auto_close import get_business_clock
from orderflow.application.order_service import OrderService, get_order_service
from orderflow.domain.entities import Order, OrderItem
from orderflow.domain.state_machines import OrderStatus
from orderflow.domain.value_objects import Actor, ApprovedQuantity, Money, QuantityChange
from orderflow.infrastructure.config import settings

router = APIRouter(prefix="/orders", tags=["Orders"])

ERROR_RESPONSES = {
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
}


# ============================================================================
# Dependencies
# ============================================================================


def get_service(request: Request) -> OrderService:
    """Get order service with request ID."""
    request_id = getattr(request.state, "request_id", None)
    return get_order_service(request_id=request_id)


# ============================================================================
# Converters
# ============================================================================


def _price(money: Money) -> PriceSchema:
    return PriceSchema(amount=money.amount_cents, currency=money.currency)


def order_to_response(order: Order) -> OrderResponse:
    """Convert an Order aggregate to OrderResponse."""
    return OrderResponse(**_order_fields(order))


def _order_fields(order: Order) -> dict:
    return {
        "id": str(order.id),
        "order_number": order.order_number,
        "branch_id": order.branch_id,
        "requested_by_id": order.requested_by_id,
        "status": OrderStatusEnum(order.status.value),
        "version": order.version,
        "items": [
            OrderItemSchema(
                sku=item.sku,
                name=item.name,
                qty_requested=item.qty_requested,
                qty_approved=item.qty_approved,
                unit_price=_price(item.unit_price),
                total_price=_price(item.total_price),
            )
            for item in order.items
        ],
        "total": _price(order.total),
        "remarks": order.remarks,
        "manager_id": order.manager_id,
        "closed_by": order.closed_by,
        "issues": [
            IssueMessageSchema(
                author_id=m.author_id,
                author_role=m.author_role.value,
                message=m.message,
                created_at=m.created_at,
            )
            for m in order.issues
        ],
        "status_history": [
            OrderStatusHistorySchema(
                from_status=entry.from_status.value if entry.from_status else None,
                to_status=entry.to_status.value,
                reason=entry.reason,
                actor=entry.actor,
                created_at=entry.created_at,
            )
            for entry in order.status_history
        ],
        "sla_deadline": order.sla_deadline(get_business_clock(), settings.auto_close_sla_hours),
        "created_at": order.created_at,
        "updated_at": order.updated_at,
        "approved_at": order.approved_at,
        "confirm_pending_at": order.confirm_pending_at,
        "dispatched_at": order.dispatched_at,
        "closed_at": order.closed_at,
    }


def approval_to_response(order: Order, changes: dict[str, QuantityChange]) -> ApprovalResponse:
    """Convert an approval outcome to ApprovalResponse."""
    return ApprovalResponse(
        **_order_fields(order),
        quantity_changes={
            sku: QuantityChangeSchema(**change.to_dict()) for sku, change in changes.items()
        },
    )


def order_to_summary(order: Order) -> OrderSummarySchema:
    """Convert an Order aggregate to OrderSummarySchema."""
    return OrderSummarySchema(
        id=str(order.id),
        order_number=order.order_number,
        branch_id=order.branch_id,
        status=OrderStatusEnum(order.status.value),
        total=_price(order.total),
        item_count=len(order.items),
        created_at=order.created_at,
    )


# ============================================================================
# Endpoints
# ============================================================================


@router.post(
    "",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    summary="Place order",
    description="Branch user requests stock for their own branch.",
)
async def create_order(
    request: OrderCreateRequest,
    actor: Annotated[Actor, Depends(get_actor)],
    service: Annotated[OrderService, Depends(get_service)],
) -> OrderResponse:
    """Place a replenishment order.

    Args:
        request: Requested items and remarks.
        actor: Calling branch user.
        service: Order service.

    Returns:
        The new order in PENDING_REVIEW.
    """
    items = [
        OrderItem(sku=item.sku, qty_requested=item.quantity, name=item.name)
        for item in request.items
    ]
    order = await service.create_order(actor, items, remarks=request.remarks)
    return order_to_response(order)


@router.get(
    "",
    response_model=OrdersListResponse,
    responses={401: {"model": ErrorResponse}},
    summary="List orders",
    description="Get a paginated list of orders with optional filtering.",
)
async def list_orders(
    actor: Annotated[Actor, Depends(get_actor)],
    service: Annotated[OrderService, Depends(get_service)],
    page: int = Query(default=1, ge=1, description="Page number"),
    page_size: int = Query(default=20, ge=1, le=100, description="Items per page"),
    status: OrderStatusEnum | None = Query(default=None, description="Filter by status"),
    branch_id: str | None = Query(default=None, description="Filter by branch"),
) -> OrdersListResponse:
    """List orders with pagination and filtering.

    Branch users only see their own branch regardless of ``branch_id``.
    """
    result = await service.list_orders(
        actor,
        page=page,
        page_size=page_size,
        status=OrderStatus(status.value) if status else None,
        branch_id=branch_id,
    )
    return OrdersListResponse(
        items=[order_to_summary(order) for order in result.orders],
        total=result.total,
        page=result.page,
        page_size=result.page_size,
        has_more=result.has_more,
    )


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    summary="Get order details",
)
async def get_order(
    order_id: str,
    actor: Annotated[Actor, Depends(get_actor)],
    service: Annotated[OrderService, Depends(get_service)],
) -> OrderResponse:
    """Get an order by ID, including items, issue thread and history."""
    order = await service.get_order(order_id, actor)
    return order_to_response(order)


@router.post(
    "/{order_id}/approve",
    response_model=ApprovalResponse,
    responses={**ERROR_RESPONSES, 502: {"model": ErrorResponse}},
    summary="Approve order",
    description="Manager approves with per-SKU quantities; lines are repriced from the catalog.",
)
async def approve_order(
    order_id: str,
    request: OrderApproveRequest,
    actor: Annotated[Actor, Depends(get_actor)],
    service: Annotated[OrderService, Depends(get_service)],
) -> ApprovalResponse:
    """Approve an order.

    Args:
        order_id: Order identifier.
        request: Approved quantity per SKU.
        actor: Calling manager.
        service: Order service.

    Returns:
        Approved order with quantity changes per SKU.
    """
    approvals = [ApprovedQuantity(sku=i.sku, qty_approved=i.qty_approved) for i in request.items]
    result = await service.approve(order_id, actor, approvals)
    return approval_to_response(result.order, result.quantity_changes)


@router.post(
    "/{order_id}/confirm",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    summary="Confirm approved quantities",
)
async def confirm_order(
    order_id: str,
    actor: Annotated[Actor, Depends(get_actor)],
    service: Annotated[OrderService, Depends(get_service)],
) -> OrderResponse:
    """Branch accepts the approved quantities; the order is dispatched."""
    order = await service.confirm(order_id, actor)
    return order_to_response(order)


@router.post(
    "/{order_id}/issues",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    summary="Raise issue",
)
async def raise_issue(
    order_id: str,
    request: NoteRequest,
    actor: Annotated[Actor, Depends(get_actor)],
    service: Annotated[OrderService, Depends(get_service)],
) -> OrderResponse:
    """Branch disputes the approved quantities."""
    order = await service.raise_issue(order_id, actor, request.note)
    return order_to_response(order)


@router.post(
    "/{order_id}/reply",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    summary="Reply to issue",
)
async def reply_to_issue(
    order_id: str,
    request: NoteRequest,
    actor: Annotated[Actor, Depends(get_actor)],
    service: Annotated[OrderService, Depends(get_service)],
) -> OrderResponse:
    """Manager answers an issue; the confirmation window restarts."""
    order = await service.reply(order_id, actor, request.note)
    return order_to_response(order)


@router.post(
    "/{order_id}/receive",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    summary="Confirm receipt",
)
async def confirm_received(
    order_id: str,
    actor: Annotated[Actor, Depends(get_actor)],
    service: Annotated[OrderService, Depends(get_service)],
) -> OrderResponse:
    """Branch confirms the goods arrived; the order is closed."""
    order = await service.confirm_received(order_id, actor)
    return order_to_response(order)
