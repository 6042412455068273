from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import get_current_admin, get_db
from ..enums import OrderStatus, PaymentStatus
from ..models import User
from ..schemas.common import PaginatedResponse, Pagination
from ..schemas.order import (
    OrderDetail,
    OrderFilters,
    OrderItemResponse,
    OrderResponse,
    OrderStatusUpdate,
    OrderTransitions,
    OrderUpdate,
)
from ..services import AuditService, OrderService
from ..services.audit_service import get_changed_fields


router = APIRouter()

order_service = OrderService()
audit_service = AuditService()


def get_order_filters(
    status_filter: Optional[OrderStatus] = Query(None, alias="status", description="Filter by order status"),
    payment_status: Optional[PaymentStatus] = Query(None, description="Filter by payment status"),
    customer_id: Optional[int] = Query(None, description="Filter by customer ID"),
    date_from: Optional[datetime] = Query(None, description="Orders created from this date"),
    date_to: Optional[datetime] = Query(None, description="Orders created up to this date"),
    total_min: Optional[float] = Query(None, ge=0, description="Minimum order total"),
    total_max: Optional[float] = Query(None, ge=0, description="Maximum order total"),
) -> OrderFilters:
    return OrderFilters(
        status=status_filter,
        payment_status=payment_status,
        customer_id=customer_id,
        date_from=date_from,
        date_to=date_to,
        total_min=total_min,
        total_max=total_max,
    )


@router.get("", response_model=PaginatedResponse[OrderResponse])
async def list_orders(
    filters: OrderFilters = Depends(get_order_filters),
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    sort_by: str = Query("created_at", description="Sort by field"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$", description="Sort order (asc/desc)"),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_admin),
):
    """
    **Get All Orders (Admin)**

    Retrieve all orders in the system with filtering and sorting options.

    **Query Parameters:**
    - **status**: Filter by order status (pending, confirmed, processing, shipped, ...)
    - **payment_status**: Filter by payment status (pending, paid, failed, refunded)
    - **customer_id**: Filter orders by specific customer
    - **date_from** / **date_to**: Creation date range
    - **total_min** / **total_max**: Order total range
    - **sort_by**: Field to sort by (created_at, total, status, etc.)
    - **sort_order**: Sort direction (asc/desc, default: desc)
    """
    orders, total = await order_service.list_orders(
        filters,
        db,
        skip=(page - 1) * limit,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )

    return {"data": orders, "pagination": Pagination.build(page, limit, total)}


@router.get("/{order_id}", response_model=OrderDetail)
async def get_order(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_admin),
):
    """
    **Get Order Details (Admin)**

    Complete order information: customer, line items with product details,
    addresses, notes and the statuses the order can move to next.
    """
    return await order_service.get_order_detail(order_id, db)


@router.get("/{order_id}/items", response_model=List[OrderItemResponse])
async def get_order_items(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_admin),
):
    """
    **Get Order Items**
    """
    return await order_service.get_order_items(order_id, db)


@router.get("/{order_id}/transitions", response_model=OrderTransitions)
async def get_order_transitions(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_admin),
):
    """
    **Allowed Status Changes**

    The statuses the order may move to from its current one.
    """
    return await order_service.get_allowed_transitions(order_id, db)


@router.put("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: int,
    status_update: OrderStatusUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    """
    **Update Order Status (Admin)**

    **Request Body:**
    - **status**: New order status
    - **notes**: Optional notes about the order, replaces the stored notes
    - **admin_comment**: Optional internal comment

    **Errors:**
    - **404**: Order not found
    - **422**: The lifecycle does not allow moving from the current status to the requested one
    """
    existing = await order_service.get_order_by_id(order_id, db)
    previous_status = existing.status

    order = await order_service.update_order_status(
        order_id,
        status_update.status,
        db,
        notes=status_update.notes,
        admin_comment=status_update.admin_comment,
    )
    response = OrderResponse.model_validate(order)

    await audit_service.log_update(
        "Order",
        order_id,
        {"status": previous_status},
        {
            "status": order.status,
            "notes": status_update.notes,
            "admin_comment": status_update.admin_comment,
        },
        current_admin.id,
        db,
        request=request,
    )
    return response


@router.put("/{order_id}", response_model=OrderResponse)
async def update_order(
    order_id: int,
    order_data: OrderUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    """
    **Update Order (Admin)**

    Edit payment status, shipping/billing address, notes and admin comment.
    Changing the status is only possible through `PUT /orders/{order_id}/status`;
    a `status` field here is rejected with 422.
    """
    fields = list(order_data.model_dump(exclude_unset=True))

    existing = await order_service.get_order_by_id(order_id, db)
    old_values = {field: getattr(existing, field) for field in fields}

    order = await order_service.update_order(order_id, order_data, db)
    changed_old, changed_new = get_changed_fields(
        old_values, {field: getattr(order, field) for field in fields}
    )
    response = OrderResponse.model_validate(order)

    if changed_new:
        await audit_service.log_update(
            "Order", order_id, changed_old, changed_new, current_admin.id, db, request=request
        )
    return response
