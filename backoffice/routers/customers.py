from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import get_current_admin, get_db
from ..models import User
from ..schemas.common import MessageResponse, PaginatedResponse, Pagination
from ..schemas.customer import CustomerDetail, CustomerFilters, CustomerResponse, CustomerUpdate
from ..schemas.order import OrderFilters, OrderResponse
from ..services import AuditService, CustomerService, OrderService
from ..services.audit_service import get_changed_fields


router = APIRouter()

customer_service = CustomerService()
order_service = OrderService()
audit_service = AuditService()


def _audit_fields(customer) -> dict:
    return {
        "email": customer.email,
        "first_name": customer.first_name,
        "last_name": customer.last_name,
        "phone_number": customer.phone_number,
        "is_active": customer.is_active,
    }


def get_customer_filters(
    search: Optional[str] = Query(None, description="Search name, email or phone number"),
    is_active: Optional[bool] = Query(None, description="Filter by active flag"),
    date_from: Optional[datetime] = Query(None, description="Registered from this date"),
    date_to: Optional[datetime] = Query(None, description="Registered up to this date"),
) -> CustomerFilters:
    return CustomerFilters(search=search, is_active=is_active, date_from=date_from, date_to=date_to)


@router.get("", response_model=PaginatedResponse[CustomerResponse])
async def list_customers(
    filters: CustomerFilters = Depends(get_customer_filters),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_admin),
):
    """
    **List Customers**

    Paginated customers, newest first.
    """
    customers, total = await customer_service.list_customers(
        db, filters=filters, skip=(page - 1) * limit, limit=limit
    )
    return {"data": customers, "pagination": Pagination.build(page, limit, total)}


@router.get("/{customer_id}", response_model=CustomerDetail)
async def get_customer(
    customer_id: int,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_admin),
):
    """
    **Get Customer**

    Customer details with order count, total spent and last order date.
    """
    return await customer_service.get_customer_detail(customer_id, db)


@router.get("/{customer_id}/orders", response_model=PaginatedResponse[OrderResponse])
async def get_customer_orders(
    customer_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_admin),
):
    """
    **Customer Orders**
    """
    await customer_service.get_customer_by_id(customer_id, db)

    orders, total = await order_service.list_orders(
        OrderFilters(customer_id=customer_id), db, skip=(page - 1) * limit, limit=limit
    )
    return {"data": orders, "pagination": Pagination.build(page, limit, total)}


@router.patch("/{customer_id}/toggle-status", response_model=CustomerResponse)
async def toggle_customer_status(
    customer_id: int,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    """
    **Activate / Deactivate Customer**
    """
    customer = await customer_service.toggle_status(customer_id, db)
    response = CustomerResponse.model_validate(customer)

    await audit_service.log_update(
        "Customer",
        customer_id,
        {"is_active": not customer.is_active},
        {"is_active": customer.is_active},
        current_admin.id,
        db,
        request=request,
    )
    return response


@router.put("/{customer_id}", response_model=CustomerResponse)
async def update_customer(
    customer_id: int,
    customer_data: CustomerUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    """
    **Update Customer**

    Partial update of name, email, phone number and active flag.

    **Errors:**
    - **404**: Customer not found
    - **409**: Another account already uses the email
    """
    existing = await customer_service.get_customer_by_id(customer_id, db)
    old_values = _audit_fields(existing)

    customer = await customer_service.update_customer(customer_id, customer_data, db)
    changed_old, changed_new = get_changed_fields(old_values, _audit_fields(customer))
    response = CustomerResponse.model_validate(customer)

    if changed_new:
        await audit_service.log_update(
            "Customer", customer_id, changed_old, changed_new, current_admin.id, db, request=request
        )
    return response


@router.delete("/{customer_id}", response_model=MessageResponse)
async def delete_customer(
    customer_id: int,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    """
    **Delete Customer**

    Only customers without orders can be deleted.
    """
    customer = await customer_service.delete_customer(customer_id, db)

    await audit_service.log_delete(
        "Customer", customer_id, _audit_fields(customer), current_admin.id, db, request=request
    )
    return {"message": f"Customer {customer_id} deleted successfully"}
