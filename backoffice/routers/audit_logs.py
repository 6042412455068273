from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import get_current_admin, get_db
from ..enums import AuditAction
from ..models import User
from ..schemas.audit import AuditLogFilters, AuditLogResponse
from ..schemas.common import PaginatedResponse, Pagination
from ..services import AuditService


router = APIRouter()

audit_service = AuditService()


@router.get("", response_model=PaginatedResponse[AuditLogResponse])
async def list_audit_logs(
    entity_type: Optional[str] = Query(None, description="e.g. Category, Order, Customer"),
    entity_id: Optional[str] = Query(None),
    action: Optional[AuditAction] = Query(None),
    admin_user_id: Optional[int] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_admin),
):
    """
    **Audit Trail**

    Admin mutations, newest first.
    """
    filters = AuditLogFilters(
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        admin_user_id=admin_user_id,
    )
    logs, total = await audit_service.list_logs(filters, db, skip=(page - 1) * limit, limit=limit)

    return {"data": logs, "pagination": Pagination.build(page, limit, total)}
