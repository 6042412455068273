import logging
from typing import Any, Dict, List, Optional, Tuple

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from sqlalchemy import desc, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from ..enums import AuditAction
from ..models import AuditLog
from ..schemas.audit import AuditLogFilters


logger = logging.getLogger(__name__)


def get_changed_fields(
    old_values: Dict[str, Any], new_values: Dict[str, Any]
) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Keep only the keys of ``new_values`` whose value differs from ``old_values``."""
    changed_old = {}
    changed_new = {}

    for key, value in new_values.items():
        if old_values.get(key) != value:
            changed_old[key] = old_values.get(key)
            changed_new[key] = value

    return changed_old, changed_new


def _client_details(request: Optional[Request]) -> Tuple[Optional[str], Optional[str]]:
    if request is None:
        return None, None

    ip_address = (
        request.headers.get("x-forwarded-for")
        or request.headers.get("x-real-ip")
        or (request.client.host if request.client else None)
        or "unknown"
    )
    user_agent = request.headers.get("user-agent") or "unknown"
    return ip_address, user_agent


class AuditService:
    async def log(
        self,
        action: AuditAction,
        entity_type: str,
        entity_id: Any,
        admin_user_id: int,
        db: AsyncSession,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
        request: Optional[Request] = None,
    ) -> Optional[AuditLog]:
        """
        Persist an audit entry for an admin mutation.

        Runs after the mutation is committed. A failure here is rolled back and
        logged; it never undoes or fails the mutation itself.
        """
        ip_address, user_agent = _client_details(request)

        entry = AuditLog(
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id),
            old_values=jsonable_encoder(old_values) if old_values is not None else None,
            new_values=jsonable_encoder(new_values) if new_values is not None else None,
            admin_user_id=admin_user_id,
            ip_address=ip_address,
            user_agent=user_agent,
        )

        try:
            db.add(entry)
            await db.commit()
            await db.refresh(entry)
            return entry
        except Exception:
            await db.rollback()
            logger.exception("Audit logging failed for %s %s %s", action.value, entity_type, entity_id)
            return None

    async def log_create(self, entity_type: str, entity_id: Any, new_values: Dict[str, Any],
                         admin_user_id: int, db: AsyncSession, request: Optional[Request] = None):
        return await self.log(AuditAction.CREATE, entity_type, entity_id, admin_user_id, db,
                              new_values=new_values, request=request)

    async def log_update(self, entity_type: str, entity_id: Any, old_values: Dict[str, Any],
                         new_values: Dict[str, Any], admin_user_id: int, db: AsyncSession,
                         request: Optional[Request] = None):
        return await self.log(AuditAction.UPDATE, entity_type, entity_id, admin_user_id, db,
                              old_values=old_values, new_values=new_values, request=request)

    async def log_delete(self, entity_type: str, entity_id: Any, old_values: Dict[str, Any],
                         admin_user_id: int, db: AsyncSession, request: Optional[Request] = None):
        return await self.log(AuditAction.DELETE, entity_type, entity_id, admin_user_id, db,
                              old_values=old_values, request=request)

    async def list_logs(
        self,
        filters: AuditLogFilters,
        db: AsyncSession,
        skip: int = 0,
        limit: int = 50,
    ) -> Tuple[List[AuditLog], int]:
        """Audit entries matching ``filters``, newest first, with the total count."""
        conditions = []
        if filters.entity_type:
            conditions.append(AuditLog.entity_type == filters.entity_type)
        if filters.entity_id:
            conditions.append(AuditLog.entity_id == filters.entity_id)
        if filters.action:
            conditions.append(AuditLog.action == filters.action)
        if filters.admin_user_id:
            conditions.append(AuditLog.admin_user_id == filters.admin_user_id)

        count_query = select(func.count()).select_from(AuditLog).where(*conditions)
        total = (await db.execute(count_query)).scalar() or 0

        query = (
            select(AuditLog)
            .where(*conditions)
            .order_by(desc(AuditLog.created_at), desc(AuditLog.id))
            .offset(skip)
            .limit(limit)
        )
        result = await db.execute(query)

        return result.scalars().all(), total
