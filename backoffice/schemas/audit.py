from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel

from ..enums import AuditAction


class AuditLogFilters(BaseModel):
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    action: Optional[AuditAction] = None
    admin_user_id: Optional[int] = None


class AuditLogResponse(BaseModel):
    id: int
    action: AuditAction
    entity_type: str
    entity_id: str
    old_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
    admin_user_id: int
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
