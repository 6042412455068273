from datetime import datetime

from sqlalchemy import Column, DateTime

from ..db.base import Base


class TimeStampMixin:
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


__all__ = ["Base", "TimeStampMixin"]
