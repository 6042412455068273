from datetime import datetime

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, JSON, String
from sqlalchemy.orm import relationship

from ..db.base import Base
from ..enums import AuditAction


class AuditLog(Base):
    """
    Record of an admin mutation.

    Attributes:
        action (AuditAction): CREATE, UPDATE or DELETE.
        entity_type (str): Name of the mutated model, e.g. ``Category``.
        entity_id (str): Primary key of the mutated row.
        old_values (dict): Field values before the mutation, if any.
        new_values (dict): Field values after the mutation, if any.
        admin_user_id (int): The admin that performed the mutation.
    """

    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    action = Column(Enum(AuditAction), nullable=False)
    entity_type = Column(String, nullable=False, index=True)
    entity_id = Column(String, nullable=False, index=True)
    old_values = Column(JSON, nullable=True)
    new_values = Column(JSON, nullable=True)
    admin_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    admin_user = relationship("User")


    def __repr__(self):
        return (
            f'<AuditLog(id={self.id}, action={self.action}, entity_type={self.entity_type},'
            f' entity_id={self.entity_id})>'
        )
