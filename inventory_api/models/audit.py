"""
Audit Models
Append-only trails for role/permission mutations and granted requests
"""

from sqlalchemy import Column, String, Integer, JSON, DateTime, ForeignKey, Index
from sqlalchemy.sql import func

from inventory_api.core.database import Base
from inventory_api.models.base import IntegerIDMixin


class RoleAuditLog(Base, IntegerIDMixin):
    """One row per role / permission / assignment mutation"""
    __tablename__ = "role_audit_log"

    role_id = Column(Integer, nullable=True, index=True)
    # role_created, role_updated, role_deleted, role_cloned, user_assigned, user_removed, ...
    action = Column(String(50), nullable=False, index=True)
    changes = Column(JSON, nullable=True)
    performed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<RoleAuditLog(action='{self.action}', role_id={self.role_id})>"


class ActivityLog(Base, IntegerIDMixin):
    """Granted requests, written off the request path"""
    __tablename__ = "activity_logs"

    user_id = Column(Integer, nullable=False, index=True)
    action = Column(String(255), nullable=False)
    module = Column(String(50), nullable=False, index=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index('ix_activity_user_created', 'user_id', 'created_at'),
    )
