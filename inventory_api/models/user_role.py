"""
UserRole Model
Temporal, soft-revocable assignment of a role to a user
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Column, Boolean, Integer, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from inventory_api.core.database import Base
from inventory_api.core.time import as_utc, utc_now
from inventory_api.models.base import IntegerIDMixin


class UserRole(Base, IntegerIDMixin):
    __tablename__ = "user_roles"

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False, index=True)

    assigned_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    assigned_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    # NULL means the assignment never expires
    expires_at = Column(DateTime(timezone=True), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    revoked_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    revoked_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="role_assignments", foreign_keys=[user_id], lazy="noload")
    role = relationship("Role", lazy="joined")

    __table_args__ = (
        Index('ix_user_roles_user_active', 'user_id', 'is_active'),
    )

    def __repr__(self):
        return f"<UserRole(user_id={self.user_id}, role_id={self.role_id}, active={self.is_active})>"

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        return as_utc(self.expires_at) <= (now or utc_now())

    def is_currently_valid(self, now: Optional[datetime] = None) -> bool:
        """Active, not expired and pointing at an active role"""
        role_active = self.role is not None and self.role.is_active
        return bool(self.is_active) and not self.is_expired(now) and role_active

    def revoke(self, revoked_by: Optional[int], now: Optional[datetime] = None) -> None:
        self.is_active = False
        self.revoked_by = revoked_by
        self.revoked_at = now or utc_now()
