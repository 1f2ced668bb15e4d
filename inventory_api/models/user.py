"""
User Model
Identity records; users are deactivated, never hard-deleted
"""

from sqlalchemy import Column, String, Boolean, DateTime, Index
from sqlalchemy.orm import relationship
from inventory_api.models.base import BaseModel


class User(BaseModel):
    """User model for authentication"""
    __tablename__ = "users"

    username = Column(String(50), nullable=False, unique=True, index=True)
    email = Column(String(254), nullable=True, unique=True)
    full_name = Column(String(100), nullable=False)
    hashed_password = Column(String(128), nullable=False)

    # Account status
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    # Activity tracking
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    role_assignments = relationship(
        "UserRole",
        back_populates="user",
        foreign_keys="UserRole.user_id",
        lazy="noload",
    )

    __table_args__ = (
        Index('ix_user_username_active', 'username', 'is_active'),
    )

    def __repr__(self):
        return f"<User(username='{self.username}', active={self.is_active})>"
