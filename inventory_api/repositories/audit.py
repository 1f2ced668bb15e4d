"""
Audit Repository
Append-only writes to the role audit trail.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from inventory_api.models.audit import RoleAuditLog
from inventory_api.repositories.base import CRUDBase


@dataclass(frozen=True)
class AuditContext:
    """Who performed a mutation and from where"""
    actor_id: Optional[int] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


SYSTEM_CONTEXT = AuditContext()


class RoleAuditRepository(CRUDBase[RoleAuditLog]):
    def record(
        self,
        db: AsyncSession,
        *,
        action: str,
        context: AuditContext,
        role_id: Optional[int] = None,
        changes: Optional[dict[str, Any]] = None,
    ) -> RoleAuditLog:
        """Stage an audit row in the caller's transaction"""
        entry = RoleAuditLog(
            role_id=role_id,
            action=action,
            changes=changes,
            performed_by=context.actor_id,
            ip_address=context.ip_address,
            user_agent=(context.user_agent or "")[:255] or None,
        )
        db.add(entry)
        return entry

    async def list_for_role(self, db: AsyncSession, role_id: int, limit: int = 50) -> list[RoleAuditLog]:
        query = (
            select(RoleAuditLog)
            .where(RoleAuditLog.role_id == role_id)
            .order_by(RoleAuditLog.created_at.desc(), RoleAuditLog.id.desc())
            .limit(limit)
        )
        result = await db.execute(query)
        return list(result.scalars().all())


role_audit_repository = RoleAuditRepository(RoleAuditLog)
