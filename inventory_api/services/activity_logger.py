"""
Activity logger: audit trail of granted requests.
"""

from __future__ import annotations

import structlog
from sqlalchemy.ext.asyncio import async_sessionmaker

from inventory_api.core.events import AccessGranted
from inventory_api.models.audit import ActivityLog

logger = structlog.get_logger()


class ActivityLogger:
    def __init__(self, session_factory: async_sessionmaker) -> None:
        self._session_factory = session_factory

    async def record(self, event: AccessGranted) -> None:
        """Write one activity row; failures are logged and never re-raised"""
        try:
            async with self._session_factory() as session:
                session.add(
                    ActivityLog(
                        user_id=event.user_id,
                        action=f"{event.method} {event.path}"[:255],
                        module=event.module,
                        ip_address=event.ip_address,
                        user_agent=(event.user_agent or "")[:255] or None,
                    )
                )
                await session.commit()
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "Failed to record activity",
                user_id=event.user_id,
                path=event.path,
                error=str(exc),
            )
