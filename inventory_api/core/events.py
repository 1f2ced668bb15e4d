"""
In-process event bus

Subscribers run one after another; a failing subscriber is logged and
skipped, it never propagates to the publisher.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Union

import structlog

from inventory_api.core.time import utc_now

logger = structlog.get_logger()

Handler = Callable[[Any], Union[None, Awaitable[None]]]


@dataclass(frozen=True)
class AccessGranted:
    """Published after a protected request passed the authorization guard"""
    user_id: int
    username: str
    method: str
    path: str
    module: str
    action: str
    resource: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    occurred_at: Any = field(default_factory=utc_now)


class EventBus:
    def __init__(self) -> None:
        self._handlers: dict[type, list[Handler]] = {}

    def subscribe(self, event_type: type, handler: Handler) -> None:
        self._handlers.setdefault(event_type, []).append(handler)
        logger.debug("Event handler subscribed", event_type=event_type.__name__, handler=repr(handler))

    def handlers_for(self, event_type: type) -> list[Handler]:
        return list(self._handlers.get(event_type, ()))

    async def publish(self, event: Any) -> None:
        for handler in self.handlers_for(type(event)):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:  # noqa: BLE001
                logger.error(
                    "Event handler failed",
                    event_type=type(event).__name__,
                    handler=repr(handler),
                    error=str(exc),
                )
