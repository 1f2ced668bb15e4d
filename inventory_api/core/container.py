"""
Service container

Owns the process-wide permission engine objects. Built once per application
by ``create_app``; tests build isolated instances.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from inventory_api.core.authorization import Authorizer
from inventory_api.core.config import settings
from inventory_api.core.events import AccessGranted, EventBus
from inventory_api.core.permission_cache import PermissionCache
from inventory_api.core.permission_resolver import DBPermissionResolver, PermissionResolver
from inventory_api.services.activity_logger import ActivityLogger
from inventory_api.services.invalidation import PermissionInvalidationHook


@dataclass
class ServiceContainer:
    engine: Optional[AsyncEngine]
    session_factory: async_sessionmaker
    cache: PermissionCache
    resolver: PermissionResolver
    authorizer: Authorizer
    invalidation: PermissionInvalidationHook
    events: EventBus


def build_container(
    session_factory: async_sessionmaker,
    engine: Optional[AsyncEngine] = None,
    *,
    cache_ttl_seconds: Optional[float] = None,
    query_timeout_seconds: Optional[float] = None,
    resolver: Optional[PermissionResolver] = None,
    clock: Callable[[], float] = time.monotonic,
    activity_logging: bool = True,
) -> ServiceContainer:
    cache = PermissionCache(
        ttl_seconds=cache_ttl_seconds or settings.PERMISSION_CACHE_TTL_SECONDS,
        clock=clock,
        maxsize=settings.PERMISSION_CACHE_MAX_ENTRIES,
    )
    resolver = resolver or DBPermissionResolver(
        session_factory,
        timeout_seconds=query_timeout_seconds or settings.PERMISSION_QUERY_TIMEOUT_SECONDS,
    )
    events = EventBus()
    if activity_logging:
        events.subscribe(AccessGranted, ActivityLogger(session_factory).record)

    return ServiceContainer(
        engine=engine,
        session_factory=session_factory,
        cache=cache,
        resolver=resolver,
        authorizer=Authorizer(cache, resolver),
        invalidation=PermissionInvalidationHook(cache),
        events=events,
    )
