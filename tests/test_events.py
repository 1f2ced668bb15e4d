from unittest.mock import MagicMock

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from inventory_api.core.events import AccessGranted, EventBus
from inventory_api.models import ActivityLog
from inventory_api.services.activity_logger import ActivityLogger

from conftest import create_user


def granted(user_id=1):
    return AccessGranted(
        user_id=user_id,
        username="viewer",
        method="GET",
        path="/api/v1/roles/",
        module="roles",
        action="read",
        ip_address="10.0.0.7",
        user_agent="pytest",
    )


@pytest.mark.asyncio
async def test_publish_reaches_sync_and_async_handlers():
    bus = EventBus()
    seen = []

    async def async_handler(event):
        seen.append(("async", event.path))

    bus.subscribe(AccessGranted, lambda event: seen.append(("sync", event.path)))
    bus.subscribe(AccessGranted, async_handler)

    await bus.publish(granted())

    assert seen == [("sync", "/api/v1/roles/"), ("async", "/api/v1/roles/")]


@pytest.mark.asyncio
async def test_failing_handler_does_not_stop_the_others():
    bus = EventBus()
    after = MagicMock()

    def broken(event):
        raise RuntimeError("handler exploded")

    bus.subscribe(AccessGranted, broken)
    bus.subscribe(AccessGranted, after)

    await bus.publish(granted())

    after.assert_called_once()


@pytest.mark.asyncio
async def test_events_without_subscribers_are_ignored():
    await EventBus().publish(object())


@pytest.mark.asyncio
async def test_activity_logger_writes_one_row(db, session_factory):
    user = await create_user(db, "viewer")

    await ActivityLogger(session_factory).record(granted(user.id))

    rows = (await db.execute(select(ActivityLog))).scalars().all()
    assert len(rows) == 1
    assert rows[0].action == "GET /api/v1/roles/"
    assert rows[0].module == "roles"
    assert rows[0].ip_address == "10.0.0.7"


@pytest.mark.asyncio
async def test_activity_logger_swallows_store_failures():
    def broken_factory():
        raise OperationalError("INSERT", {}, Exception("database is locked"))

    await ActivityLogger(broken_factory).record(granted())


@pytest.mark.asyncio
async def test_subscribe_and_handler_failure_are_logged_by_event_type(monkeypatch):
    logger = MagicMock()
    monkeypatch.setattr("inventory_api.core.events.logger", logger)
    bus = EventBus()

    def broken(event):
        raise ZeroDivisionError("division by zero")

    bus.subscribe(AccessGranted, broken)
    await bus.publish(granted())

    subscribed_message, = logger.debug.call_args.args
    failed_message, = logger.error.call_args.args
    assert subscribed_message == "Event handler subscribed"
    assert logger.debug.call_args.kwargs["event_type"] == "AccessGranted"
    assert failed_message == "Event handler failed"
    assert logger.error.call_args.kwargs["event_type"] == "AccessGranted"
    assert "event" not in logger.error.call_args.kwargs
