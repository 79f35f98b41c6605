"""Tests for the event bus lifecycle: created, updated and deleted events."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from occurrences.domain.bus import EventBus
from occurrences.domain.errors import ScheduleIncompleteError
from occurrences.domain.events import EventCreated, EventDeleted, EventUpdated
from occurrences.domain.handlers import HandlerRegistry
from occurrences.domain.models import Calendar, Event, Frequency, Schedule
from occurrences.repos.memory import (
    CalendarRepository,
    EventRepository,
    InstanceRepository,
    ScheduleRepository,
)
from occurrences.services.refresh import RefreshOrchestrator
from occurrences.services.store import MaterializationStore

_START = datetime(2025, 1, 6, 18, 0, tzinfo=timezone.utc)


@pytest.fixture()
def env():
    """Fresh bus + repos + registry for each test."""
    bus = EventBus()
    instance_repo = InstanceRepository()
    store = MaterializationStore(instance_repo)
    orchestrator = RefreshOrchestrator(
        store=store,
        schedule_repo=ScheduleRepository(),
        calendar_repo=CalendarRepository(),
        event_repo=EventRepository(),
    )
    registry = HandlerRegistry(bus=bus, orchestrator=orchestrator)

    class Env:
        pass

    e = Env()
    e.bus = bus
    e.store = store
    e.instance_repo = instance_repo
    e.registry = registry
    e.calendar = Calendar(id="cal-1")
    return e


def _weekly_event(count: int) -> Event:
    return Event(
        calendar_id="cal-1",
        title="Choir rehearsal",
        schedules=[Schedule(start_date=_START, frequency=Frequency.WEEKLY, count=count)],
    )


async def test_created_event_is_materialized(env):
    event = _weekly_event(4)

    await env.bus.publish(EventCreated(calendar=env.calendar, event=event))

    assert len(await env.store.list_by_event(event)) == 4


async def test_updated_event_is_rebuilt(env):
    event = _weekly_event(4)
    await env.bus.publish(EventCreated(calendar=env.calendar, event=event))

    updated = event.model_copy(
        update={
            "schedules": event.schedules
            + [Schedule(start_date=_START, is_exclusion=True)]
        }
    )
    await env.bus.publish(EventUpdated(calendar=env.calendar, event=updated))

    starts = [i.start for i in await env.store.list_by_event(event)]
    assert len(starts) == 3
    assert _START not in starts


async def test_repeated_update_does_not_duplicate(env):
    event = _weekly_event(4)
    await env.bus.publish(EventCreated(calendar=env.calendar, event=event))
    await env.bus.publish(EventUpdated(calendar=env.calendar, event=event))
    await env.bus.publish(EventUpdated(calendar=env.calendar, event=event))

    assert env.instance_repo.count() == 4


async def test_deleted_event_loses_its_instances(env):
    event = _weekly_event(4)
    await env.bus.publish(EventCreated(calendar=env.calendar, event=event))

    await env.bus.publish(EventDeleted(event=event))

    assert await env.store.list_by_event(event) == []


async def test_incomplete_schedule_error_reaches_publisher(env):
    event = Event(calendar_id="cal-1", schedules=[Schedule(frequency=Frequency.DAILY)])

    with pytest.raises(ScheduleIncompleteError):
        await env.bus.publish(EventCreated(calendar=env.calendar, event=event))


async def test_bus_calls_sync_and_async_handlers_in_order():
    bus = EventBus()
    calls = []

    def sync_handler(notification):
        calls.append("sync")

    async def async_handler(notification):
        calls.append("async")

    bus.subscribe(EventDeleted, sync_handler)
    bus.subscribe(EventDeleted, async_handler)
    await bus.publish(EventDeleted(event=Event(calendar_id="cal-1")))

    assert calls == ["sync", "async"]
