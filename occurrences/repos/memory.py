"""In-memory repositories for calendars, events, schedules and instances."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from occurrences.domain.models import Calendar, Event, Instance, Schedule

logger = logging.getLogger(__name__)


class CalendarRepository:
    """Dict-backed store for Calendar instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, Calendar] = {}

    def add(self, calendar: Calendar) -> None:
        self._store[calendar.id] = calendar

    async def get(self, calendar_id: str) -> Calendar | None:
        return self._store.get(calendar_id)

    async def list_page(self, after_id: str | None, limit: int) -> list[Calendar]:
        ids = sorted(cid for cid in self._store if after_id is None or cid > after_id)
        return [self._store[cid] for cid in ids[:limit]]


class EventRepository:
    """Dict-backed store for Event instances, keyed by id.

    Schedules are held by :class:`ScheduleRepository`; stored events keep an
    empty ``schedules`` list, like a row loaded without its children.
    """

    def __init__(self) -> None:
        self._store: dict[str, Event] = {}

    def add(self, event: Event) -> None:
        self._store[event.id] = event.model_copy(update={"schedules": []})

    def delete(self, event_id: str) -> None:
        self._store.pop(event_id, None)

    async def get(self, event_id: str) -> Event | None:
        return self._store.get(event_id)

    async def list_page(self, calendar_id: str, offset: int, limit: int) -> list[Event]:
        events = sorted(
            (e for e in self._store.values() if e.calendar_id == calendar_id),
            key=lambda e: e.id,
        )
        return events[offset : offset + limit]


class ScheduleRepository:
    """Schedules grouped by the id of the event that owns them."""

    def __init__(self) -> None:
        self._by_event: dict[str, list[Schedule]] = {}

    def replace_for_event(self, event_id: str, schedules: list[Schedule]) -> None:
        self._by_event[event_id] = [
            s.model_copy(update={"event_id": event_id}) for s in schedules
        ]

    def delete_for_event(self, event_id: str) -> None:
        self._by_event.pop(event_id, None)

    async def list_for_event(self, event_id: str) -> list[Schedule]:
        # Undated schedules sort last so the dated ones keep their order.
        return sorted(
            self._by_event.get(event_id, []),
            key=lambda s: (s.start_date is None, s.start_date),
        )


class _InstanceUnitOfWork:
    """Staged changes to an :class:`InstanceRepository`, applied on commit."""

    def __init__(self, rows: dict[str, Instance]) -> None:
        self.rows = dict(rows)

    async def delete_for_event(self, event_id: str) -> int:
        doomed = [iid for iid, i in self.rows.items() if i.event_id == event_id]
        for iid in doomed:
            del self.rows[iid]
        return len(doomed)

    async def add(self, instance: Instance) -> None:
        self.rows[instance.id] = instance


class InstanceRepository:
    """Dict-backed store for materialized Instances, keyed by id.

    Writers are serialized by a lock and work on a staged copy of the rows,
    which replaces the committed rows only when the unit of work exits
    cleanly.
    """

    def __init__(self) -> None:
        self._rows: dict[str, Instance] = {}
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[_InstanceUnitOfWork]:
        async with self._lock:
            uow = _InstanceUnitOfWork(self._rows)
            try:
                yield uow
            except BaseException:
                logger.warning("Rolling back instance transaction")
                raise
            self._rows = uow.rows

    async def list_for_event(self, event_id: str) -> list[Instance]:
        return sorted(
            [i for i in self._rows.values() if i.event_id == event_id],
            key=lambda i: i.start,
        )

    async def list_for_calendar(self, calendar_id: str) -> list[Instance]:
        return sorted(
            [i for i in self._rows.values() if i.calendar_id == calendar_id],
            key=lambda i: i.start,
        )

    async def get(self, instance_id: str) -> Instance | None:
        return self._rows.get(instance_id)

    def count(self) -> int:
        return len(self._rows)
