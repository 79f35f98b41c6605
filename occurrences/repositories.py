"""
Defines the repository protocols the occurrence engine depends on.
"""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import Protocol, runtime_checkable

from occurrences.domain.models import Calendar, Event, Instance, Schedule


@runtime_checkable
class ScheduleRepository(Protocol):
    async def list_for_event(self, event_id: str) -> list[Schedule]:
        """Return an event's schedules ordered by start date."""
        ...


@runtime_checkable
class CalendarRepository(Protocol):
    async def get(self, calendar_id: str) -> Calendar | None: ...

    async def list_page(
        self, after_id: str | None, limit: int
    ) -> list[Calendar]:
        """Return up to *limit* calendars with ids greater than *after_id*,
        in ascending id order."""
        ...


@runtime_checkable
class EventRepository(Protocol):
    async def get(self, event_id: str) -> Event | None: ...

    async def list_page(
        self, calendar_id: str, offset: int, limit: int
    ) -> list[Event]:
        """Return one page of the events belonging to a calendar."""
        ...


class InstanceUnitOfWork(Protocol):
    async def delete_for_event(self, event_id: str) -> int: ...

    async def add(self, instance: Instance) -> None: ...


@runtime_checkable
class InstanceRepository(Protocol):
    """
    Protocol for the store of materialized event instances.

    Writes happen inside :meth:`transaction`; readers only ever see the
    state before or after a committed unit of work.
    """

    def transaction(self) -> AbstractAsyncContextManager[InstanceUnitOfWork]: ...

    async def list_for_event(self, event_id: str) -> list[Instance]: ...

    async def list_for_calendar(self, calendar_id: str) -> list[Instance]: ...

    async def get(self, instance_id: str) -> Instance | None: ...
