"""Refresh orchestration: keeps materialized instances in step with schedules."""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from typing import Callable

from pydantic import BaseModel, Field

from occurrences.domain.models import Calendar, Event, Instance, RuleSet
from occurrences.repositories import (
    CalendarRepository,
    EventRepository,
    ScheduleRepository,
)
from occurrences.services.generator import (
    DEFAULT_INSTANCE_LIMIT,
    DEFAULT_SCAN_LIMIT,
    generate_instances,
)
from occurrences.services.rules import compile_rule_set
from occurrences.services.store import MaterializationStore

logger = logging.getLogger(__name__)


class RefreshReport(BaseModel):
    """Outcome of a full-catalog refresh."""

    calendars: int = 0
    skipped_calendars: int = 0
    events: int = 0
    rebuilt: int = 0
    failed: list[str] = Field(default_factory=list)
    last_calendar_id: str | None = None


class RefreshOrchestrator:
    """Rebuilds instances for single events and for the whole catalog.

    The rule-set builder, the instance generator and the store are
    injected so each can be replaced independently.
    """

    def __init__(
        self,
        store: MaterializationStore,
        schedule_repo: ScheduleRepository,
        calendar_repo: CalendarRepository,
        event_repo: EventRepository,
        *,
        compile_rules: Callable[[Event], RuleSet] = compile_rule_set,
        generate: Callable[[RuleSet, int, int], list[Instance]] = generate_instances,
        instance_limit: int = DEFAULT_INSTANCE_LIMIT,
        scan_limit: int = DEFAULT_SCAN_LIMIT,
        page_size: int = 100,
        workers: int = 4,
        removed_memory: int = 10000,
    ) -> None:
        if page_size < 1 or workers < 1 or removed_memory < 1:
            raise ValueError("page_size, workers and removed_memory must be at least 1")
        self.store = store
        self.schedule_repo = schedule_repo
        self.calendar_repo = calendar_repo
        self.event_repo = event_repo
        self.compile_rules = compile_rules
        self.generate = generate
        self.instance_limit = instance_limit
        self.scan_limit = scan_limit
        self.page_size = page_size
        self.workers = workers
        self.removed_memory = removed_memory
        # Most recently deleted event ids, oldest first.
        self._removed: OrderedDict[str, None] = OrderedDict()

    # ------------------------------------------------------------------
    # Single event
    # ------------------------------------------------------------------

    async def on_event_changed(self, event: Event) -> list[Instance]:
        """Recompute and replace the instances of *event*.

        Compilation and expansion finish before the store is touched, so a
        :class:`ScheduleIncompleteError` leaves the previous instances in
        place.
        """
        if event.id in self._removed:
            logger.info("Ignoring change for removed event %s", event.id)
            return []

        if not event.schedules:
            schedules = await self.schedule_repo.list_for_event(event.id)
            event = event.model_copy(update={"schedules": schedules})

        rule_set = self.compile_rules(event)
        instances = self.generate(rule_set, self.instance_limit, self.scan_limit)
        await self.store.rebuild(event, instances)
        return instances

    async def on_event_deleted(self, event: Event) -> int:
        """Purge the instances of *event* and ignore later changes to it.

        Only the last ``removed_memory`` deletions are remembered.
        """
        self._removed[event.id] = None
        self._removed.move_to_end(event.id)
        while len(self._removed) > self.removed_memory:
            self._removed.popitem(last=False)
        return await self.store.remove_all(event)

    # ------------------------------------------------------------------
    # Whole catalog
    # ------------------------------------------------------------------

    async def refresh_all(self, after_calendar_id: str | None = None) -> RefreshReport:
        """Rebuild instances for every event of every local calendar.

        Calendars are visited in ascending id order, one page at a time,
        starting after *after_calendar_id*. A failing event is logged and
        recorded in the report; the sweep carries on with the next one.
        """
        report = RefreshReport(last_calendar_id=after_calendar_id)
        semaphore = asyncio.Semaphore(self.workers)
        cursor = after_calendar_id

        logger.info("Starting full instance refresh after calendar %s", cursor)
        while True:
            calendars = await self.calendar_repo.list_page(cursor, self.page_size)
            for calendar in calendars:
                if calendar.is_local:
                    await self._refresh_calendar(calendar, semaphore, report)
                    report.calendars += 1
                else:
                    logger.warning("Skipping remote calendar %s", calendar.id)
                    report.skipped_calendars += 1
                cursor = report.last_calendar_id = calendar.id
            if len(calendars) < self.page_size:
                break

        logger.info(
            "Finished full instance refresh: %d calendars, %d events, %d rebuilt, %d failed",
            report.calendars,
            report.events,
            report.rebuilt,
            len(report.failed),
        )
        return report

    async def _refresh_calendar(
        self, calendar: Calendar, semaphore: asyncio.Semaphore, report: RefreshReport
    ) -> None:
        offset = 0
        while True:
            events = await self.event_repo.list_page(calendar.id, offset, self.page_size)
            report.events += len(events)
            await asyncio.gather(
                *(self._refresh_event(event, semaphore, report) for event in events)
            )
            if len(events) < self.page_size:
                return
            offset += len(events)

    async def _refresh_event(
        self, event: Event, semaphore: asyncio.Semaphore, report: RefreshReport
    ) -> None:
        async with semaphore:
            try:
                await self.on_event_changed(event)
            except Exception:
                logger.exception("Failed to refresh instances for event %s", event.id)
                report.failed.append(event.id)
            else:
                report.rebuilt += 1
