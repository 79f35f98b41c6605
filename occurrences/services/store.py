"""Materialization store: replace-all persistence of an event's instances."""

from __future__ import annotations

import logging

from occurrences.domain.errors import InstanceNotFoundError
from occurrences.domain.models import Calendar, Event, Instance
from occurrences.repositories import InstanceRepository

logger = logging.getLogger(__name__)


class MaterializationStore:
    """Owns the persisted instances of every event.

    ``rebuild`` swaps an event's instances in a single transaction, so
    readers see either the old set or the new one.
    """

    def __init__(self, repo: InstanceRepository) -> None:
        self.repo = repo

    async def rebuild(self, event: Event, instances: list[Instance]) -> None:
        async with self.repo.transaction() as uow:
            removed = await uow.delete_for_event(event.id)
            for instance in instances:
                await uow.add(instance)
        logger.info(
            "Rebuilt instances for event %s: removed %d, added %d",
            event.id,
            removed,
            len(instances),
        )

    async def remove_all(self, event: Event) -> int:
        async with self.repo.transaction() as uow:
            removed = await uow.delete_for_event(event.id)
        logger.info("Removed %d instances for event %s", removed, event.id)
        return removed

    async def list_by_event(self, event: Event) -> list[Instance]:
        return await self.repo.list_for_event(event.id)

    async def list_by_calendar(self, calendar: Calendar) -> list[Instance]:
        return await self.repo.list_for_calendar(calendar.id)

    async def get_by_id(self, instance_id: str) -> Instance:
        instance = await self.repo.get(instance_id)
        if instance is None:
            raise InstanceNotFoundError(instance_id)
        return instance
