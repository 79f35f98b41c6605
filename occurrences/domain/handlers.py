"""Lifecycle handlers, wired up at application startup."""

from __future__ import annotations

import logging

from occurrences.domain.bus import EventBus
from occurrences.domain.events import EventCreated, EventDeleted, EventUpdated
from occurrences.services.refresh import RefreshOrchestrator

logger = logging.getLogger(__name__)


class HandlerRegistry:
    """Wires lifecycle notifications to the refresh orchestrator."""

    def __init__(self, bus: EventBus, orchestrator: RefreshOrchestrator) -> None:
        self.bus = bus
        self.orchestrator = orchestrator
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(EventCreated, self.on_event_created)
        self.bus.subscribe(EventUpdated, self.on_event_updated)
        self.bus.subscribe(EventDeleted, self.on_event_deleted)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    async def on_event_created(self, notification: EventCreated) -> None:
        logger.info(
            "Building instances for new event %s in calendar %s",
            notification.event.id,
            notification.calendar.id,
        )
        await self.orchestrator.on_event_changed(notification.event)

    async def on_event_updated(self, notification: EventUpdated) -> None:
        logger.info(
            "Rebuilding instances for event %s in calendar %s",
            notification.event.id,
            notification.calendar.id,
        )
        await self.orchestrator.on_event_changed(notification.event)

    async def on_event_deleted(self, notification: EventDeleted) -> None:
        await self.orchestrator.on_event_deleted(notification.event)
