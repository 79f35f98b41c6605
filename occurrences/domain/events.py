"""Lifecycle notifications emitted by the event-management side."""

from __future__ import annotations

from pydantic import BaseModel

from occurrences.domain.models import Calendar, Event


class EventCreated(BaseModel):
    """Fired after a new Event and its schedules are persisted."""

    calendar: Calendar
    event: Event


class EventUpdated(BaseModel):
    """Fired after an Event or any of its schedules changed."""

    calendar: Calendar
    event: Event


class EventDeleted(BaseModel):
    """Fired when an Event is removed; its instances must go with it."""

    event: Event
