"""FastAPI application: entry point for the event occurrence service."""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from occurrences.config import get_settings
from occurrences.domain.bus import EventBus
from occurrences.domain.errors import InstanceNotFoundError, ScheduleIncompleteError
from occurrences.domain.events import EventCreated, EventDeleted, EventUpdated
from occurrences.domain.handlers import HandlerRegistry
from occurrences.domain.models import Calendar, Event, Instance, Schedule
from occurrences.repos.memory import (
    CalendarRepository,
    EventRepository,
    InstanceRepository,
    ScheduleRepository,
)
from occurrences.services.refresh import RefreshOrchestrator, RefreshReport
from occurrences.services.rules import compile_rule_set
from occurrences.services.store import MaterializationStore

settings = get_settings()
logging.basicConfig(level=settings.log_level)

app = FastAPI(title="Event Occurrence Service")

# ── Singletons (created at import time for simplicity) ────────────────
event_bus = EventBus()
calendar_repo = CalendarRepository()
event_repo = EventRepository()
schedule_repo = ScheduleRepository()
instance_repo = InstanceRepository()
store = MaterializationStore(instance_repo)

orchestrator = RefreshOrchestrator(
    store=store,
    schedule_repo=schedule_repo,
    calendar_repo=calendar_repo,
    event_repo=event_repo,
    instance_limit=settings.instance_limit,
    scan_limit=settings.expansion_scan_limit,
    page_size=settings.refresh_page_size,
    workers=settings.refresh_workers,
    removed_memory=settings.removed_event_memory,
)
handler_registry = HandlerRegistry(bus=event_bus, orchestrator=orchestrator)


# ── Request DTOs ──────────────────────────────────────────────────────


class CalendarRequest(BaseModel):
    url_name: str
    is_local: bool = True


class EventRequest(BaseModel):
    title: str = ""
    schedules: list[Schedule] = Field(default_factory=list)


# ── Helpers ───────────────────────────────────────────────────────────


async def _get_calendar(calendar_id: str) -> Calendar:
    calendar = await calendar_repo.get(calendar_id)
    if calendar is None:
        raise HTTPException(status_code=404, detail="Calendar not found")
    return calendar


async def _get_event(event_id: str) -> Event:
    event = await event_repo.get(event_id)
    if event is None:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


def _check_schedules(event: Event) -> None:
    """Reject schedules that cannot be compiled before anything is stored."""
    try:
        compile_rule_set(event)
    except ScheduleIncompleteError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


# ── Routes ────────────────────────────────────────────────────────────


@app.post("/calendars", response_model=Calendar, status_code=201)
async def create_calendar(body: CalendarRequest) -> Calendar:
    calendar = Calendar(url_name=body.url_name, is_local=body.is_local)
    calendar_repo.add(calendar)
    return calendar


@app.post("/calendars/{calendar_id}/events", response_model=Event, status_code=201)
async def create_event(calendar_id: str, body: EventRequest) -> Event:
    """Store a new event with its schedules and materialize its instances."""
    calendar = await _get_calendar(calendar_id)
    event = Event(calendar_id=calendar.id, title=body.title, schedules=body.schedules)
    _check_schedules(event)
    event_repo.add(event)
    schedule_repo.replace_for_event(event.id, event.schedules)

    await event_bus.publish(EventCreated(calendar=calendar, event=event))
    return event


@app.put("/events/{event_id}", response_model=Event)
async def update_event(event_id: str, body: EventRequest) -> Event:
    """Replace an event's schedules and rebuild its instances."""
    stored = await _get_event(event_id)
    calendar = await _get_calendar(stored.calendar_id)
    event = stored.model_copy(update={"title": body.title, "schedules": body.schedules})
    _check_schedules(event)
    event_repo.add(event)
    schedule_repo.replace_for_event(event.id, event.schedules)

    await event_bus.publish(EventUpdated(calendar=calendar, event=event))
    return event


@app.delete("/events/{event_id}", status_code=200)
async def delete_event(event_id: str) -> dict:
    event = await _get_event(event_id)
    await event_bus.publish(EventDeleted(event=event))
    event_repo.delete(event.id)
    schedule_repo.delete_for_event(event.id)
    return {"status": "deleted"}


@app.get("/events/{event_id}/instances", response_model=list[Instance])
async def list_event_instances(event_id: str) -> list[Instance]:
    event = await _get_event(event_id)
    return await store.list_by_event(event)


@app.get("/calendars/{calendar_id}/instances", response_model=list[Instance])
async def list_calendar_instances(calendar_id: str) -> list[Instance]:
    calendar = await _get_calendar(calendar_id)
    return await store.list_by_calendar(calendar)


@app.get("/instances/{instance_id}", response_model=Instance)
async def get_instance(instance_id: str) -> Instance:
    try:
        return await store.get_by_id(instance_id)
    except InstanceNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@app.post("/instances/refresh", response_model=RefreshReport)
async def refresh_instances(after_calendar_id: str | None = None) -> RefreshReport:
    """Rebuild the instances of every event in every local calendar.

    Pass *after_calendar_id* to resume an interrupted sweep.
    """
    return await orchestrator.refresh_all(after_calendar_id=after_calendar_id)
