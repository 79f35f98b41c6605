"""Errors raised while compiling, expanding or looking up occurrences."""

from __future__ import annotations


class OccurrenceError(Exception):
    """Base class for occurrence materialization errors."""


class ScheduleIncompleteError(OccurrenceError):
    """A schedule has no start date, so its event cannot be compiled."""

    def __init__(self, event_id: str, schedule_id: str) -> None:
        super().__init__(
            f"Schedule {schedule_id} of event {event_id} has no start date"
        )
        self.event_id = event_id
        self.schedule_id = schedule_id


class InstanceNotFoundError(OccurrenceError):
    def __init__(self, instance_id: str) -> None:
        super().__init__(f"Event instance not found: {instance_id}")
        self.instance_id = instance_id
