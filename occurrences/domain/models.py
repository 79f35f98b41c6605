"""Domain models for schedules, events and their materialized instances."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, field_validator

try:
    from enum import StrEnum
except ImportError:  # pragma: no cover - fallback for older Python runtimes

    class StrEnum(str, Enum):
        pass


class Frequency(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class Weekday(StrEnum):
    MO = "MO"
    TU = "TU"
    WE = "WE"
    TH = "TH"
    FR = "FR"
    SA = "SA"
    SU = "SU"


# Stored schedules carry weekdays as "0".."6", Monday first.
_NUMERIC_WEEKDAYS = list(Weekday)


def _new_id() -> str:
    return str(uuid.uuid4())


def _as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ---------------------------------------------------------------------------
# Core domain models
# ---------------------------------------------------------------------------


class Schedule(BaseModel):
    """One recurrence directive of an event.

    A schedule with ``frequency`` set is a repeating rule anchored at
    ``start_date``; without it the schedule is a single date.  Either kind
    removes dates instead of adding them when ``is_exclusion`` is true.
    """

    id: str = Field(default_factory=_new_id)
    event_id: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    frequency: Frequency | None = None
    interval: int = Field(default=1, ge=1)
    count: int | None = Field(default=None, ge=1)
    by_day: list[Weekday] = Field(default_factory=list)
    duration: timedelta | None = None
    is_exclusion: bool = False

    @field_validator("start_date", "end_date")
    @classmethod
    def _naive_is_utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)

    @field_validator("interval", mode="before")
    @classmethod
    def _default_interval(cls, value):
        return value or 1

    @field_validator("count", mode="before")
    @classmethod
    def _zero_count_is_unbounded(cls, value):
        return value or None

    @field_validator("by_day", mode="before")
    @classmethod
    def _parse_weekdays(cls, value):
        if not value:
            return []
        if isinstance(value, str):
            value = value.split(",")
        days = []
        for day in value:
            if isinstance(day, int) or (isinstance(day, str) and day.isdigit()):
                if not 0 <= int(day) < len(_NUMERIC_WEEKDAYS):
                    raise ValueError(f"weekday index out of range: {day}")
                days.append(_NUMERIC_WEEKDAYS[int(day)])
            else:
                days.append(str(day).strip().upper())
        return days

    @property
    def is_repeating(self) -> bool:
        return self.frequency is not None


class Event(BaseModel):
    id: str = Field(default_factory=_new_id)
    calendar_id: str
    title: str = ""
    schedules: list[Schedule] = Field(default_factory=list)


class Calendar(BaseModel):
    id: str = Field(default_factory=_new_id)
    url_name: str = ""
    is_local: bool = True


class Instance(BaseModel):
    """A concrete occurrence of an event, regenerated on every rebuild."""

    id: str = Field(default_factory=_new_id)
    event_id: str
    calendar_id: str
    start: datetime
    end: datetime | None = None


# ---------------------------------------------------------------------------
# Compiled rule set
# ---------------------------------------------------------------------------


class RepeatingRule(BaseModel):
    kind: Literal["repeating"] = "repeating"
    frequency: Frequency
    interval: int
    start: datetime
    count: int | None = None
    until: datetime | None = None
    by_day: list[Weekday] = Field(default_factory=list)
    duration: timedelta | None = None


class SingleDate(BaseModel):
    kind: Literal["single"] = "single"
    date: datetime


class RuleSet(BaseModel):
    """Union of the inclusion rules minus the exclusion rules of one event.

    ``end_times`` maps an exact occurrence start to the end declared by the
    schedule anchored at that start.
    """

    event_id: str
    calendar_id: str
    include_rules: list[RepeatingRule] = Field(default_factory=list)
    include_dates: list[SingleDate] = Field(default_factory=list)
    exclude_rules: list[RepeatingRule] = Field(default_factory=list)
    exclude_dates: list[SingleDate] = Field(default_factory=list)
    end_times: dict[datetime, datetime] = Field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not (self.include_rules or self.include_dates)
