"""Tests for compiling schedules into a rule set."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from dateutil.rrule import rruleset

from occurrences.domain.errors import ScheduleIncompleteError
from occurrences.domain.models import Event, Frequency, Schedule, Weekday
from occurrences.services.rules import compile_rule_set, to_rrule, to_rrulesets

_START = datetime(2025, 1, 6, 9, 0, tzinfo=timezone.utc)


def _event(*schedules: Schedule) -> Event:
    return Event(calendar_id="cal-1", schedules=list(schedules))


# ---------------------------------------------------------------------------
# compile_rule_set
# ---------------------------------------------------------------------------


def test_sorts_schedules_into_inclusion_and_exclusion_sides():
    rule_set = compile_rule_set(
        _event(
            Schedule(start_date=_START, frequency=Frequency.WEEKLY, count=5),
            Schedule(start_date=_START + timedelta(days=3)),
            Schedule(
                start_date=_START,
                frequency=Frequency.MONTHLY,
                count=2,
                is_exclusion=True,
            ),
            Schedule(start_date=_START + timedelta(days=7), is_exclusion=True),
        )
    )

    assert len(rule_set.include_rules) == 1
    assert [d.date for d in rule_set.include_dates] == [_START + timedelta(days=3)]
    assert len(rule_set.exclude_rules) == 1
    assert [d.date for d in rule_set.exclude_dates] == [_START + timedelta(days=7)]


def test_unbounded_rule_has_neither_count_nor_until():
    rule_set = compile_rule_set(
        _event(Schedule(start_date=_START, frequency=Frequency.DAILY))
    )
    rule = rule_set.include_rules[0]
    assert rule.count is None
    assert rule.until is None


def test_end_date_bounds_rule_without_count():
    until = _START + timedelta(days=20)
    rule_set = compile_rule_set(
        _event(Schedule(start_date=_START, end_date=until, frequency=Frequency.WEEKLY))
    )
    assert rule_set.include_rules[0].until == until
    # A recurrence bound is not an occurrence end.
    assert rule_set.end_times == {}


def test_count_wins_over_end_date():
    end = _START + timedelta(hours=2)
    rule_set = compile_rule_set(
        _event(
            Schedule(
                start_date=_START,
                end_date=end,
                frequency=Frequency.DAILY,
                count=3,
            )
        )
    )
    rule = rule_set.include_rules[0]
    assert rule.count == 3
    assert rule.until is None
    assert rule_set.end_times == {_START: end}


def test_single_date_end_is_recorded():
    end = _START + timedelta(hours=2)
    rule_set = compile_rule_set(_event(Schedule(start_date=_START, end_date=end)))
    assert rule_set.end_times == {_START: end}


def test_exclusion_end_dates_are_ignored():
    rule_set = compile_rule_set(
        _event(
            Schedule(
                start_date=_START,
                end_date=_START + timedelta(hours=1),
                is_exclusion=True,
            )
        )
    )
    assert rule_set.end_times == {}
    assert rule_set.is_empty


def test_missing_start_date_aborts_compilation():
    bad = Schedule(frequency=Frequency.DAILY, count=3)
    event = _event(Schedule(start_date=_START), bad)

    with pytest.raises(ScheduleIncompleteError) as exc_info:
        compile_rule_set(event)

    assert exc_info.value.schedule_id == bad.id
    assert exc_info.value.event_id == event.id


def test_event_without_schedules_compiles_to_empty_rule_set():
    rule_set = compile_rule_set(_event())
    assert rule_set.is_empty
    assert rule_set.calendar_id == "cal-1"


# ---------------------------------------------------------------------------
# dateutil translation
# ---------------------------------------------------------------------------


def test_to_rrule_applies_weekdays_and_interval():
    rule_set = compile_rule_set(
        _event(
            Schedule(
                start_date=_START,  # Monday
                frequency=Frequency.WEEKLY,
                interval=2,
                by_day=[Weekday.MO, Weekday.WE],
                count=4,
            )
        )
    )
    dates = list(to_rrule(rule_set.include_rules[0]))
    assert dates == [
        _START,
        _START + timedelta(days=2),
        _START + timedelta(days=14),
        _START + timedelta(days=16),
    ]


def test_to_rrulesets_keeps_exclusions_apart():
    rule_set = compile_rule_set(
        _event(
            Schedule(start_date=_START),
            Schedule(start_date=_START, is_exclusion=True),
            Schedule(
                start_date=_START,
                frequency=Frequency.DAILY,
                count=2,
                is_exclusion=True,
            ),
        )
    )
    included, excluded = to_rrulesets(rule_set)

    assert isinstance(included, rruleset)
    assert isinstance(excluded, rruleset)
    assert list(included) == [_START]
    assert list(excluded) == [_START, _START + timedelta(days=1)]
