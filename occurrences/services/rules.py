"""Service for compiling an event's schedules into one recurrence rule set
and translating that rule set into a dateutil ``rruleset``."""

from __future__ import annotations

import logging

from dateutil.rrule import (
    DAILY,
    MONTHLY,
    WEEKLY,
    YEARLY,
    FR,
    MO,
    SA,
    SU,
    TH,
    TU,
    WE,
    rrule,
    rruleset,
)

from occurrences.domain.errors import ScheduleIncompleteError
from occurrences.domain.models import (
    Event,
    Frequency,
    RepeatingRule,
    RuleSet,
    Schedule,
    SingleDate,
    Weekday,
)

logger = logging.getLogger(__name__)

_FREQ_MAP = {
    Frequency.DAILY: DAILY,
    Frequency.WEEKLY: WEEKLY,
    Frequency.MONTHLY: MONTHLY,
    Frequency.YEARLY: YEARLY,
}

_DAY_MAP = {
    Weekday.MO: MO,
    Weekday.TU: TU,
    Weekday.WE: WE,
    Weekday.TH: TH,
    Weekday.FR: FR,
    Weekday.SA: SA,
    Weekday.SU: SU,
}


def compile_rule_set(event: Event) -> RuleSet:
    """Compile every schedule of *event* into a single :class:`RuleSet`.

    Repeating schedules are bounded by ``count`` when it is set, otherwise by
    ``end_date``; a schedule with both is bounded by ``count`` and its
    ``end_date`` then becomes the end of the occurrence at its own start.

    Raises :class:`ScheduleIncompleteError` if any schedule lacks a start
    date. Nothing is returned for a partially compilable event.
    """
    rule_set = RuleSet(event_id=event.id, calendar_id=event.calendar_id)

    for schedule in event.schedules:
        if schedule.start_date is None:
            raise ScheduleIncompleteError(event.id, schedule.id)

        if schedule.is_repeating:
            rule = _repeating_rule(schedule)
            target = rule_set.exclude_rules if schedule.is_exclusion else rule_set.include_rules
            target.append(rule)
        else:
            single = SingleDate(date=schedule.start_date)
            target = rule_set.exclude_dates if schedule.is_exclusion else rule_set.include_dates
            target.append(single)

        if not schedule.is_exclusion and _declares_occurrence_end(schedule):
            rule_set.end_times[schedule.start_date] = schedule.end_date

    logger.debug(
        "Compiled event %s: %d rules, %d dates, %d exclusion rules, %d exclusion dates",
        event.id,
        len(rule_set.include_rules),
        len(rule_set.include_dates),
        len(rule_set.exclude_rules),
        len(rule_set.exclude_dates),
    )
    return rule_set


def to_rrulesets(rule_set: RuleSet) -> tuple[rruleset, rruleset]:
    """Build the dateutil ``rruleset`` pair ``(included, excluded)`` for *rule_set*.

    The exclusion side is kept as its own set so the caller can bound how
    far it scans; a combined set with ``exrule`` keeps stepping through
    excluded dates until year 9999 when every occurrence is excluded.
    """
    included = rruleset()
    for rule in rule_set.include_rules:
        included.rrule(to_rrule(rule))
    for single in rule_set.include_dates:
        included.rdate(single.date)

    excluded = rruleset()
    for rule in rule_set.exclude_rules:
        excluded.rrule(to_rrule(rule))
    for single in rule_set.exclude_dates:
        excluded.rdate(single.date)
    return included, excluded


def _repeating_rule(schedule: Schedule) -> RepeatingRule:
    count = schedule.count
    until = schedule.end_date if count is None else None
    return RepeatingRule(
        frequency=schedule.frequency,
        interval=schedule.interval,
        start=schedule.start_date,
        count=count,
        until=until,
        by_day=schedule.by_day,
        duration=schedule.duration,
    )


def _declares_occurrence_end(schedule: Schedule) -> bool:
    """True when ``end_date`` is an occurrence end rather than a recurrence bound."""
    if schedule.end_date is None:
        return False
    return not schedule.is_repeating or schedule.count is not None


def to_rrule(rule: RepeatingRule) -> rrule:
    kwargs = {
        "dtstart": rule.start,
        "interval": rule.interval,
    }
    if rule.count is not None:
        kwargs["count"] = rule.count
    elif rule.until is not None:
        kwargs["until"] = rule.until
    if rule.by_day:
        kwargs["byweekday"] = [_DAY_MAP[day] for day in rule.by_day]
    return rrule(_FREQ_MAP[rule.frequency], **kwargs)
