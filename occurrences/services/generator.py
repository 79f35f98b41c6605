"""Service for expanding a compiled rule set into concrete event instances."""

from __future__ import annotations

import logging
from datetime import datetime
from itertools import islice

from occurrences.domain.models import Instance, RuleSet
from occurrences.services.rules import to_rrule, to_rrulesets

logger = logging.getLogger(__name__)

DEFAULT_INSTANCE_LIMIT = 10
DEFAULT_SCAN_LIMIT = 1000


def generate_instances(
    rule_set: RuleSet,
    limit: int = DEFAULT_INSTANCE_LIMIT,
    scan_limit: int = DEFAULT_SCAN_LIMIT,
) -> list[Instance]:
    """Expand *rule_set* into at most *limit* instances ordered by start.

    At most *scan_limit* candidate starts from the inclusion side are
    examined, so rules whose occurrences are mostly or entirely excluded
    stop early instead of running to the end of the calendar.

    Each instance gets a fresh id. Its end is the ``end_date`` declared by
    the inclusion schedule anchored exactly at that start, or failing that
    the start plus the duration of the repeating rule that produced it.
    Occurrences with neither have no end.
    """
    if limit < 1 or scan_limit < 1:
        raise ValueError("limit and scan_limit must be at least 1")
    if rule_set.is_empty:
        return []

    timed_rules = [
        (to_rrule(rule), rule.duration)
        for rule in rule_set.include_rules
        if rule.duration is not None
    ]
    included, excluded = to_rrulesets(rule_set)
    exclusions = iter(excluded)
    next_excluded = next(exclusions, None)

    instances: list[Instance] = []
    scanned = 0
    for start in islice(included, scan_limit):
        scanned += 1
        while next_excluded is not None and next_excluded < start:
            next_excluded = next(exclusions, None)
        if next_excluded == start:
            continue
        instances.append(
            Instance(
                event_id=rule_set.event_id,
                calendar_id=rule_set.calendar_id,
                start=start,
                end=_end_for(start, rule_set, timed_rules),
            )
        )
        if len(instances) == limit:
            break

    if len(instances) < limit and scanned == scan_limit:
        logger.warning(
            "Stopped expanding event %s after scanning %d occurrences; %d kept",
            rule_set.event_id,
            scan_limit,
            len(instances),
        )

    logger.debug("Expanded event %s into %d instances", rule_set.event_id, len(instances))
    return instances


def _end_for(start: datetime, rule_set: RuleSet, timed_rules) -> datetime | None:
    if start in rule_set.end_times:
        return rule_set.end_times[start]
    for rule, duration in timed_rules:
        if start in rule:
            return start + duration
    return None
