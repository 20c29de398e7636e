"""
Next-date evaluation for recurring tasks.

Given a start date, a reference date ("now") and rule text, ``next_date``
returns the earliest date that matches the rule and falls strictly after
"now". The function is pure and safe to call from any thread.

Loop bounds:

- daily: the step count is computed directly, no loop.
- yearly: at most two additions past the year difference.
- weekly: at most 7 days scanned.
- monthly: at most ``MAX_SCAN_DAYS`` days scanned. A month filter can force a
  gap of up to eight years (Feb 29 across a skipped leap year such as 2100),
  and parsing rejects day/month combinations that never occur.
"""
from __future__ import annotations

from datetime import date

from scheduler.dates import (
    DateLike,
    add_days,
    add_years,
    format_date,
    is_strictly_after,
    last_day_of_month,
    parse_date,
    truncate_to_day,
)
from scheduler.models import DailyRule, MonthlyRule, RecurrenceRule, WeeklyRule, YearlyRule
from scheduler.rules import RuleError, RuleErrorKind, parse_rule

WEEKLY_SCAN_DAYS = 7
MAX_SCAN_DAYS = 366 * 8


def next_date(now: DateLike, start_text: str, rule_text: str) -> str:
    """Computes the next due date of a recurring task.

    :param now: Reference date; the result is strictly after it.
    :param start_text: Start date in ``YYYYMMDD`` format.
    :param rule_text: Recurrence rule, e.g. ``"d 7"``, ``"w 1,5"``, ``"m -1"``.
    :return: The next date in ``YYYYMMDD`` format.
    :raises RuleError: If the start date or the rule is invalid.
    """
    try:
        start = parse_date(start_text)
    except ValueError as e:
        raise RuleError(RuleErrorKind.INVALID_START_DATE, f"failed to parse date: {e}") from e

    rule = parse_rule(rule_text)
    return format_date(next_occurrence(now, start, rule))


def next_occurrence(now: DateLike, start: DateLike, rule: RecurrenceRule) -> date:
    """Runs the search for an already parsed rule.

    :param now: Reference date.
    :param start: Date the recurrence is projected from.
    :param rule: A validated recurrence rule.
    :return: The earliest matching date strictly after ``now``.
    """
    now = truncate_to_day(now)
    start = truncate_to_day(start)
    try:
        if isinstance(rule, DailyRule):
            return _next_daily(now, start, rule.interval)
        if isinstance(rule, YearlyRule):
            return _next_yearly(now, start)
        if isinstance(rule, WeeklyRule):
            return _next_weekly(now, start, rule.weekdays)
        if isinstance(rule, MonthlyRule):
            return _next_monthly(now, start, rule)
    except OverflowError as e:
        raise RuleError(
            RuleErrorKind.OUT_OF_RANGE, "next date is beyond the supported calendar range"
        ) from e
    raise TypeError(f"unknown recurrence rule: {rule!r}")


def _next_daily(now: date, start: date, interval: int) -> date:
    # Smallest k >= 1 with start + k * interval > now.
    steps = max(1, (now - start).days // interval + 1)
    return add_days(start, steps * interval)


def _next_yearly(now: date, start: date) -> date:
    # Every k below the year difference stays on or before now.
    years = max(1, now.year - start.year)
    candidate = add_years(start, years)
    while not is_strictly_after(candidate, now):
        years += 1
        candidate = add_years(start, years)
    return candidate


def _scan_start(now: date, start: date) -> date:
    """First candidate for a day-by-day scan: after both start and now."""
    return add_days(max(start, now), 1)


def _next_weekly(now: date, start: date, weekdays: frozenset[int]) -> date:
    candidate = _scan_start(now, start)
    for _ in range(WEEKLY_SCAN_DAYS):
        # isoweekday is 1..7 with 7 = Sunday; 0 = Sunday here.
        if candidate.isoweekday() % 7 in weekdays:
            return candidate
        candidate = add_days(candidate, 1)
    raise RuntimeError(f"no weekday in {sorted(weekdays)} within {WEEKLY_SCAN_DAYS} days")


def _next_monthly(now: date, start: date, rule: MonthlyRule) -> date:
    candidate = _scan_start(now, start)
    for _ in range(MAX_SCAN_DAYS):
        if _matches_month_day(candidate, rule):
            return candidate
        candidate = add_days(candidate, 1)
    raise RuleError(
        RuleErrorKind.OUT_OF_RANGE, f"no matching date within {MAX_SCAN_DAYS} days"
    )


def _matches_month_day(candidate: date, rule: MonthlyRule) -> bool:
    if rule.months is not None and candidate.month not in rule.months:
        return False
    last_day = last_day_of_month(candidate.year, candidate.month)
    for day in rule.days:
        if day == -1:
            target = last_day
        elif day == -2:
            target = last_day - 1
        else:
            target = day
        if candidate.day == target:
            return True
    return False
