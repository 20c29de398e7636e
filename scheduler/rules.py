"""
Parsing and validation of recurrence rule text.

Grammar (whitespace-separated tokens)::

    d <interval>                       interval 1..400
    y
    w <d1>[,<d2>,...]                  weekday 1..7, 7 = Sunday
    m <day1>[,...][ <month1>[,...]]    day -2..31 except 0, month 1..12

Every failure raises ``RuleError`` carrying a ``RuleErrorKind`` so callers can
tell the reasons apart without matching on message text.
"""
from __future__ import annotations

import re
import typing as t
from enum import Enum

from scheduler.models import DailyRule, MonthlyRule, RecurrenceRule, WeeklyRule, YearlyRule

MIN_INTERVAL = 1
MAX_INTERVAL = 400
MIN_MONTH_DAY = -2
MAX_MONTH_DAY = 31

# Longest possible length of each month, February counted in a leap year.
_MAX_MONTH_LENGTH = {1: 31, 2: 29, 3: 31, 4: 30, 5: 31, 6: 30,
                     7: 31, 8: 31, 9: 30, 10: 31, 11: 30, 12: 31}

_INTEGER = re.compile(r"[+-]?[0-9]+")

WEEKDAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


class RuleErrorKind(Enum):
    """Machine-readable reason a rule or start date was rejected."""
    INVALID_START_DATE = "invalid_start_date"
    EMPTY_RULE = "empty_rule"
    UNKNOWN_RULE_KIND = "unknown_rule_kind"
    MALFORMED_FIELD = "malformed_field"
    OUT_OF_RANGE = "out_of_range"


class RuleError(ValueError):
    """Raised when a start date or a recurrence rule fails validation."""

    def __init__(self, kind: RuleErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __repr__(self) -> str:
        return f"RuleError({self.kind.name}, {self.message!r})"


def parse_rule(text: t.Optional[str]) -> RecurrenceRule:
    """Parses rule text into a validated recurrence rule.

    :param text: The rule text, e.g. ``"d 7"`` or ``"m 1,-1 1,6"``.
    :return: One of DailyRule, YearlyRule, WeeklyRule, MonthlyRule.
    :raises RuleError: If the text is empty, of unknown kind, or invalid.
    """
    tokens = (text or "").split()
    if not tokens:
        raise RuleError(RuleErrorKind.EMPTY_RULE, "repeat rule is missing")

    kind, args = tokens[0], tokens[1:]
    if kind == "d":
        return _parse_daily(args)
    if kind == "y":
        return _parse_yearly(args)
    if kind == "w":
        return _parse_weekly(args)
    if kind == "m":
        return _parse_monthly(args)
    raise RuleError(RuleErrorKind.UNKNOWN_RULE_KIND, f"unsupported repeat rule: {kind}")


def _parse_daily(args: list[str]) -> DailyRule:
    if len(args) != 1:
        raise RuleError(RuleErrorKind.MALFORMED_FIELD, "rule 'd' requires exactly one numeric value")
    interval = _parse_int(args[0], "interval")
    if not MIN_INTERVAL <= interval <= MAX_INTERVAL:
        raise RuleError(
            RuleErrorKind.OUT_OF_RANGE,
            f"interval must be in range [{MIN_INTERVAL}, {MAX_INTERVAL}]: got {interval}",
        )
    return DailyRule(interval=interval)


def _parse_yearly(args: list[str]) -> YearlyRule:
    if args:
        raise RuleError(RuleErrorKind.MALFORMED_FIELD, "rule 'y' takes no values")
    return YearlyRule()


def _parse_weekly(args: list[str]) -> WeeklyRule:
    if len(args) != 1:
        raise RuleError(
            RuleErrorKind.MALFORMED_FIELD, "rule 'w' requires one comma-separated list of weekdays"
        )
    weekdays = set()
    for day in _parse_int_list(args[0], "weekday"):
        if not 1 <= day <= 7:
            raise RuleError(RuleErrorKind.OUT_OF_RANGE, f"weekday must be in range [1, 7]: got {day}")
        # External code 7 is Sunday, which is 0 internally.
        weekdays.add(day % 7)
    return WeeklyRule(weekdays=frozenset(weekdays))


def _parse_monthly(args: list[str]) -> MonthlyRule:
    if not 1 <= len(args) <= 2:
        raise RuleError(
            RuleErrorKind.MALFORMED_FIELD,
            "rule 'm' requires a list of days of the month and an optional list of months",
        )

    days = _parse_int_list(args[0], "day of month")
    for day in days:
        if day == 0 or not MIN_MONTH_DAY <= day <= MAX_MONTH_DAY:
            raise RuleError(
                RuleErrorKind.OUT_OF_RANGE,
                f"day of month must be in range [{MIN_MONTH_DAY}, {MAX_MONTH_DAY}] and not 0: got {day}",
            )

    months: t.Optional[frozenset[int]] = None
    if len(args) == 2:
        parsed = _parse_int_list(args[1], "month")
        for month in parsed:
            if not 1 <= month <= 12:
                raise RuleError(RuleErrorKind.OUT_OF_RANGE, f"month must be in range [1, 12]: got {month}")
        months = frozenset(parsed)
        if not any(_day_fits_month(day, month) for day in days for month in months):
            raise RuleError(
                RuleErrorKind.OUT_OF_RANGE,
                f"none of the days {args[0]} exist in months {args[1]}",
            )

    return MonthlyRule(days=tuple(days), months=months)


def _day_fits_month(day: int, month: int) -> bool:
    return day < 0 or day <= _MAX_MONTH_LENGTH[month]


def _parse_int(token: str, field: str) -> int:
    if not _INTEGER.fullmatch(token):
        raise RuleError(RuleErrorKind.MALFORMED_FIELD, f"{field} must be a valid integer: {token!r}")
    return int(token)


def _parse_int_list(token: str, field: str) -> list[int]:
    """Parses a comma-separated list of integers; empty items are rejected."""
    return [_parse_int(item, field) for item in token.split(",")]


def describe_rule(rule: RecurrenceRule) -> str:
    """Returns a short human-readable description of a parsed rule."""
    if isinstance(rule, DailyRule):
        return "every day" if rule.interval == 1 else f"every {rule.interval} days"
    if isinstance(rule, YearlyRule):
        return "every year"
    if isinstance(rule, WeeklyRule):
        # Monday first, Sunday last.
        names = [WEEKDAY_NAMES[d] for d in sorted(rule.weekdays, key=lambda d: (d - 1) % 7)]
        return "every " + ", ".join(names)
    if isinstance(rule, MonthlyRule):
        days = ", ".join(_describe_day(day) for day in rule.days)
        if rule.months is None:
            return f"on day {days} of every month"
        months = ", ".join(str(m) for m in sorted(rule.months))
        return f"on day {days} of months {months}"
    raise TypeError(f"unknown recurrence rule: {rule!r}")


def _describe_day(day: int) -> str:
    if day == -1:
        return "last"
    if day == -2:
        return "second-to-last"
    return str(day)
