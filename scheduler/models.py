"""
Data models for the recurrence engine.

A recurrence rule is one of four immutable variants. Instances are produced
only by ``scheduler.rules.parse_rule`` and are always fully validated.
"""
from __future__ import annotations

from dataclasses import dataclass
import typing as t


@dataclass(frozen=True)
class DailyRule:
    """Repeats every ``interval`` days (1..400)."""
    interval: int


@dataclass(frozen=True)
class YearlyRule:
    """Repeats on the same calendar day every year."""


@dataclass(frozen=True)
class WeeklyRule:
    """Repeats on the given weekdays, 0 = Sunday ... 6 = Saturday."""
    weekdays: frozenset[int]


@dataclass(frozen=True)
class MonthlyRule:
    """Repeats on the given days of the month.

    Positive day codes are days of the month, -1 is the last day and -2 the
    second-to-last. ``months`` of None means every month.
    """
    days: tuple[int, ...]
    months: t.Optional[frozenset[int]] = None


RecurrenceRule = t.Union[DailyRule, YearlyRule, WeeklyRule, MonthlyRule]
