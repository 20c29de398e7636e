# -*- coding: utf-8 -*-
import datetime as dt

from fastmcp import FastMCP

from scheduler import rules
from scheduler.dates import parse_date
from scheduler.nextdate import next_date

mcp = FastMCP("Scheduler")


def _today() -> dt.date:
    return dt.date.today()


def _calculate_next_date(now: str, date: str, repeat: str) -> str:
    """Computes the next due date of a recurring task.

    :param now: Reference date in YYYYMMDD format; empty means today.
    :param date: Task start date in YYYYMMDD format.
    :param repeat: Recurrence rule text.
    :return: The next date in YYYYMMDD format.
    :raises ValueError: If 'now' is malformed; RuleError for the other inputs.
    """
    try:
        reference = parse_date(now) if now else _today()
    except ValueError as e:
        raise ValueError(f"invalid 'now' date format: {e}") from e
    return next_date(reference, date, repeat)


def _describe_rule(repeat: str) -> str:
    """Returns a human-readable description of a recurrence rule."""
    return rules.describe_rule(rules.parse_rule(repeat))


@mcp.tool()
def calculate_next_date(now: str, date: str, repeat: str) -> str:
    """Calculates the next date a recurring task is due.

    Rules: 'd <1-400>' every N days, 'y' yearly, 'w <1-7,...>' on weekdays
    (7 = Sunday), 'm <days> [months]' on days of the month (-1 = last day,
    -2 = second-to-last).

    :param now: Reference date (YYYYMMDD); the result is strictly after it.
    :param date: Task start date (YYYYMMDD).
    :param repeat: Recurrence rule text.
    :return: The next due date (YYYYMMDD).
    """
    return _calculate_next_date(now, date, repeat)


@mcp.tool()
def describe_rule(repeat: str) -> str:
    """Describes a recurrence rule in plain words.

    :param repeat: Recurrence rule text.
    :return: Human-readable description of the rule.
    """
    return _describe_rule(repeat)


if __name__ == "__main__":
    mcp.run()
