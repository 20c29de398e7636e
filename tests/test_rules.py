# -*- coding: utf-8 -*-
"""Tests for recurrence rule parsing and validation."""
import pytest

from scheduler.models import DailyRule, MonthlyRule, WeeklyRule, YearlyRule
from scheduler.rules import RuleError, RuleErrorKind, describe_rule, parse_rule


def test_parse_daily_rule() -> None:
    assert parse_rule("d 1") == DailyRule(interval=1)
    assert parse_rule("d 400") == DailyRule(interval=400)


def test_parse_tolerates_extra_whitespace() -> None:
    assert parse_rule("  d   7 ") == DailyRule(interval=7)


def test_parse_yearly_rule() -> None:
    assert parse_rule("y") == YearlyRule()


def test_parse_weekly_rule_maps_seven_to_sunday() -> None:
    """External code 7 is Sunday, stored as 0; duplicates collapse."""
    rule = parse_rule("w 1,7,3,7")
    assert rule == WeeklyRule(weekdays=frozenset({0, 1, 3}))


def test_parse_monthly_rule_keeps_day_order() -> None:
    rule = parse_rule("m 15,-1,1")
    assert isinstance(rule, MonthlyRule)
    assert rule.days == (15, -1, 1)
    assert rule.months is None


def test_parse_monthly_rule_with_months() -> None:
    rule = parse_rule("m -2,10 1,12")
    assert rule == MonthlyRule(days=(-2, 10), months=frozenset({1, 12}))


def test_rules_are_immutable() -> None:
    rule = parse_rule("d 3")
    with pytest.raises(AttributeError):
        rule.interval = 5  # type: ignore[misc]


@pytest.mark.parametrize("text", ["", "   ", None])
def test_empty_rule(text) -> None:
    with pytest.raises(RuleError) as exc_info:
        parse_rule(text)
    assert exc_info.value.kind is RuleErrorKind.EMPTY_RULE


@pytest.mark.parametrize("text", ["q 5", "D 5", "x", "daily 1"])
def test_unknown_rule_kind(text: str) -> None:
    with pytest.raises(RuleError) as exc_info:
        parse_rule(text)
    assert exc_info.value.kind is RuleErrorKind.UNKNOWN_RULE_KIND


@pytest.mark.parametrize(
    "text",
    [
        "d",
        "d 1 2",
        "d x",
        "d 1.5",
        "y 1",
        "w",
        "w 1,,2",
        "w 1, 2",
        "w mon",
        "m",
        "m 1 2 3",
        "m 1,a",
        "m 1 jan",
        "m 1,",
    ],
)
def test_malformed_field(text: str) -> None:
    with pytest.raises(RuleError) as exc_info:
        parse_rule(text)
    assert exc_info.value.kind is RuleErrorKind.MALFORMED_FIELD


@pytest.mark.parametrize(
    "text",
    [
        "d 0",
        "d 401",
        "d -3",
        "w 0",
        "w 8",
        "w 1,8",
        "m 0",
        "m 32",
        "m -3",
        "m 1 0",
        "m 1 13",
        "m 31 2,4",
        "m 30 2",
    ],
)
def test_out_of_range(text: str) -> None:
    with pytest.raises(RuleError) as exc_info:
        parse_rule(text)
    assert exc_info.value.kind is RuleErrorKind.OUT_OF_RANGE


def test_leap_day_with_february_filter_is_accepted() -> None:
    """Feb 29 exists in leap years, so 'm 29 2' is a valid rule."""
    assert parse_rule("m 29 2") == MonthlyRule(days=(29,), months=frozenset({2}))


def test_error_message_names_the_bad_value() -> None:
    with pytest.raises(RuleError) as exc_info:
        parse_rule("w 8")
    assert "8" in str(exc_info.value)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("d 1", "every day"),
        ("d 7", "every 7 days"),
        ("y", "every year"),
        ("w 7,1,5", "every Monday, Friday, Sunday"),
        ("m -1", "on day last of every month"),
        ("m 1,-2 3,1", "on day 1, second-to-last of months 1, 3"),
    ],
)
def test_describe_rule(text: str, expected: str) -> None:
    assert describe_rule(parse_rule(text)) == expected
