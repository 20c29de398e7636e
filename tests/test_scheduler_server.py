# -*- coding: utf-8 -*-
"""Tests for the in-process scheduler MCP server."""
from datetime import date

import pytest

import scheduler.server as server
from scheduler.rules import RuleError, RuleErrorKind


def test_calculate_next_date() -> None:
    assert server._calculate_next_date("20240110", "20240101", "d 7") == "20240115"


def test_calculate_next_date_defaults_now_to_today(monkeypatch: pytest.MonkeyPatch) -> None:
    """An empty 'now' uses today's date."""
    monkeypatch.setattr(server, "_today", lambda: date(2024, 1, 10))
    assert server._calculate_next_date("", "20240101", "d 7") == "20240115"


def test_calculate_next_date_rejects_bad_now() -> None:
    with pytest.raises(ValueError) as exc_info:
        server._calculate_next_date("2024-01-10", "20240101", "d 7")
    assert "now" in str(exc_info.value)


def test_calculate_next_date_propagates_rule_errors() -> None:
    with pytest.raises(RuleError) as exc_info:
        server._calculate_next_date("20240110", "20240101", "q 5")
    assert exc_info.value.kind is RuleErrorKind.UNKNOWN_RULE_KIND


def test_describe_rule() -> None:
    assert server._describe_rule("w 1,5") == "every Monday, Friday"


@pytest.mark.asyncio
async def test_tools_are_registered() -> None:
    """Both tools are exposed by the FastMCP server."""
    tools = await server.mcp.get_tools()
    assert "calculate_next_date" in tools
    assert "describe_rule" in tools
