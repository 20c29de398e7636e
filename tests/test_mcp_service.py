# -*- coding: utf-8 -*-
"""Tests for the task service MCP wrapper.

HTTP calls are routed either to the real FastAPI app (through TestClient) or
to an httpx.MockTransport for failure cases.
"""
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient
from jose import jwt

import mcp_wrappers.tasks.mcp_service as mcp_service
import services.task_service.app as app_module
from services.task_service.auth import ALGORITHM, ISSUER, password_hash


@pytest.fixture(autouse=True)
def reset_token(monkeypatch: pytest.MonkeyPatch) -> None:
    """Each test starts without a cached token."""
    monkeypatch.setattr(mcp_service, "_token", None)


@pytest.fixture
def live_service(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Route wrapper calls to the task service app with a protected API."""
    monkeypatch.setenv("TODO_DBFILE", str(tmp_path / "scheduler.db"))
    monkeypatch.setenv("TODO_PASSWORD", "pw")
    monkeypatch.setenv("TODO_JWT_SECRET", "secret")
    monkeypatch.setattr(app_module, "_today", lambda: date(2024, 1, 10))
    monkeypatch.setattr(mcp_service, "_client", lambda: TestClient(app_module.app))


def _mock_client(monkeypatch: pytest.MonkeyPatch, handler) -> None:
    monkeypatch.delenv("TODO_PASSWORD", raising=False)
    monkeypatch.setattr(
        mcp_service,
        "_client",
        lambda: httpx.Client(transport=httpx.MockTransport(handler), base_url="http://tasks.test"),
    )


def test_task_lifecycle_through_wrapper(live_service: None) -> None:
    """Create, list, complete and delete tasks via the wrapper functions."""
    saved = mcp_service._create_task("Stretch", date="20240101", repeat="d 2")
    assert saved.message == "Task created successfully"

    task = mcp_service._get_task(saved.id)
    assert task.date == "20240111"
    assert mcp_service._token is not None

    mcp_service._complete_task(saved.id)
    assert mcp_service._get_task(saved.id).date == "20240113"

    updated = mcp_service._update_task(saved.id, "Stretch more", date="20240201", repeat="w 1")
    assert updated.id == saved.id
    assert [t.title for t in mcp_service._list_tasks("stretch")] == ["Stretch more"]

    mcp_service._delete_task(saved.id)
    assert mcp_service._list_tasks() == []


def test_next_date_through_wrapper(live_service: None) -> None:
    assert mcp_service._next_date("20240227", "20240131", "m -1") == "20240229"


def test_service_error_message_is_surfaced(live_service: None) -> None:
    with pytest.raises(RuntimeError) as exc_info:
        mcp_service._next_date("20240110", "20240101", "w 8")
    assert "400" in str(exc_info.value)
    assert "weekday" in str(exc_info.value)


def test_missing_task_is_reported(live_service: None) -> None:
    with pytest.raises(RuntimeError) as exc_info:
        mcp_service._get_task("999")
    assert "404" in str(exc_info.value)


def test_expired_token_is_refreshed(live_service: None) -> None:
    """A rejected cached token triggers one fresh sign-in and a retry."""
    expired = jwt.encode(
        {
            "authenticated": True,
            "exp": datetime.now(timezone.utc) - timedelta(minutes=1),
            "iss": ISSUER,
            "password_hash": password_hash("pw"),
        },
        "secret",
        algorithm=ALGORITHM,
    )
    mcp_service._token = expired

    assert mcp_service._list_tasks() == []
    assert mcp_service._token is not None
    assert mcp_service._token != expired


def test_token_for_old_password_is_refreshed(live_service: None, monkeypatch: pytest.MonkeyPatch) -> None:
    mcp_service._create_task("Water plants")
    monkeypatch.setenv("TODO_PASSWORD", "new pw")

    assert [t.title for t in mcp_service._list_tasks()] == ["Water plants"]


def test_unauthorized_retry_happens_once(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        if request.url.path == "/api/signin":
            return httpx.Response(200, json={"token": "fresh"})
        return httpx.Response(401, json={"error": "token expired or invalid"})

    _mock_client(monkeypatch, handler)
    monkeypatch.setenv("TODO_PASSWORD", "pw")
    mcp_service._token = "stale"

    with pytest.raises(RuntimeError) as exc_info:
        mcp_service._list_tasks()
    assert "401" in str(exc_info.value)
    assert calls == ["/api/tasks", "/api/signin", "/api/tasks"]


def test_no_auth_header_without_password(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"tasks": []})

    _mock_client(monkeypatch, handler)
    assert mcp_service._list_tasks() == []
    assert "authorization" not in seen[0].headers
    assert seen[0].url.path == "/api/tasks"


def test_timeout_is_reported(monkeypatch: pytest.MonkeyPatch) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    _mock_client(monkeypatch, handler)
    with pytest.raises(RuntimeError) as exc_info:
        mcp_service._list_tasks()
    assert "timed out" in str(exc_info.value)


def test_connection_error_is_reported(monkeypatch: pytest.MonkeyPatch) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    _mock_client(monkeypatch, handler)
    with pytest.raises(RuntimeError) as exc_info:
        mcp_service._delete_task("1")
    assert "Error calling task service" in str(exc_info.value)


@pytest.mark.asyncio
async def test_tools_are_registered() -> None:
    tools = await mcp_service.mcp.get_tools()
    for name in ["next_date", "list_tasks", "get_task", "create_task", "update_task", "complete_task", "delete_task"]:
        assert name in tools
