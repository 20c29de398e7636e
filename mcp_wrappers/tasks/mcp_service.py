"""
MCP wrapper for the task service.

Exposes the task scheduler as MCP tools and forwards every call to the REST
task service over HTTP. When the service is password protected, the wrapper
signs in with TODO_PASSWORD on first use and sends the token as a bearer
header.
"""
from __future__ import annotations

import os
import typing as t

import httpx
from fastmcp import FastMCP

from services.shared.models import (
    SignInRequest,
    SignInResponse,
    Task,
    TaskRequest,
    TaskSavedResponse,
    TasksResponse,
)


mcp = FastMCP("TaskServiceMCPWrapper")

# Service URL - configurable via environment variable
TASK_SERVICE_URL = os.getenv("TASK_SERVICE_URL", "http://localhost:7540")

# Timeout settings for CRUD operations (in seconds)
STANDARD_TIMEOUT = 30.0

# Token obtained by the last successful sign-in
_token: t.Optional[str] = None


def _client() -> httpx.Client:
    """Build the HTTP client used for every call to the task service."""
    return httpx.Client(base_url=TASK_SERVICE_URL, timeout=STANDARD_TIMEOUT)


def _request(method: str, path: str, authenticated: bool = True, **kwargs: t.Any) -> httpx.Response:
    """
    Send a request to the task service.

    Raises RuntimeError carrying the service's error message on failure.
    A 401 on an authenticated call drops the cached token, signs in again
    and retries once.
    """
    global _token

    try:
        response = _send(method, path, authenticated, **kwargs)
        if response.status_code == 401 and authenticated and _token is not None:
            _token = None
            response = _send(method, path, authenticated, **kwargs)
        response.raise_for_status()
        return response

    except httpx.TimeoutException:
        raise RuntimeError(f"Task service call {method} {path} timed out after {STANDARD_TIMEOUT} seconds")
    except httpx.HTTPStatusError as e:
        raise RuntimeError(
            f"HTTP error from task service: {e.response.status_code} {_error_message(e.response)}"
        )
    except httpx.HTTPError as e:
        raise RuntimeError(f"Error calling task service: {str(e)}")


def _send(method: str, path: str, authenticated: bool, **kwargs: t.Any) -> httpx.Response:
    headers = _auth_headers() if authenticated else {}
    with _client() as client:
        return client.request(method, path, headers=headers, **kwargs)


def _error_message(response: httpx.Response) -> str:
    try:
        return response.json().get("error", response.text)
    except ValueError:
        return response.text


def _auth_headers() -> dict[str, str]:
    global _token

    if _token is None:
        password = os.getenv("TODO_PASSWORD", "")
        if not password:
            return {}
        _token = _sign_in(password)
    return {"Authorization": f"Bearer {_token}"}


def _sign_in(password: str) -> str:
    """Exchange the master password for a JWT."""
    response = _request(
        "POST", "/api/signin", authenticated=False, json=SignInRequest(password=password).model_dump()
    )
    return SignInResponse(**response.json()).token


def _next_date(now: str, date: str, repeat: str) -> str:
    """Ask the service for the next date of a recurrence rule."""
    response = _request(
        "GET", "/api/nextdate", authenticated=False, params={"now": now, "date": date, "repeat": repeat}
    )
    return response.text


def _list_tasks(search: str = "") -> list[Task]:
    """List upcoming tasks, optionally filtered by text or date."""
    params = {"search": search} if search else None
    response = _request("GET", "/api/tasks", params=params)
    return TasksResponse(**response.json()).tasks


def _get_task(task_id: str) -> Task:
    """Fetch a single task."""
    response = _request("GET", "/api/task", params={"id": task_id})
    return Task(**response.json())


def _create_task(title: str, date: str = "", comment: str = "", repeat: str = "") -> TaskSavedResponse:
    """Create a task."""
    request = TaskRequest(date=date, title=title, comment=comment, repeat=repeat)
    response = _request("POST", "/api/task", json=request.model_dump(exclude={"id"}))
    return TaskSavedResponse(**response.json())


def _update_task(task_id: str, title: str, date: str = "", comment: str = "", repeat: str = "") -> TaskSavedResponse:
    """Replace every field of an existing task."""
    request = TaskRequest(id=task_id, date=date, title=title, comment=comment, repeat=repeat)
    response = _request("PUT", "/api/task", json=request.model_dump())
    return TaskSavedResponse(**response.json())


def _complete_task(task_id: str) -> None:
    """Mark a task done: one-off tasks are deleted, recurring ones move forward."""
    _request("POST", "/api/task/done", params={"id": task_id})


def _delete_task(task_id: str) -> None:
    """Delete a task."""
    _request("DELETE", "/api/task", params={"id": task_id})


# MCP tool wrappers that call the raw functions
@mcp.tool()
def next_date(now: str, date: str, repeat: str) -> str:
    """Calculates the next date (YYYYMMDD) of a recurrence rule after 'now'."""
    return _next_date(now, date, repeat)


@mcp.tool()
def list_tasks(search: str = "") -> list[Task]:
    """Lists upcoming tasks, optionally filtered by text or date."""
    return _list_tasks(search)


@mcp.tool()
def get_task(task_id: str) -> Task:
    """Gets a single task by id."""
    return _get_task(task_id)


@mcp.tool()
def create_task(title: str, date: str = "", comment: str = "", repeat: str = "") -> TaskSavedResponse:
    """Creates a task. 'date' is YYYYMMDD (default today); 'repeat' is a recurrence rule."""
    return _create_task(title, date, comment, repeat)


@mcp.tool()
def update_task(task_id: str, title: str, date: str = "", comment: str = "", repeat: str = "") -> TaskSavedResponse:
    """Updates every field of a task."""
    return _update_task(task_id, title, date, comment, repeat)


@mcp.tool()
def complete_task(task_id: str) -> str:
    """Marks a task as done."""
    _complete_task(task_id)
    return f"Task {task_id} marked as done"


@mcp.tool()
def delete_task(task_id: str) -> str:
    """Deletes a task."""
    _delete_task(task_id)
    return f"Task {task_id} deleted"


if __name__ == "__main__":
    mcp.run()
