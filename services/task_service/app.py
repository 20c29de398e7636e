"""
FastAPI service for the task scheduler.

Exposes the recurrence engine (``/api/nextdate``), password sign-in and the
task endpoints backed by SQLite. Every error response has the shape
``{"error": "<message>"}``.
"""
from __future__ import annotations

import sqlite3
import typing as t
from contextlib import asynccontextmanager
from datetime import date, datetime

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from scheduler.dates import format_date, is_strictly_after, parse_date
from scheduler.nextdate import next_date
from scheduler.rules import RuleError, parse_rule
from services.shared.models import (
    ErrorResponse,
    SignInRequest,
    SignInResponse,
    Task,
    TaskRequest,
    TaskSavedResponse,
    TasksResponse,
)
from services.task_service.auth import AuthError, issue_token, require_auth
from services.task_service.config import get_port, get_settings
from services.task_service.db import DEFAULT_LIMIT, TaskNotFoundError, TaskStore

# Alternative search date format accepted by the task list, e.g. "08.02.2024".
SEARCH_DATE_FORMAT = "%d.%m.%Y"

# Error bodies documented on the task endpoints
ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}

# Task store - will be initialized on startup
store: TaskStore = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the SQLite store on startup."""
    global store

    settings = get_settings()
    store = TaskStore(settings.db_file)
    store.init_schema()
    if not settings.password:
        logger.warning("TODO_PASSWORD is not set, task endpoints are not protected")
    logger.info(f"Task service ready, database {settings.db_file}")

    yield


app = FastAPI(
    title="Task Service",
    description="REST API for recurring tasks and next-date calculation",
    version="1.0.0",
    lifespan=lifespan,
)


def _today() -> date:
    return date.today()


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _require_json_content(request: Request) -> None:
    """Rejects task bodies that are not sent as JSON."""
    content_type = request.headers.get("Content-Type", "")
    if not content_type.strip().lower().startswith("application/json"):
        raise HTTPException(status_code=415, detail="content type must be application/json")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error(400, "invalid JSON payload")


@app.exception_handler(sqlite3.Error)
async def database_exception_handler(request: Request, exc: sqlite3.Error) -> JSONResponse:
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
    return _error(500, "database error")


@app.get("/health")
async def health_check():
    """Health check endpoint for container orchestration."""
    return {"status": "healthy", "service": "task-service"}


@app.get("/api/nextdate", response_class=PlainTextResponse, responses={400: {"model": ErrorResponse}})
def get_next_date(now: str = "", date: str = "", repeat: str = "") -> str:
    """
    Calculate the next date of a recurring task.

    ``now`` defaults to today. Returns the date as plain text (YYYYMMDD).
    """
    try:
        reference = parse_date(now) if now else _today()
    except ValueError:
        raise HTTPException(status_code=400, detail="invalid 'now' date format")

    try:
        return next_date(reference, date, repeat)
    except RuleError as e:
        raise HTTPException(status_code=400, detail=f"failed to calculate next date: {e}")


@app.post(
    "/api/signin",
    response_model=SignInResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
def sign_in(request: SignInRequest) -> SignInResponse:
    """Exchange the master password for a JWT."""
    try:
        token = issue_token(request.password, get_settings())
    except AuthError as e:
        if e.status_code == 401:
            logger.warning("Sign-in rejected: incorrect password")
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return SignInResponse(token=token)


@app.get(
    "/api/tasks",
    response_model=TasksResponse,
    responses=ERROR_RESPONSES,
    dependencies=[Depends(require_auth)],
)
def list_tasks(search: str = "") -> TasksResponse:
    """
    List upcoming tasks.

    ``search`` is either a date (YYYYMMDD or DD.MM.YYYY), matched exactly, or
    text matched case-insensitively against title and comment.
    """
    search = search.strip()
    if not search:
        return TasksResponse(tasks=store.list_tasks(DEFAULT_LIMIT))

    search_date = _parse_search_date(search)
    if search_date is not None:
        tasks = store.search_tasks(date=format_date(search_date), limit=DEFAULT_LIMIT)
    else:
        tasks = store.search_tasks(text=search, limit=DEFAULT_LIMIT)
    return TasksResponse(tasks=tasks)


@app.post(
    "/api/task",
    response_model=TaskSavedResponse,
    status_code=201,
    responses={**ERROR_RESPONSES, 415: {"model": ErrorResponse}},
    dependencies=[Depends(require_auth), Depends(_require_json_content)],
)
def create_task(request: TaskRequest) -> TaskSavedResponse:
    """Create a task, normalizing its date against today."""
    title = _require_title(request.title)
    task_date = check_task_date(request.date, request.repeat, _today())

    task_id = store.add_task(task_date, title, request.comment, request.repeat)
    logger.info(f"Task {task_id} created for {task_date}")
    return TaskSavedResponse(
        id=str(task_id),
        location=f"/api/task?id={task_id}",
        message="Task created successfully",
    )


@app.get("/api/task", response_model=Task, responses=ERROR_RESPONSES, dependencies=[Depends(require_auth)])
def get_task(id: str = "") -> Task:
    """Fetch a single task by id."""
    task_id = _parse_id(id)
    try:
        return store.get_task(task_id)
    except TaskNotFoundError:
        raise HTTPException(status_code=404, detail="task not found")


@app.put(
    "/api/task",
    response_model=TaskSavedResponse,
    responses={**ERROR_RESPONSES, 415: {"model": ErrorResponse}},
    dependencies=[Depends(require_auth), Depends(_require_json_content)],
)
def update_task(request: TaskRequest) -> TaskSavedResponse:
    """Replace every field of an existing task."""
    task_id = _parse_id(request.id or "")
    title = _require_title(request.title)
    task_date = check_task_date(request.date, request.repeat, _today())

    try:
        store.update_task(task_id, task_date, title, request.comment, request.repeat)
    except TaskNotFoundError:
        raise HTTPException(status_code=404, detail="task not found")
    return TaskSavedResponse(
        id=str(task_id),
        location=f"/api/task?id={task_id}",
        message="Task updated successfully",
    )


@app.delete("/api/task", responses=ERROR_RESPONSES, dependencies=[Depends(require_auth)])
def delete_task(id: str = "") -> dict:
    """Delete a task."""
    task_id = _parse_id(id)
    try:
        store.delete_task(task_id)
    except TaskNotFoundError:
        raise HTTPException(status_code=404, detail="task not found")
    return {}


@app.post("/api/task/done", responses=ERROR_RESPONSES, dependencies=[Depends(require_auth)])
def complete_task(id: str = "") -> dict:
    """
    Mark a task as done.

    One-off tasks are deleted; recurring tasks move to their next date.
    """
    task_id = _parse_id(id)
    try:
        task = store.get_task(task_id)
        if not task.repeat:
            store.delete_task(task_id)
            logger.info(f"Task {task_id} done and deleted")
            return {}

        try:
            next_due = next_date(_today(), task.date, task.repeat)
        except RuleError as e:
            raise HTTPException(status_code=400, detail=f"invalid repeat pattern: {e}")
        store.update_date(task_id, next_due)
        logger.info(f"Task {task_id} done, next date {next_due}")
    except TaskNotFoundError:
        raise HTTPException(status_code=404, detail="task not found")
    return {}


def check_task_date(task_date: str, repeat: str, today: date) -> str:
    """Normalizes a task date before it is stored.

    An empty date or "today" becomes today. A date in the past becomes today
    for one-off tasks, or the next occurrence after today for recurring ones.

    Args:
        task_date: Date from the request (YYYYMMDD, "" or "today")
        repeat: Recurrence rule text, "" for one-off tasks
        today: Reference date

    Returns:
        The date to store (YYYYMMDD)

    Raises:
        HTTPException: 400 if the date or the rule is invalid
    """
    if not task_date or task_date == "today":
        task_date = format_date(today)

    try:
        parsed = parse_date(task_date)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"invalid date format: {task_date!r}")

    try:
        if repeat:
            parse_rule(repeat)
        if not is_strictly_after(today, parsed):
            return task_date
        if not repeat:
            return format_date(today)
        return next_date(today, task_date, repeat)
    except RuleError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _require_title(title: str) -> str:
    title = title.strip()
    if not title:
        raise HTTPException(status_code=400, detail="title cannot be empty")
    return title


def _parse_id(raw: str) -> int:
    raw = raw.strip()
    if not raw:
        raise HTTPException(status_code=400, detail="missing id parameter")
    try:
        return int(raw)
    except ValueError:
        raise HTTPException(status_code=400, detail="invalid id format: must be an integer")


def _parse_search_date(search: str) -> t.Optional[date]:
    try:
        return parse_date(search)
    except ValueError:
        pass
    try:
        return datetime.strptime(search, SEARCH_DATE_FORMAT).date()
    except ValueError:
        return None


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=get_port())
