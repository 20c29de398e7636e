"""
Shared Pydantic models for REST API serialization.

These models describe the JSON bodies exchanged between the task service,
the MCP wrapper and the command-line client.
"""
from __future__ import annotations

import typing as t
from pydantic import BaseModel, Field


class Task(BaseModel):
    """A stored task. ``id`` is serialized as a string."""
    id: str
    date: str                       # "YYYYMMDD"
    title: str
    comment: str = ""
    repeat: str = ""                # recurrence rule text, "" for one-off tasks


class TaskRequest(BaseModel):
    """Request body for creating or updating a task.

    ``id`` is required for updates and ignored on create. ``date`` may be
    empty or "today".
    """
    id: t.Optional[str] = None
    date: str = ""
    title: str = ""
    comment: str = ""
    repeat: str = ""


class TaskSavedResponse(BaseModel):
    """Response returned after a task is created or updated."""
    id: str
    location: str
    message: str


class TasksResponse(BaseModel):
    """Response model for the task list."""
    tasks: list[Task] = Field(default_factory=list)


class SignInRequest(BaseModel):
    """Request model for password sign-in."""
    password: str = ""


class SignInResponse(BaseModel):
    """Response model carrying the issued JWT."""
    token: str


class ErrorResponse(BaseModel):
    """Body of every non-2xx response."""
    error: str
