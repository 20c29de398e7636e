"""
Environment configuration for the task service.

Values are read from the environment on each call so that a restarted app
(or a test) picks up changes without re-importing the module. The port is
read separately, only where the server is started.
"""
from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_PORT = 7540
DEFAULT_DB_FILE = "scheduler.db"
MIN_PORT = 1
MAX_PORT = 65535


@dataclass(frozen=True)
class Settings:
    """Runtime settings of the task service."""
    db_file: str = DEFAULT_DB_FILE
    password: str = ""
    jwt_secret: str = ""


def get_port() -> int:
    """Reads TODO_PORT, falling back to the default port.

    :raises ValueError: If the port is not an integer in [1, 65535].
    """
    port_str = os.getenv("TODO_PORT") or str(DEFAULT_PORT)
    try:
        port = int(port_str)
    except ValueError:
        raise ValueError(f"invalid port format: {port_str}")
    if not MIN_PORT <= port <= MAX_PORT:
        raise ValueError(f"port out of range [{MIN_PORT}, {MAX_PORT}]: {port}")
    return port


def get_settings() -> Settings:
    """Builds settings from TODO_* environment variables."""
    return Settings(
        db_file=os.getenv("TODO_DBFILE") or DEFAULT_DB_FILE,
        password=os.getenv("TODO_PASSWORD", ""),
        jwt_secret=os.getenv("TODO_JWT_SECRET", ""),
    )
