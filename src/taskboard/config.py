# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Runtime configuration.

Everything is read from the environment once, at startup, and handed to
``create_app``. Nothing here falls back to a default signing secret.
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///data/taskboard.db"
DEFAULT_SESSION_TTL_SECONDS = 86400  # 24 hours
DEFAULT_SESSION_SALT = "taskboard.session.v1"

_TRUTHY = {"1", "true", "yes", "y"}


@dataclass(frozen=True)
class Settings:
    secret_key: str
    database_url: str = DEFAULT_DATABASE_URL
    session_ttl: int = DEFAULT_SESSION_TTL_SECONDS
    session_salt: str = DEFAULT_SESSION_SALT
    environment: str = "development"
    log_level: str = "INFO"

    @property
    def production(self) -> bool:
        return self.environment == "production"

    @classmethod
    def from_env(cls) -> "Settings":
        secret = os.getenv("TASKBOARD_SECRET_KEY") or os.getenv("SECRET_KEY")
        if not secret:
            raise RuntimeError("Missing TASKBOARD_SECRET_KEY (or SECRET_KEY) in environment")

        ttl_raw = os.getenv("TASKBOARD_SESSION_TTL", str(DEFAULT_SESSION_TTL_SECONDS))
        try:
            ttl = int(ttl_raw)
        except ValueError:
            raise RuntimeError(f"TASKBOARD_SESSION_TTL must be an integer, got {ttl_raw!r}") from None
        if ttl <= 0:
            raise RuntimeError("TASKBOARD_SESSION_TTL must be positive")

        return cls(
            secret_key=secret,
            database_url=os.getenv("TASKBOARD_DATABASE_URL", DEFAULT_DATABASE_URL),
            session_ttl=ttl,
            session_salt=os.getenv("TASKBOARD_SESSION_SALT", DEFAULT_SESSION_SALT),
            environment=os.getenv("TASKBOARD_ENV", "development").strip().lower(),
            log_level=os.getenv("TASKBOARD_LOG_LEVEL", "INFO").strip().upper(),
        )


def env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in _TRUTHY


def configure_logging(level: str = "INFO") -> None:
    """Attach a stdout handler to the package logger (idempotent)."""
    logger = logging.getLogger("taskboard")
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s:%(name)s: %(message)s"))
        logger.addHandler(handler)
    logger.setLevel(getattr(logging, level, logging.INFO))
