# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from fastapi import HTTPException, Request, Response

from taskboard.auth.session import COOKIE_NAME, SessionPayload

PROTECTED_PATHS = frozenset({"/dashboard"})
PUBLIC_PATHS = frozenset({"/login", "/register"})

LOGIN_URL = "/login"
LANDING_URL = "/dashboard"


class PathKind(str, Enum):
    PROTECTED = "protected"
    PUBLIC = "public"
    OTHER = "other"


@dataclass(frozen=True)
class GuardDecision:
    redirect_to: Optional[str] = None
    clear_cookie: bool = False

    @property
    def allow(self) -> bool:
        return self.redirect_to is None


ALLOW = GuardDecision()


def classify_path(path: str) -> PathKind:
    p = (path or "/").rstrip("/") or "/"
    if p in PROTECTED_PATHS:
        return PathKind.PROTECTED
    if p in PUBLIC_PATHS:
        return PathKind.PUBLIC
    return PathKind.OTHER


def guard_decision(path: str, *, has_session: bool, has_cookie: bool) -> GuardDecision:
    """Decide what to do with one request, from its path and session state only."""
    kind = classify_path(path)
    if kind is PathKind.PROTECTED and not has_session:
        # A cookie that did not decode is dead; drop it so it is not resent.
        return GuardDecision(redirect_to=LOGIN_URL, clear_cookie=has_cookie)
    if kind is PathKind.PUBLIC and has_session:
        return GuardDecision(redirect_to=LANDING_URL)
    return ALLOW


def current_session(request: Request) -> Optional[SessionPayload]:
    return getattr(request.state, "session", None)


def require_session(request: Request) -> SessionPayload:
    """Dependency for page handlers; the middleware normally redirects first.

    A cookie that is present but did not decode is expired on the redirect.
    """
    sess = current_session(request)
    if sess:
        return sess
    headers = {"Location": LOGIN_URL}
    if request.cookies.get(COOKIE_NAME):
        scratch = Response()
        request.app.state.ctx.sessions.destroy(scratch)
        headers["Set-Cookie"] = scratch.headers["set-cookie"]
    raise HTTPException(status_code=303, headers=headers)
