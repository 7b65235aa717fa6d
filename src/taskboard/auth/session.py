# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Request, Response
from itsdangerous import BadData, URLSafeTimedSerializer

from taskboard.config import Settings

COOKIE_NAME = "session"
MIN_SECRET_LENGTH = 32


@dataclass(frozen=True)
class SessionPayload:
    user_id: str
    issued_at: datetime
    expires_at: datetime


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def _from_epoch(value) -> datetime:
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


class SessionCodec:
    """Signs and verifies session payloads.

    The digest (HMAC-SHA256) is fixed here; the token carries no algorithm
    field, so a client cannot pick a weaker one.
    """

    def __init__(self, secret_key: str, *, max_age: int, salt: str):
        if not secret_key or len(secret_key) < MIN_SECRET_LENGTH:
            raise ValueError(f"Session secret must be at least {MIN_SECRET_LENGTH} characters")
        self.max_age = int(max_age)
        self._serializer = URLSafeTimedSerializer(
            secret_key=secret_key,
            salt=salt,
            signer_kwargs={"key_derivation": "hmac", "digest_method": hashlib.sha256},
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "SessionCodec":
        return cls(settings.secret_key, max_age=settings.session_ttl, salt=settings.session_salt)

    def encode(self, payload: SessionPayload) -> str:
        return self._serializer.dumps(
            {
                "uid": payload.user_id,
                "iat": int(payload.issued_at.timestamp()),
                "exp": int(payload.expires_at.timestamp()),
            }
        )

    def decode(self, token: Optional[str], *, now: Optional[datetime] = None) -> Optional[SessionPayload]:
        if not token:
            return None
        try:
            data = self._serializer.loads(token, max_age=self.max_age)
        except BadData:
            return None

        if not isinstance(data, dict):
            return None
        uid = str(data.get("uid") or "").strip()
        if not uid:
            return None
        try:
            payload = SessionPayload(
                user_id=uid,
                issued_at=_from_epoch(data["iat"]),
                expires_at=_from_epoch(data["exp"]),
            )
        except (KeyError, TypeError, ValueError, OverflowError, OSError):
            return None

        if payload.expires_at <= (now or datetime.now(timezone.utc)):
            return None
        return payload


def cookie_settings(settings: Settings) -> dict:
    return {"httponly": True, "samesite": "lax", "secure": settings.production, "path": "/"}


class SessionManager:
    """Moves session tokens in and out of the ``session`` cookie."""

    def __init__(self, codec: SessionCodec, settings: Settings):
        self.codec = codec
        self.settings = settings

    def issue(self, response: Response, user_id: str) -> SessionPayload:
        issued = _now()
        payload = SessionPayload(
            user_id=user_id,
            issued_at=issued,
            expires_at=issued + timedelta(seconds=self.settings.session_ttl),
        )
        response.set_cookie(
            COOKIE_NAME,
            self.codec.encode(payload),
            max_age=self.settings.session_ttl,
            expires=payload.expires_at,
            **cookie_settings(self.settings),
        )
        return payload

    def current(self, request: Request) -> Optional[SessionPayload]:
        return self.codec.decode(request.cookies.get(COOKIE_NAME, ""))

    def destroy(self, response: Response) -> None:
        s = cookie_settings(self.settings)
        response.delete_cookie(COOKIE_NAME, path=s["path"], secure=s["secure"], httponly=True, samesite="lax")
