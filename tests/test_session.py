from datetime import datetime, timedelta, timezone

import pytest
from fastapi import Response

from taskboard.auth.session import COOKIE_NAME, SessionCodec, SessionManager, SessionPayload
from taskboard.config import Settings


def _payload(**delta) -> SessionPayload:
    now = datetime.now(timezone.utc).replace(microsecond=0)
    return SessionPayload(user_id="u-123", issued_at=now, expires_at=now + timedelta(**(delta or {"minutes": 30})))


def test_round_trip_before_expiry(codec):
    p = _payload()
    assert codec.decode(codec.encode(p)) == p


def test_expired_payload_is_rejected(codec):
    p = _payload(seconds=-1)
    assert codec.decode(codec.encode(p)) is None


def test_decode_respects_explicit_now(codec):
    p = _payload(minutes=5)
    token = codec.encode(p)
    assert codec.decode(token, now=p.expires_at - timedelta(seconds=1)) == p
    assert codec.decode(token, now=p.expires_at) is None


def test_tampered_token_is_rejected(codec):
    token = codec.encode(_payload())
    i = len(token) // 3
    swapped = "A" if token[i] != "A" else "B"
    assert codec.decode(token[:i] + swapped + token[i + 1:]) is None


def test_token_from_other_secret_is_rejected(codec):
    other = SessionCodec("another-secret-key-that-is-long-enough-xyz", max_age=3600, salt="taskboard.session.v1")
    assert codec.decode(other.encode(_payload())) is None


def test_token_with_other_salt_is_rejected(settings, codec):
    other = SessionCodec(settings.secret_key, max_age=3600, salt="password-reset")
    assert codec.decode(other.encode(_payload())) is None


@pytest.mark.parametrize("token", [None, "", "garbage", "a.b.c", "eyJhbGciOiJub25lIn0.eyJ1aWQiOiJ4In0."])
def test_malformed_tokens_never_raise(codec, token):
    assert codec.decode(token) is None


@pytest.mark.parametrize("secret", ["", "short"])
def test_codec_refuses_weak_secret(secret):
    with pytest.raises(ValueError):
        SessionCodec(secret, max_age=3600, salt="s")


def test_settings_require_secret(monkeypatch):
    monkeypatch.delenv("TASKBOARD_SECRET_KEY", raising=False)
    monkeypatch.delenv("SECRET_KEY", raising=False)
    with pytest.raises(RuntimeError):
        Settings.from_env()


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("TASKBOARD_SECRET_KEY", "x" * 40)
    monkeypatch.setenv("TASKBOARD_SESSION_TTL", "120")
    monkeypatch.setenv("TASKBOARD_ENV", "Production")
    s = Settings.from_env()
    assert s.session_ttl == 120
    assert s.production


def test_issue_sets_hardened_cookie(settings, codec):
    resp = Response()
    payload = SessionManager(codec, settings).issue(resp, "u-1")
    header = resp.headers["set-cookie"]
    assert header.startswith(f"{COOKIE_NAME}=")
    assert "HttpOnly" in header
    assert "samesite=lax" in header.lower()
    assert f"Max-Age={settings.session_ttl}" in header
    assert "Secure" not in header
    assert payload.expires_at - payload.issued_at == timedelta(seconds=settings.session_ttl)


def test_issue_marks_cookie_secure_in_production(settings):
    prod = Settings(secret_key=settings.secret_key, environment="production")
    resp = Response()
    SessionManager(SessionCodec.from_settings(prod), prod).issue(resp, "u-1")
    assert "Secure" in resp.headers["set-cookie"]


def test_destroy_expires_cookie(settings, codec):
    resp = Response()
    SessionManager(codec, settings).destroy(resp)
    header = resp.headers["set-cookie"]
    assert header.startswith(f"{COOKIE_NAME}=")
    assert "Max-Age=0" in header
