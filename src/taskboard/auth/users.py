# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine

from taskboard.auth.passwords import burn_verification, hash_password, verify_password
from taskboard.infra.db import users, utcnow

logger = logging.getLogger(__name__)


class DuplicateEmail(Exception):
    """The email is already registered (rejected by the UNIQUE constraint)."""


@dataclass(frozen=True)
class User:
    id: str
    first_name: str
    last_name: str
    email: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
        }


@dataclass(frozen=True)
class UserRecord:
    user: User
    password_hash: str


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _user_from_row(row) -> User:
    return User(id=row.id, first_name=row.first_name, last_name=row.last_name, email=row.email)


async def create_user(
    engine: AsyncEngine,
    *,
    first_name: str,
    last_name: str,
    email: str,
    password: str,
) -> User:
    user = User(
        id=uuid.uuid4().hex,
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        email=normalize_email(email),
    )
    stmt = insert(users).values(
        id=user.id,
        first_name=user.first_name,
        last_name=user.last_name,
        email=user.email,
        password_hash=hash_password(password),
        created_at=utcnow(),
    )
    try:
        async with engine.begin() as conn:
            await conn.execute(stmt)
    except IntegrityError as e:
        raise DuplicateEmail(user.email) from e
    logger.info("Created user %s", user.id)
    return user


async def get_user_by_email(engine: AsyncEngine, email: str) -> Optional[UserRecord]:
    e = normalize_email(email)
    if not e:
        return None
    async with engine.connect() as conn:
        row = (await conn.execute(select(users).where(users.c.email == e))).first()
    if row is None:
        return None
    return UserRecord(user=_user_from_row(row), password_hash=row.password_hash)


async def get_user(engine: AsyncEngine, user_id: str) -> Optional[User]:
    if not user_id:
        return None
    async with engine.connect() as conn:
        row = (await conn.execute(select(users).where(users.c.id == user_id))).first()
    return _user_from_row(row) if row is not None else None


async def verify_credentials(engine: AsyncEngine, email: str, password: str) -> Optional[User]:
    """Return the user for a matching email/password pair, else None.

    Unknown email and wrong password are indistinguishable to the caller.
    """
    rec = await get_user_by_email(engine, email)
    if rec is None:
        burn_verification(password)
        return None
    if not verify_password(rec.password_hash, password):
        return None
    return rec.user
