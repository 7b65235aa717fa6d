# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Owner-scoped CRUD for tasks and categories.

Every statement filters on ``user_id``; a row owned by someone else behaves
exactly like a row that does not exist.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from taskboard.infra.db import categories, tasks, utcnow

TASK_FIELDS = ("text", "completed", "category_id")
CATEGORY_FIELDS = ("name", "color")


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass(frozen=True)
class Task:
    id: int
    user_id: str
    category_id: Optional[int]
    text: str
    completed: bool
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "category_id": self.category_id,
            "text": self.text,
            "completed": self.completed,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


@dataclass(frozen=True)
class Category:
    id: int
    user_id: str
    name: str
    color: str
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


def _task(row) -> Task:
    return Task(
        id=row.id,
        user_id=row.user_id,
        category_id=row.category_id,
        text=row.text,
        completed=bool(row.completed),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _category(row) -> Category:
    return Category(
        id=row.id,
        user_id=row.user_id,
        name=row.name,
        color=row.color,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


async def _owns_category(conn: AsyncConnection, category_id: int, user_id: str) -> bool:
    stmt = select(categories.c.id).where(categories.c.id == category_id, categories.c.user_id == user_id)
    return (await conn.execute(stmt)).first() is not None


async def _fetch_task(conn: AsyncConnection, task_id: int, user_id: str) -> Optional[Task]:
    stmt = select(tasks).where(tasks.c.id == task_id, tasks.c.user_id == user_id)
    row = (await conn.execute(stmt)).first()
    return _task(row) if row is not None else None


async def _fetch_category(conn: AsyncConnection, category_id: int, user_id: str) -> Optional[Category]:
    stmt = select(categories).where(categories.c.id == category_id, categories.c.user_id == user_id)
    row = (await conn.execute(stmt)).first()
    return _category(row) if row is not None else None


# ------------------ Tasks ------------------


async def list_tasks(engine: AsyncEngine, user_id: str, *, category_id: Optional[int] = None) -> List[Task]:
    """Tasks for one user, newest first."""
    stmt = select(tasks).where(tasks.c.user_id == user_id)
    if category_id is not None:
        stmt = stmt.where(tasks.c.category_id == category_id)
    stmt = stmt.order_by(tasks.c.created_at.desc(), tasks.c.id.desc())
    async with engine.connect() as conn:
        rows = (await conn.execute(stmt)).all()
    return [_task(r) for r in rows]


async def get_task(engine: AsyncEngine, task_id: int, user_id: str) -> Optional[Task]:
    async with engine.connect() as conn:
        return await _fetch_task(conn, task_id, user_id)


async def create_task(
    engine: AsyncEngine,
    user_id: str,
    text: str,
    category_id: Optional[int] = None,
) -> Optional[Task]:
    """Insert a task. Returns None if ``category_id`` is not one of the user's categories."""
    now = utcnow()
    async with engine.begin() as conn:
        if category_id is not None and not await _owns_category(conn, category_id, user_id):
            return None
        res = await conn.execute(
            insert(tasks).values(
                user_id=user_id,
                category_id=category_id,
                text=text,
                completed=False,
                created_at=now,
                updated_at=now,
            )
        )
        task_id = res.inserted_primary_key[0]
        return await _fetch_task(conn, task_id, user_id)


async def update_task(
    engine: AsyncEngine,
    task_id: int,
    user_id: str,
    fields: Mapping[str, Any],
) -> Optional[Task]:
    """Apply the present fields and bump ``updated_at``; None when nothing matched."""
    values = {k: fields[k] for k in TASK_FIELDS if k in fields}
    values["updated_at"] = utcnow()
    async with engine.begin() as conn:
        cid = values.get("category_id")
        if cid is not None and not await _owns_category(conn, cid, user_id):
            return None
        res = await conn.execute(
            update(tasks).where(tasks.c.id == task_id, tasks.c.user_id == user_id).values(**values)
        )
        if res.rowcount == 0:
            return None
        return await _fetch_task(conn, task_id, user_id)


async def delete_task(engine: AsyncEngine, task_id: int, user_id: str) -> bool:
    async with engine.begin() as conn:
        res = await conn.execute(delete(tasks).where(tasks.c.id == task_id, tasks.c.user_id == user_id))
    return res.rowcount > 0


# ------------------ Categories ------------------


async def list_categories(engine: AsyncEngine, user_id: str) -> List[Category]:
    stmt = (
        select(categories)
        .where(categories.c.user_id == user_id)
        .order_by(func.lower(categories.c.name), categories.c.id)
    )
    async with engine.connect() as conn:
        rows = (await conn.execute(stmt)).all()
    return [_category(r) for r in rows]


async def get_category(engine: AsyncEngine, category_id: int, user_id: str) -> Optional[Category]:
    async with engine.connect() as conn:
        return await _fetch_category(conn, category_id, user_id)


async def create_category(engine: AsyncEngine, user_id: str, name: str, color: str) -> Category:
    now = utcnow()
    async with engine.begin() as conn:
        res = await conn.execute(
            insert(categories).values(user_id=user_id, name=name, color=color, created_at=now, updated_at=now)
        )
        row = (await conn.execute(select(categories).where(categories.c.id == res.inserted_primary_key[0]))).one()
    return _category(row)


async def update_category(
    engine: AsyncEngine,
    category_id: int,
    user_id: str,
    fields: Mapping[str, Any],
) -> Optional[Category]:
    values = {k: fields[k] for k in CATEGORY_FIELDS if k in fields}
    values["updated_at"] = utcnow()
    async with engine.begin() as conn:
        res = await conn.execute(
            update(categories)
            .where(categories.c.id == category_id, categories.c.user_id == user_id)
            .values(**values)
        )
        if res.rowcount == 0:
            return None
        return await _fetch_category(conn, category_id, user_id)


async def delete_category(engine: AsyncEngine, category_id: int, user_id: str) -> bool:
    """Delete a category; the owner's tasks in it become uncategorised."""
    async with engine.begin() as conn:
        await conn.execute(
            update(tasks)
            .where(tasks.c.category_id == category_id, tasks.c.user_id == user_id)
            .values(category_id=None, updated_at=utcnow())
        )
        res = await conn.execute(
            delete(categories).where(categories.c.id == category_id, categories.c.user_id == user_id)
        )
    return res.rowcount > 0
