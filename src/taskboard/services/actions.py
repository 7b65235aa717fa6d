# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Form and CRUD actions.

These sit between the HTTP routes and the stores: validate input, take the
owner id from the session (never from the request body), call the store and
turn the outcome into a ``FormResult`` / ``ActionResult``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Optional

from fastapi import Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from taskboard.auth import users as user_store
from taskboard.auth.session import SessionCodec, SessionManager, SessionPayload
from taskboard.config import Settings
from taskboard.core.results import ActionResult, FormField, FormResult
from taskboard.core.validation import (
    clean,
    validate_category_update,
    validate_login,
    validate_new_category,
    validate_new_task,
    validate_registration,
    validate_task_update,
)
from taskboard.infra import task_repo

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"
EMAIL_IN_USE = "Email already in use"


@dataclass(frozen=True)
class AppContext:
    settings: Settings
    engine: AsyncEngine
    codec: SessionCodec
    sessions: SessionManager


async def _run(op: str, fn: Callable[[], Awaitable[ActionResult]]) -> ActionResult:
    try:
        return await fn()
    except SQLAlchemyError:
        logger.exception("%s failed", op)
        return ActionResult.error()


# ------------------ Auth forms ------------------


async def login(ctx: AppContext, response: Response, *, email: str, password: str) -> FormResult:
    errors = validate_login(email, password)
    if errors:
        return FormResult.fail(errors)

    try:
        user = await user_store.verify_credentials(ctx.engine, email, password)
    except SQLAlchemyError:
        logger.exception("Login lookup failed")
        return FormResult.single(FormField.EMAIL, "An error occurred during login")

    if user is None:
        logger.info("Rejected login attempt")
        return FormResult.single(FormField.EMAIL, INVALID_CREDENTIALS)

    ctx.sessions.issue(response, user.id)
    logger.info("User %s logged in", user.id)
    return FormResult.ok()


async def register(
    ctx: AppContext,
    *,
    first_name: str,
    last_name: str,
    email: str,
    password: str,
) -> FormResult:
    errors = validate_registration(first_name, last_name, email, password)
    if errors:
        return FormResult.fail(errors)

    try:
        # Fast path only; the UNIQUE constraint below is what actually decides.
        if await user_store.get_user_by_email(ctx.engine, email) is not None:
            return FormResult.single(FormField.EMAIL, EMAIL_IN_USE)
        await user_store.create_user(
            ctx.engine,
            first_name=clean(first_name),
            last_name=clean(last_name),
            email=email,
            password=password,
        )
    except user_store.DuplicateEmail:
        return FormResult.single(FormField.EMAIL, EMAIL_IN_USE)
    except SQLAlchemyError:
        logger.exception("Registration failed")
        return FormResult.single(FormField.EMAIL, "An error occurred during registration")
    return FormResult.ok()


def logout(ctx: AppContext, response: Response) -> None:
    ctx.sessions.destroy(response)


async def get_profile(ctx: AppContext, session: Optional[SessionPayload]) -> ActionResult:
    if session is None:
        return ActionResult.unauthenticated()

    async def _op() -> ActionResult:
        user = await user_store.get_user(ctx.engine, session.user_id)
        return ActionResult.success(user) if user else ActionResult.unauthenticated()

    return await _run("get_profile", _op)


# ------------------ Tasks ------------------


async def get_tasks(
    ctx: AppContext,
    session: Optional[SessionPayload],
    *,
    category_id: Optional[int] = None,
) -> ActionResult:
    if session is None:
        return ActionResult.unauthenticated()

    async def _op() -> ActionResult:
        return ActionResult.success(
            await task_repo.list_tasks(ctx.engine, session.user_id, category_id=category_id)
        )

    return await _run("get_tasks", _op)


async def get_task(ctx: AppContext, session: Optional[SessionPayload], task_id: int) -> ActionResult:
    if session is None:
        return ActionResult.unauthenticated()

    async def _op() -> ActionResult:
        task = await task_repo.get_task(ctx.engine, task_id, session.user_id)
        return ActionResult.success(task) if task else ActionResult.not_found()

    return await _run("get_task", _op)


async def create_task(
    ctx: AppContext,
    session: Optional[SessionPayload],
    *,
    text: Any,
    category_id: Any = None,
) -> ActionResult:
    if session is None:
        return ActionResult.unauthenticated()
    t, cid, errors = validate_new_task(text, category_id)
    if errors:
        return ActionResult.invalid(errors)

    async def _op() -> ActionResult:
        task = await task_repo.create_task(ctx.engine, session.user_id, t, cid)
        return ActionResult.success(task) if task else ActionResult.not_found()

    return await _run("create_task", _op)


async def update_task(
    ctx: AppContext,
    session: Optional[SessionPayload],
    task_id: int,
    raw: Mapping[str, Any],
) -> ActionResult:
    if session is None:
        return ActionResult.unauthenticated()
    fields, errors = validate_task_update(raw)
    if errors:
        return ActionResult.invalid(errors)

    async def _op() -> ActionResult:
        task = await task_repo.update_task(ctx.engine, task_id, session.user_id, fields)
        return ActionResult.success(task) if task else ActionResult.not_found()

    return await _run("update_task", _op)


async def delete_task(ctx: AppContext, session: Optional[SessionPayload], task_id: int) -> ActionResult:
    if session is None:
        return ActionResult.unauthenticated()

    async def _op() -> ActionResult:
        deleted = await task_repo.delete_task(ctx.engine, task_id, session.user_id)
        return ActionResult.success(True) if deleted else ActionResult.not_found()

    return await _run("delete_task", _op)


# ------------------ Categories ------------------


async def get_categories(ctx: AppContext, session: Optional[SessionPayload]) -> ActionResult:
    if session is None:
        return ActionResult.unauthenticated()

    async def _op() -> ActionResult:
        return ActionResult.success(await task_repo.list_categories(ctx.engine, session.user_id))

    return await _run("get_categories", _op)


async def get_category(ctx: AppContext, session: Optional[SessionPayload], category_id: int) -> ActionResult:
    if session is None:
        return ActionResult.unauthenticated()

    async def _op() -> ActionResult:
        cat = await task_repo.get_category(ctx.engine, category_id, session.user_id)
        return ActionResult.success(cat) if cat else ActionResult.not_found()

    return await _run("get_category", _op)


async def create_category(
    ctx: AppContext,
    session: Optional[SessionPayload],
    *,
    name: Any,
    color: Any = None,
) -> ActionResult:
    if session is None:
        return ActionResult.unauthenticated()
    n, c, errors = validate_new_category(name, color)
    if errors:
        return ActionResult.invalid(errors)

    async def _op() -> ActionResult:
        return ActionResult.success(await task_repo.create_category(ctx.engine, session.user_id, n, c))

    return await _run("create_category", _op)


async def update_category(
    ctx: AppContext,
    session: Optional[SessionPayload],
    category_id: int,
    raw: Mapping[str, Any],
) -> ActionResult:
    if session is None:
        return ActionResult.unauthenticated()
    fields, errors = validate_category_update(raw)
    if errors:
        return ActionResult.invalid(errors)

    async def _op() -> ActionResult:
        cat = await task_repo.update_category(ctx.engine, category_id, session.user_id, fields)
        return ActionResult.success(cat) if cat else ActionResult.not_found()

    return await _run("update_category", _op)


async def delete_category(ctx: AppContext, session: Optional[SessionPayload], category_id: int) -> ActionResult:
    if session is None:
        return ActionResult.unauthenticated()

    async def _op() -> ActionResult:
        deleted = await task_repo.delete_category(ctx.engine, category_id, session.user_id)
        return ActionResult.success(True) if deleted else ActionResult.not_found()

    return await _run("delete_category", _op)
