from datetime import datetime, timedelta, timezone

import pytest
from fastapi import Response
from sqlalchemy import text

from taskboard.auth.session import SessionPayload
from taskboard.core.results import ActionStatus, FormField
from taskboard.services import actions

pytestmark = pytest.mark.anyio


def _session(user_id: str) -> SessionPayload:
    now = datetime.now(timezone.utc).replace(microsecond=0)
    return SessionPayload(user_id=user_id, issued_at=now, expires_at=now + timedelta(hours=1))


def _token(resp: Response) -> str:
    return resp.headers["set-cookie"].split(";", 1)[0].split("=", 1)[1]


async def _register(ctx, email="a@b.com", password="longenough1"):
    return await actions.register(ctx, first_name="A", last_name="B", email=email, password=password)


async def _login(ctx, email="a@b.com", password="longenough1"):
    resp = Response()
    result = await actions.login(ctx, resp, email=email, password=password)
    return result, resp


async def test_register_then_duplicate(ctx):
    assert (await _register(ctx)).to_dict() == {"success": True}
    assert (await _register(ctx)).to_dict() == {"errors": {"email": ["Email already in use"]}}


async def test_register_reports_missing_fields_before_anything_else(ctx):
    result = await actions.register(ctx, first_name="", last_name=" ", email="", password="")
    assert not result.success
    assert set(result.errors) == {FormField.FIRST_NAME, FormField.LAST_NAME, FormField.EMAIL, FormField.PASSWORD}
    assert result.errors[FormField.PASSWORD] == ["Password is required"]


async def test_register_enforces_password_length(ctx):
    result = await _register(ctx, password="short")
    assert result.to_dict() == {"errors": {"password": ["Password must be at least 8 characters"]}}


async def test_register_rejects_malformed_email(ctx):
    result = await _register(ctx, email="not-an-email")
    assert result.errors == {FormField.EMAIL: ["Enter a valid email address"]}


async def test_login_failures_are_indistinguishable(ctx):
    await _register(ctx)
    unknown, unknown_resp = await _login(ctx, email="nobody@b.com")
    wrong, wrong_resp = await _login(ctx, password="wrong-password")
    assert unknown.to_dict() == wrong.to_dict() == {"errors": {"email": ["Invalid email or password"]}}
    assert "set-cookie" not in unknown_resp.headers
    assert "set-cookie" not in wrong_resp.headers


async def test_login_requires_both_fields(ctx):
    result, _ = await _login(ctx, email="", password="")
    assert result.to_dict() == {"errors": {"email": ["Email is required"], "password": ["Password is required"]}}


async def test_login_sets_session_cookie(ctx):
    await _register(ctx)
    result, resp = await _login(ctx)
    assert result.to_dict() == {"success": True}
    payload = ctx.codec.decode(_token(resp))
    assert payload is not None
    profile = await actions.get_profile(ctx, payload)
    assert profile.value.email == "a@b.com"


async def test_crud_without_session_is_unauthenticated(ctx):
    for result in (
        await actions.get_tasks(ctx, None),
        await actions.create_task(ctx, None, text="x"),
        await actions.update_task(ctx, None, 1, {"completed": True}),
        await actions.delete_task(ctx, None, 1),
        await actions.get_categories(ctx, None),
        await actions.get_category(ctx, None, 1),
        await actions.create_category(ctx, None, name="x"),
        await actions.delete_category(ctx, None, 1),
    ):
        assert result.status is ActionStatus.UNAUTHENTICATED


async def test_created_task_is_visible_only_to_owner(ctx):
    await _register(ctx, email="u@x.com")
    await _register(ctx, email="v@x.com")
    _, u_resp = await _login(ctx, email="u@x.com")
    u = ctx.codec.decode(_token(u_resp))
    _, v_resp = await _login(ctx, email="v@x.com")
    v = ctx.codec.decode(_token(v_resp))

    created = await actions.create_task(ctx, u, text="  buy milk ")
    assert created.ok

    listed = await actions.get_tasks(ctx, u)
    assert listed.value[0].text == "buy milk"
    assert listed.value[0].completed is False
    assert all(t.id != created.value.id for t in (await actions.get_tasks(ctx, v)).value)

    assert (await actions.delete_task(ctx, v, created.value.id)).status is ActionStatus.NOT_FOUND
    assert (await actions.update_task(ctx, v, created.value.id, {"completed": True})).status is ActionStatus.NOT_FOUND
    assert (await actions.get_task(ctx, u, created.value.id)).ok


async def test_invalid_task_input(ctx):
    s = _session("u-1")
    assert (await actions.create_task(ctx, s, text="   ")).errors == {FormField.TEXT: ["Task text is required"]}
    bad = await actions.update_task(ctx, s, 1, {"completed": "yes"})
    assert bad.status is ActionStatus.INVALID
    assert FormField.COMPLETED in bad.errors
    too_big = await actions.create_task(ctx, s, text="x", category_id=2**63)
    assert too_big.errors == {FormField.CATEGORY_ID: ["Invalid category"]}


async def test_category_actions(ctx):
    await _register(ctx)
    _, resp = await _login(ctx)
    s = ctx.codec.decode(_token(resp))

    made = await actions.create_category(ctx, s, name="Home")
    assert made.ok
    assert made.value.color == "#4f46e5"
    fetched = await actions.get_category(ctx, s, made.value.id)
    assert fetched.value.name == "Home"
    other = await actions.get_category(ctx, _session("someone-else"), made.value.id)
    assert other.status is ActionStatus.NOT_FOUND

    bad = await actions.create_category(ctx, s, name="", color="red")
    assert set(bad.errors) == {FormField.NAME, FormField.COLOR}

    recolored = await actions.update_category(ctx, s, made.value.id, {"color": "#FF0000"})
    assert recolored.value.color == "#ff0000"
    assert (await actions.delete_category(ctx, s, made.value.id)).ok
    assert (await actions.delete_category(ctx, s, made.value.id)).status is ActionStatus.NOT_FOUND


async def test_store_failure_is_reported_without_detail(ctx, caplog):
    async with ctx.engine.begin() as conn:
        await conn.execute(text("DROP TABLE tasks"))
    result = await actions.get_tasks(ctx, _session("u-1"))
    assert result.status is ActionStatus.ERROR
    assert result.value is None
    assert result.errors == {}
    assert "get_tasks failed" in caplog.text
