# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import Body, Depends, FastAPI, Form, Query, Request
from fastapi import Path as UrlPath
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates

from taskboard.auth.session import COOKIE_NAME, SessionCodec, SessionManager
from taskboard.config import Settings, configure_logging
from taskboard.core.results import ActionResult, ActionStatus, errors_to_dict
from taskboard.core.validation import MAX_ROW_ID
from taskboard.infra.db import create_engine, init_database
from taskboard.permissions import LANDING_URL, LOGIN_URL, current_session, guard_decision, require_session
from taskboard.services import actions
from taskboard.services.actions import AppContext

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

_STATUS_CODES = {
    ActionStatus.INVALID: 422,
    ActionStatus.NOT_FOUND: 404,
    ActionStatus.UNAUTHENTICATED: 401,
    ActionStatus.ERROR: 500,
}
_STATUS_MESSAGES = {
    ActionStatus.NOT_FOUND: "Not found",
    ActionStatus.UNAUTHENTICATED: "Not authenticated",
    ActionStatus.ERROR: "Internal error",
}


def get_ctx(request: Request) -> AppContext:
    return request.app.state.ctx


def _render(request: Request, template_name: str, ctx: dict, status_code: int = 200):
    """TemplateResponse wrapper injecting the session state."""
    base_ctx = {"session": current_session(request)}
    return templates.TemplateResponse(request, template_name, {**base_ctx, **(ctx or {})}, status_code=status_code)


def _api_response(result: ActionResult, *, status_code: int = 200) -> Response:
    """Map a tagged action result to JSON. Never includes internal detail."""
    if result.status is ActionStatus.OK:
        value = result.value
        if isinstance(value, list):
            body: Any = [v.to_dict() for v in value]
        elif value is True:
            return Response(status_code=204)
        else:
            body = value.to_dict()
        return JSONResponse(body, status_code=status_code)
    if result.status is ActionStatus.INVALID:
        return JSONResponse({"errors": errors_to_dict(result.errors)}, status_code=422)
    return JSONResponse({"error": _STATUS_MESSAGES[result.status]}, status_code=_STATUS_CODES[result.status])


def _parse_optional_int(value: Optional[str]) -> Optional[int]:
    """Lenient query-string id: anything unusable, out-of-range included, means no filter."""
    try:
        n = int(value) if value not in (None, "") else None
    except ValueError:
        return None
    if n is None or not 1 <= n <= MAX_ROW_ID:
        return None
    return n


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application. Fails here, before serving, without a valid secret."""
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)
    codec = SessionCodec.from_settings(settings)
    sessions = SessionManager(codec, settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = create_engine(settings.database_url)
        await init_database(engine)
        app.state.ctx = AppContext(settings=settings, engine=engine, codec=codec, sessions=sessions)
        logger.info("Taskboard started (env=%s)", settings.environment)
        try:
            yield
        finally:
            await engine.dispose()

    app = FastAPI(title="Taskboard", lifespan=lifespan)

    @app.middleware("http")
    async def _route_guard(request: Request, call_next):
        has_cookie = bool(request.cookies.get(COOKIE_NAME))
        try:
            sess = sessions.current(request)
        except Exception:
            logger.exception("Session decode failed; treating request as anonymous")
            sess = None
        request.state.session = sess

        decision = guard_decision(request.url.path, has_session=sess is not None, has_cookie=has_cookie)
        if decision.allow:
            return await call_next(request)
        resp = RedirectResponse(url=decision.redirect_to, status_code=303)
        if decision.clear_cookie:
            sessions.destroy(resp)
        return resp

    _register_pages(app)
    _register_api(app)
    return app


# ------------------ Pages ------------------


def _register_pages(app: FastAPI) -> None:
    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}

    @app.get("/")
    def home():
        return RedirectResponse(url=LANDING_URL, status_code=303)

    @app.get("/login", response_class=HTMLResponse)
    def login_get(request: Request):
        return _render(request, "login.html", {"errors": {}, "email": ""})

    @app.post("/login")
    async def login_post(
        request: Request,
        email: str = Form(""),
        password: str = Form(""),
        ctx: AppContext = Depends(get_ctx),
    ):
        resp = RedirectResponse(url=LANDING_URL, status_code=303)
        result = await actions.login(ctx, resp, email=email, password=password)
        if result.success:
            return resp
        return _render(request, "login.html", {"errors": result.to_dict()["errors"], "email": email})

    @app.get("/register", response_class=HTMLResponse)
    def register_get(request: Request):
        return _render(request, "register.html", {"errors": {}, "form": {}})

    @app.post("/register")
    async def register_post(
        request: Request,
        first_name: str = Form(""),
        last_name: str = Form(""),
        email: str = Form(""),
        password: str = Form(""),
        ctx: AppContext = Depends(get_ctx),
    ):
        result = await actions.register(
            ctx, first_name=first_name, last_name=last_name, email=email, password=password
        )
        if result.success:
            return RedirectResponse(url=LOGIN_URL, status_code=303)
        form = {"first_name": first_name, "last_name": last_name, "email": email}
        return _render(request, "register.html", {"errors": result.to_dict()["errors"], "form": form})

    @app.post("/logout")
    def logout_post(ctx: AppContext = Depends(get_ctx)):
        resp = RedirectResponse(url=LOGIN_URL, status_code=303)
        actions.logout(ctx, resp)
        return resp

    @app.get("/dashboard", response_class=HTMLResponse)
    async def dashboard(
        request: Request,
        category: Optional[str] = None,
        ctx: AppContext = Depends(get_ctx),
        sess=Depends(require_session),
    ):
        selected = _parse_optional_int(category)
        tasks_res = await actions.get_tasks(ctx, sess, category_id=selected)
        cats_res = await actions.get_categories(ctx, sess)
        failed = not (tasks_res.ok and cats_res.ok)
        return _render(
            request,
            "dashboard.html",
            {
                "tasks": tasks_res.value or [],
                "categories": cats_res.value or [],
                "selected_category": selected,
                "error": "Could not load your tasks. Try again later." if failed else "",
            },
        )

    @app.post("/dashboard/tasks")
    async def dashboard_add_task(
        text: str = Form(""),
        category_id: str = Form(""),
        ctx: AppContext = Depends(get_ctx),
        sess=Depends(require_session),
    ):
        await actions.create_task(ctx, sess, text=text, category_id=category_id or None)
        return RedirectResponse(url=LANDING_URL, status_code=303)

    @app.post("/dashboard/tasks/{task_id}/toggle")
    async def dashboard_toggle_task(
        task_id: int = UrlPath(..., ge=1, le=MAX_ROW_ID),
        ctx: AppContext = Depends(get_ctx),
        sess=Depends(require_session),
    ):
        res = await actions.get_task(ctx, sess, task_id)
        if res.ok:
            await actions.update_task(ctx, sess, task_id, {"completed": not res.value.completed})
        return RedirectResponse(url=LANDING_URL, status_code=303)

    @app.post("/dashboard/tasks/{task_id}/delete")
    async def dashboard_delete_task(
        task_id: int = UrlPath(..., ge=1, le=MAX_ROW_ID),
        ctx: AppContext = Depends(get_ctx),
        sess=Depends(require_session),
    ):
        await actions.delete_task(ctx, sess, task_id)
        return RedirectResponse(url=LANDING_URL, status_code=303)

    @app.post("/dashboard/categories")
    async def dashboard_add_category(
        name: str = Form(""),
        color: str = Form(""),
        ctx: AppContext = Depends(get_ctx),
        sess=Depends(require_session),
    ):
        await actions.create_category(ctx, sess, name=name, color=color)
        return RedirectResponse(url=LANDING_URL, status_code=303)


# ------------------ JSON API ------------------


def _register_api(app: FastAPI) -> None:
    @app.get("/api/me")
    async def api_me(request: Request, ctx: AppContext = Depends(get_ctx)):
        return _api_response(await actions.get_profile(ctx, current_session(request)))

    @app.get("/api/tasks")
    async def api_list_tasks(
        request: Request,
        category_id: Optional[int] = Query(None, ge=1, le=MAX_ROW_ID),
        ctx: AppContext = Depends(get_ctx),
    ):
        return _api_response(await actions.get_tasks(ctx, current_session(request), category_id=category_id))

    @app.post("/api/tasks")
    async def api_create_task(
        request: Request,
        payload: Dict[str, Any] = Body(...),
        ctx: AppContext = Depends(get_ctx),
    ):
        result = await actions.create_task(
            ctx, current_session(request), text=payload.get("text"), category_id=payload.get("category_id")
        )
        return _api_response(result, status_code=201)

    @app.patch("/api/tasks/{task_id}")
    async def api_update_task(
        request: Request,
        task_id: int = UrlPath(..., ge=1, le=MAX_ROW_ID),
        payload: Dict[str, Any] = Body(...),
        ctx: AppContext = Depends(get_ctx),
    ):
        return _api_response(await actions.update_task(ctx, current_session(request), task_id, payload))

    @app.delete("/api/tasks/{task_id}")
    async def api_delete_task(
        request: Request,
        task_id: int = UrlPath(..., ge=1, le=MAX_ROW_ID),
        ctx: AppContext = Depends(get_ctx),
    ):
        return _api_response(await actions.delete_task(ctx, current_session(request), task_id))

    @app.get("/api/categories")
    async def api_list_categories(request: Request, ctx: AppContext = Depends(get_ctx)):
        return _api_response(await actions.get_categories(ctx, current_session(request)))

    @app.get("/api/categories/{category_id}")
    async def api_get_category(
        request: Request,
        category_id: int = UrlPath(..., ge=1, le=MAX_ROW_ID),
        ctx: AppContext = Depends(get_ctx),
    ):
        return _api_response(await actions.get_category(ctx, current_session(request), category_id))

    @app.post("/api/categories")
    async def api_create_category(
        request: Request,
        payload: Dict[str, Any] = Body(...),
        ctx: AppContext = Depends(get_ctx),
    ):
        result = await actions.create_category(
            ctx, current_session(request), name=payload.get("name"), color=payload.get("color")
        )
        return _api_response(result, status_code=201)

    @app.patch("/api/categories/{category_id}")
    async def api_update_category(
        request: Request,
        category_id: int = UrlPath(..., ge=1, le=MAX_ROW_ID),
        payload: Dict[str, Any] = Body(...),
        ctx: AppContext = Depends(get_ctx),
    ):
        return _api_response(await actions.update_category(ctx, current_session(request), category_id, payload))

    @app.delete("/api/categories/{category_id}")
    async def api_delete_category(
        request: Request,
        category_id: int = UrlPath(..., ge=1, le=MAX_ROW_ID),
        ctx: AppContext = Depends(get_ctx),
    ):
        return _api_response(await actions.delete_category(ctx, current_session(request), category_id))
