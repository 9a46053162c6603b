# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import timedelta
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse, Response
from starlette.concurrency import run_in_threadpool

from eventreg.auth.mail import Mailer, mailer_for
from eventreg.auth.service import AuthService, Clock, utcnow
from eventreg.auth.store import MemoryStore, SessionStore
from eventreg.auth.users import load_users
from eventreg.config import Settings
from eventreg.core.request_data import parse_request_data
from eventreg.errors import EventregError, NotFound, TemplateError, UpstreamFailure, ValidationError
from eventreg.infra.startup import seed_admin_users, wait_for_store
from eventreg.infra.static_files import SHELL_TEMPLATE, StaticFileStore, mime_type_for, page_path_for
from eventreg.permissions import SessionUser, cookie_settings, current_user_optional, require_user, resolve_session_user
from eventreg.services.sweeper import run_sweeper
from eventreg.templating.expander import render_page

logger = logging.getLogger(__name__)


def page_bindings(request: Request, settings: Settings) -> dict:
    """Names visible to ``#{...}`` expressions in pages."""
    user = current_user_optional(request)
    return {
        "user": user,
        "logged_in": user is not None,
        "path": request.url.path,
        "web_root": settings.web_root,
        "website_host": settings.website_host,
        "development": settings.development,
    }


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[SessionStore] = None,
    mailer: Optional[Mailer] = None,
    clock: Clock = utcnow,
) -> FastAPI:
    settings = settings or Settings.from_env()
    if store is None:
        store = MemoryStore(load_users(settings.users_path))
    mailer = mailer or mailer_for(settings)
    auth = AuthService(store, mailer, settings, clock=clock)
    files = StaticFileStore(settings.static_dir)

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI):
        await run_in_threadpool(wait_for_store, store, attempts=settings.startup_attempts)
        await run_in_threadpool(seed_admin_users, store, settings.admin_users)
        sweeper = None
        if settings.sweep_interval_seconds > 0:
            sweeper = asyncio.create_task(
                run_sweeper(
                    store,
                    interval_seconds=settings.sweep_interval_seconds,
                    login_request_ttl=timedelta(minutes=settings.login_request_ttl_minutes),
                    clock=clock,
                )
            )
        logger.info("Server is up and running!")
        yield
        if sweeper is not None:
            sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper

    app = FastAPI(lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.auth = auth

    @app.middleware("http")
    async def _auth_middleware(request: Request, call_next):
        raw = request.cookies.get(settings.cookie_name)
        request.state.user = await run_in_threadpool(resolve_session_user, store, raw, clock())
        return await call_next(request)

    # ------------------ Error mapping ------------------

    @app.exception_handler(ValidationError)
    async def _validation_error(request: Request, exc: ValidationError):
        logger.info("Rejected %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse({"error": "bad_request"}, status_code=400)

    @app.exception_handler(NotFound)
    async def _not_found(request: Request, exc: NotFound):
        # opaque: same body for unknown users and bad codes
        logger.info("Not found on %s: %s", request.url.path, exc)
        return JSONResponse({"error": "request_failed"}, status_code=500)

    @app.exception_handler(UpstreamFailure)
    async def _upstream(request: Request, exc: UpstreamFailure):
        logger.error("Upstream failure on %s: %s", request.url.path, exc)
        return JSONResponse({"error": "unavailable"}, status_code=503)

    @app.exception_handler(TemplateError)
    async def _template_error(request: Request, exc: TemplateError):
        logger.error("Could not render %s: %s", request.url.path, exc)
        return PlainTextResponse("Internal Server Error", status_code=500)

    # ------------------ Routes ------------------

    @app.post("/api/request_login")
    async def request_login(request: Request):
        body = await request.body()
        data = parse_request_data(
            body,
            required_keys=["email"],
            max_body_length=settings.max_body_length,
            max_string_length=settings.max_string_length,
        )
        tag = await run_in_threadpool(auth.request_login, data["email"])
        return {"ok": "yay", "tag": tag}

    @app.post("/api/logout")
    async def logout(request: Request):
        try:
            await run_in_threadpool(auth.logout, request.cookies.get(settings.cookie_name))
        except EventregError as e:
            logger.warning("Could not end session on logout: %s", e)
        resp = JSONResponse({"ok": "yeah"})
        resp.delete_cookie(settings.cookie_name, path="/")
        return resp

    @app.get("/api/me")
    def me(user: SessionUser = Depends(require_user)):
        return {
            "email": user.email,
            "name": user.name,
            "alias": user.alias,
            "affiliation": user.affiliation,
            "grade": user.grade,
            "want_mails": user.want_mails,
            "will_show_up": user.will_show_up,
        }

    @app.get("/l/{rest:path}")
    def login_link(rest: str):
        resp = RedirectResponse(url=f"{settings.web_root}/", status_code=302)
        parts = rest.split("/")
        if len(parts) < 2:
            logger.info("Login link rejected: incomplete link")
            return resp
        try:
            issued = auth.consume_login(parts[0], parts[1])
        except EventregError as e:
            logger.info("Login link rejected: %s", e)
            return resp
        resp.set_cookie(
            settings.cookie_name,
            issued.sid,
            max_age=settings.session_max_age,
            expires=settings.session_max_age,
            **cookie_settings(settings),
        )
        return resp

    @app.get("/{full_path:path}")
    def page(request: Request, full_path: str):
        path = page_path_for("/" + full_path)
        content = files.read_file(path)
        if content is None:
            return PlainTextResponse("Not Found", status_code=404)
        mime_type = mime_type_for(path)
        if mime_type != "text/html":
            return Response(content, media_type=mime_type)
        shell = files.read_file(SHELL_TEMPLATE)
        if shell is None:
            raise TemplateError(f"missing {SHELL_TEMPLATE}")
        html = render_page(
            shell.decode("utf-8"),
            content.decode("utf-8"),
            page_bindings(request, settings),
        )
        return Response(html, media_type="text/html")

    return app
