# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional

from fastapi import HTTPException, Request

from eventreg.auth.service import session_id_from_cookie
from eventreg.auth.store import SessionStore, parse_expiry
from eventreg.config import Settings
from eventreg.errors import CorruptedState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionUser:
    email: str
    name: Optional[str]
    alias: Optional[str]
    affiliation: Optional[str]
    grade: Any
    want_mails: bool
    consent_real_name: Any
    will_show_up: str
    photo_sha1: Optional[str]
    photo_mime_type: Optional[str]


def _user_from_props(u: Mapping[str, Any]) -> SessionUser:
    want_mails = u.get("want_mails")
    return SessionUser(
        email=str(u["email"]).lower(),
        name=u.get("name"),
        alias=u.get("alias"),
        affiliation=u.get("affiliation"),
        grade=u.get("grade"),
        want_mails=True if want_mails is None else bool(want_mails),
        consent_real_name=u.get("consent_real_name"),
        will_show_up=u.get("will_show_up") or "no",
        photo_sha1=u.get("photo_sha1"),
        photo_mime_type=u.get("photo_mime_type"),
    )


def _check_session(expires_raw: Any, user: Any, now: datetime) -> Optional[SessionUser]:
    try:
        expires = parse_expiry(expires_raw)
        alive = expires > now
        session_user = _user_from_props(user)
    except (TypeError, ValueError, KeyError, AttributeError) as e:
        raise CorruptedState(str(e)) from e
    return session_user if alive else None


def resolve_session_user(store: SessionStore, raw_cookie: Optional[str], now: datetime) -> Optional[SessionUser]:
    """Map a raw ``sid`` cookie value to the logged-in user, or None.

    Unparsable session rows are deleted on sight. Expired rows are left for
    the sweeper.
    """
    sid = session_id_from_cookie(raw_cookie)
    if sid is None:
        return None
    hit = store.find_session(sid)
    if hit is None:
        return None
    session, user = hit
    try:
        return _check_session(session.expires, user, now)
    except CorruptedState as e:
        logger.warning("Deleting corrupted session %s...: %s", sid[:4], e)
        store.delete_session(sid)
        return None


def current_user_optional(request: Request) -> Optional[SessionUser]:
    return getattr(request.state, "user", None)


def require_user(request: Request) -> SessionUser:
    u = current_user_optional(request)
    if u:
        return u
    raise HTTPException(status_code=401, detail="Not logged in")


def cookie_settings(settings: Settings) -> dict:
    return {
        "httponly": True,
        "secure": settings.secure_cookies,
        "samesite": "lax",
        "path": "/",
    }
