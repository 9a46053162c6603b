# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Login lifecycle: request a code, consume it for a session, log out.

A login attempt is ``REQUESTED`` once its row exists and ``CONSUMED`` once the
store hands it back from :meth:`consume_login_request`, which also deletes it.
There is no explicit expired state: stale rows are rejected on consumption and
removed by the sweeper.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from eventreg.auth.mail import Mailer, render_login_mail
from eventreg.auth.store import SessionStore
from eventreg.auth.tokens import (
    LOGIN_TAG_LENGTH,
    SESSION_ID_LENGTH,
    generate_numeric_code,
    generate_token,
)
from eventreg.auth.users import normalize_email
from eventreg.config import Settings
from eventreg.errors import NotFound, UpstreamFailure, ValidationError

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

COOKIE_VALUE_RE = re.compile(r"[0-9A-Za-z,]+")
TOKEN_RE = re.compile(r"[0-9A-Za-z]+")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def session_id_from_cookie(raw: Optional[str]) -> Optional[str]:
    """First comma-separated segment of a cookie value, if well-formed."""
    if not isinstance(raw, str) or not COOKIE_VALUE_RE.fullmatch(raw):
        return None
    first = raw.split(",")[0]
    if not TOKEN_RE.fullmatch(first):
        return None
    return first


@dataclass(frozen=True)
class IssuedSession:
    email: str
    sid: str
    expires: datetime


class AuthService:
    def __init__(
        self,
        store: SessionStore,
        mailer: Mailer,
        settings: Settings,
        clock: Clock = utcnow,
    ):
        self.store = store
        self.mailer = mailer
        self.settings = settings
        self.clock = clock

    def request_login(self, email: str) -> str:
        """Create a login request for ``email`` and mail its code. Returns the tag."""
        addr = normalize_email(email)
        if not addr:
            raise ValidationError("empty email")
        if self.store.find_user(addr) is None:
            raise NotFound("unknown user")

        tag = generate_token(LOGIN_TAG_LENGTH)
        code = generate_numeric_code(development=self.settings.development)
        self.store.create_login_request(addr, tag, code, self.clock())

        subject, body = render_login_mail(code, self.settings.website_host)
        try:
            self.mailer.send_mail(addr, subject, body)
        except UpstreamFailure:
            # the login request row is kept
            logger.exception("Could not deliver login code to %s", addr)
        return tag

    def consume_login(self, tag: str, code: str) -> IssuedSession:
        if not (isinstance(tag, str) and TOKEN_RE.fullmatch(tag)):
            raise NotFound("no such login request")
        if not (isinstance(code, str) and code.isdigit()):
            raise NotFound("no such login request")

        req = self.store.consume_login_request(tag, code)
        if req is None:
            raise NotFound("no such login request")

        now = self.clock()
        ttl = timedelta(minutes=self.settings.login_request_ttl_minutes)
        if req.created + ttl <= now:
            raise NotFound("login request expired")

        sid = generate_token(SESSION_ID_LENGTH)
        expires = now + timedelta(days=self.settings.session_days)
        self.store.create_session(req.email, sid, expires.isoformat())
        logger.info("Session issued for %s", req.email)
        return IssuedSession(email=req.email, sid=sid, expires=expires)

    def logout(self, raw_cookie: Optional[str]) -> None:
        sid = session_id_from_cookie(raw_cookie)
        if sid is None:
            return
        self.store.delete_session(sid)
