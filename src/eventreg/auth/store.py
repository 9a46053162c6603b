# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Persistence contract for users, login requests and sessions.

The production deployment talks to a graph database; the core only depends
on :class:`SessionStore`. :class:`MemoryStore` implements the contract in
process and is what the tests and single-worker setups use.

Implementations must make :meth:`SessionStore.consume_login_request` atomic:
two concurrent calls with the same tag and code yield exactly one record.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Protocol, Tuple

from eventreg.auth.users import normalize_email
from eventreg.errors import NotFound


@dataclass(frozen=True)
class LoginRequest:
    tag: str
    code: str
    email: str
    created: datetime


@dataclass(frozen=True)
class SessionRecord:
    sid: str
    email: str
    # ISO-8601 string, stored as-is
    expires: str



def parse_expiry(raw: str) -> datetime:
    """Parse a stored session expiry. Offset-less timestamps are read as UTC."""
    expires = datetime.fromisoformat(raw)
    if expires.tzinfo is None:
        expires = expires.replace(tzinfo=timezone.utc)
    return expires


class SessionStore(Protocol):
    def ping(self) -> None: ...

    def find_user(self, email: str) -> Optional[Dict[str, Any]]: ...

    def ensure_user(self, email: str) -> None: ...

    def create_login_request(self, email: str, tag: str, code: str, created: datetime) -> None: ...

    def consume_login_request(self, tag: str, code: str) -> Optional[LoginRequest]: ...

    def create_session(self, email: str, sid: str, expires: str) -> None: ...

    def find_session(self, sid: str) -> Optional[Tuple[SessionRecord, Any]]: ...

    def delete_session(self, sid: str) -> None: ...

    def delete_login_requests_until(self, cutoff: datetime) -> int: ...

    def delete_expired_sessions(self, now: datetime) -> int: ...


class MemoryStore:
    """Thread-safe in-process store. One lock guards every table."""

    def __init__(self, users: Optional[Mapping[str, Mapping[str, Any]]] = None):
        self._lock = threading.Lock()
        self._users: Dict[str, Dict[str, Any]] = {}
        self._login_requests: Dict[Tuple[str, str], LoginRequest] = {}
        self._sessions: Dict[str, SessionRecord] = {}
        for email, props in (users or {}).items():
            e = normalize_email(email)
            self._users[e] = {**dict(props), "email": e}

    def ping(self) -> None:
        return None

    # --- users ---

    def find_user(self, email: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            u = self._users.get(normalize_email(email))
            return dict(u) if u is not None else None

    def ensure_user(self, email: str) -> None:
        e = normalize_email(email)
        with self._lock:
            self._users.setdefault(e, {"email": e})

    # --- login requests ---

    def create_login_request(self, email: str, tag: str, code: str, created: datetime) -> None:
        e = normalize_email(email)
        with self._lock:
            if e not in self._users:
                raise NotFound("unknown user")
            self._login_requests[(tag, code)] = LoginRequest(tag=tag, code=code, email=e, created=created)

    def consume_login_request(self, tag: str, code: str) -> Optional[LoginRequest]:
        with self._lock:
            req = self._login_requests.pop((tag, code), None)
            if req is None or req.email not in self._users:
                return None
            return req

    def delete_login_requests_until(self, cutoff: datetime) -> int:
        """Drop login requests created at or before ``cutoff``."""
        with self._lock:
            stale = [k for k, r in self._login_requests.items() if r.created <= cutoff]
            for k in stale:
                del self._login_requests[k]
            return len(stale)

    def pending_login_requests(self) -> int:
        with self._lock:
            return len(self._login_requests)

    # --- sessions ---

    def create_session(self, email: str, sid: str, expires: str) -> None:
        e = normalize_email(email)
        with self._lock:
            if e not in self._users:
                raise NotFound("unknown user")
            self._sessions[sid] = SessionRecord(sid=sid, email=e, expires=expires)

    def find_session(self, sid: str) -> Optional[Tuple[SessionRecord, Any]]:
        with self._lock:
            s = self._sessions.get(sid)
            if s is None:
                return None
            user = self._users.get(s.email)
            if user is None:
                return None
            return s, dict(user)

    def delete_session(self, sid: str) -> None:
        with self._lock:
            self._sessions.pop(sid, None)

    def delete_expired_sessions(self, now: datetime) -> int:
        with self._lock:
            dead = []
            for sid, s in self._sessions.items():
                try:
                    if parse_expiry(s.expires) <= now:
                        dead.append(sid)
                except (TypeError, ValueError):
                    dead.append(sid)
            for sid in dead:
                del self._sessions[sid]
            return len(dead)

    def put_session_record(self, record: SessionRecord) -> None:
        """Store a raw session row without validation (maintenance and tests)."""
        with self._lock:
            self._sessions[record.sid] = record

    def has_session(self, sid: str) -> bool:
        with self._lock:
            return sid in self._sessions
