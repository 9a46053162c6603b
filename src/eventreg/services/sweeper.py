# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Removal of stale login requests and expired sessions.

Neither the login flow nor the request guard deletes expired rows, so
without this they accumulate in the store.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from eventreg.auth.store import SessionStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SweepResult:
    login_requests: int
    sessions: int


def sweep_expired(store: SessionStore, *, now: datetime, login_request_ttl: timedelta) -> SweepResult:
    result = SweepResult(
        login_requests=store.delete_login_requests_until(now - login_request_ttl),
        sessions=store.delete_expired_sessions(now),
    )
    if result.login_requests or result.sessions:
        logger.info(
            "Swept %d login requests and %d sessions", result.login_requests, result.sessions
        )
    return result


async def run_sweeper(
    store: SessionStore,
    *,
    interval_seconds: float,
    login_request_ttl: timedelta,
    clock: Callable[[], datetime],
) -> None:
    """Sweep every ``interval_seconds`` until cancelled."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            sweep_expired(store, now=clock(), login_request_ttl=login_request_ttl)
        except Exception:
            logger.exception("Sweep failed")
