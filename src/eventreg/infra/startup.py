# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
import time
from typing import Callable, Iterable

from tenacity import RetryError, Retrying, stop_after_attempt, wait_incrementing

from eventreg.auth.store import SessionStore
from eventreg.errors import UpstreamFailure

logger = logging.getLogger(__name__)


def _log_retry(retry_state) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    delay = retry_state.next_action.sleep if retry_state.next_action else 0
    logger.warning("%s", exc)
    logger.warning("Retrying setup after %s seconds...", int(delay))


def wait_for_store(
    store: SessionStore,
    *,
    attempts: int = 10,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """Ping the store until it answers. Waits 1s, 2s, 3s, ... between attempts."""
    retrying = Retrying(
        stop=stop_after_attempt(attempts),
        wait=wait_incrementing(start=1, increment=1),
        before_sleep=_log_retry,
        sleep=sleep,
    )
    try:
        for attempt in retrying:
            with attempt:
                store.ping()
    except RetryError as e:
        last = e.last_attempt.exception()
        raise UpstreamFailure(f"store unreachable after {attempts} attempts: {last}") from last
    logger.info("Setup finished.")


def seed_admin_users(store: SessionStore, emails: Iterable[str]) -> None:
    for email in emails:
        store.ensure_user(email)
