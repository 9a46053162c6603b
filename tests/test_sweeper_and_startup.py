import asyncio
from datetime import timedelta

import pytest

from eventreg.auth.store import MemoryStore, SessionRecord
from eventreg.errors import NotFound, UpstreamFailure
from eventreg.infra.startup import seed_admin_users, wait_for_store
from eventreg.services.sweeper import run_sweeper, sweep_expired


class FlakyStore(MemoryStore):
    def __init__(self, failures: int):
        super().__init__()
        self.failures = failures
        self.pings = 0

    def ping(self) -> None:
        self.pings += 1
        if self.pings <= self.failures:
            raise ConnectionError("connection refused")


def test_sweep_removes_stale_requests_and_dead_sessions(auth, store, clock):
    old_tag = auth.request_login("a@b.com")
    clock.advance(minutes=11)
    auth.request_login("a@b.com")
    live = auth.consume_login(auth.request_login("a@b.com"), "123456")
    store.put_session_record(SessionRecord(sid="gone", email="a@b.com", expires=(clock.now - timedelta(days=1)).isoformat()))
    store.put_session_record(SessionRecord(sid="junk", email="a@b.com", expires="junk"))

    result = sweep_expired(store, now=clock(), login_request_ttl=timedelta(minutes=10))

    assert result.login_requests == 1
    assert result.sessions == 2
    assert store.pending_login_requests() == 1
    assert store.has_session(live.sid)
    assert store.consume_login_request(old_tag, "123456") is None


def test_request_at_exactly_the_ttl_is_rejected_and_swept(auth, store, clock):
    auth.request_login("a@b.com")
    clock.advance(minutes=10)
    result = sweep_expired(store, now=clock(), login_request_ttl=timedelta(minutes=10))
    assert result.login_requests == 1
    assert store.pending_login_requests() == 0

    tag = auth.request_login("a@b.com")
    clock.advance(minutes=10)
    with pytest.raises(NotFound):
        auth.consume_login(tag, "123456")


def test_sweep_on_empty_store(store, clock):
    result = sweep_expired(store, now=clock(), login_request_ttl=timedelta(minutes=10))
    assert (result.login_requests, result.sessions) == (0, 0)


def test_run_sweeper_until_cancelled(store, clock):
    store.put_session_record(SessionRecord(sid="gone", email="a@b.com", expires="junk"))

    async def scenario():
        task = asyncio.create_task(
            run_sweeper(store, interval_seconds=0.01, login_request_ttl=timedelta(minutes=10), clock=clock)
        )
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())
    assert not store.has_session("gone")


def test_wait_for_store_backs_off_linearly():
    store = FlakyStore(failures=3)
    sleeps = []
    wait_for_store(store, attempts=10, sleep=sleeps.append)
    assert store.pings == 4
    assert sleeps == [1, 2, 3]


def test_wait_for_store_gives_up():
    store = FlakyStore(failures=100)
    sleeps = []
    with pytest.raises(UpstreamFailure):
        wait_for_store(store, attempts=4, sleep=sleeps.append)
    assert store.pings == 4
    assert sleeps == [1, 2, 3]


def test_seed_admin_users(store):
    seed_admin_users(store, ["admin@example.com", "a@b.com"])
    assert store.find_user("admin@example.com") == {"email": "admin@example.com"}
    assert store.find_user("a@b.com")["name"] == "Ada"
