from datetime import timedelta

import pytest

from eventreg.auth.store import SessionRecord
from eventreg.permissions import SessionUser, resolve_session_user


def _login(auth, email="a@b.com"):
    tag = auth.request_login(email)
    return auth.consume_login(tag, "123456")


def test_fresh_session_resolves_to_user(auth, store, clock):
    issued = _login(auth)
    user = resolve_session_user(store, issued.sid, clock())
    assert isinstance(user, SessionUser)
    assert user.email == "a@b.com"
    assert user.name == "Ada"
    assert user.affiliation == "Gymnasium"
    assert user.grade == 11


def test_defaults_for_unset_fields(auth, store, clock):
    issued = _login(auth)
    user = resolve_session_user(store, issued.sid, clock())
    assert user.want_mails is True
    assert user.will_show_up == "no"
    assert user.alias is None
    assert user.photo_sha1 is None


def test_explicit_fields_are_kept(auth, store, clock):
    issued = _login(auth, "bob@example.com")
    user = resolve_session_user(store, issued.sid, clock())
    assert user.email == "bob@example.com"
    assert user.want_mails is False
    assert user.will_show_up == "yes"


def test_expired_session_is_anonymous_but_kept(auth, store, clock):
    issued = _login(auth)
    clock.advance(days=365)
    assert resolve_session_user(store, issued.sid, clock()) is None
    assert store.has_session(issued.sid)


def test_session_valid_just_before_expiry(auth, store, clock):
    issued = _login(auth)
    clock.advance(days=365, seconds=-1)
    assert resolve_session_user(store, issued.sid, clock()) is not None


def test_only_first_cookie_segment_is_used(auth, store, clock):
    issued = _login(auth)
    assert resolve_session_user(store, f"{issued.sid},zzzz", clock()) is not None
    assert resolve_session_user(store, f"zzzz,{issued.sid}", clock()) is None


@pytest.mark.parametrize("raw", [None, "", "abc$def", "abc def", "ab;cd", "ä", ",abc", "abc\n"])
def test_malformed_cookies_are_anonymous(store, clock, raw):
    assert resolve_session_user(store, raw, clock()) is None


def test_unknown_session_is_anonymous(store, clock):
    assert resolve_session_user(store, "doesnotexist", clock()) is None


@pytest.mark.parametrize("expires", ["garbage", "", "2026-13-45T00:00:00"])
def test_unparsable_session_is_deleted(store, clock, expires):
    store.put_session_record(SessionRecord(sid="broken1", email="a@b.com", expires=expires))
    assert resolve_session_user(store, "broken1", clock()) is None
    assert not store.has_session("broken1")


def test_offset_less_expiry_is_read_as_utc(store, clock):
    naive = (clock.now.replace(tzinfo=None) + timedelta(days=1)).isoformat()
    store.put_session_record(SessionRecord(sid="naive1", email="a@b.com", expires=naive))
    user = resolve_session_user(store, "naive1", clock())
    assert user is not None and user.email == "a@b.com"
    assert store.has_session("naive1")


def test_offset_less_expiry_in_the_past_is_expired(store, clock):
    naive = (clock.now.replace(tzinfo=None) - timedelta(minutes=1)).isoformat()
    store.put_session_record(SessionRecord(sid="naive2", email="a@b.com", expires=naive))
    assert resolve_session_user(store, "naive2", clock()) is None
    assert store.has_session("naive2")


def test_broken_user_row_deletes_session(store, clock):
    class BrokenStore:
        deleted = []

        def find_session(self, sid):
            return SessionRecord(sid=sid, email="x@y.z", expires=(clock.now + timedelta(days=1)).isoformat()), None

        def delete_session(self, sid):
            self.deleted.append(sid)

    broken = BrokenStore()
    assert resolve_session_user(broken, "abc", clock()) is None
    assert broken.deleted == ["abc"]
