import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from eventreg.app import create_app
from eventreg.auth.service import AuthService
from eventreg.auth.store import MemoryStore
from eventreg.config import Settings
from eventreg.errors import UpstreamFailure

SHELL = """<html><body>
<nav>#{logged_in ? 'Angemeldet als ' + h(user.email) : 'Nicht angemeldet'}</nav>
#{CONTENT}
</body></html>
"""


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingMailer:
    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    def send_mail(self, to: str, subject: str, html_body: str) -> None:
        if self.fail:
            raise UpstreamFailure("smtp down")
        self.sent.append((to, subject, html_body))


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture()
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture()
def store() -> MemoryStore:
    return MemoryStore(
        {
            "a@b.com": {"name": "Ada", "affiliation": "Gymnasium", "grade": 11},
            "Bob@Example.com": {"name": "Bob", "want_mails": False, "will_show_up": "yes"},
        }
    )


@pytest.fixture()
def static_dir(tmp_path: Path) -> Path:
    d = tmp_path / "static"
    d.mkdir()
    (d / "_template.html").write_text(SHELL, encoding="utf-8")
    (d / "index.html").write_text("<h1>Start</h1>", encoding="utf-8")
    (d / "about.html").write_text("<p>Pfad: #{path}</p>", encoding="utf-8")
    (d / "broken.html").write_text("<p>#{no_such_name}</p>", encoding="utf-8")
    (d / "style.css").write_text("body { color: #{red}; }", encoding="utf-8")
    return d


@pytest.fixture()
def settings(static_dir: Path, tmp_path: Path) -> Settings:
    return Settings(
        development=True,
        website_host="example.org",
        static_dir=static_dir,
        users_path=tmp_path / "users.yml",
    )


@pytest.fixture()
def auth(store, mailer, settings, clock) -> AuthService:
    return AuthService(store, mailer, settings, clock=clock)


@pytest.fixture()
def client(settings, store, mailer, clock) -> TestClient:
    return TestClient(create_app(settings, store, mailer, clock))
