from pathlib import Path

from eventreg.config import DEV_WEB_ROOT, Settings


def test_defaults_are_development():
    s = Settings()
    assert s.development
    assert s.web_root == DEV_WEB_ROOT
    assert not s.secure_cookies
    assert s.cookie_name == "sid"
    assert s.session_max_age == 365 * 24 * 3600


def test_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("EVENTREG_DEVELOPMENT", "0")
    monkeypatch.setenv("EVENTREG_WEBSITE_HOST", "physik.example.org")
    monkeypatch.setenv("EVENTREG_ADMIN_USERS", "Boss@Example.com, other@example.com,")
    monkeypatch.setenv("EVENTREG_STATIC_DIR", str(tmp_path))
    monkeypatch.setenv("EVENTREG_SWEEP_INTERVAL", "60")
    s = Settings.from_env()
    assert not s.development
    assert s.web_root == "https://physik.example.org"
    assert s.secure_cookies
    assert s.admin_users == ("boss@example.com", "other@example.com")
    assert s.static_dir == Path(tmp_path).resolve()
    assert s.sweep_interval_seconds == 60


def test_web_root_override(monkeypatch):
    monkeypatch.setenv("EVENTREG_WEB_ROOT", "https://staging.example.org/")
    assert Settings.from_env().web_root == "https://staging.example.org"
