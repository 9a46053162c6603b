# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Runtime settings read from ``EVENTREG_*`` environment variables.

Every value has a default that is safe for local development, so
``Settings()`` alone is enough for tests.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

BASE_DIR = Path(__file__).resolve().parent
PROJECT_DIR = BASE_DIR.parents[1]

TRUTHY = {"1", "true", "yes", "y"}
DEV_WEB_ROOT = "http://localhost:8025"


def _env(name: str, default: str = "") -> str:
    return os.getenv(f"EVENTREG_{name}", default)


def _env_flag(name: str, default: bool = False) -> bool:
    raw = _env(name, "1" if default else "0")
    return raw.strip().lower() in TRUTHY


def _env_list(name: str) -> Tuple[str, ...]:
    raw = _env(name, "")
    return tuple(x.strip().lower() for x in raw.split(",") if x.strip())


@dataclass(frozen=True)
class Settings:
    development: bool = True
    website_host: str = "localhost"
    web_root_override: Optional[str] = None

    static_dir: Path = BASE_DIR / "static"
    users_path: Path = PROJECT_DIR / "data" / "users.yml"

    cookie_name: str = "sid"
    session_days: int = 365
    login_request_ttl_minutes: int = 10

    max_body_length: int = 512
    max_string_length: int = 512

    admin_users: Tuple[str, ...] = field(default_factory=tuple)

    smtp_server: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_domain: str = ""
    smtp_from: str = "Anmeldung <noreply@localhost>"

    startup_attempts: int = 10
    sweep_interval_seconds: int = 0

    host: str = "0.0.0.0"
    port: int = 9292
    reload: bool = False

    @property
    def web_root(self) -> str:
        if self.web_root_override:
            return self.web_root_override.rstrip("/")
        if self.development:
            return DEV_WEB_ROOT
        return f"https://{self.website_host}"

    @property
    def secure_cookies(self) -> bool:
        return not self.development

    @property
    def session_max_age(self) -> int:
        return self.session_days * 24 * 3600

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            development=_env_flag("DEVELOPMENT", default=False),
            website_host=_env("WEBSITE_HOST", "localhost"),
            web_root_override=_env("WEB_ROOT") or None,
            static_dir=Path(_env("STATIC_DIR", str(BASE_DIR / "static"))).resolve(),
            users_path=Path(_env("USERS_PATH", str(PROJECT_DIR / "data" / "users.yml"))).resolve(),
            cookie_name=_env("COOKIE_NAME", "sid"),
            session_days=int(_env("SESSION_DAYS", "365")),
            login_request_ttl_minutes=int(_env("LOGIN_REQUEST_TTL_MINUTES", "10")),
            max_body_length=int(_env("MAX_BODY_LENGTH", "512")),
            max_string_length=int(_env("MAX_STRING_LENGTH", "512")),
            admin_users=_env_list("ADMIN_USERS"),
            smtp_server=_env("SMTP_SERVER"),
            smtp_port=int(_env("SMTP_PORT", "587")),
            smtp_user=_env("SMTP_USER"),
            smtp_password=_env("SMTP_PASSWORD"),
            smtp_domain=_env("SMTP_DOMAIN"),
            smtp_from=_env("SMTP_FROM", "Anmeldung <noreply@localhost>"),
            startup_attempts=int(_env("STARTUP_ATTEMPTS", "10")),
            sweep_interval_seconds=int(_env("SWEEP_INTERVAL", "0")),
            host=_env("HOST", "0.0.0.0"),
            port=int(_env("PORT", "9292")),
            reload=_env_flag("RELOAD"),
        )
