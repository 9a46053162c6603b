# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

import yaml

# Properties a user node may carry; anything else in users.yml is ignored.
USER_FIELDS = (
    "name",
    "alias",
    "affiliation",
    "grade",
    "want_mails",
    "consent_real_name",
    "will_show_up",
    "photo_sha1",
    "photo_mime_type",
)


def normalize_email(email: str) -> str:
    return str(email or "").strip().lower()


def load_users(path: Path) -> Dict[str, Dict[str, Any]]:
    """Read the user seed file.

    Layout::

        users:
          someone@example.com:
            name: Some One
            grade: 10

    A missing file yields no users.
    """
    if not path.exists():
        return {}
    raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    users = (raw.get("users") or {}) if isinstance(raw, dict) else {}
    out: Dict[str, Dict[str, Any]] = {}
    for addr, udata in users.items():
        email = normalize_email(addr)
        if not email:
            continue
        props: Dict[str, Any] = {"email": email}
        if isinstance(udata, dict):
            for key in USER_FIELDS:
                if key in udata:
                    props[key] = udata[key]
        out[email] = props
    return out
