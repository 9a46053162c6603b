#!/usr/bin/env python3
from __future__ import annotations

import yaml

from eventreg.auth.users import normalize_email
from eventreg.config import Settings

USERS_PATH = Settings.from_env().users_path


def main() -> None:
    USERS_PATH.parent.mkdir(parents=True, exist_ok=True)
    if USERS_PATH.exists():
        raw = yaml.safe_load(USERS_PATH.read_text(encoding="utf-8")) or {}
    else:
        raw = {"version": 1, "users": {}}

    if "users" not in raw or not isinstance(raw["users"], dict):
        raw["users"] = {}

    email = normalize_email(input("E-Mail: "))
    if not email or "@" not in email:
        raise SystemExit("Ungültige E-Mail-Adresse")
    name = input("Name: ").strip()
    affiliation = input("Schule / Verein: ").strip()
    grade = input("Klassenstufe: ").strip()
    want_mails = input("Newsletter? [Y/n]: ").strip().lower() != "n"

    entry = {"name": name, "want_mails": want_mails}
    if affiliation:
        entry["affiliation"] = affiliation
    if grade:
        entry["grade"] = int(grade) if grade.isdigit() else grade
    raw["users"][email] = entry

    USERS_PATH.write_text(yaml.safe_dump(raw, sort_keys=False, allow_unicode=True), encoding="utf-8")
    print(f"OK -> {USERS_PATH}")


if __name__ == "__main__":
    main()
