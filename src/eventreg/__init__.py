# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Event registration backend.

This package provides:
- One-time-code email login and cookie sessions
- A request guard resolving the session cookie to a user snapshot
- A page expander that wraps static HTML in a shared shell and fills in
  inline expressions
"""
