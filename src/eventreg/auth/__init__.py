# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Authentication (one-time code by email).

This package provides:
- Token and code generation
- The persistence contract and an in-memory store
- Login mail rendering and delivery
- The login/logout state machine
"""
