# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import secrets

# Digits and lowercase consonants (no vowels).
BASE_31_ALPHABET = "0123456789bcdfghjklmnpqrstvwxyz"

LOGIN_TAG_LENGTH = 12
SESSION_ID_LENGTH = 24
CODE_LENGTH = 6
DEVELOPMENT_CODE = "123456"


def to_base31(i: int) -> str:
    """Encode a non-negative integer, least significant digit first."""
    out = []
    while i > 0:
        i, rem = divmod(i, 31)
        out.append(BASE_31_ALPHABET[rem])
    return "".join(out)


def generate_token(length: int = LOGIN_TAG_LENGTH) -> str:
    if length <= 0:
        raise ValueError("length must be positive")
    # 8 * length random bits give about 1.6 * length base-31 digits
    s = to_base31(int(secrets.token_hex(length), 16))[:length]
    return s.ljust(length, BASE_31_ALPHABET[0])


def generate_numeric_code(*, development: bool = False) -> str:
    if development:
        return DEVELOPMENT_CODE
    return "".join(secrets.choice("0123456789") for _ in range(CODE_LENGTH))
