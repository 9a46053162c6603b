# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, Mapping, Optional

from eventreg.errors import ValidationError


def _check_value(data: Mapping[str, Any], key: str, types: Mapping[str, type], max_len: int) -> Any:
    expected = types.get(key, str)
    value = data[key]
    if not isinstance(value, expected) or (expected is not bool and isinstance(value, bool)):
        raise ValidationError(f"{key} is a {expected.__name__} (it's a {type(value).__name__})")
    if expected is str and len(value) > max_len:
        raise ValidationError("too_much_data")
    return value


def parse_request_data(
    body: bytes,
    *,
    required_keys: Iterable[str] = (),
    optional_keys: Iterable[str] = (),
    max_body_length: int = 512,
    max_string_length: int = 512,
    max_value_lengths: Optional[Mapping[str, int]] = None,
    types: Optional[Mapping[str, type]] = None,
) -> Dict[str, Any]:
    """Validate a JSON request body and pick the declared keys out of it."""
    max_value_lengths = max_value_lengths or {}
    types = types or {}
    if len(body) >= max_body_length:
        raise ValidationError("too_much_data")
    try:
        data = json.loads(body.decode("utf-8") or "null")
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ValidationError(f"invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ValidationError("body must be a JSON object")

    out: Dict[str, Any] = {}
    for key in required_keys:
        if key not in data:
            raise ValidationError(f"missing key: {key}")
        out[key] = _check_value(data, key, types, max_value_lengths.get(key, max_string_length))
    for key in optional_keys:
        if key in data:
            out[key] = _check_value(data, key, types, max_value_lengths.get(key, max_string_length))
    return out
