# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations


class EventregError(Exception):
    """Base class for errors raised by the application core."""


class ValidationError(EventregError):
    """Bad or missing input field, or an oversized payload."""


class NotFound(EventregError):
    """Unknown email, unmatched tag+code or unmatched session."""


class CorruptedState(EventregError):
    """A persisted record exists but cannot be interpreted."""


class UpstreamFailure(EventregError):
    """The persistence store or the mail server failed."""


class TemplateError(EventregError):
    """A page could not be expanded."""


class ExpressionError(TemplateError):
    """An inline expression could not be parsed or evaluated."""
