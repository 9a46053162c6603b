# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

from eventreg.errors import TemplateError
from eventreg.templating.expr import evaluate, to_text

logger = logging.getLogger(__name__)

MARKER_START = "#{"
CONTENT_PLACEHOLDER = "#{CONTENT}"

Evaluator = Callable[[str], Any]


def find_expression_end(s: str, start: int) -> int:
    """Index just past the ``}`` closing the marker that begins at ``start``.

    Braces inside the expression are balanced by counting.
    """
    balance = 1
    i = start + len(MARKER_START)
    while i < len(s) and balance > 0:
        c = s[i]
        if c == "}":
            balance -= 1
        elif c == "{":
            balance += 1
        i += 1
    if balance != 0:
        raise TemplateError(f"unbalanced expression starting at offset {start}: {s[start:start + 40]!r}")
    return i


def wrap_in_shell(shell: str, content: str) -> str:
    if CONTENT_PLACEHOLDER not in shell:
        raise TemplateError(f"shell template lacks {CONTENT_PLACEHOLDER}")
    return shell.replace(CONTENT_PLACEHOLDER, content, 1)


def expand_expressions(s: str, evaluator: Evaluator) -> str:
    """Replace every ``#{...}`` in ``s``, left to right.

    Scanning resumes after each replacement, so text produced by an
    expression is never evaluated again.
    """
    out = []
    pos = 0
    while True:
        index = s.find(MARKER_START, pos)
        if index < 0:
            break
        end = find_expression_end(s, index)
        code = s[index + len(MARKER_START):end - 1]
        try:
            value = evaluator(code)
        except TemplateError:
            logger.error("Error while evaluating: %s", code)
            raise
        out.append(s[pos:index])
        out.append(to_text(value))
        pos = end
    out.append(s[pos:])
    return "".join(out)


def render_page(shell: str, content: str, bindings: Mapping[str, Any]) -> str:
    """Wrap ``content`` in ``shell`` and evaluate its inline expressions."""
    return expand_expressions(wrap_in_shell(shell, content), lambda code: evaluate(code, bindings))
