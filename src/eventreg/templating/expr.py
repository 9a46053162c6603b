# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Small expression language for inline page expressions.

Grammar (lowest precedence first)::

    expr    := or ('?' expr ':' expr)?
    or      := and ('||' and)*
    and     := not ('&&' not)*
    not     := '!' not | cmp
    cmp     := concat (('==' | '!=') concat)?
    concat  := primary ('+' primary)*
    primary := STRING | INT | 'true' | 'false' | 'nil'
             | NAME '(' [expr (',' expr)*] ')'
             | NAME ('.' NAME)*
             | '(' expr ')'

Names resolve only against the bindings handed to :func:`evaluate`, and
field access only reaches mapping keys and dataclass fields. There is no
way to reach Python attributes, imports or builtins.
"""

from __future__ import annotations

import dataclasses
import html
import re
from typing import Any, Callable, Dict, List, Mapping, Tuple

from eventreg.errors import ExpressionError

_TOKEN_RE = re.compile(
    r"""
    \s*(?:
      (?P<string>'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*")
    | (?P<int>\d+)
    | (?P<name>[A-Za-z_][A-Za-z0-9_]*)
    | (?P<op>==|!=|&&|\|\||[?:.+!(),])
    )
    """,
    re.VERBOSE,
)

_ESCAPE_RE = re.compile(r"\\(.)")

Token = Tuple[str, Any]
Node = Callable[[Mapping[str, Any]], Any]


def _default(value: Any, fallback: Any) -> Any:
    return fallback if value is None or value == "" else value


def _escape(value: Any) -> str:
    return html.escape(to_text(value))


FUNCTIONS: Dict[str, Callable[..., Any]] = {
    "h": _escape,
    "default": _default,
}

CONSTANTS = {"true": True, "false": False, "nil": None}


def to_text(value: Any) -> str:
    if value is None:
        return ""
    if value is True:
        return "true"
    if value is False:
        return "false"
    return str(value)


def tokenize(source: str) -> List[Token]:
    tokens: List[Token] = []
    pos = 0
    end = len(source.rstrip())
    while pos < end:
        m = _TOKEN_RE.match(source, pos)
        if m is None or m.end() == pos:
            raise ExpressionError(f"unexpected character at {pos}: {source[pos:pos + 10]!r}")
        pos = m.end()
        kind = m.lastgroup
        text = m.group(kind)
        if kind == "string":
            tokens.append(("string", _ESCAPE_RE.sub(r"\1", text[1:-1])))
        elif kind == "int":
            tokens.append(("int", int(text)))
        else:
            tokens.append((kind, text))
    tokens.append(("end", None))
    return tokens


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, Mapping):
        if name not in obj:
            raise ExpressionError(f"no field {name!r}")
        return obj[name]
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        if name not in {f.name for f in dataclasses.fields(obj)}:
            raise ExpressionError(f"no field {name!r}")
        return getattr(obj, name)
    raise ExpressionError(f"cannot read {name!r} from {type(obj).__name__}")


def _add(a: Any, b: Any) -> Any:
    if isinstance(a, int) and isinstance(b, int) and not isinstance(a, bool) and not isinstance(b, bool):
        return a + b
    return to_text(a) + to_text(b)


class _Parser:
    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.i = 0

    def peek(self) -> Token:
        return self.tokens[self.i]

    def accept(self, op: str) -> bool:
        kind, value = self.peek()
        if kind == "op" and value == op:
            self.i += 1
            return True
        return False

    def expect(self, op: str) -> None:
        if not self.accept(op):
            raise ExpressionError(f"expected {op!r}, got {self.peek()[1]!r}")

    def parse(self) -> Node:
        node = self.expr()
        if self.peek()[0] != "end":
            raise ExpressionError(f"unexpected {self.peek()[1]!r}")
        return node

    def expr(self) -> Node:
        cond = self.or_()
        if not self.accept("?"):
            return cond
        yes = self.expr()
        self.expect(":")
        no = self.expr()
        return lambda env: yes(env) if cond(env) else no(env)

    def or_(self) -> Node:
        node = self.and_()
        while self.accept("||"):
            left, right = node, self.and_()
            node = lambda env, l=left, r=right: l(env) or r(env)
        return node

    def and_(self) -> Node:
        node = self.not_()
        while self.accept("&&"):
            left, right = node, self.not_()
            node = lambda env, l=left, r=right: l(env) and r(env)
        return node

    def not_(self) -> Node:
        if self.accept("!"):
            inner = self.not_()
            return lambda env: not inner(env)
        return self.cmp()

    def cmp(self) -> Node:
        left = self.concat()
        if self.accept("=="):
            right = self.concat()
            return lambda env: left(env) == right(env)
        if self.accept("!="):
            right = self.concat()
            return lambda env: left(env) != right(env)
        return left

    def concat(self) -> Node:
        node = self.primary()
        while self.accept("+"):
            left, right = node, self.primary()
            node = lambda env, l=left, r=right: _add(l(env), r(env))
        return node

    def primary(self) -> Node:
        kind, value = self.peek()
        if kind in ("string", "int"):
            self.i += 1
            return lambda env: value
        if kind == "name":
            self.i += 1
            if value in CONSTANTS:
                const = CONSTANTS[value]
                return lambda env: const
            if self.accept("("):
                return self.call(value)
            return self.lookup(value)
        if self.accept("("):
            node = self.expr()
            self.expect(")")
            return node
        raise ExpressionError(f"unexpected {value!r}")

    def call(self, fname: str) -> Node:
        fn = FUNCTIONS.get(fname)
        if fn is None:
            raise ExpressionError(f"unknown function {fname!r}")
        args: List[Node] = []
        if not self.accept(")"):
            args.append(self.expr())
            while self.accept(","):
                args.append(self.expr())
            self.expect(")")

        def run(env: Mapping[str, Any]) -> Any:
            try:
                return fn(*[a(env) for a in args])
            except TypeError as e:
                raise ExpressionError(f"{fname}(): {e}") from e

        return run

    def lookup(self, name: str) -> Node:
        path: List[str] = []
        while self.accept("."):
            kind, value = self.peek()
            if kind != "name":
                raise ExpressionError(f"expected field name after '.', got {value!r}")
            self.i += 1
            path.append(value)

        def run(env: Mapping[str, Any]) -> Any:
            if name not in env:
                raise ExpressionError(f"unknown name {name!r}")
            obj = env[name]
            for part in path:
                obj = _field(obj, part)
            return obj

        return run


def compile_expression(source: str) -> Node:
    return _Parser(tokenize(source)).parse()


def evaluate(source: str, bindings: Mapping[str, Any]) -> Any:
    """Evaluate ``source`` against ``bindings``. Raises ExpressionError."""
    return compile_expression(source)(bindings)
