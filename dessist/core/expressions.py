"""
expressions.py
==============
Translation of SSIS expression syntax into Python expression text.

Only the structural subset is handled: variable references, literals,
arithmetic, comparison, logical operators, the conditional operator and
single assignments (`@[User::Count] = @[User::Count] + 1`). Casts such as
`(DT_WSTR, 10)` and function calls (`GETDATE()`, `SUBSTRING(...)`) have no
direct equivalent and are reported as untranslated so the emitter can write
a marked placeholder instead.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable

from dessist.core.naming import variable_identifier

logger = logging.getLogger(__name__)

VariableResolver = Callable[[str], str]


# ---------------------------------------------------------------------------
# Result container
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TranslatedExpression:
    """Outcome of translating one SSIS expression."""

    source: str
    code: str
    ok: bool = True
    target: str | None = None
    reason: str | None = None
    variables: tuple[str, ...] = ()

    def as_statement(self) -> str:
        if self.target is not None:
            return f"{self.target} = {self.code}"
        return self.code


class UntranslatableExpression(Exception):
    """Internal signal: the expression uses syntax with no Python equivalent."""


# ---------------------------------------------------------------------------
# Tokenizer
# ---------------------------------------------------------------------------

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
  | (?P<var>@\[(?P<bracketed>[^\]]+)\]|@(?P<bare>[A-Za-z_][\w]*(?:::[A-Za-z_][\w]*)?))
  | (?P<string>"(?:[^"\\]|\\.)*")
  | (?P<number>\d+\.\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?|\d+(?:[eE][+-]?\d+)?)[LlUuFfMm]*
  | (?P<op>==|!=|>=|<=|&&|\|\||[-+*/%<>!?:()=,])
  | (?P<ident>[A-Za-z_][\w]*)
    """,
    re.VERBOSE,
)

_STRING_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", '"': '"', "\\": "\\", "0": "\0"}


@dataclass(frozen=True)
class _Token:
    kind: str
    value: str


def _tokenize(text: str) -> list[_Token]:
    tokens: list[_Token] = []
    pos = 0
    while pos < len(text):
        m = _TOKEN_RE.match(text, pos)
        if m is None:
            raise UntranslatableExpression(f"unexpected character {text[pos]!r} at offset {pos}")
        pos = m.end()
        if m.lastgroup == "ws":
            continue
        if m.group("var"):
            tokens.append(_Token("var", m.group("bracketed") or m.group("bare")))
        elif m.group("string"):
            tokens.append(_Token("string", _decode_string(m.group("string"))))
        elif m.group("number"):
            tokens.append(_Token("number", m.group("number")))
        elif m.group("op"):
            tokens.append(_Token("op", m.group("op")))
        else:
            tokens.append(_Token("ident", m.group("ident")))
    return tokens


def _decode_string(literal: str) -> str:
    body = literal[1:-1]
    return re.sub(r"\\(.)", lambda m: _STRING_ESCAPES.get(m.group(1), m.group(1)), body)


# ---------------------------------------------------------------------------
# Recursive-descent translator
# ---------------------------------------------------------------------------

# Binding strength of emitted Python constructs; a child binding more loosely
# than its parent position requires gets parenthesised.
_TERNARY, _OR, _AND, _NOT, _CMP, _ADD, _MUL, _UNARY, _ATOM = range(1, 10)

_BINARY_LEVELS: list[tuple[int, dict[str, str]]] = [
    (_OR, {"||": "or"}),
    (_AND, {"&&": "and"}),
    (_CMP, {"==": "==", "!=": "!="}),
    (_CMP, {"<": "<", ">": ">", "<=": "<=", ">=": ">="}),
    (_ADD, {"+": "+", "-": "-"}),
    (_MUL, {"*": "*", "/": "/", "%": "%"}),
]

# Integer division truncates toward zero and the remainder follows the dividend;
# both go through helpers defined in the program header.
_ARITHMETIC_HELPERS = {"/": "ssis_divide", "%": "ssis_modulo"}


class _Translator:
    def __init__(self, tokens: list[_Token], resolve: VariableResolver) -> None:
        self._tokens = tokens
        self._pos = 0
        self._resolve = resolve
        self.variables: list[str] = []

    # -- token helpers ------------------------------------------------

    def _peek(self) -> _Token | None:
        return self._tokens[self._pos] if self._pos < len(self._tokens) else None

    def _accept(self, *ops: str) -> str | None:
        tok = self._peek()
        if tok is not None and tok.kind == "op" and tok.value in ops:
            self._pos += 1
            return tok.value
        return None

    def _expect(self, op: str) -> None:
        if self._accept(op) is None:
            found = self._peek()
            raise UntranslatableExpression(
                f"expected {op!r}, found {found.value if found else 'end of expression'!r}"
            )

    @staticmethod
    def _wrap(code: str, level: int, minimum: int) -> str:
        return f"({code})" if level < minimum else code

    # -- grammar ------------------------------------------------------

    def statement(self) -> tuple[str | None, str]:
        target: str | None = None
        tok = self._peek()
        nxt = self._tokens[self._pos + 1] if self._pos + 1 < len(self._tokens) else None
        if tok is not None and tok.kind == "var" and nxt is not None and nxt == _Token("op", "="):
            self._pos += 2
            target = self._variable(tok.value)
        code, _ = self.conditional()
        if self._peek() is not None:
            raise UntranslatableExpression(f"unexpected trailing token {self._peek().value!r}")
        return target, code

    def conditional(self) -> tuple[str, int]:
        cond, level = self._binary(0)
        if self._accept("?") is None:
            return cond, level
        when_true, t_level = self.conditional()
        self._expect(":")
        when_false, f_level = self.conditional()
        code = (
            f"{self._wrap(when_true, t_level, _OR)} if {self._wrap(cond, level, _OR)} "
            f"else {self._wrap(when_false, f_level, _TERNARY)}"
        )
        return code, _TERNARY

    def _binary(self, index: int) -> tuple[str, int]:
        if index == len(_BINARY_LEVELS):
            return self._unary()
        level, ops = _BINARY_LEVELS[index]
        left, left_level = self._binary(index + 1)
        while (op := self._accept(*ops)) is not None:
            right, right_level = self._binary(index + 1)
            if op in _ARITHMETIC_HELPERS:
                left, left_level = f"{_ARITHMETIC_HELPERS[op]}({left}, {right})", _ATOM
                continue
            # Comparisons never chain in the source language.
            minimum = level + 1 if level == _CMP else level
            left = (
                f"{self._wrap(left, left_level, minimum)} {ops[op]} "
                f"{self._wrap(right, right_level, level + 1)}"
            )
            left_level = level
        return left, left_level

    def _unary(self) -> tuple[str, int]:
        if self._accept("!") is not None:
            operand, level = self._unary()
            return f"not {self._wrap(operand, level, _NOT)}", _NOT
        if self._accept("-") is not None:
            operand, level = self._unary()
            return f"-{self._wrap(operand, level, _UNARY)}", _UNARY
        return self._primary()

    def _primary(self) -> tuple[str, int]:
        tok = self._peek()
        if tok is None:
            raise UntranslatableExpression("unexpected end of expression")

        if tok.kind == "op" and tok.value == "(":
            after = self._tokens[self._pos + 1] if self._pos + 1 < len(self._tokens) else None
            if after is not None and after.kind == "ident" and after.value.upper().startswith("DT_"):
                raise UntranslatableExpression(f"type cast ({after.value}) is not supported")
            self._pos += 1
            code, _ = self.conditional()
            self._expect(")")
            return f"({code})", _ATOM

        self._pos += 1
        if tok.kind == "var":
            return self._variable(tok.value), _ATOM
        if tok.kind == "string":
            return repr(tok.value), _ATOM
        if tok.kind == "number":
            return tok.value, _ATOM
        if tok.kind == "ident":
            upper = tok.value.upper()
            if upper in ("TRUE", "FALSE"):
                return upper.capitalize(), _ATOM
            if upper == "NULL":
                return "None", _ATOM
            raise UntranslatableExpression(f"function or identifier '{tok.value}' is not supported")
        raise UntranslatableExpression(f"unexpected token {tok.value!r}")

    def _variable(self, qualified: str) -> str:
        self.variables.append(qualified)
        return self._resolve(qualified)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def translate_expression(
    source: str,
    resolve: VariableResolver = variable_identifier,
) -> TranslatedExpression:
    """
    Translate an SSIS expression into Python source text.

    Never raises for bad input: an expression that cannot be translated
    comes back with `ok=False`, `code="None"` and the reason recorded.
    """
    text = source.strip()
    if not text:
        return TranslatedExpression(source=source, code="None", ok=False, reason="empty expression")

    try:
        translator = _Translator(_tokenize(text), resolve)
        target, code = translator.statement()
    except UntranslatableExpression as exc:
        logger.debug("Expression %r left untranslated: %s", source, exc)
        return TranslatedExpression(source=source, code="None", ok=False, reason=str(exc))

    return TranslatedExpression(
        source=source,
        code=code,
        target=target,
        variables=tuple(translator.variables),
    )
