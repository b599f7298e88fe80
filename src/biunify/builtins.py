"""Signatures of the built-in operators."""

from __future__ import annotations

from biunify.schemes import Scheme
from biunify.types import BOOL, INT, Var, func

_ARITHMETIC = Scheme(func(INT, INT, INT))
_COMPARISON = Scheme(func(INT, INT, BOOL))
_EQUALITY = Scheme(func(Var(0), Var(0), BOOL))
_LOGICAL = Scheme(func(BOOL, BOOL, BOOL))

BINARY_OPERATORS: dict[str, Scheme] = {
    "+": _ARITHMETIC,
    "-": _ARITHMETIC,
    "*": _ARITHMETIC,
    "/": _ARITHMETIC,
    "%": _ARITHMETIC,
    "<": _COMPARISON,
    "<=": _COMPARISON,
    ">": _COMPARISON,
    ">=": _COMPARISON,
    "==": _EQUALITY,
    "!=": _EQUALITY,
    "&&": _LOGICAL,
    "||": _LOGICAL,
}

UNARY_OPERATORS: dict[str, Scheme] = {
    "-": Scheme(func(INT, INT)),
    "!": Scheme(func(BOOL, BOOL)),
}


def binary_operator(op: str) -> Scheme | None:
    return BINARY_OPERATORS.get(op)


def unary_operator(op: str) -> Scheme | None:
    return UNARY_OPERATORS.get(op)
