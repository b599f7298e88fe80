"""Lattices of the nullary families: Bool and Int.

Each family has exactly one element, so meet and join are the identity on
that element.
"""

from __future__ import annotations

from typing import TypeAlias

from biunify.types import Bool, Int

Scalar: TypeAlias = Bool | Int


def meet(a: Scalar, b: Scalar) -> Scalar:
    """Greatest lower bound of two elements of the same scalar family."""
    _require_same(a, b)
    return a


def join(a: Scalar, b: Scalar) -> Scalar:
    """Least upper bound of two elements of the same scalar family."""
    _require_same(a, b)
    return a


def _require_same(a: Scalar, b: Scalar) -> None:
    if type(a) is not type(b):
        msg = f"Scalar families differ: {type(a).__name__} vs {type(b).__name__}"
        raise ValueError(msg)
