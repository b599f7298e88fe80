"""Lattice of the function family.

Functions are contravariant in their domain, so the domain of a meet is the
join of the domains and vice versa. The component combinators are passed in
so the same rules serve plain types and the compact types of simplification.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TypeAlias, TypeVar

T = TypeVar("T")

Combine: TypeAlias = Callable[[T, T], T]


def meet(
    first: tuple[T, T],
    second: tuple[T, T],
    *,
    meet: Combine[T],
    join: Combine[T],
) -> tuple[T, T]:
    """Meet of (domain, range) pairs: (d1 v d2, r1 ^ r2)."""
    return join(first[0], second[0]), meet(first[1], second[1])


def join(
    first: tuple[T, T],
    second: tuple[T, T],
    *,
    meet: Combine[T],
    join: Combine[T],
) -> tuple[T, T]:
    """Join of (domain, range) pairs: (d1 ^ d2, r1 v r2)."""
    return meet(first[0], second[0]), join(first[1], second[1])
