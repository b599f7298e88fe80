"""Lattice of the record family.

A record is a partial map from labels to types. For lattice purposes it is a
total map where an absent label holds the top element of its slot: a record
with fewer fields is a supertype (width subtyping). Hence:

* meet keeps every label of either operand; labels present in both are met,
  a label present in one operand only is copied unchanged.
* join keeps only the labels present in both operands, joined.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import TypeAlias, TypeVar

T = TypeVar("T")

Combine: TypeAlias = Callable[[T, T], T]


def meet(
    first: Mapping[str, T],
    second: Mapping[str, T],
    *,
    combine: Combine[T],
) -> dict[str, T]:
    """Field-wise meet over the union of the labels."""
    result = dict(first)
    for label, component in second.items():
        result[label] = combine(result[label], component) if label in result else component
    return result


def join(
    first: Mapping[str, T],
    second: Mapping[str, T],
    *,
    combine: Combine[T],
) -> dict[str, T]:
    """Field-wise join over the labels present in both operands."""
    return {
        label: combine(component, second[label])
        for label, component in first.items()
        if label in second
    }
