"""Meet and join over the disjoint union of constructor-family lattices.

Each family (scalars, functions, records) exports its own meet and join; this
module dispatches on the families of the operands. Combining two different
families raises `ConstructorMismatch`: there is deliberately no global top or
bottom that would let, say, Bool and Func have a common bound.

Variables defer to the solver. Combining a variable with another type yields
the polar `Union`/`Inter` of both; when a bound lookup is supplied, the
variable's concrete bounds stand in as proxies for its eventual type and are
checked for compatibility with the other operand.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import TypeAlias

from biunify.errors import ConstructorMismatch
from biunify.lattice import functions, records, scalars
from biunify.location import Location
from biunify.types import (
    Bool,
    Func,
    Int,
    Inter,
    Polarity,
    Record,
    Type,
    Union,
    Var,
    inter,
    is_concrete,
    union,
)

BoundLookup: TypeAlias = Callable[[Var, Polarity], Iterable[Type]]
"""Returns a variable's lower bounds (POSITIVE) or upper bounds (NEGATIVE)."""

__all__ = [
    "BoundLookup",
    "combine",
    "equivalent",
    "is_subtype",
    "join",
    "meet",
]


def meet(a: Type, b: Type, bounds: BoundLookup | None = None) -> Type:
    """Greatest lower bound of `a` and `b`.

    Args:
        a: First type.
        b: Second type.
        bounds: Optional lookup of variable bounds used as proxies.

    Returns:
        The meet; an `Inter` when variables are involved.

    Raises:
        ConstructorMismatch: If the operands belong to different families.

    """
    return combine(a, b, Polarity.NEGATIVE, bounds)


def join(a: Type, b: Type, bounds: BoundLookup | None = None) -> Type:
    """Least upper bound of `a` and `b`.

    Args:
        a: First type.
        b: Second type.
        bounds: Optional lookup of variable bounds used as proxies.

    Returns:
        The join; a `Union` when variables are involved.

    Raises:
        ConstructorMismatch: If the operands belong to different families.

    """
    return combine(a, b, Polarity.POSITIVE, bounds)


def combine(
    a: Type,
    b: Type,
    polarity: Polarity,
    bounds: BoundLookup | None = None,
) -> Type:
    """Join (POSITIVE) or meet (NEGATIVE) of two types."""
    if a == b:
        return a

    variables: list[Type] = []
    head: Type | None = None
    for member in (*_members(a, polarity), *_members(b, polarity)):
        if isinstance(member, Var):
            variables.append(member)
        elif head is None:
            head = member
        else:
            head = combine_heads(head, member, polarity, bounds)

    if head is not None and bounds is not None:
        for var in variables:
            _check_proxies(var, head, polarity, bounds)

    if head is None:
        return _polar(polarity, variables)
    return _polar(polarity, [*variables, head]) if variables else head


def combine_heads(
    a: Type,
    b: Type,
    polarity: Polarity,
    bounds: BoundLookup | None = None,
) -> Type:
    """Combine two concrete constructors of the same family."""

    def meet_(x: Type, y: Type) -> Type:
        return combine(x, y, Polarity.NEGATIVE, bounds)

    def join_(x: Type, y: Type) -> Type:
        return combine(x, y, Polarity.POSITIVE, bounds)

    match (a, b):
        case (Bool(), Bool()) | (Int(), Int()):
            op = scalars.join if polarity.is_positive else scalars.meet
            return op(a, b)
        case (Func(domain=d1, range=r1), Func(domain=d2, range=r2)):
            op = functions.join if polarity.is_positive else functions.meet
            domain, range_ = op((d1, r1), (d2, r2), meet=meet_, join=join_)
            return Func(domain, range_)
        case (Record(), Record()):
            component = join_ if polarity.is_positive else meet_
            op = records.join if polarity.is_positive else records.meet
            return Record(tuple(op(a.as_dict(), b.as_dict(), combine=component).items()))

    verb = "join" if polarity.is_positive else "meet"
    raise ConstructorMismatch(
        message=f"No {verb} exists between {type(a).__name__} and {type(b).__name__}",
        location=Location.unknown(),
        lhs=a,
        rhs=b,
    )


def _members(t: Type, polarity: Polarity) -> tuple[Type, ...]:
    match t:
        case Union(members=ms) if polarity.is_positive:
            return ms
        case Inter(members=ms) if not polarity.is_positive:
            return ms
        case Union() | Inter():
            msg = f"Cannot combine {type(t).__name__} at {polarity.name} polarity"
            raise ValueError(msg)
    return (t,)


def _polar(polarity: Polarity, members: list[Type]) -> Type:
    return union(*members) if polarity.is_positive else inter(*members)


def _check_proxies(var: Var, head: Type, polarity: Polarity, bounds: BoundLookup) -> None:
    for proxy in bounds(var, polarity):
        if is_concrete(proxy):
            combine_heads(proxy, head, polarity)


def is_subtype(a: Type, b: Type) -> bool:  # noqa: PLR0911
    """Decide `a <: b` for closed types without consulting a store.

    Variables are only related to themselves. Unions on the left and
    intersections on the right are decomposed member-wise; a union on the
    right (or intersection on the left) succeeds if any member does, which is
    sound but not complete.
    """
    match (a, b):
        case (Union(members=ms), _):
            return all(is_subtype(m, b) for m in ms)
        case (_, Inter(members=ms)):
            return all(is_subtype(a, m) for m in ms)
        case (_, Union(members=ms)):
            return any(is_subtype(a, m) for m in ms)
        case (Inter(members=ms), _):
            return any(is_subtype(m, b) for m in ms)
        case (Var(), Var()):
            return a == b
        case (Bool(), Bool()) | (Int(), Int()):
            return True
        case (Func(domain=d1, range=r1), Func(domain=d2, range=r2)):
            return is_subtype(d2, d1) and is_subtype(r1, r2)
        case (Record(), Record()):
            for label, expected in b.fields:
                actual = a.get(label)
                if actual is None or not is_subtype(actual, expected):
                    return False
            return True
    return False


def equivalent(a: Type, b: Type) -> bool:
    """Mutual subtyping."""
    return is_subtype(a, b) and is_subtype(b, a)
