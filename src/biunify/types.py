"""Polar type algebra for the inference engine.

Types are immutable snapshots: a `Var` only cites an identifier of the
variable store, it never carries bounds itself. Concrete constructors form a
disjoint union of families (Bool, Int, Func, Record), each a distributive
lattice of its own. `Union`, `Inter` and `Rec` are the polar forms produced by
simplification; they are accepted back when a closed type is instantiated.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, TypeAlias, dataclass_transform

from biunify.config import TYPE_VARIABLE_NAMES, TYPE_VARIABLE_PREFIX


@dataclass(frozen=True)
@dataclass_transform(frozen_default=True)
class Type:
    """Base for all type values."""

    tag: ClassVar[str]
    registry: ClassVar[dict[str, type[Type]]] = {}

    def __init_subclass__(cls, tag: str | None = None) -> None:
        """Register type subclass with automatic tag derivation."""
        dataclass(frozen=True)(cls)
        cls.tag = tag if tag is not None else cls.__name__.lower()

        if (existing := Type.registry.get(cls.tag)) and existing is not cls:
            msg = (
                f"Tag '{cls.tag}' already registered to {existing}. "
                "Choose a different tag."
            )
            raise ValueError(msg)

        Type.registry[cls.tag] = cls

    def __str__(self) -> str:
        return format_type(self)


class Bool(Type, tag="bool"):
    """The boolean type."""


class Int(Type, tag="int"):
    """The integer type."""


class Func(Type, tag="func"):
    """Function type, contravariant in `domain` and covariant in `range`."""

    domain: Type
    range: Type


class Record(Type, tag="record"):
    """Record type: a partial map from labels to component types.

    Fields are kept sorted by label so that structurally equal records
    compare and hash equal regardless of construction order.
    """

    fields: tuple[tuple[str, Type], ...] = ()

    def __post_init__(self) -> None:
        ordered = tuple(
            (label, component)
            for label, component in sorted(self.fields, key=lambda item: item[0])
        )
        labels = [label for label, _ in ordered]
        if len(set(labels)) != len(labels):
            msg = f"Duplicate record labels: {labels}"
            raise ValueError(msg)
        object.__setattr__(self, "fields", ordered)

    @property
    def labels(self) -> tuple[str, ...]:
        return tuple(label for label, _ in self.fields)

    def get(self, label: str) -> Type | None:
        """Component type for `label`, or None when the field is absent."""
        for name, component in self.fields:
            if name == label:
                return component
        return None

    def as_dict(self) -> dict[str, Type]:
        return dict(self.fields)


class Var(Type, tag="var"):
    """Reference to a variable record in the store, by identifier."""

    id: int


class Union(Type, tag="union"):
    """Join of several types; only appears in positive positions."""

    members: tuple[Type, ...]


class Inter(Type, tag="inter"):
    """Meet of several types; only appears in negative positions."""

    members: tuple[Type, ...]


class Rec(Type, tag="rec"):
    """Recursive type binder: `var` stands for the whole of `body`."""

    var: Var
    body: Type


CONCRETE = (Bool, Int, Func, Record)

BOOL = Bool()
INT = Int()


class Polarity(Enum):
    """Whether an occurrence is an output (positive) or an input (negative)."""

    POSITIVE = 1
    NEGATIVE = -1

    @classmethod
    def of(cls, positive: bool) -> Polarity:  # noqa: FBT001
        return cls.POSITIVE if positive else cls.NEGATIVE

    @property
    def is_positive(self) -> bool:
        return self is Polarity.POSITIVE

    def flip(self) -> Polarity:
        """Polarity under a contravariant position."""
        return Polarity.NEGATIVE if self is Polarity.POSITIVE else Polarity.POSITIVE


def func(*types: Type) -> Type:
    """Build a curried function type: func(a, b, c) is a -> (b -> c)."""
    if len(types) < 2:  # noqa: PLR2004
        msg = "func() needs at least a parameter and a result type"
        raise ValueError(msg)
    result = types[-1]
    for param in reversed(types[:-1]):
        result = Func(param, result)
    return result


def record(fields: Mapping[str, Type] | None = None, /, **kwargs: Type) -> Record:
    """Build a record type from a mapping and/or keyword fields."""
    merged = dict(fields or {})
    merged.update(kwargs)
    return Record(tuple(merged.items()))


def sort_key(t: Type) -> tuple[int, int, str]:
    """Deterministic ordering used for members of unions and intersections."""
    match t:
        case Var(id=vid):
            return (0, vid, "")
        case _:
            return (1, 0, repr(t))


def _polar_members(kind: type[Union | Inter], members: tuple[Type, ...]) -> Type:
    flat: dict[Type, None] = {}
    for member in members:
        if isinstance(member, kind):
            flat.update(dict.fromkeys(member.members))
        else:
            flat[member] = None
    if not flat:
        msg = f"{kind.__name__} needs at least one member"
        raise ValueError(msg)
    ordered = tuple(sorted(flat, key=sort_key))
    if len(ordered) == 1:
        return ordered[0]
    return kind(ordered)


def union(*members: Type) -> Type:
    """Flattened, deduplicated join of `members`."""
    return _polar_members(Union, members)


def inter(*members: Type) -> Type:
    """Flattened, deduplicated meet of `members`."""
    return _polar_members(Inter, members)


def is_concrete(t: Type) -> bool:
    return isinstance(t, CONCRETE)


def variables(t: Type) -> tuple[int, ...]:
    """All variable identifiers in `t`, in order of first appearance."""
    seen: dict[int, None] = {}
    _collect_vars(t, seen, bound=None)
    return tuple(seen)


def free_vars(t: Type) -> tuple[int, ...]:
    """Variables of `t` that are not bound by a `Rec` binder."""
    seen: dict[int, None] = {}
    _collect_vars(t, seen, bound=frozenset())
    return tuple(seen)


def walk_types(t: Type) -> Iterator[Type]:
    """Pre-order traversal of `t` and all of its component types."""
    yield t
    match t:
        case Func(domain=d, range=r):
            yield from walk_types(d)
            yield from walk_types(r)
        case Record(fields=fs):
            for _, component in fs:
                yield from walk_types(component)
        case Union(members=ms) | Inter(members=ms):
            for member in ms:
                yield from walk_types(member)
        case Rec(body=body):
            yield from walk_types(body)


def _collect_vars(t: Type, seen: dict[int, None], bound: frozenset[int] | None) -> None:
    match t:
        case Var(id=vid):
            if bound is None or vid not in bound:
                seen[vid] = None
        case Func(domain=d, range=r):
            _collect_vars(d, seen, bound)
            _collect_vars(r, seen, bound)
        case Record(fields=fs):
            for _, component in fs:
                _collect_vars(component, seen, bound)
        case Union(members=ms) | Inter(members=ms):
            for member in ms:
                _collect_vars(member, seen, bound)
        case Rec(var=v, body=body):
            if bound is None:
                seen[v.id] = None
                _collect_vars(body, seen, None)
            else:
                _collect_vars(body, seen, bound | {v.id})
        case _:
            pass


def alpha_equivalent(a: Type, b: Type) -> bool:
    """Check equality up to a consistent renaming of variables.

    Only meant for assertions in tests; subtyping never uses it.
    """
    return _alpha(a, b, {}, {}) is not None


_Renaming: TypeAlias = tuple[dict[int, int], dict[int, int]]


def _alpha(
    a: Type,
    b: Type,
    forward: dict[int, int],
    backward: dict[int, int],
) -> _Renaming | None:
    match (a, b):
        case (Var(id=x), Var(id=y)):
            if forward.get(x, y) != y or backward.get(y, x) != x:
                return None
            return ({**forward, x: y}, {**backward, y: x})
        case (Bool(), Bool()) | (Int(), Int()):
            return (forward, backward)
        case (Func(domain=d1, range=r1), Func(domain=d2, range=r2)):
            step = _alpha(d1, d2, forward, backward)
            return None if step is None else _alpha(r1, r2, *step)
        case (Record(fields=f1), Record(fields=f2)):
            if [label for label, _ in f1] != [label for label, _ in f2]:
                return None
            step = (forward, backward)
            for (_, c1), (_, c2) in zip(f1, f2, strict=True):
                if step is None:
                    return None
                step = _alpha(c1, c2, *step)
            return step
        case (Union(members=m1), Union(members=m2)) | (
            Inter(members=m1),
            Inter(members=m2),
        ):
            if len(m1) != len(m2):
                return None
            return _alpha_members(list(m1), list(m2), forward, backward)
        case (Rec(var=v1, body=b1), Rec(var=v2, body=b2)):
            step = _alpha(v1, v2, forward, backward)
            return None if step is None else _alpha(b1, b2, *step)
    return None


def _alpha_members(
    left: list[Type],
    right: list[Type],
    forward: dict[int, int],
    backward: dict[int, int],
) -> _Renaming | None:
    """Match unordered members, backtracking over candidate pairings."""
    if not left:
        return (forward, backward)
    head, rest = left[0], left[1:]
    for i, candidate in enumerate(right):
        step = _alpha(head, candidate, forward, backward)
        if step is None:
            continue
        result = _alpha_members(rest, right[:i] + right[i + 1 :], *step)
        if result is not None:
            return result
    return None


def variable_name(index: int) -> str:
    """Display name for the index-th distinct variable: 'a, 'b, ..., 'a1."""
    letters = len(TYPE_VARIABLE_NAMES)
    letter = TYPE_VARIABLE_NAMES[index % letters]
    suffix = index // letters
    return f"{TYPE_VARIABLE_PREFIX}{letter}{suffix if suffix else ''}"


# Precedence levels for format_type
_PREC_ARROW = 0
_PREC_POLAR = 1
_PREC_ATOM = 2


def format_type(t: Type, names: dict[int, str] | None = None) -> str:
    """Render a type for humans.

    Variables are named 'a, 'b, ... in order of first appearance. Passing the
    same `names` dict across calls keeps the naming consistent between them.

    Args:
        t: The type to render
        names: Optional shared mapping from variable id to display name

    Returns:
        A string such as "Int -> {x: Bool} -> 'a | Int"

    """
    return _format(t, {} if names is None else names, _PREC_ARROW)


def _format(t: Type, names: dict[int, str], prec: int) -> str:
    match t:
        case Bool():
            return "Bool"
        case Int():
            return "Int"
        case Var(id=vid):
            if vid not in names:
                names[vid] = variable_name(len(names))
            return names[vid]
        case Func(domain=d, range=r):
            text = f"{_format(d, names, _PREC_POLAR)} -> {_format(r, names, _PREC_ARROW)}"
            return f"({text})" if prec > _PREC_ARROW else text
        case Record(fields=fs):
            inner = ", ".join(f"{label}: {_format(c, names, _PREC_ARROW)}" for label, c in fs)
            return f"{{{inner}}}"
        case Union(members=ms) | Inter(members=ms):
            sep = " | " if isinstance(t, Union) else " & "
            text = sep.join(_format(m, names, _PREC_ATOM) for m in ms)
            return f"({text})" if prec > _PREC_POLAR else text
        case Rec(var=v, body=body):
            text = f"rec {_format(v, names, _PREC_ATOM)}. {_format(body, names, _PREC_ARROW)}"
            return f"({text})" if prec > _PREC_ARROW else text
    return repr(t)
