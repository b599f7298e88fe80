"""Simplification of inferred types into minimal principal types.

The pipeline has three stages:

1. Compaction: every variable occurrence at a polarity is expanded into the
   merge of the variable with its bounds on that side (lower bounds when
   positive, upper bounds when negative). Constructor heads are merged with
   the family lattice operations, so at most one head survives per
   occurrence. A variable reached again through a constructor while its own
   expansion is in progress becomes a recursive variable; a cycle made of
   variable-to-variable bounds only carries no information and is dropped.
2. Co-occurrence analysis: for each variable and polarity, the set of
   variables and scalar types present in *every* occurrence. A variable that
   occurs in one polarity only is removed when some type can stand in for it,
   variables that always occur together are coalesced, and a variable that
   always occurs with the same scalar type in both polarities is replaced by
   it. Without a top or bottom, a single-polarity variable linking otherwise
   unrelated occurrences stays: it is what keeps them in one family.
3. Reconstruction into a `Type`, using `Union`/`Inter` where several
   members remain and `Rec` binders where an expansion refers to itself.

The algebra has no top or bottom, so a variable that is alone in one of its
occurrences is never removed. A single-polarity variable bounded from the
other side by a scalar (or, negatively, by a record) is replaced by that
scalar (or the empty record), which is exact.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeAlias

from biunify.config import LOGGER_NAME
from biunify.errors import ConstructorMismatch
from biunify.lattice import functions, records, scalars
from biunify.location import Location
from biunify.types import (
    Bool,
    Func,
    Int,
    Inter,
    Polarity,
    Rec,
    Record,
    Type,
    Union,
    Var,
    inter,
    union,
    variables,
)

if TYPE_CHECKING:
    from biunify.store import VariableStore

logger = logging.getLogger(f"{LOGGER_NAME}.simplify")

POSITIVE = Polarity.POSITIVE
NEGATIVE = Polarity.NEGATIVE


@dataclass(frozen=True)
class CompactFunc:
    domain: Compact
    range: Compact


@dataclass(frozen=True)
class CompactRecord:
    fields: tuple[tuple[str, Compact], ...]


Head: TypeAlias = Bool | Int | CompactFunc | CompactRecord


@dataclass(frozen=True)
class Compact:
    """A polar occurrence: a set of variables plus at most one constructor."""

    vars: frozenset[int] = frozenset()
    head: Head | None = None

    @property
    def is_empty(self) -> bool:
        return not self.vars and self.head is None


def merge(polarity: Polarity, a: Compact, b: Compact) -> Compact:
    """Join (positive) or meet (negative) of two compact occurrences."""
    if a.head is None or b.head is None:
        head = a.head if b.head is None else b.head
    else:
        head = merge_heads(polarity, a.head, b.head)
    return Compact(a.vars | b.vars, head)


def merge_heads(polarity: Polarity, a: Head, b: Head) -> Head:
    """Combine two constructor heads using the lattice of their family."""

    def meet_(x: Compact, y: Compact) -> Compact:
        return merge(NEGATIVE, x, y)

    def join_(x: Compact, y: Compact) -> Compact:
        return merge(POSITIVE, x, y)

    positive = polarity.is_positive
    match (a, b):
        case (Bool(), Bool()) | (Int(), Int()):
            return scalars.join(a, b) if positive else scalars.meet(a, b)
        case (CompactFunc(), CompactFunc()):
            op = functions.join if positive else functions.meet
            domain, range_ = op((a.domain, a.range), (b.domain, b.range), meet=meet_, join=join_)
            return CompactFunc(domain, range_)
        case (CompactRecord(), CompactRecord()):
            op = records.join if positive else records.meet
            merged = op(dict(a.fields), dict(b.fields), combine=join_ if positive else meet_)
            return CompactRecord(tuple(sorted(merged.items())))

    verb = "join" if positive else "meet"
    raise ConstructorMismatch(
        message=f"No {verb} exists between {_head_name(a)} and {_head_name(b)}",
        location=Location.unknown(),
        lhs=_head_type(a),
        rhs=_head_type(b),
    )


def _head_name(head: Head) -> str:
    match head:
        case CompactFunc():
            return "Func"
        case CompactRecord():
            return "Record"
    return type(head).__name__


def _head_type(head: Head) -> Type:
    """Rough Type view of a head, for error messages."""
    match head:
        case CompactFunc(domain=d, range=r):
            return Func(_compact_type(d, NEGATIVE), _compact_type(r, POSITIVE))
        case CompactRecord(fields=fs):
            return Record(tuple((n, _compact_type(c, POSITIVE)) for n, c in fs))
    return head


def _compact_type(c: Compact, polarity: Polarity) -> Type:
    members: list[Type] = [Var(v) for v in sorted(c.vars)]
    if c.head is not None:
        members.append(_head_type(c.head))
    if not members:
        return Var(-1)
    return union(*members) if polarity.is_positive else inter(*members)


Atom: TypeAlias = int | Bool | Int


@dataclass
class Simplifier:
    """Simplifies types drawn from one store (or closed types, with no store).

    A simplifier is created per top-level definition. `simplify` analyzes the
    definition's signature; `annotate` then renders the types of the nodes
    inside the definition consistently with the decisions made for the
    signature.

    Attributes:
        store: Store holding the bounds of the variables; None for closed types
        body_level: Level of the definition's body. When annotating, variables
            at this level that are missing from the signature are shown as
            the types they were solved to.

    """

    store: VariableStore | None = None
    body_level: int | None = None

    # Compaction state
    _rec_bodies: dict[int, Type] = field(default_factory=dict)
    _recursive: dict[tuple[int, Polarity], int] = field(default_factory=dict)
    _rec_vars: dict[int, Compact] = field(default_factory=dict)
    _rec_polarity: dict[int, Polarity] = field(default_factory=dict)
    _next_synthetic: int = -1

    # Analysis state
    _subst: dict[int, int | None] = field(default_factory=dict)
    _removed_polarity: dict[int, Polarity] = field(default_factory=dict)
    _known: set[int] = field(default_factory=set)
    _resolved: dict[int, Type | None] = field(default_factory=dict)
    _fixed: dict[int, Head] = field(default_factory=dict)

    def simplify(self, t: Type, polarity: Polarity = POSITIVE) -> Type:
        """Simplify `t` as it occurs at `polarity`.

        Args:
            t: A raw inferred type or an already simplified closed type.
            polarity: Polarity of the occurrence (POSITIVE for a binding's type).

        Returns:
            An equivalent type with auxiliary variables removed.

        Raises:
            ConstructorMismatch: If a variable's bounds on one side have no
                join (or meet) in the algebra.

        """
        compact = self.compact(t, polarity)
        self.analyze([(compact, polarity)])
        result = self.rebuild(compact, polarity)
        logger.debug("simplified to %s", result)
        return result

    def annotate(self, t: Type, polarity: Polarity = POSITIVE) -> Type:
        """Render the type of a node inside an already simplified definition.

        Variables already decided by `simplify` keep their decision; a variable
        removed there that is left alone in an occurrence here is replaced by
        the bound it was removed in favour of. Variables of the body that the
        signature does not mention are fixed to their bounds.
        """
        compact = self.compact(t, polarity)
        self._settle(self.analyze([(compact, polarity)]))
        return self.rebuild(compact, polarity, resolve=True)

    # Compaction

    def _fresh_synthetic(self) -> int:
        vid = self._next_synthetic
        self._next_synthetic -= 1
        return vid

    def _bounds(self, vid: int, polarity: Polarity) -> tuple[Type, ...]:
        if vid in self._rec_bodies:
            return (self._rec_bodies[vid],)
        if self.store is not None and vid in self.store:
            return self.store.bounds(Var(vid), polarity)
        return ()

    def compact(self, t: Type, polarity: Polarity) -> Compact:
        """Expand the bounds of every variable of `t` into its occurrences."""
        lowest = min(variables(t), default=0)
        self._next_synthetic = min(self._next_synthetic, lowest - 1)
        return self._compact(t, polarity, frozenset(), frozenset())

    def _compact(  # noqa: PLR0911
        self,
        t: Type,
        polarity: Polarity,
        parents: frozenset[int],
        in_process: frozenset[tuple[int, Polarity]],
    ) -> Compact:
        match t:
            case Bool() | Int():
                return Compact(head=t)
            case Func(domain=d, range=r):
                return Compact(
                    head=CompactFunc(
                        self._compact(d, polarity.flip(), frozenset(), in_process),
                        self._compact(r, polarity, frozenset(), in_process),
                    ),
                )
            case Record(fields=fs):
                return Compact(
                    head=CompactRecord(
                        tuple((n, self._compact(c, polarity, frozenset(), in_process)) for n, c in fs),
                    ),
                )
            case Union(members=ms) | Inter(members=ms):
                if isinstance(t, Union) != polarity.is_positive:
                    msg = f"{type(t).__name__} cannot occur at {polarity.name} polarity"
                    raise ValueError(msg)
                result = Compact()
                for member in ms:
                    result = merge(polarity, result, self._compact(member, polarity, parents, in_process))
                return result
            case Rec(var=v, body=body):
                self._rec_bodies[v.id] = body
                return self._compact(v, polarity, parents, in_process)
            case Var(id=vid):
                return self._compact_var(vid, polarity, parents, in_process)
        msg = f"Cannot compact {t!r}"
        raise ValueError(msg)

    def _compact_var(
        self,
        vid: int,
        polarity: Polarity,
        parents: frozenset[int],
        in_process: frozenset[tuple[int, Polarity]],
    ) -> Compact:
        key = (vid, polarity)
        if key in in_process:
            if vid in parents:
                return Compact()
            if key not in self._recursive:
                rec = self._fresh_synthetic()
                self._recursive[key] = rec
                self._rec_polarity[rec] = polarity
            return Compact(vars=frozenset({self._recursive[key]}))

        result = Compact(vars=frozenset({vid}))
        for bound in self._bounds(vid, polarity):
            expanded = self._compact(bound, polarity, parents | {vid}, in_process | {key})
            result = merge(polarity, result, expanded)

        rec = self._recursive.get(key)
        if rec is None:
            return result
        self._rec_vars[rec] = result
        return Compact(vars=frozenset({rec}))

    # Analysis

    def analyze(self, roots: list[tuple[Compact, Polarity]]) -> list[int]:
        """Decide which variables to remove or coalesce.

        Variables decided by an earlier call are left untouched, so the
        decisions for a signature carry over to later annotations.

        Returns:
            The variables decided by this call, in order of appearance.

        """
        co: dict[tuple[int, Polarity], set[Atom]] = {}
        found: dict[int, list[Compact]] = {}
        analyzed: set[tuple[int, Polarity]] = set()
        for compact, polarity in roots:
            self._occurrences(compact, polarity, co, found, analyzed)

        fresh = [v for v in found if v not in self._known]
        self._known.update(fresh)

        for v in fresh:
            if v in self._rec_vars:
                continue
            positive, negative = (v, POSITIVE) in co, (v, NEGATIVE) in co
            if positive == negative:
                continue
            polarity = POSITIVE if positive else NEGATIVE
            fixed = self._stand_in(v, polarity)
            if fixed is not None:
                self._fixed[v] = fixed
            if fixed is not None or self._removable(v, polarity, found[v]):
                self._subst[v] = None
                self._removed_polarity[v] = polarity

        for v in fresh:
            if v in self._subst:
                continue
            self._coalesce(v, co, fresh)
        return fresh

    def _stand_in(self, v: int, polarity: Polarity) -> Head | None:
        """Exact replacement for a single-polarity variable bounded from the other side.

        A negative-only variable with lower bounds must be instantiated above
        them, and a positive-only one with upper bounds below them. For a
        scalar family the only choice is the scalar; records have a top, the
        empty record.
        """
        if v in self._rec_bodies:
            return None
        opposite = self.compact(Var(v), polarity.flip()).head
        if isinstance(opposite, Bool | Int):
            return opposite
        if isinstance(opposite, CompactRecord) and not polarity.is_positive:
            return CompactRecord(())
        return None

    def _removable(self, v: int, polarity: Polarity, found: list[Compact]) -> bool:
        """Whether a variable occurring at one polarity only can be dropped.

        Dropping `v` instantiates it to a type above (negative) or below
        (positive) everything it occurs with. With no top or bottom, such a
        type exists when `v` always occurs with the same companions, or when
        every occurrence has a constructor and those constructors combine.
        A variable that is all that links two occurrences is kept, since it
        is what forces them into one family.
        """
        rests = {Compact(c.vars - {v}, c.head) for c in found}
        if any(rest.is_empty for rest in rests):
            return False
        if len(rests) == 1:
            return True
        heads = [rest.head for rest in rests]
        if any(head is None for head in heads):
            return False
        combined = heads[0]
        try:
            for head in heads[1:]:
                combined = merge_heads(polarity.flip(), combined, head)
        except ConstructorMismatch:
            return False
        return True

    def _settle(self, fresh: list[int]) -> None:
        """Fix variables local to a definition's body to their bounds.

        Variables at `body_level` that do not occur in the signature are not
        generalized by anything, so a node's type shows what they were solved
        to. The join of the lower bounds satisfies every upper bound.
        """
        if self.store is None or self.body_level is None:
            return
        for v in fresh:
            if v in self._subst or v not in self.store:
                continue
            if self.store[v].level > self.body_level:
                continue
            for polarity in (POSITIVE, NEGATIVE):
                if self.compact(Var(v), polarity).head is not None:
                    self._subst[v] = None
                    self._removed_polarity[v] = polarity
                    break

    def _occurrences(
        self,
        c: Compact,
        polarity: Polarity,
        co: dict[tuple[int, Polarity], set[Atom]],
        found: dict[int, list[Compact]],
        analyzed: set[tuple[int, Polarity]],
    ) -> None:
        atoms: set[Atom] = set(c.vars)
        if isinstance(c.head, Bool | Int):
            atoms.add(c.head)
        for v in sorted(c.vars, key=_var_order):
            found.setdefault(v, []).append(c)
            key = (v, polarity)
            if key in co:
                co[key] &= atoms
            else:
                co[key] = set(atoms)
            if v in self._rec_vars and key not in analyzed:
                analyzed.add(key)
                self._occurrences(self._rec_vars[v], polarity, co, found, analyzed)
        match c.head:
            case CompactFunc(domain=d, range=r):
                self._occurrences(d, polarity.flip(), co, found, analyzed)
                self._occurrences(r, polarity, co, found, analyzed)
            case CompactRecord(fields=fs):
                for _, component in fs:
                    self._occurrences(component, polarity, co, found, analyzed)

    def _coalesce(
        self,
        v: int,
        co: dict[tuple[int, Polarity], set[Atom]],
        fresh: list[int],
    ) -> None:
        candidates = set(fresh)
        for polarity in (POSITIVE, NEGATIVE):
            for atom in sorted(co.get((v, polarity), ()), key=_atom_order):
                if v in self._subst:
                    return
                if not isinstance(atom, int):
                    if atom in co.get((v, polarity.flip()), ()):
                        self._subst[v] = None
                        self._removed_polarity[v] = polarity
                    continue
                w = atom
                if w == v or w in self._subst or w not in candidates:
                    continue
                if (v in self._rec_vars) != (w in self._rec_vars):
                    continue
                if v not in co.get((w, polarity), {v}):
                    continue
                self._subst[w] = v
                if w in self._rec_vars:
                    self._rec_vars[v] = merge(polarity, self._rec_vars[v], self._rec_vars.pop(w))
                else:
                    others = co.get((w, polarity.flip()), set())
                    opposite = co.get((v, polarity.flip()), set())
                    co[(v, polarity.flip())] = {t for t in opposite if t == v or t in others}

    # Reconstruction

    def rebuild(self, c: Compact, polarity: Polarity, *, resolve: bool = False) -> Type:
        """Turn a compact occurrence back into a `Type`, applying decisions."""
        return self._rebuild(c, polarity, {}, resolve=resolve)

    def _rebuild(
        self,
        c: Compact,
        polarity: Polarity,
        in_process: dict[tuple[Compact, Polarity], list[Var | None]],
        *,
        resolve: bool,
    ) -> Type:
        key = (c, polarity)
        if key in in_process:
            slot = in_process[key]
            if slot[0] is None:
                slot[0] = Var(self._fresh_synthetic())
            return slot[0]

        slot: list[Var | None] = [None]
        inner = {**in_process, key: slot}
        members = self._rebuild_members(c, polarity, inner, resolve=resolve)
        result = union(*members) if polarity.is_positive else inter(*members)
        if slot[0] is not None:
            return Rec(slot[0], result)
        return result

    def _rebuild_members(
        self,
        c: Compact,
        polarity: Polarity,
        in_process: dict[tuple[Compact, Polarity], list[Var | None]],
        *,
        resolve: bool,
    ) -> list[Type]:
        members: list[Type] = []
        kept: dict[int, None] = {}
        removed: list[int] = []
        for v in sorted(c.vars, key=_var_order):
            last, target = self._target(v)
            if target is None:
                removed.append(last)
            else:
                kept[target] = None

        for v in kept:
            if v in self._rec_vars:
                members.append(self._rebuild(self._rec_vars[v], polarity, in_process, resolve=resolve))
            else:
                members.append(Var(v))

        head = c.head
        for v in removed:
            fixed = self._fixed.get(v)
            if fixed is not None:
                head = fixed if head is None else merge_heads(polarity, head, fixed)

        match head:
            case Bool() | Int():
                members.append(head)
            case CompactFunc(domain=d, range=r):
                members.append(
                    Func(
                        self._rebuild(d, polarity.flip(), in_process, resolve=resolve),
                        self._rebuild(r, polarity, in_process, resolve=resolve),
                    ),
                )
            case CompactRecord(fields=fs):
                members.append(
                    Record(
                        tuple(
                            (n, self._rebuild(fc, polarity, in_process, resolve=resolve))
                            for n, fc in fs
                        ),
                    ),
                )

        if members:
            return members
        if resolve:
            members = [t for v in removed if (t := self._resolve(v)) is not None]
            if members:
                return members
        if removed:
            return [Var(removed[0])]
        msg = "Cannot rebuild an empty occurrence"
        raise ValueError(msg)

    def _target(self, v: int) -> tuple[int, int | None]:
        """Follow coalescing decisions from `v`.

        Returns the last variable reached and what it stands for: itself or
        the variable it was coalesced into, or None when it was removed.
        """
        target = self._subst.get(v, v)
        while target is not None and target != v and target in self._subst:
            v, target = target, self._subst[target]
        return v, target

    def _resolve(self, v: int) -> Type | None:
        """The type a removed variable was replaced by, if it had bounds."""
        if v in self._resolved:
            return self._resolved[v]
        self._resolved[v] = None
        polarity = self._removed_polarity.get(v, POSITIVE)
        expanded = self.compact(Var(v), polarity)
        rest = Compact(expanded.vars - {v}, expanded.head)
        if rest.is_empty:
            return None
        self._settle(self.analyze([(rest, polarity)]))
        resolved = self.rebuild(rest, polarity, resolve=True)
        self._resolved[v] = resolved
        return resolved


def _var_order(v: int) -> tuple[int, int]:
    # store variables first, in allocation order; synthetic ones after
    return (0, v) if v >= 0 else (1, -v)


def _atom_order(atom: Atom) -> tuple[int, int, int]:
    if isinstance(atom, int):
        return (0, *_var_order(atom))
    return (1, 0, 0 if isinstance(atom, Bool) else 1)


def simplify(
    t: Type,
    store: VariableStore | None = None,
    polarity: Polarity = POSITIVE,
) -> Type:
    """Simplify a type into its minimal principal form.

    Args:
        t: The type to simplify.
        store: The store holding the bounds of `t`'s variables; None for a
            closed type.
        polarity: Polarity at which `t` occurs.

    Returns:
        The simplified type.

    """
    return Simplifier(store).simplify(t, polarity)
