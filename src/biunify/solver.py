"""Biunification: solving subtype constraints by growing variable bounds.

Instead of computing a substitution, each constraint `lhs <: rhs` involving a
variable records a bound on it and propagates the bound against the opposite
bounds already known, so that every lower bound of a variable stays a subtype
of every upper bound. Constraints between constructors are decomposed
structurally. Let-polymorphism follows the level discipline: a bound living
at a deeper level than the variable it is attached to is first extruded (its
deeper variables copied down to the variable's level).
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING, TypeVar

from biunify import lattice
from biunify.config import LOGGER_NAME, EngineOptions
from biunify.constraints import SubtypeConstraint
from biunify.errors import (
    ConstructorMismatch,
    OccursCheckFailure,
    RecordFieldMissing,
    TypeCheckError,
)
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
    format_type,
    inter,
    is_concrete,
    union,
)

if TYPE_CHECKING:
    from biunify.store import VariableStore

logger = logging.getLogger(f"{LOGGER_NAME}.solver")


class Solver:
    """One solving session over a variable store.

    The session memoizes every constraint pair that involves a variable, so
    cyclic bounds (recursive types) are visited once and solving terminates.
    The first contradiction raises; the solver does not attempt recovery.
    """

    def __init__(self, store: VariableStore, options: EngineOptions | None = None) -> None:
        self.store = store
        self.options = options or EngineOptions()
        self._seen: set[tuple[Type, Type]] = set()
        self.processed = 0

    def constrain(
        self,
        lhs: Type,
        rhs: Type,
        location: Location | None = None,
        reason: str = "",
    ) -> None:
        """Enforce `lhs <: rhs`, updating variable bounds in the store.

        Args:
            lhs: The subtype side.
            rhs: The supertype side.
            location: Source location reported with any error.
            reason: Why the constraint exists, reported with any error.

        Raises:
            ConstructorMismatch: If two incompatible constructors meet.
            RecordFieldMissing: If a required record field is absent.
            OccursCheckFailure: If propagation exceeds the depth limit.

        """
        self.solve(
            [SubtypeConstraint(lhs, rhs, location or Location.unknown(), reason)],
        )

    def solve(self, constraints: list[SubtypeConstraint]) -> None:
        """Process constraints and everything they derive, depth first."""
        worklist = list(reversed(constraints))
        while worklist:
            constraint = worklist.pop()
            derived = self._step(constraint)
            worklist.extend(reversed(derived))

    def _step(self, c: SubtypeConstraint) -> list[SubtypeConstraint]:  # noqa: C901, PLR0911
        lhs, rhs = c.lhs, c.rhs
        if c.depth > self.options.max_constraint_depth:
            raise OccursCheckFailure(
                message=(
                    f"Constraint propagation exceeded depth "
                    f"{self.options.max_constraint_depth} while solving {c.summary()}"
                ),
                location=c.location,
                depth=c.depth,
            )

        if lhs == rhs:
            return []

        if isinstance(lhs, Var) or isinstance(rhs, Var):
            if (lhs, rhs) in self._seen:
                return []
            self._seen.add((lhs, rhs))

        self.processed += 1
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("constrain %s (depth %d)", c.summary(), c.depth)

        match (lhs, rhs):
            case (Union(members=ms), _):
                return [c.derive(m, rhs) for m in ms]
            case (_, Inter(members=ms)):
                return [c.derive(lhs, m) for m in ms]
            case (Inter(), _) | (_, Union()) | (Rec(), _) | (_, Rec()):
                msg = f"Constraint is not polar: {c.summary()}"
                raise ValueError(msg)
            case (Var(), _) if self.store.level_of(rhs) <= self.store.level_of(lhs):
                return self._add_upper(lhs, rhs, c)
            case (_, Var()) if self.store.level_of(lhs) <= self.store.level_of(rhs):
                return self._add_lower(rhs, lhs, c)
            case (Var(), _):
                target = self.store.level_of(lhs)
                return [c.derive(lhs, self.extrude(rhs, Polarity.NEGATIVE, target))]
            case (_, Var()):
                target = self.store.level_of(rhs)
                return [c.derive(self.extrude(lhs, Polarity.POSITIVE, target), rhs)]
            case (Bool(), Bool()) | (Int(), Int()):
                return []
            case (Func(domain=d1, range=r1), Func(domain=d2, range=r2)):
                return [c.derive(d2, d1), c.derive(r1, r2)]
            case (Record(), Record()):
                return self._decompose_records(lhs, rhs, c)

        raise ConstructorMismatch(
            message=f"{type(lhs).__name__} is not a subtype of {type(rhs).__name__}",
            location=c.location,
            lhs=lhs,
            rhs=rhs,
            reason=c.reason,
        )

    def _add_upper(self, var: Var, bound: Type, c: SubtypeConstraint) -> list[SubtypeConstraint]:
        self._check_bound(var, bound, Polarity.NEGATIVE, c)
        if not self.store.add_upper(var, bound):
            return []
        return [c.derive(lower, bound) for lower in self.store[var].lower_bounds]

    def _add_lower(self, var: Var, bound: Type, c: SubtypeConstraint) -> list[SubtypeConstraint]:
        self._check_bound(var, bound, Polarity.POSITIVE, c)
        if not self.store.add_lower(var, bound):
            return []
        return [c.derive(bound, upper) for upper in self.store[var].upper_bounds]

    def _check_bound(
        self,
        var: Var,
        bound: Type,
        polarity: Polarity,
        c: SubtypeConstraint,
    ) -> None:
        """Reject a concrete bound that has no join/meet with an existing one."""
        if not is_concrete(bound):
            return
        for existing in self.store.bounds(var, polarity):
            if not is_concrete(existing):
                continue
            try:
                lattice.combine(existing, bound, polarity)
            except ConstructorMismatch as exc:
                side = "lower" if polarity.is_positive else "upper"
                raise ConstructorMismatch(
                    message=f"Conflicting {side} bounds: {exc.message}",
                    location=c.location,
                    lhs=existing,
                    rhs=bound,
                    reason=c.reason,
                ) from exc

    def _decompose_records(
        self,
        lhs: Record,
        rhs: Record,
        c: SubtypeConstraint,
    ) -> list[SubtypeConstraint]:
        derived = []
        for label, expected in rhs.fields:
            actual = lhs.get(label)
            if actual is None:
                raise RecordFieldMissing(
                    message=f"Missing field '{label}' in {format_type(lhs)}",
                    location=c.location,
                    label=label,
                    lhs=lhs,
                    rhs=rhs,
                    reason=c.reason,
                )
            derived.append(c.derive(actual, expected))
        return derived

    def extrude(
        self,
        t: Type,
        polarity: Polarity,
        level: int,
        cache: dict[tuple[int, Polarity], Var] | None = None,
    ) -> Type:
        """Copy the variables of `t` deeper than `level` down to `level`.

        A positive copy is an upper bound of its original (the original's
        lower bounds flow into it); a negative copy is a lower bound.
        """
        memo: dict[tuple[int, Polarity], Var] = {} if cache is None else cache
        if self.store.level_of(t) <= level:
            return t
        match t:
            case Func(domain=d, range=r):
                return Func(
                    self.extrude(d, polarity.flip(), level, memo),
                    self.extrude(r, polarity, level, memo),
                )
            case Record(fields=fs):
                return Record(tuple((n, self.extrude(ft, polarity, level, memo)) for n, ft in fs))
            case Union(members=ms):
                return union(*(self.extrude(m, polarity, level, memo) for m in ms))
            case Inter(members=ms):
                return inter(*(self.extrude(m, polarity, level, memo) for m in ms))
            case Var(id=vid):
                key = (vid, polarity)
                if key in memo:
                    return memo[key]
                original = self.store[vid]
                copy = self.store.fresh(level, original.hint)
                memo[key] = copy
                if polarity.is_positive:
                    self.store.add_upper(t, copy)
                    for bound in original.lower_bounds:
                        self.store.add_lower(copy, self.extrude(bound, polarity, level, memo))
                else:
                    self.store.add_lower(t, copy)
                    for bound in original.upper_bounds:
                        self.store.add_upper(copy, self.extrude(bound, polarity, level, memo))
                return copy
        return t


E = TypeVar("E", bound=TypeCheckError)


def relocate(error: E, location: Location) -> E:
    """Attach a location to an error raised without one."""
    if error.location.is_known:
        return error
    return replace(error, location=location)
