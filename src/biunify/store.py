"""Arena of type variable records.

Types never hold live references to variable state: a `Var` cites an
identifier and every read or update of its bounds goes through the store.
One store belongs to one session (compilation unit) and lives as long as it.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

from biunify.types import (
    Func,
    Inter,
    Polarity,
    Rec,
    Record,
    Type,
    Union,
    Var,
    inter,
    union,
)


@dataclass
class VarRecord:
    """Mutable state of one type variable.

    Bounds are insertion-ordered sets keyed by the structural hash of the
    bound, so repeated identical bounds are stored once.

    Attributes:
        id: Identifier cited by `Var(id)`
        level: Let-nesting depth at creation, used for generalization
        hint: Optional name for debugging (parameter name, "result", ...)

    """

    id: int
    level: int
    hint: str | None = None
    lower: dict[Type, None] = field(default_factory=dict)
    upper: dict[Type, None] = field(default_factory=dict)

    @property
    def lower_bounds(self) -> tuple[Type, ...]:
        return tuple(self.lower)

    @property
    def upper_bounds(self) -> tuple[Type, ...]:
        return tuple(self.upper)

    def bounds(self, polarity: Polarity) -> tuple[Type, ...]:
        """Lower bounds for POSITIVE, upper bounds for NEGATIVE."""
        return self.lower_bounds if polarity.is_positive else self.upper_bounds


class VariableStore:
    """Arena keyed by monotonically increasing variable identifiers."""

    def __init__(self) -> None:
        self._records: dict[int, VarRecord] = {}
        self._next_id = 0

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, var: object) -> bool:
        key = var.id if isinstance(var, Var) else var
        return key in self._records

    def __iter__(self) -> Iterator[VarRecord]:
        return iter(self._records.values())

    def __getitem__(self, var: Var | int) -> VarRecord:
        key = var.id if isinstance(var, Var) else var
        if key not in self._records:
            msg = f"Type variable {key} is not in this store"
            raise KeyError(msg)
        return self._records[key]

    def fresh(self, level: int, hint: str | None = None) -> Var:
        """Allocate a new variable at the given level."""
        var = Var(self._next_id)
        self._records[var.id] = VarRecord(id=var.id, level=level, hint=hint)
        self._next_id += 1
        return var

    def add_lower(self, var: Var, bound: Type) -> bool:
        """Record `bound <: var`. Returns False if the bound was already known."""
        record = self[var]
        if bound in record.lower:
            return False
        record.lower[bound] = None
        return True

    def add_upper(self, var: Var, bound: Type) -> bool:
        """Record `var <: bound`. Returns False if the bound was already known."""
        record = self[var]
        if bound in record.upper:
            return False
        record.upper[bound] = None
        return True

    def bounds(self, var: Var, polarity: Polarity) -> tuple[Type, ...]:
        return self[var].bounds(polarity)

    def level_of(self, t: Type) -> int:
        """Highest level of the variables in `t`; 0 for closed types."""
        match t:
            case Var():
                return self[t].level
            case Func(domain=d, range=r):
                return max(self.level_of(d), self.level_of(r))
            case Record(fields=fs):
                return max((self.level_of(c) for _, c in fs), default=0)
            case Union(members=ms) | Inter(members=ms):
                return max(self.level_of(m) for m in ms)
            case Rec():
                msg = "Recursive binders must be instantiated before use in a store"
                raise ValueError(msg)
        return 0

    def fork(
        self,
        t: Type,
        above: int,
        level: int,
        cache: dict[int, Var] | None = None,
    ) -> Type:
        """Copy the variable graph of `t` for a new use site.

        Every variable whose level is greater than `above` is replaced by a
        fresh variable at `level`, with its bounds copied the same way.
        Variables at or below `above` are shared with the original. The
        memo table makes two occurrences of one variable map to one copy,
        which also terminates on cyclic bounds.

        Args:
            t: The generalized type to copy
            above: Level of the binding that generalized `t`
            level: Level of the use site
            cache: Memo from original to copied variable ids, shared across
                calls that must agree on the copies

        Returns:
            The copied type

        """
        memo: dict[int, Var] = {} if cache is None else cache
        return self._fork(t, above, level, memo)

    def _fork(self, t: Type, above: int, level: int, memo: dict[int, Var]) -> Type:
        if self.level_of(t) <= above:
            return t
        match t:
            case Var(id=vid):
                if vid in memo:
                    return memo[vid]
                original = self[vid]
                copy = self.fresh(level, original.hint)
                memo[vid] = copy
                for bound in original.lower_bounds:
                    self.add_lower(copy, self._fork(bound, above, level, memo))
                for bound in original.upper_bounds:
                    self.add_upper(copy, self._fork(bound, above, level, memo))
                return copy
            case Func(domain=d, range=r):
                return Func(self._fork(d, above, level, memo), self._fork(r, above, level, memo))
            case Record(fields=fs):
                return Record(tuple((n, self._fork(c, above, level, memo)) for n, c in fs))
            case Union(members=ms):
                return union(*(self._fork(m, above, level, memo) for m in ms))
            case Inter(members=ms):
                return inter(*(self._fork(m, above, level, memo) for m in ms))
        return t
