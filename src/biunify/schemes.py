"""Type schemes: generalized types of let-bound and top-level definitions.

Two representations coexist. Inside a definition, a let-bound value is kept
as a `PolymorphicType`, which still points into the variable store and is
instantiated by copying every variable created deeper than its binding.
Once a top-level definition is solved and simplified it becomes a closed
`Scheme`: a store-independent type whose free variables are implicitly
universally quantified.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

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
    free_vars,
    inter,
    union,
)

if TYPE_CHECKING:
    from biunify.store import VariableStore


@dataclass(frozen=True)
class PolymorphicType:
    """A type generalized above `level`, still living in a store.

    Attributes:
        level: Level of the binding; variables deeper than it are quantified
        body: The inferred type of the bound value

    """

    level: int
    body: Type

    def instantiate(self, store: VariableStore, level: int) -> Type:
        """Fresh copy of the quantified part of `body` for a use at `level`."""
        return store.fork(self.body, self.level, level)


@dataclass(frozen=True)
class Scheme:
    """A closed principal type; every free variable is quantified."""

    body: Type

    @property
    def variables(self) -> tuple[int, ...]:
        return free_vars(self.body)

    @property
    def is_monomorphic(self) -> bool:
        """True when the body has no variables to quantify."""
        return not self.variables

    def instantiate(self, store: VariableStore, level: int) -> Type:
        """Create fresh store variables for the quantified variables.

        Two instantiations share no variables, so constraints on one use site
        never leak into another. A recursive binder becomes a variable bounded
        by its own body: from below in positive positions, from above in
        negative ones.

        Args:
            store: Store receiving the fresh variables.
            level: Level of the use site.

        Returns:
            A type whose variables all live in `store`.

        """
        return _Instantiation(store, level).go(self.body, Polarity.POSITIVE)

    def format(self) -> str:
        return format_type(self.body)

    def __str__(self) -> str:
        return self.format()


class _Instantiation:
    def __init__(self, store: VariableStore, level: int) -> None:
        self.store = store
        self.level = level
        self.mapping: dict[int, Var] = {}

    def _var(self, vid: int) -> Var:
        if vid not in self.mapping:
            self.mapping[vid] = self.store.fresh(self.level)
        return self.mapping[vid]

    def go(self, t: Type, polarity: Polarity) -> Type:
        match t:
            case Bool() | Int():
                return t
            case Var(id=vid):
                return self._var(vid)
            case Func(domain=d, range=r):
                return Func(self.go(d, polarity.flip()), self.go(r, polarity))
            case Record(fields=fs):
                return Record(tuple((n, self.go(c, polarity)) for n, c in fs))
            case Union(members=ms) if polarity.is_positive:
                return union(*(self.go(m, polarity) for m in ms))
            case Inter(members=ms) if not polarity.is_positive:
                return inter(*(self.go(m, polarity) for m in ms))
            case Rec(var=Var(id=vid), body=body):
                var = self.store.fresh(self.level)
                self.mapping[vid] = var
                bound = self.go(body, polarity)
                if polarity.is_positive:
                    self.store.add_lower(var, bound)
                else:
                    self.store.add_upper(var, bound)
                return var
        msg = f"{format_type(t)} cannot occur at {polarity.name} polarity"
        raise ValueError(msg)
