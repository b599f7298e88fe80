"""Subtype constraints exchanged between the AST walker and the solver."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from biunify.types import format_type

if TYPE_CHECKING:
    from biunify.location import Location
    from biunify.types import Type


@dataclass(frozen=True)
class SubtypeConstraint:
    """Subtype relationship: lhs must be usable where rhs is expected.

    Attributes:
        lhs: The subtype side
        rhs: The supertype side
        location: Syntactic origin, threaded through every derived constraint
        reason: Why the walker emitted the constraint
        depth: Number of derivation steps from the constraint the walker emitted

    """

    lhs: Type
    rhs: Type
    location: Location
    reason: str = ""
    depth: int = 0

    def derive(self, lhs: Type, rhs: Type) -> SubtypeConstraint:
        """Constraint produced by decomposing or propagating this one."""
        return replace(self, lhs=lhs, rhs=rhs, depth=self.depth + 1)

    def summary(self, names: dict[int, str] | None = None) -> str:
        """One-line summary of the constraint for debugging."""
        names = {} if names is None else names
        return f"{format_type(self.lhs, names)} <: {format_type(self.rhs, names)}"
