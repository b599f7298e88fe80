"""Error types for the inference engine.

Solver and walker errors are raised as exceptions carrying the location of
the constraint that failed; the engine catches them per top-level definition
and reports them in order through `InferenceResult.errors`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

from biunify.types import format_type

if TYPE_CHECKING:
    from biunify.location import Location
    from biunify.types import Type


@dataclass
class TypeCheckError(Exception):
    """Base class for type checking errors.

    All errors include a location, a human-readable message and a short
    category label.
    """

    message: str
    location: Location

    category: ClassVar[str] = "TypeError"

    def __str__(self) -> str:
        return self.format()

    def format(self) -> str:
        """Format the error for display."""
        return f"{self.location.describe()}: [{self.category}] {self.message}"


@dataclass
class ConstructorMismatch(TypeCheckError):
    """Two types from different constructor families met in a constraint.

    Attributes:
        lhs: The type on the subtype side (or the existing bound)
        rhs: The type on the supertype side (or the new bound)
        reason: Why the constraint was generated

    """

    lhs: Type
    rhs: Type
    reason: str = ""

    category: ClassVar[str] = "ConstructorMismatch"

    def format(self) -> str:
        """Format the mismatch with both operand types."""
        names: dict[int, str] = {}
        lines = [
            f"{self.location.describe()}: [{self.category}] {self.message}",
            f"  Expected: {format_type(self.rhs, names)}",
            f"  Actual:   {format_type(self.lhs, names)}",
        ]
        if self.reason:
            lines.append(f"  Reason:   {self.reason}")
        return "\n".join(lines)


@dataclass
class RecordFieldMissing(TypeCheckError):
    """A field required by the wider record is absent from the narrower one."""

    label: str
    lhs: Type
    rhs: Type
    reason: str = ""

    category: ClassVar[str] = "RecordFieldMissing"

    def format(self) -> str:
        """Format the missing field with both record types."""
        names: dict[int, str] = {}
        lines = [
            f"{self.location.describe()}: [{self.category}] {self.message}",
            f"  Missing:  {self.label}",
            f"  Expected: {format_type(self.rhs, names)}",
            f"  Actual:   {format_type(self.lhs, names)}",
        ]
        if self.reason:
            lines.append(f"  Reason:   {self.reason}")
        return "\n".join(lines)


@dataclass
class OccursCheckFailure(TypeCheckError):
    """The runaway-recursion guard tripped, or a recursive type was rejected.

    This is an internal limitation rather than a user type error.
    """

    depth: int = 0

    category: ClassVar[str] = "OccursCheckFailure"


@dataclass
class UnboundIdentifier(TypeCheckError):
    """An identifier has no type in scope."""

    name: str

    category: ClassVar[str] = "UnboundIdentifier"


@dataclass
class DuplicateBinding(TypeCheckError):
    """A top-level name is defined more than once in a module."""

    name: str
    previous: Location

    category: ClassVar[str] = "DuplicateBinding"

    def format(self) -> str:
        """Format the duplicate with the location of the first definition."""
        return (
            f"{self.location.describe()}: [{self.category}] {self.message}\n"
            f"  First defined at: {self.previous.describe()}"
        )
