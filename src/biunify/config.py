"""Configuration constants for the inference engine."""

from __future__ import annotations

from dataclasses import dataclass

# Solver limits
DEFAULT_MAX_CONSTRAINT_DEPTH = 2000  # Derivation depth before the runaway guard trips

# Policies
DEFAULT_ALLOW_RECURSIVE_TYPES = True  # Accept equi-recursive types in signatures
DEFAULT_STOP_AT_FIRST_ERROR = False  # Keep checking sibling definitions after an error

# Display
TYPE_VARIABLE_NAMES = "abcdefghijklmnopqrstuvwxyz"
TYPE_VARIABLE_PREFIX = "'"

# Logging
LOGGER_NAME = "biunify"


@dataclass(frozen=True)
class EngineOptions:
    """Options for one inference session.

    Attributes:
        max_constraint_depth: Longest chain of derived constraints accepted
            before reporting an OccursCheckFailure.
        allow_recursive_types: Whether signatures may contain recursive types.
        stop_at_first_error: Stop checking a module at its first failing
            definition instead of batching errors.

    """

    max_constraint_depth: int = DEFAULT_MAX_CONSTRAINT_DEPTH
    allow_recursive_types: bool = DEFAULT_ALLOW_RECURSIVE_TYPES
    stop_at_first_error: bool = DEFAULT_STOP_AT_FIRST_ERROR

    def __post_init__(self) -> None:
        if self.max_constraint_depth < 1:
            msg = f"max_constraint_depth must be positive, got {self.max_constraint_depth}"
            raise ValueError(msg)
