"""Source locations threaded from the AST into constraints and errors."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Location:
    """Position in a source file where a node or constraint originated.

    Attributes:
        file: Source file name (empty when unknown)
        line: 1-based line number (0 when unknown)
        column: 1-based column number (0 when unknown)

    """

    file: str = ""
    line: int = 0
    column: int = 0

    @classmethod
    def unknown(cls) -> Location:
        """Location used for synthesized nodes and constraints."""
        return cls()

    @property
    def is_known(self) -> bool:
        return self.line > 0

    def describe(self) -> str:
        """Human-readable description of the location."""
        if not self.is_known:
            return f"{self.file or '<unknown>'}"
        return f"{self.file or '<input>'}:{self.line}:{self.column}"

    def __str__(self) -> str:
        return self.describe()
