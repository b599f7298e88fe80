"""Tests for error formatting."""

from biunify.errors import (
    ConstructorMismatch,
    DuplicateBinding,
    RecordFieldMissing,
    UnboundIdentifier,
)
from biunify.location import Location
from biunify.types import BOOL, INT, Var, func, record


class TestLocation:
    """Tests for location display."""

    def test_known_location(self) -> None:
        assert Location("main.x", 3, 7).describe() == "main.x:3:7"

    def test_unknown_location(self) -> None:
        assert not Location.unknown().is_known
        assert Location.unknown().describe() == "<unknown>"
        assert Location("main.x").describe() == "main.x"


class TestFormat:
    """Tests for the rendered error text."""

    def test_simple_error(self) -> None:
        error = UnboundIdentifier(
            message="Unbound identifier 'y'",
            location=Location("main.x", 2, 5),
            name="y",
        )
        assert str(error) == "main.x:2:5: [UnboundIdentifier] Unbound identifier 'y'"

    def test_mismatch_shows_both_types(self) -> None:
        error = ConstructorMismatch(
            message="Int is not a subtype of Bool",
            location=Location("main.x", 1, 4),
            lhs=INT,
            rhs=BOOL,
            reason="condition of if",
        )
        assert error.format().splitlines() == [
            "main.x:1:4: [ConstructorMismatch] Int is not a subtype of Bool",
            "  Expected: Bool",
            "  Actual:   Int",
            "  Reason:   condition of if",
        ]

    def test_mismatch_variables_share_names(self) -> None:
        error = ConstructorMismatch(
            message="Func is not a subtype of Int",
            location=Location.unknown(),
            lhs=func(Var(7), Var(7)),
            rhs=Var(7),
        )
        lines = error.format().splitlines()
        assert lines[1] == "  Expected: 'a"
        assert lines[2] == "  Actual:   'a -> 'a"
        assert len(lines) == 3

    def test_missing_field(self) -> None:
        error = RecordFieldMissing(
            message="Missing field 'z' in {x: Int}",
            location=Location.unknown(),
            label="z",
            lhs=record(x=INT),
            rhs=record(z=BOOL),
        )
        assert "  Missing:  z" in error.format()

    def test_duplicate_mentions_first_definition(self) -> None:
        error = DuplicateBinding(
            message="'f' is already defined",
            location=Location("m.x", 9, 1),
            name="f",
            previous=Location("m.x", 2, 1),
        )
        assert error.format().endswith("First defined at: m.x:2:1")
