"""Tests for the type representation."""

import pytest

from biunify.types import (
    BOOL,
    INT,
    Func,
    Inter,
    Polarity,
    Rec,
    Record,
    Type,
    Union,
    Var,
    alpha_equivalent,
    format_type,
    free_vars,
    func,
    inter,
    record,
    union,
    variable_name,
    variables,
    walk_types,
)


class TestConstructors:
    """Tests for building types."""

    def test_func_is_curried(self) -> None:
        assert func(INT, BOOL, INT) == Func(INT, Func(BOOL, INT))

    def test_func_needs_two_types(self) -> None:
        with pytest.raises(ValueError, match="at least"):
            func(INT)

    def test_record_fields_are_sorted(self) -> None:
        r = Record((("y", INT), ("x", BOOL)))
        assert r.labels == ("x", "y")
        assert r == record(x=BOOL, y=INT)
        assert hash(r) == hash(record(y=INT, x=BOOL))

    def test_record_rejects_duplicate_labels(self) -> None:
        with pytest.raises(ValueError, match="Duplicate"):
            Record((("x", INT), ("x", BOOL)))

    def test_record_get(self) -> None:
        r = record(x=INT)
        assert r.get("x") == INT
        assert r.get("y") is None

    def test_types_are_registered_by_tag(self) -> None:
        assert Type.registry["func"] is Func
        assert Type.registry["rec"] is Rec


class TestPolarMembers:
    """Tests for union and inter helpers."""

    def test_single_member_is_returned_unchanged(self) -> None:
        assert union(INT) == INT
        assert inter(INT, INT) == INT

    def test_members_are_flattened_and_sorted(self) -> None:
        result = union(Var(1), union(Var(0), INT))
        assert result == Union((Var(0), Var(1), INT))

    def test_inter_flattens_only_inter(self) -> None:
        result = inter(Var(2), Inter((Var(1), BOOL)))
        assert result == Inter((Var(1), Var(2), BOOL))

    def test_empty_is_rejected(self) -> None:
        with pytest.raises(ValueError, match="at least one member"):
            union()


class TestVariables:
    """Tests for variable collection and alpha-equivalence."""

    def test_free_vars_skip_recursive_binders(self) -> None:
        t = Rec(Var(0), Func(Var(0), Var(1)))
        assert variables(t) == (0, 1)
        assert free_vars(t) == (1,)

    def test_alpha_equivalent_renaming(self) -> None:
        assert alpha_equivalent(func(Var(3), Var(3)), func(Var(7), Var(7)))

    def test_alpha_equivalence_respects_sharing(self) -> None:
        assert not alpha_equivalent(func(Var(1), Var(2)), func(Var(1), Var(1)))
        assert not alpha_equivalent(func(Var(1), Var(1)), func(Var(1), Var(2)))

    def test_alpha_equivalence_ignores_member_order(self) -> None:
        a = Func(INT, Union((Var(0), Var(1))))
        b = Func(INT, Union((Var(5), Var(4))))
        assert alpha_equivalent(a, b)

    def test_walk_types_visits_components(self) -> None:
        t = func(record(x=INT), BOOL)
        assert list(walk_types(t)) == [t, record(x=INT), INT, BOOL]


class TestPolarity:
    """Tests for the Polarity enum."""

    def test_flip(self) -> None:
        assert Polarity.POSITIVE.flip() is Polarity.NEGATIVE
        assert Polarity.NEGATIVE.flip() is Polarity.POSITIVE

    def test_of(self) -> None:
        assert Polarity.of(True) is Polarity.POSITIVE
        assert not Polarity.of(False).is_positive


class TestFormatting:
    """Tests for human-readable rendering."""

    def test_scalars_and_functions(self) -> None:
        assert format_type(func(INT, INT)) == "Int -> Int"
        assert format_type(func(INT, BOOL, INT)) == "Int -> Bool -> Int"

    def test_function_domain_is_parenthesized(self) -> None:
        assert format_type(Func(func(INT, INT), INT)) == "(Int -> Int) -> Int"

    def test_records(self) -> None:
        assert format_type(record(y=INT, x=BOOL)) == "{x: Bool, y: Int}"
        assert format_type(Record()) == "{}"

    def test_variables_are_named_by_first_appearance(self) -> None:
        assert format_type(func(Var(9), Var(4), Var(9))) == "'a -> 'b -> 'a"

    def test_union_and_inter(self) -> None:
        t = Func(Inter((Var(0), INT)), Union((Var(0), INT)))
        assert format_type(t) == "'a & Int -> 'a | Int"

    def test_recursive(self) -> None:
        assert str(Rec(Var(3), record(tail=Var(3)))) == "rec 'a. {tail: 'a}"

    def test_shared_names(self) -> None:
        names: dict[int, str] = {}
        assert format_type(Var(5), names) == "'a"
        assert format_type(Var(6), names) == "'b"
        assert format_type(Var(5), names) == "'a"

    def test_variable_names_wrap(self) -> None:
        assert variable_name(0) == "'a"
        assert variable_name(25) == "'z"
        assert variable_name(26) == "'a1"
