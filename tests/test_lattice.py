"""Tests for meet, join and closed subtyping."""

import pytest

from biunify.errors import ConstructorMismatch
from biunify.lattice import equivalent, is_subtype, join, meet
from biunify.lattice import records as record_lattice
from biunify.types import (
    BOOL,
    INT,
    Func,
    Inter,
    Polarity,
    Record,
    Union,
    Var,
    func,
    record,
)


class TestScalars:
    """Tests for the one-element scalar families."""

    def test_meet_and_join_are_identity(self) -> None:
        assert meet(INT, INT) == INT
        assert join(BOOL, BOOL) == BOOL

    def test_families_do_not_mix(self) -> None:
        with pytest.raises(ConstructorMismatch, match="No join"):
            join(INT, BOOL)
        with pytest.raises(ConstructorMismatch, match="No meet"):
            meet(BOOL, INT)

    def test_scalar_and_function_do_not_mix(self) -> None:
        with pytest.raises(ConstructorMismatch):
            join(INT, func(INT, INT))


class TestRecords:
    """Tests for the record family."""

    def test_meet_keeps_every_label(self) -> None:
        assert meet(record(x=INT), record(y=BOOL)) == record(x=INT, y=BOOL)

    def test_join_keeps_common_labels(self) -> None:
        assert join(record(x=INT, y=BOOL), record(y=BOOL, z=INT)) == record(y=BOOL)
        assert join(record(x=INT), record(y=BOOL)) == Record()

    def test_shared_fields_are_combined(self) -> None:
        a = record(f=record(x=INT))
        b = record(f=record(y=BOOL))
        assert meet(a, b) == record(f=record(x=INT, y=BOOL))
        assert join(a, b) == record(f=Record())

    def test_conflicting_shared_field(self) -> None:
        with pytest.raises(ConstructorMismatch):
            join(record(x=INT), record(x=BOOL))

    def test_family_module_copies_one_sided_fields(self) -> None:
        def fail(a: str, b: str) -> str:
            raise AssertionError((a, b))

        assert record_lattice.meet({"x": "1"}, {"y": "2"}, combine=fail) == {"x": "1", "y": "2"}
        assert record_lattice.join({"x": "1"}, {"y": "2"}, combine=fail) == {}


class TestFunctions:
    """Tests for the function family."""

    def test_meet_joins_domains(self) -> None:
        a = Func(record(x=INT), record(p=INT))
        b = Func(record(y=BOOL), record(q=BOOL))
        assert meet(a, b) == Func(Record(), record(p=INT, q=BOOL))

    def test_join_meets_domains(self) -> None:
        a = Func(record(x=INT), record(p=INT))
        b = Func(record(y=BOOL), record(q=BOOL))
        assert join(a, b) == Func(record(x=INT, y=BOOL), Record())


class TestVariables:
    """Tests for combining with type variables."""

    def test_join_with_variable_is_a_union(self) -> None:
        assert join(Var(0), INT) == Union((Var(0), INT))

    def test_meet_with_variable_is_an_inter(self) -> None:
        assert meet(INT, Var(0)) == Inter((Var(0), INT))

    def test_heads_are_merged_next_to_variables(self) -> None:
        result = join(Union((Var(0), record(x=INT, y=INT))), record(x=INT))
        assert result == Union((Var(0), record(x=INT)))

    def test_bound_proxies_are_checked(self) -> None:
        def bounds(var: Var, polarity: Polarity) -> tuple[object, ...]:
            return (BOOL,) if polarity.is_positive else ()

        with pytest.raises(ConstructorMismatch):
            join(Var(0), INT, bounds)
        assert meet(Var(0), INT, bounds) == Inter((Var(0), INT))

    def test_inter_is_rejected_in_a_join(self) -> None:
        with pytest.raises(ValueError, match="POSITIVE"):
            join(Inter((Var(0), INT)), INT)


class TestSubtyping:
    """Tests for closed subtyping."""

    def test_width_subtyping(self) -> None:
        assert is_subtype(record(x=INT, y=BOOL), record(x=INT))
        assert not is_subtype(record(x=INT), record(x=INT, y=BOOL))

    def test_function_domain_is_contravariant(self) -> None:
        wide = Func(record(x=INT), INT)
        narrow = Func(record(x=INT, y=BOOL), INT)
        assert is_subtype(wide, narrow)
        assert not is_subtype(narrow, wide)

    def test_distinct_families_are_unrelated(self) -> None:
        assert not is_subtype(INT, BOOL)
        assert not is_subtype(func(INT, INT), record())

    def test_variables_relate_to_themselves_only(self) -> None:
        assert is_subtype(Var(0), Var(0))
        assert not is_subtype(Var(0), Var(1))

    def test_polar_members(self) -> None:
        assert is_subtype(Union((Var(0), INT)), Union((Var(0), INT)))
        assert is_subtype(INT, Union((Var(0), INT)))
        assert not is_subtype(Union((Var(0), INT)), INT)

    def test_meet_is_below_both_operands(self) -> None:
        a = Func(record(x=INT), record(p=INT))
        b = Func(record(y=BOOL), record(q=BOOL))
        m = meet(a, b)
        assert is_subtype(m, a)
        assert is_subtype(m, b)
        assert equivalent(m, meet(b, a))
