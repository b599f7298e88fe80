"""Tests for the biunification solver."""

import pytest

from biunify.config import EngineOptions
from biunify.errors import (
    ConstructorMismatch,
    OccursCheckFailure,
    RecordFieldMissing,
    UnboundIdentifier,
)
from biunify.location import Location
from biunify.solver import Solver, relocate
from biunify.store import VariableStore
from biunify.types import BOOL, INT, Func, Record, Union, func, record


def make_solver(options: EngineOptions | None = None) -> tuple[VariableStore, Solver]:
    store = VariableStore()
    return store, Solver(store, options)


class TestVariableBounds:
    """Tests for bounds recorded on variables."""

    def test_upper_bound(self) -> None:
        store, solver = make_solver()
        a = store.fresh(1)
        solver.constrain(a, INT)
        assert store[a].upper_bounds == (INT,)
        assert store[a].lower_bounds == ()

    def test_lower_bound(self) -> None:
        store, solver = make_solver()
        a = store.fresh(1)
        solver.constrain(BOOL, a)
        assert store[a].lower_bounds == (BOOL,)

    def test_new_upper_bound_is_checked_against_lower_bounds(self) -> None:
        store, solver = make_solver()
        a = store.fresh(1)
        solver.constrain(INT, a)
        with pytest.raises(ConstructorMismatch):
            solver.constrain(a, BOOL)

    def test_lower_bounds_from_different_families(self) -> None:
        store, solver = make_solver()
        a = store.fresh(1)
        solver.constrain(INT, a)
        with pytest.raises(ConstructorMismatch, match="Conflicting lower bounds"):
            solver.constrain(BOOL, a)

    def test_upper_bounds_from_different_families(self) -> None:
        store, solver = make_solver()
        a = store.fresh(1)
        solver.constrain(a, func(INT, INT))
        with pytest.raises(ConstructorMismatch, match="Conflicting upper bounds"):
            solver.constrain(a, INT)

    def test_union_on_the_left_is_split(self) -> None:
        store, solver = make_solver()
        a, b = store.fresh(1), store.fresh(1)
        solver.constrain(Union((a, INT)), b)
        assert store[b].lower_bounds == (INT,)
        assert store[a].upper_bounds == (b,)

    def test_non_polar_constraint_is_rejected(self) -> None:
        store, solver = make_solver()
        a = store.fresh(1)
        with pytest.raises(ValueError, match="not polar"):
            solver.constrain(INT, Union((a, INT)))


class TestStructuralRules:
    """Tests for constructor decomposition."""

    def test_reflexivity(self) -> None:
        store, solver = make_solver()
        a = store.fresh(1)
        t = func(record(x=a), a)
        solver.constrain(t, t)
        assert store[a].lower_bounds == ()
        assert store[a].upper_bounds == ()

    def test_different_constructors(self) -> None:
        _, solver = make_solver()
        with pytest.raises(ConstructorMismatch, match="Int is not a subtype of Bool"):
            solver.constrain(INT, BOOL)

    def test_function_domain_is_contravariant(self) -> None:
        _, solver = make_solver()
        wide = Func(record(x=INT), INT)
        narrow = Func(record(x=INT, y=BOOL), INT)
        solver.constrain(wide, narrow)
        with pytest.raises(RecordFieldMissing) as excinfo:
            solver.constrain(narrow, wide)
        assert excinfo.value.label == "y"

    def test_width_subtyping(self) -> None:
        _, solver = make_solver()
        solver.constrain(record(x=INT, y=BOOL), record(x=INT))
        solver.constrain(record(x=INT), Record())
        with pytest.raises(RecordFieldMissing, match="Missing field 'y'"):
            solver.constrain(record(x=INT), record(x=INT, y=BOOL))

    def test_field_types_are_covariant(self) -> None:
        _, solver = make_solver()
        with pytest.raises(ConstructorMismatch):
            solver.constrain(record(x=INT), record(x=BOOL))

    def test_errors_carry_the_constraint_location(self) -> None:
        _, solver = make_solver()
        where = Location("main.x", 3, 4)
        with pytest.raises(ConstructorMismatch) as excinfo:
            solver.constrain(func(INT, INT), func(INT, BOOL), where, "call of f")
        assert excinfo.value.location == where
        assert excinfo.value.reason == "call of f"
        assert "main.x:3:4" in str(excinfo.value)


class TestPropagation:
    """Tests for transitivity and termination."""

    def test_transitive_flow(self) -> None:
        store, solver = make_solver()
        a, b = store.fresh(1), store.fresh(1)
        solver.constrain(INT, a)
        solver.constrain(a, b)
        solver.constrain(b, INT)
        with pytest.raises(ConstructorMismatch):
            solver.constrain(b, BOOL)

    def test_transitive_flow_in_any_order(self) -> None:
        store, solver = make_solver()
        a, b = store.fresh(1), store.fresh(1)
        solver.constrain(a, b)
        solver.constrain(b, BOOL)
        with pytest.raises(ConstructorMismatch):
            solver.constrain(INT, a)

    def test_cycles_terminate(self) -> None:
        store, solver = make_solver()
        a, b = store.fresh(1), store.fresh(1)
        solver.constrain(a, b)
        solver.constrain(b, a)
        solver.constrain(INT, a)
        assert INT in store[b].lower_bounds

    def test_recursive_bounds_terminate(self) -> None:
        store, solver = make_solver()
        a, b = store.fresh(1), store.fresh(1)
        solver.constrain(Func(INT, a), a)
        solver.constrain(a, Func(INT, b))
        solver.constrain(b, Func(INT, b))
        assert store[a].upper_bounds == (Func(INT, b), b)
        assert store[b].lower_bounds == (Func(INT, a),)

    def test_depth_limit(self) -> None:
        store, solver = make_solver(EngineOptions(max_constraint_depth=1))
        a = store.fresh(1)
        nested = record(a=record(b=record(c=INT)))
        target = record(a=record(b=record(c=a)))
        with pytest.raises(OccursCheckFailure) as excinfo:
            solver.constrain(nested, target)
        assert excinfo.value.depth == 2

    def test_processed_counter(self) -> None:
        store, solver = make_solver()
        a = store.fresh(1)
        solver.constrain(func(INT, INT), func(a, a))
        assert solver.processed == 3


class TestLevels:
    """Tests for extrusion across let levels."""

    def test_deeper_variables_are_extruded(self) -> None:
        store, solver = make_solver()
        shallow = store.fresh(1)
        deep = store.fresh(2)
        solver.constrain(shallow, Func(deep, INT))
        (bound,) = store[shallow].upper_bounds
        assert isinstance(bound, Func)
        assert store.level_of(bound) == 1
        assert bound.domain != deep
        assert bound.domain in store[deep].upper_bounds

    def test_same_level_needs_no_extrusion(self) -> None:
        store, solver = make_solver()
        a, b = store.fresh(2), store.fresh(1)
        solver.constrain(a, b)
        assert store[a].upper_bounds == (b,)
        assert len(store) == 2


class TestRelocate:
    """Tests for attaching locations to errors."""

    def test_unknown_location_is_replaced(self) -> None:
        error = UnboundIdentifier(message="x", location=Location.unknown(), name="x")
        moved = relocate(error, Location("f", 1, 1))
        assert moved.location == Location("f", 1, 1)
        assert moved.name == "x"

    def test_known_location_is_kept(self) -> None:
        error = UnboundIdentifier(message="x", location=Location("g", 2, 2), name="x")
        assert relocate(error, Location("f", 1, 1)) is error
