"""Tests for serialization of types and schemes."""

import json

import pytest

from biunify.schemes import Scheme
from biunify.serialization import from_dict, from_json, to_dict, to_json
from biunify.types import BOOL, INT, Func, Inter, Rec, Record, Union, Var, func, record


class TestToDict:
    """Tests for the wire form of types."""

    def test_scalar(self) -> None:
        assert to_dict(INT) == {"tag": "int"}

    def test_function(self) -> None:
        assert to_dict(func(INT, BOOL)) == {
            "tag": "func",
            "domain": {"tag": "int"},
            "range": {"tag": "bool"},
        }

    def test_record_fields_are_an_object(self) -> None:
        assert to_dict(record(y=BOOL, x=INT)) == {
            "tag": "record",
            "fields": {"x": {"tag": "int"}, "y": {"tag": "bool"}},
        }

    def test_members_are_a_list(self) -> None:
        assert to_dict(Union((Var(0), INT))) == {
            "tag": "union",
            "members": [{"tag": "var", "id": 0}, {"tag": "int"}],
        }

    def test_scheme(self) -> None:
        assert to_dict(Scheme(func(Var(1), Var(1)))) == {
            "tag": "scheme",
            "body": {
                "tag": "func",
                "domain": {"tag": "var", "id": 1},
                "range": {"tag": "var", "id": 1},
            },
        }

    def test_json_is_indented(self) -> None:
        text = to_json(INT)
        assert json.loads(text) == {"tag": "int"}
        assert text == '{\n  "tag": "int"\n}'


class TestFromDict:
    """Tests for reading types back."""

    @pytest.mark.parametrize(
        "t",
        [
            Rec(Var(0), record(head=INT, tail=Var(0))),
            Func(Inter((Var(0), INT)), Union((Var(0), INT))),
            Record(),
        ],
    )
    def test_types_read_back(self, t: object) -> None:
        assert from_dict(to_dict(t)) == t  # type: ignore[arg-type]

    def test_scheme_through_json(self) -> None:
        scheme = Scheme(func(record(x=Var(0)), Var(0)))
        restored = from_json(to_json(scheme))
        assert isinstance(restored, Scheme)
        assert restored == scheme
        assert str(restored) == "{x: 'a} -> 'a"

    def test_missing_tag(self) -> None:
        with pytest.raises(KeyError, match="tag"):
            from_dict({"domain": {"tag": "int"}})

    def test_unknown_tag(self) -> None:
        with pytest.raises(ValueError, match="Unknown tag 'tuple'"):
            from_dict({"tag": "tuple"})

    def test_missing_field(self) -> None:
        with pytest.raises(KeyError, match="range"):
            from_dict({"tag": "func", "domain": {"tag": "int"}})

    def test_scheme_body_must_be_a_type(self) -> None:
        nested = {"tag": "scheme", "body": {"tag": "scheme", "body": {"tag": "int"}}}
        with pytest.raises(ValueError, match="Expected a type"):
            from_dict(nested)
