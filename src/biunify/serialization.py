"""Serialization of closed types and schemes.

Only closed types cross a session boundary, so these are the only values with
a wire form. The format is tag-based JSON: each type is an object whose
`tag` names its class in `Type.registry` and whose other keys are its fields.
"""

from __future__ import annotations

import json
from dataclasses import fields
from typing import Any

from biunify.schemes import Scheme
from biunify.types import Record, Type

_SCHEME_TAG = "scheme"
_MAX_TAGS_IN_ERROR = 10  # Maximum number of tags to show in error messages


def to_dict(obj: Type | Scheme) -> dict[str, Any]:
    """Serialize a type or scheme to a dictionary.

    Args:
        obj: Type or Scheme to serialize

    Returns:
        Dictionary representation of the object

    Raises:
        ValueError: If object type cannot be serialized

    """
    if isinstance(obj, Scheme):
        return {"tag": _SCHEME_TAG, "body": to_dict(obj.body)}
    if isinstance(obj, Record):
        return {"tag": obj.tag, "fields": {label: to_dict(c) for label, c in obj.fields}}
    if isinstance(obj, Type):
        result: dict[str, Any] = {"tag": obj.tag}
        for f in fields(obj):
            result[f.name] = _serialize_value(getattr(obj, f.name))
        return result
    msg = f"Cannot serialize object of type {type(obj).__name__}"
    raise ValueError(msg)


def _serialize_value(value: Any) -> Any:  # noqa: ANN401
    if isinstance(value, Type):
        return to_dict(value)
    if isinstance(value, tuple):
        return [_serialize_value(item) for item in value]
    return value


def from_dict(data: dict[str, Any]) -> Type | Scheme:
    """Deserialize a type or scheme from a dictionary.

    Args:
        data: Dictionary containing a serialized object with a 'tag' field

    Returns:
        Deserialized Type or Scheme instance

    Raises:
        KeyError: If the 'tag' field or a field of the tagged class is missing
        ValueError: If the tag is not recognized

    """
    if "tag" not in data:
        msg = "Missing required 'tag' field in data"
        raise KeyError(msg)

    tag = data["tag"]

    if tag == _SCHEME_TAG:
        return Scheme(_type_from(_require(data, "body", tag)))

    if tag not in Type.registry:
        available = list(Type.registry.keys())[:_MAX_TAGS_IN_ERROR]
        suffix = "..." if len(Type.registry) > _MAX_TAGS_IN_ERROR else ""
        msg = f"Unknown tag '{tag}'. Available type tags: {available}{suffix}"
        raise ValueError(msg)

    cls = Type.registry[tag]
    if cls is Record:
        components = _require(data, "fields", tag)
        return Record(tuple((label, _type_from(c)) for label, c in components.items()))
    kwargs = {f.name: _deserialize_value(_require(data, f.name, tag)) for f in fields(cls)}
    return cls(**kwargs)


def _require(data: dict[str, Any], key: str, tag: str) -> Any:  # noqa: ANN401
    if key not in data:
        msg = f"Missing required '{key}' field for {tag}"
        raise KeyError(msg)
    return data[key]


def _type_from(data: dict[str, Any]) -> Type:
    result = from_dict(data)
    if not isinstance(result, Type):
        msg = f"Expected a type, got {type(result).__name__}"
        raise ValueError(msg)
    return result


def _deserialize_value(value: Any) -> Any:  # noqa: ANN401
    if isinstance(value, dict):
        return _type_from(value)
    if isinstance(value, list):
        return tuple(_deserialize_value(item) for item in value)
    return value


def to_json(obj: Type | Scheme) -> str:
    """Serialize a type or scheme to a JSON string (2-space indent)."""
    return json.dumps(to_dict(obj), indent=2)


def from_json(s: str) -> Type | Scheme:
    """Deserialize a type or scheme from a JSON string.

    Raises:
        json.JSONDecodeError: If string is not valid JSON
        KeyError: If required fields are missing
        ValueError: If tag is not recognized

    """
    return from_dict(json.loads(s))
