"""Core AST node infrastructure with automatic registration."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field, fields
from typing import ClassVar, dataclass_transform

from biunify.location import Location


@dataclass(frozen=True)
@dataclass_transform(frozen_default=True)
class Node:
    """Base for AST nodes.

    Every node carries a keyword-only `loc`; constraints emitted for the node
    and errors raised from them report it.
    """

    tag: ClassVar[str]
    registry: ClassVar[dict[str, type[Node]]] = {}

    loc: Location = field(default=Location(), kw_only=True, compare=False)

    def __init_subclass__(cls, tag: str | None = None) -> None:
        """Register node subclass with automatic tag derivation."""
        dataclass(frozen=True)(cls)
        cls.tag = tag if tag is not None else cls.__name__.lower()

        if (existing := Node.registry.get(cls.tag)) and existing is not cls:
            msg = (
                f"Tag '{cls.tag}' already registered to {existing}. "
                "Choose a different tag."
            )
            raise ValueError(msg)

        Node.registry[cls.tag] = cls


def children(node: Node) -> Iterator[Node]:
    """Direct sub-nodes of `node`, in field order."""
    for f in fields(node):
        yield from _nodes_in(getattr(node, f.name))


def _nodes_in(value: object) -> Iterator[Node]:
    if isinstance(value, Node):
        yield value
    elif isinstance(value, tuple | list):
        for item in value:
            yield from _nodes_in(item)


def walk(node: Node) -> Iterator[Node]:
    """Pre-order traversal of `node` and all its descendants."""
    yield node
    for child in children(node):
        yield from walk(child)
