"""Node kinds of the input AST.

The parser (an external collaborator) builds these; the engine only reads
them. Sequences are stored as tuples so that nodes stay hashable.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from biunify.location import Location
from biunify.nodes import Node

if TYPE_CHECKING:
    from collections.abc import Sequence

    from biunify.types import Type


def _freeze(node: Node, name: str) -> None:
    value = getattr(node, name)
    if not isinstance(value, tuple):
        object.__setattr__(node, name, tuple(value))


class BoolLit(Node, tag="bool"):
    value: bool


class IntLit(Node, tag="int"):
    value: int


class Name(Node, tag="name"):
    """Reference to a parameter, a let binding or a top-level definition."""

    ident: str


class Param(Node, tag="param"):
    """Function parameter, optionally with a declared type."""

    name: str
    annotation: Type | None = None


class Lambda(Node, tag="lambda"):
    """Anonymous function; several parameters mean a curried function."""

    params: tuple[Param, ...]
    body: Node
    result: Type | None = None

    def __post_init__(self) -> None:
        _freeze(self, "params")
        if not self.params:
            msg = "A function needs at least one parameter"
            raise ValueError(msg)


class Apply(Node, tag="apply"):
    """Application of `func` to `args`, one argument at a time."""

    func: Node
    args: tuple[Node, ...]

    def __post_init__(self) -> None:
        _freeze(self, "args")
        if not self.args:
            msg = "An application needs at least one argument"
            raise ValueError(msg)


class RecordLit(Node, tag="record"):
    fields: tuple[tuple[str, Node], ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", tuple((label, value) for label, value in self.fields))
        labels = [label for label, _ in self.fields]
        if len(set(labels)) != len(labels):
            msg = f"Duplicate record labels: {labels}"
            raise ValueError(msg)


class FieldAccess(Node, tag="field"):
    record: Node
    label: str


class If(Node, tag="if"):
    cond: Node
    then: Node
    else_: Node


class BinOp(Node, tag="binop"):
    """Binary operator; see `biunify.builtins` for the known operators."""

    op: str
    left: Node
    right: Node


class UnaryOp(Node, tag="unop"):
    op: str
    operand: Node


class Let(Node, tag="let"):
    """Local binding, generalized before `body` is checked."""

    name: str
    value: Node
    body: Node
    recursive: bool = False


class Def(Node, tag="def"):
    """Top-level binding of a module."""

    name: str
    value: Node
    recursive: bool = False


class Module(Node, tag="module"):
    """A compilation unit: an ordered sequence of top-level definitions."""

    name: str
    definitions: tuple[Def, ...] = ()

    def __post_init__(self) -> None:
        _freeze(self, "definitions")

    def get(self, name: str) -> Def | None:
        """First definition bound to `name`, if any."""
        for definition in self.definitions:
            if definition.name == name:
                return definition
        return None


def function_def(
    name: str,
    params: Sequence[Param | str],
    body: Node,
    result: Type | None = None,
    *,
    loc: Location | None = None,
) -> Def:
    """Build `def name(params) = body` as a recursive binding of a lambda.

    Args:
        name: Name of the function
        params: Parameters, as nodes or bare names
        body: Function body
        result: Optional declared result type
        loc: Location of the definition

    Returns:
        A recursive `Def` whose value is a `Lambda`

    """
    location = loc or Location.unknown()
    nodes = tuple(p if isinstance(p, Param) else Param(p, loc=location) for p in params)
    return Def(name, Lambda(nodes, body, result, loc=location), recursive=True, loc=location)
