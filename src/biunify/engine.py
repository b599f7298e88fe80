"""Session driver: checks a module definition by definition.

Example usage:
    from biunify import check_module
    from biunify.ast import BinOp, IntLit, Module, Name, Apply, If, function_def

    fib = function_def(
        "fib",
        ["n"],
        If(
            BinOp("<=", Name("n"), IntLit(1)),
            IntLit(1),
            BinOp(
                "+",
                Apply(Name("fib"), (BinOp("-", Name("n"), IntLit(1)),)),
                Apply(Name("fib"), (BinOp("-", Name("n"), IntLit(2)),)),
            ),
        ),
    )
    result = check_module(Module("main", (fib,)))
    print(result.signature("fib"))  # Int -> Int
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from biunify.ast import Def, Module
from biunify.config import LOGGER_NAME, EngineOptions
from biunify.errors import (
    DuplicateBinding,
    OccursCheckFailure,
    TypeCheckError,
)
from biunify.generator import Binding, ConstraintGenerator, FailedBinding
from biunify.location import Location
from biunify.schemes import Scheme
from biunify.simplify import Simplifier
from biunify.solver import Solver, relocate
from biunify.store import VariableStore
from biunify.types import Polarity, Rec, Type, walk_types

if TYPE_CHECKING:
    from biunify.nodes import Node

logger = logging.getLogger(f"{LOGGER_NAME}.engine")

EXPRESSION_BINDING = "it"
TOP_LEVEL = 0  # Level of module definitions; their bodies are checked one deeper


class NodeTypes:
    """Simplified types of AST nodes, keyed by node identity.

    Structurally equal nodes at different places of a tree can have different
    types, so lookups go by object identity rather than equality.
    """

    def __init__(self) -> None:
        self._entries: dict[int, tuple[Node, Type]] = {}

    def record(self, node: Node, t: Type) -> None:
        self._entries[id(node)] = (node, t)

    def type_of(self, node: Node) -> Type | None:
        """Type of `node`, or None if it was not annotated."""
        entry = self._entries.get(id(node))
        return None if entry is None else entry[1]

    def items(self) -> Iterator[tuple[Node, Type]]:
        return iter(self._entries.values())

    def __contains__(self, node: object) -> bool:
        return id(node) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Node]:
        return (node for node, _ in self._entries.values())


@dataclass
class InferenceResult:
    """Result of checking a module.

    Contains the principal type of every definition that type-checked, the
    simplified type of every node inside those definitions, and the errors of
    the definitions that did not, in source order.
    """

    schemes: dict[str, Scheme] = field(default_factory=dict)
    errors: list[TypeCheckError] = field(default_factory=list)
    node_types: NodeTypes = field(default_factory=NodeTypes)

    @property
    def success(self) -> bool:
        return not self.errors

    def signature(self, name: str) -> str | None:
        """Rendered principal type of a definition, or None if it has none."""
        scheme = self.schemes.get(name)
        return None if scheme is None else scheme.format()

    def type_of(self, node: Node) -> Type | None:
        return self.node_types.type_of(node)

    def format_errors(self) -> str:
        """Format all errors for display.

        Returns:
            A multi-line string with all errors formatted.

        """
        if self.success:
            return "Type check passed."

        lines = [f"Type check failed with {len(self.errors)} error(s):\n"]
        for i, error in enumerate(self.errors, 1):
            lines.append(f"[{i}] {error.format()}\n")

        return "\n".join(lines)


class InferenceEngine:
    """Checks modules with a fixed set of options.

    Every call to `check_module` is an independent session with its own
    variable store; nothing but closed schemes leaves a session.
    """

    def __init__(self, options: EngineOptions | None = None) -> None:
        self.options = options or EngineOptions()

    def check_module(
        self,
        module: Module,
        imports: Mapping[str, Scheme] | None = None,
    ) -> InferenceResult:
        """Infer principal types for every definition of a module.

        Definitions are checked in order; each one sees the schemes of the
        definitions before it and of `imports`. A definition that fails does
        not stop its siblings unless `stop_at_first_error` is set.

        Args:
            module: The module to check
            imports: Schemes of names defined by other modules

        Returns:
            InferenceResult with schemes, node types and errors

        """
        store = VariableStore()
        env: dict[str, Binding] = dict(imports or {})
        defined: dict[str, Location] = {}
        result = InferenceResult()
        logger.info("checking module %s (%d definitions)", module.name, len(module.definitions))

        for definition in module.definitions:
            if definition.name in defined:
                result.errors.append(
                    DuplicateBinding(
                        message=f"'{definition.name}' is already defined",
                        location=definition.loc,
                        name=definition.name,
                        previous=defined[definition.name],
                    ),
                )
                if self.options.stop_at_first_error:
                    break
                continue
            defined[definition.name] = definition.loc

            try:
                scheme, annotations = self._check_definition(definition, env, store)
            except TypeCheckError as exc:
                error = relocate(exc, definition.loc)
                logger.warning("definition %s failed: %s", definition.name, error.message)
                result.errors.append(error)
                env[definition.name] = FailedBinding(definition.loc)
                if self.options.stop_at_first_error:
                    break
                continue

            logger.info("%s : %s", definition.name, scheme)
            env[definition.name] = scheme
            result.schemes[definition.name] = scheme
            for node, t in annotations:
                result.node_types.record(node, t)

        return result

    def _check_definition(
        self,
        definition: Def,
        env: Mapping[str, Binding],
        store: VariableStore,
    ) -> tuple[Scheme, list[tuple[Node, Type]]]:
        solver = Solver(store, self.options)
        generator = ConstraintGenerator(store, solver)
        raw = generator.infer_binding(
            definition.name,
            definition.value,
            env,
            TOP_LEVEL,
            recursive=definition.recursive,
        )
        logger.debug(
            "%s: %d constraints processed, %d variables in store",
            definition.name,
            solver.processed,
            len(store),
        )

        simplifier = Simplifier(store, body_level=TOP_LEVEL + 1)
        signature = simplifier.simplify(raw, Polarity.POSITIVE)
        self._check_recursive(signature, definition)

        annotations = [(definition, signature)]
        for node, t in generator.node_types.values():
            annotations.append((node, simplifier.annotate(t, Polarity.POSITIVE)))
        return Scheme(signature), annotations

    def _check_recursive(self, signature: Type, definition: Def) -> None:
        if self.options.allow_recursive_types:
            return
        if any(isinstance(t, Rec) for t in walk_types(signature)):
            raise OccursCheckFailure(
                message=(
                    f"The type of '{definition.name}' is recursive and recursive types "
                    "are disabled"
                ),
                location=definition.loc,
            )

    def infer_expression(
        self,
        expr: Node,
        env: Mapping[str, Scheme] | None = None,
    ) -> InferenceResult:
        """Infer the principal type of a single expression.

        The expression is checked as a non-recursive definition named
        `EXPRESSION_BINDING` in a module of its own.
        """
        definition = Def(EXPRESSION_BINDING, expr, loc=expr.loc)
        return self.check_module(Module("<expression>", (definition,)), env)


def check_module(
    module: Module,
    imports: Mapping[str, Scheme] | None = None,
    options: EngineOptions | None = None,
) -> InferenceResult:
    """Type check a module with a fresh engine.

    Args:
        module: The module to check
        imports: Schemes of names defined elsewhere
        options: Engine options; defaults when omitted

    Returns:
        InferenceResult with schemes, node types and errors

    """
    return InferenceEngine(options).check_module(module, imports)


def infer(expr: Node, env: Mapping[str, Scheme] | None = None) -> InferenceResult:
    """Type check a single expression.

    Convenience function that wraps the expression in a module and delegates
    to check_module. Its type is `result.schemes[EXPRESSION_BINDING]`.
    """
    return InferenceEngine().infer_expression(expr, env)
