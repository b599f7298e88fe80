"""Constraint generation from AST traversal.

The walker assigns every expression a type, allocating fresh variables where
the type is not yet known, and hands each subtyping requirement to the solver
as soon as it is emitted. Bounds therefore grow while the tree is walked, and
the first contradiction aborts the walk of the enclosing definition.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeAlias

from biunify.ast import (
    Apply,
    BinOp,
    BoolLit,
    FieldAccess,
    If,
    IntLit,
    Lambda,
    Let,
    Name,
    RecordLit,
    UnaryOp,
)
from biunify.builtins import binary_operator, unary_operator
from biunify.errors import UnboundIdentifier
from biunify.schemes import PolymorphicType, Scheme
from biunify.types import BOOL, INT, Bool, Func, Int, Record, Type, Var, func, record

if TYPE_CHECKING:
    from biunify.location import Location
    from biunify.nodes import Node
    from biunify.solver import Solver
    from biunify.store import VariableStore


@dataclass(frozen=True)
class FailedBinding:
    """Stand-in for a top-level definition that did not type-check."""

    location: Location


Binding: TypeAlias = Type | PolymorphicType | Scheme | FailedBinding
Env: TypeAlias = Mapping[str, Binding]


@dataclass
class ConstraintGenerator:
    """Walks the expressions of one definition and solves as it goes.

    Attributes:
        store: Store receiving the fresh variables
        solver: Session receiving the constraints
        node_types: Raw type of every visited node, keyed by node identity

    """

    store: VariableStore
    solver: Solver
    node_types: dict[int, tuple[Node, Type]] = field(default_factory=dict)

    # Declared types may name variables; one fresh variable per name
    _declared_vars: dict[int, Var] = field(default_factory=dict)

    def infer_binding(
        self,
        name: str,
        value: Node,
        env: Env,
        level: int,
        *,
        recursive: bool = False,
    ) -> Type:
        """Infer the type of a value bound at `level`.

        The value is checked one level deeper, so that every variable it
        creates can later be generalized by the binding.

        Args:
            name: The bound name
            value: The bound expression
            env: Bindings in scope
            level: Level of the binding itself
            recursive: Whether `value` may refer to `name`

        Returns:
            The raw type of the value

        """
        if not recursive:
            return self.infer(value, env, level + 1)
        self_type = self.store.fresh(level + 1, name)
        body = self.infer(value, {**env, name: self_type}, level + 1)
        self.solver.constrain(body, self_type, value.loc, f"recursive use of '{name}'")
        return self_type

    def infer(self, node: Node, env: Env, level: int) -> Type:
        """Infer the type of an expression node and record it."""
        t = self._infer(node, env, level)
        self.node_types[id(node)] = (node, t)
        return t

    def _infer(self, node: Node, env: Env, level: int) -> Type:  # noqa: C901, PLR0911
        match node:
            case BoolLit():
                return BOOL
            case IntLit():
                return INT
            case Name(ident=ident):
                return self._lookup(ident, env, level, node.loc)
            case Lambda():
                return self._lambda(node, env, level)
            case Apply(func=callee, args=args):
                callee_type = self.infer(callee, env, level)
                arg_types = [self.infer(arg, env, level) for arg in args]
                result = self.store.fresh(level, "result")
                self.solver.constrain(
                    callee_type, func(*arg_types, result), node.loc, "function application",
                )
                return result
            case RecordLit(fields=fs):
                return Record(tuple((label, self.infer(value, env, level)) for label, value in fs))
            case FieldAccess(record=target, label=label):
                target_type = self.infer(target, env, level)
                result = self.store.fresh(level, label)
                self.solver.constrain(
                    target_type, record({label: result}), node.loc, f"access to field '{label}'",
                )
                return result
            case If(cond=cond, then=then, else_=else_):
                cond_type = self.infer(cond, env, level)
                self.solver.constrain(cond_type, BOOL, cond.loc, "condition of if")
                result = self.store.fresh(level, "if")
                self.solver.constrain(self.infer(then, env, level), result, then.loc, "then branch")
                self.solver.constrain(self.infer(else_, env, level), result, else_.loc, "else branch")
                return result
            case BinOp(op=op, left=left, right=right):
                scheme = self._operator(binary_operator(op), op, node.loc)
                operands = [self.infer(left, env, level), self.infer(right, env, level)]
                return self._apply_operator(scheme, operands, level, node, op)
            case UnaryOp(op=op, operand=operand):
                scheme = self._operator(unary_operator(op), op, node.loc)
                operands = [self.infer(operand, env, level)]
                return self._apply_operator(scheme, operands, level, node, op)
            case Let(name=name, value=value, body=body, recursive=recursive):
                bound = self.infer_binding(name, value, env, level, recursive=recursive)
                return self.infer(body, {**env, name: PolymorphicType(level, bound)}, level)

        msg = f"Cannot infer a type for a {type(node).__name__} node"
        raise ValueError(msg)

    def _lookup(self, ident: str, env: Env, level: int, loc: Location) -> Type:
        binding = env.get(ident)
        match binding:
            case None:
                raise UnboundIdentifier(
                    message=f"Unbound identifier '{ident}'",
                    location=loc,
                    name=ident,
                )
            case FailedBinding(location=where):
                raise UnboundIdentifier(
                    message=(
                        f"'{ident}' has no type because its definition at "
                        f"{where.describe()} failed to type-check"
                    ),
                    location=loc,
                    name=ident,
                )
            case PolymorphicType() | Scheme():
                return binding.instantiate(self.store, level)
        return binding

    def _lambda(self, node: Lambda, env: Env, level: int) -> Type:
        scope = dict(env)
        param_types: list[Type] = []
        for param in node.params:
            if param.annotation is None:
                param_type: Type = self.store.fresh(level, param.name)
            else:
                param_type = self._declared(param.annotation, level)
            self.node_types[id(param)] = (param, param_type)
            scope[param.name] = param_type
            param_types.append(param_type)

        body = self.infer(node.body, scope, level)
        if node.result is not None:
            declared = self._declared(node.result, level)
            self.solver.constrain(body, declared, node.body.loc, "declared result type")
            body = declared
        return func(*param_types, body)

    def _declared(self, t: Type, level: int) -> Type:
        match t:
            case Bool() | Int():
                return t
            case Var(id=vid):
                if vid not in self._declared_vars:
                    self._declared_vars[vid] = self.store.fresh(level, "declared")
                return self._declared_vars[vid]
            case Func(domain=d, range=r):
                return Func(self._declared(d, level), self._declared(r, level))
            case Record(fields=fs):
                return Record(tuple((label, self._declared(c, level)) for label, c in fs))
        msg = f"Declared types cannot contain {type(t).__name__}"
        raise ValueError(msg)

    @staticmethod
    def _operator(scheme: Scheme | None, op: str, loc: Location) -> Scheme:
        if scheme is None:
            raise UnboundIdentifier(
                message=f"Unknown operator '{op}'",
                location=loc,
                name=op,
            )
        return scheme

    def _apply_operator(
        self,
        scheme: Scheme,
        operands: list[Type],
        level: int,
        node: Node,
        op: str,
    ) -> Type:
        result = self.store.fresh(level, "result")
        self.solver.constrain(
            scheme.instantiate(self.store, level),
            func(*operands, result),
            node.loc,
            f"operands of '{op}'",
        )
        return result
