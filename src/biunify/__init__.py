"""biunify - Algebraic-subtyping type inference for Python 3.12+."""

from biunify.config import EngineOptions
from biunify.engine import (
    InferenceEngine,
    InferenceResult,
    NodeTypes,
    check_module,
    infer,
)
from biunify.errors import (
    ConstructorMismatch,
    DuplicateBinding,
    OccursCheckFailure,
    RecordFieldMissing,
    TypeCheckError,
    UnboundIdentifier,
)
from biunify.lattice import equivalent, is_subtype, join, meet
from biunify.location import Location
from biunify.nodes import Node
from biunify.schemes import PolymorphicType, Scheme
from biunify.serialization import from_dict, from_json, to_dict, to_json
from biunify.simplify import simplify
from biunify.solver import Solver
from biunify.store import VariableStore
from biunify.types import (
    BOOL,
    INT,
    Bool,
    Func,
    Int,
    Inter,
    Polarity,
    Rec,
    Record,
    Type,
    Union,
    Var,
    format_type,
    func,
    record,
)

__all__ = [
    "BOOL",
    "INT",
    "Bool",
    "ConstructorMismatch",
    "DuplicateBinding",
    "EngineOptions",
    "Func",
    "InferenceEngine",
    "InferenceResult",
    "Int",
    "Inter",
    "Location",
    "Node",
    "NodeTypes",
    "OccursCheckFailure",
    "Polarity",
    "PolymorphicType",
    "Rec",
    "Record",
    "RecordFieldMissing",
    "Scheme",
    "Solver",
    "Type",
    "TypeCheckError",
    "UnboundIdentifier",
    "Union",
    "Var",
    "VariableStore",
    "check_module",
    "equivalent",
    "format_type",
    "from_dict",
    "from_json",
    "func",
    "infer",
    "is_subtype",
    "join",
    "meet",
    "record",
    "simplify",
    "to_dict",
    "to_json",
]
