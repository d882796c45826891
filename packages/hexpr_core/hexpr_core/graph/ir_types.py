"""hexpr_core.graph.ir_types
===========================

Formal IR types shared by the compiler passes.

Types
-----
StrictBaseModel   pydantic root model (extra fields forbidden)
EdgeKind          operation or one of the four Frobenius node kinds
OperationType     ordered input / output type names of one operation
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# StrictBaseModel
# ---------------------------------------------------------------------------


class StrictBaseModel(BaseModel):
    """Root model with extra='forbid'."""

    model_config = ConfigDict(
        extra="forbid",
        validate_assignment=True,
    )


# ---------------------------------------------------------------------------
# Hyperedge kinds
# ---------------------------------------------------------------------------


class EdgeKind(str, Enum):
    """Kind of a hyperedge in an open hypergraph."""

    operation = "operation"
    copy = "copy"
    merge = "merge"
    discard = "discard"
    create = "create"

    @property
    def is_frobenius(self) -> bool:
        return self is not EdgeKind.operation


# (n_inputs, n_outputs) of the built-in Frobenius nodes.
FROBENIUS_ARITY: Dict[EdgeKind, Tuple[int, int]] = {
    EdgeKind.copy: (1, 2),
    EdgeKind.merge: (2, 1),
    EdgeKind.discard: (1, 0),
    EdgeKind.create: (0, 1),
}


# ---------------------------------------------------------------------------
# OperationType
# ---------------------------------------------------------------------------


class OperationType(StrictBaseModel):
    """Type of one signature operation.

    Attributes
    ----------
    inputs : list[str]
        Type name of each input port, in port order.
    outputs : list[str]
        Type name of each output port, in port order.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    inputs: List[str] = Field(default_factory=list)
    outputs: List[str] = Field(default_factory=list)

    @field_validator("inputs", "outputs")
    @classmethod
    def _non_empty_type_names(cls, value: List[str]) -> List[str]:
        for type_name in value:
            if not type_name or not type_name.strip():
                raise ValueError("Type names must be non-empty strings")
        return value

    @property
    def arity(self) -> Tuple[int, int]:
        return len(self.inputs), len(self.outputs)

    def __str__(self) -> str:
        ins = " × ".join(self.inputs) or "I"
        outs = " × ".join(self.outputs) or "I"
        return f"{ins} → {outs}"
