"""hexpr_core.graph -- open hypergraph compiler for H-expressions.

Turns a parsed H-expression into an open hypergraph: operations become
hyperedges, variables become shared wires, and copying, merging, discarding
and creating values become explicit Frobenius nodes.

Modules
-------
ir_types        StrictBaseModel, EdgeKind, OperationType
signature       Signature: operation name -> input/output types
config          CompilerConfig, ScopeMode, YAML loading
resolver        ScopeResolver: variable occurrences -> bindings
hypergraph      OpenHypergraph arena with union-find and quotient
compiler        HExprCompiler: parse -> resolve -> build -> quotient -> typecheck
inference       Type propagation across Frobenius nodes
introspection   Deterministic text explanation of a hypergraph
dot             Graphviz DOT export
"""

from hexpr_core.graph.ir_types import (
    EdgeKind,
    OperationType,
    StrictBaseModel,
)
from hexpr_core.graph.signature import Signature, load_signature
from hexpr_core.graph.config import CompilerConfig, ScopeMode, load_config
from hexpr_core.graph.resolver import Resolution, ScopeResolver, resolve
from hexpr_core.graph.hypergraph import HyperEdge, OpenHypergraph, Wire
from hexpr_core.graph.inference import propagate_types
from hexpr_core.graph.compiler import HExprCompiler, HypergraphBuilder, compile_hexpr
from hexpr_core.graph.introspection import explain_graph
from hexpr_core.graph.dot import to_dot

__all__ = [
    "EdgeKind",
    "OperationType",
    "StrictBaseModel",
    "Signature",
    "load_signature",
    "CompilerConfig",
    "ScopeMode",
    "load_config",
    "Resolution",
    "ScopeResolver",
    "resolve",
    "HyperEdge",
    "OpenHypergraph",
    "Wire",
    "propagate_types",
    "HExprCompiler",
    "HypergraphBuilder",
    "compile_hexpr",
    "explain_graph",
    "to_dot",
]
