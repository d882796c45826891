"""hexpr_core.syntax -- H-expression source text and syntax tree.

Modules
-------
ast      Composition, Tensor, Frobenius, Operation, Variable, Span
parser   HExprParser: Lark grammar and tree builder
"""

from hexpr_core.syntax.ast import (
    ANONYMOUS,
    Composition,
    Expr,
    Frobenius,
    Operation,
    Span,
    Tensor,
    Variable,
)
from hexpr_core.syntax.parser import HExprParser, parse_hexpr

__all__ = [
    "ANONYMOUS",
    "Composition",
    "Expr",
    "Frobenius",
    "Operation",
    "Span",
    "Tensor",
    "Variable",
    "HExprParser",
    "parse_hexpr",
]
