"""
hexpr_core.api.errors

Typed exceptions raised by the H-expression compiler.

Every failure of a compilation attempt is a ``CompileError``; callers that
only care about success/failure catch the base class.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence


class CompileError(Exception):
    """Base H-expression compilation error."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ParseError(CompileError):
    """Malformed source text.

    ``line`` and ``column`` are 1-based; ``expected`` lists human-readable
    descriptions of the tokens that would have been accepted.
    """

    def __init__(
        self,
        message: str,
        line: Optional[int] = None,
        column: Optional[int] = None,
        expected: Optional[Sequence[str]] = None,
    ):
        self.line = line
        self.column = column
        self.expected: List[str] = sorted(expected or [])
        location = f" at line {line}, column {column}" if line is not None else ""
        hint = f" (expected {', '.join(self.expected)})" if self.expected else ""
        super().__init__(
            f"{message}{location}{hint}",
            details={"line": line, "column": column, "expected": self.expected},
        )


class UnboundVariableError(CompileError):
    def __init__(self, name: str, span: Any = None, reason: str = ""):
        self.name = name
        self.span = span
        where = f" at {span}" if span is not None else ""
        why = f": {reason}" if reason else ""
        super().__init__(
            f"Unbound variable '{name}'{where}{why}",
            details={"name": name, "span": str(span) if span else None},
        )


class UnknownOperationError(CompileError):
    def __init__(self, name: str, span: Any = None):
        self.name = name
        self.span = span
        where = f" at {span}" if span is not None else ""
        super().__init__(
            f"Unknown operation '{name}'{where}",
            details={"name": name, "span": str(span) if span else None},
        )


class BoundaryMismatchError(CompileError):
    """Sequential composition of diagrams whose boundaries differ in length.

    ``expected`` is the number of outputs offered by the left operand,
    ``actual`` the number of inputs required by the right operand.
    """

    def __init__(
        self,
        expected: int,
        actual: int,
        left_span: Any = None,
        right_span: Any = None,
    ):
        self.expected = expected
        self.actual = actual
        self.left_span = left_span
        self.right_span = right_span
        super().__init__(
            f"Composition mismatch: {expected} outputs "
            f"(expression at {left_span}) to {actual} inputs "
            f"(expression at {right_span})",
            details={
                "expected": expected,
                "actual": actual,
                "left": str(left_span) if left_span else None,
                "right": str(right_span) if right_span else None,
            },
        )


class TypeConflictError(CompileError):
    def __init__(self, wire: int, type1: str, type2: str):
        self.wire = wire
        self.type1 = type1
        self.type2 = type2
        super().__init__(
            f"Type conflict on wire {wire}: cannot unify {type1} with {type2}",
            details={"wire": wire, "types": [type1, type2]},
        )


class UnresolvedTypeError(CompileError):
    def __init__(self, wires: Sequence[int]):
        self.wires = list(wires)
        super().__init__(
            f"{len(self.wires)} wire(s) have no type after inference: {self.wires}",
            details={"wires": self.wires},
        )


class SignatureError(CompileError):
    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(message, details={"path": path})


class ConfigError(CompileError):
    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(message, details={"path": path})
