"""hexpr_core.graph.resolver
===========================

Scope resolution: which variable occurrences denote the same wire.

The resolver walks the syntax tree once, depth-first and left to right, and
inside each bracket visits inputs before outputs.  That is the *reading
order*; occurrences are numbered in it.

* An occurrence left of the dot is a **consumer**: the bracket takes the
  wire in from its left.  An occurrence right of the dot is a **producer**:
  the bracket hands the wire on to its right.
* All occurrences of one name within a scope share one **binding**.  With
  ``ScopeMode.program`` the scope is the whole program; with
  ``ScopeMode.block`` it is the innermost enclosing composition or tensor.
* Every ``_`` is a binding of its own, except that in identity shorthand
  (``[_]``) the input and output at the same position share one.

The resulting ``Resolution`` is immutable and is computed before any graph is
built.  The builder later reports, for each consumer, where its value comes
from (looking through bindings that only pass a value on);
``Resolution.check_consumer`` decides whether that consumer is bound.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from hexpr_core.api.errors import UnboundVariableError
from hexpr_core.graph.config import ScopeMode
from hexpr_core.syntax.ast import (
    Composition,
    Expr,
    Frobenius,
    Operation,
    Tensor,
    Variable,
)

logger = logging.getLogger(__name__)


class Role(str, Enum):
    consumer = "consumer"
    producer = "producer"


@dataclass(frozen=True)
class Occurrence:
    """One textual occurrence of a variable."""

    index: int
    variable: Variable
    role: Role
    binding: int
    bracket: int


@dataclass(frozen=True)
class Binding:
    """A shared wire identity and the occurrences that refer to it."""

    index: int
    name: Optional[str]
    scope: int
    consumers: Tuple[int, ...]
    producers: Tuple[int, ...]


class DriverKind(str, Enum):
    """Where the value reaching a consumer port comes from."""

    boundary = "boundary"
    operation = "operation"
    variable = "variable"


@dataclass(frozen=True)
class Driver:
    kind: DriverKind
    occurrence: Optional[int] = None


@dataclass(frozen=True)
class Resolution:
    """Immutable result of scope resolution.

    Attributes
    ----------
    occurrences : tuple[Occurrence, ...]
        Every variable occurrence, in reading order.
    bindings : tuple[Binding, ...]
        Every wire identity, in order of first occurrence.
    names : Mapping[tuple[int, str], int]
        (scope, name) -> binding index.
    brackets : tuple[tuple[tuple[int, ...], tuple[int, ...]], ...]
        For each Frobenius bracket in reading order, its consumer and
        producer occurrence indices.
    """

    occurrences: Tuple[Occurrence, ...]
    bindings: Tuple[Binding, ...]
    names: Mapping[Tuple[int, str], int]
    brackets: Tuple[Tuple[Tuple[int, ...], Tuple[int, ...]], ...]

    def binding_of(self, name: str, scope: int = 0) -> Binding:
        return self.bindings[self.names[(scope, name)]]

    def check_consumer(self, occurrence: int, driver: Driver) -> None:
        """Raise ``UnboundVariableError`` if this consumer is unbound.

        A named consumer is unbound when its value arrives from a producer of
        a different binding that never receives a value itself (no consumer
        occurrences), and no producer of its own binding precedes it in
        reading order.  Values from the program boundary or from an
        operation always bind.
        """
        occ = self.occurrences[occurrence]
        if occ.role is not Role.consumer:
            raise ValueError(f"Occurrence {occurrence} is not a consumer")
        if occ.variable.is_anonymous or driver.kind is not DriverKind.variable:
            return

        source = self.occurrences[driver.occurrence]
        if source.binding == occ.binding:
            return
        if self.bindings[source.binding].consumers:
            return
        if any(p < occ.index for p in self.bindings[occ.binding].producers):
            return
        raise UnboundVariableError(
            occ.variable.name,
            occ.variable.span,
            reason=f"its value comes from '{source.variable}', which never receives one",
        )


class ScopeResolver:
    """Assign a binding to every variable occurrence of an expression."""

    def __init__(self, scope: ScopeMode = ScopeMode.program) -> None:
        self.scope = scope

    def resolve(self, expr: Expr) -> Resolution:
        self._occurrences: List[Occurrence] = []
        self._bindings: List[Tuple[Optional[str], int]] = []
        self._consumers: List[List[int]] = []
        self._producers: List[List[int]] = []
        self._names: Dict[Tuple[int, str], int] = {}
        self._brackets: List[Tuple[Tuple[int, ...], Tuple[int, ...]]] = []
        self._n_blocks = 0

        self._visit(expr, 0)

        bindings = tuple(
            Binding(
                index=i,
                name=name,
                scope=scope,
                consumers=tuple(self._consumers[i]),
                producers=tuple(self._producers[i]),
            )
            for i, (name, scope) in enumerate(self._bindings)
        )
        resolution = Resolution(
            occurrences=tuple(self._occurrences),
            bindings=bindings,
            names=MappingProxyType(dict(self._names)),
            brackets=tuple(self._brackets),
        )
        logger.debug(
            f"Resolved {len(resolution.occurrences)} occurrences into "
            f"{len(bindings)} bindings ({self.scope.value} scope)"
        )
        return resolution

    # ------------------------------------------------------------------
    # Tree walk
    # ------------------------------------------------------------------

    def _visit(self, expr: Expr, scope: int) -> None:
        if isinstance(expr, (Composition, Tensor)):
            inner = scope
            if self.scope is ScopeMode.block:
                self._n_blocks += 1
                inner = self._n_blocks
            for child in expr.exprs:
                self._visit(child, inner)
        elif isinstance(expr, Frobenius):
            self._visit_bracket(expr, scope)
        elif isinstance(expr, Operation):
            pass
        else:
            raise TypeError(f"Not an H-expression node: {expr!r}")

    def _visit_bracket(self, node: Frobenius, scope: int) -> None:
        bracket = len(self._brackets)
        paired: Dict[int, int] = {}

        consumers = []
        for position, var in enumerate(node.inputs):
            binding = self._binding_for(var, scope)
            if node.shorthand and var.is_anonymous:
                paired[position] = binding
            consumers.append(self._occur(var, Role.consumer, binding, bracket))

        producers = []
        for position, var in enumerate(node.outputs):
            if var.is_anonymous and position in paired:
                binding = paired[position]
            else:
                binding = self._binding_for(var, scope)
            producers.append(self._occur(var, Role.producer, binding, bracket))

        self._brackets.append((tuple(consumers), tuple(producers)))

    def _binding_for(self, var: Variable, scope: int) -> int:
        if var.is_anonymous:
            return self._new_binding(None, scope)
        key = (scope, var.name)
        if key not in self._names:
            self._names[key] = self._new_binding(var.name, scope)
        return self._names[key]

    def _new_binding(self, name: Optional[str], scope: int) -> int:
        self._bindings.append((name, scope))
        self._consumers.append([])
        self._producers.append([])
        return len(self._bindings) - 1

    def _occur(self, var: Variable, role: Role, binding: int, bracket: int) -> int:
        index = len(self._occurrences)
        self._occurrences.append(Occurrence(index, var, role, binding, bracket))
        if role is Role.consumer:
            self._consumers[binding].append(index)
        else:
            self._producers[binding].append(index)
        return index


def resolve(expr: Expr, scope: ScopeMode = ScopeMode.program) -> Resolution:
    return ScopeResolver(scope).resolve(expr)
