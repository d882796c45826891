"""hexpr_core.graph.compiler
===========================

HExprCompiler: parse -> resolve -> build -> quotient -> typecheck.

Compilation pipeline
--------------------
1. **Parse:**     source text -> syntax tree (``hexpr_core.syntax.parser``).
2. **Resolve:**   variable occurrences -> bindings (``resolver``).
3. **Build:**     bottom-up assembly of a lax open hypergraph; arity of every
                  sequential composition is checked here, then every
                  consumer is checked for a value (``strict_binding``).
4. **Close:**     each binding becomes a Frobenius spider (merges, then
                  copies; ``create``/``discard`` at the ends).  A wire that
                  only feeds itself gets a ``create`` and a ``discard``.
5. **Quotient:**  unified wires collapse; conflicting types are rejected.
6. **Typecheck:** types flow across Frobenius nodes (``inference``).
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from hexpr_core.api.errors import (
    BoundaryMismatchError,
    ParseError,
    UnknownOperationError,
    UnresolvedTypeError,
)
from hexpr_core.graph.config import CompilerConfig
from hexpr_core.graph.hypergraph import OpenHypergraph
from hexpr_core.graph.inference import propagate_types
from hexpr_core.graph.ir_types import EdgeKind
from hexpr_core.graph.resolver import (
    Driver,
    DriverKind,
    Resolution,
    Role,
    ScopeResolver,
)
from hexpr_core.graph.signature import Signature
from hexpr_core.syntax.ast import (
    Composition,
    Expr,
    Frobenius,
    Operation,
    Tensor,
    depth,
)
from hexpr_core.syntax.parser import HExprParser

logger = logging.getLogger(__name__)

Boundary = Tuple[List[int], List[int]]


class HypergraphBuilder:
    """Assemble the lax open hypergraph of one resolved expression.

    A builder is single-use: create one per compilation.
    """

    def __init__(
        self,
        signature: Signature,
        resolution: Resolution,
        strict_binding: bool = True,
    ) -> None:
        self.signature = signature
        self.resolution = resolution
        self.strict_binding = strict_binding
        self.graph = OpenHypergraph()
        self._next_bracket = 0
        self._occurrence_wire: Dict[int, int] = {}
        self._consumer_at: Dict[int, int] = {}
        self._producer_at: Dict[int, int] = {}
        self._drivers: Dict[int, Driver] = {}

    def build(self, expr: Expr) -> OpenHypergraph:
        """Build ``expr`` and close every binding.

        The returned hypergraph still carries its union-find; call
        ``quotient()`` on it to obtain the compacted result.
        """
        sources, targets = self._build(expr)
        self.graph.sources = list(sources)
        self.graph.targets = list(targets)
        if self.strict_binding:
            self._check_consumers()
        self._close_bindings()
        self._close_loops()
        return self.graph

    # ------------------------------------------------------------------
    # Syntax-directed construction
    # ------------------------------------------------------------------

    def _build(self, expr: Expr) -> Boundary:
        if isinstance(expr, Operation):
            return self._build_operation(expr)
        if isinstance(expr, Frobenius):
            return self._build_frobenius(expr)
        if isinstance(expr, Composition):
            return self._build_composition(expr)
        if isinstance(expr, Tensor):
            return self._build_tensor(expr)
        raise TypeError(f"Not an H-expression node: {expr!r}")

    def _build_operation(self, node: Operation) -> Boundary:
        op_type = self.signature.get(node.name)
        if op_type is None:
            raise UnknownOperationError(node.name, node.span)
        inputs = [self.graph.new_wire(t) for t in op_type.inputs]
        outputs = [self.graph.new_wire(t) for t in op_type.outputs]
        self.graph.new_edge(EdgeKind.operation, node.name, inputs, outputs)
        return inputs, outputs

    def _build_frobenius(self, node: Frobenius) -> Boundary:
        # Brackets are numbered in the same depth-first order the resolver used.
        consumers, producers = self.resolution.brackets[self._next_bracket]
        self._next_bracket += 1
        if len(consumers) != len(node.inputs) or len(producers) != len(node.outputs):
            raise RuntimeError(f"Resolution does not match bracket {node}")

        inputs = []
        for occurrence in consumers:
            wire = self.graph.new_wire()
            self._occurrence_wire[occurrence] = wire
            self._consumer_at[wire] = occurrence
            inputs.append(wire)

        outputs = []
        for occurrence in producers:
            wire = self.graph.new_wire()
            self._occurrence_wire[occurrence] = wire
            self._producer_at[wire] = occurrence
            outputs.append(wire)

        return inputs, outputs

    def _build_composition(self, node: Composition) -> Boundary:
        first, *rest = node.exprs
        sources, targets = self._build(first)
        left = first
        for right in rest:
            inputs, outputs = self._build(right)
            if len(targets) != len(inputs):
                raise BoundaryMismatchError(
                    len(targets), len(inputs), left.span, right.span
                )
            for out_wire, in_wire in zip(targets, inputs):
                self._join(out_wire, in_wire)
            targets = outputs
            left = right
        return sources, targets

    def _build_tensor(self, node: Tensor) -> Boundary:
        sources: List[int] = []
        targets: List[int] = []
        for expr in node.exprs:
            inputs, outputs = self._build(expr)
            sources.extend(inputs)
            targets.extend(outputs)
        return sources, targets

    def _join(self, out_wire: int, in_wire: int) -> None:
        consumer = self._consumer_at.get(in_wire)
        if consumer is not None:
            producer = self._producer_at.get(out_wire)
            if producer is None:
                self._drivers[consumer] = Driver(DriverKind.operation)
            else:
                self._drivers[consumer] = Driver(DriverKind.variable, producer)
        self.graph.unify(out_wire, in_wire)

    # ------------------------------------------------------------------
    # Binding check
    # ------------------------------------------------------------------

    def _check_consumers(self) -> None:
        """Check every consumer occurrence, in reading order.

        Runs after the whole tree is built: an inner composition is joined
        before the outer one that feeds it.
        """
        for occurrence in self.resolution.occurrences:
            if occurrence.role is Role.consumer:
                self.resolution.check_consumer(
                    occurrence.index, self._trace(occurrence.index)
                )

    def _trace(self, consumer: int) -> Driver:
        """Driver of ``consumer``, looking through pass-through bindings.

        A binding with exactly one consumer and one producer (``[_]``,
        ``[a . a]``) only hands its value on, so the value reaching its
        producer is whatever reached its consumer.
        """
        own = self.resolution.occurrences[consumer].binding
        driver = self._drivers.get(consumer, Driver(DriverKind.boundary))
        seen = {consumer}
        while driver.kind is DriverKind.variable:
            binding = self.resolution.bindings[
                self.resolution.occurrences[driver.occurrence].binding
            ]
            passes_through = len(binding.consumers) == len(binding.producers) == 1
            if binding.index == own or not passes_through:
                break
            (upstream,) = binding.consumers
            if upstream in seen:
                break
            seen.add(upstream)
            driver = self._drivers.get(upstream, Driver(DriverKind.boundary))
        return driver

    # ------------------------------------------------------------------
    # Frobenius spiders
    # ------------------------------------------------------------------

    def _close_bindings(self) -> None:
        for binding in self.resolution.bindings:
            ins = [self._occurrence_wire[o] for o in binding.consumers]
            outs = [self._occurrence_wire[o] for o in binding.producers]
            if len(ins) == 1 and len(outs) == 1:
                self.graph.unify(ins[0], outs[0])
                continue
            hub = self._merge_all(ins)
            self._copy_all(hub, outs)

    def _merge_all(self, wires: Sequence[int]) -> int:
        g = self.graph
        if not wires:
            hub = g.new_wire()
            g.new_edge(EdgeKind.create, EdgeKind.create.value, [], [hub])
            return hub
        hub = wires[0]
        for wire in wires[1:]:
            merged = g.new_wire()
            g.new_edge(EdgeKind.merge, EdgeKind.merge.value, [hub, wire], [merged])
            hub = merged
        return hub

    def _copy_all(self, hub: int, wires: Sequence[int]) -> None:
        g = self.graph
        if not wires:
            g.new_edge(EdgeKind.discard, EdgeKind.discard.value, [hub], [])
            return
        if len(wires) == 1:
            g.unify(hub, wires[0])
            return
        current = hub
        for wire in wires[:-2]:
            rest = g.new_wire()
            g.new_edge(EdgeKind.copy, EdgeKind.copy.value, [current], [wire, rest])
            current = rest
        g.new_edge(EdgeKind.copy, EdgeKind.copy.value, [current], list(wires[-2:]))

    def _close_loops(self) -> None:
        """Give a ``create`` and a ``discard`` to wires that only feed themselves.

        In ``([.x] [x.])`` the producer of ``x`` is composed straight into
        its consumer: the value is summoned and retired without ever
        touching a node, and its wire class has no ends at all.
        """
        g = self.graph
        produced = {g.find(w) for w in g.sources}
        consumed = {g.find(w) for w in g.targets}
        for edge in g.edges:
            produced.update(g.find(w) for w in edge.targets)
            consumed.update(g.find(w) for w in edge.sources)

        for occurrence, wire in sorted(self._occurrence_wire.items()):
            root = g.find(wire)
            if root in produced:
                continue
            g.new_edge(EdgeKind.create, EdgeKind.create.value, [], [root])
            produced.add(root)
            if root not in consumed:
                g.new_edge(EdgeKind.discard, EdgeKind.discard.value, [root], [])
                consumed.add(root)
            var = self.resolution.occurrences[occurrence].variable
            logger.debug(
                f"Variable '{var}' only feeds itself; closed with create/discard"
            )


class HExprCompiler:
    """Compile H-expressions against a signature.

    The compiler only holds read-only state, so one instance may serve many
    compilations.

    Usage
    -----
    >>> compiler = HExprCompiler(signature)
    >>> graph = compiler.compile("([x . x x] add)")
    >>> graph.arity
    (1, 1)
    """

    def __init__(
        self,
        signature: Optional[Signature] = None,
        config: Optional[CompilerConfig] = None,
    ) -> None:
        self.signature = signature if signature is not None else Signature.empty()
        self.config = config if config is not None else CompilerConfig()

    def parse(self, source: str) -> Expr:
        return HExprParser.parse(source, max_depth=self.config.max_depth)

    def compile(self, source: str) -> OpenHypergraph:
        """Full compilation pipeline.

        Raises
        ------
        CompileError
            ``ParseError``, ``UnboundVariableError``,
            ``UnknownOperationError``, ``BoundaryMismatchError``,
            ``TypeConflictError`` or ``UnresolvedTypeError``.
        """
        return self.compile_expr(self.parse(source))

    def compile_expr(self, expr: Expr) -> OpenHypergraph:
        """Compile an already parsed syntax tree."""
        nesting = depth(expr)
        if nesting > self.config.max_depth:
            raise ParseError(
                f"Expression nested too deeply ({nesting} levels, "
                f"limit {self.config.max_depth})"
            )

        resolution = ScopeResolver(self.config.scope).resolve(expr)
        builder = HypergraphBuilder(
            self.signature,
            resolution,
            strict_binding=self.config.strict_binding,
        )
        graph = builder.build(expr).quotient()
        propagate_types(graph)

        if self.config.require_types:
            unresolved = graph.unresolved_wires()
            if unresolved:
                raise UnresolvedTypeError(unresolved)

        n_in, n_out = graph.arity
        logger.info(
            f"Compiled '{expr}': {n_in} -> {n_out}, "
            f"{len(graph.edges)} edges, {len(graph.wires)} wires"
        )
        return graph


def compile_hexpr(
    source: str,
    signature: Optional[Signature] = None,
    config: Optional[CompilerConfig] = None,
) -> OpenHypergraph:
    """Compile ``source`` into an open hypergraph (see ``HExprCompiler``)."""
    return HExprCompiler(signature, config).compile(source)
