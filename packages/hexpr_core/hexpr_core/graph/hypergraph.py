"""hexpr_core.graph.hypergraph
=============================

OpenHypergraph: the arena that compiled H-expressions live in.

Wires and hyperedges are addressed by list index, never by reference.  During
construction wires are only ever added; identifying two wires is recorded in
a union-find (``unify``) and applied once by ``quotient()``, which returns a
new, compacted hypergraph.

A quotiented hypergraph produced by the compiler is *monogamous*: every wire
has exactly one producing end (an input-boundary entry or an edge target) and
exactly one consuming end (an output-boundary entry or an edge source).
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from hexpr_core.api.errors import TypeConflictError
from hexpr_core.graph.ir_types import FROBENIUS_ARITY, EdgeKind

logger = logging.getLogger(__name__)


@dataclass
class Wire:
    """One strand of the diagram; ``label`` is its type name, if known."""

    index: int
    label: Optional[str] = None


@dataclass
class HyperEdge:
    """An operation or Frobenius node with ordered input and output wires."""

    kind: EdgeKind
    label: str
    sources: List[int] = field(default_factory=list)
    targets: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "label": self.label,
            "sources": list(self.sources),
            "targets": list(self.targets),
        }


@dataclass
class OpenHypergraph:
    """Hypergraph with an ordered input boundary and output boundary.

    Attributes
    ----------
    wires : list[Wire]
        Wire arena; ``wires[i].index == i``.
    edges : list[HyperEdge]
        Hyperedges in creation order.
    sources : list[int]
        Input boundary (wire indices, in order; repeats allowed).
    targets : list[int]
        Output boundary (wire indices, in order; repeats allowed).
    """

    wires: List[Wire] = field(default_factory=list)
    edges: List[HyperEdge] = field(default_factory=list)
    sources: List[int] = field(default_factory=list)
    targets: List[int] = field(default_factory=list)
    _parent: List[int] = field(default_factory=list, repr=False, compare=False)

    # ---- Construction ----

    def new_wire(self, label: Optional[str] = None) -> int:
        index = len(self.wires)
        self.wires.append(Wire(index, label))
        self._parent.append(index)
        return index

    def new_edge(
        self,
        kind: EdgeKind,
        label: str,
        sources: Sequence[int],
        targets: Sequence[int],
    ) -> int:
        if kind.is_frobenius:
            n_in, n_out = FROBENIUS_ARITY[kind]
            if (len(sources), len(targets)) != (n_in, n_out):
                raise ValueError(
                    f"{kind.value} node takes {n_in} -> {n_out} wires, "
                    f"got {len(sources)} -> {len(targets)}"
                )
        for w in list(sources) + list(targets):
            if not 0 <= w < len(self.wires):
                raise IndexError(f"Wire {w} does not exist")
        self.edges.append(HyperEdge(kind, label, list(sources), list(targets)))
        return len(self.edges) - 1

    # ---- Wire identification ----

    def _sync_parent(self) -> None:
        while len(self._parent) < len(self.wires):
            self._parent.append(len(self._parent))

    def find(self, wire: int) -> int:
        self._sync_parent()
        parent = self._parent
        while parent[wire] != wire:
            parent[wire] = parent[parent[wire]]
            wire = parent[wire]
        return wire

    def unify(self, a: int, b: int) -> None:
        """Record that wires ``a`` and ``b`` are one and the same wire."""
        ra, rb = self.find(a), self.find(b)
        if ra == rb:
            return
        # Lowest index wins so quotient numbering is deterministic.
        if rb < ra:
            ra, rb = rb, ra
        self._parent[rb] = ra

    def quotient(self) -> "OpenHypergraph":
        """Return a new hypergraph with every unified class collapsed to one wire.

        Raises
        ------
        TypeConflictError
            If two unified wires carry different type labels.
        """
        roots = [self.find(i) for i in range(len(self.wires))]
        new_index: Dict[int, int] = {}
        for root in roots:
            if root not in new_index:
                new_index[root] = len(new_index)

        labels: List[Optional[str]] = [None] * len(new_index)
        for wire, root in zip(self.wires, roots):
            if wire.label is None:
                continue
            k = new_index[root]
            if labels[k] is None:
                labels[k] = wire.label
            elif labels[k] != wire.label:
                raise TypeConflictError(k, labels[k], wire.label)

        def remap(ws: Sequence[int]) -> List[int]:
            return [new_index[roots[w]] for w in ws]

        result = OpenHypergraph(
            wires=[Wire(k, lbl) for k, lbl in enumerate(labels)],
            edges=[
                HyperEdge(e.kind, e.label, remap(e.sources), remap(e.targets))
                for e in self.edges
            ],
            sources=remap(self.sources),
            targets=remap(self.targets),
        )
        logger.debug(
            f"Quotient: {len(self.wires)} wires -> {len(result.wires)} wires"
        )
        return result

    # ---- Queries ----

    @property
    def arity(self) -> Tuple[int, int]:
        return len(self.sources), len(self.targets)

    def edges_of_kind(self, kind: EdgeKind) -> List[HyperEdge]:
        return [e for e in self.edges if e.kind is kind]

    def count(self, kind: EdgeKind) -> int:
        return len(self.edges_of_kind(kind))

    def wire_ends(self) -> Tuple[List[int], List[int]]:
        """Per-wire counts of producing ends and consuming ends."""
        produced = [0] * len(self.wires)
        consumed = [0] * len(self.wires)
        for w in self.sources:
            produced[w] += 1
        for w in self.targets:
            consumed[w] += 1
        for edge in self.edges:
            for w in edge.targets:
                produced[w] += 1
            for w in edge.sources:
                consumed[w] += 1
        return produced, consumed

    def is_monogamous(self) -> bool:
        produced, consumed = self.wire_ends()
        return all(p == 1 for p in produced) and all(c == 1 for c in consumed)

    def unresolved_wires(self) -> List[int]:
        return [w.index for w in self.wires if w.label is None]

    def canonical(self) -> Tuple[Any, ...]:
        """Structure with wires renumbered by first appearance.

        Equal canonical forms imply isomorphic hypergraphs, so two diagrams
        that differ only in wire numbering compare equal.
        """
        order: Dict[int, int] = {}

        def visit(ws: Sequence[int]) -> Tuple[int, ...]:
            for w in ws:
                if w not in order:
                    order[w] = len(order)
            return tuple(order[w] for w in ws)

        sources = visit(self.sources)
        edges = tuple(
            (e.kind.value, e.label, visit(e.sources), visit(e.targets))
            for e in self.edges
        )
        targets = visit(self.targets)
        visit(range(len(self.wires)))
        labels = tuple(
            label
            for _, label in sorted(
                (order[w.index], w.label) for w in self.wires
            )
        )
        return sources, edges, targets, labels

    # ---- Serialize ----

    def serialize(self) -> Dict[str, Any]:
        """JSON-serializable description, with a hash of the canonical form."""
        canonical_json = json.dumps(self.canonical(), ensure_ascii=False)
        graph_hash = hashlib.sha256(canonical_json.encode("utf-8")).hexdigest()
        return {
            "graph_sha256": graph_hash,
            "n_wires": len(self.wires),
            "n_edges": len(self.edges),
            "wires": [{"index": w.index, "type": w.label} for w in self.wires],
            "edges": [e.to_dict() for e in self.edges],
            "sources": list(self.sources),
            "targets": list(self.targets),
        }

    # ---- Explain ----

    def explain(self) -> str:
        """Return a deterministic text explanation of the hypergraph."""
        from hexpr_core.graph.introspection import explain_graph

        return explain_graph(self)
