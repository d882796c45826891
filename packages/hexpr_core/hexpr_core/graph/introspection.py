"""hexpr_core.graph.introspection
===============================

Deterministic text explanation of a compiled hypergraph: boundaries, edges,
Frobenius node counts and wire types.

Functions
---------
explain_graph   Produce a multi-line text summary of an OpenHypergraph.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Sequence

from hexpr_core.graph.ir_types import EdgeKind

if TYPE_CHECKING:
    from hexpr_core.graph.hypergraph import OpenHypergraph


def explain_graph(graph: "OpenHypergraph", title: Optional[str] = None) -> str:
    """Return a deterministic text explanation of the hypergraph.

    Includes:
    * Arity and wire/edge counts.
    * The ordered input and output boundaries with wire types.
    * Every hyperedge in creation order.
    * Per-kind node counts and the unresolved wires, if any.

    Parameters
    ----------
    graph : OpenHypergraph
        A compiled (quotiented) hypergraph.
    title : str, optional
        Heading; usually the source expression.

    Returns
    -------
    str
        Multi-line human-readable explanation.
    """
    n_in, n_out = graph.arity
    lines: list[str] = []
    lines.append(f"OpenHypergraph: {title}" if title else "OpenHypergraph")
    lines.append("=" * (len(lines[0])))
    lines.append("")

    # Summary
    lines.append("Summary")
    lines.append("-------")
    lines.append(f"  Arity:       {n_in} -> {n_out}")
    lines.append(f"  Wires:       {len(graph.wires)}")
    lines.append(f"  Edges:       {len(graph.edges)}")
    lines.append(f"  Monogamous:  {graph.is_monogamous()}")
    lines.append("")

    # Boundaries
    lines.append("Boundary")
    lines.append("--------")
    lines.append(f"  inputs:  {_wire_list(graph, graph.sources)}")
    lines.append(f"  outputs: {_wire_list(graph, graph.targets)}")
    lines.append("")

    # Edges
    if graph.edges:
        lines.append("Edges")
        lines.append("-----")
        for i, edge in enumerate(graph.edges):
            tag = "" if edge.kind is EdgeKind.operation else f" ({edge.kind.value})"
            lines.append(
                f"  {i + 1}. {edge.label}{tag}: "
                f"{_wire_list(graph, edge.sources)} -> "
                f"{_wire_list(graph, edge.targets)}"
            )
        lines.append("")

    # Frobenius totals
    lines.append("Frobenius nodes")
    lines.append("---------------")
    for kind in EdgeKind:
        if kind.is_frobenius:
            lines.append(f"  {kind.value + ':':<10} {graph.count(kind)}")
    lines.append("")

    unresolved = graph.unresolved_wires()
    if unresolved:
        lines.append("Unresolved wires")
        lines.append("----------------")
        lines.append(f"  {', '.join(f'w{w}' for w in unresolved)}")
        lines.append("")

    return "\n".join(lines)


def _wire_list(graph: "OpenHypergraph", wires: Sequence[int]) -> str:
    """Format wires as ``[w0:ℝ, w1:?]``."""
    parts = []
    for w in wires:
        label = graph.wires[w].label
        parts.append(f"w{w}:{label if label is not None else '?'}")
    return "[" + ", ".join(parts) + "]"
