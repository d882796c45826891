"""hexpr_core.graph.dot
=====================

Graphviz export of a compiled hypergraph.

Layout is left to right.  Each wire is a point node labelled with its type;
operations are boxes, Frobenius nodes are small circles (filled for
copy/merge, hollow for discard/create), and the boundaries are numbered
ports ``in0, in1, ...`` / ``out0, out1, ...``.  Only DOT text is produced;
rendering it is left to the ``dot`` tool.
"""

from __future__ import annotations

import logging
from typing import Optional

import pydot

from hexpr_core.graph.hypergraph import OpenHypergraph
from hexpr_core.graph.ir_types import EdgeKind

logger = logging.getLogger(__name__)

_FROBENIUS_STYLE = {
    EdgeKind.copy: {"style": "filled", "fillcolor": "black"},
    EdgeKind.merge: {"style": "filled", "fillcolor": "black"},
    EdgeKind.discard: {"style": "solid"},
    EdgeKind.create: {"style": "solid"},
}


def to_dot(graph: OpenHypergraph, name: str = "hexpr", title: Optional[str] = None) -> str:
    """Return the hypergraph as Graphviz DOT text."""
    dot = pydot.Dot(
        name,
        graph_type="digraph",
        rankdir="LR",
        fontname="Helvetica",
    )
    if title:
        dot.set_label(title)

    for wire in graph.wires:
        dot.add_node(
            pydot.Node(
                f"w{wire.index}",
                shape="point",
                xlabel=wire.label if wire.label is not None else "?",
                fontname="Helvetica",
                fontsize="9",
            )
        )

    for i, w in enumerate(graph.sources):
        dot.add_node(pydot.Node(f"in{i}", label=f"in{i}", shape="plaintext"))
        dot.add_edge(pydot.Edge(f"in{i}", f"w{w}", arrowhead="none"))

    for i, w in enumerate(graph.targets):
        dot.add_node(pydot.Node(f"out{i}", label=f"out{i}", shape="plaintext"))
        dot.add_edge(pydot.Edge(f"w{w}", f"out{i}"))

    for k, edge in enumerate(graph.edges):
        node_id = f"e{k}"
        if edge.kind is EdgeKind.operation:
            dot.add_node(
                pydot.Node(node_id, label=edge.label, shape="box", fontname="Helvetica")
            )
        else:
            dot.add_node(
                pydot.Node(
                    node_id,
                    label="",
                    shape="circle",
                    width="0.15",
                    tooltip=edge.kind.value,
                    **_FROBENIUS_STYLE[edge.kind],
                )
            )
        # Port order is kept in the edge labels.
        for port, w in enumerate(edge.sources):
            dot.add_edge(
                pydot.Edge(f"w{w}", node_id, arrowhead="none", headlabel=str(port))
            )
        for port, w in enumerate(edge.targets):
            dot.add_edge(pydot.Edge(node_id, f"w{w}", taillabel=str(port)))

    logger.debug(f"DOT export: {len(graph.wires)} wires, {len(graph.edges)} edges")
    return dot.to_string()
