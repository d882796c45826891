"""hexpr_core.graph.inference
===========================

Type propagation across Frobenius nodes.

Operation ports are typed from the signature when they are created, and
``quotient()`` already rejects two differently typed wires collapsing into
one.  What remains is the Frobenius structure: every wire touching a copy,
merge, discard or create node carries the same value type, so a type known
on any of them is shared by all of them.

Wires are grouped with a small union-find over wire indices; a group with two
different known types is a ``TypeConflictError``.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from hexpr_core.api.errors import TypeConflictError
from hexpr_core.graph.hypergraph import OpenHypergraph

logger = logging.getLogger(__name__)


def _find(parent: List[int], w: int) -> int:
    while parent[w] != w:
        parent[w] = parent[parent[w]]
        w = parent[w]
    return w


def propagate_types(graph: OpenHypergraph) -> int:
    """Label wires in place with the type of their Frobenius group.

    Returns
    -------
    int
        Number of wires whose label was filled in.

    Raises
    ------
    TypeConflictError
        If one Frobenius group joins two different types.
    """
    parent = list(range(len(graph.wires)))
    for edge in graph.edges:
        if not edge.kind.is_frobenius:
            continue
        ends = edge.sources + edge.targets
        root = _find(parent, ends[0])
        for w in ends[1:]:
            other = _find(parent, w)
            if other != root:
                parent[other] = root

    group_type: Dict[int, Optional[str]] = {}
    for wire in graph.wires:
        if wire.label is None:
            continue
        root = _find(parent, wire.index)
        known = group_type.get(root)
        if known is None:
            group_type[root] = wire.label
        elif known != wire.label:
            raise TypeConflictError(wire.index, known, wire.label)

    filled = 0
    for wire in graph.wires:
        if wire.label is not None:
            continue
        label = group_type.get(_find(parent, wire.index))
        if label is not None:
            wire.label = label
            filled += 1

    logger.debug(
        f"Type propagation: {filled} wires labelled, "
        f"{len(graph.unresolved_wires())} unresolved"
    )
    return filled
