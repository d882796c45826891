"""test_inference.py

Type propagation across Frobenius nodes.
"""

from __future__ import annotations

import pytest

from hexpr_core.api.errors import TypeConflictError
from hexpr_core.graph.hypergraph import OpenHypergraph
from hexpr_core.graph.inference import propagate_types
from hexpr_core.graph.ir_types import EdgeKind


def _graph(*labels):
    g = OpenHypergraph()
    for label in labels:
        g.new_wire(label)
    return g


class TestPropagateTypes:
    def test_copy_shares_its_type(self) -> None:
        g = _graph("ℝ", None, None)
        g.new_edge(EdgeKind.copy, "copy", [0], [1, 2])
        assert propagate_types(g) == 2
        assert [w.label for w in g.wires] == ["ℝ", "ℝ", "ℝ"]

    def test_type_flows_backwards_through_merge(self) -> None:
        g = _graph(None, None, "ℕ")
        g.new_edge(EdgeKind.merge, "merge", [0, 1], [2])
        propagate_types(g)
        assert g.unresolved_wires() == []

    def test_chained_frobenius_nodes(self) -> None:
        g = _graph(None, None, None, None, "ℝ")
        g.new_edge(EdgeKind.copy, "copy", [0], [1, 2])
        g.new_edge(EdgeKind.copy, "copy", [2], [3, 4])
        assert propagate_types(g) == 4

    def test_operations_do_not_propagate(self) -> None:
        g = _graph("ℕ", None)
        g.new_edge(EdgeKind.operation, "f", [0], [1])
        assert propagate_types(g) == 0
        assert g.unresolved_wires() == [1]

    def test_discard_and_create_are_single_wires(self) -> None:
        g = _graph(None, None)
        g.new_edge(EdgeKind.discard, "discard", [0], [])
        g.new_edge(EdgeKind.create, "create", [], [1])
        assert propagate_types(g) == 0

    def test_conflict(self) -> None:
        g = _graph("ℕ", "ℝ", None)
        g.new_edge(EdgeKind.merge, "merge", [0, 1], [2])
        with pytest.raises(TypeConflictError, match="cannot unify ℕ with ℝ") as info:
            propagate_types(g)
        assert info.value.wire == 1

    def test_untyped_group_stays_untyped(self) -> None:
        g = _graph(None, None, None)
        g.new_edge(EdgeKind.copy, "copy", [0], [1, 2])
        assert propagate_types(g) == 0
        assert g.unresolved_wires() == [0, 1, 2]
