"""test_compiler.py

End-to-end compilation of H-expressions into open hypergraphs.

Tests
-----
* Frobenius brackets become merge / copy / discard / create nodes.
* Sequential and parallel composition produce the expected boundaries.
* Boundary mismatches, unknown operations and unbound variables are rejected.
* Composing with an identity of matching arity changes nothing, including
  for unbound variables.
* A value summoned and retired at once gets a create and a discard.
* Every compiled hypergraph is monogamous.
* Config switches (scope, strict_binding, require_types, max_depth).
"""

from __future__ import annotations

import json
import logging

import pytest

from hexpr_core.api.errors import (
    BoundaryMismatchError,
    CompileError,
    ParseError,
    TypeConflictError,
    UnboundVariableError,
    UnknownOperationError,
    UnresolvedTypeError,
)
from hexpr_core.graph.compiler import HExprCompiler, compile_hexpr
from hexpr_core.graph.config import CompilerConfig, ScopeMode
from hexpr_core.graph.ir_types import EdgeKind
from hexpr_core.graph.signature import Signature

README_EXAMPLE = "([a b.] { ([.a b] add [acc.]) ([.a acc] mul [result.]) })"

WELL_FORMED = [
    "[x x . x]",
    "[x . x x]",
    "[x .]",
    "[. x]",
    "[x y]",
    "[_ . _]",
    "([x . x x] add)",
    "({[_] neg} add)",
    "({[_] -} +)",
    "(divmod [q r . r q])",
    "([.x] neg [x.])",
    "([.x] [x.])",
    "([a . b] [b . c])",
    "{zero [x x . x] print}",
    README_EXAMPLE,
]


def _kinds(graph):
    return [edge.kind for edge in graph.edges]


class TestFrobeniusNodes:
    def test_merge(self, empty_compiler: HExprCompiler) -> None:
        graph = empty_compiler.compile("[x x . x]")
        assert graph.arity == (2, 1)
        assert _kinds(graph) == [EdgeKind.merge]
        assert len(graph.wires) == 3

    def test_copy(self, empty_compiler: HExprCompiler) -> None:
        graph = empty_compiler.compile("[x . x x]")
        assert graph.arity == (1, 2)
        assert _kinds(graph) == [EdgeKind.copy]
        assert graph.edges[0].sources == graph.sources

    def test_discard(self, empty_compiler: HExprCompiler) -> None:
        graph = empty_compiler.compile("[x .]")
        assert graph.arity == (1, 0)
        assert _kinds(graph) == [EdgeKind.discard]

    def test_create(self, empty_compiler: HExprCompiler) -> None:
        graph = empty_compiler.compile("[. x]")
        assert graph.arity == (0, 1)
        assert _kinds(graph) == [EdgeKind.create]

    @pytest.mark.parametrize("source", ["[x y . x y]", "[x y]"])
    def test_permutation_free_identity(
        self, empty_compiler: HExprCompiler, source: str
    ) -> None:
        graph = empty_compiler.compile(source)
        assert len(graph.wires) == 2
        assert graph.edges == []
        assert graph.sources == graph.targets == [0, 1]

    def test_swap(self, empty_compiler: HExprCompiler) -> None:
        graph = empty_compiler.compile("[x y . y x]")
        assert graph.edges == []
        assert graph.targets == list(reversed(graph.sources))

    def test_anonymous_identity_shorthand(self, empty_compiler: HExprCompiler) -> None:
        graph = empty_compiler.compile("[_]")
        assert graph.edges == []
        assert graph.sources == graph.targets

    def test_explicit_anonymous_bracket(self, empty_compiler: HExprCompiler) -> None:
        graph = empty_compiler.compile("[_ . _]")
        assert _kinds(graph) == [EdgeKind.discard, EdgeKind.create]

    def test_three_way_copy_is_a_chain(self, empty_compiler: HExprCompiler) -> None:
        graph = empty_compiler.compile("[x . x x x]")
        assert graph.arity == (1, 3)
        assert _kinds(graph) == [EdgeKind.copy, EdgeKind.copy]

    def test_unrelated_names(self, empty_compiler: HExprCompiler) -> None:
        graph = empty_compiler.compile("[a . b]")
        assert _kinds(graph) == [EdgeKind.discard, EdgeKind.create]

    def test_empty_diagram(self, empty_compiler: HExprCompiler) -> None:
        graph = empty_compiler.compile("[]")
        assert graph.arity == (0, 0)
        assert graph.wires == [] and graph.edges == []


class TestComposition:
    def test_copy_then_add(self, compiler: HExprCompiler) -> None:
        graph = compiler.compile("([x . x x] add)")
        assert graph.arity == (1, 1)
        assert _kinds(graph) == [EdgeKind.operation, EdgeKind.copy]
        assert len(graph.wires) == 4
        add = graph.edges[0]
        copy = graph.edges[1]
        assert copy.targets == add.sources
        assert graph.targets == add.targets

    def test_tensor_then_add(self, compiler: HExprCompiler) -> None:
        graph = compiler.compile("({[_] neg} add)")
        assert graph.arity == (2, 1)
        assert [e.label for e in graph.edges] == ["neg", "add"]
        assert graph.unresolved_wires() == []

    def test_symbolic_operations(self, compiler: HExprCompiler) -> None:
        graph = compiler.compile("({[_] -} +)")
        assert graph.arity == (2, 1)
        assert [e.label for e in graph.edges] == ["-", "+"]

    def test_operation_ports_keep_order(self, compiler: HExprCompiler) -> None:
        graph = compiler.compile("(divmod [q r . r q])")
        (divmod,) = graph.edges
        assert graph.targets == list(reversed(divmod.targets))

    def test_empty_boundaries(self, compiler: HExprCompiler) -> None:
        assert compiler.compile("(zero neg)").arity == (0, 1)
        assert compiler.compile("(neg print)").arity == (1, 0)

    def test_imperative_style_program(self, compiler: HExprCompiler) -> None:
        graph = compiler.compile(README_EXAMPLE)
        assert graph.arity == (2, 0)
        assert graph.count(EdgeKind.operation) == 2
        assert graph.count(EdgeKind.copy) == 1
        assert graph.count(EdgeKind.discard) == 1
        assert graph.count(EdgeKind.merge) == 0
        assert len(graph.wires) == 6
        assert graph.unresolved_wires() == []

    def test_feedback_through_operation(self, compiler: HExprCompiler) -> None:
        graph = compiler.compile("([.x] neg [x.])")
        (neg,) = graph.edges
        assert neg.sources == neg.targets
        assert graph.arity == (0, 0)

    @pytest.mark.parametrize(
        "source, kinds",
        [
            ("([.x] [x.])", [EdgeKind.create, EdgeKind.discard]),
            ("([.x] [_] [x.])", [EdgeKind.create, EdgeKind.discard]),
            (
                "([a . b] [b . c])",
                [EdgeKind.discard, EdgeKind.create, EdgeKind.create, EdgeKind.discard],
            ),
        ],
    )
    def test_summoned_then_retired(
        self, compiler: HExprCompiler, source: str, kinds
    ) -> None:
        graph = compiler.compile(source)
        assert _kinds(graph) == kinds
        create, discard = graph.edges[-2:]
        assert create.targets == discard.sources


class TestIdentityLaw:
    @pytest.mark.parametrize(
        "plain, padded",
        [
            ("neg", "(neg [_])"),
            ("neg", "([_] neg)"),
            ("add", "([_ _] add)"),
            ("divmod", "(divmod [a b])"),
            ("([x . x x] add)", "([y] [x . x x] add [z])"),
        ],
    )
    def test_identity_is_neutral(
        self, compiler: HExprCompiler, plain: str, padded: str
    ) -> None:
        a = compiler.compile(plain)
        b = compiler.compile(padded)
        assert a.canonical() == b.canonical()
        assert a.serialize()["graph_sha256"] == b.serialize()["graph_sha256"]

    def test_renaming_variables_gives_same_graph(self, compiler: HExprCompiler) -> None:
        a = compiler.compile("([x . x x] add)")
        b = compiler.compile("([y . y y] add)")
        assert a.canonical() == b.canonical()


class TestMonogamy:
    @pytest.mark.parametrize("source", WELL_FORMED)
    def test_every_wire_has_one_producer_and_one_consumer(
        self, lax_compiler: HExprCompiler, source: str
    ) -> None:
        graph = lax_compiler.compile(source)
        assert graph.is_monogamous()

    @pytest.mark.parametrize("source", WELL_FORMED)
    def test_strict_and_lax_agree_on_bound_programs(
        self, compiler: HExprCompiler, lax_compiler: HExprCompiler, source: str
    ) -> None:
        assert compiler.compile(source).canonical() == lax_compiler.compile(source).canonical()


class TestErrors:
    def test_boundary_mismatch(self, compiler: HExprCompiler) -> None:
        with pytest.raises(
            BoundaryMismatchError, match="Composition mismatch: 1 outputs"
        ) as info:
            compiler.compile("(neg add)")
        err = info.value
        assert (err.expected, err.actual) == (1, 2)
        assert str(err.left_span) == "1:2"
        assert str(err.right_span) == "1:6"

    def test_unknown_operation(self, empty_compiler: HExprCompiler) -> None:
        with pytest.raises(UnknownOperationError, match="'add'") as info:
            empty_compiler.compile("(add)")
        assert info.value.name == "add"
        assert str(info.value.span) == "1:2"

    def test_unbound_variable(self, compiler: HExprCompiler) -> None:
        with pytest.raises(UnboundVariableError, match="'y'") as info:
            compiler.compile("([.x] [y.])")
        assert info.value.name == "y"

    def test_unbound_from_fresh_variable(self, compiler: HExprCompiler) -> None:
        with pytest.raises(UnboundVariableError, match="'c'") as info:
            compiler.compile("([a . b] [c .])")
        assert "never receives" in info.value.message

    def test_renaming_a_received_value_is_bound(self, compiler: HExprCompiler) -> None:
        graph = compiler.compile("(neg [a . a] [b . b] neg)")
        assert graph.arity == (1, 1)

    @pytest.mark.parametrize(
        "source",
        [
            "([.x] [_] [y.])",
            "([.x] {[_]} [y.])",
            "([.x] ([_]) [y.])",
            "([.x] ([_] [y.]))",
            "([.x] [_] [_] [y.])",
        ],
    )
    def test_unbound_behind_identity(self, compiler: HExprCompiler, source: str) -> None:
        with pytest.raises(UnboundVariableError, match="'y'") as info:
            compiler.compile(source)
        assert "'x'" in info.value.message

    def test_type_conflict_on_composition(self, compiler: HExprCompiler) -> None:
        with pytest.raises(TypeConflictError, match="cannot unify ℕ with ℝ"):
            compiler.compile("(succ neg)")

    def test_type_conflict_through_merge(self, compiler: HExprCompiler) -> None:
        with pytest.raises(TypeConflictError) as info:
            compiler.compile("({succ neg} [x x . x])")
        assert {info.value.type1, info.value.type2} == {"ℕ", "ℝ"}

    def test_all_errors_are_compile_errors(self, compiler: HExprCompiler) -> None:
        for source in ["(", "(neg add)", "(foo)", "([.x] [y.])", "(succ neg)"]:
            with pytest.raises(CompileError):
                compiler.compile(source)


class TestTypes:
    def test_operation_ports_are_typed(self, compiler: HExprCompiler) -> None:
        graph = compiler.compile("add")
        assert [w.label for w in graph.wires] == ["ℝ", "ℝ", "ℝ"]

    def test_types_flow_through_copy(self, compiler: HExprCompiler) -> None:
        graph = compiler.compile("([x . x x] add)")
        assert all(w.label == "ℝ" for w in graph.wires)

    def test_types_flow_through_discard(self, compiler: HExprCompiler) -> None:
        graph = compiler.compile("(succ [n .])")
        assert graph.unresolved_wires() == []
        assert graph.wires[graph.sources[0]].label == "ℕ"

    def test_untyped_wires_are_accepted(self, empty_compiler: HExprCompiler) -> None:
        graph = empty_compiler.compile("[x . x x]")
        assert len(graph.unresolved_wires()) == 3

    def test_require_types(self, signature: Signature) -> None:
        compiler = HExprCompiler(signature, CompilerConfig(require_types=True))
        compiler.compile("([x . x x] add)")
        with pytest.raises(UnresolvedTypeError) as info:
            compiler.compile("[x . x x]")
        assert len(info.value.wires) == 3


class TestConfig:
    def test_block_scope(self, empty_compiler: HExprCompiler) -> None:
        source = "{([x .]) ([. x])}"
        shared = empty_compiler.compile(source)
        assert shared.arity == (1, 1)
        assert shared.edges == []

        block = HExprCompiler(config=CompilerConfig(scope=ScopeMode.block))
        separate = block.compile(source)
        assert separate.arity == (1, 1)
        assert _kinds(separate) == [EdgeKind.discard, EdgeKind.create]

    def test_strict_binding_off(self, lax_compiler: HExprCompiler) -> None:
        graph = lax_compiler.compile("([.x] [y.])")
        assert _kinds(graph) == [EdgeKind.create, EdgeKind.discard]
        assert len(graph.wires) == 1

    def test_max_depth(self, signature: Signature) -> None:
        compiler = HExprCompiler(signature, CompilerConfig(max_depth=3))
        compiler.compile("((neg))")
        with pytest.raises(ParseError, match="nested too deeply"):
            compiler.compile("(((neg)))")

    def test_max_depth_on_parsed_tree(self, signature: Signature) -> None:
        expr = HExprCompiler(signature).parse("(((neg)))")
        shallow = HExprCompiler(signature, CompilerConfig(max_depth=2))
        with pytest.raises(ParseError, match="nested too deeply"):
            shallow.compile_expr(expr)

    @pytest.mark.parametrize(
        "config", [CompilerConfig(), CompilerConfig(max_depth=300)], ids=["default", "cap"]
    )
    def test_nesting_up_to_max_depth(
        self, signature: Signature, config: CompilerConfig
    ) -> None:
        compiler = HExprCompiler(signature, config)
        levels = config.max_depth - 1
        source = "(" * levels + "neg" + ")" * levels
        assert compiler.compile(source).arity == (1, 1)
        with pytest.raises(ParseError, match="nested too deeply"):
            compiler.compile("(" + source + ")")

    def test_deep_tensor_with_debug_logging(self, caplog) -> None:
        compiler = HExprCompiler(config=CompilerConfig(max_depth=300))
        source = "{" * 299 + "[x . x x]" + "}" * 299
        with caplog.at_level(logging.DEBUG):
            graph = compiler.compile(source)
        assert graph.arity == (1, 2)
        assert "Compiled" in caplog.text


class TestEntryPoints:
    def test_compile_hexpr_default_signature(self) -> None:
        graph = compile_hexpr("[x . x x]")
        assert graph.arity == (1, 2)

    def test_compile_hexpr_with_signature(self, signature: Signature) -> None:
        graph = compile_hexpr("({[_] neg} add)", signature)
        assert graph.arity == (2, 1)

    def test_compiler_is_reusable(self, compiler: HExprCompiler) -> None:
        first = compiler.compile(README_EXAMPLE)
        second = compiler.compile(README_EXAMPLE)
        assert first.canonical() == second.canonical()

    def test_serialize_is_json_safe(self, compiler: HExprCompiler) -> None:
        serialized = compiler.compile("([x . x x] add)").serialize()
        assert len(serialized["graph_sha256"]) == 64
        assert serialized["n_wires"] == 4
        assert serialized["n_edges"] == 2
        parsed = json.loads(json.dumps(serialized))
        assert [e["kind"] for e in parsed["edges"]] == ["operation", "copy"]
        assert parsed["wires"][0]["type"] == "ℝ"

    def test_info_log_on_success(self, compiler: HExprCompiler, caplog) -> None:
        with caplog.at_level(logging.INFO, logger="hexpr_core.graph.compiler"):
            compiler.compile("([x . x x] add)")
        assert "Compiled" in caplog.text
        assert "1 -> 1" in caplog.text
