"""Shared pytest fixtures for hexpr_core tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from hexpr_core.graph.compiler import HExprCompiler
from hexpr_core.graph.config import CompilerConfig
from hexpr_core.graph.signature import Signature, load_signature

CONTRIB = Path(__file__).resolve().parent.parent / "contrib"
SIGNATURE_PATH = CONTRIB / "signature_examples.json"


@pytest.fixture
def signature() -> Signature:
    """Example arithmetic signature (add, mul, neg, +, -, zero, succ, ...)."""
    return load_signature(SIGNATURE_PATH)


@pytest.fixture
def compiler(signature: Signature) -> HExprCompiler:
    return HExprCompiler(signature)


@pytest.fixture
def lax_compiler(signature: Signature) -> HExprCompiler:
    """Compiler with the strict binding check switched off."""
    return HExprCompiler(signature, CompilerConfig(strict_binding=False))


@pytest.fixture
def empty_compiler() -> HExprCompiler:
    return HExprCompiler(Signature.empty())


@pytest.fixture
def signature_file(tmp_path):
    """Write a small signature JSON file and return its path."""
    path = tmp_path / "signature.json"
    path.write_text(
        '{"add": {"inputs": ["ℝ", "ℝ"], "outputs": ["ℝ"]},'
        ' "neg": {"inputs": ["ℝ"], "outputs": ["ℝ"]}}',
        encoding="utf-8",
    )
    return path
