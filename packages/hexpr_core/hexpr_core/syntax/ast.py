"""hexpr_core.syntax.ast
=======================

Syntax tree for H-expressions.

The tree is a closed set of four frozen node types::

    Composition   (e1 e2 ... ek)     sequential composition
    Tensor        {e1 e2 ... ek}     parallel composition
    Frobenius     [ins . outs]       wire relation over variables
    Operation     name               reference to a signature entry

``Expr`` is their union.  Consumers dispatch with an ``isinstance`` chain that
ends in ``TypeError`` so a new node kind cannot be silently ignored.

Source positions (``Span``) are carried on every node but excluded from
equality, so two trees parsed from differently formatted text compare equal.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple, Union


@dataclass(frozen=True)
class Span:
    """1-based line/column and 0-based character offset of a node."""

    line: int
    column: int
    offset: int = 0

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class Variable:
    """A wire label inside a Frobenius bracket; ``name=None`` is ``_``."""

    name: Optional[str] = None
    span: Optional[Span] = field(default=None, compare=False, repr=False)

    @classmethod
    def parse(cls, text: str, span: Optional[Span] = None) -> "Variable":
        if text == "_":
            return cls(None, span)
        return cls(text, span)

    @property
    def is_anonymous(self) -> bool:
        return self.name is None

    def __str__(self) -> str:
        return "_" if self.name is None else self.name


ANONYMOUS = Variable()


@dataclass(frozen=True)
class Composition:
    exprs: Tuple["Expr", ...]
    span: Optional[Span] = field(default=None, compare=False, repr=False)

    def __str__(self) -> str:
        return to_source(self)


@dataclass(frozen=True)
class Tensor:
    exprs: Tuple["Expr", ...]
    span: Optional[Span] = field(default=None, compare=False, repr=False)

    def __str__(self) -> str:
        return to_source(self)


@dataclass(frozen=True)
class Frobenius:
    """``[ins . outs]``.

    ``shorthand`` is True when the bracket was written as ``[v1 .. vn]``.
    Named variables behave identically in both forms; for ``_`` the
    shorthand pairs each input with the output at the same position.
    """

    inputs: Tuple[Variable, ...] = ()
    outputs: Tuple[Variable, ...] = ()
    shorthand: bool = False
    span: Optional[Span] = field(default=None, compare=False, repr=False)

    @classmethod
    def identity(
        cls, variables: Tuple[Variable, ...], span: Optional[Span] = None
    ) -> "Frobenius":
        variables = tuple(variables)
        return cls(variables, variables, shorthand=True, span=span)

    def __str__(self) -> str:
        if self.shorthand:
            return "[" + " ".join(str(v) for v in self.inputs) + "]"
        ins = " ".join(str(v) for v in self.inputs)
        outs = " ".join(str(v) for v in self.outputs)
        left = f"{ins} ." if ins else "."
        return f"[{left} {outs}]" if outs else f"[{left}]"


@dataclass(frozen=True)
class Operation:
    name: str
    span: Optional[Span] = field(default=None, compare=False, repr=False)

    def __str__(self) -> str:
        return self.name


Expr = Union[Composition, Tensor, Frobenius, Operation]


def children(expr: Expr) -> Tuple[Expr, ...]:
    if isinstance(expr, (Composition, Tensor)):
        return expr.exprs
    if isinstance(expr, (Frobenius, Operation)):
        return ()
    raise TypeError(f"Not an H-expression node: {expr!r}")


def walk(expr: Expr) -> Iterator[Expr]:
    """Yield every node in depth-first, left-to-right order (iteratively)."""
    stack = [expr]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(children(node)))


_DELIMITERS = {Composition: ("(", ")"), Tensor: ("{", "}")}


def to_source(expr: Expr) -> str:
    """Print ``expr`` back as H-expression text (iteratively)."""
    parts: List[str] = []
    stack: List[Union[Expr, str]] = [expr]
    while stack:
        item = stack.pop()
        if isinstance(item, str):
            parts.append(item)
        elif isinstance(item, (Composition, Tensor)):
            opening, closing = _DELIMITERS[type(item)]
            stack.append(closing)
            for position, child in enumerate(reversed(item.exprs)):
                if position:
                    stack.append(" ")
                stack.append(child)
            stack.append(opening)
        else:
            parts.append(str(item))
    return "".join(parts)


def depth(expr: Expr) -> int:
    """Nesting depth of the tree; a single leaf has depth 1."""
    deepest = 0
    stack = [(expr, 1)]
    while stack:
        node, d = stack.pop()
        deepest = max(deepest, d)
        for child in children(node):
            stack.append((child, d + 1))
    return deepest
