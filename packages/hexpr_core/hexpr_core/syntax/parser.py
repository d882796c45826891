"""hexpr_core.syntax.parser
==========================

Lexing and parsing of H-expressions with a Lark LALR grammar.

Grammar
-------
::

    expr        := composition | tensor | frobenius | operation
    composition := "(" expr+ ")"
    tensor      := "{" expr+ "}"
    frobenius   := "[" variable* ("." variable*)? "]"
    variable    := NAME | "_"
    operation   := NAME | SYMBOL

``NAME`` is ``[A-Za-z][A-Za-z0-9_-]*``; ``SYMBOL`` is a run of operator
characters (``+ - * / < > = ! & | ^ % ~ @ $ ?``).  ``_`` is reserved for
anonymous variables and cannot start a name (``_x`` is an error).  Whitespace
and ``//`` line comments are ignored.

Lark errors never escape this module: they are re-raised as ``ParseError``.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from lark import Lark, Token
from lark.exceptions import UnexpectedCharacters, UnexpectedEOF, UnexpectedInput, UnexpectedToken
from lark.visitors import Transformer_NonRecursive, v_args

from hexpr_core.api.errors import ParseError
from hexpr_core.syntax.ast import (
    Composition,
    Expr,
    Frobenius,
    Operation,
    Span,
    Tensor,
    Variable,
    depth,
)

logger = logging.getLogger(__name__)

GRAMMAR = r"""
    ?start: expr

    ?expr: composition
         | tensor
         | frobenius
         | operation

    composition: "(" expr+ ")"
    tensor: "{" expr+ "}"

    frobenius: "[" variables "]"              -> frobenius_identity
             | "[" variables "." variables "]" -> frobenius_full

    variables: variable*
    variable: NAME | ANON
    operation: NAME | SYMBOL

    ANON: /_(?![A-Za-z0-9_\-])/
    NAME: /[A-Za-z][A-Za-z0-9_\-]*/
    SYMBOL: /(?:[+\-*<>=!&|^%~@$?]|\/(?!\/))+/
    COMMENT: /\/\/[^\n]*/

    %import common.WS
    %ignore WS
    %ignore COMMENT
"""

# Human-readable names for the terminals Lark reports in errors.
_TOKEN_DESCRIPTIONS = {
    "LPAR": "'('",
    "RPAR": "')'",
    "LBRACE": "'{'",
    "RBRACE": "'}'",
    "LSQB": "'['",
    "RSQB": "']'",
    "DOT": "'.'",
    "ANON": "'_'",
    "NAME": "name",
    "SYMBOL": "operator symbol",
    "$END": "end of input",
}

DEFAULT_MAX_DEPTH = 256


def _span(meta) -> Optional[Span]:
    if getattr(meta, "empty", True):
        return None
    return Span(meta.line, meta.column, meta.start_pos)


def _token_span(token: Token) -> Span:
    return Span(token.line, token.column, token.start_pos)


class _ExprBuilder(Transformer_NonRecursive):
    """Turn the Lark parse tree into ``hexpr_core.syntax.ast`` nodes."""

    @v_args(meta=True)
    def composition(self, meta, children):
        return Composition(tuple(children), _span(meta))

    @v_args(meta=True)
    def tensor(self, meta, children):
        return Tensor(tuple(children), _span(meta))

    @v_args(meta=True)
    def frobenius_identity(self, meta, children):
        (variables,) = children
        return Frobenius.identity(variables, _span(meta))

    @v_args(meta=True)
    def frobenius_full(self, meta, children):
        inputs, outputs = children
        return Frobenius(inputs, outputs, span=_span(meta))

    def variables(self, children):
        return tuple(children)

    def variable(self, children):
        (token,) = children
        return Variable.parse(str(token), _token_span(token))

    def operation(self, children):
        (token,) = children
        return Operation(str(token), _token_span(token))


def _describe(expected: Optional[Iterable[str]]) -> List[str]:
    return sorted({_TOKEN_DESCRIPTIONS.get(name, name) for name in expected or ()})


def _to_parse_error(exc: UnexpectedInput, source: str) -> ParseError:
    if isinstance(exc, UnexpectedCharacters):
        char = source[exc.pos_in_stream] if exc.pos_in_stream < len(source) else ""
        return ParseError(
            f"Unexpected character {char!r}",
            exc.line,
            exc.column,
            _describe(exc.allowed),
        )
    if isinstance(exc, UnexpectedToken):
        if exc.token.type == "$END":
            what = "Unexpected end of input"
        else:
            what = f"Unexpected token {str(exc.token)!r}"
        return ParseError(what, exc.line, exc.column, _describe(exc.expected))
    if isinstance(exc, UnexpectedEOF):
        return ParseError("Unexpected end of input", expected=_describe(exc.expected))
    return ParseError(str(exc))


class HExprParser:
    """
    A lexer and parser for a single H-expression
    """

    parser = Lark(GRAMMAR, parser="lalr", propagate_positions=True)

    @staticmethod
    def parse(source: str, max_depth: int = DEFAULT_MAX_DEPTH) -> Expr:
        """Parse ``source`` into a syntax tree.

        Raises
        ------
        ParseError
            On malformed input, or when the tree nests deeper than
            ``max_depth``.
        """
        try:
            tree = HExprParser.parser.parse(source)
        except UnexpectedInput as exc:
            raise _to_parse_error(exc, source) from exc

        expr = _ExprBuilder().transform(tree)
        nesting = depth(expr)
        if nesting > max_depth:
            raise ParseError(
                f"Expression nested too deeply ({nesting} levels, "
                f"limit {max_depth})"
            )
        logger.debug(f"Parsed H-expression of depth {nesting}: {expr}")
        return expr


def parse_hexpr(source: str, max_depth: int = DEFAULT_MAX_DEPTH) -> Expr:
    return HExprParser.parse(source, max_depth=max_depth)
