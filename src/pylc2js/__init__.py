"""pylc2js - Rewrite list-comprehension notation into filter/map/flatMap chains."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pylc2js")
except PackageNotFoundError:  # running from a source checkout
    __version__ = "0.0.0.dev0"

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from lark import Tree

from pylc2js._chain import (
    ChainGenerator,
    Filter,
    FlatMap,
    GeneratedExpression,
    Lambda,
    Map,
    generate,
    lower,
)
from pylc2js._comprehension import Clause, ClauseParser, Comprehension, parse
from pylc2js._constants import DEFAULT_MAX_CLAUSES, DEFAULT_MAX_OUTPUT_LENGTH
from pylc2js._errors import (
    EvaluationError,
    ExpressionParseError,
    InvalidBindingError,
    MalformedClauseError,
    MalformedComprehensionError,
    MaxOutputLengthExceededError,
    TransformError,
    UnsupportedDepthError,
    UnsupportedDialectFeatureError,
    UnsupportedExpressionError,
)
from pylc2js._evaluator import UNDEFINED, evaluate
from pylc2js._expressions import ExpressionParser, JavaScriptParser, default_parser
from pylc2js._printer import print_chain, print_tree
from pylc2js._surfaces import Rewriter, Surface
from pylc2js.dialect import (
    Dialect,
    DialectName,
    ES5Dialect,
    ES2019Dialect,
    LodashDialect,
    get_dialect,
)

__all__ = [
    "parse",
    "generate",
    "transform",
    "explain",
    "rewrite_source",
    "rewrite_tree",
    "parse_expression",
    "evaluate",
    "lower",
    "print_tree",
    "Result",
    "Clause",
    "Comprehension",
    "Filter",
    "Map",
    "FlatMap",
    "Lambda",
    "ExpressionParser",
    "JavaScriptParser",
    "Surface",
    "UNDEFINED",
    "TransformError",
    "MalformedComprehensionError",
    "MalformedClauseError",
    "UnsupportedDepthError",
    "ExpressionParseError",
    "InvalidBindingError",
    "UnsupportedDialectFeatureError",
    "UnsupportedExpressionError",
    "MaxOutputLengthExceededError",
    "EvaluationError",
    "Dialect",
    "DialectName",
    "ES2019Dialect",
    "ES5Dialect",
    "LodashDialect",
    "get_dialect",
]


@dataclass(frozen=True)
class Result:
    """Result of explaining a single comprehension."""

    code: str
    comprehension: Comprehension
    expression: GeneratedExpression


def transform(
    raw: str,
    *,
    dialect: Dialect | None = None,
    parser: ExpressionParser | None = None,
    max_clauses: int | None = None,
    max_output_length: int | None = None,
    strict: bool = False,
    parenthesize_iterables: bool = False,
) -> str:
    """Rewrite one comprehension's notation text into a chain expression.

    Args:
        raw: The notation text, e.g. ``"x * x for (x of nums)"``.
        dialect: Output dialect to use. Defaults to ES2019.
        parser: Expression parser service. Defaults to the bundled
            JavaScript expression parser.
        max_clauses: Maximum number of clauses. Defaults to 8.
        max_output_length: Maximum output length. Defaults to 50000.
        strict: If True, raise MalformedClauseError for a malformed clause
            instead of dropping it.
        parenthesize_iterables: If True, wrap every iterable in parentheses.

    Returns:
        The JavaScript source of the generated chain.

    Raises:
        TransformError: If the comprehension cannot be rewritten.
    """
    return explain(
        raw,
        dialect=dialect,
        parser=parser,
        max_clauses=max_clauses,
        max_output_length=max_output_length,
        strict=strict,
        parenthesize_iterables=parenthesize_iterables,
    ).code


def explain(
    raw: str,
    *,
    dialect: Dialect | None = None,
    parser: ExpressionParser | None = None,
    max_clauses: int | None = None,
    max_output_length: int | None = None,
    strict: bool = False,
    parenthesize_iterables: bool = False,
) -> Result:
    """Like :func:`transform`, but also return the intermediate results.

    Returns:
        Result with the generated code, the parsed Comprehension (including
        any dropped clause segments) and the generated expression.
    """
    comprehension = ClauseParser(strict=strict).parse(raw)
    generator = ChainGenerator(
        parser,
        DEFAULT_MAX_CLAUSES if max_clauses is None else max_clauses,
    )
    expression = generator.generate(
        comprehension.yield_expression, comprehension.clauses
    )
    code = print_chain(
        expression,
        dialect=dialect,
        parenthesize_iterables=parenthesize_iterables,
        max_output_length=(
            DEFAULT_MAX_OUTPUT_LENGTH if max_output_length is None else max_output_length
        ),
    )
    return Result(code=code, comprehension=comprehension, expression=expression)


def _rewriter(
    dialect: Dialect | None,
    parser: ExpressionParser | None,
    surfaces: Sequence[Surface] | None,
    max_clauses: int | None,
    max_output_length: int | None,
    strict: bool,
    skip_errors: bool,
) -> Rewriter:
    kwargs: dict[str, Any] = {}
    if max_clauses is not None:
        kwargs["max_clauses"] = max_clauses
    if max_output_length is not None:
        kwargs["max_output_length"] = max_output_length
    return Rewriter(
        dialect=dialect,
        parser=parser,
        surfaces=surfaces,
        strict=strict,
        skip_errors=skip_errors,
        **kwargs,
    )


def rewrite_source(
    source: str,
    *,
    dialect: Dialect | None = None,
    parser: ExpressionParser | None = None,
    surfaces: Sequence[Surface] | None = None,
    max_clauses: int | None = None,
    max_output_length: int | None = None,
    strict: bool = False,
    skip_errors: bool = False,
) -> str:
    """Rewrite every comprehension embedded in JavaScript source text.

    Tagged templates (``list`...` ``) and marked literals
    (``/*list*/`...` ``) are replaced by their chains; all other text is
    preserved byte for byte. Malformed comprehensions are left as written.

    Args:
        source: JavaScript source text.
        dialect: Output dialect to use. Defaults to ES2019.
        parser: Expression parser service.
        surfaces: Surfaces to recognize. Defaults to both.
        max_clauses: Maximum number of clauses per comprehension.
        max_output_length: Maximum output length per comprehension.
        strict: If True, raise on malformed clauses instead of dropping them.
        skip_errors: If True, leave an occurrence untransformed on any
            TransformError instead of raising.

    Returns:
        The rewritten source text.

    Raises:
        TransformError: If an occurrence fails and skip_errors is False.
    """
    return _rewriter(
        dialect, parser, surfaces, max_clauses, max_output_length, strict, skip_errors
    ).rewrite_source(source)


def rewrite_tree(
    tree: Tree,
    *,
    parser: ExpressionParser | None = None,
    max_clauses: int | None = None,
    strict: bool = False,
    skip_errors: bool = False,
) -> Any:
    """Replace ``list`...` `` nodes in a parsed expression tree with chain trees.

    Returns:
        A new tree; the input tree is not modified.
    """
    return _rewriter(
        None, parser, None, max_clauses, None, strict, skip_errors
    ).rewrite_tree(tree)


def parse_expression(text: str) -> Tree:
    """Parse JavaScript expression text with the bundled parser."""
    return default_parser.parse_expression(text)
