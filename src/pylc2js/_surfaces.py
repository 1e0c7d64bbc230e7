"""Host embedding surfaces: where comprehension notation lives in source.

Two surfaces are recognized:

* tagged templates, ``list`x * x for (x of nums)` ``;
* marked literals, ``/*list*/`x * x for (x of nums)` ``.

Each surface maps raw notation text to a generated chain; the
:class:`Rewriter` splices the printed chain back into the source text, or
replaces ``tagged_template`` nodes in a parsed expression tree.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Any, ClassVar

from lark import Tree
from lark.visitors import Transformer, v_args

from pylc2js._chain import ChainGenerator, GeneratedExpression, lower
from pylc2js._comprehension import ClauseParser
from pylc2js._constants import (
    DEFAULT_MAX_CLAUSES,
    DEFAULT_MAX_OUTPUT_LENGTH,
    LIST_MARKER,
    LIST_TAG,
)
from pylc2js._errors import MalformedComprehensionError, TransformError
from pylc2js._expressions import ExpressionParser
from pylc2js._printer import print_chain
from pylc2js._utils import has_substitutions, template_content
from pylc2js.dialect._base import Dialect

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Occurrence:
    """One comprehension found in source text, spanning ``source[start:end]``."""

    surface: Surface
    start: int
    end: int
    raw: str


class Surface(ABC):
    """A kind of host node that embeds comprehension notation."""

    name: ClassVar[str]
    parenthesize_iterables: ClassVar[bool] = False

    @abstractmethod
    def find(self, source: str) -> Iterator[Occurrence]: ...


class TaggedTemplateSurface(Surface):
    """``list`...` `` tagged templates without ``${...}`` substitutions."""

    name = "tagged_template"

    _PATTERN = re.compile(
        r"(?<![\w$.])" + re.escape(LIST_TAG) + r"\s*`((?:[^`\\]|\\.)*)`",
        re.S,
    )

    def find(self, source: str) -> Iterator[Occurrence]:
        for m in self._PATTERN.finditer(source):
            raw = m.group(1)
            if has_substitutions(raw):
                logger.debug("skipping tagged template with substitutions at %d", m.start())
                continue
            yield Occurrence(self, m.start(), m.end(), raw)


class MarkedLiteralSurface(Surface):
    """``/*list*/`...` `` template literals, matched across the whole source."""

    name = "marked_literal"
    parenthesize_iterables = True

    _PATTERN = re.compile(re.escape(LIST_MARKER) + r"`([^`]+)`")

    def find(self, source: str) -> Iterator[Occurrence]:
        for m in self._PATTERN.finditer(source):
            yield Occurrence(self, m.start(), m.end(), m.group(1))


DEFAULT_SURFACES: tuple[Surface, ...] = (
    TaggedTemplateSurface(),
    MarkedLiteralSurface(),
)


class Rewriter:
    """Rewrites comprehension occurrences, one occurrence at a time.

    A malformed comprehension, or one whose clauses were all dropped, is
    left untransformed. Any other error propagates unless ``skip_errors``
    is set, in which case the occurrence is logged and left as written.
    """

    def __init__(
        self,
        *,
        dialect: Dialect | None = None,
        parser: ExpressionParser | None = None,
        surfaces: Sequence[Surface] | None = None,
        max_clauses: int = DEFAULT_MAX_CLAUSES,
        max_output_length: int = DEFAULT_MAX_OUTPUT_LENGTH,
        strict: bool = False,
        skip_errors: bool = False,
    ) -> None:
        self._dialect = dialect
        self._surfaces = tuple(surfaces) if surfaces is not None else DEFAULT_SURFACES
        self._clause_parser = ClauseParser(strict=strict)
        self._generator = ChainGenerator(parser, max_clauses)
        self._max_output_length = max_output_length
        self._skip_errors = skip_errors

    def render(self, generated: GeneratedExpression, parenthesize_iterables: bool = False) -> str:
        return print_chain(
            generated,
            dialect=self._dialect,
            parenthesize_iterables=parenthesize_iterables,
            max_output_length=self._max_output_length,
        )

    def generate_or_skip(self, raw: str, where: str) -> GeneratedExpression | None:
        try:
            comprehension = self._clause_parser.parse(raw)
            if not comprehension.clauses:
                logger.warning(
                    "leaving %s untransformed: no usable clauses in %r", where, raw
                )
                return None
            return self._generator.generate(
                comprehension.yield_expression, comprehension.clauses
            )
        except MalformedComprehensionError as e:
            logger.warning("leaving %s untransformed: %s", where, e.internal())
            return None
        except TransformError as e:
            if not self._skip_errors:
                raise
            logger.warning("skipping %s after error: %s", where, e.internal())
            return None

    # ---- Text surfaces ----

    def find(self, source: str) -> list[Occurrence]:
        """All occurrences in source order; overlapping matches keep the first."""
        found = sorted(
            (occ for surface in self._surfaces for occ in surface.find(source)),
            key=lambda occ: occ.start,
        )
        result: list[Occurrence] = []
        end = 0
        for occ in found:
            if occ.start >= end:
                result.append(occ)
                end = occ.end
        return result

    def rewrite_source(self, source: str) -> str:
        parts: list[str] = []
        pos = 0
        for occ in self.find(source):
            where = f"{occ.surface.name} at offset {occ.start}"
            generated = self.generate_or_skip(occ.raw, where)
            if generated is None:
                continue
            try:
                code = self.render(generated, occ.surface.parenthesize_iterables)
            except TransformError as e:
                if not self._skip_errors:
                    raise
                logger.warning("skipping %s after error: %s", where, e.internal())
                continue
            logger.debug("rewrote %s", where)
            parts.append(source[pos:occ.start])
            parts.append(code)
            pos = occ.end
        parts.append(source[pos:])
        return "".join(parts)

    # ---- Tree surface ----

    def rewrite_tree(self, tree: Tree) -> Any:
        return _TaggedListTransformer(self).transform(tree)


class _TaggedListTransformer(Transformer):
    """Replaces ``list`...` `` nodes with the lowered chain."""

    def __init__(self, rewriter: Rewriter) -> None:
        super().__init__()
        self._rewriter = rewriter

    @v_args(tree=True)
    def tagged_template(self, tree: Tree) -> Any:
        tag, template = tree.children
        if not (isinstance(tag, Tree) and tag.data == "name" and tag.children[0] == LIST_TAG):
            return tree
        raw = template_content(str(template))
        if has_substitutions(raw):
            return tree
        generated = self._rewriter.generate_or_skip(raw, "tagged template node")
        if generated is None:
            return tree
        return lower(generated)
