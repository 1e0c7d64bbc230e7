"""Clause parser: comprehension notation to a structured Comprehension.

The notation is::

    <expr> for (<pattern> of <iterable>) [if (<condition>)] [for ...]

Text is tokenized with a lark lexer so that brackets and string literals
are tracked; ``for``/``of``/``if`` only act as keywords at the top level of
their segment and when surrounded by whitespace.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from lark import Lark, Token
from lark.exceptions import LarkError

from pylc2js._constants import FOR_KEYWORD, IF_KEYWORD, OF_KEYWORD
from pylc2js._errors import (
    ERR_MSG_EMPTY_YIELD,
    ERR_MSG_MALFORMED_CLAUSE,
    ERR_MSG_NO_FOR_CLAUSE,
    ERR_MSG_UNBALANCED,
    ERR_MSG_UNTOKENIZABLE,
    MalformedClauseError,
    MalformedComprehensionError,
)
from pylc2js._utils import is_destructuring_pattern

logger = logging.getLogger(__name__)

_CLOSERS = {"(": ")", "[": "]", "{": "}"}


@dataclass(frozen=True)
class Clause:
    """One ``for (<pattern> of <iterable>) [if (<condition>)]`` loop level."""

    loop_pattern: str
    iterable: str
    condition: str | None = None

    @property
    def is_destructuring(self) -> bool:
        return is_destructuring_pattern(self.loop_pattern)


@dataclass(frozen=True)
class Comprehension:
    """A parsed comprehension: yield expression plus clauses, outermost first."""

    yield_expression: str
    clauses: tuple[Clause, ...] = ()
    dropped: tuple[str, ...] = field(default=(), compare=False)


@dataclass(frozen=True)
class _Segment:
    start: int
    end: int
    tokens: list[Token]


def _is_spaced(raw: str, token: Token) -> bool:
    """True when the token has whitespace immediately on both sides."""
    start = token.start_pos
    end = token.end_pos
    return (
        start > 0
        and raw[start - 1].isspace()
        and end < len(raw)
        and raw[end].isspace()
    )


def _is_keyword(raw: str, token: Token, keyword: str) -> bool:
    return token.type == "WORD" and token.value == keyword and _is_spaced(raw, token)


def _matching_close(tokens: Sequence[Token], open_index: int) -> int:
    """Index of the token closing the bracket at ``open_index``."""
    depth = 0
    for i in range(open_index, len(tokens)):
        tok = tokens[i]
        if tok.type == "OPEN":
            depth += 1
        elif tok.type == "CLOSE":
            depth -= 1
            if depth == 0:
                return i
    raise MalformedClauseError(
        ERR_MSG_MALFORMED_CLAUSE,
        f"unclosed {tokens[open_index].value!r} in clause",
    )


class ClauseParser:
    """Splits comprehension text into a yield expression and clauses.

    A clause segment that does not match the clause grammar is dropped and
    recorded in :attr:`Comprehension.dropped`. Text following a well-formed
    clause is ignored with a warning. With ``strict`` set, both cases raise
    :class:`MalformedClauseError` instead.
    """

    _lexer: Lark | None = None

    def __init__(self, strict: bool = False) -> None:
        self._strict = strict

    @classmethod
    def _get_lexer(cls) -> Lark:
        if cls._lexer is None:
            cls._lexer = Lark.open(
                "grammar/comprehension.lark",
                rel_to=__file__,
                parser="lalr",
                lexer="basic",
            )
        return cls._lexer

    def parse(self, raw: str) -> Comprehension:
        tokens = self._tokenize(raw)
        segments = self._split(raw, tokens)
        if len(segments) < 2:
            raise MalformedComprehensionError(
                ERR_MSG_NO_FOR_CLAUSE,
                f"no top-level 'for' separator in {raw!r}",
            )

        head = segments[0]
        yield_expression = raw[head.start:head.end].strip()
        if not yield_expression:
            raise MalformedComprehensionError(
                ERR_MSG_EMPTY_YIELD,
                f"nothing precedes the first 'for' in {raw!r}",
            )

        clauses: list[Clause] = []
        dropped: list[str] = []
        for segment in segments[1:]:
            try:
                clauses.append(self._parse_clause(raw, segment))
            except MalformedClauseError as e:
                if self._strict:
                    raise
                logger.warning("dropping malformed clause: %s", e.internal())
                dropped.append(raw[segment.start:segment.end].strip())

        return Comprehension(
            yield_expression=yield_expression,
            clauses=tuple(clauses),
            dropped=tuple(dropped),
        )

    # ---- Tokenizing and splitting ----

    def _tokenize(self, raw: str) -> list[Token]:
        try:
            return list(self._get_lexer().lex(raw))
        except LarkError as e:
            raise MalformedComprehensionError(
                ERR_MSG_UNTOKENIZABLE,
                f"cannot tokenize {raw!r}: {e}",
                wrapped=e,
            ) from e

    def _split(self, raw: str, tokens: list[Token]) -> list[_Segment]:
        """Split at top-level ``for`` keywords, checking bracket balance."""
        segments: list[_Segment] = []
        stack: list[str] = []
        start = 0
        current: list[Token] = []
        for tok in tokens:
            if tok.type == "OPEN":
                stack.append(_CLOSERS[tok.value])
            elif tok.type == "CLOSE":
                if not stack or stack.pop() != tok.value:
                    raise MalformedComprehensionError(
                        ERR_MSG_UNBALANCED,
                        f"unexpected {tok.value!r} at offset {tok.start_pos} in {raw!r}",
                    )
            elif not stack and _is_keyword(raw, tok, FOR_KEYWORD):
                segments.append(_Segment(start, tok.start_pos, current))
                start = tok.end_pos
                current = []
                continue
            current.append(tok)
        if stack:
            raise MalformedComprehensionError(
                ERR_MSG_UNBALANCED,
                f"unclosed bracket, expected {stack[-1]!r} in {raw!r}",
            )
        segments.append(_Segment(start, len(raw), current))
        return segments

    # ---- Clause grammar ----

    def _parse_clause(self, raw: str, segment: _Segment) -> Clause:
        """Match ``( <pattern> of <iterable> ) [if ( <condition> )]``."""
        tokens = segment.tokens
        text = raw[segment.start:segment.end].strip()

        if not tokens or tokens[0].value != "(":
            raise self._malformed(text, "clause must start with '('")
        close = _matching_close(tokens, 0)

        of_index = self._find_top_level(raw, tokens, 1, close, OF_KEYWORD)
        if of_index is None:
            raise self._malformed(text, "missing 'of' keyword")

        pattern = raw[tokens[0].end_pos:tokens[of_index].start_pos].strip()
        iterable = raw[tokens[of_index].end_pos:tokens[close].start_pos].strip()
        if not pattern:
            raise self._malformed(text, "empty loop pattern")
        if not iterable:
            raise self._malformed(text, "empty iterable expression")

        condition = None
        rest = close + 1
        if (
            rest + 1 < len(tokens)
            and _is_keyword(raw, tokens[rest], IF_KEYWORD)
            and tokens[rest + 1].value == "("
        ):
            cond_close = _matching_close(tokens, rest + 1)
            condition = raw[tokens[rest + 1].end_pos:tokens[cond_close].start_pos].strip()
            if condition:
                rest = cond_close + 1
            else:
                condition = None
        if rest < len(tokens):
            remainder = raw[tokens[rest].start_pos:segment.end].strip()
            if self._strict:
                raise self._malformed(text, f"unexpected text {remainder!r} after clause")
            logger.warning("ignoring text after clause %r: %r", text, remainder)

        return Clause(loop_pattern=pattern, iterable=iterable, condition=condition)

    @staticmethod
    def _find_top_level(
        raw: str, tokens: Sequence[Token], start: int, stop: int, keyword: str
    ) -> int | None:
        depth = 0
        for i in range(start, stop):
            tok = tokens[i]
            if tok.type == "OPEN":
                depth += 1
            elif tok.type == "CLOSE":
                depth -= 1
            elif depth == 0 and _is_keyword(raw, tok, keyword):
                return i
        return None

    @staticmethod
    def _malformed(text: str, reason: str) -> MalformedClauseError:
        return MalformedClauseError(
            ERR_MSG_MALFORMED_CLAUSE,
            f"{reason}: {text!r}",
        )


def parse(raw: str, *, strict: bool = False) -> Comprehension:
    """Parse comprehension notation into a :class:`Comprehension`."""
    return ClauseParser(strict=strict).parse(raw)
