"""Abstract base class for output dialects."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from collections.abc import Callable
from io import StringIO


class DialectName(enum.StrEnum):
    ES2019 = "es2019"
    ES5 = "es5"
    LODASH = "lodash"


WriteFunc = Callable[[], None]
"""Callback that writes a sub-expression to the shared StringIO buffer."""


# Operator precedence levels, as in the JavaScript specification tables.
PREC_ASSIGNMENT = 2
PREC_POSTFIX = 17


class Dialect(ABC):
    """Abstract base class defining how a chain is spelled in JavaScript.

    All target-specific syntax for filter/map/flatMap lives behind this
    interface. Methods receive a StringIO writer and callback functions for
    sub-expressions.
    """

    name: DialectName

    # --- Chain operations ---

    @abstractmethod
    def write_filter(
        self, w: StringIO, write_source: WriteFunc, write_predicate: WriteFunc
    ) -> None: ...

    @abstractmethod
    def write_map(
        self, w: StringIO, write_source: WriteFunc, write_projector: WriteFunc
    ) -> None: ...

    @abstractmethod
    def write_flat_map(
        self, w: StringIO, write_source: WriteFunc, write_projector: WriteFunc
    ) -> None: ...

    # --- Callbacks ---

    @abstractmethod
    def write_callback(
        self, w: StringIO, param: str, is_pattern: bool, write_body: WriteFunc
    ) -> None: ...

    # --- Capabilities ---

    @abstractmethod
    def source_precedence(self) -> int:
        """Minimum precedence an iterable needs to be written unparenthesized."""

    @abstractmethod
    def supports_destructuring(self) -> bool:
        """Whether callbacks can bind array and object patterns."""


def write_arrow_callback(
    w: StringIO, param: str, is_pattern: bool, write_body: WriteFunc
) -> None:
    """Write ``x => body`` or ``([x, y]) => body``."""
    if is_pattern:
        w.write(f"({param}) => ")
    else:
        w.write(f"{param} => ")
    write_body()


def write_method_call(
    w: StringIO, write_receiver: WriteFunc, method: str, write_arg: WriteFunc
) -> None:
    """Write ``receiver.method(arg)``."""
    write_receiver()
    w.write(f".{method}(")
    write_arg()
    w.write(")")
