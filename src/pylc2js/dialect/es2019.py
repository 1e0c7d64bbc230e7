"""ES2019 dialect: arrow callbacks and native ``Array.prototype.flatMap``."""

from __future__ import annotations

from io import StringIO

from pylc2js._constants import FILTER, FLAT_MAP, MAP
from pylc2js.dialect._base import (
    PREC_POSTFIX,
    Dialect,
    DialectName,
    WriteFunc,
    write_arrow_callback,
    write_method_call,
)


class ES2019Dialect(Dialect):
    """Default dialect, e.g. ``nums.filter(x => x > 2).flatMap(x => ...)``."""

    name = DialectName.ES2019

    # --- Chain operations ---

    def write_filter(
        self, w: StringIO, write_source: WriteFunc, write_predicate: WriteFunc
    ) -> None:
        write_method_call(w, write_source, FILTER, write_predicate)

    def write_map(
        self, w: StringIO, write_source: WriteFunc, write_projector: WriteFunc
    ) -> None:
        write_method_call(w, write_source, MAP, write_projector)

    def write_flat_map(
        self, w: StringIO, write_source: WriteFunc, write_projector: WriteFunc
    ) -> None:
        write_method_call(w, write_source, FLAT_MAP, write_projector)

    # --- Callbacks ---

    def write_callback(
        self, w: StringIO, param: str, is_pattern: bool, write_body: WriteFunc
    ) -> None:
        write_arrow_callback(w, param, is_pattern, write_body)

    # --- Capabilities ---

    def source_precedence(self) -> int:
        return PREC_POSTFIX

    def supports_destructuring(self) -> bool:
        return True
