"""ES5 dialect: function-expression callbacks and flatten+map."""

from __future__ import annotations

from io import StringIO

from pylc2js._constants import FILTER, MAP
from pylc2js.dialect._base import (
    PREC_POSTFIX,
    Dialect,
    DialectName,
    WriteFunc,
    write_method_call,
)


class ES5Dialect(Dialect):
    """Dialect for engines without arrows or ``flatMap``.

    ``flatMap(src, f)`` is spelled ``[].concat.apply([], src.map(f))``.
    """

    name = DialectName.ES5

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
        w.write("[].concat.apply([], ")
        write_method_call(w, write_source, MAP, write_projector)
        w.write(")")

    # --- Callbacks ---

    def write_callback(
        self, w: StringIO, param: str, is_pattern: bool, write_body: WriteFunc
    ) -> None:
        w.write(f"function ({param}) {{ return ")
        write_body()
        w.write("; }")

    # --- Capabilities ---

    def source_precedence(self) -> int:
        return PREC_POSTFIX

    def supports_destructuring(self) -> bool:
        return False
