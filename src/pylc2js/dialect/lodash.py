"""Lodash dialect: ``_.filter``/``_.map``/``_.flatMap`` function calls."""

from __future__ import annotations

from io import StringIO

from pylc2js._constants import FILTER, FLAT_MAP, MAP
from pylc2js.dialect._base import (
    PREC_ASSIGNMENT,
    Dialect,
    DialectName,
    WriteFunc,
    write_arrow_callback,
)


def _write_lodash_call(
    w: StringIO, func: str, write_source: WriteFunc, write_callback: WriteFunc
) -> None:
    w.write(f"_.{func}(")
    write_source()
    w.write(", ")
    write_callback()
    w.write(")")


class LodashDialect(Dialect):
    """Dialect for code bases that go through lodash, e.g. ``_.map(nums, x => x * x)``."""

    name = DialectName.LODASH

    # --- Chain operations ---

    def write_filter(
        self, w: StringIO, write_source: WriteFunc, write_predicate: WriteFunc
    ) -> None:
        _write_lodash_call(w, FILTER, write_source, write_predicate)

    def write_map(
        self, w: StringIO, write_source: WriteFunc, write_projector: WriteFunc
    ) -> None:
        _write_lodash_call(w, MAP, write_source, write_projector)

    def write_flat_map(
        self, w: StringIO, write_source: WriteFunc, write_projector: WriteFunc
    ) -> None:
        _write_lodash_call(w, FLAT_MAP, write_source, write_projector)

    # --- Callbacks ---

    def write_callback(
        self, w: StringIO, param: str, is_pattern: bool, write_body: WriteFunc
    ) -> None:
        write_arrow_callback(w, param, is_pattern, write_body)

    # --- Capabilities ---

    def source_precedence(self) -> int:
        # Sources are plain call arguments
        return PREC_ASSIGNMENT

    def supports_destructuring(self) -> bool:
        return True
