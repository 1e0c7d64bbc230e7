"""Output dialect system for comprehension rewriting."""

from pylc2js.dialect._base import Dialect, DialectName
from pylc2js.dialect.es5 import ES5Dialect
from pylc2js.dialect.es2019 import ES2019Dialect
from pylc2js.dialect.lodash import LodashDialect

__all__ = [
    "Dialect",
    "DialectName",
    "ES2019Dialect",
    "ES5Dialect",
    "LodashDialect",
    "get_dialect",
]

_REGISTRY: dict[str, type[Dialect]] = {
    DialectName.ES2019: ES2019Dialect,
    DialectName.ES5: ES5Dialect,
    DialectName.LODASH: LodashDialect,
}


def get_dialect(name: str) -> Dialect:
    """Get a dialect instance by name.

    Args:
        name: Dialect name ("es2019", "es5" or "lodash").

    Returns:
        A Dialect instance.

    Raises:
        ValueError: If the dialect name is unknown.
    """
    cls = _REGISTRY.get(name)
    if cls is None:
        raise ValueError(
            f"unknown dialect: {name!r}. "
            f"Available: {', '.join(sorted(_REGISTRY))}"
        )
    return cls()
