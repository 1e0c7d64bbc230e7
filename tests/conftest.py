"""Shared test fixtures."""

import pytest
from lark import Tree

from pylc2js._evaluator import truthy
from pylc2js.dialect.es5 import ES5Dialect
from pylc2js.dialect.es2019 import ES2019Dialect
from pylc2js.dialect.lodash import LodashDialect


class StubParser:
    """Expression parser that wraps text in a single node without parsing it."""

    def parse_expression(self, text):
        return Tree("stub", [text])

    def parse_pattern(self, text):
        return Tree("pattern", [text])


@pytest.fixture
def stub_parser():
    return StubParser()


@pytest.fixture
def lodash():
    """A minimal ``_`` object for evaluating lodash dialect output."""
    return {
        "filter": lambda xs, fn: [x for x in xs if truthy(fn(x))],
        "map": lambda xs, fn: [fn(x) for x in xs],
        "flatMap": lambda xs, fn: [y for x in xs for y in fn(x)],
    }


@pytest.fixture
def es2019_dialect():
    return ES2019Dialect()


@pytest.fixture
def es5_dialect():
    return ES5Dialect()


@pytest.fixture
def lodash_dialect():
    return LodashDialect()
