"""End-to-end tests: notation in, evaluated results out."""

import itertools

import pytest

from pylc2js import (
    UNDEFINED,
    MalformedComprehensionError,
    evaluate,
    explain,
    parse,
    rewrite_source,
    transform,
)
from pylc2js.dialect import ES5Dialect, ES2019Dialect, LodashDialect

NUMS = [1, 2, 3, 4, 5]

ALL_DIALECTS = [
    pytest.param(ES2019Dialect(), id="es2019"),
    pytest.param(ES5Dialect(), id="es5"),
    pytest.param(LodashDialect(), id="lodash"),
]

DESTRUCTURING_DIALECTS = [
    pytest.param(ES2019Dialect(), id="es2019"),
    pytest.param(LodashDialect(), id="lodash"),
]


def run(raw, env, dialect=None, **kwargs):
    return evaluate(transform(raw, dialect=dialect, **kwargs), env)


class TestSquaredEvens:
    @pytest.mark.parametrize("dialect", ALL_DIALECTS)
    def test_result(self, dialect, lodash):
        raw = "x * x for (x of nums) if (x % 2 === 0)"
        assert run(raw, {"nums": NUMS, "_": lodash}, dialect) == [4, 16]


class TestDistinctProducts:
    @pytest.mark.parametrize("dialect", ALL_DIALECTS)
    def test_result(self, dialect, lodash):
        raw = "x * y for (x of nums) for (y of nums) if (x !== y)"
        result = run(raw, {"nums": NUMS, "_": lodash}, dialect)
        assert len(result) == 20
        assert result == [x * y for x, y in itertools.permutations(NUMS, 2)]


class TestPairSums:
    @pytest.mark.parametrize("dialect", DESTRUCTURING_DIALECTS)
    def test_result(self, dialect, lodash):
        raw = "x + y for ([x, y] of pairs)"
        env = {"pairs": [[1, 2], [3, 4], [5, 6]], "_": lodash}
        assert run(raw, env, dialect) == [3, 7, 11]


class TestFilteredConcatenation:
    @pytest.mark.parametrize("dialect", ALL_DIALECTS)
    def test_result(self, dialect, lodash):
        raw = "x + y for (x of nums) if (x > 2) for (y of chars) if (y !== 'b')"
        env = {"nums": NUMS, "chars": ["a", "b", "c"], "_": lodash}
        assert run(raw, env, dialect) == ["3a", "3c", "4a", "4c", "5a", "5c"]


class TestNoClauses:
    def test_transform_raises(self):
        with pytest.raises(MalformedComprehensionError):
            transform("x * x")

    def test_occurrence_untransformed(self):
        assert rewrite_source("list`x * x`") == "list`x * x`"


class TestDeeperNesting:
    def test_three_levels(self):
        raw = "x + y + z for (x of a) for (y of b) if (y !== x) for (z of c)"
        env = {"a": ["p", "q"], "b": ["p", "q"], "c": ["1", "2"]}
        assert run(raw, env) == ["pq1", "pq2", "qp1", "qp2"]

    def test_later_clause_uses_earlier_binding(self):
        raw = "y for (row of rows) for (y of row) if (y > 1)"
        assert run(raw, {"rows": [[1, 2], [3]]}) == [2, 3]


class TestEquivalentNotation:
    def test_regenerated_source_is_equivalent(self):
        first = transform("x * 2 for (x of xs) if (x > 1)")
        # Same comprehension written with different spacing and redundant parens
        second = transform("(x) * 2   for ( x of (xs) )  if ( (x > 1) )")
        env = {"xs": [0, 1, 2, 3]}
        assert evaluate(first, env) == evaluate(second, env) == [4, 6]

    def test_parenthesized_iterables_are_equivalent(self):
        raw = "x * y for (x of nums) for (y of nums) if (x !== y)"
        env = {"nums": NUMS}
        assert run(raw, env) == run(raw, env, parenthesize_iterables=True)


class TestExplain:
    def test_result_fields(self):
        result = explain("x for (x of xs) for y")
        assert result.code == "xs.map(x => x)"
        assert result.comprehension == parse("x for (x of xs)")
        assert result.comprehension.dropped == ("y",)

    def test_expression_matches_code(self):
        result = explain("x * x for (x of nums)")
        assert result.expression.source.data == "name"


class TestExtendedOperandSyntax:
    @pytest.mark.parametrize("dialect", ALL_DIALECTS)
    def test_bitwise_filter(self, dialect, lodash):
        raw = "x >> 1 for (x of nums) if (x & 1)"
        assert run(raw, {"nums": NUMS, "_": lodash}, dialect) == [0, 1, 2]

    def test_in_condition(self):
        raw = "x.name for (x of items) if ('name' in x)"
        env = {"items": [{"name": "a"}, {}, {"name": "c"}]}
        assert run(raw, env) == ["a", "c"]

    def test_optional_chaining_yield(self):
        raw = "x?.name for (x of items)"
        env = {"items": [{"name": "a"}, None]}
        assert run(raw, env) == ["a", UNDEFINED]

    def test_regex_condition(self):
        raw = "w for (w of words) if (/^[aeiou]/i.test(w))"
        assert run(raw, {"words": ["Apple", "pear", "olive"]}) == ["Apple", "olive"]
