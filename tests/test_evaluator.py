"""Evaluator tests."""

import math

import pytest

from pylc2js import UNDEFINED, evaluate, parse_expression
from pylc2js._errors import EvaluationError, UnsupportedExpressionError
from pylc2js._evaluator import loose_equals, strict_equals, to_number, to_string, truthy


class TestArithmetic:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("1 + 2", 3),
            ("1 + 1.5", 2.5),
            ("7 - 10", -3),
            ("6 * 7", 42),
            ("7 / 2", 3.5),
            ("7 % 3", 1),
            ("-7 % 3", -1),
            ("2 ** 10", 1024),
            ("2 ** 3 ** 2", 512),
            ("0x10 + 1", 17),
            ("-(1 + 2)", -3),
            ("+'42'", 42),
            ("'3' * '4'", 12),
        ],
    )
    def test_numbers(self, text, expected):
        assert evaluate(text) == expected

    def test_divide_by_zero(self):
        assert evaluate("1 / 0") == math.inf
        assert evaluate("-1 / 0") == -math.inf
        assert math.isnan(evaluate("0 / 0"))

    def test_remainder_by_zero(self):
        assert math.isnan(evaluate("1 % 0"))


class TestStrings:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("'a' + 1", "a1"),
            ("1 + '1'", "11"),
            ("'x' + 1.0", "x1"),
            ("'x' + 0.5", "x0.5"),
            ("'v' + null", "vnull"),
            ("'v' + true", "vtrue"),
            ("[1, 2] + ''", "1,2"),
            ("'a\\nb'", "a\nb"),
            ('"\\u0041"', "A"),
            ("`plain`", "plain"),
            ("'abc'.toUpperCase()", "ABC"),
            ("'abc'.length", 3),
            ("'abc'[1]", "b"),
            ("'abc'.includes('bc')", True),
        ],
    )
    def test_strings(self, text, expected):
        assert evaluate(text) == expected

    def test_template_substitution_unsupported(self):
        with pytest.raises(UnsupportedExpressionError):
            evaluate("`a${b}`", {"b": 1})


class TestComparisons:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("1 === 1", True),
            ("1 === '1'", False),
            ("1 == '1'", True),
            ("1 !== 2", True),
            ("null == undefined", True),
            ("null === undefined", False),
            ("null == 0", False),
            ("true == 1", True),
            ("'b' > 'a'", True),
            ("'10' < 9", False),
            ("2 >= 2", True),
            ("[1] == 1", True),
        ],
    )
    def test_comparisons(self, text, expected):
        assert evaluate(text) is expected

    def test_arrays_compare_by_identity(self):
        xs = [1]
        assert evaluate("a === a", {"a": xs}) is True
        assert evaluate("a === b", {"a": xs, "b": [1]}) is False


class TestLogical:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("0 || 'd'", "d"),
            ("1 || 'd'", 1),
            ("'' && 'x'", ""),
            ("'a' && 'x'", "x"),
            ("null ?? 5", 5),
            ("0 ?? 5", 0),
            ("!0", True),
            ("!'a'", False),
            ("true ? 1 : 2", 1),
            ("0 ? 1 : 2", 2),
            ("typeof null", "object"),
            ("typeof 'a'", "string"),
            ("typeof 1", "number"),
            ("typeof undefined", "undefined"),
            ("typeof (x => x)", "function"),
        ],
    )
    def test_logical(self, text, expected):
        assert evaluate(text) == expected

    def test_short_circuit(self):
        assert evaluate("false && missing") is False
        assert evaluate("true || missing") is True
        assert evaluate("1 ?? missing") == 1


class TestCollections:
    def test_array_methods(self):
        env = {"xs": [1, 2, 3]}
        assert evaluate("xs.length", env) == 3
        assert evaluate("xs.map((x, i) => x * i)", env) == [0, 2, 6]
        assert evaluate("xs.filter(x => x % 2)", env) == [1, 3]
        assert evaluate("xs.indexOf(2)", env) == 1
        assert evaluate("xs.indexOf(9)", env) == -1
        assert evaluate("xs.includes(3)", env) is True
        assert evaluate("xs.join('-')", env) == "1-2-3"
        assert evaluate("xs.slice(1)", env) == [2, 3]
        assert evaluate("xs[0]", env) == 1
        assert evaluate("xs[5]", env) is UNDEFINED

    def test_flat_map_flattens_one_level(self):
        assert evaluate("[1, [2, [3]]].flatMap(x => x)") == [1, 2, [3]]

    def test_concat_apply(self):
        assert evaluate("[].concat.apply([], [[1], 2, [3, 4]])") == [1, 2, 3, 4]

    def test_spread(self):
        assert evaluate("[0, ...xs, 4]", {"xs": [1, 2, 3]}) == [0, 1, 2, 3, 4]
        assert evaluate("f(...xs)", {"xs": [1, 2], "f": lambda a, b: a + b}) == 3

    def test_object_literal(self):
        result = evaluate("{ a: 1, 'b c': 2, x, ...o }", {"x": 3, "o": {"d": 4}})
        assert result == {"a": 1, "b c": 2, "x": 3, "d": 4}

    def test_object_property(self):
        assert evaluate("({ a: 1 }).a") == 1
        assert evaluate("({ a: 1 }).b") is UNDEFINED
        assert evaluate("o['k']", {"o": {"k": "v"}}) == "v"


class TestFunctions:
    def test_arrow_call(self):
        assert evaluate("(x => x + 1)(1)") == 2

    def test_function_expression(self):
        assert evaluate("(function (a, b) { return a * b; })(3, 4)") == 12

    def test_missing_argument_is_undefined(self):
        assert evaluate("((a, b) => b)(1)") is UNDEFINED

    def test_closure(self):
        assert evaluate("(a => b => a + b)(1)(2)") == 3

    def test_host_function(self):
        assert evaluate("f(2)", {"f": lambda v: v * 10}) == 20

    def test_call_method_of_function(self):
        assert evaluate("f.call(null, 2)", {"f": lambda v: v + 1}) == 3


class TestDestructuring:
    def test_array_pattern(self):
        assert evaluate("(([x, y]) => x + y)([1, 2])") == 3

    def test_default(self):
        assert evaluate("(([x, y = 10]) => x + y)([1])") == 11

    def test_rest(self):
        assert evaluate("(([x, ...rest]) => rest)([1, 2, 3])") == [2, 3]

    def test_object_pattern(self):
        env = {"o": {"a": 1, "b": [2, 3, 4]}}
        assert evaluate("(({ a, b: [c, ...d] }) => a + c + d.length)(o)", env) == 5

    def test_object_rest(self):
        env = {"o": {"a": 1, "b": 2, "c": 3}}
        assert evaluate("(({ a, ...others }) => others)(o)", env) == {"b": 2, "c": 3}

    def test_rest_parameter(self):
        assert evaluate("((a, ...more) => more.length)(1, 2, 3)") == 2

    def test_destructure_null(self):
        with pytest.raises(EvaluationError):
            evaluate("(([x]) => x)(null)")


class TestErrors:
    def test_undefined_name(self):
        with pytest.raises(EvaluationError):
            evaluate("missing")

    def test_property_of_null(self):
        with pytest.raises(EvaluationError):
            evaluate("null.x")

    def test_call_non_function(self):
        with pytest.raises(EvaluationError):
            evaluate("x()", {"x": 1})

    def test_tagged_template(self):
        with pytest.raises(UnsupportedExpressionError):
            evaluate("list`x for (x of xs)`", {"list": None})

    def test_accepts_tree(self):
        assert evaluate(parse_expression("a + 1"), {"a": 1}) == 2


class TestConversions:
    def test_truthy(self):
        assert [truthy(v) for v in (0, "", None, UNDEFINED, math.nan, False)] == [False] * 6
        assert [truthy(v) for v in (1, "0", [], {}, True)] == [True] * 5

    def test_to_string(self):
        assert to_string(3.0) == "3"
        assert to_string(None) == "null"
        assert to_string([1, None, "a"]) == "1,,a"

    def test_to_number(self):
        assert to_number("  12 ") == 12
        assert to_number("") == 0
        assert math.isnan(to_number("abc"))

    def test_equality_helpers(self):
        assert strict_equals(1, 1.0)
        assert not strict_equals(1, True)
        assert loose_equals(0, "")


class Box:
    def __init__(self, value=None):
        self.value = value


class TestBitwise:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("5 & 3", 1),
            ("5 | 3", 7),
            ("5 ^ 3", 6),
            ("~5", -6),
            ("2.7 | 0", 2),
            ("1 << 31", -2147483648),
            ("1 << 33", 2),
            ("-8 >> 1", -4),
            ("-1 >>> 28", 15),
            ("'6' & 3", 2),
        ],
    )
    def test_bitwise(self, text, expected):
        assert evaluate(text) == expected


class TestKeywordOperators:
    def test_in_object(self):
        env = {"o": {"a": 1}}
        assert evaluate("'a' in o", env) is True
        assert evaluate("'b' in o", env) is False

    def test_in_array(self):
        env = {"xs": [1, 2]}
        assert evaluate("1 in xs", env) is True
        assert evaluate("2 in xs", env) is False
        assert evaluate("'length' in xs", env) is True

    def test_in_primitive(self):
        with pytest.raises(EvaluationError):
            evaluate("'a' in 'abc'")

    def test_instanceof_host_class(self):
        env = {"Box": Box, "b": Box(), "o": {}}
        assert evaluate("b instanceof Box", env) is True
        assert evaluate("o instanceof Box", env) is False

    def test_instanceof_non_callable(self):
        with pytest.raises(EvaluationError):
            evaluate("1 instanceof 2")

    def test_void(self):
        assert evaluate("void 0") is UNDEFINED

    def test_delete_unsupported(self):
        with pytest.raises(UnsupportedExpressionError):
            evaluate("delete o.a", {"o": {"a": 1}})

    def test_update_unsupported(self):
        with pytest.raises(UnsupportedExpressionError):
            evaluate("x++", {"x": 1})


class TestOptionalChaining:
    @pytest.mark.parametrize(
        "text",
        [
            pytest.param("o?.a", id="member"),
            pytest.param("o?.[0]", id="index"),
            pytest.param("o?.a.b.c", id="rest_of_chain"),
            pytest.param("o?.a()", id="method_call"),
            pytest.param("f?.(1)", id="call"),
        ],
    )
    def test_nullish_base_short_circuits(self, text):
        assert evaluate(text, {"o": None, "f": UNDEFINED}) is UNDEFINED

    def test_present_base(self):
        env = {"o": {"a": {"b": 2}}, "xs": [7], "f": lambda v: v + 1}
        assert evaluate("o?.a.b", env) == 2
        assert evaluate("xs?.[0]", env) == 7
        assert evaluate("f?.(1)", env) == 2

    def test_short_circuit_stops_at_chain_end(self):
        assert evaluate("o?.a ?? 'd'", {"o": None}) == "d"


class TestNew:
    def test_host_class(self):
        result = evaluate("new Box(3)", {"Box": Box})
        assert isinstance(result, Box)
        assert result.value == 3

    def test_without_arguments(self):
        assert evaluate("new Box", {"Box": Box}).value is None

    def test_script_function_unsupported(self):
        with pytest.raises(UnsupportedExpressionError):
            evaluate("new (x => x)()")

    def test_not_a_constructor(self):
        with pytest.raises(EvaluationError):
            evaluate("new n()", {"n": 1})


class TestRegExp:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("/a+/.test('xaay')", True),
            ("/^b/.test('abc')", False),
            ("/A/i.test('a')", True),
            ("/[/)]/.test('a)')", True),
            ("/a/g.source", "a"),
            ("/a/g.flags", "g"),
            ("typeof /a/", "object"),
        ],
    )
    def test_regexp(self, text, expected):
        assert evaluate(text) == expected

    def test_filters_comprehension_output(self):
        code = "xs.filter(x => /^a/.test(x))"
        assert evaluate(code, {"xs": ["ab", "ba", "ac"]}) == ["ab", "ac"]
