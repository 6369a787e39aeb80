"""
Unit tests for wppl/cps.py - the continuation-passing style transform.

Transformed programs are executed by rendering them with wppl.codegen and
running them on the trampoline, with host functions written directly in CPS.
"""

import pytest
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))
from wppl import ast
from wppl.codegen import generate
from wppl.cps import cps
from wppl.errors import UnsupportedSyntax
from wppl.reader import read
from wppl.runtime.trampoline import run


def plus(k, a, b):
    return k(a + b)


def times(k, a, b):
    return k(a * b)


def plus_two(k, x):
    return k(x + 2)


def execute(source, k, **cps_functions):
    """CPS-transform `source` against topK and run it with `k` as topK."""
    code = generate(cps(read(source), "topK"))
    env = dict(cps_functions)
    exec(code, env)
    return run(env["main"], k)


@pytest.fixture
def calls():
    """A top-level continuation that records every value it receives."""
    received = []

    def topK(value):
        received.append(value)
        return value
    topK.received = received
    return topK


class TestAtomic:
    """Tests for atomic forms."""

    def test_literal_invokes_continuation_once(self, calls):
        execute("456", calls)
        assert calls.received == [456]

    def test_literal_tree_shape(self):
        result = cps(ast.Literal(value=456), "topK")
        assert result == ast.call(ast.ident("topK"), ast.Literal(value=456))

    def test_function_gets_continuation_parameter_first(self):
        node = read("(function(a, b) { return a; })").body[0].expression
        result = cps(node, "topK")
        fn = result.arguments[0]
        assert len(fn.params) == 3
        assert fn.params[0].name.startswith("_k")
        assert [p.name for p in fn.params[1:]] == ["a", "b"]

    def test_output_never_aliases_input(self):
        node = ast.ident("x")
        result = cps(node, "topK")
        assert result.arguments[0] == node
        assert result.arguments[0] is not node

    def test_empty_program_delivers_undefined(self, calls):
        execute("", calls)
        assert calls.received == [None]


class TestSequencing:
    """Tests for statement sequencing and bindings."""

    def test_last_statement_value_reaches_continuation(self, calls):
        execute("plusTwo(3); plusTwo(5);", calls, plusTwo=plus_two)
        assert calls.received == [7]

    def test_binding(self, calls):
        source = "var x = plus(1, 2); var y = times(x, 4); y"
        execute(source, calls, plus=plus, times=times)
        assert calls.received == [12]

    def test_trailing_declaration_delivers_undefined(self, calls):
        execute("var x = plus(1, 2);", calls, plus=plus)
        assert calls.received == [None]

    def test_return_ends_function_body(self, calls):
        source = "var f = function() { return 1; plusTwo(5); }; f()"
        execute(source, calls, plusTwo=plus_two)
        assert calls.received == [1]

    def test_function_body_without_return_delivers_last_value(self, calls):
        execute("var f = function(x) { plusTwo(x) }; f(1)", calls, plusTwo=plus_two)
        assert calls.received == [3]

    def test_recursion_does_not_grow_the_stack(self, calls):
        source = """
        var loop = function(n) {
            return n === 0 ? "done" : loop(n - 1);
        };
        loop(5000)
        """
        execute(source, calls)
        assert calls.received == ["done"]

    def test_long_straight_line_program(self, calls):
        source = "".join(f"plusTwo({i});\n" for i in range(300)) + "plusTwo(5)"
        execute(source, calls, plusTwo=plus_two)
        assert calls.received == [7]

    def test_expression_statements_do_not_nest(self):
        program = cps(read("f(); g(); h()"), "topK")
        *declarations, tail = program.body
        assert len(declarations) == 2
        for declaration in declarations:
            body = declaration.init.body.body
            assert len(body) == 1 and isinstance(body[0], ast.ReturnStatement)
        assert isinstance(tail, ast.ExpressionStatement)

    def test_functions_declared_across_a_call_see_each_other(self, calls):
        source = """
        var isEven = function(n) { return n === 0 ? true : isOdd(n - 1); };
        plusTwo(0);
        var isOdd = function(n) { return n === 0 ? false : isEven(n - 1); };
        isEven(11)
        """
        execute(source, calls, plusTwo=plus_two)
        assert calls.received == [False]

    def test_redeclaration_keeps_source_order(self, calls):
        seen = []

        def record(k, x):
            seen.append(x)
            return k(x)

        execute("var x = 1; record(x); var x = 2; record(x)", calls, record=record)
        assert seen == [1, 2]

    def test_mutual_recursion(self, calls):
        source = """
        var isEven = function(n) { return n === 0 ? true : isOdd(n - 1); };
        var isOdd = function(n) { return n === 0 ? false : isEven(n - 1); };
        isEven(301)
        """
        execute(source, calls)
        assert calls.received == [False]


class TestEvaluationOrder:
    """Tests that effects happen in source order."""

    def test_arguments_evaluated_left_to_right(self, calls):
        effects = []

        def a(k):
            effects.append("a")
            return k(1)

        def b(k):
            effects.append("b")
            return k(2)

        def f(k, x, y):
            return k([x, y])

        execute("f(a(), b())", calls, f=f, a=a, b=b)
        assert effects == ["a", "b"]
        assert calls.received == [[1, 2]]

    def test_callee_evaluated_before_arguments(self, calls):
        effects = []

        def pick(k):
            effects.append("callee")
            return k(plus_two)

        def arg(k):
            effects.append("argument")
            return k(1)

        execute("pick()(arg())", calls, pick=pick, arg=arg)
        assert effects == ["callee", "argument"]
        assert calls.received == [3]

    def test_binary_operands_left_to_right(self, calls):
        effects = []

        def left(k):
            effects.append("left")
            return k(10)

        def right(k):
            effects.append("right")
            return k(3)

        execute("left() - right()", calls, left=left, right=right)
        assert effects == ["left", "right"]
        assert calls.received == [7]


class TestCompoundExpressions:
    """Tests for conditionals, operators, arrays and member access."""

    def test_conditional_runs_one_branch(self, calls):
        effects = []

        def yes(k):
            effects.append("yes")
            return k(1)

        def no(k):
            effects.append("no")
            return k(2)

        execute("plusTwo(0) === 2 ? yes() : no()", calls, plusTwo=plus_two, yes=yes, no=no)
        assert effects == ["yes"]
        assert calls.received == [1]

    def test_conditional_binds_continuation_once(self):
        node = read("a ? b : c").body[0].expression
        result = cps(node, "topK")
        # (function(_k){ return a ? _k(b) : _k(c); })(topK)
        assert isinstance(result.callee, ast.FunctionExpression)
        assert result.arguments == (ast.ident("topK"),)

    def test_immediately_invoked_function(self, calls):
        source = "(function(x) { return times(x, x); })(plus(2, 3)) * 5"
        execute(source, calls, plus=plus, times=times)
        assert calls.received == [125]

    def test_function_returning_function(self, calls):
        source = """
        var makeAdder = function(n) { return function(x) { return plus(x, n); }; };
        var addFive = makeAdder(5);
        times(addFive(20), 5)
        """
        execute(source, calls, plus=plus, times=times)
        assert calls.received == [125]

    def test_unary(self, calls):
        execute("!(plusTwo(1) === 3)", calls, plusTwo=plus_two)
        assert calls.received == [False]

    def test_array_elements(self, calls):
        execute("[plusTwo(1), 5, plusTwo(2)]", calls, plusTwo=plus_two)
        assert calls.received == [[3, 5, 4]]

    def test_computed_member(self, calls):
        execute("[10, 20, 30][plusTwo(0)]", calls, plusTwo=plus_two)
        assert calls.received == [30]

    def test_length_property(self, calls):
        execute("[1, 2, 3].length", calls)
        assert calls.received == [3]


class TestUnsupportedSyntax:
    """Tests for node kinds the transform rejects."""

    def test_if_statement(self):
        with pytest.raises(UnsupportedSyntax) as excinfo:
            cps(read("if (x) { f(); }"), "topK")
        assert excinfo.value.kind == "IfStatement"

    def test_logical_expression(self):
        with pytest.raises(UnsupportedSyntax) as excinfo:
            cps(read("a && b"), "topK")
        assert excinfo.value.kind == "LogicalExpression"

    def test_spread_argument(self):
        node = ast.call(ast.ident("f"), ast.SpreadElement(argument=ast.ident("xs")))
        with pytest.raises(UnsupportedSyntax):
            cps(node, "topK")
