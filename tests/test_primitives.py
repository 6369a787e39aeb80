"""
Unit tests for wppl/primitives.py - wrapping direct-style host functions.
"""

import pytest
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))
from wppl import ast
from wppl.errors import MalformedContinuationPrimitive
from wppl.primitives import DEFAULT_CPS_NAMES, MARKER, PrimitiveWrapper, declared_names, prepend
from wppl.reader import read


@pytest.fixture
def wrapper():
    return PrimitiveWrapper()


def identifier_names(node):
    return [n.name for n in ast.walk(node) if isinstance(n, ast.Identifier)]


class TestFreeIdentifiers:
    """Tests for free-identifier analysis."""

    def test_unbound_calls_are_free(self, wrapper):
        program = read("var x = 1; plus(x, y)")
        assert wrapper.free_identifiers(program) == ["plus", "y"]

    def test_parameters_and_locals_are_bound(self, wrapper):
        program = read("var f = function(a) { var b = 2; return times(a, b, c); }; f(1)")
        assert wrapper.free_identifiers(program) == ["times", "c"]

    def test_var_is_hoisted_within_program(self, wrapper):
        program = read("var f = function() { return x; }; var x = 2; f()")
        assert wrapper.free_identifiers(program) == []

    def test_var_is_hoisted_within_function(self, wrapper):
        program = read("var f = function() { var g = function() { return y; }; var y = 1; return g(); }; f()")
        assert wrapper.free_identifiers(program) == []

    def test_function_locals_do_not_leak(self, wrapper):
        program = read("var f = function() { var inner = 1; return inner; }; inner")
        assert wrapper.free_identifiers(program) == ["inner"]

    def test_runtime_cps_names_are_not_free(self, wrapper):
        program = read("var d = Enumerate(function() { return flip(0.5); }); sample(d, [])")
        assert wrapper.free_identifiers(program) == []

    def test_undefined_is_not_free(self, wrapper):
        assert wrapper.free_identifiers(read("undefined")) == []

    def test_names_reported_once_in_first_use_order(self, wrapper):
        program = read("times(plus(1, 2), plus(3, 4)); display(times)")
        assert wrapper.free_identifiers(program) == ["times", "plus", "display"]

    def test_property_names_are_not_identifiers(self, wrapper):
        assert wrapper.free_identifiers(read("xs.length")) == ["xs"]

    def test_extra_cps_names(self):
        program = read("plus(1, myCps(2))")
        assert PrimitiveWrapper(DEFAULT_CPS_NAMES | {"myCps"}).free_identifiers(program) == ["plus"]

    def test_declared_names_look_inside_if_blocks(self):
        program = read("if (c) { var a = 1; } else { var b = 2; }")
        assert declared_names(program.body) == {"a", "b"}


class TestMarker:
    """Tests for the __cps opt-out marker."""

    def test_marker_is_unwrapped(self, wrapper):
        program = read(f"{MARKER}(myCps)(1, 2)")
        wrappers, rewritten = wrapper.wrap(program)
        assert wrappers == []
        assert rewritten.body[0].expression.callee == ast.ident("myCps")

    def test_marked_reference_is_not_free(self, wrapper):
        program = read(f"plus({MARKER}(limit), 1)")
        assert wrapper.free_identifiers(program) == ["plus"]

    def test_marker_with_two_arguments(self, wrapper):
        with pytest.raises(MalformedContinuationPrimitive):
            wrapper.wrap(read(f"{MARKER}(a, b)"))

    def test_marker_without_arguments(self, wrapper):
        with pytest.raises(MalformedContinuationPrimitive):
            wrapper.wrap(read(f"{MARKER}()"))

    def test_marker_on_non_identifier(self, wrapper):
        with pytest.raises(MalformedContinuationPrimitive):
            wrapper.wrap(read(f"{MARKER}(1)"))

    def test_marker_on_itself(self, wrapper):
        with pytest.raises(MalformedContinuationPrimitive):
            wrapper.wrap(read(f"{MARKER}({MARKER})"))

    def test_bare_marker_reference(self, wrapper):
        with pytest.raises(MalformedContinuationPrimitive):
            wrapper.wrap(read(f"var f = {MARKER}; f(x)"))


class TestWrap:
    """Tests for wrapper synthesis and renaming."""

    def test_free_references_are_renamed(self, wrapper):
        wrappers, rewritten = wrapper.wrap(read("plus(plus(1, 2), 3)"))
        assert len(wrappers) == 1
        wrapper_name = wrappers[0].id.name
        assert wrapper_name.startswith("_p_plus")
        names = identifier_names(rewritten)
        assert "plus" not in names
        assert names.count(wrapper_name) == 2

    def test_wrapper_shape(self, wrapper):
        wrappers, _ = wrapper.wrap(read("plus(1, 2)"))
        fn = wrappers[0].init
        assert isinstance(fn, ast.FunctionExpression)
        assert len(fn.params) == 1
        assert fn.rest is not None
        # return k(plus(...args))
        returned = fn.body.body[0].argument
        assert returned.callee == fn.params[0]
        inner = returned.arguments[0]
        assert inner.callee == ast.ident("plus")
        assert inner.arguments == (ast.SpreadElement(argument=fn.rest),)

    def test_bound_names_are_untouched(self, wrapper):
        program = read("var plus = function(a, b) { return a; }; plus(1, 2)")
        wrappers, rewritten = wrapper.wrap(program)
        assert wrappers == []
        assert rewritten == program

    def test_input_tree_is_not_modified(self, wrapper):
        program = read("plus(1, 2)")
        before = program.model_copy(deep=True)
        wrapper.wrap(program)
        assert program == before

    def test_prepend_puts_wrappers_first(self, wrapper):
        wrappers, rewritten = wrapper.wrap(read("plus(1, 2)"))
        combined = prepend(wrappers, rewritten)
        assert combined.body[0] == wrappers[0]
        assert combined.body[1:] == rewritten.body
