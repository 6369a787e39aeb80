"""
WebPPL Code Generator - renders CPS trees as Python source.

Python has no tail calls, so a call in tail position is not emitted as a call:
it becomes `return __wppl_tail(f, [args])`, a TailCall value that the runtime's
trampoline executes. Function literals become nested `def`s placed just before
the statement that uses them, which keeps JavaScript's lexical scoping: a
continuation defined inside a function body closes over that body's variables.

===, !==, + and % are emitted as calls to runtime helpers that follow
JavaScript (strict equality, string concatenation, sign of the dividend); the
other operators keep their Python meaning.

Nesting depth of the generated code follows the nesting of continuations that
bind variables. CPython refuses more than 100 indentation levels, so a very
long chain of `var x = f(...)` declarations should be split into functions.
"""

import keyword

from wppl import ast
from wppl.errors import UnsupportedSyntax
from wppl.gensym import gensym

INDENT = "    "

TAIL_HELPER = "__wppl_tail"
PROPERTY_HELPER = "__wppl_property"

# Operators with a runtime helper, imported from wppl.runtime.builtins
OPERATOR_HELPERS = {
    "===": ("strict_equals", "__wppl_strict_eq"),
    "!==": ("strict_not_equals", "__wppl_strict_ne"),
    "+": ("add", "__wppl_add"),
    "%": ("remainder", "__wppl_mod"),
}

BINARY_OPERATORS = {
    "==": "==", "!=": "!=",
    "<": "<", ">": ">", "<=": "<=", ">=": ">=",
    "-": "-", "*": "*", "/": "/",
}

LOGICAL_OPERATORS = {"&&": "and", "||": "or"}

UNARY_OPERATORS = {"!": "not ", "-": "-", "+": "+"}


def python_name(name):
    """Map a program identifier to a safe Python identifier."""
    if name == "undefined":
        return "None"
    name = name.replace("$", "_dollar_")
    if keyword.iskeyword(name) or name in ("None", "True", "False") or name.startswith("__wppl"):
        return name + "_"
    return name


def get_preamble(cps_names=()):
    """Import header placed at the top of every generated module."""
    lines = [
        f"from wppl.runtime.trampoline import TailCall as {TAIL_HELPER}",
        f"from wppl.runtime.builtins import get_property as {PROPERTY_HELPER}",
    ]
    helpers = ", ".join(f"{name} as {alias}" for name, alias in OPERATOR_HELPERS.values())
    lines.append(f"from wppl.runtime.builtins import {helpers}")
    names = sorted(n for n in cps_names if n != "undefined")
    if names:
        lines.append(f"from wppl.runtime import {', '.join(names)}")
    return "\n".join(lines) + "\n"


def literal(value):
    if value is True:
        return "True"
    if value is False:
        return "False"
    if value is None:
        return "None"
    return repr(value)


class PythonGenerator:
    """
    Emits Python source for a CPS-transformed Program.

    Statements render to lists of lines; expressions render to strings and
    push any function definitions they need onto `hoisted`.
    """

    def generate(self, program, continuation="topK", entry="main"):
        lines = [f"def {entry}({python_name(continuation)}):"]
        body = self.statements(program.body, 1, program_level=True)
        lines.extend(body or [INDENT + "return None"])
        return "\n".join(lines) + "\n"

    # --- Statements ---

    def statements(self, statements, indent, program_level=False):
        lines = []
        for i, statement in enumerate(statements):
            last = i == len(statements) - 1
            lines.extend(self.statement(statement, indent, tail=program_level and last))
        return lines

    def statement(self, node, indent, tail=False):
        pad = INDENT * indent
        hoisted = []
        if isinstance(node, ast.VariableDeclaration):
            value = self.expression(node.init, hoisted, indent)
            return hoisted + [f"{pad}{python_name(node.id.name)} = {value}"]
        if isinstance(node, ast.ReturnStatement):
            if node.argument is None:
                return [f"{pad}return None"]
            return self.tail(node.argument, indent)
        if isinstance(node, ast.ExpressionStatement):
            if tail:
                return self.tail(node.expression, indent)
            value = self.expression(node.expression, hoisted, indent)
            return hoisted + [f"{pad}{value}"]
        raise UnsupportedSyntax(node.type)

    def tail(self, node, indent):
        """Lines that hand control onward from tail position."""
        pad = INDENT * indent
        hoisted = []
        if isinstance(node, ast.CallExpression):
            callee = self.expression(node.callee, hoisted, indent)
            args = self.arguments(node.arguments, hoisted, indent)
            return hoisted + [f"{pad}return {TAIL_HELPER}({callee}, [{args}])"]
        if isinstance(node, ast.ConditionalExpression):
            test = self.expression(node.test, hoisted, indent)
            return (hoisted
                    + [f"{pad}if {test}:"]
                    + self.tail(node.consequent, indent + 1)
                    + [f"{pad}else:"]
                    + self.tail(node.alternate, indent + 1))
        value = self.expression(node, hoisted, indent)
        return hoisted + [f"{pad}return {value}"]

    # --- Expressions ---

    def arguments(self, nodes, hoisted, indent):
        return ", ".join(self.expression(n, hoisted, indent) for n in nodes)

    def expression(self, node, hoisted, indent):
        if isinstance(node, ast.Identifier):
            return python_name(node.name)
        if isinstance(node, ast.Literal):
            return literal(node.value)
        if isinstance(node, ast.FunctionExpression):
            return self.function(node, hoisted, indent)
        if isinstance(node, ast.CallExpression):
            callee = self.expression(node.callee, hoisted, indent)
            return f"{callee}({self.arguments(node.arguments, hoisted, indent)})"
        if isinstance(node, ast.SpreadElement):
            return f"*{self.expression(node.argument, hoisted, indent)}"
        if isinstance(node, ast.BinaryExpression):
            left = self.expression(node.left, hoisted, indent)
            right = self.expression(node.right, hoisted, indent)
            if node.operator in OPERATOR_HELPERS:
                return f"{OPERATOR_HELPERS[node.operator][1]}({left}, {right})"
            return f"({left} {BINARY_OPERATORS[node.operator]} {right})"
        if isinstance(node, ast.LogicalExpression):
            left = self.expression(node.left, hoisted, indent)
            right = self.expression(node.right, hoisted, indent)
            return f"({left} {LOGICAL_OPERATORS[node.operator]} {right})"
        if isinstance(node, ast.UnaryExpression):
            argument = self.expression(node.argument, hoisted, indent)
            return f"({UNARY_OPERATORS[node.operator]}{argument})"
        if isinstance(node, ast.MemberExpression):
            obj = self.expression(node.object, hoisted, indent)
            if node.computed:
                return f"{obj}[{self.expression(node.property, hoisted, indent)}]"
            return f"{PROPERTY_HELPER}({obj}, {node.property.name!r})"
        if isinstance(node, ast.ArrayExpression):
            return f"[{self.arguments(node.elements, hoisted, indent)}]"
        if isinstance(node, ast.ConditionalExpression):
            test = self.expression(node.test, hoisted, indent)
            consequent = self.expression(node.consequent, hoisted, indent)
            alternate = self.expression(node.alternate, hoisted, indent)
            return f"({consequent} if {test} else {alternate})"
        raise UnsupportedSyntax(node.type)

    def function(self, node, hoisted, indent):
        """Hoist a function literal into a def and return its name."""
        name = gensym("_fn")
        params = [python_name(p.name) for p in node.params]
        if node.rest is not None:
            params.append("*" + python_name(node.rest.name))
        body = self.statements(node.body.body, indent + 1)
        hoisted.append(f"{INDENT * indent}def {name}({', '.join(params)}):")
        hoisted.extend(body or [INDENT * (indent + 1) + "return None"])
        return name


def generate(program, continuation="topK", entry="main", cps_names=()):
    """Render a CPS Program as a Python module defining `entry(continuation)`."""
    return get_preamble(cps_names) + "\n\n" + PythonGenerator().generate(program, continuation, entry)
