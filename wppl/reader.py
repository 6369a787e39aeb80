"""
WebPPL Reader - Converts Lark parse trees into AST nodes.

The reader is the front end collaborator of the compiler: it turns program text
into the immutable node types of wppl.ast, which is all the CPS transformer
and the primitive wrapper ever look at.
"""

import ast as pyast
import re

from lark import Lark, Transformer
from lark.exceptions import UnexpectedInput

from wppl import ast
from wppl.errors import WebPPLSyntaxError, get_line_context, detect_common_error_patterns
from wppl.grammar import wppl_grammar


class ASTBuilder(Transformer):
    """
    Transforms WebPPL parse trees into wppl.ast nodes.

    One method per grammar rule, mirroring the grammar's aliases.
    """

    def start(self, items):
        """Collect top-level statements into a Program."""
        return ast.Program(body=items)

    def block(self, items):
        return ast.BlockStatement(body=items)

    def var_decl(self, args):
        name, init = args
        return ast.VariableDeclaration(id=ast.ident(name), init=init)

    def return_stmt(self, args):
        return ast.ReturnStatement(argument=args[0] if args else None)

    def expr_stmt(self, args):
        return ast.ExpressionStatement(expression=args[0])

    def if_stmt(self, args):
        test, consequent = args[0], args[1]
        alternate = args[2] if len(args) > 2 else None
        return ast.IfStatement(test=test, consequent=consequent, alternate=alternate)

    def conditional(self, args):
        test, consequent, alternate = args
        return ast.ConditionalExpression(test=test, consequent=consequent, alternate=alternate)

    def logical(self, args):
        left, op, right = args
        return ast.LogicalExpression(operator=str(op), left=left, right=right)

    def binary(self, args):
        left, op, right = args
        return ast.BinaryExpression(operator=str(op), left=left, right=right)

    def unary(self, args):
        op, argument = args
        return ast.UnaryExpression(operator=str(op), argument=argument)

    def call(self, args):
        callee = args[0]
        arguments = args[1] if len(args) > 1 and args[1] is not None else []
        return ast.CallExpression(callee=callee, arguments=arguments)

    def arguments(self, args):
        return list(args)

    def member(self, args):
        obj, name = args
        return ast.MemberExpression(object=obj, property=ast.ident(name), computed=False)

    def index(self, args):
        obj, key = args
        return ast.MemberExpression(object=obj, property=key, computed=True)

    def array(self, args):
        return ast.ArrayExpression(elements=[a for a in args if a is not None])

    def function(self, args):
        *params, body = args
        return ast.FunctionExpression(
            params=[ast.ident(p) for p in params if p is not None],
            body=body,
        )

    def identifier(self, args):
        return ast.ident(args[0])

    def number(self, args):
        text = str(args[0])
        if re.fullmatch(r'\d+', text):
            return ast.Literal(value=int(text))
        return ast.Literal(value=float(text))

    def string(self, args):
        """Decode a quoted string token; JS and Python escapes coincide here."""
        return ast.Literal(value=pyast.literal_eval(str(args[0])))

    def true(self, args):
        return ast.Literal(value=True)

    def false(self, args):
        return ast.Literal(value=False)

    def null(self, args):
        return ast.Literal(value=None)

    def NAME(self, t):
        """Transform NAME token."""
        return str(t)


_parser = None


def get_parser():
    """Build the LALR parser once and reuse it."""
    global _parser
    if _parser is None:
        _parser = Lark(wppl_grammar, parser='lalr')
    return _parser


def read(source_code):
    """Parse program text into a wppl.ast.Program."""
    try:
        tree = get_parser().parse(source_code)
    except UnexpectedInput as e:
        line_number = getattr(e, 'line', None)
        column = getattr(e, 'column', None)
        if line_number is not None and line_number < 1:
            line_number = None
        context = get_line_context(source_code, line_number)
        suggestion = detect_common_error_patterns(source_code) or "Check syntax around this line"
        raise WebPPLSyntaxError(
            message="Syntax error",
            line_number=line_number,
            column=column,
            context=context,
            suggestion=suggestion,
        ) from e
    return ASTBuilder().transform(tree)
