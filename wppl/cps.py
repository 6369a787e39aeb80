"""
WebPPL CPS Transformer - rewrites direct-style trees into continuation-passing style.

cps(node, k) returns a tree that, instead of producing the value of `node`,
invokes the continuation expression `k` with it. Every function literal gets a
fresh continuation as its first parameter, every call passes the continuation
as its first argument, and every control path ends in a continuation call.
That is what lets the runtime intercept sample and factor: at those points the
rest of the program is an ordinary value it can call zero, one or many times.
"""

from wppl import ast
from wppl.errors import UnsupportedSyntax
from wppl.gensym import gensym


def _copy(node):
    """Fresh copy of an input node, so output trees never alias input trees."""
    return node.model_copy(deep=True)


def _declared_names(declarations):
    return {d.id.name for d in declarations}


def _mentioned_names(node):
    return {n.name for n in ast.walk(node) if isinstance(n, ast.Identifier)}


class CpsTransformer:
    """
    Converts wppl.ast trees into CPS.

    Dispatch is one method per node kind (see _RULES); a kind without a rule
    raises UnsupportedSyntax.
    """

    _RULES = {
        ast.Program: 'program',
        ast.BlockStatement: 'block_statement',
        ast.ExpressionStatement: 'expression_statement',
        ast.ReturnStatement: 'return_statement',
        ast.VariableDeclaration: 'variable_declaration',
        ast.Identifier: 'atomic',
        ast.Literal: 'atomic',
        ast.FunctionExpression: 'atomic',
        ast.CallExpression: 'call_expression',
        ast.ConditionalExpression: 'conditional_expression',
        ast.BinaryExpression: 'binary_expression',
        ast.UnaryExpression: 'unary_expression',
        ast.ArrayExpression: 'array_expression',
        ast.MemberExpression: 'member_expression',
    }

    def transform(self, node, k):
        rule = self._RULES.get(type(node))
        if rule is None:
            raise UnsupportedSyntax(node.type)
        return getattr(self, rule)(node, k)

    # --- Atomic values ---

    def function(self, node):
        """CPS-convert a function literal: prepend a continuation parameter."""
        k = gensym("_k")
        params = (ast.ident(k),) + tuple(_copy(p) for p in node.params)
        rest = _copy(node.rest) if node.rest is not None else None
        body = self.block_statement(node.body, ast.ident(k))
        return ast.FunctionExpression(params=params, body=body, rest=rest)

    def atomic_value(self, node):
        if isinstance(node, ast.FunctionExpression):
            return self.function(node)
        return _copy(node)

    def atomic(self, node, k):
        return ast.call(k, self.atomic_value(node))

    def _value(self, node, build, prefix="_v"):
        """
        Evaluate `node`, then continue with build(value_expression).

        Atomic operands are already values and are used in place; anything
        else is transformed with a continuation binding a fresh temporary.
        """
        if isinstance(node, ast.ATOMIC_KINDS):
            return build(self.atomic_value(node))
        tmp = gensym(prefix)
        return self.transform(node, ast.func([tmp], ast.ret(build(ast.ident(tmp)))))

    def _values(self, nodes, build, prefix="_v", done=()):
        """Evaluate `nodes` strictly left to right, then build(values)."""
        if not nodes:
            return build(list(done))
        return self._value(
            nodes[0],
            lambda value: self._values(nodes[1:], build, prefix, done + (value,)),
            prefix,
        )

    # --- Sequencing ---

    def _sequence(self, statements, k):
        """
        Thread a statement list into CPS.

        Returns (declarations, tail): declarations bound in the current scope
        followed by one expression that continues the computation.
        Consecutive atomic declarations share one scope, so functions declared
        side by side can call each other. The continuation after an expression
        statement binds nothing, so it is declared in the current scope too;
        straight-line code therefore does not nest deeper with its length.
        Statements are threaded from the last one back.
        """
        statements = list(statements)
        for i, statement in enumerate(statements):
            if isinstance(statement, ast.ReturnStatement):
                del statements[i + 1:]
                break
        if not statements:
            return [], ast.call(k, ast.undefined())

        declarations, tail = self._statement(statements[-1], k)
        for first in reversed(statements[:-1]):
            if self._is_atomic_declaration(first):
                declarations = [self._binding(first)] + declarations
            elif isinstance(first, ast.ExpressionStatement) and not (
                    _declared_names(declarations) & _mentioned_names(first)):
                name = gensym("_c")
                rest_k = ast.func([gensym("_s")], ast.ret(tail))
                declarations = declarations + [ast.VariableDeclaration(id=ast.ident(name), init=rest_k)]
                tail = self.transform(first.expression, ast.ident(name))
            else:
                rest_k = ast.func([gensym("_s")], *declarations, ast.ret(tail))
                declarations, tail = self._statement(first, rest_k)
        return declarations, tail

    def _statement(self, node, k):
        if isinstance(node, ast.ExpressionStatement):
            return [], self.transform(node.expression, k)
        if isinstance(node, ast.ReturnStatement):
            argument = node.argument if node.argument is not None else ast.undefined()
            return [], self.transform(argument, k)
        if isinstance(node, ast.VariableDeclaration):
            return self._declaration(node, k)
        raise UnsupportedSyntax(node.type)

    @staticmethod
    def _is_atomic_declaration(node):
        return isinstance(node, ast.VariableDeclaration) and isinstance(node.init, ast.ATOMIC_KINDS)

    def _binding(self, node):
        return ast.VariableDeclaration(id=_copy(node.id), init=self.atomic_value(node.init))

    def _declaration(self, node, k):
        done = ast.call(k, ast.undefined())
        if self._is_atomic_declaration(node):
            # Bound in the current scope so a function literal can see its own name.
            return [self._binding(node)], done
        return [], self.transform(node.init, ast.func([node.id.name], ast.ret(done)))

    def program(self, node, k):
        declarations, tail = self._sequence(node.body, k)
        return ast.Program(body=declarations + [ast.ExpressionStatement(expression=tail)])

    def block_statement(self, node, k):
        declarations, tail = self._sequence(node.body, k)
        return ast.BlockStatement(body=declarations + [ast.ret(tail)])

    def expression_statement(self, node, k):
        return ast.ExpressionStatement(expression=self.transform(node.expression, k))

    def return_statement(self, node, k):
        _, tail = self._statement(node, k)
        return ast.ret(tail)

    def variable_declaration(self, node, k):
        declarations, tail = self._declaration(node, k)
        return ast.BlockStatement(body=declarations + [ast.ret(tail)])

    # --- Compound expressions ---

    def call_expression(self, node, k):
        def invoke(values):
            callee, *args = values
            return ast.call(callee, k, *args)
        return self._value(
            node.callee,
            lambda callee: self._values(list(node.arguments), lambda args: invoke([callee] + args), "_a"),
            "_f",
        )

    def conditional_expression(self, node, k):
        shared_k = gensym("_k")

        def branch(test):
            return ast.ConditionalExpression(
                test=test,
                consequent=self.transform(node.consequent, ast.ident(shared_k)),
                alternate=self.transform(node.alternate, ast.ident(shared_k)),
            )
        body = self._value(node.test, branch, "_t")
        return ast.call(ast.func([shared_k], ast.ret(body)), k)

    def binary_expression(self, node, k):
        def apply(values):
            left, right = values
            return ast.call(k, ast.BinaryExpression(operator=node.operator, left=left, right=right))
        return self._values([node.left, node.right], apply)

    def unary_expression(self, node, k):
        return self._value(
            node.argument,
            lambda argument: ast.call(k, ast.UnaryExpression(operator=node.operator, argument=argument)),
        )

    def array_expression(self, node, k):
        return self._values(
            list(node.elements),
            lambda elements: ast.call(k, ast.ArrayExpression(elements=elements)),
        )

    def member_expression(self, node, k):
        if node.computed:
            def apply(values):
                obj, key = values
                return ast.call(k, ast.MemberExpression(object=obj, property=key, computed=True))
            return self._values([node.object, node.property], apply)
        return self._value(
            node.object,
            lambda obj: ast.call(k, ast.MemberExpression(object=obj, property=_copy(node.property))),
        )


def cps(node, continuation):
    """CPS-transform `node` so that its value is passed to `continuation`.

    `continuation` is an expression node or the name of an identifier.
    """
    if isinstance(continuation, str):
        continuation = ast.ident(continuation)
    return CpsTransformer().transform(node, continuation)
