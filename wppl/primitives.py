"""
Primitive wrapping - lets CPS code call ordinary host functions.

Any identifier a program references without binding it is assumed to be a
direct-style host function (plus, display, ...). For each one a small wrapper

    var _p_plus0 = function(k, ...args) { return k(plus(...args)); };

is synthesized, the free references are renamed to the wrapper, and the
wrapper declarations go in front of the CPS-transformed program. Names the
runtime already provides in CPS form are left alone, and a single reference
can be opted out explicitly with the marker call __cps(name).
"""

from wppl import ast
from wppl.debug import debug_log
from wppl.errors import MalformedContinuationPrimitive
from wppl.gensym import gensym

MARKER = "__cps"

# Names the runtime already provides in continuation-passing form.
DEFAULT_CPS_NAMES = frozenset([
    "sample", "factor", "exit",
    "Forward", "Enumerate", "ParticleFilter",
    "flip", "randomInteger", "discrete", "uniform", "gaussian", "uniformDraw",
    "bernoulliERP", "randomIntegerERP", "discreteERP", "uniformERP", "gaussianERP",
    "undefined",
])


def _copy(node):
    return node.model_copy(deep=True)


def _map_children(node, fn):
    """Rebuild `node` with fn applied to each direct child node."""
    updates = {}
    for field in type(node).model_fields:
        value = getattr(node, field)
        if isinstance(value, ast.Node):
            updates[field] = fn(value)
        elif isinstance(value, tuple):
            updates[field] = tuple(fn(v) if isinstance(v, ast.Node) else v for v in value)
    return node.model_copy(update=updates)


def declared_names(statements):
    """Names declared with var in a function body; var is function scoped."""
    names = set()
    for statement in statements:
        if isinstance(statement, ast.VariableDeclaration):
            names.add(statement.id.name)
        elif isinstance(statement, ast.BlockStatement):
            names |= declared_names(statement.body)
        elif isinstance(statement, ast.IfStatement):
            names |= declared_names(statement.consequent.body)
            if statement.alternate is not None:
                names |= declared_names(statement.alternate.body)
    return names


def _is_marker(node):
    return isinstance(node, ast.Identifier) and node.name == MARKER


class PrimitiveWrapper:
    """Finds free primitive references and reroutes them through CPS wrappers."""

    def __init__(self, cps_names=DEFAULT_CPS_NAMES):
        self.cps_names = frozenset(cps_names) | {MARKER}

    def _unwrap_marker(self, node):
        args = node.arguments
        if len(args) != 1:
            raise MalformedContinuationPrimitive(
                f"{MARKER} takes exactly one argument, got {len(args)}",
                suggestion=f"Write {MARKER}(name) to use `name` as a CPS function",
            )
        target = args[0]
        if not isinstance(target, ast.Identifier) or target.name == MARKER:
            raise MalformedContinuationPrimitive(
                f"{MARKER} must be applied to a bare name, not {target.type}",
                suggestion=f"Bind the value to a variable first, then write {MARKER}(name)",
            )
        return _copy(target)

    def _visit(self, node, bound, on_free):
        """Rebuild `node`, passing every free primitive reference to on_free."""
        if isinstance(node, ast.Identifier):
            if node.name == MARKER:
                raise MalformedContinuationPrimitive(
                    f"{MARKER} can only be used as a call: {MARKER}(name)")
            if node.name in bound or node.name in self.cps_names:
                return _copy(node)
            return on_free(node)

        if isinstance(node, ast.CallExpression) and _is_marker(node.callee):
            return self._unwrap_marker(node)

        if isinstance(node, ast.MemberExpression) and not node.computed:
            return node.model_copy(update={
                'object': self._visit(node.object, bound, on_free),
                'property': _copy(node.property),
            })

        if isinstance(node, ast.Program):
            bound = bound | declared_names(node.body)
        elif isinstance(node, ast.FunctionExpression):
            bound = bound | {p.name for p in node.params} | declared_names(node.body.body)
            if node.rest is not None:
                bound = bound | {node.rest.name}

        return _map_children(node, lambda child: self._visit(child, bound, on_free))

    def free_identifiers(self, program):
        """Primitive names referenced but bound nowhere, in first-use order."""
        found = []

        def collect(node):
            if node.name not in found:
                found.append(node.name)
            return node
        self._visit(program, frozenset(), collect)
        return found

    def wrap(self, program):
        """
        Rename free primitives to generated wrappers.

        Returns (wrappers, program): the wrapper declarations to place ahead
        of the CPS-transformed program, and the rewritten program with every
        __cps marker unwrapped.
        """
        free = self.free_identifiers(program)
        renames = {name: gensym(f"_p_{name}") for name in free}
        if free:
            debug_log(f"Wrapping primitives: {', '.join(free)}")

        rewritten = self._visit(program, frozenset(), lambda node: ast.ident(renames[node.name]))
        wrappers = [make_wrapper(renames[name], name) for name in free]
        return wrappers, rewritten


def make_wrapper(wrapper_name, primitive_name):
    """var wrapper = function(k, ...args) { return k(primitive(...args)); };"""
    k = gensym("_k")
    args = gensym("_args")
    direct_call = ast.call(ast.ident(primitive_name), ast.SpreadElement(argument=ast.ident(args)))
    init = ast.func([k], ast.ret(ast.call(ast.ident(k), direct_call)), rest=ast.ident(args))
    return ast.VariableDeclaration(id=ast.ident(wrapper_name), init=init)


def prepend(wrappers, program):
    """Place wrapper declarations ahead of a CPS-transformed program."""
    return ast.Program(body=tuple(wrappers) + tuple(program.body))
