"""
WebPPL AST - immutable syntax tree nodes.

Node kinds follow the ESTree names the JavaScript tooling uses, so trees read
the same whether they came from the reader or were built by hand. Every node is
a frozen pydantic model; transforms build new nodes instead of mutating.
"""

from typing import Any, Iterator, Optional, Tuple

from pydantic import BaseModel, ConfigDict


class Node(BaseModel):
    """Base class of all syntax tree nodes."""
    model_config = ConfigDict(frozen=True)

    @property
    def type(self) -> str:
        """The node kind tag, e.g. 'CallExpression'."""
        return type(self).__name__


# --- Program structure ---

class Program(Node):
    body: Tuple[Node, ...] = ()


class BlockStatement(Node):
    body: Tuple[Node, ...] = ()


class ExpressionStatement(Node):
    expression: Node


class ReturnStatement(Node):
    argument: Optional[Node] = None


class VariableDeclaration(Node):
    id: "Identifier"
    init: Node


class IfStatement(Node):
    test: Node
    consequent: BlockStatement
    alternate: Optional[BlockStatement] = None


# --- Expressions ---

class Identifier(Node):
    name: str


class Literal(Node):
    value: Any = None


class FunctionExpression(Node):
    params: Tuple[Identifier, ...] = ()
    body: BlockStatement
    rest: Optional[Identifier] = None  # function(k, ...rest)


class CallExpression(Node):
    callee: Node
    arguments: Tuple[Node, ...] = ()


class SpreadElement(Node):
    argument: Node


class ConditionalExpression(Node):
    test: Node
    consequent: Node
    alternate: Node


class BinaryExpression(Node):
    operator: str
    left: Node
    right: Node


class LogicalExpression(Node):
    operator: str
    left: Node
    right: Node


class UnaryExpression(Node):
    operator: str
    argument: Node


class MemberExpression(Node):
    object: Node
    property: Node
    computed: bool = False


class ArrayExpression(Node):
    elements: Tuple[Node, ...] = ()


VariableDeclaration.model_rebuild()

ATOMIC_KINDS = (Identifier, Literal, FunctionExpression)


def iter_child_nodes(node: Node) -> Iterator[Node]:
    """Yield the direct children of a node in field order."""
    for field in type(node).model_fields:
        value = getattr(node, field)
        if isinstance(value, Node):
            yield value
        elif isinstance(value, tuple):
            for item in value:
                if isinstance(item, Node):
                    yield item


def walk(node: Node) -> Iterator[Node]:
    """Yield a node and all of its descendants, parents first."""
    yield node
    for child in iter_child_nodes(node):
        yield from walk(child)


# --- Builders ---

def ident(name: str) -> Identifier:
    return Identifier(name=name)


def undefined() -> Identifier:
    return Identifier(name="undefined")


def call(callee: Node, *args: Node) -> CallExpression:
    return CallExpression(callee=callee, arguments=args)


def func(params, *statements: Node, rest: Optional[Identifier] = None) -> FunctionExpression:
    """Build a function expression from parameter names or identifiers."""
    params = tuple(ident(p) if isinstance(p, str) else p for p in params)
    return FunctionExpression(params=params, body=BlockStatement(body=statements), rest=rest)


def ret(argument: Node) -> ReturnStatement:
    return ReturnStatement(argument=argument)
