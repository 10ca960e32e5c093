"""Typed syntax nodes for JavaScript/TypeScript sources.

The tree-sitter concrete tree is converted into these classes so rules can
dispatch on node type instead of grammar strings. Offsets are character
offsets into the decoded source text.
"""

from __future__ import annotations

import bisect
from dataclasses import dataclass, field
from typing import ClassVar, Iterator


@dataclass(eq=False)
class Node:
    start: int
    end: int
    text: str
    parent: Node | None = field(default=None, repr=False)

    _child_fields: ClassVar[tuple[str, ...]] = ()

    def children(self) -> list[Node]:
        out: list[Node] = []
        for name in self._child_fields:
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, list):
                out.extend(child for child in value if child is not None)
            else:
                out.append(value)
        out.sort(key=lambda child: child.start)
        return out

    def ancestors(self) -> Iterator[Node]:
        current = self.parent
        while current is not None:
            yield current
            current = current.parent

    def contains(self, other: Node) -> bool:
        return self.start <= other.start and other.end <= self.end


@dataclass(eq=False)
class GenericNode(Node):
    """Any grammar construct without a dedicated class."""

    kind: str = ""
    items: list[Node] = field(default_factory=list)

    _child_fields = ("items",)


@dataclass(eq=False)
class Comment:
    start: int
    end: int
    text: str
    line: int
    end_line: int

    @property
    def value(self) -> str:
        body = self.text
        if body.startswith("//"):
            return body[2:]
        if body.startswith("/*"):
            return body[2:-2] if body.endswith("*/") else body[2:]
        return body


@dataclass(eq=False)
class Program(Node):
    body: list[Node] = field(default_factory=list)
    comments: list[Comment] = field(default_factory=list)
    source: str = ""
    has_error: bool = False
    line_starts: list[int] = field(default_factory=list, repr=False)

    _child_fields = ("body",)

    def position(self, offset: int) -> tuple[int, int]:
        """Return the 1-based line and 0-based column of ``offset``."""
        index = bisect.bisect_right(self.line_starts, offset) - 1
        index = max(index, 0)
        return index + 1, offset - self.line_starts[index]

    def line_of(self, offset: int) -> int:
        return self.position(offset)[0]


@dataclass(eq=False)
class Identifier(Node):
    name: str = ""


@dataclass(eq=False)
class NumberLiteral(Node):
    value: float | None = None
    raw: str = ""


@dataclass(eq=False)
class StringLiteral(Node):
    value: str = ""


@dataclass(eq=False)
class TemplateLiteral(Node):
    substitutions: list[Node] = field(default_factory=list)

    _child_fields = ("substitutions",)


@dataclass(eq=False)
class ExpressionStatement(Node):
    expression: Node | None = None

    _child_fields = ("expression",)


@dataclass(eq=False)
class BlockStatement(Node):
    body: list[Node] = field(default_factory=list)

    _child_fields = ("body",)


@dataclass(eq=False)
class ReturnStatement(Node):
    argument: Node | None = None

    _child_fields = ("argument",)


@dataclass(eq=False)
class VariableDeclarator(Node):
    id: Node | None = None
    init: Node | None = None
    annotation: str | None = None

    _child_fields = ("id", "init")

    @property
    def name(self) -> str | None:
        return self.id.name if isinstance(self.id, Identifier) else None


@dataclass(eq=False)
class VariableDeclaration(Node):
    kind: str = "var"
    declarations: list[VariableDeclarator] = field(default_factory=list)
    kind_start: int = 0
    kind_end: int = 0
    declare: bool = False
    exported: bool = False

    _child_fields = ("declarations",)


@dataclass(eq=False)
class Parameter(Node):
    pattern: Node | None = None
    annotation: str | None = None
    default: Node | None = None

    _child_fields = ("pattern", "default")


@dataclass(eq=False)
class Function(Node):
    name: Identifier | None = None
    params: list[Parameter] = field(default_factory=list)
    body: Node | None = None
    is_arrow: bool = False
    is_declaration: bool = False

    _child_fields = ("name", "params", "body")


@dataclass(eq=False)
class ClassNode(Node):
    name: Identifier | None = None
    heritage: Node | None = None
    members: list[Node] = field(default_factory=list)
    is_declaration: bool = False

    _child_fields = ("name", "heritage", "members")


@dataclass(eq=False)
class MemberExpression(Node):
    object: Node | None = None
    prop: Node | None = None
    computed: bool = False
    optional: bool = False

    _child_fields = ("object", "prop")

    @property
    def property_name(self) -> str | None:
        if not self.computed and isinstance(self.prop, Identifier):
            return self.prop.name
        if self.computed and isinstance(self.prop, StringLiteral):
            return self.prop.value
        return None


@dataclass(eq=False)
class CallExpression(Node):
    callee: Node | None = None
    arguments: list[Node] = field(default_factory=list)
    optional: bool = False

    _child_fields = ("callee", "arguments")


@dataclass(eq=False)
class NewExpression(Node):
    callee: Node | None = None
    arguments: list[Node] = field(default_factory=list)

    _child_fields = ("callee", "arguments")


@dataclass(eq=False)
class BinaryExpression(Node):
    operator: str = ""
    left: Node | None = None
    right: Node | None = None

    _child_fields = ("left", "right")


@dataclass(eq=False)
class LogicalExpression(Node):
    operator: str = ""
    left: Node | None = None
    right: Node | None = None

    _child_fields = ("left", "right")


@dataclass(eq=False)
class UnaryExpression(Node):
    operator: str = ""
    argument: Node | None = None

    _child_fields = ("argument",)


@dataclass(eq=False)
class UpdateExpression(Node):
    operator: str = ""
    argument: Node | None = None

    _child_fields = ("argument",)


@dataclass(eq=False)
class ConditionalExpression(Node):
    test: Node | None = None
    consequent: Node | None = None
    alternate: Node | None = None

    _child_fields = ("test", "consequent", "alternate")


@dataclass(eq=False)
class AssignmentExpression(Node):
    operator: str = "="
    left: Node | None = None
    right: Node | None = None

    _child_fields = ("left", "right")


@dataclass(eq=False)
class Property(Node):
    key: Node | None = None
    value: Node | None = None
    shorthand: bool = False
    computed: bool = False

    _child_fields = ("key", "value")

    @property
    def key_name(self) -> str | None:
        if self.shorthand and isinstance(self.value, Identifier):
            return self.value.name
        if isinstance(self.key, Identifier) and not self.computed:
            return self.key.name
        if isinstance(self.key, StringLiteral):
            return self.key.value
        return None


@dataclass(eq=False)
class ObjectExpression(Node):
    properties: list[Node] = field(default_factory=list)

    _child_fields = ("properties",)


@dataclass(eq=False)
class TypeCast(Node):
    """``x as T``, ``x satisfies T``, ``x!`` and ``<T>x``."""

    expression: Node | None = None
    annotation: str | None = None

    _child_fields = ("expression",)


@dataclass(eq=False)
class ImportSpecifier(Node):
    imported: str = ""
    local: Identifier | None = None
    type_only: bool = False

    _child_fields = ("local",)


@dataclass(eq=False)
class ImportDeclaration(Node):
    source: str = ""
    specifiers: list[ImportSpecifier] = field(default_factory=list)
    default: Identifier | None = None
    namespace: Identifier | None = None
    type_only: bool = False

    _child_fields = ("default", "namespace", "specifiers")


def walk(node: Node) -> Iterator[Node]:
    """Yield ``node`` and its descendants in pre-order."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children()))


def unwrap(node: Node | None) -> Node | None:
    """Strip TypeScript casts around an expression."""
    while isinstance(node, TypeCast):
        node = node.expression
    return node


def static_number(node: Node | None) -> float | None:
    """Fold literal arithmetic to a number, or return ``None``."""
    node = unwrap(node)
    if isinstance(node, NumberLiteral):
        return node.value
    if isinstance(node, UnaryExpression) and node.operator in {"-", "+"}:
        inner = static_number(node.argument)
        if inner is None:
            return None
        return -inner if node.operator == "-" else inner
    if isinstance(node, BinaryExpression):
        left = static_number(node.left)
        right = static_number(node.right)
        if left is None or right is None:
            return None
        if node.operator == "+":
            return left + right
        if node.operator == "-":
            return left - right
        if node.operator == "*":
            return left * right
        if node.operator == "/" and right != 0:
            return left / right
        if node.operator == "%" and right != 0:
            return left % right
    return None


def is_callee_named(call: Node, name: str) -> bool:
    return (
        isinstance(call, CallExpression)
        and isinstance(call.callee, Identifier)
        and call.callee.name == name
    )


def member_call_name(call: Node) -> str | None:
    """Property name of a ``receiver.method(...)`` call."""
    if isinstance(call, CallExpression) and isinstance(call.callee, MemberExpression):
        return call.callee.property_name
    return None


def is_static_member(node: Node | None, object_name: str, property_name: str) -> bool:
    return (
        isinstance(node, MemberExpression)
        and isinstance(node.object, Identifier)
        and node.object.name == object_name
        and node.property_name == property_name
    )


def enclosing_statement(node: Node) -> Node | None:
    """The nearest ancestor whose parent is a Program or block."""
    current: Node | None = node
    while current is not None and current.parent is not None:
        if isinstance(current.parent, (Program, BlockStatement)):
            return current
        current = current.parent
    return None


def top_level_statement(node: Node) -> Node | None:
    current: Node | None = node
    while current is not None and current.parent is not None:
        if isinstance(current.parent, Program):
            return current
        current = current.parent
    return None


def program_of(node: Node) -> Program | None:
    current: Node | None = node
    while current is not None:
        if isinstance(current, Program):
            return current
        current = current.parent
    return None
