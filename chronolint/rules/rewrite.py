"""Helpers shared by rules that rewrite setter calls into reassignments."""

from __future__ import annotations

from chronolint.rules.base import RuleContext
from chronolint.syntax.nodes import (
    BinaryExpression,
    CallExpression,
    ConditionalExpression,
    ExpressionStatement,
    GenericNode,
    Identifier,
    LogicalExpression,
    MemberExpression,
    Node,
    NumberLiteral,
    StringLiteral,
    TemplateLiteral,
    TypeCast,
    UnaryExpression,
    VariableDeclaration,
)
from chronolint.syntax.scope import ScopeManager
from patcher.types import TextEdit

_PURE_KEYWORDS = {"true", "false", "null", "undefined", "this"}
_IMPURE_MATH = {"random"}


def statement_of_call(call: CallExpression) -> ExpressionStatement | None:
    """The expression statement whose whole expression is ``call``."""
    parent = call.parent
    if isinstance(parent, ExpressionStatement) and parent.expression is call:
        return parent
    return None


def is_assignable(node: Node | None) -> bool:
    """Identifiers and plain member chains that can sit left of ``=``."""
    if isinstance(node, Identifier):
        return True
    if isinstance(node, GenericNode) and node.kind == "this":
        return False
    if isinstance(node, MemberExpression):
        if node.optional:
            return False
        if node.computed and not isinstance(node.prop, (Identifier, NumberLiteral, StringLiteral)):
            return False
        return _is_reference_chain(node.object)
    return False


def _is_reference_chain(node: Node | None) -> bool:
    if isinstance(node, Identifier):
        return True
    if isinstance(node, GenericNode) and node.kind == "this":
        return True
    if isinstance(node, MemberExpression):
        return is_assignable(node)
    return False


def root_identifier(node: Node | None) -> Identifier | None:
    while isinstance(node, MemberExpression):
        node = node.object
    return node if isinstance(node, Identifier) else None


def reassignment_edits(
    context: RuleContext,
    call: CallExpression,
    receiver: Node,
    expression: str,
) -> list[TextEdit] | None:
    """Edits replacing ``call`` with ``receiver = expression``.

    A ``const`` receiver is re-declared with ``let`` in the same patch.
    Returns ``None`` when the receiver cannot be reassigned.
    """
    edits = [TextEdit(call.start, call.end, f"{receiver.text} = {expression}")]
    if not isinstance(receiver, Identifier):
        return edits
    binding = context.scopes.resolve(receiver)
    if binding is None:
        return edits
    if binding.kind in {"import", "function", "class", "using"}:
        return None
    if binding.kind == "const":
        declaration = binding.declaration
        if not isinstance(declaration, VariableDeclaration) or declaration.kind_end <= declaration.kind_start:
            return None
        edits.append(TextEdit(declaration.kind_start, declaration.kind_end, "let"))
    return edits


def is_pure(node: Node | None, scopes: ScopeManager) -> bool:
    """True when evaluating ``node`` provably has no side effects."""
    if node is None:
        return True
    if isinstance(node, (NumberLiteral, StringLiteral, Identifier)):
        return True
    if isinstance(node, GenericNode):
        return node.kind in _PURE_KEYWORDS
    if isinstance(node, TypeCast):
        return is_pure(node.expression, scopes)
    if isinstance(node, TemplateLiteral):
        return all(is_pure(part, scopes) for part in node.substitutions)
    if isinstance(node, UnaryExpression):
        return node.operator != "delete" and is_pure(node.argument, scopes)
    if isinstance(node, (BinaryExpression, LogicalExpression)):
        return is_pure(node.left, scopes) and is_pure(node.right, scopes)
    if isinstance(node, ConditionalExpression):
        return all(is_pure(part, scopes) for part in (node.test, node.consequent, node.alternate))
    if isinstance(node, MemberExpression):
        if node.computed and not is_pure(node.prop, scopes):
            return False
        return is_pure(node.object, scopes)
    if isinstance(node, CallExpression):
        return is_pure_math_call(node, scopes)
    return False


def is_pure_math_call(node: CallExpression, scopes: ScopeManager) -> bool:
    callee = node.callee
    if not isinstance(callee, MemberExpression) or callee.computed:
        return False
    if not isinstance(callee.object, Identifier) or callee.object.name != "Math":
        return False
    if scopes.is_shadowed("Math", node) or callee.property_name in _IMPURE_MATH:
        return False
    return all(is_pure(argument, scopes) for argument in node.arguments)


def mentions(node: Node | None, name: str) -> bool:
    """True when an identifier called ``name`` appears under ``node``."""
    if node is None:
        return False
    stack = [node]
    while stack:
        current = stack.pop()
        if isinstance(current, Identifier) and current.name == name:
            if not (isinstance(current.parent, MemberExpression) and current.parent.prop is current and not current.parent.computed):
                return True
        stack.extend(current.children())
    return False
