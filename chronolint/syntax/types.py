"""Best-effort expression typing.

Every query answers with ``Known(kind)`` or ``Unknown``; no oracle call is
allowed to raise into a rule.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, Union

from chronolint.syntax.nodes import (
    BinaryExpression,
    CallExpression,
    ClassNode,
    Function,
    Identifier,
    MemberExpression,
    NewExpression,
    Node,
    NumberLiteral,
    ObjectExpression,
    StringLiteral,
    TemplateLiteral,
    TypeCast,
    UnaryExpression,
    is_static_member,
)
from chronolint.syntax.scope import Binding, ScopeManager

LOGGER = logging.getLogger(__name__)

DATE_FNS_MODULES = {"date-fns", "@date-fns/tz", "@date-fns/utc"}
_DATE_RETURNING_PREFIXES = (
    "add",
    "sub",
    "startOf",
    "endOf",
    "set",
    "lastDayOf",
    "next",
    "previous",
    "roundTo",
)
_DATE_RETURNING_NAMES = {
    "toDate",
    "parse",
    "parseISO",
    "parseJSON",
    "fromUnixTime",
    "max",
    "min",
    "clamp",
    "closestTo",
    "constructFrom",
    "constructNow",
}
_NUMERIC_METHODS = {
    "getTime",
    "valueOf",
    "getFullYear",
    "getMonth",
    "getDate",
    "getDay",
    "getHours",
    "getMinutes",
    "getSeconds",
    "getMilliseconds",
    "getTimezoneOffset",
}
_NAME_TOKEN_RE = re.compile(r"[A-Z]?[a-z]+|[A-Z]+(?![a-z])|\d+")
_MAX_DEPTH = 8


class TypeKind(str, Enum):
    NUMERIC = "numeric"
    STRING = "string"
    DATE = "date"
    ANY = "any"
    OTHER = "other"


@dataclass(frozen=True)
class Known:
    kind: TypeKind


@dataclass(frozen=True)
class Unknown:
    reason: str = ""


TypeResult = Union[Known, Unknown]
UNKNOWN = Unknown()


class TypeOracle(Protocol):
    def classify(self, node: Node) -> TypeResult: ...


def classify_annotation(annotation: str | None) -> TypeResult:
    if not annotation:
        return UNKNOWN
    parts = [part.strip() for part in annotation.split("|")]
    parts = [part for part in parts if part and part not in {"null", "undefined"}]
    if not parts:
        return UNKNOWN
    if any(part in {"any", "unknown"} for part in parts):
        return Known(TypeKind.ANY)
    if all(part in {"Date", "TZDate", "Readonly<Date>"} for part in parts):
        return Known(TypeKind.DATE)
    if all(part == "number" or part.isdigit() for part in parts):
        return Known(TypeKind.NUMERIC)
    if all(part == "string" or part[:1] in {"'", '"'} for part in parts):
        return Known(TypeKind.STRING)
    return Known(TypeKind.OTHER)


def name_tokens(name: str) -> list[str]:
    """Split camelCase and snake_case names into lowercase tokens."""
    tokens: list[str] = []
    for chunk in re.split(r"[_$\d]+", name):
        tokens.extend(match.lower() for match in _NAME_TOKEN_RE.findall(chunk))
    return tokens


def classify_name(name: str) -> TypeResult:
    if "date" in name_tokens(name):
        return Known(TypeKind.DATE)
    return UNKNOWN


class HeuristicTypeOracle:
    """Classify expressions from literals, annotations and initializers."""

    def __init__(self, scopes: ScopeManager) -> None:
        self.scopes = scopes

    def classify(self, node: Node) -> TypeResult:
        return self._classify(node, 0)

    def _classify(self, node: Node | None, depth: int) -> TypeResult:
        if node is None or depth > _MAX_DEPTH:
            return UNKNOWN
        if isinstance(node, NumberLiteral):
            return Known(TypeKind.NUMERIC)
        if isinstance(node, (StringLiteral, TemplateLiteral)):
            return Known(TypeKind.STRING)
        if isinstance(node, TypeCast):
            result = classify_annotation(node.annotation)
            if isinstance(result, Known):
                return result
            return self._classify(node.expression, depth + 1)
        if isinstance(node, NewExpression):
            return Known(TypeKind.DATE) if self._is_date_constructor(node) else Known(TypeKind.OTHER)
        if isinstance(node, (ObjectExpression, Function, ClassNode)):
            return Known(TypeKind.OTHER)
        if isinstance(node, UnaryExpression) and node.operator in {"+", "-", "~"}:
            return Known(TypeKind.NUMERIC)
        if isinstance(node, BinaryExpression) and node.operator in {"-", "*", "/", "%", "**"}:
            return Known(TypeKind.NUMERIC)
        if isinstance(node, CallExpression):
            return self._classify_call(node)
        if isinstance(node, Identifier):
            return self._classify_identifier(node, depth)
        if isinstance(node, MemberExpression):
            name = node.property_name
            return classify_name(name) if name else UNKNOWN
        return UNKNOWN

    def _is_date_constructor(self, node: NewExpression) -> bool:
        callee = node.callee
        if isinstance(callee, Identifier) and callee.name == "Date":
            return not self.scopes.is_shadowed("Date", node)
        if is_static_member(callee, "globalThis", "Date"):
            return not self.scopes.is_shadowed("globalThis", node)
        return False

    def _classify_call(self, node: CallExpression) -> TypeResult:
        callee = node.callee
        if is_static_member(callee, "Date", "now") and not self.scopes.is_shadowed("Date", node):
            return Known(TypeKind.NUMERIC)
        if isinstance(callee, MemberExpression) and callee.property_name in _NUMERIC_METHODS:
            return Known(TypeKind.NUMERIC)
        if isinstance(callee, Identifier):
            binding = self.scopes.resolve(callee)
            if binding is not None and binding.import_source in DATE_FNS_MODULES:
                imported = binding.imported_name or ""
                if imported in _DATE_RETURNING_NAMES or imported.startswith(_DATE_RETURNING_PREFIXES):
                    return Known(TypeKind.DATE)
        return UNKNOWN

    def _classify_identifier(self, node: Identifier, depth: int) -> TypeResult:
        binding = self.scopes.resolve(node)
        if binding is None:
            return classify_name(node.name)
        return self._classify_binding(binding, depth)

    def _classify_binding(self, binding: Binding, depth: int) -> TypeResult:
        result = classify_annotation(binding.annotation)
        if isinstance(result, Known):
            return result
        if binding.kind in {"function", "class"}:
            return Known(TypeKind.OTHER)
        if binding.kind == "import":
            return UNKNOWN
        init = binding.init
        if init is not None:
            result = self._classify(init, depth + 1)
            if isinstance(result, Known):
                return result
        return classify_name(binding.name)


class SafeTypeOracle:
    """Consult an optional external oracle, then fall back to heuristics."""

    def __init__(self, fallback: HeuristicTypeOracle, primary: TypeOracle | None = None) -> None:
        self.fallback = fallback
        self.primary = primary

    def classify(self, node: Node) -> TypeResult:
        if self.primary is not None:
            try:
                result = self.primary.classify(node)
            except Exception as exc:
                LOGGER.debug("type oracle failed on %r: %s", node.text[:40], exc)
                result = Unknown(reason=str(exc))
            if isinstance(result, Known):
                return result
        try:
            return self.fallback.classify(node)
        except RecursionError:
            return Unknown(reason="expression too deep")

    def is_date(self, node: Node) -> bool:
        result = self.classify(node)
        return isinstance(result, Known) and result.kind is TypeKind.DATE

    def is_known_non_date(self, node: Node) -> bool:
        result = self.classify(node)
        return isinstance(result, Known) and result.kind is not TypeKind.DATE
