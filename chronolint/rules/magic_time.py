"""Score numeric literals that look like time durations.

Each literal (or static numeric binary expression) collects weighted
signals from its surroundings. A total at or above ``minimum_score`` is
reported with a fix that extracts the value into a named constant, and
with date-fns suggestions when the value is added to an epoch timestamp.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from chronolint.findings import Suggestion
from chronolint.options import MagicTimeOptions
from chronolint.rules.base import RuleContext, RuleRunBase
from chronolint.rules.hints import comment_hints, identifier_hints, is_constant_name
from chronolint.rules.number_words import generate_constant_name, name_from_variable
from chronolint.rules.units import DAY_MS, UNITS, adjust_function, normalize_unit
from chronolint.syntax.nodes import (
    BinaryExpression,
    CallExpression,
    GenericNode,
    Identifier,
    MemberExpression,
    NewExpression,
    Node,
    NumberLiteral,
    Property,
    TypeCast,
    UnaryExpression,
    VariableDeclaration,
    VariableDeclarator,
    is_static_member,
    static_number,
    top_level_statement,
    unwrap,
)
from chronolint.syntax.scope import Binding
from patcher.imports import DATE_FNS
from patcher.types import Patch, TextEdit

LOGGER = logging.getLogger(__name__)

RULE_ID = "no-magic-time"


@dataclass(frozen=True)
class TimeConstant:
    value: int
    label: str
    false_positive: bool = False


TIME_CONSTANTS = {
    entry.value: entry
    for entry in (
        TimeConstant(100, "100 milliseconds"),
        TimeConstant(200, "200 milliseconds"),
        TimeConstant(250, "250 milliseconds"),
        TimeConstant(300, "300 milliseconds"),
        TimeConstant(500, "500 milliseconds"),
        TimeConstant(750, "750 milliseconds"),
        TimeConstant(1000, "1 second in milliseconds"),
        TimeConstant(1500, "1.5 seconds in milliseconds"),
        TimeConstant(2000, "2 seconds in milliseconds"),
        TimeConstant(3000, "3 seconds in milliseconds"),
        TimeConstant(5000, "5 seconds in milliseconds"),
        TimeConstant(10_000, "10 seconds in milliseconds"),
        TimeConstant(15_000, "15 seconds in milliseconds"),
        TimeConstant(30_000, "30 seconds in milliseconds"),
        TimeConstant(60_000, "1 minute in milliseconds"),
        TimeConstant(90_000, "90 seconds in milliseconds"),
        TimeConstant(120_000, "2 minutes in milliseconds"),
        TimeConstant(180_000, "3 minutes in milliseconds"),
        TimeConstant(300_000, "5 minutes in milliseconds"),
        TimeConstant(600_000, "10 minutes in milliseconds"),
        TimeConstant(900_000, "15 minutes in milliseconds"),
        TimeConstant(1_800_000, "30 minutes in milliseconds"),
        TimeConstant(3_600_000, "1 hour in milliseconds"),
        TimeConstant(7_200_000, "2 hours in milliseconds"),
        TimeConstant(10_800_000, "3 hours in milliseconds"),
        TimeConstant(14_400_000, "4 hours in milliseconds"),
        TimeConstant(18_000_000, "5 hours in milliseconds"),
        TimeConstant(21_600_000, "6 hours in milliseconds"),
        TimeConstant(43_200_000, "12 hours in milliseconds"),
        TimeConstant(86_400_000, "1 day in milliseconds"),
        TimeConstant(172_800_000, "2 days in milliseconds"),
        TimeConstant(259_200_000, "3 days in milliseconds"),
        TimeConstant(604_800_000, "1 week in milliseconds"),
        TimeConstant(1_209_600_000, "2 weeks in milliseconds"),
        TimeConstant(2_592_000_000, "30 days in milliseconds"),
        TimeConstant(4_294_967_295, "uint32 max", false_positive=True),
        TimeConstant(2_147_483_647, "int32 max", false_positive=True),
        TimeConstant(65_535, "uint16 max", false_positive=True),
        TimeConstant(32_767, "int16 max", false_positive=True),
        TimeConstant(255, "uint8 max", false_positive=True),
        TimeConstant(127, "int8 max", false_positive=True),
    )
}

TIME_UNIT_FACTORS = frozenset({1000, 60, 24, 7, 365})
TIMER_SINKS = frozenset({"setTimeout", "setInterval"})
TIME_RELATED_VARIABLE_NAMES = (
    "timeout",
    "delay",
    "duration",
    "ttl",
    "interval",
    "expiry",
    "expiration",
    "wait",
    "debounce",
    "throttle",
)
TIMESTAMP_NAME_PARTS = ("timestamp", "time", "epoch")
BUCKETING_THRESHOLD = 60_000

_TYPE_CONTEXT_KINDS = frozenset(
    {
        "literal_type",
        "type_annotation",
        "type_alias_declaration",
        "type_arguments",
        "interface_declaration",
    }
)


def _date_fns_message(name: str) -> str:
    return f"Replace with date-fns {name} function"


def _suggestion_id(function_name: str) -> str:
    return "suggest" + function_name[0].upper() + function_name[1:]


MESSAGES = {
    "magicTimeConstant": (
        "Numeric literal appears to be a time constant (score: {{score}}): "
        "{{explanation}}. Consider using a named constant."
    ),
    "daylightSavingFootgun": (
        "Day-based time arithmetic is hazardous due to DST transitions. Consider using date-fns instead."
    ),
    "suggestNamedConstant": "Replace with a named constant",
}
for _unit in UNITS:
    for _verb in ("add", "sub"):
        _name = f"{_verb}{_unit[0].upper()}{_unit[1:]}"
        MESSAGES[_suggestion_id(_name)] = _date_fns_message(_name)


@dataclass
class Score:
    value: int = 0
    reasons: list[str] = field(default_factory=list)

    def add(self, weight: int, reason: str) -> None:
        self.value += weight
        self.reasons.append(f"{reason} ({weight:+d})")

    @property
    def explanation(self) -> str:
        return ", ".join(self.reasons)


@dataclass(frozen=True)
class EpochContext:
    """``anchor +/- value`` where the anchor reads an epoch timestamp."""

    binary: BinaryExpression
    anchor: CallExpression
    uses_now: bool


def _outer(node: Node) -> Node:
    """Climb through casts so parent checks see the real context."""
    while isinstance(node.parent, TypeCast):
        node = node.parent
    return node


def _direct_declarator(node: Node) -> VariableDeclarator | None:
    outer = _outer(node)
    parent = outer.parent
    if isinstance(parent, VariableDeclarator) and parent.init is outer:
        return parent
    return None


def _in_type_context(node: Node) -> bool:
    return any(
        isinstance(ancestor, GenericNode) and ancestor.kind in _TYPE_CONTEXT_KINDS
        for ancestor in node.ancestors()
    )


def _is_time_unit_factor(node: Node | None) -> bool:
    node = unwrap(node)
    return isinstance(node, NumberLiteral) and node.value in TIME_UNIT_FACTORS


def is_time_unit_multiplication(node: BinaryExpression) -> bool:
    if _is_time_unit_factor(node.left) or _is_time_unit_factor(node.right):
        return True
    for side in (unwrap(node.left), unwrap(node.right)):
        if isinstance(side, BinaryExpression) and side.operator == "*" and is_time_unit_multiplication(side):
            return True
    return False


def is_multiplication_chain(node: Node) -> bool:
    if isinstance(node, BinaryExpression) and node.operator == "*":
        return is_time_unit_multiplication(node)
    parent = _outer(node).parent
    if isinstance(parent, BinaryExpression) and parent.operator == "*":
        return is_time_unit_multiplication(parent)
    return False


class _MagicTimeRun(RuleRunBase):
    def __init__(self, context: RuleContext) -> None:
        super().__init__(context)
        self.options: MagicTimeOptions = context.options
        self.weights = self.options.weights
        self.ignore_values = set(self.options.ignore_values)
        self.ignore_patterns = [re.compile(pattern) for pattern in self.options.ignore_identifiers]
        self.extra_sinks = set(self.options.extra_sinks)
        self.reported: list[Node] = []
        self.allocated: dict[str, float] = {}
        self.handlers = {
            NumberLiteral: self.on_literal,
            BinaryExpression: self.on_binary,
            Identifier: self.on_identifier,
        }

    # -- context ---------------------------------------------------------

    def is_date_now(self, node: Node | None) -> bool:
        node = unwrap(node)
        return (
            isinstance(node, CallExpression)
            and not node.arguments
            and is_static_member(node.callee, "Date", "now")
            and not self.context.scopes.is_shadowed("Date", node)
        )

    @staticmethod
    def is_get_time(node: Node | None) -> bool:
        node = unwrap(node)
        return (
            isinstance(node, CallExpression)
            and isinstance(node.callee, MemberExpression)
            and node.callee.property_name == "getTime"
            and not node.arguments
        )

    def epoch_context(self, node: Node) -> EpochContext | None:
        child = node
        current = node.parent
        while isinstance(current, (BinaryExpression, TypeCast, UnaryExpression)):
            if isinstance(current, BinaryExpression) and current.operator in {"+", "-"}:
                other = unwrap(current.right if current.left is child else current.left)
                if self.is_date_now(other):
                    return EpochContext(current, other, uses_now=True)
                if self.is_get_time(other):
                    return EpochContext(current, other, uses_now=False)
            child = current
            current = current.parent
        return None

    def sink_kind(self, node: Node) -> str | None:
        """``timer``, ``custom`` or ``abort`` when ``node`` is a direct sink argument."""
        outer = _outer(node)
        call = outer.parent
        if not isinstance(call, CallExpression) or not any(arg is outer for arg in call.arguments):
            return None
        callee = call.callee
        if is_static_member(callee, "AbortSignal", "timeout"):
            return "abort"
        if isinstance(callee, Identifier):
            if callee.name in TIMER_SINKS:
                return "timer"
            if callee.name in self.extra_sinks:
                return "custom"
        if isinstance(callee, MemberExpression) and callee.property_name in self.extra_sinks:
            return "custom"
        return None

    def _sink_signal(self, score: Score, kind: str | None) -> None:
        if kind == "abort":
            score.add(self.weights.sink, "used in AbortSignal timeout")
        elif kind == "timer":
            score.add(self.weights.sink, "used in timer sink")
        elif kind == "custom":
            score.add(self.weights.sink, "used in custom sink")

    def is_suppressed(self, node: Node) -> bool:
        return any(done is not node and done.contains(node) for done in self.reported)

    def is_ignored_name(self, name: str | None) -> bool:
        return bool(name) and any(pattern.search(name) for pattern in self.ignore_patterns)

    # -- scoring ---------------------------------------------------------

    def score(self, node: Node, value: float, sink: str | None = None) -> Score:
        score = Score()
        if value in self.ignore_values:
            score.reasons = ["explicitly ignored"]
            return score

        self._sink_signal(score, sink if sink is not None else self.sink_kind(node))
        if self.epoch_context(node) is not None:
            score.add(self.weights.epoch_arithmetic, "arithmetic with epoch time")
        chain = is_multiplication_chain(node)
        if chain:
            score.add(self.weights.multiplication_chain, "multiplication chain with time units")
        for hint in identifier_hints(node):
            score.add(self.weights.identifier_hint, f"identifier hint '{hint}'")
        program = self.context.program
        line = program.line_of(max(node.start, node.end - 1))
        for hint in comment_hints(node, program.comments, line):
            score.add(self.weights.comment_hint, f"comment hint '{hint}'")
        entry = TIME_CONSTANTS.get(value)
        if entry is not None and not chain:
            if entry.false_positive:
                score.add(self.weights.false_positive, entry.label)
            else:
                score.add(self.weights.exact_value, f"exact unit: {entry.label}")
        return score

    # -- handlers --------------------------------------------------------

    def on_binary(self, node: BinaryExpression) -> None:
        value = static_number(node)
        if value is None or self.is_suppressed(node):
            return
        parent = _outer(node).parent
        if isinstance(parent, BinaryExpression) and static_number(parent) is not None:
            return
        if self._skip_declared(node):
            return
        self.evaluate(node, value)

    def on_literal(self, node: NumberLiteral) -> None:
        value = node.value
        if value is None or self.is_suppressed(node):
            return
        parent = _outer(node).parent
        if isinstance(parent, Property) and parent.key is node:
            return
        if _in_type_context(node) or self._skip_declared(node):
            return

        if isinstance(parent, BinaryExpression) and value not in self.ignore_values:
            if self._division_or_modulo(node, parent, value):
                return
        self.evaluate(node, value)

    def on_identifier(self, node: Identifier) -> None:
        sink = self.sink_kind(node)
        if sink is None or self.is_ignored_name(node.name):
            return
        binding = self.context.scopes.resolve(node)
        if binding is None or binding.identifier is node:
            return
        literal = unwrap(binding.init)
        if not isinstance(literal, NumberLiteral) or literal.value is None:
            return
        if is_constant_name(binding.name) or self.is_ignored_name(binding.name):
            return
        if literal.value in self.ignore_values or self._was_reported(literal):
            return
        score = self.score(literal, literal.value)
        self._sink_signal(score, sink)
        if score.value < self.options.minimum_score:
            return
        fix = self.rename_patch(binding)
        self.report(
            self.context.diagnostic(
                node,
                "magicTimeConstant",
                data={"score": str(score.value), "explanation": score.explanation},
                fix=fix,
            )
        )

    # -- special cases ---------------------------------------------------

    def _skip_declared(self, node: Node) -> bool:
        declarator = _direct_declarator(node)
        if declarator is None:
            return False
        name = declarator.name
        if self.is_ignored_name(name):
            return True
        declaration = declarator.parent
        return (
            name is not None
            and is_constant_name(name)
            and isinstance(declaration, VariableDeclaration)
            and declaration.kind == "const"
        )

    def _division_or_modulo(self, node: NumberLiteral, parent: BinaryExpression, value: float) -> bool:
        """Handle ``now / 1000``, ``ms / 1000`` and ``ts % bucket``; True when done."""
        right = unwrap(parent.right)
        left = unwrap(parent.left)

        if parent.operator == "/" and right is node and value == 1000 and self.is_date_now(left):
            score = Score()
            score.add(self.weights.epoch_arithmetic, "arithmetic with epoch time")
            score.add(self.weights.seconds_conversion, "seconds/milliseconds conversion")
            self._report_score(node, value, score)
            return True

        if (
            parent.operator == "/"
            and left is node
            and isinstance(right, NumberLiteral)
            and right.value == 1000
            and value >= 1000
        ):
            score = self.score(node, value)
            if score.value >= self.options.minimum_score:
                self._report_score(node, value, score)
                self.reported.append(parent)
                return True
            return False

        if parent.operator == "%" and right is node and value >= BUCKETING_THRESHOLD:
            score = Score()
            if isinstance(left, Identifier):
                lowered = left.name.lower()
                if any(part in lowered for part in TIMESTAMP_NAME_PARTS):
                    score.add(self.weights.epoch_arithmetic, "arithmetic with timestamp")
            elif self.is_date_now(left):
                score.add(self.weights.epoch_arithmetic, "arithmetic with epoch time")
            grand = _outer(parent).parent
            if isinstance(grand, BinaryExpression) and grand.operator == "-":
                score.add(self.weights.bucketing, "bucketing pattern")
            entry = TIME_CONSTANTS.get(value)
            if entry is not None and not entry.false_positive:
                score.add(self.weights.exact_value, f"exact unit: {entry.label}")
            if score.value >= self.options.minimum_score:
                self._report_score(node, value, score)
                return True
        return False

    def evaluate(self, node: Node, value: float) -> None:
        if value in self.ignore_values:
            return
        epoch = self.epoch_context(node)
        if value >= DAY_MS and epoch is not None:
            self._report_footgun(node, value, epoch)
            return
        score = self.score(node, value)
        if score.value < self.options.minimum_score:
            return
        self._report_score(node, value, score)

    # -- reporting -------------------------------------------------------

    def _was_reported(self, node: Node) -> bool:
        return any(done.contains(node) for done in self.reported)

    def _report_score(self, node: Node, value: float, score: Score) -> None:
        self.reported.append(node)
        LOGGER.debug("%s scored %d at offset %d", node.text, score.value, node.start)
        epoch = self.epoch_context(node)
        suggestions: list[Suggestion] = []
        if epoch is not None:
            suggestion = self.date_fns_suggestion(node, value, epoch)
            if suggestion is not None:
                suggestions.append(suggestion)
        fix = self.named_constant_patch(node, value, use_variable=epoch is None)
        self.report(
            self.context.diagnostic(
                node,
                "magicTimeConstant",
                data={"score": str(score.value), "explanation": score.explanation},
                fix=fix,
                suggestions=suggestions,
            )
        )

    def _report_footgun(self, node: Node, value: float, epoch: EpochContext) -> None:
        self.reported.append(node)
        suggestions: list[Suggestion] = []
        if epoch.uses_now:
            patch = self.extraction_patch(node, value, use_variable=False)
            if patch is not None:
                suggestions.append(self.context.suggestion("suggestNamedConstant", patch))
        else:
            suggestion = self.date_fns_suggestion(node, value, epoch)
            if suggestion is not None:
                suggestions.append(suggestion)
        self.report(self.context.diagnostic(node, "daylightSavingFootgun", suggestions=suggestions))

    # -- fixes -----------------------------------------------------------

    def named_constant_patch(self, node: Node, value: float, use_variable: bool) -> Patch | None:
        declarator = _direct_declarator(node)
        if use_variable and declarator is not None:
            patch = self.inline_rename_patch(declarator)
            if patch is not None:
                return patch
        return self.extraction_patch(node, value, use_variable)

    def inline_rename_patch(self, declarator: VariableDeclarator) -> Patch | None:
        name = declarator.name
        if not name or not any(word in name.lower() for word in TIME_RELATED_VARIABLE_NAMES):
            return None
        binding = self.context.scopes.resolve(declarator.id) if isinstance(declarator.id, Identifier) else None
        if binding is None:
            return None
        return self.rename_patch(binding)

    def rename_patch(self, binding: Binding) -> Patch | None:
        """Rename a ``const`` binding and its references to a constant name."""
        declaration = binding.declaration
        if binding.kind != "const" or not isinstance(declaration, VariableDeclaration) or declaration.exported:
            return None
        new_name = name_from_variable(binding.name)
        if new_name == binding.name or not self._name_is_free(new_name):
            return None
        edits = [TextEdit(binding.identifier.start, binding.identifier.end, new_name)]
        for reference in binding.references:
            parent = reference.identifier.parent
            if isinstance(parent, Property) and parent.shorthand:
                return None
            edits.append(TextEdit(reference.identifier.start, reference.identifier.end, new_name))
        self.context.allocated_names.add(new_name)
        return self.context.patch(edits)

    def _name_is_free(self, name: str) -> bool:
        scopes = self.context.scopes
        return (
            name not in scopes.declared_names()
            and name not in scopes.referenced_names()
            and name not in self.context.allocated_names
        )

    def _existing_constant(self, name: str, value: float, node: Node, statement: Node) -> bool:
        binding = self.context.scopes.module_scope.bindings.get(name)
        return (
            binding is not None
            and binding.kind == "const"
            and static_number(binding.init) == value
            and self.context.scopes.lookup(name, node) is binding
            and binding.identifier.end <= statement.start
        )

    def extraction_patch(self, node: Node, value: float, use_variable: bool) -> Patch | None:
        statement = top_level_statement(node)
        if statement is None:
            return None
        entry = TIME_CONSTANTS.get(value)
        label = entry.label if entry is not None and not entry.false_positive else None
        variable = None
        if use_variable:
            for ancestor in node.ancestors():
                if isinstance(ancestor, VariableDeclarator):
                    variable = ancestor.name
                    break
            if variable and is_constant_name(variable):
                variable = None
        base = generate_constant_name(label, variable)

        if self._existing_constant(base, value, node, statement):
            return self.context.patch([TextEdit(node.start, node.end, base)])
        if self.allocated.get(base) == value:
            # Same constant already being extracted this pass; the next pass reuses it.
            return None

        name = base
        suffix = 2
        while not self._name_is_free(name):
            if self._existing_constant(name, value, node, statement):
                return self.context.patch([TextEdit(node.start, node.end, name)])
            name = f"{base}_{suffix}"
            suffix += 1
        self.allocated[name] = value
        self.context.allocated_names.add(name)

        indent = self.context.indent_at(statement.start)
        declaration = f"const {name} = {node.text};\n{indent}"
        return self.context.patch(
            [
                TextEdit.insert(statement.start, declaration),
                TextEdit(node.start, node.end, name),
            ]
        )

    def date_fns_suggestion(self, node: Node, value: float, epoch: EpochContext) -> Suggestion | None:
        if not float(value).is_integer():
            return None
        binary = epoch.binary
        on_right = unwrap(binary.right) is node
        if not on_right and unwrap(binary.left) is not node:
            return None
        delta = int(value)
        if binary.operator == "-":
            if not on_right:
                return None
            delta = -delta
        if delta == 0:
            return None
        amount, unit = normalize_unit(delta, "milliseconds")
        function, count = adjust_function(amount, unit)

        if epoch.uses_now:
            base = epoch.anchor.text
        else:
            callee = epoch.anchor.callee
            if not isinstance(callee, MemberExpression) or callee.object is None:
                return None
            base = callee.object.text

        wrapper = _outer(binary).parent
        if (
            isinstance(wrapper, NewExpression)
            and len(wrapper.arguments) == 1
            and wrapper.arguments[0] is _outer(binary)
            and self._is_date_constructor(wrapper)
        ):
            target: Node = wrapper
            replacement = f"{function}({base}, {count})"
        else:
            target = binary
            replacement = f"{function}({base}, {count}).getTime()"

        if not self.context.names_available([function], target):
            return None
        patch = self.context.patch(
            [TextEdit(target.start, target.end, replacement)],
            imports={DATE_FNS: [function]},
        )
        return self.context.suggestion(_suggestion_id(function), patch)

    def _is_date_constructor(self, node: NewExpression) -> bool:
        callee = node.callee
        if isinstance(callee, Identifier) and callee.name == "Date":
            return not self.context.scopes.is_shadowed("Date", node)
        return is_static_member(callee, "globalThis", "Date")


class MagicTimeRule:
    rule_id = RULE_ID
    description = "Disallow magic numbers likely to represent time constants"
    default_severity = "warn"
    messages = MESSAGES
    options_model = MagicTimeOptions

    def create(self, context: RuleContext) -> _MagicTimeRun:
        return _MagicTimeRun(context)
