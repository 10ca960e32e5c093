"""Manual calendar boundary math rewritten to date-fns boundary helpers.

Four surface forms are recognized: built-in ``Date`` setters with boundary
literals, date-fns ``set(d, {...})`` objects, nested date-fns setter chains
and a handful of ``new Date(...)`` idioms. Whether an end-of-day form is
fixed or only suggested depends on ``end_of_day_heuristic``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from chronolint.findings import Suggestion
from chronolint.options import BoundaryMathOptions
from chronolint.rules.base import RuleContext, RuleRunBase
from chronolint.rules.rewrite import is_assignable, reassignment_edits, statement_of_call
from chronolint.rules.units import DAY_MS
from chronolint.syntax.nodes import (
    BinaryExpression,
    CallExpression,
    ConditionalExpression,
    GenericNode,
    Identifier,
    LogicalExpression,
    MemberExpression,
    NewExpression,
    Node,
    NumberLiteral,
    ObjectExpression,
    Property,
    UnaryExpression,
    unwrap,
)
from patcher.imports import DATE_FNS
from patcher.types import Patch, TextEdit

LOGGER = logging.getLogger(__name__)

RULE_ID = "no-plain-boundary-math"

BOUNDARY_HELPERS = (
    "startOfDay",
    "endOfDay",
    "startOfHour",
    "startOfMinute",
    "startOfSecond",
    "startOfWeek",
    "startOfMonth",
    "endOfMonth",
    "startOfYear",
    "endOfYear",
    "addDays",
)

MESSAGES = {
    "useStartOfDay": "Use startOfDay() instead of manually setting to start of day",
    "useEndOfDay": "Use endOfDay() instead of manually setting to end of day",
    "useStartOfWeek": "Use startOfWeek() instead of manual week start calculation",
    "useStartOfMonth": "Use startOfMonth() instead of manually setting to start of month",
    "useEndOfMonth": "Use endOfMonth() instead of day 0 trick for end of month",
    "useStartOfYear": "Use startOfYear() instead of manually setting to start of year",
    "useEndOfYear": "Use endOfYear() instead of manually setting to end of year",
    "useStartOfHour": "Use startOfHour() instead of manually zeroing minutes/seconds",
    "useStartOfMinute": "Use startOfMinute() instead of manually zeroing seconds",
    "useStartOfSecond": "Use startOfSecond() instead of manually zeroing milliseconds",
    "useAddDays": "Use addDays() instead of millisecond arithmetic",
    "possibleBoundary": "This may be a boundary calculation. Consider using date-fns helpers",
    "nearEndOfDay": "This appears to be near end-of-day. Consider using endOfDay()",
    "complexBoundaryExpression": "Complex boundary expression detected. Consider date-fns helpers",
    "suggestStartOrEnd": "Replace with conditional using startOfDay/endOfDay",
}
MESSAGES.update(
    {f"suggest{name[0].upper()}{name[1:]}": f"Replace with {name}()" for name in BOUNDARY_HELPERS}
)

TIME_FIELDS = ("hours", "minutes", "seconds", "milliseconds")
CALENDAR_FIELDS = ("year", "month", "date")
SET_OBJECT_KEYS = frozenset(CALENDAR_FIELDS + TIME_FIELDS)

BUILTIN_SETTER_FIELDS = {
    "setHours": TIME_FIELDS,
    "setMinutes": TIME_FIELDS[1:],
    "setSeconds": TIME_FIELDS[2:],
    "setMilliseconds": TIME_FIELDS[3:],
}

CHAIN_SETTER_FIELDS = {
    "setHours": "hours",
    "setMinutes": "minutes",
    "setSeconds": "seconds",
    "setMilliseconds": "milliseconds",
}

Fields = dict[str, int]


class Verdict(str, Enum):
    FIX = "fix"
    SUGGEST = "suggest"


@dataclass(frozen=True)
class Boundary:
    helper: str
    verdict: Verdict = Verdict.FIX

    @property
    def message_id(self) -> str:
        if self.verdict is Verdict.SUGGEST:
            return "nearEndOfDay"
        return f"use{self.helper[0].upper()}{self.helper[1:]}"

    @property
    def suggestion_id(self) -> str:
        return f"suggest{self.helper[0].upper()}{self.helper[1:]}"


def _integer(node: Node | None) -> int | None:
    node = unwrap(node)
    if isinstance(node, NumberLiteral) and node.value is not None and float(node.value).is_integer():
        return int(node.value)
    return None


def _has_spread(arguments: list[Node]) -> bool:
    return any(isinstance(arg, GenericNode) and arg.kind == "spread_element" for arg in arguments)


def end_of_day_verdict(fields: Fields, heuristic: str) -> Verdict | None:
    """How confidently ``fields`` describe the last instant of a day.

    ``strict`` only fixes 23:59:59.999, ``lenient`` also fixes 23:59:59 with
    zero or absent milliseconds and ``aggressive`` fixes anything from 23:58.
    Other 23:58+ values are suggestions.
    """
    hours = fields.get("hours")
    minutes = fields.get("minutes")
    seconds = fields.get("seconds")
    milliseconds = fields.get("milliseconds")
    if hours != 23 or minutes is None or minutes < 58:
        return None
    if minutes == 59 and seconds == 59 and milliseconds == 999:
        return Verdict.FIX
    if heuristic != "strict" and minutes == 59 and seconds == 59 and milliseconds in (0, None):
        return Verdict.FIX
    if heuristic == "aggressive":
        return Verdict.FIX
    return Verdict.SUGGEST


def time_of_day_boundary(fields: Fields, heuristic: str) -> Boundary | None:
    """Boundary described by time-of-day fields; absent keys are untouched."""
    present = tuple(name for name in TIME_FIELDS if name in fields)
    if present and all(fields[name] == 0 for name in present):
        if present == TIME_FIELDS:
            return Boundary("startOfDay")
        if present == TIME_FIELDS[1:]:
            return Boundary("startOfHour")
        if present == TIME_FIELDS[2:]:
            return Boundary("startOfMinute")
        if present == TIME_FIELDS[3:]:
            return Boundary("startOfSecond")
        return None
    verdict = end_of_day_verdict(fields, heuristic)
    if verdict is not None:
        return Boundary("endOfDay", verdict)
    return None


def calendar_boundary(fields: Fields, heuristic: str) -> Boundary | None:
    """Match a ``set`` object, month forms before year forms before time of day."""
    if "year" in fields:
        return None
    midnight = all(fields.get(name) == 0 for name in TIME_FIELDS)
    if fields.get("date") == 1 and midnight and "month" not in fields:
        return Boundary("startOfMonth")
    if fields.get("month") == 0 and fields.get("date") == 1 and midnight:
        return Boundary("startOfYear")
    if (
        fields.get("month") == 11
        and fields.get("date") == 31
        and [fields.get(name) for name in TIME_FIELDS] == [23, 59, 59, 999]
    ):
        return Boundary("endOfYear")
    if any(name in fields for name in CALENDAR_FIELDS):
        return None
    return time_of_day_boundary(fields, heuristic)


def set_object_fields(node: Node | None) -> Fields | None:
    """Field map of an object made only of known keys with integer literals."""
    node = unwrap(node)
    if not isinstance(node, ObjectExpression) or not node.properties:
        return None
    fields: Fields = {}
    for prop in node.properties:
        if not isinstance(prop, Property) or prop.computed or prop.shorthand:
            return None
        key = prop.key_name
        value = _integer(prop.value)
        if key not in SET_OBJECT_KEYS or value is None or key in fields:
            return None
        fields[key] = value
    return fields


def _is_fresh_date(node: Node | None) -> bool:
    node = unwrap(node)
    return isinstance(node, NewExpression) and isinstance(node.callee, Identifier) and node.callee.name == "Date"


def _is_optional_chain(node: Node | None) -> bool:
    node = unwrap(node)
    while isinstance(node, (MemberExpression, CallExpression)):
        if node.optional:
            return True
        node = node.object if isinstance(node, MemberExpression) else node.callee
    return False


def _is_boundary_ternary(node: Node | None) -> bool:
    node = unwrap(node)
    if not isinstance(node, ConditionalExpression):
        return False
    return _integer(node.consequent) in (0, 23) or _integer(node.alternate) in (0, 23)


def _branch_helper(branch: Node | None) -> str:
    return "endOfDay" if _integer(branch) == 23 else "startOfDay"


class _BoundaryMathRun(RuleRunBase):
    def __init__(self, context: RuleContext) -> None:
        super().__init__(context)
        self.options: BoundaryMathOptions = context.options
        self.handlers = {
            CallExpression: self.on_call,
            NewExpression: self.on_new,
        }

    # date-fns imports

    def date_fns_name(self, callee: Node | None) -> str | None:
        """Name exported by date-fns that ``callee`` is bound to, if any."""
        if not isinstance(callee, Identifier):
            return None
        binding = self.context.scopes.resolve(callee)
        if binding is None or binding.import_source != DATE_FNS:
            return None
        return binding.imported_name

    # patches

    def replace_patch(self, node: Node, text: str, names: list[str]) -> Patch | None:
        if not self.context.names_available(names, node):
            return None
        return self.context.patch([TextEdit(node.start, node.end, text)], imports={DATE_FNS: names})

    def report_replacement(self, node: Node, boundary: Boundary, date_text: str) -> None:
        """Report a pure-expression form that can be replaced outright."""
        patch = self.replace_patch(node, f"{boundary.helper}({date_text})", [boundary.helper])
        if boundary.verdict is Verdict.SUGGEST:
            self.report_suggested(node, boundary.message_id, boundary.suggestion_id, patch)
            return
        self.report(self.context.diagnostic(node, boundary.message_id, fix=patch))

    def report_suggested(self, node: Node, message_id: str, suggestion_id: str, patch: Patch | None) -> None:
        suggestions: list[Suggestion] = []
        if patch is not None and self.options.suggest_only_for_ambiguity:
            suggestions.append(self.context.suggestion(suggestion_id, patch))
        self.report(self.context.diagnostic(node, message_id, suggestions=suggestions))

    def setter_patch(
        self,
        call: CallExpression,
        receiver: Node,
        build: Callable[[str], str],
        names: list[str],
    ) -> tuple[Patch | None, bool]:
        """Patch replacing a built-in setter call and whether it is safe to autofix.

        A statement becomes ``recv = helper(recv)``. Where the numeric
        return value is used the call becomes ``+helper(recv)``, which is
        only equivalent when the receiver is a fresh ``new Date(...)``.
        """
        if not self.context.names_available(names, call):
            return None, False
        imports = {DATE_FNS: names}
        if statement_of_call(call) is not None:
            if not is_assignable(receiver):
                return None, False
            edits = reassignment_edits(self.context, call, receiver, build(""))
            if edits is None:
                return None, False
            return self.context.patch(edits, imports=imports), True
        patch = self.context.patch([TextEdit(call.start, call.end, build("+"))], imports=imports)
        return patch, _is_fresh_date(receiver)

    def report_setter(self, call: CallExpression, receiver: Node, boundary: Boundary) -> None:
        recv = receiver.text
        patch, safe = self.setter_patch(
            call, receiver, lambda prefix: f"{prefix}{boundary.helper}({recv})", [boundary.helper]
        )
        if boundary.verdict is Verdict.FIX and safe:
            self.report(self.context.diagnostic(call, boundary.message_id, fix=patch))
            return
        suggestions = []
        if patch is not None:
            suggestions.append(self.context.suggestion(boundary.suggestion_id, patch))
        self.report(self.context.diagnostic(call, boundary.message_id, suggestions=suggestions))

    # built-in setters

    def on_call(self, node: CallExpression) -> None:
        callee = node.callee
        if isinstance(callee, MemberExpression):
            self.check_builtin_setter(node, callee)
            return
        name = self.date_fns_name(callee)
        if name == "set":
            self.check_set_object(node)
        elif name in CHAIN_SETTER_FIELDS:
            self.check_setter_chain(node)

    def check_builtin_setter(self, node: CallExpression, callee: MemberExpression) -> None:
        method = callee.property_name
        if method not in BUILTIN_SETTER_FIELDS or callee.computed or node.optional or callee.optional:
            return
        receiver = unwrap(callee.object)
        if receiver is None or self.context.types.is_known_non_date(receiver):
            return
        arguments = node.arguments
        names = BUILTIN_SETTER_FIELDS[method]
        if not arguments or len(arguments) > len(names) or _has_spread(arguments):
            return

        values = [_integer(arg) for arg in arguments]
        if all(value is not None for value in values):
            fields = dict(zip(names, values))
            boundary = self.builtin_boundary(method, fields)
            if boundary is not None:
                if boundary.verdict is Verdict.SUGGEST and not self.options.suggest_only_for_ambiguity:
                    self.report(self.context.diagnostic(node, boundary.message_id))
                    return
                self.report_setter(node, receiver, boundary)
            return

        if method == "setHours" and len(arguments) == 4 and values[0] is None and values[1:] == [0, 0, 0]:
            self.check_ambiguous_hour(node, receiver, unwrap(arguments[0]))

    def builtin_boundary(self, method: str, fields: Fields) -> Boundary | None:
        heuristic = self.options.end_of_day_heuristic
        # Built-in setters only zero a start boundary when every field is given.
        if len(fields) == len(BUILTIN_SETTER_FIELDS[method]) and all(v == 0 for v in fields.values()):
            return time_of_day_boundary(fields, heuristic)
        if method == "setHours":
            verdict = end_of_day_verdict(fields, heuristic)
            if verdict is not None:
                return Boundary("endOfDay", verdict)
        return None

    def check_ambiguous_hour(self, node: CallExpression, receiver: Node, hours: Node | None) -> None:
        if hours is None or isinstance(hours, LogicalExpression) or _is_optional_chain(hours):
            return
        recv = receiver.text
        if _is_boundary_ternary(hours):
            test = hours.test.text
            when_true, when_false = (_branch_helper(branch) for branch in (hours.consequent, hours.alternate))

            def build(prefix: str) -> str:
                expression = f"{test} ? {prefix}{when_true}({recv}) : {prefix}{when_false}({recv})"
                return f"({expression})" if prefix else expression

            message_id, suggestion_id = "complexBoundaryExpression", "suggestStartOrEnd"
            names = sorted({when_true, when_false})
        else:

            def build(prefix: str) -> str:
                return f"{prefix}startOfDay({recv})"

            message_id, suggestion_id = "possibleBoundary", "suggestStartOfDay"
            names = ["startOfDay"]

        patch, _ = self.setter_patch(node, receiver, build, names)
        self.report_suggested(node, message_id, suggestion_id, patch)

    # date-fns set() and setter chains

    def check_set_object(self, node: CallExpression) -> None:
        if len(node.arguments) != 2 or _has_spread(node.arguments):
            return
        fields = set_object_fields(node.arguments[1])
        if fields is None:
            return
        boundary = calendar_boundary(fields, self.options.end_of_day_heuristic)
        if boundary is not None:
            self.report_replacement(node, boundary, node.arguments[0].text)

    def check_setter_chain(self, node: CallExpression) -> None:
        parent = node.parent
        if (
            isinstance(parent, CallExpression)
            and parent.arguments
            and parent.arguments[0] is node
            and self.date_fns_name(parent.callee) in CHAIN_SETTER_FIELDS
        ):
            return
        fields: Fields = {}
        current: Node | None = node
        while isinstance(current, CallExpression):
            name = self.date_fns_name(current.callee)
            if name not in CHAIN_SETTER_FIELDS:
                break
            if len(current.arguments) != 2 or _has_spread(current.arguments):
                return
            value = _integer(current.arguments[1])
            if value is None:
                return
            # The outermost call runs last, so its value wins.
            fields.setdefault(CHAIN_SETTER_FIELDS[name], value)
            current = unwrap(current.arguments[0])
        if current is None:
            return
        boundary = time_of_day_boundary(fields, self.options.end_of_day_heuristic)
        if boundary is None:
            return
        LOGGER.debug("setter chain on %s collapses to %s", current.text, boundary.helper)
        self.report_replacement(node, boundary, current.text)

    # constructor idioms

    def on_new(self, node: NewExpression) -> None:
        callee = node.callee
        if not isinstance(callee, Identifier) or callee.name != "Date":
            return
        if self.context.scopes.is_shadowed("Date", node) or _has_spread(node.arguments):
            return
        if len(node.arguments) == 1 and self.options.detect_hacks:
            self.check_millisecond_hack(node, unwrap(node.arguments[0]))
        elif len(node.arguments) == 3:
            self.check_month_idiom(node, *node.arguments)

    def check_millisecond_hack(self, node: NewExpression, argument: Node | None) -> None:
        if not isinstance(argument, BinaryExpression) or argument.operator not in {"+", "-"}:
            return
        left = unwrap(argument.left)
        if not isinstance(left, UnaryExpression) or left.operator != "+" or left.argument is None:
            return
        date_text = left.argument.text

        amount = _integer(argument.right)
        if argument.operator == "+" and amount is not None:
            if amount > 0 and amount % DAY_MS == 0:
                days = amount // DAY_MS
                patch = self.replace_patch(node, f"addDays({date_text}, {days})", ["addDays"])
                self.report(self.context.diagnostic(node, "useAddDays", fix=patch))
            return

        right = unwrap(argument.right)
        if argument.operator != "-" or not isinstance(right, BinaryExpression) or right.operator != "*":
            return
        getter = unwrap(right.left)
        if _integer(right.right) != DAY_MS or not isinstance(getter, CallExpression) or getter.arguments:
            return
        if not isinstance(getter.callee, MemberExpression) or getter.callee.property_name != "getDay":
            return
        week_start = self.options.week_starts_on
        patch = self.replace_patch(
            node, f"startOfWeek({date_text}, {{ weekStartsOn: {week_start} }})", ["startOfWeek"]
        )
        self.report(self.context.diagnostic(node, "useStartOfWeek", fix=patch))

    def check_month_idiom(self, node: NewExpression, year: Node, month: Node, day: Node) -> None:
        day_value = _integer(day)
        month_expr = unwrap(month)
        if day_value == 0 and isinstance(month_expr, BinaryExpression) and month_expr.operator == "+":
            if _integer(month_expr.right) != 1 or month_expr.left is None:
                return
            text = f"endOfMonth(new Date({year.text}, {month_expr.left.text}))"
            patch = self.replace_patch(node, text, ["endOfMonth"])
            self.report(self.context.diagnostic(node, "useEndOfMonth", fix=patch))
        elif day_value == 1 and not isinstance(month_expr, BinaryExpression):
            text = f"startOfMonth(new Date({year.text}, {month.text}))"
            patch = self.replace_patch(node, text, ["startOfMonth"])
            self.report(self.context.diagnostic(node, "useStartOfMonth", fix=patch))


class BoundaryMathRule:
    rule_id = RULE_ID
    description = "Disallow manual date boundary calculations in favor of date-fns boundary helpers"
    default_severity = "error"
    messages = MESSAGES
    options_model = BoundaryMathOptions

    def create(self, context: RuleContext) -> _BoundaryMathRun:
        return _BoundaryMathRun(context)
