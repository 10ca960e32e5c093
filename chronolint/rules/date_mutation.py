"""In-place ``Date`` mutation rewritten to immutable date-fns calls.

Setter calls are classified while the tree is walked and collected into a
``MutationQueue``. Nothing is reported until ``finalize_mutations`` runs over
the whole queue, because adjacent single-field setters on the same receiver
merge into one ``set`` call and temporaries are numbered per file.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum

from chronolint.findings import Diagnostic
from chronolint.options import DateMutationOptions
from chronolint.rules.base import RuleContext, RuleRunBase
from chronolint.rules.rewrite import (
    is_assignable,
    is_pure,
    mentions,
    reassignment_edits,
    root_identifier,
    statement_of_call,
)
from chronolint.rules.units import GETTER_UNITS, adjust_function, field_family, normalize_unit
from chronolint.syntax.nodes import (
    BinaryExpression,
    BlockStatement,
    CallExpression,
    ExpressionStatement,
    GenericNode,
    Identifier,
    MemberExpression,
    Node,
    NumberLiteral,
    Program,
    unwrap,
)
from chronolint.syntax.scope import ScopeManager
from patcher.imports import DATE_FNS, DATE_FNS_TZ
from patcher.types import TextEdit

LOGGER = logging.getLogger(__name__)

RULE_ID = "no-date-mutation"

LOCAL_SETTERS = frozenset(
    {
        "setFullYear",
        "setMonth",
        "setDate",
        "setHours",
        "setMinutes",
        "setSeconds",
        "setMilliseconds",
        "setYear",
    }
)
UTC_SETTERS = frozenset(
    {
        "setUTCFullYear",
        "setUTCMonth",
        "setUTCDate",
        "setUTCHours",
        "setUTCMinutes",
        "setUTCSeconds",
        "setUTCMilliseconds",
    }
)
ALL_SETTERS = LOCAL_SETTERS | UTC_SETTERS | {"setTime"}

# Fields a multi-argument setter assigns, in argument order.
SETTER_ARGUMENT_FIELDS = {
    "FullYear": ("year", "month", "date"),
    "Month": ("month", "date"),
    "Date": ("date",),
    "Hours": ("hours", "minutes", "seconds", "milliseconds"),
    "Minutes": ("minutes", "seconds", "milliseconds"),
    "Seconds": ("seconds", "milliseconds"),
    "Milliseconds": ("milliseconds",),
}

MESSAGES = {
    "mutatingDate": "Avoid mutating Date in place. Rewritten to immutable date-fns usage.",
    "mutatingDateManual": "Avoid mutating Date in place. Use an immutable date-fns call instead.",
    "mutatingDateMismatch": "Date mutation has unclear intent ({{reason}}). Review suggestions to clarify.",
    "mutatingDateUnsafe": "Cannot autofix Date mutation - {{reason}}.",
    "suggestUTCIntent": "Use UTC arithmetic (primary suggestion)",
    "suggestLocalIntent": "Use local arithmetic",
}

MISMATCH_REASON = "UTC setter with local getter - intent unclear"
UTC_OPTION = ", { in: tz('UTC') }"
TEMP_PREFIX = "__dateFix"
_TEMP_RE = re.compile(rf"^{TEMP_PREFIX}(\d+)$")


class MutationKind(str, Enum):
    MIDNIGHT_ZERO = "midnight-zero"
    RAW_TIMESTAMP = "raw-timestamp"
    UNIT_ARITHMETIC = "unit-arithmetic"
    SINGLE_FIELD = "single-field"
    OTHER = "other"


@dataclass(eq=False)
class MutationCandidate:
    call: CallExpression
    statement: ExpressionStatement | None
    receiver: Node
    receiver_text: str
    setter: str
    utc: bool
    kind: MutationKind
    fields: list[tuple[str, Node]] = field(default_factory=list)
    argument: Node | None = None
    delta: int = 0
    unit: str = ""
    mismatch: bool = False


@dataclass
class MutationQueue:
    """Per-file accumulator filled during traversal."""

    candidates: list[MutationCandidate] = field(default_factory=list)

    def add(self, candidate: MutationCandidate) -> None:
        self.candidates.append(candidate)

    def __len__(self) -> int:
        return len(self.candidates)


def _is_zero(node: Node | None) -> bool:
    node = unwrap(node)
    return isinstance(node, NumberLiteral) and node.value == 0


def _integer_literal(node: Node | None) -> int | None:
    node = unwrap(node)
    if isinstance(node, NumberLiteral) and node.value is not None and float(node.value).is_integer():
        return int(node.value)
    return None


def _has_spread(call: CallExpression) -> bool:
    return any(isinstance(arg, GenericNode) and arg.kind == "spread_element" for arg in call.arguments)


def _hosts_temporaries(statement: ExpressionStatement | None) -> bool:
    return statement is not None and isinstance(statement.parent, (Program, BlockStatement))


def _detect_arithmetic(call: CallExpression, receiver: Node, family: str, utc: bool) -> dict | None:
    """Match ``d.setX(d.getX() +/- n)`` and return delta, unit and mismatch."""
    if len(call.arguments) != 1:
        return None
    argument = unwrap(call.arguments[0])
    if not isinstance(argument, BinaryExpression) or argument.operator not in {"+", "-"}:
        return None
    getter = unwrap(argument.left)
    if not isinstance(getter, CallExpression) or getter.arguments or getter.optional:
        return None
    callee = getter.callee
    if not isinstance(callee, MemberExpression) or callee.optional or not callee.property_name:
        return None
    parsed = field_family(callee.property_name, "get")
    if parsed is None:
        return None
    getter_family, getter_utc = parsed
    if getter_family != family or callee.object.text != receiver.text:
        return None
    amount = _integer_literal(argument.right)
    if amount is None:
        return None
    if argument.operator == "-":
        amount = -amount
    return {
        "delta": amount,
        "unit": GETTER_UNITS[family],
        "mismatch": getter_utc != utc,
    }


def classify_mutation(
    call: CallExpression,
    receiver: Node,
    setter: str,
    context: RuleContext,
) -> MutationCandidate:
    """Classify one setter call; the first matching kind wins."""
    statement = statement_of_call(call)
    utc = setter in UTC_SETTERS
    candidate = MutationCandidate(
        call=call,
        statement=statement,
        receiver=receiver,
        receiver_text=receiver.text,
        setter=setter,
        utc=utc,
        kind=MutationKind.OTHER,
    )
    if statement is None or not is_assignable(receiver) or _has_spread(call):
        return candidate

    arguments = call.arguments
    if setter in {"setHours", "setUTCHours"} and len(arguments) == 4 and all(_is_zero(a) for a in arguments):
        candidate.kind = MutationKind.MIDNIGHT_ZERO
        return candidate

    if setter == "setTime":
        if len(arguments) == 1:
            candidate.kind = MutationKind.RAW_TIMESTAMP
            candidate.argument = arguments[0]
        return candidate

    parsed = field_family(setter, "set")
    if parsed is None:
        # setYear takes two-digit years and has no date-fns counterpart.
        return candidate
    family, _ = parsed

    arithmetic = _detect_arithmetic(call, receiver, family, utc)
    if arithmetic is not None and arithmetic["delta"] != 0:
        delta, unit = normalize_unit(arithmetic["delta"], arithmetic["unit"])
        candidate.kind = MutationKind.UNIT_ARITHMETIC
        candidate.delta = delta
        candidate.unit = unit
        candidate.mismatch = arithmetic["mismatch"]
        return candidate

    names = SETTER_ARGUMENT_FIELDS[family]
    if not arguments or len(arguments) > len(names):
        return candidate
    fields = list(zip(names, arguments))
    if not all(is_pure(arg, context.scopes) for _, arg in fields) and not _hosts_temporaries(statement):
        return candidate
    candidate.kind = MutationKind.SINGLE_FIELD
    candidate.fields = fields
    return candidate


def blocking_alias(call: CallExpression, receiver: Node, scopes: ScopeManager) -> str | None:
    """Name of a direct alias of ``receiver`` read after ``call``, if any."""
    if not isinstance(receiver, Identifier):
        return None
    binding = scopes.resolve(receiver)
    if binding is None:
        return None
    for alias in scopes.aliases(binding):
        for reference in alias.references:
            if reference.is_read and reference.start > call.start:
                return alias.name
    return None


def _first_temp_number(context: RuleContext) -> int:
    highest = 0
    for name in context.scopes.declared_names() | context.scopes.referenced_names():
        match = _TEMP_RE.match(name)
        if match:
            highest = max(highest, int(match.group(1)))
    return highest + 1


def _adjacent(previous: MutationCandidate, current: MutationCandidate, context: RuleContext) -> bool:
    first, second = previous.statement, current.statement
    if first is None or second is None or first.parent is not second.parent:
        return False
    container = first.parent
    if not isinstance(container, (Program, BlockStatement)):
        return False
    body = container.body
    index = next((i for i, stmt in enumerate(body) if stmt is first), -1)
    if index < 0 or index + 1 >= len(body) or body[index + 1] is not second:
        return False
    return not any(first.end <= c.start and c.end <= second.start for c in context.program.comments)


def _group_runs(queue: MutationQueue, context: RuleContext) -> list[list[MutationCandidate]]:
    runs: list[list[MutationCandidate]] = []
    for candidate in queue.candidates:
        if runs and candidate.kind is MutationKind.SINGLE_FIELD:
            run = runs[-1]
            head, last = run[0], run[-1]
            root = root_identifier(head.receiver)
            seen = {name for member in run for name, _ in member.fields}
            if (
                head.kind is MutationKind.SINGLE_FIELD
                and candidate.receiver_text == head.receiver_text
                and candidate.utc == head.utc
                and _adjacent(last, candidate, context)
                and not any(name in seen for name, _ in candidate.fields)
                and not (root is not None and any(mentions(arg, root.name) for _, arg in candidate.fields))
            ):
                run.append(candidate)
                continue
        runs.append([candidate])
    return runs


def _separator(context: RuleContext, offset: int) -> str:
    line_start = context.source.rfind("\n", 0, offset) + 1
    if context.source[line_start:offset].strip():
        return " "
    return "\n" + context.indent_at(offset)


def _mode_imports(names: list[str], utc: bool) -> dict[str, list[str]]:
    imports = {DATE_FNS: names}
    if utc:
        imports[DATE_FNS_TZ] = ["tz"]
    return imports


def _names_free(context: RuleContext, imports: dict[str, list[str]], at: Node) -> bool:
    return all(context.names_available(names, at, module=module) for module, names in imports.items())


class _Finalizer:
    def __init__(self, queue: MutationQueue, context: RuleContext) -> None:
        self.queue = queue
        self.context = context
        self.next_temp = _first_temp_number(context)
        self.diagnostics: list[Diagnostic] = []

    def run(self) -> list[Diagnostic]:
        for run in _group_runs(self.queue, self.context):
            head = run[0]
            if head.kind is MutationKind.SINGLE_FIELD:
                self._field_run(run)
            elif head.kind is MutationKind.UNIT_ARITHMETIC and head.mismatch:
                self._mismatch(head)
            else:
                self._single(head)
        return self.diagnostics

    def _manual(self, candidate: MutationCandidate) -> None:
        self.diagnostics.append(self.context.diagnostic(candidate.call, "mutatingDateManual"))

    def _rewrite(self, candidate: MutationCandidate, expression: str, imports: dict[str, list[str]], extra=()):
        if not _names_free(self.context, imports, candidate.call):
            return None
        edits = reassignment_edits(self.context, candidate.call, candidate.receiver, expression)
        if edits is None:
            return None
        return self.context.patch([*extra, *edits], imports=imports)

    def _single(self, candidate: MutationCandidate) -> None:
        recv = candidate.receiver_text
        suffix = UTC_OPTION if candidate.utc else ""
        if candidate.kind is MutationKind.MIDNIGHT_ZERO:
            expression = f"startOfDay({recv}{suffix})"
            imports = _mode_imports(["startOfDay"], candidate.utc)
        elif candidate.kind is MutationKind.RAW_TIMESTAMP and candidate.argument is not None:
            expression = f"toDate({candidate.argument.text})"
            imports = {DATE_FNS: ["toDate"]}
        elif candidate.kind is MutationKind.UNIT_ARITHMETIC:
            name, amount = adjust_function(candidate.delta, candidate.unit)
            expression = f"{name}({recv}, {amount}{suffix})"
            imports = _mode_imports([name], candidate.utc)
        else:
            self._manual(candidate)
            return
        patch = self._rewrite(candidate, expression, imports)
        if patch is None:
            self._manual(candidate)
            return
        self.diagnostics.append(self.context.diagnostic(candidate.call, "mutatingDate", fix=patch))

    def _mismatch(self, candidate: MutationCandidate) -> None:
        recv = candidate.receiver_text
        name, amount = adjust_function(candidate.delta, candidate.unit)
        suggestions = []
        utc_patch = self._rewrite(
            candidate, f"{name}({recv}, {amount}{UTC_OPTION})", _mode_imports([name], True)
        )
        if utc_patch is not None:
            suggestions.append(self.context.suggestion("suggestUTCIntent", utc_patch))
        local_patch = self._rewrite(candidate, f"{name}({recv}, {amount})", _mode_imports([name], False))
        if local_patch is not None:
            suggestions.append(self.context.suggestion("suggestLocalIntent", local_patch))
        self.diagnostics.append(
            self.context.diagnostic(
                candidate.call,
                "mutatingDateMismatch",
                data={"reason": MISMATCH_REASON},
                suggestions=suggestions,
            )
        )

    def _field_run(self, run: list[MutationCandidate]) -> None:
        head = run[0]
        declarations: list[str] = []
        entries: list[str] = []
        for member in run:
            for name, argument in member.fields:
                if is_pure(argument, self.context.scopes):
                    entries.append(f"{name}: {argument.text}")
                    continue
                temp = f"{TEMP_PREFIX}{self.next_temp}"
                self.next_temp += 1
                declarations.append(f"const {temp} = {argument.text};")
                entries.append(f"{name}: {temp}")

        recv = head.receiver_text
        suffix = UTC_OPTION if head.utc else ""
        expression = f"set({recv}, {{ {', '.join(entries)} }}{suffix})"

        statements = [member.statement for member in run if member.statement is not None]
        extra: list[TextEdit] = []
        if declarations:
            start = statements[0].start
            sep = _separator(self.context, start)
            extra.append(TextEdit.insert(start, "".join(decl + sep for decl in declarations)))
        for previous, current in zip(statements, statements[1:]):
            extra.append(TextEdit.remove(previous.end, current.end))

        patch = self._rewrite(head, expression, _mode_imports(["set"], head.utc), extra=extra)
        if patch is None:
            for member in run:
                self._manual(member)
            return
        if len(run) > 1:
            LOGGER.debug("merged %d setters on %s", len(run), recv)
        self.diagnostics.append(self.context.diagnostic(head.call, "mutatingDate", fix=patch))
        for member in run[1:]:
            self.diagnostics.append(self.context.diagnostic(member.call, "mutatingDate"))


def finalize_mutations(queue: MutationQueue, context: RuleContext) -> list[Diagnostic]:
    """Turn queued candidates into diagnostics with coordinated patches."""
    return _Finalizer(queue, context).run()


class _DateMutationRun(RuleRunBase):
    def __init__(self, context: RuleContext) -> None:
        super().__init__(context)
        self.queue = MutationQueue()
        self.handlers = {CallExpression: self.on_call}

    def on_call(self, node: CallExpression) -> None:
        callee = node.callee
        if not isinstance(callee, MemberExpression) or callee.computed:
            return
        setter = callee.property_name
        if setter not in ALL_SETTERS:
            return
        if node.optional or callee.optional:
            return
        if self.context.scopes.is_shadowed("Date", node):
            return
        receiver = unwrap(callee.object)
        if receiver is None or not self.context.types.is_date(receiver):
            return

        alias = blocking_alias(node, receiver, self.context.scopes)
        if alias is not None:
            reason = f'alias "{alias}" is read after mutation - changing to immutable would alter behavior'
            self.report(self.context.diagnostic(node, "mutatingDateUnsafe", data={"reason": reason}))
            return

        self.queue.add(classify_mutation(node, receiver, setter, self.context))

    def finish(self) -> list[Diagnostic]:
        return self.diagnostics + finalize_mutations(self.queue, self.context)


class DateMutationRule:
    rule_id = RULE_ID
    description = "Disallow in-place Date mutation. Prefer immutable date-fns alternatives."
    default_severity = "error"
    messages = MESSAGES
    options_model = DateMutationOptions

    def create(self, context: RuleContext) -> _DateMutationRun:
        return _DateMutationRun(context)
