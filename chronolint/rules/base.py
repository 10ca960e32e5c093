from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Protocol

from pydantic import BaseModel

from chronolint.findings import Diagnostic, Location, Suggestion
from chronolint.syntax.nodes import Node, Program
from chronolint.syntax.scope import ScopeManager
from chronolint.syntax.types import SafeTypeOracle
from patcher.imports import DATE_FNS, import_edits
from patcher.types import Patch, TextEdit

Handler = Callable[[Any], None]


class RuleRun(Protocol):
    handlers: dict[type[Node], Handler]

    def finish(self) -> list[Diagnostic]: ...


class Rule(Protocol):
    rule_id: str
    description: str
    default_severity: str
    messages: dict[str, str]
    options_model: type[BaseModel]

    def create(self, context: "RuleContext") -> RuleRun: ...


@dataclass
class RuleContext:
    """Everything a rule may consult while analyzing one file."""

    rule_id: str
    messages: dict[str, str]
    filepath: str
    program: Program
    scopes: ScopeManager
    types: SafeTypeOracle
    options: Any
    fixes_enabled: bool = True
    allocated_names: set[str] = field(default_factory=set)

    @property
    def source(self) -> str:
        return self.program.source

    def location(self, start: int, end: int) -> Location:
        start_line, start_col = self.program.position(start)
        end_line, end_col = self.program.position(end)
        return Location(
            filepath=self.filepath,
            start=start,
            end=end,
            start_line=start_line,
            start_col=start_col,
            end_line=end_line,
            end_col=end_col,
        )

    def diagnostic(
        self,
        node: Node,
        message_id: str,
        data: dict[str, Any] | None = None,
        fix: Patch | None = None,
        suggestions: Iterable[Suggestion] = (),
    ) -> Diagnostic:
        return Diagnostic(
            rule_id=self.rule_id,
            message_id=message_id,
            template=self.messages[message_id],
            location=self.location(node.start, node.end),
            data=dict(data or {}),
            fix=fix if self.fixes_enabled else None,
            suggestions=tuple(suggestions) if self.fixes_enabled else (),
        )

    def suggestion(self, message_id: str, patch: Patch) -> Suggestion:
        return Suggestion(message_id=message_id, description=self.messages[message_id], patch=patch)

    def patch(
        self,
        edits: Iterable[TextEdit],
        imports: dict[str, Iterable[str]] | None = None,
    ) -> Patch:
        body = list(edits)
        head = import_edits(self.program, imports or {})
        return Patch.from_edits(head + body)

    def names_available(self, names: Iterable[str], at: Node, module: str = DATE_FNS) -> bool:
        """True when each name is unbound at ``at`` or bound to ``module``'s export."""
        for name in names:
            binding = self.scopes.lookup(name, at)
            if binding is None:
                continue
            if binding.import_source == module and binding.imported_name == name:
                continue
            return False
        return True

    def indent_at(self, offset: int) -> str:
        line_start = self.source.rfind("\n", 0, offset) + 1
        prefix = self.source[line_start:offset]
        return prefix if not prefix.strip() else prefix[: len(prefix) - len(prefix.lstrip())]


class RuleRunBase:
    """Collects diagnostics for one rule over one file."""

    def __init__(self, context: RuleContext) -> None:
        self.context = context
        self.diagnostics: list[Diagnostic] = []
        self.handlers: dict[type[Node], Handler] = {}

    def report(self, diagnostic: Diagnostic) -> None:
        self.diagnostics.append(diagnostic)

    def finish(self) -> list[Diagnostic]:
        return list(self.diagnostics)
