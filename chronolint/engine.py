"""Run the enabled rules over one source file in a single traversal."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator

from chronolint.config import Config, RuleSetting
from chronolint.findings import Diagnostic, severity_rank, sort_diagnostics
from chronolint.rules import ALL_RULES
from chronolint.rules.base import Handler, RuleContext, RuleRun
from chronolint.syntax.nodes import Node, walk
from chronolint.syntax.parser import language_for_path, parse_source
from chronolint.syntax.scope import ScopeManager
from chronolint.syntax.types import HeuristicTypeOracle, SafeTypeOracle, TypeOracle

LOGGER = logging.getLogger(__name__)


@dataclass
class LintResult:
    filepath: str
    diagnostics: list[Diagnostic] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    has_error: bool = False

    @property
    def error_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.severity == "error")

    @property
    def fixable(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.fix is not None]

    def to_dict(self) -> dict[str, object]:
        return {
            "filepath": self.filepath,
            "has_error": self.has_error,
            "errors": list(self.errors),
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }


@dataclass
class _ActiveRule:
    setting: RuleSetting
    run: RuleRun
    failed: bool = False


def _dispatch_table(active: list[_ActiveRule], node_type: type[Node]) -> list[tuple[_ActiveRule, Handler]]:
    table: list[tuple[_ActiveRule, Handler]] = []
    for klass in node_type.__mro__:
        for entry in active:
            handler = entry.run.handlers.get(klass)
            if handler is not None:
                table.append((entry, handler))
    return table


def lint_source(
    text: str,
    path: str | Path = "<input>",
    config: Config | None = None,
    type_oracle: TypeOracle | None = None,
) -> LintResult:
    """Lint ``text`` as the file at ``path``.

    Fixes and suggestions are withheld when the parser had to recover from
    syntax errors. A rule that raises is dropped for this file and the
    failure recorded in ``LintResult.errors``.
    """
    config = config or Config()
    filepath = str(path)
    settings = [s for s in config.rule_settings() if severity_rank(s.severity) > 0]

    program = parse_source(text, language_for_path(filepath) or "typescript")
    result = LintResult(filepath=filepath, has_error=program.has_error)
    if not settings:
        return result

    scopes = ScopeManager(program)
    types = SafeTypeOracle(HeuristicTypeOracle(scopes), primary=type_oracle)

    active: list[_ActiveRule] = []
    for setting in settings:
        rule = ALL_RULES[setting.rule_id]
        context = RuleContext(
            rule_id=rule.rule_id,
            messages=rule.messages,
            filepath=filepath,
            program=program,
            scopes=scopes,
            types=types,
            options=setting.options,
            fixes_enabled=not program.has_error,
        )
        active.append(_ActiveRule(setting=setting, run=rule.create(context)))

    tables: dict[type[Node], list[tuple[_ActiveRule, Handler]]] = {}
    for node in walk(program):
        node_type = type(node)
        if node_type not in tables:
            tables[node_type] = _dispatch_table(active, node_type)
        for entry, handler in tables[node_type]:
            if entry.failed:
                continue
            try:
                handler(node)
            except Exception as exc:
                _record_failure(result, entry, exc)

    diagnostics: list[Diagnostic] = []
    for entry in active:
        if entry.failed:
            continue
        try:
            found = entry.run.finish()
        except Exception as exc:
            _record_failure(result, entry, exc)
            continue
        diagnostics.extend(d.with_severity(entry.setting.severity) for d in found)

    result.diagnostics = sort_diagnostics(diagnostics)
    return result


def _record_failure(result: LintResult, entry: _ActiveRule, exc: Exception) -> None:
    LOGGER.exception("rule %s failed on %s", entry.setting.rule_id, result.filepath)
    entry.failed = True
    result.errors.append(f"{entry.setting.rule_id}: {exc}")


def lint_file(path: Path, config: Config | None = None) -> LintResult:
    text = path.read_text(encoding="utf-8")
    return lint_source(text, path, config)


def iter_source_files(paths: Iterable[Path], config: Config) -> Iterator[Path]:
    """Yield lintable files under ``paths`` in a stable order."""
    extensions = {ext.lower() for ext in config.extensions}
    excluded = set(config.get("exclude") or [])
    seen: set[Path] = set()
    for root in paths:
        if root.is_file():
            candidates = [root]
        else:
            candidates = sorted(p for p in root.rglob("*") if p.is_file())
        for candidate in candidates:
            if candidate in seen or candidate.suffix.lower() not in extensions:
                continue
            if excluded.intersection(candidate.parts):
                continue
            seen.add(candidate)
            yield candidate
