from __future__ import annotations

import hashlib
import re
from dataclasses import asdict, dataclass, field, replace
from typing import Any

from patcher.types import Patch

SEVERITY_ORDER = {"error": 2, "warn": 1, "off": 0}

_PLACEHOLDER_RE = re.compile(r"\{\{\s*(\w+)\s*\}\}")


@dataclass(frozen=True)
class Location:
    filepath: str
    start: int
    end: int
    start_line: int
    start_col: int
    end_line: int
    end_col: int


@dataclass(frozen=True)
class Suggestion:
    message_id: str
    description: str
    patch: Patch

    def to_dict(self) -> dict[str, Any]:
        return {
            "message_id": self.message_id,
            "description": self.description,
            "edits": self.patch.to_dict(),
        }


@dataclass(frozen=True)
class Diagnostic:
    rule_id: str
    message_id: str
    template: str
    location: Location
    data: dict[str, Any] = field(default_factory=dict)
    severity: str = "warn"
    fix: Patch | None = None
    suggestions: tuple[Suggestion, ...] = ()

    @property
    def message(self) -> str:
        return render_message(self.template, self.data)

    @property
    def diagnostic_id(self) -> str:
        return build_diagnostic_id(
            self.location.filepath,
            self.location.start,
            self.location.end,
            self.rule_id,
            self.message_id,
        )

    def with_severity(self, severity: str) -> "Diagnostic":
        return replace(self, severity=severity)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "diagnostic_id": self.diagnostic_id,
            "rule_id": self.rule_id,
            "message_id": self.message_id,
            "message": self.message,
            "severity": self.severity,
            "location": asdict(self.location),
        }
        if self.fix is not None:
            data["fix"] = self.fix.to_dict()
        if self.suggestions:
            data["suggestions"] = [suggestion.to_dict() for suggestion in self.suggestions]
        return data


def render_message(template: str, data: dict[str, Any]) -> str:
    def _substitute(match: re.Match[str]) -> str:
        key = match.group(1)
        if key not in data:
            return match.group(0)
        return str(data[key])

    return _PLACEHOLDER_RE.sub(_substitute, template)


def severity_rank(severity: str) -> int:
    return SEVERITY_ORDER.get(severity.lower(), 0)


def build_diagnostic_id(filepath: str, start: int, end: int, rule_id: str, message_id: str) -> str:
    payload = f"{filepath}:{start}:{end}:{rule_id}:{message_id}"
    return hashlib.sha1(payload.encode("utf-8")).hexdigest()[:12]


def sort_diagnostics(diagnostics: list[Diagnostic]) -> list[Diagnostic]:
    return sorted(
        diagnostics,
        key=lambda d: (d.location.start, d.location.end, d.rule_id, d.message_id),
    )
