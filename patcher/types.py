from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from chronolint.errors import PatchConflictError


@dataclass(frozen=True)
class TextEdit:
    start: int
    end: int
    new_text: str

    @classmethod
    def insert(cls, offset: int, text: str) -> "TextEdit":
        return cls(start=offset, end=offset, new_text=text)

    @classmethod
    def remove(cls, start: int, end: int) -> "TextEdit":
        return cls(start=start, end=end, new_text="")

    def to_dict(self) -> dict[str, object]:
        return {"range": [self.start, self.end], "text": self.new_text}


@dataclass(frozen=True)
class Patch:
    """An atomic set of non-overlapping edits kept in range order."""

    edits: tuple[TextEdit, ...]

    def __post_init__(self) -> None:
        previous: TextEdit | None = None
        for edit in self.edits:
            if edit.start > edit.end:
                raise PatchConflictError("edit range is inverted", first=edit)
            if previous is not None:
                if edit.start < previous.start:
                    raise PatchConflictError("edits are out of order", first=previous, second=edit)
                if edit.start < previous.end:
                    raise PatchConflictError("edits overlap", first=previous, second=edit)
            previous = edit

    @classmethod
    def from_edits(cls, edits: Iterable[TextEdit | None]) -> "Patch":
        present = [edit for edit in edits if edit is not None]
        ordered = sorted(present, key=lambda edit: (edit.start, edit.end))
        return cls(edits=tuple(ordered))

    @property
    def start(self) -> int:
        return self.edits[0].start if self.edits else 0

    @property
    def end(self) -> int:
        return max((edit.end for edit in self.edits), default=0)

    def apply(self, text: str) -> str:
        for edit in reversed(self.edits):
            text = text[: edit.start] + edit.new_text + text[edit.end :]
        return text

    def to_dict(self) -> list[dict[str, object]]:
        return [edit.to_dict() for edit in self.edits]


@dataclass
class FixResult:
    filepath: str
    applied: int
    passes: int
    remaining: int
    changed: bool
    reason_if_not: str | None = None


@dataclass
class PatchBundle:
    diffs_by_file: dict[str, str]
    combined_diff: str
    results: list[FixResult]
    patched_files: dict[str, str] = field(default_factory=dict)
