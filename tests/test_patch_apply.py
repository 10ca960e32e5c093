import pytest

from chronolint.errors import PatchConflictError
from chronolint.findings import Diagnostic, Location
from patcher.apply import apply_fixes, apply_patch, select_patches
from patcher.types import Patch, TextEdit


def _location(start: int, end: int) -> Location:
    return Location(
        filepath="a.ts", start=start, end=end, start_line=1, start_col=start, end_line=1, end_col=end
    )


def _diagnostic(patch: Patch | None) -> Diagnostic:
    return Diagnostic(
        rule_id="no-date-mutation",
        message_id="mutatingDate",
        template="x",
        location=_location(patch.start if patch else 0, patch.end if patch else 0),
        fix=patch,
    )


def test_patch_sorts_edits_and_applies_in_one_shot() -> None:
    patch = Patch.from_edits([TextEdit(6, 7, "Y"), TextEdit.insert(0, ">")])
    assert [edit.start for edit in patch.edits] == [0, 6]
    assert apply_patch("hello world", patch) == ">hello Yorld"


def test_insert_before_replace_at_same_offset_is_allowed() -> None:
    patch = Patch.from_edits([TextEdit.insert(0, "import x;\n"), TextEdit(0, 3, "let")])
    assert patch.apply("var a = 1;") == "import x;\nlet a = 1;"


def test_overlapping_edits_are_rejected() -> None:
    with pytest.raises(PatchConflictError):
        Patch.from_edits([TextEdit(0, 5, "a"), TextEdit(3, 8, "b")])


def test_inverted_range_is_rejected() -> None:
    with pytest.raises(PatchConflictError):
        Patch(edits=(TextEdit(5, 2, "x"),))


def test_select_patches_defers_conflicts() -> None:
    first = Patch.from_edits([TextEdit(0, 4, "AAAA")])
    overlapping = Patch.from_edits([TextEdit(2, 6, "BBBB")])
    later = Patch.from_edits([TextEdit(10, 12, "CC")])
    accepted, deferred = select_patches([later, overlapping, first])
    assert accepted == [first, later]
    assert deferred == [overlapping]


def test_select_patches_defers_touching_patches() -> None:
    first = Patch.from_edits([TextEdit(0, 4, "x")])
    touching = Patch.from_edits([TextEdit(4, 5, "y")])
    accepted, deferred = select_patches([first, touching])
    assert accepted == [first]
    assert deferred == [touching]


def test_apply_fixes_ignores_diagnostics_without_fix() -> None:
    text = "abcdef"
    diagnostics = [
        _diagnostic(Patch.from_edits([TextEdit(0, 1, "A")])),
        _diagnostic(None),
        _diagnostic(Patch.from_edits([TextEdit(4, 5, "E")])),
    ]
    updated, accepted, deferred = apply_fixes(text, diagnostics)
    assert updated == "AbcdEf"
    assert len(accepted) == 2
    assert deferred == []
