from __future__ import annotations

import difflib

_NO_NEWLINE = "\\ No newline at end of file\n"


def make_unified_diff(path: str, old_text: str, new_text: str, context_lines: int = 3) -> str:
    if old_text == new_text:
        return ""

    old_lines = old_text.splitlines(keepends=True)
    new_lines = new_text.splitlines(keepends=True)

    header = f"diff --git a/{path} b/{path}\n"
    parts: list[str] = []
    for line in difflib.unified_diff(
        old_lines,
        new_lines,
        fromfile=f"a/{path}",
        tofile=f"b/{path}",
        n=context_lines,
    ):
        if line.endswith("\n"):
            parts.append(line)
        else:
            parts.append(line + "\n" + _NO_NEWLINE)
    return header + "".join(parts)


def _diff_path(diff: str) -> str:
    for line in diff.splitlines():
        if line.startswith("--- a/"):
            return line[6:].strip()
    return ""


def bundle_diffs(diffs: list[str]) -> str:
    ordered = sorted((d for d in diffs if d.strip()), key=_diff_path)
    return "".join(diff if diff.endswith("\n") else diff + "\n" for diff in ordered)
