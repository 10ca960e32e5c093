from __future__ import annotations

"""
Fixed-point autofix driver:
- lint the text, apply every non-conflicting autofix, re-parse and repeat
- stop when a pass applies nothing or after ``max_fix_passes`` passes
- deferred patches are recomputed from the re-parsed text on the next pass
"""

import logging
from pathlib import Path
from typing import Iterable

from chronolint.config import Config
from chronolint.engine import LintResult, lint_source
from patcher.apply import apply_fixes
from patcher.diff import bundle_diffs, make_unified_diff
from patcher.types import FixResult, PatchBundle

LOGGER = logging.getLogger(__name__)


def fix_source(
    text: str,
    path: str | Path = "<input>",
    config: Config | None = None,
    max_passes: int | None = None,
) -> tuple[str, FixResult, LintResult]:
    """Apply autofixes to ``text`` until nothing changes.

    Returns the fixed text, a summary, and the lint result for the final
    text so callers can report what is left.
    """
    config = config or Config()
    limit = max_passes if max_passes is not None else config.max_fix_passes
    filepath = str(path)
    original = text
    applied = 0
    passes = 0

    result = lint_source(text, filepath, config)
    reason: str | None = None
    while passes < limit:
        if result.has_error:
            reason = "source has syntax errors"
            break
        if not result.fixable:
            break
        updated, accepted, deferred = apply_fixes(text, result.diagnostics)
        if updated == text:
            break
        passes += 1
        applied += len(accepted)
        LOGGER.debug(
            "%s pass %d: applied %d fix(es), deferred %d", filepath, passes, len(accepted), len(deferred)
        )
        text = updated
        result = lint_source(text, filepath, config)
    else:
        if result.fixable:
            reason = f"stopped after {limit} passes"
            LOGGER.warning("%s: %s with %d fix(es) pending", filepath, reason, len(result.fixable))

    summary = FixResult(
        filepath=filepath,
        applied=applied,
        passes=passes,
        remaining=len(result.diagnostics),
        changed=text != original,
        reason_if_not=reason if applied == 0 else None,
    )
    return text, summary, result


def fix_files(
    paths: Iterable[Path],
    config: Config | None = None,
    root: Path | None = None,
    write: bool = False,
) -> tuple[PatchBundle, list[LintResult]]:
    """Fix each file, collecting unified diffs and the final lint results."""
    config = config or Config()
    diffs_by_file: dict[str, str] = {}
    patched_files: dict[str, str] = {}
    results: list[FixResult] = []
    lint_results: list[LintResult] = []

    for path in paths:
        display = _display_path(path, root)
        original = path.read_text(encoding="utf-8")
        updated, summary, final = fix_source(original, path, config)
        summary.filepath = display
        results.append(summary)
        lint_results.append(final)
        if not summary.changed:
            continue
        diffs_by_file[display] = make_unified_diff(display, original, updated)
        patched_files[display] = updated
        if write:
            path.write_text(updated, encoding="utf-8")

    return (
        PatchBundle(
            diffs_by_file=diffs_by_file,
            combined_diff=bundle_diffs(list(diffs_by_file.values())),
            results=results,
            patched_files=patched_files,
        ),
        lint_results,
    )


def _display_path(path: Path, root: Path | None) -> str:
    if root is not None:
        try:
            return path.resolve().relative_to(root.resolve()).as_posix()
        except ValueError:
            pass
    return path.as_posix()
