"""Console and JSON rendering of lint results."""

from __future__ import annotations

import json
from typing import Any

from rich.console import Console
from rich.table import Table

from chronolint.engine import LintResult
from chronolint.findings import severity_rank
from chronolint.version import SEVERITY_COLORS, __version__
from patcher.types import PatchBundle


def count_by_severity(results: list[LintResult]) -> dict[str, int]:
    counts = {"error": 0, "warn": 0}
    for result in results:
        for diagnostic in result.diagnostics:
            counts[diagnostic.severity] = counts.get(diagnostic.severity, 0) + 1
    return counts


def should_fail(results: list[LintResult]) -> bool:
    return any(severity_rank(d.severity) >= 2 for r in results for d in r.diagnostics)


def build_json_report(results: list[LintResult], bundle: PatchBundle | None = None) -> dict[str, Any]:
    report: dict[str, Any] = {
        "version": __version__,
        "summary": {
            "files": len(results),
            **count_by_severity(results),
            "fixable": sum(len(r.fixable) for r in results),
            "rule_errors": sum(len(r.errors) for r in results),
        },
        "files": [r.to_dict() for r in results if r.diagnostics or r.errors],
    }
    if bundle is not None:
        report["fixes"] = [
            {
                "filepath": fix.filepath,
                "applied": fix.applied,
                "passes": fix.passes,
                "remaining": fix.remaining,
                "reason_if_not": fix.reason_if_not,
            }
            for fix in bundle.results
        ]
        report["diff"] = bundle.combined_diff
    return report


def render_json(results: list[LintResult], bundle: PatchBundle | None = None) -> str:
    return json.dumps(build_json_report(results, bundle), indent=2)


def print_diagnostics(console: Console, results: list[LintResult]) -> None:
    """Print diagnostics grouped by file, eslint-style."""
    for result in results:
        if not result.diagnostics and not result.errors:
            continue
        console.print(f"\n[bold underline]{result.filepath}[/bold underline]")
        if result.has_error:
            console.print("  [dim]syntax errors recovered; fixes disabled[/dim]")
        for diagnostic in result.diagnostics:
            color = SEVERITY_COLORS.get(diagnostic.severity, "white")
            location = diagnostic.location
            marker = " [green](fixable)[/green]" if diagnostic.fix is not None else ""
            if diagnostic.suggestions and diagnostic.fix is None:
                marker = f" [cyan]({len(diagnostic.suggestions)} suggestion(s))[/cyan]"
            console.print(
                f"  [dim]{location.start_line}:{location.start_col}[/dim] "
                f"[{color}]{diagnostic.severity}[/{color}] "
                f"{diagnostic.message} [dim]{diagnostic.rule_id}[/dim]{marker}",
                highlight=False,
            )
        for error in result.errors:
            console.print(f"  [red]rule failure:[/red] {error}", highlight=False)


def print_summary(console: Console, results: list[LintResult], bundle: PatchBundle | None = None) -> None:
    counts = count_by_severity(results)

    table = Table(title="Lint Summary", show_header=True, header_style="bold cyan")
    table.add_column("Category", style="dim")
    table.add_column("Count", justify="right")

    table.add_row("Files checked", str(len(results)))
    for level in ("error", "warn"):
        color = SEVERITY_COLORS.get(level, "white")
        table.add_row(f"  {level.capitalize()}", f"[{color}]{counts.get(level, 0)}[/{color}]")
    table.add_row("Fixable", str(sum(len(r.fixable) for r in results)))
    if bundle is not None:
        table.add_row("Fixes applied", str(sum(fix.applied for fix in bundle.results)))
        table.add_row("Files changed", str(len(bundle.patched_files)))

    console.print(table)
