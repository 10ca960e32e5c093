#!/usr/bin/env python3
"""
ChronoLint CLI

Lints JavaScript and TypeScript sources for error-prone Date handling and
rewrites it to date-fns where that is provably safe.

Rules:
- no-date-mutation: in-place Date setters become immutable date-fns calls
- no-magic-time: numeric literals that look like durations get named
- no-plain-boundary-math: hand-rolled day/month/year boundaries become helpers

Usage:
    chronolint check src/
    chronolint check src/ --fix
    chronolint check src/ --diff --preset all
    chronolint rules
    chronolint init
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from chronolint.config import Config
from chronolint.engine import iter_source_files, lint_file
from chronolint.errors import ChronolintError, ConfigError
from chronolint.report import print_diagnostics, print_summary, render_json, should_fail
from chronolint.rules import ALL_RULES
from chronolint.version import (
    EXIT_CONFIG_ERROR,
    EXIT_ERROR,
    EXIT_FINDINGS,
    EXIT_SUCCESS,
    PRESETS,
    SEVERITY_COLORS,
    __app_name__,
    __description__,
    __version__,
)
from patcher.patcher import fix_files

LOGGER = logging.getLogger(__name__)

# Initialize Rich console
console = Console()
err_console = Console(stderr=True)

# Create main Typer app
app = typer.Typer(
    name="chronolint",
    help=f"{__app_name__} - {__description__}",
    add_completion=True,
    no_args_is_help=True,
    rich_markup_mode="rich",
)

DEFAULT_CONFIG_TEMPLATE = """\
# ChronoLint Configuration

# Rule preset: recommended, diagnostic, or all
preset: recommended

# Per-rule overrides: a severity (off, warn, error) or a mapping
rules:
  no-magic-time:
    severity: warn
    options:
      minimumScore: 50
      ignoreValues: []
      ignoreIdentifiers: []
      extraSinks: []
  no-plain-boundary-math:
    severity: error
    options:
      weekStartsOn: 1
      detectHacks: true
      suggestOnlyForAmbiguity: true
      endOfDayHeuristic: lenient

# Upper bound on apply/re-lint cycles for --fix
max_fix_passes: 10

# File extensions to lint
extensions: [".js", ".mjs", ".cjs", ".jsx", ".ts", ".mts", ".cts", ".tsx"]
"""


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(
            f"[bold blue]{__app_name__}[/bold blue] version [green]{__version__}[/green]"
        )
        raise typer.Exit()


def configure_logging(verbose: bool, quiet: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.ERROR if quiet else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=verbose, rich_tracebacks=verbose)],
        force=True,
    )


def _load_config(config_path: Path | None, preset: str | None) -> Config:
    cfg = Config().load(config_path)
    if preset:
        cfg.set("preset", preset)
    # Validate up front so a bad file fails before any file is read.
    cfg.rule_settings()
    return cfg


@app.command()
def check(
    paths: Annotated[
        Optional[list[Path]],
        typer.Argument(help="Files or directories to lint (default: current directory)"),
    ] = None,
    fix: Annotated[
        bool,
        typer.Option("--fix", help="Apply autofixes in place"),
    ] = False,
    diff: Annotated[
        bool,
        typer.Option("--diff", help="Print the unified diff of autofixes"),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output results as JSON"),
    ] = False,
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to a configuration file"),
    ] = None,
    preset: Annotated[
        Optional[str],
        typer.Option("--preset", "-p", help="Rule preset: recommended, diagnostic or all"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging"),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Only print errors"),
    ] = False,
) -> None:
    """
    Lint files for unsafe Date handling.

    Exits 0 when clean, 1 when error-severity findings remain, 2 on an
    internal error and 3 on a configuration error.
    """
    configure_logging(verbose, quiet)
    try:
        cfg = _load_config(config_path, preset)
    except ConfigError as e:
        err_console.print(f"[red]Configuration error:[/red] {e.message}")
        raise typer.Exit(EXIT_CONFIG_ERROR)

    roots = paths or [Path(".")]
    missing = [str(p) for p in roots if not p.exists()]
    if missing:
        err_console.print(f"[red]Error:[/red] no such file or directory: {', '.join(missing)}")
        raise typer.Exit(EXIT_ERROR)

    try:
        files = list(iter_source_files(roots, cfg))
        LOGGER.debug("linting %d file(s)", len(files))
        bundle = None
        if fix or diff:
            bundle, results = fix_files(files, cfg, root=Path.cwd(), write=fix)
        else:
            results = [lint_file(path, cfg) for path in files]
    except ChronolintError as e:
        err_console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(EXIT_ERROR)

    if json_output:
        typer.echo(render_json(results, bundle))
    else:
        if diff and bundle is not None and bundle.combined_diff:
            console.print(Syntax(bundle.combined_diff, "diff", theme="ansi_dark"))
        if not quiet:
            print_diagnostics(console, results)
            console.print()
            print_summary(console, results, bundle)
            if not any(r.diagnostics for r in results):
                console.print("\n[green]✓ No date handling issues found![/green]")

    if any(r.errors for r in results):
        raise typer.Exit(EXIT_ERROR)
    if should_fail(results):
        raise typer.Exit(EXIT_FINDINGS)
    raise typer.Exit(EXIT_SUCCESS)


@app.command()
def rules() -> None:
    """List the available rules."""
    table = Table(title="Rules", show_header=True, header_style="bold cyan")
    table.add_column("Rule")
    table.add_column("Default")
    table.add_column("Presets", style="dim")
    table.add_column("Description")

    for rule_id, rule in ALL_RULES.items():
        color = SEVERITY_COLORS.get(rule.default_severity, "white")
        presets = ", ".join(name for name, members in PRESETS.items() if rule_id in members)
        table.add_row(
            rule_id,
            f"[{color}]{rule.default_severity}[/{color}]",
            presets,
            rule.description,
        )

    console.print(table)


@app.command()
def init(
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Overwrite existing configuration",
        ),
    ] = False,
) -> None:
    """
    Initialize ChronoLint configuration in the current directory.

    Creates a .chronolint.yaml configuration file with default settings
    that you can customize for your project.
    """
    config_path = Path.cwd() / ".chronolint.yaml"

    if config_path.exists() and not force:
        console.print(
            f"[yellow]Configuration file already exists:[/yellow] {config_path}\n"
            "Use --force to overwrite."
        )
        raise typer.Exit(EXIT_CONFIG_ERROR)

    config_path.write_text(DEFAULT_CONFIG_TEMPLATE, encoding="utf-8")
    console.print(f"[green]✓[/green] Created configuration file: {config_path}")


@app.command(name="version")
def show_version() -> None:
    """Show version information."""
    console.print(
        Panel(
            f"[bold blue]{__app_name__}[/bold blue]\n\n"
            f"Version: [green]{__version__}[/green]\n\n"
            f"{__description__}",
            title="Version Info",
            border_style="blue",
        )
    )


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = None,
) -> None:
    """
    ChronoLint - Date/time safety linter.

    Quick start:

        chronolint check src/

    For more help on a command:

        chronolint check --help
    """


if __name__ == "__main__":
    app()
