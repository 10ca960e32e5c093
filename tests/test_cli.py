import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from chronolint.cli import app
from chronolint.config import Config
from chronolint.version import EXIT_CONFIG_ERROR, EXIT_ERROR, EXIT_FINDINGS, EXIT_SUCCESS, __version__

runner = CliRunner()

MUTATING = "let d = new Date();\nd.setHours(d.getHours() + 24);\n"


@pytest.fixture(autouse=True)
def _isolated(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    for name in ("CHRONOLINT_PRESET", "CHRONOLINT_MAX_FIX_PASSES", "CHRONOLINT_MINIMUM_SCORE"):
        monkeypatch.delenv(name, raising=False)


def _needs_parser() -> None:
    pytest.importorskip("tree_sitter_language_pack")


def test_version_flag_and_command() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output

    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "ChronoLint" in result.output


def test_rules_lists_every_rule() -> None:
    result = runner.invoke(app, ["rules"])
    assert result.exit_code == 0
    for rule_id in ("no-date-mutation", "no-magic-time", "no-plain-boundary-math"):
        assert rule_id in result.output


def test_init_writes_a_loadable_config(tmp_path: Path) -> None:
    result = runner.invoke(app, ["init"])
    assert result.exit_code == 0
    path = tmp_path / ".chronolint.yaml"
    assert path.exists()
    assert len(Config().load(path).rule_settings()) == 3

    again = runner.invoke(app, ["init"])
    assert again.exit_code == EXIT_CONFIG_ERROR
    forced = runner.invoke(app, ["init", "--force"])
    assert forced.exit_code == 0


def test_check_rejects_invalid_config(tmp_path: Path) -> None:
    bad = tmp_path / "bad.yaml"
    bad.write_text("preset: strictest\n", encoding="utf-8")
    result = runner.invoke(app, ["check", "--config", str(bad)])
    assert result.exit_code == EXIT_CONFIG_ERROR


def test_check_missing_path_is_an_error() -> None:
    result = runner.invoke(app, ["check", "does-not-exist"])
    assert result.exit_code == EXIT_ERROR


def test_check_clean_file_succeeds(tmp_path: Path) -> None:
    _needs_parser()
    (tmp_path / "clean.ts").write_text("const d = new Date();\nconsole.log(d.getTime());\n", encoding="utf-8")
    result = runner.invoke(app, ["check", "clean.ts"])
    assert result.exit_code == EXIT_SUCCESS
    assert "No date handling issues found" in result.output


def test_check_reports_error_findings(tmp_path: Path) -> None:
    _needs_parser()
    (tmp_path / "app.ts").write_text(MUTATING, encoding="utf-8")
    (tmp_path / "notes.md").write_text("d.setHours(0, 0, 0, 0)\n", encoding="utf-8")
    result = runner.invoke(app, ["check", "."])
    assert result.exit_code == EXIT_FINDINGS
    assert "app.ts" in result.output
    assert "notes.md" not in result.output


def test_check_json_output(tmp_path: Path) -> None:
    _needs_parser()
    (tmp_path / "app.ts").write_text(MUTATING, encoding="utf-8")
    result = runner.invoke(app, ["check", "app.ts", "--json"])
    assert result.exit_code == EXIT_FINDINGS
    report = json.loads(result.stdout)
    assert report["summary"]["error"] == 1
    assert report["summary"]["fixable"] == 1
    [entry] = report["files"]
    [diagnostic] = entry["diagnostics"]
    assert diagnostic["rule_id"] == "no-date-mutation"


def test_check_fix_rewrites_file(tmp_path: Path) -> None:
    _needs_parser()
    path = tmp_path / "app.ts"
    path.write_text(MUTATING, encoding="utf-8")
    result = runner.invoke(app, ["check", "app.ts", "--fix"])
    assert result.exit_code == EXIT_SUCCESS
    assert path.read_text(encoding="utf-8") == (
        "import { addDays } from 'date-fns';\nlet d = new Date();\nd = addDays(d, 1);\n"
    )


def test_check_diff_leaves_file_untouched(tmp_path: Path) -> None:
    _needs_parser()
    path = tmp_path / "app.ts"
    path.write_text(MUTATING, encoding="utf-8")
    result = runner.invoke(app, ["check", "app.ts", "--diff", "--json"])
    assert path.read_text(encoding="utf-8") == MUTATING
    report = json.loads(result.stdout)
    assert "+d = addDays(d, 1);" in report["diff"]
    assert report["fixes"][0]["applied"] == 1
