from pathlib import Path

import pytest

from chronolint.config import Config


def _fix(source: str, config: Config | None = None, max_passes: int | None = None):
    pytest.importorskip("tree_sitter_language_pack")
    from patcher.patcher import fix_source

    return fix_source(source, "a.ts", config or Config({"preset": "all"}), max_passes=max_passes)


def test_overlapping_fixes_converge_over_passes() -> None:
    # Both the mutation and the boundary rule fix this call; only one may win per pass.
    source = "let d = new Date();\nd.setHours(0, 0, 0, 0);\n"
    fixed, summary, final = _fix(source)
    assert fixed == "import { startOfDay } from 'date-fns';\nlet d = new Date();\nd = startOfDay(d);\n"
    assert summary.changed
    assert summary.applied == 1
    assert final.fixable == []


def test_fixing_is_idempotent() -> None:
    source = (
        "let d = new Date();\n"
        "d.setHours(9);\n"
        "d.setMinutes(30);\n"
        "setTimeout(refresh, 5 * 60 * 1000);\n"
    )
    fixed, _, _ = _fix(source)
    again, summary, final = _fix(fixed)
    assert again == fixed
    assert not summary.changed
    assert summary.applied == 0
    assert final.fixable == []


def test_same_constant_twice_is_extracted_once() -> None:
    source = "setTimeout(a, 5000);\nsetTimeout(b, 5000);\n"
    fixed, summary, _ = _fix(source)
    assert fixed == (
        "const FIVE_SECONDS_MILLISECONDS = 5000;\n"
        "setTimeout(a, FIVE_SECONDS_MILLISECONDS);\n"
        "setTimeout(b, FIVE_SECONDS_MILLISECONDS);\n"
    )
    assert summary.passes == 2


def test_pass_limit_is_reported() -> None:
    source = "setTimeout(a, 5000);\nsetTimeout(b, 5000);\n"
    fixed, summary, final = _fix(source, max_passes=1)
    assert fixed.count("FIVE_SECONDS_MILLISECONDS") == 2
    assert final.fixable
    assert summary.passes == 1
    assert summary.reason_if_not is None


def test_syntax_errors_stop_fixing() -> None:
    source = "let d = new Date();\nd.setHours(5);\nconst = ;\n"
    fixed, summary, _ = _fix(source)
    assert fixed == source
    assert summary.reason_if_not == "source has syntax errors"


def test_fix_files_collects_diffs(tmp_path: Path) -> None:
    pytest.importorskip("tree_sitter_language_pack")
    from patcher.patcher import fix_files

    changed = tmp_path / "src" / "app.js"
    changed.parent.mkdir()
    changed.write_text("let d = new Date();\nd.setTime(ts);\n", encoding="utf-8")
    clean = tmp_path / "src" / "ok.js"
    clean.write_text("const x = 1;\n", encoding="utf-8")

    bundle, results = fix_files([changed, clean], Config(), root=tmp_path, write=True)
    assert list(bundle.diffs_by_file) == ["src/app.js"]
    assert "+d = toDate(ts);" in bundle.combined_diff
    assert changed.read_text(encoding="utf-8").startswith("import { toDate } from 'date-fns';\n")
    assert [r.filepath for r in bundle.results] == ["src/app.js", "src/ok.js"]
    assert len(results) == 2
