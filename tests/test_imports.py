import pytest

from patcher.imports import DATE_FNS, DATE_FNS_TZ, ensure_named_imports, import_edits, imported_names
from patcher.types import Patch


def _parse(source: str):
    pytest.importorskip("tree_sitter_language_pack")
    from chronolint.syntax.parser import parse_source

    return parse_source(source, "typescript")


def _apply(source: str, program, module: str, names: list[str]) -> str:
    edit = ensure_named_imports(program, module, names)
    assert edit is not None
    return Patch.from_edits([edit]).apply(source)


def test_merges_into_existing_import_sorted() -> None:
    source = "import { set } from 'date-fns';\nconst a = 1;\n"
    program = _parse(source)
    assert _apply(source, program, DATE_FNS, ["addDays"]) == (
        "import { addDays, set } from 'date-fns';\nconst a = 1;\n"
    )


def test_merge_keeps_aliases() -> None:
    source = "import { set as assign } from 'date-fns';\n"
    program = _parse(source)
    assert _apply(source, program, DATE_FNS, ["addDays"]) == (
        "import { addDays, set as assign } from 'date-fns';\n"
    )


def test_already_imported_returns_none() -> None:
    program = _parse("import { addDays } from 'date-fns';\naddDays(d, 1);\n")
    assert ensure_named_imports(program, DATE_FNS, ["addDays"]) is None


def test_renamed_and_type_only_specifiers_do_not_count() -> None:
    program = _parse(
        "import { addDays as plus } from 'date-fns';\nimport type { Interval } from 'date-fns';\n"
    )
    assert imported_names(program, DATE_FNS) == set()
    assert ensure_named_imports(program, DATE_FNS, ["addDays"]) is not None


def test_inserts_before_first_statement_without_imports() -> None:
    source = "const d = new Date();\n"
    program = _parse(source)
    assert _apply(source, program, DATE_FNS, ["startOfDay"]) == (
        "import { startOfDay } from 'date-fns';\nconst d = new Date();\n"
    )


def test_inserts_at_top_of_empty_file() -> None:
    program = _parse("")
    edit = ensure_named_imports(program, DATE_FNS, ["toDate"])
    assert edit is not None
    assert (edit.start, edit.end) == (0, 0)
    assert edit.new_text == "import { toDate } from 'date-fns';\n"


def test_new_date_fns_import_follows_tz_import() -> None:
    source = "import { tz } from '@date-fns/tz';\nconst d = new Date();\n"
    program = _parse(source)
    assert _apply(source, program, DATE_FNS, ["addDays"]) == (
        "import { tz } from '@date-fns/tz';\nimport { addDays } from 'date-fns';\nconst d = new Date();\n"
    )


def test_type_only_import_is_not_a_merge_target() -> None:
    source = "import type { Locale } from 'date-fns';\n"
    program = _parse(source)
    assert _apply(source, program, DATE_FNS, ["addDays"]) == (
        "import { addDays } from 'date-fns';\nimport type { Locale } from 'date-fns';\n"
    )


def test_namespace_import_is_not_merged() -> None:
    source = "import * as fns from 'date-fns';\n"
    program = _parse(source)
    result = _apply(source, program, DATE_FNS, ["addDays"])
    assert result.startswith("import { addDays } from 'date-fns';\n")
    assert "import * as fns from 'date-fns';" in result


def test_import_edits_put_tz_before_date_fns() -> None:
    source = "let d = new Date();\n"
    program = _parse(source)
    edits = import_edits(program, {DATE_FNS: ["startOfDay"], DATE_FNS_TZ: ["tz"]})
    assert Patch.from_edits(edits).apply(source) == (
        "import { tz } from '@date-fns/tz';\n"
        "import { startOfDay } from 'date-fns';\n"
        "let d = new Date();\n"
    )
