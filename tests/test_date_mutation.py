import pytest

from chronolint.config import Config


def _config() -> Config:
    return Config({"preset": "all", "rules": {"no-magic-time": "off", "no-plain-boundary-math": "off"}})


def _lint(source: str, path: str = "a.ts"):
    pytest.importorskip("tree_sitter_language_pack")
    from chronolint.engine import lint_source

    return lint_source(source, path, _config())


def _fixed(source: str) -> str:
    result = _lint(source)
    [diagnostic] = result.fixable
    return diagnostic.fix.apply(source)


def test_unit_arithmetic_becomes_add_function() -> None:
    source = "let d = new Date(); d.setHours(d.getHours() + 24);"
    assert _fixed(source) == "import { addDays } from 'date-fns';\nlet d = new Date(); d = addDays(d, 1);"


def test_negative_arithmetic_becomes_sub_function() -> None:
    source = "let d = new Date();\nd.setMinutes(d.getMinutes() - 90);\n"
    assert _fixed(source) == (
        "import { subMinutes } from 'date-fns';\nlet d = new Date();\nd = subMinutes(d, 90);\n"
    )


def test_alias_read_after_mutation_is_unsafe() -> None:
    source = "const d = new Date();\nconst alias = d;\nd.setHours(5);\nconsole.log(alias);\n"
    result = _lint(source)
    [diagnostic] = result.diagnostics
    assert diagnostic.message_id == "mutatingDateUnsafe"
    assert 'alias "alias"' in diagnostic.message
    assert diagnostic.fix is None


def test_alias_read_only_before_mutation_is_safe() -> None:
    source = "let d = new Date();\nconst alias = d;\nconsole.log(alias);\nd.setHours(5);\n"
    [diagnostic] = _lint(source).diagnostics
    assert diagnostic.message_id == "mutatingDate"
    assert diagnostic.fix.apply(source) == (
        "import { set } from 'date-fns';\n"
        "let d = new Date();\nconst alias = d;\nconsole.log(alias);\nd = set(d, { hours: 5 });\n"
    )


def test_single_field_on_const_redeclares_with_let() -> None:
    source = "const d = new Date(); d.setHours(5);"
    assert _fixed(source) == "import { set } from 'date-fns';\nlet d = new Date(); d = set(d, { hours: 5 });"


def test_multi_argument_setter_maps_every_field() -> None:
    source = "let d = new Date();\nd.setFullYear(2024, 0, 15);\n"
    assert _fixed(source).endswith("d = set(d, { year: 2024, month: 0, date: 15 });\n")


def test_utc_midnight_imports_tz_first() -> None:
    source = "let d = new Date();\nd.setUTCHours(0, 0, 0, 0);\n"
    assert _fixed(source) == (
        "import { tz } from '@date-fns/tz';\n"
        "import { startOfDay } from 'date-fns';\n"
        "let d = new Date();\n"
        "d = startOfDay(d, { in: tz('UTC') });\n"
    )


def test_utc_setter_with_local_getter_offers_both_intents() -> None:
    source = "let d = new Date();\nd.setUTCDate(d.getDate() + 1);\n"
    result = _lint(source)
    [diagnostic] = result.diagnostics
    assert diagnostic.message_id == "mutatingDateMismatch"
    assert diagnostic.fix is None
    assert [s.message_id for s in diagnostic.suggestions] == ["suggestUTCIntent", "suggestLocalIntent"]
    utc, local = (s.patch.apply(source) for s in diagnostic.suggestions)
    assert "d = addDays(d, 1, { in: tz('UTC') });" in utc
    assert "d = addDays(d, 1);" in local
    assert "@date-fns/tz" not in local


def test_adjacent_setters_merge_into_one_set_call() -> None:
    source = "let d = new Date();\nd.setHours(9);\nd.setMinutes(30);\n"
    result = _lint(source)
    assert [d.message_id for d in result.diagnostics] == ["mutatingDate", "mutatingDate"]
    [fixable] = result.fixable
    assert fixable.fix.apply(source) == (
        "import { set } from 'date-fns';\nlet d = new Date();\nd = set(d, { hours: 9, minutes: 30 });\n"
    )


def test_comment_between_setters_prevents_merge() -> None:
    source = "let d = new Date();\nd.setHours(9);\n// keep minutes separate\nd.setMinutes(30);\n"
    result = _lint(source)
    assert len(result.fixable) == 2


def test_impure_argument_is_hoisted_into_temporary() -> None:
    source = "let d = new Date();\nd.setHours(compute());\n"
    assert _fixed(source) == (
        "import { set } from 'date-fns';\n"
        "let d = new Date();\n"
        "const __dateFix1 = compute();\n"
        "d = set(d, { hours: __dateFix1 });\n"
    )


def test_temporaries_continue_after_existing_numbers() -> None:
    source = "const __dateFix3 = 1;\nlet d = new Date();\nd.setHours(compute());\n"
    assert "const __dateFix4 = compute();" in _fixed(source)


def test_set_time_becomes_to_date() -> None:
    source = "let d = new Date();\nd.setTime(ts);\n"
    assert _fixed(source) == "import { toDate } from 'date-fns';\nlet d = new Date();\nd = toDate(ts);\n"


def test_midnight_on_date_named_parameter() -> None:
    source = "function reset(date) {\n  date.setHours(0, 0, 0, 0);\n}\n"
    assert _fixed(source) == (
        "import { startOfDay } from 'date-fns';\nfunction reset(date) {\n  date = startOfDay(date);\n}\n"
    )


def test_setter_used_as_value_is_reported_without_fix() -> None:
    source = "let d = new Date();\nconst ts = d.setHours(5);\n"
    result = _lint(source)
    [diagnostic] = result.diagnostics
    assert diagnostic.message_id == "mutatingDateManual"
    assert diagnostic.fix is None


def test_non_date_receivers_and_optional_calls_are_ignored() -> None:
    source = (
        "const counter = { setHours() {} };\n"
        "counter.setHours(1);\n"
        "let d = new Date();\n"
        "d?.setHours(1);\n"
    )
    assert _lint(source).diagnostics == []


def test_existing_binding_blocks_the_fix() -> None:
    source = "const set = (a, b) => a;\nlet d = new Date();\nd.setHours(5);\n"
    result = _lint(source)
    [diagnostic] = result.diagnostics
    assert diagnostic.message_id == "mutatingDateManual"


def test_recovered_syntax_errors_disable_fixes() -> None:
    source = "let d = new Date();\nd.setHours(5);\nconst = ;\n"
    result = _lint(source)
    assert result.has_error
    assert all(d.fix is None and not d.suggestions for d in result.diagnostics)
