import pytest

from chronolint.config import Config


def _config(**options) -> Config:
    rule: dict = {"severity": "warn"}
    if options:
        rule["options"] = options
    return Config(
        {
            "preset": "all",
            "rules": {
                "no-date-mutation": "off",
                "no-plain-boundary-math": "off",
                "no-magic-time": rule,
            },
        }
    )


def _lint(source: str, **options):
    pytest.importorskip("tree_sitter_language_pack")
    from chronolint.engine import lint_source

    return lint_source(source, "a.ts", _config(**options))


def test_timer_multiplication_chain_is_extracted() -> None:
    source = "setTimeout(doWork, 5 * 60 * 1000);\n"
    [diagnostic] = _lint(source).diagnostics
    assert diagnostic.message_id == "magicTimeConstant"
    assert diagnostic.data["score"] == "70"
    assert "used in timer sink (+40)" in diagnostic.message
    assert "multiplication chain with time units (+30)" in diagnostic.message
    assert diagnostic.severity == "warn"
    assert diagnostic.fix.apply(source) == (
        "const FIVE_MINUTES_MILLISECONDS = 5 * 60 * 1000;\nsetTimeout(doWork, FIVE_MINUTES_MILLISECONDS);\n"
    )


def test_exact_value_in_sink_uses_dictionary_label() -> None:
    source = "setInterval(poll, 30000);\n"
    [diagnostic] = _lint(source).diagnostics
    assert diagnostic.data["score"] == "65"
    assert diagnostic.fix.apply(source).startswith("const THIRTY_SECONDS_MILLISECONDS = 30000;\n")


def test_extraction_goes_before_enclosing_top_level_statement() -> None:
    source = "function start() {\n  setTimeout(tick, 5000);\n}\n"
    [diagnostic] = _lint(source).diagnostics
    assert diagnostic.fix.apply(source) == (
        "const FIVE_SECONDS_MILLISECONDS = 5000;\n"
        "function start() {\n  setTimeout(tick, FIVE_SECONDS_MILLISECONDS);\n}\n"
    )


def test_existing_name_gets_numeric_suffix() -> None:
    source = "const FIVE_SECONDS_MILLISECONDS = 4999;\nsetTimeout(tick, 5000);\n"
    [diagnostic] = _lint(source).diagnostics
    assert "const FIVE_SECONDS_MILLISECONDS_2 = 5000;" in diagnostic.fix.apply(source)


def test_existing_constant_with_same_value_is_reused() -> None:
    source = "const FIVE_SECONDS_MILLISECONDS = 5000;\nsetTimeout(tick, 5000);\n"
    [diagnostic] = _lint(source).diagnostics
    assert diagnostic.fix.apply(source) == (
        "const FIVE_SECONDS_MILLISECONDS = 5000;\nsetTimeout(tick, FIVE_SECONDS_MILLISECONDS);\n"
    )


def test_constant_declarations_are_not_reported() -> None:
    assert _lint("const ONE_KB = 1024;\nconst RETRY_DELAY = 5 * 60 * 1000;\n").diagnostics == []


def test_known_false_positive_values_are_not_reported() -> None:
    assert _lint("let bufferSize = 65535;\n").diagnostics == []


def test_time_named_variable_is_renamed_inline() -> None:
    source = "const retryDelayMs = 5 * 60 * 1000;\nsetTimeout(run, retryDelayMs);\n"
    result = _lint(source)
    fixable = [d for d in result.diagnostics if d.fix is not None]
    assert fixable
    assert fixable[0].fix.apply(source) == (
        "const RETRY_DELAY_MILLISECONDS = 5 * 60 * 1000;\nsetTimeout(run, RETRY_DELAY_MILLISECONDS);\n"
    )


def test_comment_hint_adds_to_score() -> None:
    source = "const sessionTimeout = 7200000; // two hours\n"
    [diagnostic] = _lint(source).diagnostics
    assert "comment hint 'hours' (+15)" in diagnostic.message
    assert diagnostic.data["score"] == "70"


def test_ignore_values_and_identifiers() -> None:
    assert _lint("setTimeout(doWork, 5000);\n", ignoreValues=[5000]).diagnostics == []
    source = "const pollTimeout = 5000;\nsetTimeout(run, pollTimeout);\n"
    assert _lint(source, ignoreIdentifiers=["^poll"]).diagnostics == []


def test_extra_sinks_count_as_sinks() -> None:
    source = "retry(job, 2000);\n"
    assert _lint(source).diagnostics == []
    [diagnostic] = _lint(source, extraSinks=["retry"]).diagnostics
    assert "used in custom sink (+40)" in diagnostic.message


def test_minimum_score_raises_the_bar() -> None:
    assert _lint("setTimeout(doWork, 5000);\n", minimumScore=80).diagnostics == []


def test_day_arithmetic_on_now_is_a_dst_footgun() -> None:
    source = "const tomorrow = Date.now() + 86400000;\n"
    [diagnostic] = _lint(source).diagnostics
    assert diagnostic.message_id == "daylightSavingFootgun"
    assert diagnostic.fix is None
    [suggestion] = diagnostic.suggestions
    assert suggestion.message_id == "suggestNamedConstant"
    assert suggestion.patch.apply(source) == (
        "const ONE_DAY_MILLISECONDS = 86400000;\nconst tomorrow = Date.now() + ONE_DAY_MILLISECONDS;\n"
    )


def test_day_arithmetic_on_get_time_suggests_date_fns() -> None:
    source = "const later = new Date(start.getTime() + 172800000);\n"
    [diagnostic] = _lint(source).diagnostics
    assert diagnostic.message_id == "daylightSavingFootgun"
    [suggestion] = diagnostic.suggestions
    assert suggestion.message_id == "suggestAddDays"
    assert suggestion.patch.apply(source) == (
        "import { addDays } from 'date-fns';\nconst later = addDays(start, 2);\n"
    )


def test_seconds_conversion_of_now() -> None:
    source = "const seconds = Math.floor(Date.now() / 1000);\n"
    [diagnostic] = _lint(source).diagnostics
    assert diagnostic.data["score"] == "45"
    assert "seconds/milliseconds conversion (+15)" in diagnostic.message


def test_literal_divided_by_thousand_uses_normal_score() -> None:
    source = "const pollTimeout = 30000 / 1000;\n"
    [diagnostic] = _lint(source).diagnostics
    assert diagnostic.data["score"] == "55"
    assert "exact unit: 30 seconds in milliseconds (+25)" in diagnostic.message
    assert diagnostic.location.start == source.index("30000")


def test_timestamp_bucketing_with_modulo() -> None:
    source = "const bucket = timestamp - (timestamp % 300000);\n"
    [diagnostic] = _lint(source).diagnostics
    assert diagnostic.data["score"] == "70"
    assert "arithmetic with timestamp (+30)" in diagnostic.message
    assert "bucketing pattern (+15)" in diagnostic.message


def test_shadowed_date_is_not_epoch_arithmetic() -> None:
    assert _lint("function f(Date) {\n  return Date.now() + 3600000;\n}\n").diagnostics == []
    [diagnostic] = _lint("function f() {\n  return Date.now() + 3600000;\n}\n").diagnostics
    assert "arithmetic with epoch time (+30)" in diagnostic.message


def _score(source: str, **options) -> int:
    scores = [
        int(d.data["score"])
        for d in _lint(source, minimumScore=0, **options).diagnostics
        if d.message_id == "magicTimeConstant"
    ]
    return max(scores, default=0)


def test_adding_signals_never_lowers_the_score() -> None:
    scores = [
        _score("run(job, 4999);\n"),
        _score("run(job, 5000);\n"),
        _score("setTimeout(job, 5000);\n"),
        _score("setTimeout(job, 5000); // ms\n"),
    ]
    assert scores == sorted(scores)
    assert scores[0] < scores[-1]


def test_removing_an_ignored_value_never_lowers_the_score() -> None:
    ignored = _score("setTimeout(job, 5000);\n", ignoreValues=[5000])
    assert ignored <= _score("setTimeout(job, 5000);\n")
