from chronolint.rules.number_words import (
    DEFAULT_CONSTANT_NAME,
    generate_constant_name,
    label_to_constant_name,
    name_from_variable,
    number_to_words,
    to_screaming_snake_case,
)


def test_number_to_words_spells_small_numbers() -> None:
    assert number_to_words(0) == "ZERO"
    assert number_to_words(15) == "FIFTEEN"
    assert number_to_words(90) == "NINETY"
    assert number_to_words(115) == "ONE_HUNDRED_FIFTEEN"
    assert number_to_words(45000) == "FORTY_FIVE_THOUSAND"


def test_number_to_words_keeps_large_numbers_numeric() -> None:
    assert number_to_words(100_000) == "100000"


def test_label_to_constant_name() -> None:
    assert label_to_constant_name("5 minutes in milliseconds") == "FIVE_MINUTES_MILLISECONDS"
    assert label_to_constant_name("1 second in milliseconds") == "ONE_SECOND_MILLISECONDS"
    assert label_to_constant_name("100 milliseconds") == "ONE_HUNDRED_MILLISECONDS"
    assert label_to_constant_name("1.5 seconds in milliseconds") == "ONE_POINT_FIVE_SECONDS_MILLISECONDS"


def test_name_from_variable_strips_millisecond_suffixes() -> None:
    assert name_from_variable("retryDelayMs") == "RETRY_DELAY_MILLISECONDS"
    assert name_from_variable("timeout") == "TIMEOUT_MILLISECONDS"
    assert name_from_variable("cache_ttl_ms") == "CACHE_TTL_MILLISECONDS"


def test_to_screaming_snake_case_handles_acronyms() -> None:
    assert to_screaming_snake_case("httpTimeout") == "HTTP_TIMEOUT"
    assert to_screaming_snake_case("parseHTTPDelay") == "PARSE_HTTP_DELAY"


def test_generate_constant_name_prefers_label() -> None:
    assert generate_constant_name("1 hour in milliseconds", "pollDelay") == "ONE_HOUR_MILLISECONDS"
    assert generate_constant_name(None, "pollDelay") == "POLL_DELAY_MILLISECONDS"
    assert generate_constant_name(None, None) == DEFAULT_CONSTANT_NAME
