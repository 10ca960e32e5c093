from chronolint.rules.hints import is_constant_name, keywords_in_comment


def test_comment_keywords_prefer_longest_match() -> None:
    assert keywords_in_comment("wait 5 minutes") == ["minutes"]
    assert keywords_in_comment("two milliseconds") == ["milliseconds"]


def test_comment_keywords_collect_distinct_units() -> None:
    assert keywords_in_comment("1 hour or 60 min") == ["hour", "min"]


def test_comment_without_units() -> None:
    assert keywords_in_comment("buffer size in bytes") == []


def test_constant_names() -> None:
    assert is_constant_name("ONE_KB")
    assert is_constant_name("RETRY_2")
    assert not is_constant_name("retryDelay")
    assert not is_constant_name("_PRIVATE")
