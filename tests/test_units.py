import pytest

from chronolint.rules.units import (
    CONVERSION_TABLE,
    adjust_function,
    factor_between,
    field_family,
    normalize_unit,
)

_CONVERTIBLE_UNITS = sorted({row[0] for row in CONVERSION_TABLE})


def test_normalize_unit_examples() -> None:
    assert normalize_unit(24, "hours") == (1, "days")
    assert normalize_unit(-90, "minutes") == (-90, "minutes")
    assert normalize_unit(86_400_000, "milliseconds") == (1, "days")
    assert normalize_unit(604_800_000, "milliseconds") == (1, "weeks")
    assert normalize_unit(12, "months") == (1, "years")
    assert normalize_unit(0, "hours") == (0, "hours")


@pytest.mark.parametrize("unit", _CONVERTIBLE_UNITS)
def test_normalized_unit_is_exact_and_coarsest(unit: str) -> None:
    for amount in range(1, 3000):
        normalized, coarse = normalize_unit(amount, unit)
        factor = factor_between(coarse, unit)
        assert factor is not None
        assert normalized * factor == amount
        for source, _, step in CONVERSION_TABLE:
            if source == coarse:
                assert normalized % step != 0


def test_normalize_unit_keeps_sign() -> None:
    assert normalize_unit(-48, "hours") == (-2, "days")


def test_adjust_function_names() -> None:
    assert adjust_function(3, "days") == ("addDays", 3)
    assert adjust_function(-2, "hours") == ("subHours", 2)


def test_field_family_splits_utc_prefix() -> None:
    assert field_family("setUTCHours", "set") == ("Hours", True)
    assert field_family("getFullYear", "get") == ("FullYear", False)
    assert field_family("getDay", "get") is None
    assert field_family("toISOString", "set") is None
