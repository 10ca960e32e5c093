"""Time units, conversion table and delta normalization."""

from __future__ import annotations

CONVERSION_TABLE: tuple[tuple[str, str, int], ...] = (
    ("milliseconds", "seconds", 1000),
    ("seconds", "minutes", 60),
    ("minutes", "hours", 60),
    ("hours", "days", 24),
    ("days", "weeks", 7),
    ("months", "quarters", 3),
    ("quarters", "years", 4),
)

UNITS = (
    "milliseconds",
    "seconds",
    "minutes",
    "hours",
    "days",
    "weeks",
    "months",
    "quarters",
    "years",
)

MILLISECONDS_PER_UNIT = {
    "milliseconds": 1,
    "seconds": 1000,
    "minutes": 60_000,
    "hours": 3_600_000,
    "days": 86_400_000,
    "weeks": 604_800_000,
}

DAY_MS = MILLISECONDS_PER_UNIT["days"]

GETTER_UNITS = {
    "FullYear": "years",
    "Month": "months",
    "Date": "days",
    "Hours": "hours",
    "Minutes": "minutes",
    "Seconds": "seconds",
    "Milliseconds": "milliseconds",
}


def normalize_unit(amount: int, unit: str) -> tuple[int, str]:
    """Express ``amount`` of ``unit`` in the coarsest unit dividing it exactly.

    >>> normalize_unit(24, "hours")
    (1, 'days')
    >>> normalize_unit(-90, "minutes")
    (-90, 'minutes')
    """
    if amount == 0:
        return 0, unit
    sign = -1 if amount < 0 else 1
    value = abs(amount)
    climbing = True
    while climbing:
        climbing = False
        for source, target, factor in CONVERSION_TABLE:
            if source == unit and value % factor == 0:
                value //= factor
                unit = target
                climbing = True
                break
    return sign * value, unit


def factor_between(coarse: str, fine: str) -> int | None:
    """Product of conversion factors from ``fine`` up to ``coarse``."""
    product = 1
    unit = fine
    while unit != coarse:
        step = next((row for row in CONVERSION_TABLE if row[0] == unit), None)
        if step is None:
            return None
        product *= step[2]
        unit = step[1]
    return product


def adjust_function(delta: int, unit: str) -> tuple[str, int]:
    """``(addDays, 3)`` for +3 days, ``(subHours, 2)`` for -2 hours."""
    verb = "add" if delta > 0 else "sub"
    return f"{verb}{unit[0].upper()}{unit[1:]}", abs(delta)


def field_family(method: str, prefix: str) -> tuple[str, bool] | None:
    """Split ``setUTCHours`` into ``("Hours", True)`` for the given prefix."""
    if not method.startswith(prefix):
        return None
    rest = method[len(prefix) :]
    utc = rest.startswith("UTC")
    if utc:
        rest = rest[3:]
    if rest not in GETTER_UNITS:
        return None
    return rest, utc
