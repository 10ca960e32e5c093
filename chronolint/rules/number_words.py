"""Spelled-out numbers and constant naming for extracted durations."""

from __future__ import annotations

import re

DEFAULT_CONSTANT_NAME = "TIME_CONSTANT_MILLISECONDS"

_ONES = [
    "ZERO",
    "ONE",
    "TWO",
    "THREE",
    "FOUR",
    "FIVE",
    "SIX",
    "SEVEN",
    "EIGHT",
    "NINE",
    "TEN",
    "ELEVEN",
    "TWELVE",
    "THIRTEEN",
    "FOURTEEN",
    "FIFTEEN",
    "SIXTEEN",
    "SEVENTEEN",
    "EIGHTEEN",
    "NINETEEN",
]
_TENS = ["", "", "TWENTY", "THIRTY", "FORTY", "FIFTY", "SIXTY", "SEVENTY", "EIGHTY", "NINETY"]
_MILLISECOND_WORDS = {"millisecond", "milliseconds"}
_SUFFIX_RE = re.compile(r"(Milliseconds|Ms|MS|_milliseconds|_ms|_MILLISECONDS|_MS)$")


def number_to_words(n: int) -> str:
    """Spell ``n`` as upper-snake words; values of 100,000 or more stay numeric.

    >>> number_to_words(45000)
    'FORTY_FIVE_THOUSAND'
    """
    if n < 0:
        return str(n)
    if n < 20:
        return _ONES[n]
    if n < 100:
        ten, one = divmod(n, 10)
        return _TENS[ten] if one == 0 else f"{_TENS[ten]}_{_ONES[one]}"
    if n < 1000:
        hundred, remainder = divmod(n, 100)
        head = f"{_ONES[hundred]}_HUNDRED"
        return head if remainder == 0 else f"{head}_{number_to_words(remainder)}"
    if n < 100_000:
        thousand, remainder = divmod(n, 1000)
        head = f"{number_to_words(thousand)}_THOUSAND"
        return head if remainder == 0 else f"{head}_{number_to_words(remainder)}"
    return str(n)


def label_to_constant_name(label: str) -> str:
    """Turn a table label such as ``"5 minutes in milliseconds"`` into a name."""
    readable = label
    if readable.endswith(" in milliseconds"):
        readable = readable[: -len(" in milliseconds")]
    readable = readable.strip()
    if not readable:
        return DEFAULT_CONSTANT_NAME

    parts: list[str] = []
    has_millisecond_word = False
    for word in readable.split():
        if word.lower() in _MILLISECOND_WORDS:
            has_millisecond_word = True
            parts.append(word.upper())
            continue
        try:
            value = float(word)
        except ValueError:
            parts.append(word.upper())
            continue
        if value.is_integer():
            parts.append(number_to_words(int(value)))
        else:
            whole, _, fraction = word.partition(".")
            digits = "_".join(_ONES[int(digit)] for digit in fraction if digit.isdigit())
            parts.append(f"{number_to_words(int(whole or 0))}_POINT_{digits}")

    joined = "_".join(parts)
    if has_millisecond_word:
        return "ONE_MILLISECOND" if joined == "ONE_MILLISECONDS" else joined
    return joined + "_MILLISECONDS"


def to_screaming_snake_case(name: str) -> str:
    if "_" in name:
        return name.upper()
    spaced = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", name)
    spaced = re.sub(r"([A-Z])([A-Z][a-z])", r"\1_\2", spaced)
    return spaced.upper()


def name_from_variable(variable_name: str) -> str:
    """Derive a constant name from a variable such as ``retryDelayMs``."""
    stripped = _SUFFIX_RE.sub("", variable_name) or variable_name
    constant = to_screaming_snake_case(stripped)
    if constant.endswith("_MILLISECONDS"):
        return constant
    return f"{constant}_MILLISECONDS"


def generate_constant_name(label: str | None, variable_name: str | None) -> str:
    if label:
        return label_to_constant_name(label)
    if variable_name:
        return name_from_variable(variable_name)
    return DEFAULT_CONSTANT_NAME
