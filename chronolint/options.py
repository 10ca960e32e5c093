"""Validated option models for each rule."""

from __future__ import annotations

import re
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _RuleOptions(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)


class MagicTimeWeights(_RuleOptions):
    sink: int = 40
    epoch_arithmetic: int = Field(30, alias="epochArithmetic")
    multiplication_chain: int = Field(30, alias="multiplicationChain")
    identifier_hint: int = Field(15, alias="identifierHint")
    comment_hint: int = Field(15, alias="commentHint")
    exact_value: int = Field(25, alias="exactValue")
    false_positive: int = Field(-35, alias="falsePositive")
    seconds_conversion: int = Field(15, alias="secondsConversion")
    bucketing: int = 15


class MagicTimeOptions(_RuleOptions):
    minimum_score: int = Field(50, ge=0, le=100, alias="minimumScore")
    ignore_values: list[float] = Field(default_factory=list, alias="ignoreValues")
    ignore_identifiers: list[str] = Field(default_factory=list, alias="ignoreIdentifiers")
    extra_sinks: list[str] = Field(default_factory=list, alias="extraSinks")
    weights: MagicTimeWeights = Field(default_factory=MagicTimeWeights)

    @field_validator("ignore_identifiers")
    @classmethod
    def _patterns_compile(cls, value: list[str]) -> list[str]:
        for pattern in value:
            try:
                re.compile(pattern)
            except re.error as exc:
                raise ValueError(f"invalid ignore pattern {pattern!r}: {exc}") from exc
        return value


class DateMutationOptions(_RuleOptions):
    pass


class BoundaryMathOptions(_RuleOptions):
    week_starts_on: int = Field(1, ge=0, le=6, alias="weekStartsOn")
    detect_hacks: bool = Field(True, alias="detectHacks")
    suggest_only_for_ambiguity: bool = Field(True, alias="suggestOnlyForAmbiguity")
    end_of_day_heuristic: Literal["strict", "lenient", "aggressive"] = Field(
        "lenient", alias="endOfDayHeuristic"
    )
