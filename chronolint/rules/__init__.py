"""Rule registry."""

from chronolint.rules.base import Rule, RuleContext, RuleRun, RuleRunBase
from chronolint.rules.boundary_math import BoundaryMathRule
from chronolint.rules.date_mutation import DateMutationRule
from chronolint.rules.magic_time import MagicTimeRule

ALL_RULES: dict[str, Rule] = {
    rule.rule_id: rule for rule in (DateMutationRule(), MagicTimeRule(), BoundaryMathRule())
}


__all__ = [
    "ALL_RULES",
    "BoundaryMathRule",
    "DateMutationRule",
    "MagicTimeRule",
    "Rule",
    "RuleContext",
    "RuleRun",
    "RuleRunBase",
]
