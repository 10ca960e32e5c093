"""Parsing, scope resolution and typing for JS/TS sources."""

from chronolint.syntax.parser import language_for_path, parse_source
from chronolint.syntax.scope import Binding, Reference, Scope, ScopeManager
from chronolint.syntax.types import (
    HeuristicTypeOracle,
    Known,
    SafeTypeOracle,
    TypeKind,
    TypeOracle,
    Unknown,
)

__all__ = [
    "Binding",
    "HeuristicTypeOracle",
    "Known",
    "Reference",
    "SafeTypeOracle",
    "Scope",
    "ScopeManager",
    "TypeKind",
    "TypeOracle",
    "Unknown",
    "language_for_path",
    "parse_source",
]
