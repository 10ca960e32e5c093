"""Exception types raised by ChronoLint."""

from __future__ import annotations

from typing import Any


class ChronolintError(Exception):
    """Base exception for ChronoLint errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ConfigError(ChronolintError):
    """Configuration file or rule options failed validation."""


class SourceParseError(ChronolintError):
    """A source file could not be parsed."""


class PatchConflictError(ChronolintError):
    """Edits inside one patch overlap or are out of order."""

    def __init__(self, message: str, first: Any = None, second: Any = None):
        super().__init__(message, details={"first": first, "second": second})
