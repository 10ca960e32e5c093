"""Date/time safety linter with automated date-fns rewrites."""

from chronolint.version import __version__

__all__ = ["__version__"]
