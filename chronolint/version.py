"""ChronoLint version and constants."""

__version__ = "1.0.0"
__app_name__ = "ChronoLint"
__description__ = "Date/time safety linter with automated date-fns rewrites"

# Exit codes
EXIT_SUCCESS = 0
EXIT_FINDINGS = 1
EXIT_ERROR = 2
EXIT_CONFIG_ERROR = 3

# Default configuration
DEFAULT_CONFIG = {
    "preset": "recommended",
    "rules": {},
    "max_fix_passes": 10,
    "extensions": [".js", ".mjs", ".cjs", ".jsx", ".ts", ".mts", ".cts", ".tsx"],
    "exclude": ["node_modules", "dist", "build", ".git"],
    "verbose": False,
    "quiet": False,
    "color": True,
}

PRESETS = {
    "recommended": {
        "no-date-mutation": "error",
        "no-plain-boundary-math": "error",
    },
    "diagnostic": {
        "no-magic-time": "warn",
    },
    "all": {
        "no-date-mutation": "error",
        "no-plain-boundary-math": "error",
        "no-magic-time": "warn",
    },
}

SEVERITY_LEVELS = ["error", "warn", "off"]
SEVERITY_COLORS = {
    "error": "red bold",
    "warn": "yellow",
    "off": "dim",
}
