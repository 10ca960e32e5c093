"""Configuration management for the ChronoLint CLI."""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ValidationError

from chronolint.errors import ConfigError
from chronolint.rules import ALL_RULES
from chronolint.version import DEFAULT_CONFIG, PRESETS, SEVERITY_LEVELS


@dataclass(frozen=True)
class RuleSetting:
    rule_id: str
    severity: str
    options: BaseModel


class Config:
    """Configuration manager with file and environment support."""

    CONFIG_FILENAMES = [
        ".chronolint.yaml",
        ".chronolint.yml",
        "chronolint.yaml",
        "chronolint.yml",
    ]

    # Environment overrides that land inside a rule's options.
    ENV_RULE_OPTIONS = {
        "CHRONOLINT_MINIMUM_SCORE": ("no-magic-time", "minimumScore"),
        "CHRONOLINT_END_OF_DAY_HEURISTIC": ("no-plain-boundary-math", "endOfDayHeuristic"),
    }

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._config: dict[str, Any] = copy.deepcopy(DEFAULT_CONFIG)
        self._config_path: Path | None = None
        self._env_options: dict[str, dict[str, Any]] = {}
        if data:
            self._config.update(data)

    def load(self, config_path: Path | None = None) -> "Config":
        """Load configuration from file and environment."""
        if config_path:
            if not config_path.exists():
                raise ConfigError(f"config file not found: {config_path}")
            self._load_file(config_path)
        else:
            self._auto_discover()

        self._load_env()
        return self

    def _auto_discover(self) -> None:
        """Auto-discover config file in current directory or home."""
        search_dirs = [Path.cwd(), Path.home()]

        for search_dir in search_dirs:
            for filename in self.CONFIG_FILENAMES:
                config_path = search_dir / filename
                if config_path.exists():
                    self._load_file(config_path)
                    return

    def _load_file(self, path: Path) -> None:
        """Load configuration from YAML file."""
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"cannot read {path}: {exc}", details={"path": str(path)}) from exc
        if not isinstance(data, dict):
            raise ConfigError(f"{path} must contain a mapping", details={"path": str(path)})
        self._config.update(data)
        self._config_path = path

    def _load_env(self) -> None:
        """Load configuration from environment variables."""
        preset = os.environ.get("CHRONOLINT_PRESET")
        if preset is not None:
            self._config["preset"] = preset

        passes = os.environ.get("CHRONOLINT_MAX_FIX_PASSES")
        if passes is not None:
            try:
                self._config["max_fix_passes"] = int(passes)
            except ValueError as exc:
                raise ConfigError(f"CHRONOLINT_MAX_FIX_PASSES must be an integer, got {passes!r}") from exc

        for env_var, (rule_id, option) in self.ENV_RULE_OPTIONS.items():
            value = os.environ.get(env_var)
            if value is not None:
                self._env_options.setdefault(rule_id, {})[option] = value

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value."""
        return self._config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value."""
        self._config[key] = value

    @property
    def config_path(self) -> Path | None:
        """Return the path to the loaded config file."""
        return self._config_path

    @property
    def max_fix_passes(self) -> int:
        value = self._config.get("max_fix_passes", DEFAULT_CONFIG["max_fix_passes"])
        if not isinstance(value, int) or value < 1:
            raise ConfigError(f"max_fix_passes must be a positive integer, got {value!r}")
        return value

    @property
    def extensions(self) -> list[str]:
        return [str(ext) for ext in self._config.get("extensions") or DEFAULT_CONFIG["extensions"]]

    def to_dict(self) -> dict[str, Any]:
        """Return configuration as dictionary."""
        return dict(self._config)

    def rule_settings(self) -> list[RuleSetting]:
        """Severity and validated options for every known rule.

        The preset supplies severities, ``rules`` entries override them and
        environment overrides win over file options.
        """
        preset = self._config.get("preset") or "recommended"
        if preset not in PRESETS:
            raise ConfigError(
                f"unknown preset {preset!r}; expected one of {', '.join(sorted(PRESETS))}"
            )
        rules = self._config.get("rules") or {}
        if not isinstance(rules, dict):
            raise ConfigError("'rules' must be a mapping of rule id to severity or settings")
        unknown = sorted(set(rules) - set(ALL_RULES))
        if unknown:
            raise ConfigError(f"unknown rule(s): {', '.join(unknown)}", details={"rules": unknown})

        settings: list[RuleSetting] = []
        for rule_id, rule in ALL_RULES.items():
            severity = PRESETS[preset].get(rule_id, "off")
            raw_options: dict[str, Any] = {}
            entry = rules.get(rule_id)
            if isinstance(entry, str):
                severity = entry
            elif isinstance(entry, dict):
                severity = entry.get("severity", severity if severity != "off" else rule.default_severity)
                raw_options = dict(entry.get("options") or {})
            elif entry is not None:
                raise ConfigError(f"invalid settings for {rule_id}: {entry!r}")

            severity = str(severity).lower()
            if severity not in SEVERITY_LEVELS:
                raise ConfigError(
                    f"invalid severity {severity!r} for {rule_id}; expected one of {', '.join(SEVERITY_LEVELS)}"
                )
            raw_options.update(self._env_options.get(rule_id, {}))
            try:
                options = rule.options_model.model_validate(raw_options)
            except ValidationError as exc:
                raise ConfigError(
                    f"invalid options for {rule_id}: {exc}", details={"rule_id": rule_id}
                ) from exc
            settings.append(RuleSetting(rule_id=rule_id, severity=severity, options=options))
        return settings
