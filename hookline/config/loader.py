"""Load hookline.yaml and layer HOOKLINE_* environment settings on top."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]
from pydantic import ValidationError

from hookline.config.models import HookLineConfig

CONFIG_ENV_VAR = "HOOKLINE_CONFIG"


class ConfigLoadError(ValueError):
    """Raised when configuration YAML cannot be parsed or validated."""


class YAMLConfigLoader:
    """Find and parse hookline.yaml."""

    DEFAULT_FILENAME = "hookline.yaml"

    @classmethod
    def resolve_path(cls, cli_path: str | None = None) -> Path:
        """HOOKLINE_CONFIG wins, then the CLI path, then ./hookline.yaml."""
        for candidate in (os.environ.get(CONFIG_ENV_VAR, ""), cli_path or ""):
            if candidate.strip():
                return Path(candidate.strip())
        return Path.cwd() / cls.DEFAULT_FILENAME

    @classmethod
    def load_dict(cls, path: str | Path | None = None) -> dict[str, Any]:
        """Parse the file into a mapping; a missing or blank file is an empty mapping."""
        target = Path(path) if path is not None else cls.resolve_path()
        if not target.is_file():
            return {}
        try:
            data = yaml.safe_load(target.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            mark = getattr(exc, "problem_mark", None)
            where = f"{target}:{mark.line + 1}:{mark.column + 1}" if mark is not None else str(target)
            raise ConfigLoadError(f"Invalid YAML at {where}") from exc
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigLoadError(f"Config root must be mapping: {target}")
        return data


def load_config(path: str | Path | None = None) -> HookLineConfig:
    """Validate YAML settings; HOOKLINE_* variables (nested with `__`) override them."""
    file_values = YAMLConfigLoader.load_dict(path)
    try:
        env_values = HookLineConfig().model_dump(exclude_unset=True)
        return HookLineConfig.model_validate(_deep_merge(file_values, env_values))
    except ValidationError as exc:
        raise ConfigLoadError(f"Invalid configuration: {exc}") from exc


def _deep_merge(base: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in updates.items():
        current = merged.get(key)
        merged[key] = _deep_merge(current, value) if isinstance(current, dict) and isinstance(value, dict) else value
    return merged
