"""YAML configuration for the pastepatch command line host."""

from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

__all__ = [
    "DEFAULT_CONFIG_NAME",
    "DEFAULT_CONFIG_TEMPLATE",
    "ConfigError",
    "EngineSettings",
    "PastePatchSettings",
    "ReportSettings",
    "WorkspaceSettings",
    "load_config",
    "load_settings",
    "settings_from_config",
]

DEFAULT_CONFIG_NAME = "pastepatch.yaml"
MAX_PATCH_BYTES_ENV = "PASTEPATCH_MAX_PATCH_BYTES"
_DEFAULT_MAX_PATCH_BYTES = 200_000

DEFAULT_CONFIG_TEMPLATE: Dict[str, Any] = {
    "workspace": {
        "root": ".",
        "encoding": "utf-8",
    },
    "engine": {
        "max_patch_bytes": None,
    },
    "report": {
        "show_details": True,
    },
}


class ConfigError(ValueError):
    """Raised when the configuration file cannot be used."""


class SettingsModel(BaseModel):
    """Base Pydantic model with strict field handling."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class WorkspaceSettings(SettingsModel):
    root: Path = Path(".")
    encoding: str = "utf-8"


class EngineSettings(SettingsModel):
    max_patch_bytes: int = Field(default=_DEFAULT_MAX_PATCH_BYTES, ge=0)


class ReportSettings(SettingsModel):
    show_details: bool = True


class PastePatchSettings(SettingsModel):
    """Validated configuration used by the CLI."""

    workspace: WorkspaceSettings = Field(default_factory=WorkspaceSettings)
    engine: EngineSettings = Field(default_factory=EngineSettings)
    report: ReportSettings = Field(default_factory=ReportSettings)


def _merge(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Path) -> Dict[str, Any]:
    """Load YAML configuration from disk merged over the default template.

    A missing file yields the template unchanged.
    """
    if not config_path.exists():
        return copy.deepcopy(DEFAULT_CONFIG_TEMPLATE)

    try:
        with config_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as error:
        raise ConfigError(f"Failed to parse config: {error}") from error

    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a mapping at the top level.")

    return _merge(DEFAULT_CONFIG_TEMPLATE, data)


def _env_max_patch_bytes(env: Mapping[str, str]) -> int | None:
    raw = env.get(MAX_PATCH_BYTES_ENV)
    if raw is None:
        return None
    try:
        parsed = int(str(raw).strip())
    except ValueError:
        return None
    return parsed if parsed >= 0 else None


def settings_from_config(
    config: Mapping[str, Any],
    *,
    base_dir: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> PastePatchSettings:
    """Validate a config mapping into :class:`PastePatchSettings`.

    ``workspace.root`` is resolved relative to ``base_dir``. The
    ``PASTEPATCH_MAX_PATCH_BYTES`` environment variable applies only when the
    config leaves ``engine.max_patch_bytes`` unset.
    """
    env_mapping = os.environ if env is None else env
    data = _merge(DEFAULT_CONFIG_TEMPLATE, config)

    if data.get("engine") is None:
        data["engine"] = {}
    engine_cfg = data["engine"]
    if isinstance(engine_cfg, dict) and engine_cfg.get("max_patch_bytes") is None:
        env_limit = _env_max_patch_bytes(env_mapping)
        engine_cfg["max_patch_bytes"] = env_limit if env_limit is not None else _DEFAULT_MAX_PATCH_BYTES

    try:
        settings = PastePatchSettings.model_validate(data)
    except ValidationError as error:
        raise ConfigError(f"Invalid configuration: {error}") from error

    root = settings.workspace.root
    if not root.is_absolute():
        root = ((base_dir or Path.cwd()) / root).resolve()
    return settings.model_copy(update={"workspace": settings.workspace.model_copy(update={"root": root})})


def load_settings(config_path: Path, *, env: Mapping[str, str] | None = None) -> PastePatchSettings:
    """Load and validate the configuration stored at ``config_path``."""
    config = load_config(config_path)
    return settings_from_config(config, base_dir=config_path.resolve().parent, env=env)
