"""Configuration models and loading for hookrelay."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from hookrelay.errors import ConfigError
from hookrelay.models import CLASS_PARAM, DEFAULT_PRIORITY, DELEGATE_PARAM, TEMPLATE_PREFIX


class HookBinding(BaseModel):
    """One declarative hook registration, as written in a bindings file."""

    model_config = ConfigDict(extra="forbid")

    name: str
    # Kept as a string so unknown kinds reach the dispatcher and are rejected there.
    kind: str = "function"
    target: str
    priority: int | None = None
    delegate: bool = False
    handler_class: str | None = None
    pattern: bool = False
    params: dict[str, Any] = Field(default_factory=dict)

    def registration_params(self) -> dict[str, Any]:
        params = dict(self.params)
        if self.delegate:
            params[DELEGATE_PARAM] = True
        if self.handler_class:
            params[CLASS_PARAM] = self.handler_class
        return params


class DispatchConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    template_prefix: str = TEMPLATE_PREFIX
    default_priority: int = DEFAULT_PRIORITY
    hooks: list[HookBinding] = Field(default_factory=list)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        elif key == "hooks" and isinstance(value, list) and isinstance(merged.get(key), list):
            # Bindings accumulate across layers; later layers register later.
            merged[key] = [*merged[key], *value]
        else:
            merged[key] = value
    return merged


def load_yaml_mapping(path: str | Path) -> dict[str, Any]:
    source = Path(path)
    if not source.exists():
        raise ConfigError(f"Config file not found: {source}")
    try:
        data = yaml.safe_load(source.read_text())
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {source}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"YAML at {source} must decode to a mapping")
    return data


def load_effective_config(
    path: str | Path | None = None,
    system_defaults: dict[str, Any] | None = None,
    runtime_override: dict[str, Any] | None = None,
) -> DispatchConfig:
    """Load config with precedence runtime > file > system defaults."""
    merged: dict[str, Any] = {}
    if system_defaults:
        merged = _deep_merge(merged, system_defaults)
    if path is not None:
        merged = _deep_merge(merged, load_yaml_mapping(path))
    if runtime_override:
        merged = _deep_merge(merged, runtime_override)

    try:
        return DispatchConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid hookrelay config: {exc}") from exc
