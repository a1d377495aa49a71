"""Config Loader - Loads mapper configuration.

Reads YAML files with ${ENV_VAR} substitution and validates them into a
MapperConfig. The mapping fields may sit under a top-level ``mapper:`` key
or at the top level.

Example:
    mapper:
      default_url: https://${ORDERS_HOST}/orders
      extract_payload: true
      charset: UTF-8
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from outbound_http.errors import ConfigError
from outbound_http.models import MapperConfig

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


def load_mapper_config(config_path: Path) -> MapperConfig:
    """Load mapper configuration from YAML with ${ENV_VAR} substitution."""
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file: {e}") from e

    if raw_config is None:
        raw_config = {}
    if not isinstance(raw_config, dict):
        raise ConfigError("Config file must be a YAML mapping")

    if "mapper" in raw_config:
        raw_config = raw_config["mapper"] or {}
        if not isinstance(raw_config, dict):
            raise ConfigError("'mapper' section must be a YAML mapping")

    raw_config = _substitute_env_vars(raw_config)

    try:
        return MapperConfig.model_validate(raw_config)
    except ValidationError as e:
        raise ConfigError(f"Invalid config structure: {e}") from e


def _substitute_env_vars(data: Any) -> Any:
    """Recursively substitute ${ENV_VAR} patterns in strings within data."""
    if isinstance(data, str):
        return _substitute_string(data)
    elif isinstance(data, dict):
        return {k: _substitute_env_vars(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_substitute_env_vars(item) for item in data]
    return data


def _substitute_string(s: str) -> str:
    """Substitute ${ENV_VAR} patterns. Raises ConfigError if env var is not set."""

    def replacer(match: re.Match) -> str:
        var_name = match.group(1)
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigError(f"Environment variable '{var_name}' is not set")
        return value

    return _ENV_VAR_PATTERN.sub(replacer, s)
