# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
# Purpose: Defines the config unit so this responsibility stays isolated, testable, and easy to evolve.

"""
Configuration loading utilities for chatrelay.

Conventions:
- Relay config: resources/config/relay.json (optional).
- Environment variables override JSON values.
- JSON values can reference environment variables using ${VAR_NAME} placeholders.

The loader is cheap and holds no cache, so the application can resolve it on
every request and pick up environment changes without a restart.
"""

from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError

from chatrelay.models.config import RelayConfig
from chatrelay.services.exceptions import ConfigurationError

BASE_DIR = Path(__file__).resolve().parent.parent.parent.parent
CONFIG_DIR = BASE_DIR / "resources" / "config"
RELAY_CONFIG_PATH = CONFIG_DIR / "relay.json"

_ENV_PATTERN = re.compile(r"\$\{([A-Z0-9_]+)\}")


def _interpolate_env(value: Any) -> Any:
    """Interpolate ${VAR} placeholders within strings using environment variables.

    Non-string types are returned unchanged.
    """
    if isinstance(value, str):

        def replace(match: re.Match[str]) -> str:
            var = match.group(1)
            return os.getenv(var, match.group(0))  # leave placeholder if unset

        return _ENV_PATTERN.sub(replace, value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(v) for v in value]
    return value


def load_json_file(path: os.PathLike[str] | str | None) -> Dict[str, Any]:
    """Load JSON from path if it exists; return empty dict if missing.

    Raises ValueError for malformed JSON.
    """
    if path is None:
        return {}
    p = Path(path)
    if not p.exists():
        return {}
    try:
        with p.open("r", encoding="utf-8") as f:
            data = json.load(f)
        return data if isinstance(data, dict) else {}
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON at {p}: {e}") from e


def _env_overrides_for_relay() -> Dict[str, Any]:
    """Collect relay environment variables into a flat dict.

    Supported variables:
    - PYTHON_BACKEND_URL -> backend_url
    - CHATRELAY_PROXY_TIMEOUT_S -> proxy_timeout_s (float if parseable)
    - CHATRELAY_TITLE -> title
    """
    result: Dict[str, Any] = {}
    backend_url = os.getenv("PYTHON_BACKEND_URL")
    timeout_s = os.getenv("CHATRELAY_PROXY_TIMEOUT_S")
    title = os.getenv("CHATRELAY_TITLE")

    if backend_url:
        result["backend_url"] = backend_url
    if timeout_s:
        try:
            result["proxy_timeout_s"] = float(timeout_s)
        except ValueError:
            result["proxy_timeout_s"] = timeout_s
    if title:
        result["title"] = title
    return result


def _validate_backend_url(backend_url: str) -> None:
    """Reject base URLs the proxy could never reach over HTTP."""
    if not (backend_url.startswith("http://") or backend_url.startswith("https://")):
        raise ConfigurationError(f"Invalid backend_url scheme: {backend_url}")


def load_relay_config(
    path: os.PathLike[str] | str | None = RELAY_CONFIG_PATH,
    defaults: Optional[Mapping[str, Any]] = None,
) -> RelayConfig:
    """Load relay configuration applying precedence and interpolation.

    Precedence: env overrides > JSON file > defaults > model defaults
    """
    merged: Dict[str, Any] = dict(defaults or {})
    merged.update(_interpolate_env(load_json_file(path)))
    merged.update(_env_overrides_for_relay())

    try:
        config = RelayConfig(**merged)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid relay configuration: {e}") from e
    _validate_backend_url(config.backend_url)
    return config
