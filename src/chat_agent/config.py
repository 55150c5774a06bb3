"""Configuration loading utilities for the agent.

This module handles layered configuration:
1. Explicit path argument (highest precedence)
2. Environment variable CHAT_AGENT_CONFIG
3. Fallback to "config/default.yaml"

It also supports optional overrides from environment variables with prefix
``CHAT_AGENT__`` (e.g., CHAT_AGENT__MODEL__NAME=llama3.1:latest).
"""

from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict

import yaml

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful AI assistant. Use the tools you are given when they "
    "help answer the user's request, and answer from their results. "
    "Don't make up facts and don't guess tool arguments."
)

DEFAULTS: Dict[str, Any] = {
    "model": {
        "name": "mistral-nemo:latest",
        "temperature": 0.1,
        "base_url": None,
        "api_key": None,
        "timeout": 60.0,
    },
    "memory": {"path": "db.json"},
    "agent": {"system_prompt": DEFAULT_SYSTEM_PROMPT, "max_iterations": 10},
    "server": {"cors_origins": ["*"]},
}


class ConfigError(RuntimeError):
    """The config file exists but cannot be used."""


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = _merge(out[key], value)
        else:
            out[key] = value
    return out


_STRING_KEYS = ("api_key", "base_url")


def _apply_env_overrides(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Apply environment variable overrides with prefix CHAT_AGENT__."""
    prefix = "CHAT_AGENT__"
    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue
        # e.g., CHAT_AGENT__MODEL__BASE_URL -> cfg["model"]["base_url"]
        parts = key[len(prefix):].lower().split("__")
        sub = cfg
        for p in parts[:-1]:
            if p not in sub or not isinstance(sub[p], dict):
                sub[p] = {}
            sub = sub[p]
        leaf = parts[-1]
        # Secrets and URLs stay verbatim even when they look numeric.
        if leaf.endswith(_STRING_KEYS):
            sub[leaf] = value
        # Attempt to parse simple types (bool, int, float)
        elif value.lower() in {"true", "false"}:
            sub[leaf] = value.lower() == "true"
        else:
            try:
                if "." in value:
                    sub[leaf] = float(value)
                else:
                    sub[leaf] = int(value)
            except ValueError:
                sub[leaf] = value
    return cfg


def load_config(path: str | None = None) -> Dict[str, Any]:
    """Load YAML configuration for the agent.

    Parameters
    ----------
    path : str | None
        Optional path to a configuration file. If not provided, the
        environment variable ``CHAT_AGENT_CONFIG`` is consulted. As a
        last resort ``config/default.yaml`` is used.

    Returns
    -------
    Dict[str, Any]
        Built-in defaults, merged with the file, with environment overrides applied.
    """
    if path is None:
        path = os.environ.get("CHAT_AGENT_CONFIG", "config/default.yaml")

    path_obj = Path(path)
    if not path_obj.exists():
        logger.warning("Config file not found at %s. Using defaults.", path_obj)
        return _apply_env_overrides(copy.deepcopy(DEFAULTS))

    with path_obj.open("r", encoding="utf-8") as f:
        try:
            loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse config file {path_obj}: {e}") from e

    if not isinstance(loaded, dict):
        raise ConfigError(f"Invalid config format in {path_obj}, expected dict.")

    return _apply_env_overrides(_merge(DEFAULTS, loaded))


def get_system_prompt(cfg: Dict[str, Any]) -> str:
    sys_prompt = (cfg.get("agent") or {}).get("system_prompt") or DEFAULT_SYSTEM_PROMPT
    return str(sys_prompt).strip()
