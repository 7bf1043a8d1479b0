"""
config.py
---------
Client options and how they are loaded.

Precedence, lowest first: defaults, config file (YAML or JSON),
environment variables, explicit keyword overrides.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Literal, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

SDK_VERSION = "0.1.0"

DEFAULT_API_URL = "https://api.goabstract.com"
DEFAULT_PREVIEWS_URL = "https://previews.goabstract.com"

# environment variable -> option name
ENV_OPTIONS = {
    "ABSTRACT_TOKEN": "access_token",
    "ABSTRACT_CLI_PATH": "cli_path",
    "ABSTRACT_LOG_LEVEL": "log_level",
}
CONFIG_FILE_ENV = "ABSTRACT_CONFIG"


class ClientOptions(BaseModel):
    """Options shared by the client and its transports."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    access_token: str | None = None
    api_url: str = DEFAULT_API_URL
    previews_url: str = DEFAULT_PREVIEWS_URL
    cli_path: str | None = None
    transport_mode: Literal["api", "cli", "auto"] = "auto"
    api_version: str = "7"
    timeout: float = 30.0
    # None leaves logging to the embedding application
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] | None = None
    log_file: str | None = None

    def merge(self, patch: Mapping[str, Any]) -> ClientOptions:
        """Return new options with ``patch`` applied."""
        payload = self.model_dump(mode="python")
        payload.update(_normalize(patch))
        return ClientOptions.model_validate(payload)


def load_options(config_file: str | Path | None = None, **overrides: Any) -> ClientOptions:
    """Build ClientOptions from defaults, config file, environment and overrides."""
    payload: dict[str, Any] = {}

    config_file = config_file or os.environ.get(CONFIG_FILE_ENV)
    if config_file:
        payload.update(_normalize(_load_text_payload(Path(config_file).read_text())))

    for env_name, option in ENV_OPTIONS.items():
        value = os.environ.get(env_name)
        if value:
            payload[option] = value

    payload.update(_normalize({k: v for k, v in overrides.items() if v is not None}))
    try:
        return ClientOptions.model_validate(payload)
    except ValidationError as exc:
        raise ValueError(f"Invalid client options: {exc}") from exc


def _normalize(values: Mapping[str, Any]) -> dict[str, Any]:
    """camelCase keys (as in config files) to field names, so later layers override earlier ones."""
    return {"".join(f"_{c.lower()}" if c.isupper() else c for c in key): value for key, value in values.items()}


def _load_text_payload(raw: str | bytes) -> dict[str, Any]:
    """Interpret raw text as YAML first, falling back to JSON."""
    text = raw.decode() if isinstance(raw, bytes) else raw
    try:
        loaded = yaml.safe_load(text) or {}
    except yaml.YAMLError:
        loaded = json.loads(text)
    if not isinstance(loaded, Mapping):
        raise ValueError("Config file must contain a mapping")
    return dict(loaded)


__all__ = ["ClientOptions", "load_options", "SDK_VERSION", "DEFAULT_API_URL", "DEFAULT_PREVIEWS_URL"]
