"""
Configuration for store-context.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .models import ConfigurationError

DEFAULT_MODEL = "gpt-5-nano"
DEFAULT_SEARCH_MODEL = "gpt-5-mini"
DEFAULT_TIMEOUT_MS = 30000
DEFAULT_CONFIG_PATH = Path("store_context.yaml")

# Top-level key in the YAML config file
CONFIG_SECTION = "store-context"


@dataclass
class LookupConfig:
    """Complete store-context configuration."""

    api_key: str | None = None
    api_key_env: str = "OPENAI_API_KEY"
    model: str = DEFAULT_MODEL  # primary (fast) completion model
    search_model: str = DEFAULT_SEARCH_MODEL  # web-search fallback model
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    web_search_enabled: bool = True
    base_url: str | None = None

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LookupConfig":
        """Create config from a dictionary (e.g., from YAML)."""
        config = cls()

        if "api_key_env" in data:
            config.api_key_env = data["api_key_env"]
        if "model" in data:
            config.model = data["model"]
        if "search_model" in data:
            config.search_model = data["search_model"]
        if "timeout_ms" in data:
            config.timeout_ms = _parse_timeout(data["timeout_ms"], "timeout_ms")
        if "web_search_enabled" in data:
            config.web_search_enabled = bool(data["web_search_enabled"])
        if "base_url" in data:
            config.base_url = data["base_url"]

        return config

    @classmethod
    def from_yaml(cls, path: Path) -> "LookupConfig":
        """Load config from a YAML file. A missing file yields defaults."""
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data.get(CONFIG_SECTION, {}) or {})

    def apply_env(self, environ: Mapping[str, str] | None = None) -> "LookupConfig":
        """
        Overlay values from environment variables.

        The credential comes from the variable named by api_key_env
        (OPENAI_API_KEY by default). OPENAI_MODEL, OPENAI_SEARCH_MODEL and
        API_TIMEOUT (milliseconds) override the file values when set.
        """
        env = os.environ if environ is None else environ

        api_key = env.get(self.api_key_env)
        if api_key:
            self.api_key = api_key
        if env.get("OPENAI_MODEL"):
            self.model = env["OPENAI_MODEL"]
        if env.get("OPENAI_SEARCH_MODEL"):
            self.search_model = env["OPENAI_SEARCH_MODEL"]
        if env.get("API_TIMEOUT"):
            self.timeout_ms = _parse_timeout(env["API_TIMEOUT"], "API_TIMEOUT")

        return self

    def validate(self) -> None:
        """Fail fast on configuration that cannot work."""
        if not self.api_key:
            raise ConfigurationError(
                f"{self.api_key_env} is not set in environment variables. "
                "Please create a .env file with your API key."
            )
        if self.timeout_ms <= 0:
            raise ConfigurationError(
                f"Timeout must be a positive number of milliseconds, got {self.timeout_ms}"
            )

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary for logging. Never includes the key."""
        return {
            "api_key_env": self.api_key_env,
            "api_key_set": bool(self.api_key),
            "model": self.model,
            "search_model": self.search_model,
            "timeout_ms": self.timeout_ms,
            "web_search_enabled": self.web_search_enabled,
            "base_url": self.base_url,
        }


def _parse_timeout(value: Any, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from e


def load_config(
    path: Path = DEFAULT_CONFIG_PATH,
    environ: Mapping[str, str] | None = None,
) -> LookupConfig:
    """Read the YAML file, overlay the environment, and validate."""
    config = LookupConfig.from_yaml(path).apply_env(environ)
    config.validate()
    return config
