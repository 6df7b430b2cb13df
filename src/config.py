"""Configuration management for the streaming relay."""

from __future__ import annotations

import os
from typing import Any

import yaml
from dotenv import load_dotenv

DEFAULT_API_KEY_ENV = "NVIDIA_NIM_API_KEY"


class Configuration:
    """Manages configuration and environment variables for the relay."""

    def __init__(self, config_path: str | None = None) -> None:
        """Initialize configuration from YAML and environment variables."""
        self.load_env()  # Load .env for API keys
        self._config = self._load_yaml_config(config_path)
        self._fallback_api_key = self._read_fallback_api_key()

    @classmethod
    def from_dict(
        cls,
        config: dict[str, Any],
        fallback_api_key: str | None = None,
    ) -> Configuration:
        """Build a configuration without touching the filesystem or env."""
        if not isinstance(config, dict):
            raise ValueError(f"Config must be a dict, got {type(config)}")
        instance = cls.__new__(cls)
        instance._config = config
        instance._fallback_api_key = fallback_api_key or None
        return instance

    @staticmethod
    def load_env() -> None:
        """Load environment variables from .env file."""
        load_dotenv()

    @staticmethod
    def _load_yaml_config(config_path: str | None) -> dict[str, Any]:
        """Load configuration from YAML file."""
        if config_path is None:
            config_path = os.path.join(os.path.dirname(__file__), "config.yaml")
        with open(config_path) as file:
            config = yaml.safe_load(file)
            if not isinstance(config, dict):
                raise ValueError(
                    f"Config file must be YAML dict, got {type(config)}"
                )
            return config

    def _read_fallback_api_key(self) -> str | None:
        # Read once at startup; requests never consult the environment.
        env_key = self._config.get("upstream", {}).get(
            "api_key_env", DEFAULT_API_KEY_ENV
        )
        api_key = os.getenv(env_key, "").strip()
        return api_key or None

    @property
    def fallback_api_key(self) -> str | None:
        """Process-wide API key used when a request carries none."""
        return self._fallback_api_key

    def get_upstream_config(self) -> dict[str, Any]:
        """Get completion provider configuration from YAML.

        Returns:
            Upstream configuration dictionary with validated values.

        Raises:
            ValueError: If required upstream parameters are missing or invalid.
        """
        upstream_config = self._config.get("upstream", {})

        required_keys = ["base_url", "path", "model", "max_tokens"]
        for key in required_keys:
            if key not in upstream_config:
                raise ValueError(
                    f"upstream.{key} must be explicitly configured in config.yaml"
                )

        if not str(upstream_config["base_url"]).startswith(("http://", "https://")):
            raise ValueError("upstream.base_url must be an http(s) URL")
        if upstream_config["max_tokens"] < 1:
            raise ValueError("upstream.max_tokens must be at least 1")

        timeouts = upstream_config.get("timeouts") or {}
        for key in ("connect_timeout", "read_timeout", "write_timeout", "pool_timeout"):
            value = timeouts.get(key)
            if value is not None and value <= 0:
                raise ValueError(f"upstream.timeouts.{key} must be positive or null")

        return {**upstream_config, "timeouts": timeouts}

    def get_mode_temperature(self, mode: str) -> float:
        """Get the sampling temperature for a relay mode.

        Raises:
            ValueError: If the mode has no configured temperature.
        """
        temperatures = self._config.get("modes", {}).get("temperature", {})
        if mode not in temperatures:
            raise ValueError(
                f"modes.temperature.{mode} must be explicitly configured "
                "in config.yaml"
            )

        temperature = temperatures[mode]
        if not 0 <= temperature <= 2:
            raise ValueError(f"modes.temperature.{mode} must be between 0 and 2")
        return float(temperature)

    def get_server_config(self) -> dict[str, Any]:
        """Get HTTP server configuration from YAML.

        Returns:
            Server configuration with host and port.
        """
        server_config = self._config.get("server", {})
        return {
            "host": server_config.get("host", "127.0.0.1"),
            "port": int(server_config.get("port", 5000)),
        }

    def get_logging_config(self) -> dict[str, Any]:
        """Get logging configuration from YAML."""
        return self._config.get("logging", {})
