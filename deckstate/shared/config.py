"""
Configuration management for the editor engine.
"""

import json
import os
from typing import Any

import yaml

from dotenv import load_dotenv


class ServiceConfig:
    """Configuration management using environment variables and an optional YAML tuning file."""

    def __init__(self) -> None:
        """Initialize configuration by loading environment variables."""
        # .env lives at the repository root, next to setup.py
        env_path = os.path.abspath(os.path.join(os.path.dirname(__file__), "../../.env"))
        load_dotenv(dotenv_path=env_path, override=False)
        self.config: dict[str, Any] = {}
        self.pipeline_config: dict[str, Any] = {}
        self.pipeline_config_path = os.getenv(
            "EDITOR_CONFIG_PATH",
            os.path.join(os.path.dirname(__file__), "../../config/editor.yaml"),
        )
        self.load_from_env()
        self.load_pipeline_config()

    def load_from_env(self) -> None:
        """Load configuration from environment variables."""
        self.config = {
            "encryption_secret": os.getenv("FIELD_ENCRYPTION_SECRET"),
            "database_url": os.getenv("DATABASE_URL"),
            "remote_store_driver": os.getenv("REMOTE_STORE_DRIVER", "memory"),
            "local_storage_root": os.getenv("LOCAL_STORAGE_ROOT", "./.deckstate"),
            "persistence_timeout_seconds": float(os.getenv("PERSISTENCE_TIMEOUT_SECONDS", "10")),
            "status_ttl_seconds": float(os.getenv("STATUS_TTL_SECONDS", "3")),
            "autosave": os.getenv("EDITOR_AUTOSAVE", "true").lower() == "true",
            "log_level": os.getenv("LOG_LEVEL", "INFO"),
            "allowed_origins": json.loads(os.getenv("ALLOWED_ORIGINS", '["*"]')),
        }

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by key.

        Args:
            key: Configuration key
            default: Default value if key not found

        Returns:
            Configuration value
        """
        value = self.config.get(key, default)
        return default if value is None else value

    def set(self, key: str, value: Any) -> None:
        """
        Set configuration value.

        Args:
            key: Configuration key
            value: Configuration value
        """
        self.config[key] = value

    def reload(self) -> None:
        """Reload configuration from environment variables."""
        self.load_from_env()
        self.load_pipeline_config()

    def load_pipeline_config(self) -> None:
        """Load engine tuning values from YAML file."""
        path = os.path.abspath(self.pipeline_config_path)
        try:
            with open(path, "r", encoding="utf-8") as stream:
                data = yaml.safe_load(stream) or {}
        except FileNotFoundError:
            data = {}
        self.pipeline_config = data

    def get_pipeline_value(self, path: str, default: Any = None) -> Any:
        """Retrieve a tuning value via dotted path (``history.limit``)."""
        env_override_key = f"EDITOR_FLAG_{path.replace('.', '_').upper()}"
        env_value = os.getenv(env_override_key)
        if env_value is not None:
            return self._coerce_env_value(env_value, default)

        node: Any = self.pipeline_config
        for part in path.split("."):
            if isinstance(node, dict) and part in node:
                node = node[part]
            else:
                return default
        return node if node is not None else default

    def set_pipeline_config(self, pipeline_config: dict[str, Any]) -> None:
        """Override tuning configuration (useful for tests)."""
        self.pipeline_config = pipeline_config

    @staticmethod
    def _coerce_env_value(raw: str, default: Any) -> Any:
        lowered = raw.lower()
        if lowered in {"true", "false"}:
            return lowered == "true"
        if lowered.replace(".", "", 1).isdigit():
            try:
                return float(lowered) if "." in lowered else int(lowered)
            except ValueError:
                return raw
        return raw or default


# Global configuration instance
config = ServiceConfig()
