import copy
import os
from typing import Any, Dict, Optional

import httpx
import yaml

from .logging import logger
from .settings_resolver import EnvDefaults
from ..utils.deep_merge import deep_merge

DEFAULT_CONFIG_PATH = os.path.join("config", "service.yaml")

DEFAULT_SERVICE_CONFIG: Dict[str, Any] = {
    "providers": {
        "openai": {
            "base_url": "https://api.openai.com/v1",
            "timeout": {"connect": 10.0, "read": 60.0, "write": 10.0, "pool": 10.0},
        },
        "lmstudio": {
            # Local models can be slow to produce a full non-streamed answer
            "timeout": {"connect": 15.0, "read": 120.0, "write": 10.0, "pool": 10.0},
        },
    },
    "log_store": {
        "collection": "logs",
        "server_selection_timeout_ms": 5000,
        "history_limit": 50,
    },
}


class ConfigManager:
    """
    Service-level configuration.

    Holds what does not change per request (provider base URLs, timeouts,
    store tuning) loaded from a YAML file over built-in defaults. Per-request
    settings are resolved separately by ``settings_resolver``.
    """

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or os.getenv("CHAT_RECALL_CONFIG", DEFAULT_CONFIG_PATH)
        self.config = self._load_config()
        self.log_level = os.getenv("LOG_LEVEL", "INFO")

        logger.info("Configuration manager initialized", config={
            "config_path": self.config_path,
            "config_exists": os.path.exists(self.config_path),
            "log_level": self.log_level,
        })

    def _load_config(self) -> Dict[str, Any]:
        config = copy.deepcopy(DEFAULT_SERVICE_CONFIG)
        try:
            with open(self.config_path, 'r') as f:
                loaded = yaml.safe_load(f) or {}
        except FileNotFoundError as e:
            logger.warning(f"Configuration file not found, using defaults: {e}", config={
                "error_type": "file_not_found",
                "file_path": self.config_path,
            })
            return config
        except yaml.YAMLError as e:
            logger.error(f"Error parsing YAML file, using defaults: {e}", config={
                "error_type": "yaml_parse_error",
                "file_path": self.config_path,
            })
            return config

        if not isinstance(loaded, dict):
            logger.warning("Configuration file is not a mapping, using defaults", config={
                "file_path": self.config_path,
            })
            return config
        return deep_merge(config, loaded)

    def get_config(self) -> Dict[str, Any]:
        return self.config

    def reload_config(self):
        self.config = self._load_config()
        logger.info("Configuration reloaded", config={"config_path": self.config_path})

    def env_defaults(self) -> EnvDefaults:
        """Environment fallbacks, re-read on every call."""
        return EnvDefaults.from_environ()

    def provider_settings(self, provider_name: str) -> Dict[str, Any]:
        return self.config.get("providers", {}).get(provider_name, {})

    def provider_timeout(self, provider_name: str) -> httpx.Timeout:
        timeout = self.provider_settings(provider_name).get("timeout") or {}
        return httpx.Timeout(
            connect=float(timeout.get("connect", 10.0)),
            read=float(timeout.get("read", 60.0)),
            write=float(timeout.get("write", 10.0)),
            pool=float(timeout.get("pool", 10.0)),
        )

    @property
    def hosted_base_url(self) -> str:
        return self.provider_settings("openai").get("base_url", "https://api.openai.com/v1")

    @property
    def log_store_settings(self) -> Dict[str, Any]:
        return self.config.get("log_store", {})

    @property
    def history_limit(self) -> int:
        return int(self.log_store_settings.get("history_limit", 50))
