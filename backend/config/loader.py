"""
Configuration loader
Reads config.toml once and exposes dotted-key access to its values
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import toml

from core.logger import get_logger

logger = get_logger(__name__)

CONFIG_ENV_VAR = "TIMEBANK_CONFIG"


def _default_config_path() -> Path:
    """Project configuration shipped next to this module"""
    return Path(__file__).parent / "config.toml"


class ConfigLoader:
    """Configuration loader with dotted-key lookups

    Example:
        config = get_config()
        interval = config.get("expiration.sweep_interval_seconds", 10)
    """

    def __init__(self, config_path: Optional[Path] = None):
        env_path = os.getenv(CONFIG_ENV_VAR)
        if config_path is None and env_path:
            config_path = Path(env_path)
        self.config_path = config_path or _default_config_path()
        self._data: Dict[str, Any] = {}
        self.load()

    def load(self) -> Dict[str, Any]:
        """Load (or reload) the configuration file"""
        if not self.config_path.exists():
            logger.warning(
                f"Config file not found: {self.config_path}, using built-in defaults"
            )
            self._data = {}
            return self._data

        with open(self.config_path, "r", encoding="utf-8") as f:
            self._data = toml.load(f)

        logger.debug(f"Loaded configuration from {self.config_path}")
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value by dotted key

        Args:
            key: Dotted key such as "database.path"
            default: Returned when any segment is missing

        Returns:
            Configured value or default
        """
        node: Any = self._data
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node


_config: Optional[ConfigLoader] = None


def get_config() -> ConfigLoader:
    """Get global configuration loader"""
    global _config

    if _config is None:
        _config = ConfigLoader()

    return _config


def reload_config(config_path: Optional[Path] = None) -> ConfigLoader:
    """Replace the global configuration, e.g. after the file changed"""
    global _config

    _config = ConfigLoader(config_path)
    return _config
