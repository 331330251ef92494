"""
Unified logging system
Root logger setup driven by the [logging] section of config.toml
"""

import logging
import logging.handlers
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import toml

CONFIG_ENV_VAR = "TIMEBANK_CONFIG"

CONSOLE_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
FILE_FORMAT = (
    "%(asctime)s - %(levelname)s - %(name)s - %(filename)s:%(lineno)d - %(message)s"
)
LOG_FILE_NAME = "timebank_backend.log"
ERROR_FILE_NAME = "error.log"

_SIZE_UNITS = {"KB": 1024, "MB": 1024**2, "GB": 1024**3}


def _get_project_config_path() -> Path:
    """Get project configuration file path

    TIMEBANK_CONFIG wins when set; otherwise the config.toml that ships
    inside the backend config package is used.
    """
    env_path = os.getenv(CONFIG_ENV_VAR)
    if env_path:
        config_file = Path(env_path)
    else:
        config_file = Path(__file__).parent.parent / "config" / "config.toml"

    if not config_file.exists():
        raise FileNotFoundError(f"Project config file not found: {config_file}")

    return config_file


def _load_logging_section() -> Dict[str, Any]:
    with open(_get_project_config_path(), "r", encoding="utf-8") as f:
        return toml.load(f).get("logging", {})


def _level(name: str) -> int:
    return getattr(logging, str(name).upper(), logging.INFO)


def parse_size(size: Any) -> int:
    """Byte count for values like "512KB", "10MB" or a plain integer"""
    text = str(size).strip().upper()
    for suffix, factor in _SIZE_UNITS.items():
        if text.endswith(suffix):
            return int(text[: -len(suffix)]) * factor
    return int(text)


def build_handlers(logging_config: Dict[str, Any]) -> List[logging.Handler]:
    """
    Console handler plus two rotating files under ``logs_dir``

    The main file takes every record; the error file only ERROR and above,
    which is where failed sweeps show up.
    """
    logs_dir = Path(logging_config.get("logs_dir", "./logs"))
    logs_dir.mkdir(parents=True, exist_ok=True)
    max_bytes = parse_size(logging_config.get("max_file_size", "10MB"))
    backups = int(logging_config.get("backup_count", 5))

    console = logging.StreamHandler()
    console.setLevel(logging.DEBUG)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT))

    handlers: List[logging.Handler] = [console]
    for file_name, level in ((LOG_FILE_NAME, logging.DEBUG), (ERROR_FILE_NAME, logging.ERROR)):
        rotating = logging.handlers.RotatingFileHandler(
            logs_dir / file_name,
            maxBytes=max_bytes,
            backupCount=backups,
            encoding="utf-8",
        )
        rotating.setLevel(level)
        rotating.setFormatter(logging.Formatter(FILE_FORMAT))
        handlers.append(rotating)
    return handlers


def _init_root_level_early():
    """Apply the configured level before any handler exists"""
    try:
        logging.getLogger().setLevel(_level(_load_logging_section().get("level", "INFO")))
    except Exception:
        logging.getLogger().setLevel(logging.INFO)


_init_root_level_early()


class LoggerManager:
    """Owns the root logger configuration and hands out named loggers"""

    def __init__(self):
        self._loggers: Dict[str, logging.Logger] = {}
        self._configure_root()

    def _configure_root(self):
        logging_config = _load_logging_section()

        root = logging.getLogger()
        root.setLevel(_level(logging_config.get("level", "INFO")))
        root.handlers.clear()
        for handler in build_handlers(logging_config):
            root.addHandler(handler)

    def get_logger(self, name: str) -> logging.Logger:
        if name not in self._loggers:
            self._loggers[name] = logging.getLogger(name)
        return self._loggers[name]


# Created on the first get_logger() call
_logger_manager: Optional[LoggerManager] = None


def get_logger(name: str) -> logging.Logger:
    """Convenience function to get logger"""
    global _logger_manager

    if _logger_manager is None:
        _logger_manager = LoggerManager()

    return _logger_manager.get_logger(name)
