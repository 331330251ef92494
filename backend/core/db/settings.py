"""
Settings Repository - Runtime key/value settings (timezone and friends)
"""

from pathlib import Path
from typing import Optional

from core.logger import get_logger

from .base import BaseRepository

logger = get_logger(__name__)

TIMEZONE_KEY = "timezone"


class SettingsRepository(BaseRepository):
    """Repository for managing application settings in the database"""

    def __init__(self, db_path: Path):
        super().__init__(db_path)

    def set(
        self,
        key: str,
        value: str,
        setting_type: str = "string",
        description: Optional[str] = None,
    ) -> None:
        """
        Set a configuration item

        Args:
            key: Setting key
            value: Setting value (stored as string)
            setting_type: Type of the setting (string, bool, int)
            description: Optional description
        """
        try:
            self._execute_query(
                """
                INSERT INTO settings (key, value, type, description, updated_at)
                VALUES (?, ?, ?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT (key) DO UPDATE SET
                    value = excluded.value,
                    type = excluded.type,
                    description = COALESCE(excluded.description, settings.description),
                    updated_at = CURRENT_TIMESTAMP
                """,
                (key, value, setting_type, description),
            )
            logger.debug(f"Set setting: {key} = {value}")
        except Exception as e:
            logger.error(f"Failed to set setting {key}: {e}", exc_info=True)
            raise

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """
        Get a configuration item

        Args:
            key: Setting key
            default: Default value if key not found

        Returns:
            Setting value or default
        """
        try:
            row = self._execute_query(
                "SELECT value FROM settings WHERE key = ?", (key,), fetch_one=True
            )
            if row:
                return row["value"]
            return default
        except Exception as e:
            logger.error(f"Failed to get setting {key}: {e}", exc_info=True)
            return default

    def get_timezone(self, default: str) -> str:
        return self.get(TIMEZONE_KEY, default) or default

    def set_timezone(self, tz_name: str) -> None:
        self.set(TIMEZONE_KEY, tz_name, description="IANA timezone for day boundaries")
