"""
Default filesystem locations for user data
"""

from pathlib import Path


def get_data_dir() -> Path:
    """Directory holding the database, created on first use"""
    data_dir = Path.home() / ".config" / "timebank"
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir


def get_db_path() -> Path:
    return get_data_dir() / "timebank.db"
