# Common utilities and shared modules
"""
Shared components used by analysis, recommendation, popup and automation:
- Data models (Pydantic schemas)
- SQLite record store
- Logging configuration
- Project configuration
"""

from .config import settings, Settings, PROJECT_ROOT, DATA_DIR
from .database import RecordStore, get_connection, init_db
from .logging import setup_logging

__all__ = [
    "settings",
    "Settings",
    "PROJECT_ROOT",
    "DATA_DIR",
    "RecordStore",
    "get_connection",
    "init_db",
    "setup_logging",
]
