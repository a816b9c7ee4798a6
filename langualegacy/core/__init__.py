"""Core app configuration and database."""

from langualegacy.core.config import get_settings, settings
from langualegacy.core.database import get_db

__all__ = ["get_settings", "settings", "get_db"]
