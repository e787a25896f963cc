from .settings import Settings, settings, parse_duration
from .database import DatabaseManager, db_manager

__all__ = ["Settings", "settings", "parse_duration", "DatabaseManager", "db_manager"]
