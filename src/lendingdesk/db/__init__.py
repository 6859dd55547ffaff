"""Database module for local SQLite storage."""

from .models import Base, MediaItem, Patron
from .sqlite import Database, get_db, reset_db
from .stores import MediaStore, PatronStore

__all__ = [
    "Base",
    "MediaItem",
    "Patron",
    "Database",
    "get_db",
    "reset_db",
    "MediaStore",
    "PatronStore",
]
