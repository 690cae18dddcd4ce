"""Persistence for imported leads, import history, and raw uploads."""

from .files import UploadStore, sanitize_filename
from ..models import HistoryRecord
from .repository import ImportPersistenceError, LeadRepository, companion_comment
from .schema import Base, Comment, ImportHistory, Lead, User, create_db_engine, create_tables

__all__ = [
    "Base",
    "Comment",
    "HistoryRecord",
    "ImportHistory",
    "ImportPersistenceError",
    "Lead",
    "LeadRepository",
    "UploadStore",
    "User",
    "companion_comment",
    "create_db_engine",
    "create_tables",
    "sanitize_filename",
]
