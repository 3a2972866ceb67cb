"""Persistence layer."""

from giveroom.storage.db import Database, db, retry_transient
from giveroom.storage.models import Base, utcnow

__all__ = ["Base", "Database", "db", "retry_transient", "utcnow"]
