"""Database adapters."""

from wikihub.adapters.db.app_db import AppDatabase

__all__ = ["AppDatabase"]
