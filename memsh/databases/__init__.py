"""Record store backends for MemSH persistence."""

from memsh.databases.base import BaseDatabase
from memsh.databases.sqlite_db import SQLiteDatabase

__all__ = ["BaseDatabase", "SQLiteDatabase"]
