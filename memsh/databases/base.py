"""
Abstract base class for MemSH record stores.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class BaseDatabase(ABC):
    """Abstract base class for the storage backend behind the filesystem.

    A record store maps fixed logical keys to independent JSON documents.
    """

    @abstractmethod
    def initialize(self) -> None:
        """Initialize the database schema."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the database connection."""
        pass

    # =========================================================================
    # Record operations
    # =========================================================================

    @abstractmethod
    def get_record(self, key: str) -> Any | None:
        """Get the decoded document stored under ``key``, or None.

        Undecodable documents are reported as missing.
        """
        pass

    @abstractmethod
    def put_record(self, key: str, value: Any) -> None:
        """Store (insert or replace) a JSON-serializable document."""
        pass

    @abstractmethod
    def delete_record(self, key: str) -> bool:
        """Delete a record. Returns True if deleted."""
        pass

    @abstractmethod
    def list_records(self, prefix: str = "") -> list[str]:
        """List record keys, optionally filtered by prefix."""
        pass

    def __enter__(self) -> "BaseDatabase":
        self.initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
