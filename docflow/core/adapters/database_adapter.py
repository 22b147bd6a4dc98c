"""Database adapter abstraction.

Provides a database-agnostic interface for the repository layer.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, List, Dict, Optional


class DatabaseAdapter(ABC):
    """Abstract database adapter for SQL operations."""

    @abstractmethod
    def execute(self, query: str, params: tuple = ()) -> Any:
        """
        Execute a query and return cursor/result.

        Args:
            query: SQL query using ``?`` placeholders
            params: Query parameters

        Returns:
            Database cursor or result
        """
        raise NotImplementedError

    @abstractmethod
    def fetchone(self, query: str, params: tuple = ()) -> Optional[Dict[str, Any]]:
        """Fetch single row as dictionary (or None)."""
        raise NotImplementedError

    @abstractmethod
    def fetchall(self, query: str, params: tuple = ()) -> List[Dict[str, Any]]:
        """Fetch all rows as list of dictionaries."""
        raise NotImplementedError

    @abstractmethod
    def insert(self, table: str, data: Dict[str, Any]) -> int:
        """Insert a row and return the last inserted row id."""
        raise NotImplementedError

    @abstractmethod
    def update(self, table: str, data: Dict[str, Any], where: str, where_params: tuple = ()) -> int:
        """
        Update rows.

        Returns:
            Number of affected rows. Callers use 0 to detect a lost
            compare-and-set.
        """
        raise NotImplementedError

    @abstractmethod
    def delete(self, table: str, where: str, where_params: tuple = ()) -> int:
        """Delete rows and return count of affected rows."""
        raise NotImplementedError

    @abstractmethod
    def executescript(self, script: str) -> None:
        """Execute multiple SQL statements (schema setup)."""
        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        raise NotImplementedError
