# -*- coding: utf-8 -*-
"""
Database Port Interface

Defines an abstract interface for database operations, ensuring the service layer
does not depend on specific database implementations.
"""

from __future__ import annotations

from typing import Any, ContextManager, Dict, List, Optional, Protocol, runtime_checkable


@runtime_checkable
class IDatabase(Protocol):
    """Database Operations Interface

    Provides basic SQL execution and CRUD operations.
    Current implementation: DatabaseManager (SQLite)
    """

    def execute(self, sql: str, params: tuple = ()) -> Any:
        """Execute a SQL statement"""
        ...

    def fetch_one(self, sql: str, params: tuple = ()) -> Optional[Dict[str, Any]]:
        """Fetch a single record

        Returns:
            Record dictionary or None
        """
        ...

    def fetch_all(self, sql: str, params: tuple = ()) -> List[Dict[str, Any]]:
        """Fetch all records"""
        ...

    def insert(self, table: str, data: Dict[str, Any]) -> int:
        """Insert a record

        Returns:
            ID of the inserted record
        """
        ...

    def transaction(self) -> ContextManager[Any]:
        """Group writes into a single commit"""
        ...

    def close(self) -> None:
        """Close the current thread's connection"""
        ...
