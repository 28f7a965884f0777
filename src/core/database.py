"""
Database Management Module

Provides SQLite database operation encapsulation for the reference library.
"""

import sqlite3
import re
import time
from typing import Optional, List, Dict, Any
from pathlib import Path
import threading
from contextlib import contextmanager
import logging

logger = logging.getLogger(__name__)


class DatabaseManager:
    """
    Database Manager

    Provides thread-safe SQLite operation encapsulation. Each thread gets its
    own connection; writes are serialized through a single lock.

    Example:
        db = DatabaseManager("library.db")

        # Execute query
        items = db.fetch_all("SELECT * FROM items WHERE library_id = ?", (1,))

        # Use transaction
        with db.transaction():
            db.execute("INSERT INTO item_tags ...")
    """

    @staticmethod
    def _get_default_db_path() -> str:
        """Get the default database path in the user data directory"""
        import sys
        import os

        if sys.platform == "win32":
            base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
        elif sys.platform == "darwin":
            base = Path.home() / "Library" / "Application Support"
        else:
            base = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))

        db_dir = base / "ai-tagger"
        db_dir.mkdir(parents=True, exist_ok=True)
        return str(db_dir / "library.db")

    def __init__(self, db_path: Optional[str] = None):
        self._db_path = db_path or self._get_default_db_path()
        self._local = threading.local()
        self._write_lock = threading.RLock()
        self._init_schema()

    @property
    def db_path(self) -> str:
        return self._db_path

    @property
    def _conn(self) -> sqlite3.Connection:
        """Get thread-local connection"""
        if not hasattr(self._local, 'connection') or self._local.connection is None:
            # Set timeout to 30 seconds to handle concurrent access better
            self._local.connection = sqlite3.connect(self._db_path, timeout=30.0)
            self._local.connection.row_factory = sqlite3.Row

            # Enable WAL mode for better concurrency
            with self._write_lock:
                self._local.connection.execute("PRAGMA journal_mode=WAL")
                self._local.connection.execute("PRAGMA synchronous=NORMAL")

            self._local.connection.execute("PRAGMA foreign_keys = ON")

            self._local.in_transaction = False
        return self._local.connection

    @contextmanager
    def transaction(self):
        """Transaction context manager

        Write operations within this context are not automatically committed,
        but are committed or rolled back collectively when the context ends.
        """
        with self._write_lock:
            conn = self._conn
            self._local.in_transaction = True
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                self._local.in_transaction = False

    @staticmethod
    def _strip_leading_sql_comments(sql: str) -> str:
        s = sql.lstrip()
        while True:
            if s.startswith("--"):
                newline_index = s.find("\n")
                if newline_index == -1:
                    return ""
                s = s[newline_index + 1 :].lstrip()
                continue
            if s.startswith("/*"):
                end_index = s.find("*/")
                if end_index == -1:
                    return ""
                s = s[end_index + 2 :].lstrip()
                continue
            return s

    @classmethod
    def _is_write_sql(cls, sql: str) -> bool:
        write_keywords = ("INSERT", "UPDATE", "DELETE", "REPLACE", "CREATE", "DROP", "ALTER")

        stripped = cls._strip_leading_sql_comments(sql)
        sql_upper = stripped.lstrip().upper()
        if not sql_upper:
            return False

        match = re.match(r"[A-Z]+", sql_upper)
        first_keyword = match.group(0) if match else ""
        if first_keyword in write_keywords:
            return True

        if first_keyword == "WITH":
            return bool(
                re.search(r"\bINSERT\s+INTO\b", sql_upper)
                or re.search(r"\bREPLACE\s+INTO\b", sql_upper)
                or re.search(r"\bUPDATE\b", sql_upper)
                or re.search(r"\bDELETE\s+FROM\b", sql_upper)
            )

        return False

    def execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        """Execute SQL statement

        Write operations outside an explicit transaction() are committed
        immediately to release database locks.
        """
        max_retries = 5
        retry_delay = 0.1

        is_write = self._is_write_sql(sql)
        in_transaction = getattr(self._local, 'in_transaction', False)

        for i in range(max_retries):
            try:
                if is_write:
                    with self._write_lock:
                        cursor = self._conn.execute(sql, params)
                        if not in_transaction:
                            self._conn.commit()
                else:
                    cursor = self._conn.execute(sql, params)
                return cursor
            except sqlite3.OperationalError as e:
                if "locked" in str(e).lower() and i < max_retries - 1:
                    time.sleep(retry_delay * (i + 1))
                    continue
                raise

    def fetch_one(self, sql: str, params: tuple = ()) -> Optional[Dict[str, Any]]:
        """Fetch single record"""
        cursor = self.execute(sql, params)
        row = cursor.fetchone()
        return dict(row) if row else None

    def fetch_all(self, sql: str, params: tuple = ()) -> List[Dict[str, Any]]:
        """Fetch all records"""
        cursor = self.execute(sql, params)
        return [dict(row) for row in cursor.fetchall()]

    def insert(self, table: str, data: Dict[str, Any]) -> int:
        """
        Insert record

        Args:
            table: Table name
            data: Dictionary of column names and values

        Returns:
            int: ID of the inserted record
        """
        columns = ', '.join(data.keys())
        placeholders = ', '.join(['?' for _ in data])
        sql = f"INSERT INTO {table} ({columns}) VALUES ({placeholders})"

        cursor = self.execute(sql, tuple(data.values()))
        return cursor.lastrowid

    def update(self, table: str, data: Dict[str, Any],
               where: str, where_params: tuple) -> int:
        """
        Update record

        Returns:
            int: Number of affected rows
        """
        set_clause = ', '.join([f"{k} = ?" for k in data.keys()])
        sql = f"UPDATE {table} SET {set_clause} WHERE {where}"

        cursor = self.execute(sql, tuple(data.values()) + where_params)
        return cursor.rowcount

    def _init_schema(self) -> None:
        """Initialize database Schema"""
        from core.schema import get_all_schema_statements

        for statement in get_all_schema_statements():
            try:
                self.execute(statement.strip())
            except sqlite3.OperationalError as e:
                if "already exists" not in str(e).lower():
                    raise

        self._conn.commit()

    def close(self) -> None:
        """Close current thread's connection"""
        if hasattr(self._local, 'connection') and self._local.connection:
            self._local.connection.close()
            self._local.connection = None
