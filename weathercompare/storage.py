"""SQLite-backed stores for the query log and favourite locations."""
from __future__ import annotations

import logging
import os
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from .querylog import QueryLogEntry, utcnow_iso

logger = logging.getLogger(__name__)


def _default_database_path() -> str:
    return os.getenv("QUERY_LOG_DATABASE", "./weathercompare.db")


class DatabaseSession:
    """Minimal DB-API session wrapper."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self.connection = connection

    def execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        cursor = self.connection.cursor()
        cursor.execute(sql, params)
        return cursor

    def fetchone(self, sql: str, params: tuple = ()):
        cursor = self.execute(sql, params)
        row = cursor.fetchone()
        cursor.close()
        return row

    def fetchall(self, sql: str, params: tuple = ()):
        cursor = self.execute(sql, params)
        rows = cursor.fetchall()
        cursor.close()
        return rows

    def commit(self) -> None:
        self.connection.commit()

    def rollback(self) -> None:
        self.connection.rollback()

    def close(self) -> None:
        self.connection.close()


class SQLiteStore:
    """Connection handling shared by the stores; subclasses create their tables."""

    def __init__(self, path: Optional[str] = None) -> None:
        self.path = path or _default_database_path()
        self._write_lock = threading.Lock()
        self.run_migrations()

    def _connect(self) -> DatabaseSession:
        connection = sqlite3.connect(self.path, check_same_thread=False)
        connection.row_factory = sqlite3.Row
        return DatabaseSession(connection)

    @contextmanager
    def session_scope(self) -> Iterator[DatabaseSession]:
        session = self._connect()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def run_migrations(self) -> None:
        raise NotImplementedError


class QueryLogStore(SQLiteStore):
    """Append-only log of provider queries stored in the ``query_logs`` table."""

    def run_migrations(self) -> None:
        with self.session_scope() as session:
            session.execute(
                """
                CREATE TABLE IF NOT EXISTS query_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp TEXT NOT NULL,
                    api_name TEXT NOT NULL,
                    location TEXT NOT NULL,
                    query_params TEXT,
                    response_time INTEGER,
                    status TEXT,
                    response_data TEXT,
                    error_message TEXT
                )
                """
            )
            session.execute("CREATE INDEX IF NOT EXISTS idx_query_logs_timestamp ON query_logs (timestamp)")
            session.execute("CREATE INDEX IF NOT EXISTS idx_query_logs_api ON query_logs (api_name, timestamp)")

    def append(self, entry: QueryLogEntry) -> int:
        row = entry.to_row()
        with self._write_lock, self.session_scope() as session:
            cursor = session.execute(
                """
                INSERT INTO query_logs (
                    timestamp, api_name, location, query_params, response_time, status, response_data, error_message
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    row["timestamp"],
                    row["api_name"],
                    row["location"],
                    row["query_params"],
                    row["response_time"],
                    row["status"],
                    row["response_data"],
                    row["error_message"],
                ),
            )
            return int(cursor.lastrowid)

    def fetch(
        self,
        *,
        limit: int = 100,
        offset: int = 0,
        api_name: Optional[str] = None,
        location: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[QueryLogEntry]:
        sql = "SELECT * FROM query_logs WHERE 1=1"
        params: list = []
        if api_name:
            sql += " AND api_name = ?"
            params.append(api_name)
        if location:
            sql += " AND location LIKE ?"
            params.append(f"%{location}%")
        if start is not None:
            sql += " AND timestamp >= ?"
            params.append(_iso(start))
        if end is not None:
            sql += " AND timestamp <= ?"
            params.append(_iso(end))
        sql += " ORDER BY timestamp DESC, id DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])
        with self.session_scope() as session:
            rows = session.fetchall(sql, tuple(params))
        return [QueryLogEntry.from_row(row) for row in rows]

    def count(self) -> int:
        with self.session_scope() as session:
            row = session.fetchone("SELECT COUNT(*) AS cnt FROM query_logs")
        return int(row["cnt"])

    def prune(self, days_to_keep: int = 30, now: Optional[datetime] = None) -> int:
        """Delete entries older than ``days_to_keep`` days; returns the number removed."""
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=days_to_keep)
        with self._write_lock, self.session_scope() as session:
            cursor = session.execute("DELETE FROM query_logs WHERE timestamp < ?", (_iso(cutoff),))
            removed = cursor.rowcount
        logger.info("Pruned %s query log entries older than %s days", removed, days_to_keep)
        return removed


@dataclass(frozen=True)
class FavoriteLocation:
    location: str
    display_name: str
    postcode: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    added_at: str = field(default_factory=utcnow_iso)
    id: Optional[int] = None

    @classmethod
    def from_row(cls, row: Any) -> "FavoriteLocation":
        return cls(
            id=row["id"],
            location=row["location"],
            display_name=row["display_name"],
            postcode=row["postcode"],
            latitude=row["latitude"],
            longitude=row["longitude"],
            added_at=row["added_at"],
        )

    def to_api_dict(self) -> Dict[str, Any]:
        coordinates = None
        if self.latitude is not None and self.longitude is not None:
            coordinates = {"lat": self.latitude, "lon": self.longitude}
        return {
            "id": self.id,
            "location": self.location,
            "displayName": self.display_name,
            "postcode": self.postcode,
            "coordinates": coordinates,
            "addedAt": self.added_at,
        }


class FavoriteLocationStore(SQLiteStore):
    """Saved locations keyed by their cleaned name (``favorite_locations`` table)."""

    def run_migrations(self) -> None:
        with self.session_scope() as session:
            session.execute(
                """
                CREATE TABLE IF NOT EXISTS favorite_locations (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    location TEXT UNIQUE NOT NULL,
                    display_name TEXT NOT NULL,
                    postcode TEXT,
                    latitude REAL,
                    longitude REAL,
                    added_at TEXT NOT NULL
                )
                """
            )

    def add(self, favorite: FavoriteLocation) -> FavoriteLocation:
        """Insert or replace the entry for ``favorite.location``."""
        with self._write_lock, self.session_scope() as session:
            cursor = session.execute(
                """
                INSERT OR REPLACE INTO favorite_locations (
                    location, display_name, postcode, latitude, longitude, added_at
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    favorite.location,
                    favorite.display_name,
                    favorite.postcode,
                    favorite.latitude,
                    favorite.longitude,
                    favorite.added_at,
                ),
            )
            row_id = int(cursor.lastrowid)
        return FavoriteLocation(
            id=row_id,
            location=favorite.location,
            display_name=favorite.display_name,
            postcode=favorite.postcode,
            latitude=favorite.latitude,
            longitude=favorite.longitude,
            added_at=favorite.added_at,
        )

    def fetch_all(self) -> List[FavoriteLocation]:
        with self.session_scope() as session:
            rows = session.fetchall("SELECT * FROM favorite_locations ORDER BY display_name, id")
        return [FavoriteLocation.from_row(row) for row in rows]

    def remove(self, location: str) -> int:
        with self._write_lock, self.session_scope() as session:
            cursor = session.execute("DELETE FROM favorite_locations WHERE location = ?", (location,))
            return cursor.rowcount


def _iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


__all__ = ["DatabaseSession", "SQLiteStore", "QueryLogStore", "FavoriteLocation", "FavoriteLocationStore"]
