"""SQLite persistence for brain data."""

import json
from pathlib import Path
from typing import Any, Protocol

import aiosqlite

from ..config import resolve_db_path


class IBrainStorage(Protocol):
    """Persistent storage for brain key-values (SQLite)."""

    async def init(self) -> None:
        """Initialize database and create tables."""
        ...

    async def close(self) -> None:
        """Close database connection."""
        ...

    async def save_data(self, data: dict[str, Any]) -> None:
        """Replace all stored key-values with the given data."""
        ...

    async def load_data(self) -> dict[str, Any]:
        """Get all stored key-values."""
        ...

    async def clear(self) -> None:
        """Clear all data."""
        ...


class BrainStorage:
    """SQLite storage implementation, one JSON value per key."""

    def __init__(self, db_path: str | Path | None = None):
        if db_path is None:
            self._db_path = resolve_db_path()
        else:
            self._db_path = resolve_db_path(db_path)
        self._conn: aiosqlite.Connection | None = None

    async def init(self) -> None:
        """Initialize database and create tables."""
        self._conn = await aiosqlite.connect(self._db_path)

        schema_path = Path(__file__).parent / "schema.sql"
        with open(schema_path, "r", encoding="utf-8") as f:
            schema_sql = f.read()
        await self._conn.executescript(schema_sql)
        await self._conn.commit()

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    async def save_data(self, data: dict[str, Any]) -> None:
        """Replace all stored key-values with the given data."""
        if not self._conn:
            raise RuntimeError("Storage not initialized")

        await self._conn.execute("DELETE FROM brain")
        await self._conn.executemany(
            """
            INSERT INTO brain (key, value, updated_at)
            VALUES (?, ?, CURRENT_TIMESTAMP)
            """,
            [(key, json.dumps(value, default=str)) for key, value in data.items()],
        )
        await self._conn.commit()

    async def load_data(self) -> dict[str, Any]:
        """Get all stored key-values."""
        if not self._conn:
            raise RuntimeError("Storage not initialized")

        cursor = await self._conn.execute("SELECT key, value FROM brain")
        rows = await cursor.fetchall()
        return {row[0]: json.loads(row[1]) for row in rows}

    async def clear(self) -> None:
        """Clear all data."""
        if not self._conn:
            raise RuntimeError("Storage not initialized")

        await self._conn.execute("DELETE FROM brain")
        await self._conn.commit()
