"""Design storage abstractions and SQLite implementation."""
from __future__ import annotations

import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from models.design import DesignDescriptor
from models.taxonomy import normalize_garment_type
from tools.design_codec import RECORD_COLUMNS, DecodedDesign, from_storage_record, to_storage_record


class DesignStore:
    """Persistence interface for saved designs."""

    def save_design(self, user_id: str, name: str, descriptor: DesignDescriptor) -> str:
        raise NotImplementedError

    def load_design(self, user_id: str, design_id: str) -> Optional[DecodedDesign]:
        raise NotImplementedError

    def list_designs(self, user_id: str, garment_type: Optional[str] = None) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def update_design(
        self, user_id: str, design_id: str, descriptor: DesignDescriptor, name: Optional[str] = None
    ) -> bool:
        raise NotImplementedError

    def delete_design(self, user_id: str, design_id: str) -> bool:
        raise NotImplementedError


class SQLiteDesignStore(DesignStore):
    """Local SQLite-backed store of flat design records."""

    def __init__(self, database_path: str | Path = "data/designs.db") -> None:
        self.database_path = Path(database_path)
        if self.database_path.parent and not self.database_path.parent.exists():
            self.database_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_tables()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.database_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_tables(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS designs (
                    user_id TEXT NOT NULL,
                    design_id TEXT NOT NULL,
                    name TEXT,
                    shirt_type TEXT,
                    color TEXT,
                    logo_decal TEXT,
                    is_logo_texture INTEGER,
                    logo_position TEXT,
                    logo_data TEXT,
                    back_logo_decal TEXT,
                    has_back_logo INTEGER,
                    back_logo_position TEXT,
                    front_text_decal TEXT,
                    front_text_data TEXT,
                    has_front_text INTEGER,
                    back_text_decal TEXT,
                    back_text_data TEXT,
                    has_back_text INTEGER,
                    full_decal TEXT,
                    full_data TEXT,
                    is_full_texture INTEGER,
                    text_data TEXT,
                    created_at TEXT,
                    updated_at TEXT,
                    PRIMARY KEY (user_id, design_id)
                );
                """
            )

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()

    def _write(
        self,
        conn: sqlite3.Connection,
        user_id: str,
        design_id: str,
        name: str,
        record: Dict[str, Any],
        created_at: str,
    ) -> None:
        stored = [*RECORD_COLUMNS, "text_data"]
        columns = ["user_id", "design_id", "name", *stored, "created_at", "updated_at"]
        values = [user_id, design_id, name, *(record.get(column) for column in stored), created_at, self._now()]
        placeholders = ", ".join("?" for _ in columns)
        conn.execute(
            f"INSERT OR REPLACE INTO designs ({', '.join(columns)}) VALUES ({placeholders})",
            values,
        )

    def save_design(self, user_id: str, name: str, descriptor: DesignDescriptor) -> str:
        design_id = uuid.uuid4().hex
        with self._connect() as conn:
            self._write(conn, user_id, design_id, name, to_storage_record(descriptor), self._now())
        return design_id

    def save_record(self, user_id: str, name: str, record: Dict[str, Any]) -> str:
        """Insert a raw storage record, e.g. one exported from an older schema."""

        design_id = uuid.uuid4().hex
        with self._connect() as conn:
            self._write(conn, user_id, design_id, name, record, self._now())
        return design_id

    def _get_row(self, user_id: str, design_id: str) -> Optional[sqlite3.Row]:
        with self._connect() as conn:
            cursor = conn.execute(
                "SELECT * FROM designs WHERE user_id = ? AND design_id = ?",
                (user_id, design_id),
            )
            return cursor.fetchone()

    def load_design(self, user_id: str, design_id: str) -> Optional[DecodedDesign]:
        row = self._get_row(user_id, design_id)
        return from_storage_record(dict(row)) if row else None

    def list_designs(self, user_id: str, garment_type: Optional[str] = None) -> List[Dict[str, Any]]:
        query = "SELECT design_id, name, shirt_type, color, created_at, updated_at FROM designs WHERE user_id = ?"
        params: List[Any] = [user_id]
        if garment_type:
            query += " AND shirt_type = ?"
            params.append(normalize_garment_type(garment_type))
        query += " ORDER BY created_at, design_id"
        with self._connect() as conn:
            return [dict(row) for row in conn.execute(query, params).fetchall()]

    def update_design(
        self, user_id: str, design_id: str, descriptor: DesignDescriptor, name: Optional[str] = None
    ) -> bool:
        current = self._get_row(user_id, design_id)
        if not current:
            return False
        with self._connect() as conn:
            self._write(
                conn,
                user_id,
                design_id,
                name if name is not None else current["name"],
                to_storage_record(descriptor),
                current["created_at"],
            )
        return True

    def delete_design(self, user_id: str, design_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM designs WHERE user_id = ? AND design_id = ?",
                (user_id, design_id),
            )
            return cursor.rowcount > 0


__all__ = ["DesignStore", "SQLiteDesignStore"]
