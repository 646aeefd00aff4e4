import sqlite3
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from clipkeep.config import DB_PATH
from clipkeep.errors import PersistenceError
from clipkeep.models import ClipboardEntry, ContentType, ImageRef, TextContent


SCHEMA = """
CREATE TABLE IF NOT EXISTS clipboard_entries (
    id            INTEGER PRIMARY KEY,
    position      INTEGER NOT NULL,
    content_type  TEXT NOT NULL CHECK(content_type IN ('text', 'image')),
    text_content  TEXT,
    image_path    TEXT,
    dimensions    TEXT,
    captured_at   INTEGER NOT NULL,
    is_favorite   INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS entry_tags (
    entry_id  INTEGER NOT NULL REFERENCES clipboard_entries(id) ON DELETE CASCADE,
    tag       TEXT NOT NULL,
    PRIMARY KEY (entry_id, tag)
);

CREATE INDEX IF NOT EXISTS idx_position ON clipboard_entries(position);
"""


class PersistenceBackend(Protocol):
    def load_all(self) -> list[ClipboardEntry]: ...

    def save_all(self, entries: Sequence[ClipboardEntry]) -> None: ...


class StorageManager:
    """SQLite-backed persistence; the whole history is rewritten on every save."""

    def __init__(self, db_path: str | Path | None = None):
        self._db_path = str(db_path) if db_path else str(DB_PATH)
        try:
            self._conn = sqlite3.connect(self._db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA foreign_keys=ON")
            self.init_db()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Could not open history database {self._db_path}: {exc}") from exc

    def init_db(self) -> None:
        self._conn.executescript(SCHEMA)
        self._conn.commit()

    def load_all(self) -> list[ClipboardEntry]:
        try:
            rows = self._conn.execute(
                "SELECT * FROM clipboard_entries ORDER BY position ASC"
            ).fetchall()
            tag_rows = self._conn.execute(
                "SELECT entry_id, tag FROM entry_tags"
            ).fetchall()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Could not load clipboard history: {exc}") from exc

        tags: dict[int, set[str]] = {}
        for row in tag_rows:
            tags.setdefault(row["entry_id"], set()).add(row["tag"])
        return [self._row_to_entry(r, tags.get(r["id"], ())) for r in rows]

    def save_all(self, entries: Sequence[ClipboardEntry]) -> None:
        entry_rows = []
        tag_rows = []
        for position, entry in enumerate(entries):
            content = entry.content
            if isinstance(content, ImageRef):
                text_content, image_path, dimensions = None, content.file_path, content.dimensions
            else:
                text_content, image_path, dimensions = content.text, None, None
            entry_rows.append((
                entry.id,
                position,
                entry.content_type.value,
                text_content,
                image_path,
                dimensions,
                entry.captured_at,
                int(entry.is_favorite),
            ))
            tag_rows.extend((entry.id, tag) for tag in sorted(entry.tags))

        try:
            with self._conn:
                self._conn.execute("DELETE FROM entry_tags")
                self._conn.execute("DELETE FROM clipboard_entries")
                self._conn.executemany(
                    """INSERT INTO clipboard_entries
                       (id, position, content_type, text_content, image_path, dimensions, captured_at, is_favorite)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                    entry_rows,
                )
                self._conn.executemany(
                    "INSERT INTO entry_tags (entry_id, tag) VALUES (?, ?)",
                    tag_rows,
                )
        except (sqlite3.Error, OverflowError) as exc:
            raise PersistenceError(f"Could not save clipboard history: {exc}") from exc

    def count(self) -> int:
        row = self._conn.execute("SELECT COUNT(*) as cnt FROM clipboard_entries").fetchone()
        return row["cnt"]

    def close(self) -> None:
        self._conn.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    @staticmethod
    def _row_to_entry(row: sqlite3.Row, tags) -> ClipboardEntry:
        if ContentType(row["content_type"]) == ContentType.IMAGE:
            content = ImageRef(row["image_path"], row["dimensions"] or "Unknown")
        else:
            content = TextContent(row["text_content"] or "")
        return ClipboardEntry(
            id=row["id"],
            content=content,
            captured_at=row["captured_at"],
            is_favorite=bool(row["is_favorite"]),
            tags=frozenset(tags),
        )
