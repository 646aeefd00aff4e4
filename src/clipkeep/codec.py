"""Portable JSON export/import of the clipboard history.

A document is a JSON array of records::

    {"content": {"type": "text", "text": "hello"},
     "capturedAt": 1700000000, "isFavorite": false, "tags": ["work"]}

Image content is ``{"type": "image", "filePath": "...", "dimensions": "640x480"}``.
A bare string ``content`` is read as text. Unknown fields are ignored.
"""

import json
import logging
from collections.abc import Iterable

from clipkeep.errors import SerializationError
from clipkeep.models import ClipboardEntry, Content, ContentType, ImageRef, TextContent
from clipkeep.store import EntryStore

logger = logging.getLogger(__name__)

# Largest timestamp a SQLite INTEGER column can hold.
MAX_TIMESTAMP = 2**63 - 1


def _encode_content(content: Content) -> dict:
    if isinstance(content, ImageRef):
        return {
            "type": ContentType.IMAGE.value,
            "filePath": content.file_path,
            "dimensions": content.dimensions,
        }
    return {"type": ContentType.TEXT.value, "text": content.text}


def encode_entry(entry: ClipboardEntry) -> dict:
    return {
        "content": _encode_content(entry.content),
        "capturedAt": entry.captured_at,
        "isFavorite": entry.is_favorite,
        "tags": sorted(entry.tags),
    }


def export_history(entries: Iterable[ClipboardEntry]) -> str:
    return json.dumps([encode_entry(e) for e in entries], indent=2, ensure_ascii=False)


def _decode_content(raw, index: int) -> Content:
    if isinstance(raw, str):
        if not raw.strip():
            raise SerializationError(f"Record {index}: text content is empty")
        return TextContent(raw)
    if not isinstance(raw, dict):
        raise SerializationError(f"Record {index}: content must be an object or a string")

    kind = raw.get("type", ContentType.TEXT.value)
    if kind == ContentType.TEXT.value:
        text = raw.get("text")
        if not isinstance(text, str) or not text.strip():
            raise SerializationError(f"Record {index}: text content is missing or empty")
        return TextContent(text)
    if kind == ContentType.IMAGE.value:
        file_path = raw.get("filePath")
        dimensions = raw.get("dimensions", "Unknown")
        if not isinstance(file_path, str) or not file_path:
            raise SerializationError(f"Record {index}: image content needs a filePath")
        if not isinstance(dimensions, str):
            raise SerializationError(f"Record {index}: image dimensions must be a string")
        return ImageRef(file_path, dimensions)
    raise SerializationError(f"Record {index}: unknown content type {kind!r}")


def _decode_record(raw, index: int) -> ClipboardEntry:
    if not isinstance(raw, dict):
        raise SerializationError(f"Record {index}: expected an object")
    for required in ("content", "capturedAt"):
        if required not in raw:
            raise SerializationError(f"Record {index}: missing required field {required!r}")

    captured_at = raw["capturedAt"]
    if isinstance(captured_at, bool) or not isinstance(captured_at, int) or not 0 <= captured_at <= MAX_TIMESTAMP:
        raise SerializationError(f"Record {index}: capturedAt must be an integer between 0 and {MAX_TIMESTAMP}")

    is_favorite = raw.get("isFavorite", False)
    if not isinstance(is_favorite, bool):
        raise SerializationError(f"Record {index}: isFavorite must be a boolean")

    tags = raw.get("tags", [])
    if not isinstance(tags, list) or not all(isinstance(t, str) and t for t in tags):
        raise SerializationError(f"Record {index}: tags must be a list of non-empty strings")

    # id 0 is a placeholder; the store assigns real ids on insert.
    return ClipboardEntry(
        id=0,
        content=_decode_content(raw["content"], index),
        captured_at=captured_at,
        is_favorite=is_favorite,
        tags=frozenset(tags),
    )


def parse_document(document: str | bytes) -> list[ClipboardEntry]:
    """Validate a whole document before anything is applied."""
    try:
        data = json.loads(document)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise SerializationError(f"Import document is not valid JSON: {exc}") from exc
    if not isinstance(data, list):
        raise SerializationError("Import document must be a JSON array of records")
    return [_decode_record(raw, index) for index, raw in enumerate(data)]


def import_history(store: EntryStore, document: str | bytes) -> int:
    records = parse_document(document)
    added = store.merge(records)
    logger.info("Imported %d of %d records", added, len(records))
    return added
