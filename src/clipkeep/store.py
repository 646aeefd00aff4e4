import logging
import threading
import time
from collections.abc import Callable, Iterable, Iterator
from dataclasses import replace
from typing import TypeVar

from clipkeep.errors import InvalidArgumentError, NotFoundError, PersistenceError
from clipkeep.models import ClipboardEntry, Content, ImageRef, TextContent
from clipkeep.storage import PersistenceBackend

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _ordered(entries: Iterable[ClipboardEntry]) -> tuple[ClipboardEntry, ...]:
    # Stable: among equal timestamps the entry placed first stays first.
    return tuple(sorted(entries, key=lambda e: e.captured_at, reverse=True))


def _validate_content(content: Content) -> None:
    if isinstance(content, TextContent):
        if not isinstance(content.text, str) or not content.text.strip():
            raise InvalidArgumentError("Clipboard text must not be empty")
    elif isinstance(content, ImageRef):
        if not isinstance(content.file_path, str) or not content.file_path:
            raise InvalidArgumentError("Image reference must have a file path")
    else:
        raise InvalidArgumentError(f"Unsupported clipboard content: {content!r}")


class EntryStore:
    """Ordered, deduplicated clipboard history with write-through persistence.

    Entries are kept most-recent-first. Every mutation runs under a single lock,
    is written to the backend before it becomes visible, and is discarded if the
    write fails. Readers get the last committed snapshot without locking.
    """

    def __init__(
        self,
        backend: PersistenceBackend,
        clock: Callable[[], float] = time.time,
        max_entries: int | None = None,
    ):
        self._backend = backend
        self._clock = clock
        self._max_entries = max_entries
        self._lock = threading.RLock()
        self._entries = _ordered(backend.load_all())
        self._next_id = max((e.id for e in self._entries), default=0) + 1
        logger.debug("Loaded %d clipboard entries", len(self._entries))

    def now(self) -> int:
        return int(self._clock())

    def transaction(self, mutate: Callable[[list[ClipboardEntry]], T]) -> T:
        """Apply ``mutate`` to a working copy of the history and commit it.

        ``mutate`` edits the list in place and may return a value, which is
        passed through. If it raises, or the backend write fails, the store is
        left exactly as it was. An unchanged history is not written.
        """
        with self._lock:
            next_id = self._next_id
            working = list(self._entries)
            try:
                result = mutate(working)
                updated = _ordered(working)
                if updated != self._entries:
                    self._save(updated)
            except Exception:
                self._next_id = next_id
                raise
            self._entries = updated
            return result

    def capture(self, content: Content) -> int:
        _validate_content(content)

        def apply(entries: list[ClipboardEntry]) -> int:
            now = self.now()
            key = content.dedup_key
            for index, entry in enumerate(entries):
                if entry.dedup_key == key:
                    del entries[index]
                    entries.insert(0, replace(entry, content=content, captured_at=now))
                    logger.debug("Moved entry %d to head", entry.id)
                    return entry.id

            entry = ClipboardEntry(id=self._allocate_id(), content=content, captured_at=now)
            entries.insert(0, entry)
            self._trim(entries)
            logger.debug("Captured new %s entry %d", content.content_type.value, entry.id)
            return entry.id

        return self.transaction(apply)

    def merge(self, entries: Iterable[ClipboardEntry]) -> int:
        """Insert entries whose dedup key is not yet present; returns the count added.

        Incoming ids are ignored and fresh ids are assigned. Existing entries are
        never modified.
        """
        incoming = list(entries)
        for entry in incoming:
            _validate_content(entry.content)

        def apply(current: list[ClipboardEntry]) -> int:
            seen = {e.dedup_key for e in current}
            added = 0
            for entry in incoming:
                if entry.dedup_key in seen:
                    continue
                seen.add(entry.dedup_key)
                current.append(replace(entry, id=self._allocate_id()))
                added += 1
            return added

        return self.transaction(apply)

    def update(self, entry_id: int, change: Callable[[ClipboardEntry], ClipboardEntry]) -> ClipboardEntry:
        def apply(entries: list[ClipboardEntry]) -> ClipboardEntry:
            for index, entry in enumerate(entries):
                if entry.id == entry_id:
                    entries[index] = change(entry)
                    return entries[index]
            raise NotFoundError(entry_id)

        return self.transaction(apply)

    def remove(self, entry_id: int) -> bool:
        def apply(entries: list[ClipboardEntry]) -> bool:
            for index, entry in enumerate(entries):
                if entry.id == entry_id:
                    del entries[index]
                    return True
            return False

        return self.transaction(apply)

    def clear(self) -> None:
        with self._lock:
            self._save(())
            self._entries = ()

    def get(self, entry_id: int) -> ClipboardEntry:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        raise NotFoundError(entry_id)

    def find(self, content: Content) -> ClipboardEntry | None:
        key = content.dedup_key
        for entry in self._entries:
            if entry.dedup_key == key:
                return entry
        return None

    def all(self) -> list[ClipboardEntry]:
        return list(self._entries)

    def count(self) -> int:
        return len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ClipboardEntry]:
        return iter(self._entries)

    def __contains__(self, entry_id: object) -> bool:
        return any(e.id == entry_id for e in self._entries)

    def _allocate_id(self) -> int:
        entry_id = self._next_id
        self._next_id += 1
        return entry_id

    def _trim(self, entries: list[ClipboardEntry]) -> None:
        if self._max_entries is None:
            return
        index = len(entries) - 1
        # Index 0 is the entry being captured and always stays.
        while len(entries) > self._max_entries and index >= 1:
            if not entries[index].is_favorite:
                dropped = entries.pop(index)
                logger.debug("Dropped entry %d over the %d entry limit", dropped.id, self._max_entries)
            index -= 1

    def _save(self, entries: tuple[ClipboardEntry, ...]) -> None:
        try:
            self._backend.save_all(entries)
        except PersistenceError:
            raise
        except OSError as exc:
            raise PersistenceError(f"Could not save clipboard history: {exc}") from exc
