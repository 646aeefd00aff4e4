from dataclasses import replace

from clipkeep.models import ClipboardEntry
from clipkeep.store import EntryStore


class FavoriteSet:
    def __init__(self, store: EntryStore):
        self._store = store

    def toggle(self, entry_id: int) -> bool:
        entry = self._store.update(entry_id, lambda e: replace(e, is_favorite=not e.is_favorite))
        return entry.is_favorite

    def is_favorite(self, entry_id: int) -> bool:
        return self._store.get(entry_id).is_favorite

    def favorites(self) -> list[ClipboardEntry]:
        return [e for e in self._store.all() if e.is_favorite]

    def count(self) -> int:
        return sum(1 for e in self._store.all() if e.is_favorite)
