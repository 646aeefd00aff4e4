from dataclasses import replace

from clipkeep.errors import InvalidArgumentError
from clipkeep.models import ClipboardEntry
from clipkeep.store import EntryStore


def _check_tag(tag: str) -> None:
    if not isinstance(tag, str) or not tag:
        raise InvalidArgumentError("Tag must be a non-empty string")


class TagIndex:
    """User tags attached to history entries. Tags are case-sensitive."""

    def __init__(self, store: EntryStore):
        self._store = store

    def add(self, entry_id: int, tag: str) -> None:
        _check_tag(tag)
        self._store.update(entry_id, lambda e: replace(e, tags=e.tags | {tag}))

    def remove(self, entry_id: int, tag: str) -> None:
        _check_tag(tag)
        self._store.update(entry_id, lambda e: replace(e, tags=e.tags - {tag}))

    def tags_for(self, entry_id: int) -> frozenset[str]:
        return self._store.get(entry_id).tags

    def all_tags(self) -> list[str]:
        tags: set[str] = set()
        for entry in self._store.all():
            tags.update(entry.tags)
        return sorted(tags)

    def entries_with(self, tag: str) -> list[ClipboardEntry]:
        return [e for e in self._store.all() if tag in e.tags]
