import logging

from clipkeep.errors import InvalidArgumentError
from clipkeep.models import ClipboardEntry
from clipkeep.store import EntryStore

logger = logging.getLogger(__name__)


class RetentionPolicy:
    """Age-based purge of history entries.

    Favorites are kept regardless of age unless ``exempt_favorites`` is False.
    """

    def __init__(self, store: EntryStore, exempt_favorites: bool = True):
        self._store = store
        self._exempt_favorites = exempt_favorites

    def is_expired(self, entry: ClipboardEntry, now: int, max_age_seconds: int) -> bool:
        if self._exempt_favorites and entry.is_favorite:
            return False
        return now - entry.captured_at > max_age_seconds

    def cleanup(self, max_age_seconds: int) -> int:
        if max_age_seconds < 0:
            raise InvalidArgumentError("max_age_seconds must not be negative")

        def apply(entries: list[ClipboardEntry]) -> int:
            now = self._store.now()
            kept = [e for e in entries if not self.is_expired(e, now, max_age_seconds)]
            removed = len(entries) - len(kept)
            entries[:] = kept
            return removed

        removed = self._store.transaction(apply)
        if removed:
            logger.info("Removed %d entries older than %d seconds", removed, max_age_seconds)
        return removed
