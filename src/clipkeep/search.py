from collections.abc import Iterable

from clipkeep.models import ClipboardEntry


def filter_entries(
    entries: Iterable[ClipboardEntry],
    query: str = "",
    favorites_only: bool = False,
    tag: str | None = None,
) -> list[ClipboardEntry]:
    """Return the entries matching every given criterion, in input order.

    ``query`` is a case-insensitive substring match against the entry text, or
    the dimensions label for images. An empty query matches everything.
    """
    results = list(entries)
    if favorites_only:
        results = [e for e in results if e.is_favorite]
    if tag:
        results = [e for e in results if tag in e.tags]
    if query:
        needle = query.casefold()
        results = [e for e in results if needle in e.primary_text.casefold()]
    return results
