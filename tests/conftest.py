import pytest

from clipkeep.errors import PersistenceError
from clipkeep.favorites import FavoriteSet
from clipkeep.models import ClipboardEntry, ImageRef, TextContent
from clipkeep.storage import StorageManager
from clipkeep.store import EntryStore
from clipkeep.tags import TagIndex


class FakeClock:
    def __init__(self, now: int = 1_000):
        self.now = now

    def __call__(self) -> float:
        return float(self.now)

    def advance(self, seconds: int) -> None:
        self.now += seconds


class FailingBackend:
    """In-memory backend whose writes can be switched to fail."""

    def __init__(self, entries=None):
        self.saved: list[ClipboardEntry] = list(entries or [])
        self.fail = False
        self.save_calls = 0

    def load_all(self) -> list[ClipboardEntry]:
        return list(self.saved)

    def save_all(self, entries) -> None:
        self.save_calls += 1
        if self.fail:
            raise PersistenceError("disk full")
        self.saved = list(entries)


@pytest.fixture
def storage():
    mgr = StorageManager(db_path=":memory:")
    yield mgr
    mgr.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(storage, clock):
    return EntryStore(storage, clock=clock)


@pytest.fixture
def backend():
    return FailingBackend()


@pytest.fixture
def favorites(store):
    return FavoriteSet(store)


@pytest.fixture
def tags(store):
    return TagIndex(store)


@pytest.fixture
def make_entry():
    """Factory fixture to create ClipboardEntry instances for testing."""

    def _make_entry(
        text: str = "hello world",
        entry_id: int = 1,
        captured_at: int = 100,
        is_favorite: bool = False,
        tags=(),
        image_path: str | None = None,
        dimensions: str = "100x100",
    ) -> ClipboardEntry:
        content = ImageRef(image_path, dimensions) if image_path else TextContent(text)
        return ClipboardEntry(
            id=entry_id,
            content=content,
            captured_at=captured_at,
            is_favorite=is_favorite,
            tags=frozenset(tags),
        )

    return _make_entry
