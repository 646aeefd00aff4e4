import threading
from dataclasses import replace

import pytest

from clipkeep.errors import InvalidArgumentError, NotFoundError, PersistenceError
from clipkeep.models import ImageRef, TextContent
from clipkeep.storage import StorageManager
from clipkeep.store import EntryStore


def texts(store):
    return [e.content.text for e in store.all()]


class TestCapture:
    def test_new_entry_at_head(self, store, clock):
        store.capture(TextContent("first"))
        clock.advance(10)
        entry_id = store.capture(TextContent("second"))
        head = store.all()[0]
        assert head.id == entry_id
        assert head.content.text == "second"
        assert head.is_favorite is False
        assert head.tags == frozenset()

    def test_duplicate_moves_to_head(self, store, clock):
        clock.now = 100
        hello_id = store.capture(TextContent("hello"))
        clock.now = 200
        store.capture(TextContent("world"))
        clock.now = 300
        again_id = store.capture(TextContent("hello"))

        assert again_id == hello_id
        entries = store.all()
        assert [(e.content.text, e.captured_at) for e in entries] == [("hello", 300), ("world", 200)]

    def test_duplicate_keeps_flags_and_tags(self, store, clock, favorites, tags):
        entry_id = store.capture(TextContent("keep"))
        favorites.toggle(entry_id)
        tags.add(entry_id, "work")
        clock.advance(5)
        store.capture(TextContent("keep"))
        entry = store.get(entry_id)
        assert entry.is_favorite is True
        assert entry.tags == frozenset({"work"})
        assert entry.captured_at == clock.now

    def test_image_dedup_by_path(self, store):
        first = store.capture(ImageRef("/tmp/a.png", "10x10"))
        second = store.capture(ImageRef("/tmp/a.png", "20x20"))
        assert first == second
        assert store.count() == 1
        assert store.get(first).content.dimensions == "20x20"

    def test_text_and_image_keys_do_not_collide(self, store):
        store.capture(TextContent("/tmp/a.png"))
        store.capture(ImageRef("/tmp/a.png"))
        assert store.count() == 2

    def test_ids_are_unique_and_increasing(self, store):
        ids = [store.capture(TextContent(f"item {i}")) for i in range(5)]
        assert ids == sorted(set(ids))

    @pytest.mark.parametrize("content", [TextContent(""), TextContent("   \n"), ImageRef("")])
    def test_rejects_empty_content(self, store, content):
        with pytest.raises(InvalidArgumentError):
            store.capture(content)
        assert store.count() == 0

    def test_persists_before_returning(self, storage, clock):
        store = EntryStore(storage, clock=clock)
        store.capture(TextContent("saved"))
        assert [e.content.text for e in storage.load_all()] == ["saved"]

    def test_clock_going_backwards_keeps_order(self, store, clock):
        clock.now = 500
        store.capture(TextContent("late"))
        clock.now = 400
        store.capture(TextContent("early"))
        assert [e.captured_at for e in store.all()] == [500, 400]


class TestRollback:
    def test_failed_capture_leaves_state(self, backend, clock):
        store = EntryStore(backend, clock=clock)
        store.capture(TextContent("before"))
        backend.fail = True
        with pytest.raises(PersistenceError):
            store.capture(TextContent("after"))
        assert texts(store) == ["before"]

    def test_failed_recapture_leaves_timestamp(self, backend, clock):
        store = EntryStore(backend, clock=clock)
        entry_id = store.capture(TextContent("same"))
        clock.advance(50)
        backend.fail = True
        with pytest.raises(PersistenceError):
            store.capture(TextContent("same"))
        assert store.get(entry_id).captured_at == 1_000

    def test_failed_capture_does_not_burn_id(self, backend, clock):
        store = EntryStore(backend, clock=clock)
        backend.fail = True
        with pytest.raises(PersistenceError):
            store.capture(TextContent("lost"))
        backend.fail = False
        assert store.capture(TextContent("kept")) == 1

    def test_os_error_becomes_persistence_error(self, backend, clock):
        def broken(entries):
            raise OSError("read-only file system")

        backend.save_all = broken
        store = EntryStore(backend, clock=clock)
        with pytest.raises(PersistenceError):
            store.capture(TextContent("x"))
        assert store.count() == 0

    def test_failed_clear_keeps_entries(self, backend, clock):
        store = EntryStore(backend, clock=clock)
        store.capture(TextContent("x"))
        backend.fail = True
        with pytest.raises(PersistenceError):
            store.clear()
        assert store.count() == 1


class TestRemoveAndClear:
    def test_remove(self, store):
        entry_id = store.capture(TextContent("gone"))
        assert store.remove(entry_id) is True
        assert entry_id not in store
        with pytest.raises(NotFoundError):
            store.get(entry_id)

    def test_remove_absent_is_noop(self, backend, clock):
        store = EntryStore(backend, clock=clock)
        store.capture(TextContent("x"))
        calls = backend.save_calls
        assert store.remove(999) is False
        assert backend.save_calls == calls

    def test_remove_drops_favorite_and_tags(self, store, favorites, tags):
        entry_id = store.capture(TextContent("fav"))
        favorites.toggle(entry_id)
        tags.add(entry_id, "a")
        store.remove(entry_id)
        assert favorites.favorites() == []
        assert tags.all_tags() == []

    def test_clear(self, store, storage, favorites):
        entry_id = store.capture(TextContent("a"))
        favorites.toggle(entry_id)
        store.capture(TextContent("b"))
        store.clear()
        assert store.all() == []
        assert favorites.favorites() == []
        assert storage.load_all() == []

    def test_recapture_after_remove_gets_new_id(self, store):
        first = store.capture(TextContent("again"))
        store.remove(first)
        assert store.capture(TextContent("again")) != first


class TestReads:
    def test_all_is_a_copy(self, store):
        store.capture(TextContent("x"))
        snapshot = store.all()
        snapshot.clear()
        assert store.count() == 1

    def test_find(self, store):
        entry_id = store.capture(TextContent("needle"))
        assert store.find(TextContent("needle")).id == entry_id
        assert store.find(TextContent("hay")) is None

    def test_len_iter_contains(self, store):
        a = store.capture(TextContent("a"))
        store.capture(TextContent("b"))
        assert len(store) == 2
        assert [e.content.text for e in store] == ["b", "a"]
        assert a in store

    def test_loads_existing_history(self, storage, clock, make_entry):
        storage.save_all([make_entry("old", entry_id=7, captured_at=50)])
        store = EntryStore(storage, clock=clock)
        assert store.get(7).content.text == "old"
        assert store.capture(TextContent("new")) == 8


class TestMaxEntries:
    def test_oldest_dropped_over_limit(self, storage, clock):
        store = EntryStore(storage, clock=clock, max_entries=3)
        for i in range(5):
            clock.advance(1)
            store.capture(TextContent(f"item {i}"))
        assert texts(store) == ["item 4", "item 3", "item 2"]

    def test_favorites_survive_limit(self, storage, clock):
        store = EntryStore(storage, clock=clock, max_entries=2)
        oldest = store.capture(TextContent("precious"))
        store.update(oldest, lambda e: replace(e, is_favorite=True))
        for i in range(3):
            clock.advance(1)
            store.capture(TextContent(f"item {i}"))
        assert "precious" in texts(store)
        assert store.count() == 2

    def test_new_entry_kept_when_all_others_are_favorites(self, storage, clock, make_entry):
        storage.save_all([
            make_entry("b", entry_id=2, captured_at=20, is_favorite=True),
            make_entry("a", entry_id=1, captured_at=10, is_favorite=True),
        ])
        store = EntryStore(storage, clock=clock, max_entries=2)
        entry_id = store.capture(TextContent("c"))
        assert entry_id in store
        assert texts(store) == ["c", "b", "a"]
        assert len(storage.load_all()) == 3

    def test_recapture_does_not_trim(self, storage, clock):
        store = EntryStore(storage, clock=clock, max_entries=2)
        store.capture(TextContent("a"))
        store.capture(TextContent("b"))
        store.capture(TextContent("a"))
        assert store.count() == 2


class TestTransaction:
    def test_exception_in_mutation_discards_changes(self, store):
        store.capture(TextContent("x"))

        def explode(entries):
            entries.clear()
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            store.transaction(explode)
        assert texts(store) == ["x"]

    def test_unchanged_history_not_written(self, backend, clock):
        store = EntryStore(backend, clock=clock)
        store.capture(TextContent("x"))
        calls = backend.save_calls
        assert store.transaction(lambda entries: "result") == "result"
        assert backend.save_calls == calls


class TestConcurrency:
    def test_concurrent_captures(self, tmp_path, clock):
        with StorageManager(db_path=tmp_path / "h.db") as storage:
            store = EntryStore(storage, clock=clock)

            def worker(n):
                for i in range(20):
                    store.capture(TextContent(f"{n}-{i % 10}"))

            threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

            assert store.count() == 40
            assert len({e.dedup_key for e in store.all()}) == 40
            assert len(storage.load_all()) == 40
