import pytest

from clipkeep.errors import InvalidArgumentError, NotFoundError
from clipkeep.models import TextContent
from clipkeep.store import EntryStore
from clipkeep.tags import TagIndex


class TestAddRemove:
    def test_add_tag(self, store, tags):
        entry_id = store.capture(TextContent("x"))
        tags.add(entry_id, "work")
        assert tags.tags_for(entry_id) == frozenset({"work"})

    def test_add_is_idempotent(self, backend, clock):
        store = EntryStore(backend, clock=clock)
        tags = TagIndex(store)
        entry_id = store.capture(TextContent("x"))
        tags.add(entry_id, "work")
        calls = backend.save_calls
        tags.add(entry_id, "work")
        assert tags.tags_for(entry_id) == frozenset({"work"})
        assert backend.save_calls == calls

    def test_tags_are_case_sensitive(self, store, tags):
        entry_id = store.capture(TextContent("x"))
        tags.add(entry_id, "Work")
        tags.add(entry_id, "work")
        assert tags.tags_for(entry_id) == frozenset({"Work", "work"})

    def test_remove_tag(self, store, tags):
        entry_id = store.capture(TextContent("x"))
        tags.add(entry_id, "a")
        tags.add(entry_id, "b")
        tags.remove(entry_id, "a")
        assert tags.tags_for(entry_id) == frozenset({"b"})

    def test_remove_missing_tag_is_noop(self, store, tags):
        entry_id = store.capture(TextContent("x"))
        tags.remove(entry_id, "never-added")
        assert tags.tags_for(entry_id) == frozenset()

    def test_empty_tag_rejected(self, store, tags):
        entry_id = store.capture(TextContent("x"))
        with pytest.raises(InvalidArgumentError):
            tags.add(entry_id, "")
        with pytest.raises(InvalidArgumentError):
            tags.remove(entry_id, "")
        assert tags.tags_for(entry_id) == frozenset()

    def test_empty_tag_checked_before_lookup(self, tags):
        with pytest.raises(InvalidArgumentError):
            tags.add(12345, "")

    def test_unknown_entry(self, tags):
        with pytest.raises(NotFoundError):
            tags.add(12345, "a")


class TestQueries:
    def test_all_tags_sorted_distinct(self, store, tags):
        a = store.capture(TextContent("a"))
        b = store.capture(TextContent("b"))
        tags.add(a, "zeta")
        tags.add(a, "alpha")
        tags.add(b, "alpha")
        assert tags.all_tags() == ["alpha", "zeta"]

    def test_entries_with(self, store, tags):
        a = store.capture(TextContent("a"))
        store.capture(TextContent("b"))
        tags.add(a, "keep")
        assert [e.id for e in tags.entries_with("keep")] == [a]

    def test_tags_persisted(self, store, storage, tags):
        entry_id = store.capture(TextContent("x"))
        tags.add(entry_id, "saved")
        assert storage.load_all()[0].tags == frozenset({"saved"})
