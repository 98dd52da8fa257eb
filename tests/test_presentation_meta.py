"""Tests for the local index of recently edited presentations."""

from deckstate.services.presentation_meta import (
    PRESENTATION_META_STORAGE_KEY,
    PresentationMetaIndex,
    build_search_index,
    sanitize_entry,
)
from deckstate.shared.enums import PresentationStatus
from deckstate.shared.models import Slide


def test_record_draft_then_mark_saved(local_storage):
    index = PresentationMetaIndex(local_storage)
    index.record_draft("deck-1", "Q3 Plan")

    entry = index.get("deck-1")
    assert entry.title == "Q3 Plan"
    assert not entry.is_saved
    assert entry.updated_at

    slides = [Slide(id="s1", title="Revenue", subtitle="<b>Up</b>&nbsp;10%", notes="Mention churn")]
    index.mark_saved("deck-1", "Q3 Plan", slides, PresentationStatus.DRAFT)

    entry = index.get("deck-1")
    assert entry.is_saved
    assert entry.search_index == "q3 plan revenue up 10% mention churn"


def test_newest_entry_first_and_no_duplicates(local_storage):
    index = PresentationMetaIndex(local_storage)
    index.record_draft("a", "First")
    index.record_draft("b", "Second")
    index.record_draft("a", "First again")

    assert [entry.id for entry in index.read()] == ["a", "b"]
    assert index.get("a").title == "First again"


def test_update_status_creates_missing_entry(local_storage):
    index = PresentationMetaIndex(local_storage)
    index.update_status("deck-9", PresentationStatus.FINAL)

    entry = index.get("deck-9")
    assert entry.status is PresentationStatus.FINAL
    assert entry.title == "Untitled presentation"


def test_stored_entries_use_camel_case_keys(local_storage):
    PresentationMetaIndex(local_storage).record_draft("deck-1", "Plan")
    [stored] = local_storage.get_item(PRESENTATION_META_STORAGE_KEY)
    assert set(stored) == {"id", "title", "updatedAt", "isSaved", "searchIndex", "status"}


def test_sanitize_entry_repairs_or_drops():
    assert sanitize_entry("nope") is None
    assert sanitize_entry({"title": "no id"}) is None

    entry = sanitize_entry({"id": "x", "title": "  ", "status": "archived", "isSaved": 1, "searchIndex": 4})
    assert entry.title == "Untitled presentation"
    assert entry.status is PresentationStatus.DRAFT
    assert entry.is_saved is True
    assert entry.search_index is None


def test_malformed_index_reads_as_empty(local_storage):
    local_storage.set_item(PRESENTATION_META_STORAGE_KEY, {"not": "a list"})
    assert PresentationMetaIndex(local_storage).read() == []


def test_search_index_skips_placeholders():
    slides = [Slide(id="s1", title="Click to add title", subtitle="Click to add subtitle", text_boxes={"b": "Box"})]
    assert build_search_index("Deck", slides) == "deck box"
