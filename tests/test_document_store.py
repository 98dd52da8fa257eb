"""Tests for the in-memory slide document store."""

from deckstate.services.document_store import SessionContext, SlideDocumentStore
from deckstate.shared.enums import FieldKey, MoveDirection
from deckstate.shared.models import Slide


def make_store(*slide_ids: str) -> SlideDocumentStore:
    store = SlideDocumentStore(SessionContext(presentation_id="deck-1"))
    store.load([Slide(id=slide_id, order=index) for index, slide_id in enumerate(slide_ids, start=1)])
    return store


def test_load_seeds_history_and_selects_first_slide():
    store = make_store("a", "b")
    assert store.hydrated
    assert store.selected_slide_id == "a"
    assert store.history.length == 1
    assert store.slides[0].title == "Click to add title"


def test_load_sorts_by_order_keeping_arrival_for_ties():
    store = SlideDocumentStore()
    store.load([Slide(id="late", order=2), Slide(id="first", order=1), Slide(id="tie", order=2)])
    assert [slide.id for slide in store.slides] == ["first", "late", "tie"]


def test_new_document_then_edit_add_delete():
    store = SlideDocumentStore()
    store.new_document("slide-1")
    assert store.history.length == 0

    assert store.update_field("slide-1", FieldKey.TITLE, "Q3 Plan")
    added = store.add_slide()
    assert store.selected_slide_id == added.id
    removed = store.delete_slide("slide-1")

    assert removed is not None and removed.title == "Q3 Plan"
    assert [slide.id for slide in store.slides] == [added.id]
    assert store.selected_slide_id == added.id
    assert store.history.length == 3
    assert store.history.index == 2

    assert store.undo()
    assert [slide.id for slide in store.slides] == ["slide-1", added.id]
    assert store.undo()
    assert not store.undo()
    assert store.get_slide("slide-1").title == "Q3 Plan"


def test_deleting_sole_slide_is_refused():
    store = SlideDocumentStore()
    only = store.new_document("only")

    assert store.delete_slide(only.id) is None
    assert [slide.id for slide in store.slides] == ["only"]
    assert store.history.length == 0


def test_delete_selects_previous_then_next():
    store = make_store("a", "b", "c")
    store.select_slide("b")
    store.delete_slide("b")
    assert store.selected_slide_id == "a"

    store.delete_slide("a")
    assert store.selected_slide_id == "c"


def test_delete_unknown_slide_is_noop():
    store = make_store("a", "b")
    assert store.delete_slide("missing") is None
    assert store.history.length == 1


def test_add_slide_uses_next_order_and_theme():
    store = make_store("a", "b")
    store.set_theme("a", "Ocean")
    slide = store.add_slide()
    assert slide.order == 3
    assert slide.theme == "Ocean"
    assert slide.id not in ("a", "b")


def test_move_slide_swaps_and_stops_at_boundaries():
    store = make_store("a", "b", "c")
    assert not store.move_slide(MoveDirection.UP)
    assert store.move_slide(MoveDirection.DOWN)
    assert [slide.id for slide in store.slides] == ["b", "a", "c"]
    assert store.history.length == 2

    store.select_slide("c")
    assert not store.move_slide("down")


def test_reorder_commit_renumbers_without_history():
    store = make_store("a", "b", "c")
    store.move_slide(MoveDirection.DOWN)
    store.reorder_commit()
    assert [(slide.id, slide.order) for slide in store.slides] == [("b", 1), ("a", 2), ("c", 3)]
    assert store.history.length == 2


def test_select_unknown_and_focus_do_not_touch_history():
    store = make_store("a", "b")
    assert not store.select_slide("zzz")
    assert store.selected_slide_id == "a"
    store.focus_field(FieldKey.NOTES)
    store.context.open_picker = "theme"
    store.select_slide("b")
    assert store.history.length == 1
    assert store.context.active_field is FieldKey.NOTES


def test_update_field_without_change_does_not_push():
    store = make_store("a")
    assert store.update_field("a", FieldKey.NOTES, "speaker notes")
    assert not store.update_field("a", FieldKey.NOTES, "speaker notes")
    assert store.history.length == 2


def test_update_field_unknown_slide_or_box():
    store = make_store("a")
    assert not store.update_field("missing", FieldKey.TITLE, "x")
    assert not store.update_field("a", FieldKey.TEXT_BOX, "x", box_id="nope")


def test_update_style_is_a_shallow_merge():
    store = make_store("a")
    assert store.update_style("a", FieldKey.TITLE, {"font_size": 40})
    assert store.update_style("a", FieldKey.TITLE, {"bold": True})
    style = store.get_slide("a").styles["title"]
    assert style.font_size == 40
    assert style.bold is True
    assert style.font_family == "Calibri"


def test_invalid_style_is_rejected():
    store = make_store("a")
    assert not store.update_style("a", FieldKey.TITLE, {"font_size": -3})
    assert "title" not in store.get_slide("a").styles
    assert store.history.length == 1


def test_unknown_record_keys_are_rejected():
    store = make_store("a")
    assert not store.update_style("a", FieldKey.TITLE, {"fontSize": 40})
    assert not store.update_position("a", FieldKey.TITLE, {"left": 10})
    assert not store.update_formatting("a", FieldKey.TITLE, {"lineHeight": 2.0})
    assert store.get_slide("a").styles == {}
    assert store.history.length == 1


def test_text_box_lifecycle():
    store = make_store("a")
    box_id = store.add_text_box("a", "hello")
    assert box_id is not None
    assert store.update_field("a", FieldKey.TEXT_BOX, "hello there", box_id=box_id)
    assert store.update_position("a", FieldKey.TEXT_BOX, {"x": 120, "y": 40}, box_id=box_id)
    assert store.update_formatting("a", FieldKey.TEXT_BOX, {"line_height": 2.0}, box_id=box_id)

    slide = store.get_slide("a")
    assert slide.text_boxes[box_id] == "hello there"
    assert slide.positions[f"textBox:{box_id}"].x == 120
    assert slide.formatting.text_boxes[box_id].line_height == 2.0

    assert store.remove_text_box("a", box_id)
    slide = store.get_slide("a")
    assert box_id not in slide.text_boxes
    assert f"textBox:{box_id}" not in slide.positions


def test_update_formatting_for_named_field():
    store = make_store("a")
    assert store.update_formatting("a", FieldKey.NOTES, {"line_height": 1.9})
    formatting = store.get_slide("a").formatting
    assert formatting.notes.line_height == 1.9
    assert formatting.title.line_height == 1.2


def test_history_bound_through_store():
    store = make_store("a")
    for i in range(60):
        store.update_field("a", FieldKey.TITLE, f"title {i}")
    assert store.history.length == 50


def test_undo_redo_restores_adjacent_states():
    store = make_store("a")
    store.update_field("a", FieldKey.TITLE, "one")
    store.update_field("a", FieldKey.TITLE, "two")

    assert store.undo()
    assert store.get_slide("a").title == "one"
    assert store.redo()
    assert store.get_slide("a").title == "two"
    assert not store.redo()


def test_undo_never_aliases_history():
    store = make_store("a")
    store.update_field("a", FieldKey.TITLE, "one")
    store.undo()
    store.slides[0].title = "edited directly"
    store.redo()
    store.undo()
    assert store.get_slide("a").title == "Click to add title"
