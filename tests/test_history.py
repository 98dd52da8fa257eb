"""Tests for the bounded undo/redo history."""

import pytest

from deckstate.services.history import MutationHistory
from deckstate.shared.models import Slide


def state(label: str) -> list[Slide]:
    return [Slide(id="s1", title=label)]


def titles(slides):
    return [slide.title for slide in slides]


def test_undo_redo_walks_the_cursor():
    history = MutationHistory(limit=50)
    history.reset(state("initial"))
    history.push(state("one"))
    history.push(state("two"))

    assert titles(history.undo()) == ["one"]
    assert titles(history.undo()) == ["initial"]
    assert history.undo() is None
    assert titles(history.redo()) == ["one"]
    assert titles(history.redo()) == ["two"]
    assert history.redo() is None


def test_push_after_undo_discards_redo_tail():
    history = MutationHistory(limit=50)
    history.reset(state("initial"))
    history.push(state("one"))
    history.push(state("two"))
    history.undo()

    history.push(state("branch"))

    assert history.length == 3
    assert not history.can_redo
    assert titles(history.current()) == ["branch"]


def test_entries_never_alias_live_state():
    history = MutationHistory(limit=50)
    live = state("initial")
    history.reset(live)
    live[0].title = "mutated in place"
    assert titles(history.current()) == ["initial"]

    restored = history.current()
    restored[0].title = "mutated copy"
    assert titles(history.current()) == ["initial"]


def test_identical_snapshot_is_not_pushed_twice():
    history = MutationHistory(limit=50)
    history.reset(state("initial"))
    assert history.push(state("one")) is True
    assert history.push(state("one")) is False
    assert history.length == 2


def test_history_is_bounded_and_keeps_newest_entries():
    history = MutationHistory(limit=50)
    history.reset(state("state 0"))
    for i in range(1, 61):
        history.push(state(f"state {i}"))

    assert history.length == 50
    assert history.index == 49

    for _ in range(50):
        history.undo()

    # the oldest retained state, not the true initial one
    assert titles(history.current()) == ["state 11"]
    assert history.index == 0


@pytest.mark.parametrize("steps_back", [1, 2, 3])
def test_undo_then_redo_is_identity_inside_the_stack(steps_back):
    history = MutationHistory(limit=50)
    history.reset(state("initial"))
    for i in range(5):
        history.push(state(f"edit {i}"))
    for _ in range(steps_back):
        history.undo()

    before = history.current()
    history.undo()
    assert history.redo() == before


def test_limit_comes_from_config():
    from deckstate.shared.config import config

    config.set_pipeline_config({"history": {"limit": 3}})
    history = MutationHistory()
    history.reset(state("initial"))
    for i in range(5):
        history.push(state(f"edit {i}"))
    assert history.limit == 3
    assert history.length == 3


def test_invalid_limit_rejected():
    with pytest.raises(ValueError):
        MutationHistory(limit=0)


def test_cleared_history_starts_at_first_push():
    history = MutationHistory(limit=50)
    history.reset(state("initial"))
    history.clear()

    assert history.current() is None
    assert not history.can_undo
    history.push(state("one"))
    assert history.length == 1
    assert history.index == 0
    assert not history.can_undo
