"""Bounded undo/redo history over full slide-sequence snapshots."""

from __future__ import annotations

from deckstate.shared.config import config
from deckstate.shared.logging_utils import setup_logging
from deckstate.shared.models import Slide

logger = setup_logging("mutation-history")

DEFAULT_HISTORY_LIMIT = 50


def clone_slides(slides: list[Slide]) -> list[Slide]:
    return [slide.model_copy(deep=True) for slide in slides]


class MutationHistory:
    """Cursor over a bounded list of slide snapshots.

    Entries are deep copies on the way in and on the way out, so nothing held
    here ever aliases live document state. Invariant: ``0 <= index < length``
    whenever the history is non-empty.
    """

    def __init__(self, limit: int | None = None) -> None:
        if limit is None:
            limit = int(config.get_pipeline_value("history.limit", DEFAULT_HISTORY_LIMIT))
        if limit < 1:
            raise ValueError("history limit must be at least 1")
        self.limit = limit
        self._entries: list[list[Slide]] = []
        self._index = -1

    @property
    def length(self) -> int:
        return len(self._entries)

    @property
    def index(self) -> int:
        return self._index

    @property
    def can_undo(self) -> bool:
        return self._index > 0

    @property
    def can_redo(self) -> bool:
        return 0 <= self._index < len(self._entries) - 1

    def clear(self) -> None:
        """Drop all entries; the next push becomes entry 0."""
        self._entries = []
        self._index = -1

    def reset(self, slides: list[Slide]) -> None:
        """Drop all entries and seed with a single snapshot (hydration, restore)."""
        self._entries = [clone_slides(slides)]
        self._index = 0

    def push(self, slides: list[Slide]) -> bool:
        """Record a new state after the cursor, discarding any redo tail.

        Returns False when the snapshot equals the entry under the cursor.
        """
        if self._entries and self._entries[self._index] == slides:
            return False

        del self._entries[self._index + 1:]
        self._entries.append(clone_slides(slides))
        self._index = len(self._entries) - 1

        overflow = len(self._entries) - self.limit
        if overflow > 0:
            del self._entries[:overflow]
            self._index = max(0, self._index - overflow)
            logger.debug(f"History full, evicted {overflow} oldest entr{'y' if overflow == 1 else 'ies'}")
        return True

    def undo(self) -> list[Slide] | None:
        if not self.can_undo:
            return None
        self._index -= 1
        return clone_slides(self._entries[self._index])

    def redo(self) -> list[Slide] | None:
        if not self.can_redo:
            return None
        self._index += 1
        return clone_slides(self._entries[self._index])

    def current(self) -> list[Slide] | None:
        if self._index < 0:
            return None
        return clone_slides(self._entries[self._index])
