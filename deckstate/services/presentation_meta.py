"""Recently edited presentations, kept in local storage for the dashboard and search."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from deckstate.services.field_codec import is_placeholder, plain_text
from deckstate.services.persistence.local_storage import LocalStorage
from deckstate.shared.enums import FieldKey, PresentationStatus
from deckstate.shared.errors import PersistenceFailure
from deckstate.shared.logging_utils import setup_logging
from deckstate.shared.models import PresentationMeta, Slide

logger = setup_logging("presentation-meta")

PRESENTATION_META_STORAGE_KEY = "presentationMeta"
UNTITLED = "Untitled presentation"


def _timestamp_label() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


def sanitize_entry(entry: Any) -> PresentationMeta | None:
    if not isinstance(entry, dict):
        return None
    entry_id = entry.get("id")
    if not isinstance(entry_id, str) or not entry_id:
        return None
    title = entry.get("title")
    updated_at = entry.get("updatedAt")
    search_index = entry.get("searchIndex")
    status = entry.get("status")
    return PresentationMeta(
        id=entry_id,
        title=title if isinstance(title, str) and title.strip() else UNTITLED,
        updated_at=updated_at if isinstance(updated_at, str) and updated_at.strip() else None,
        is_saved=bool(entry.get("isSaved")),
        search_index=search_index if isinstance(search_index, str) else None,
        status=PresentationStatus(status) if status in ("draft", "final") else PresentationStatus.DRAFT,
    )


def build_search_index(title: str, slides: list[Slide]) -> str:
    """Lowercased, single-spaced text of the title and every slide field."""
    parts = [plain_text(title)] if title else []
    for slide in slides:
        if not is_placeholder(FieldKey.TITLE, slide.title):
            parts.append(plain_text(slide.title))
        if not is_placeholder(FieldKey.SUBTITLE, slide.subtitle):
            parts.append(plain_text(slide.subtitle))
        parts.append(plain_text(slide.notes))
        parts.extend(plain_text(text) for text in slide.text_boxes.values())
    return " ".join(" ".join(parts).split()).lower()


class PresentationMetaIndex:
    def __init__(self, storage: LocalStorage) -> None:
        self.storage = storage

    def read(self) -> list[PresentationMeta]:
        try:
            raw = self.storage.get_item(PRESENTATION_META_STORAGE_KEY)
        except PersistenceFailure as e:
            logger.error(f"Failed to read presentation meta: {e}")
            return []
        if not isinstance(raw, list):
            return []
        return [entry for entry in (sanitize_entry(item) for item in raw) if entry is not None]

    def get(self, presentation_id: str) -> PresentationMeta | None:
        for entry in self.read():
            if entry.id == presentation_id:
                return entry
        return None

    def _upsert(self, entry: PresentationMeta) -> None:
        entries = [entry] + [item for item in self.read() if item.id != entry.id]
        payload = [
            {
                "id": item.id,
                "title": item.title,
                "updatedAt": item.updated_at,
                "isSaved": item.is_saved,
                "searchIndex": item.search_index,
                "status": item.status.value,
            }
            for item in entries
        ]
        try:
            self.storage.set_item(PRESENTATION_META_STORAGE_KEY, payload)
        except PersistenceFailure as e:
            logger.error(f"Failed to write presentation meta: {e}")

    def record_draft(self, presentation_id: str, title: str) -> None:
        if not presentation_id:
            return
        current = self.get(presentation_id)
        self._upsert(
            PresentationMeta(
                id=presentation_id,
                title=title if title and title.strip() else (current.title if current else UNTITLED),
                updated_at=current.updated_at if current and current.updated_at else _timestamp_label(),
                is_saved=current.is_saved if current else False,
                search_index=current.search_index if current else None,
                status=current.status if current else PresentationStatus.DRAFT,
            )
        )

    def mark_saved(
        self, presentation_id: str, title: str, slides: list[Slide], status: PresentationStatus
    ) -> None:
        if not presentation_id:
            return
        current = self.get(presentation_id)
        self._upsert(
            PresentationMeta(
                id=presentation_id,
                title=title if title and title.strip() else (current.title if current else UNTITLED),
                updated_at=_timestamp_label(),
                is_saved=True,
                search_index=build_search_index(title, slides),
                status=status,
            )
        )

    def update_status(self, presentation_id: str, status: PresentationStatus) -> None:
        if not presentation_id:
            return
        current = self.get(presentation_id)
        if current is None:
            current = PresentationMeta(
                id=presentation_id, updated_at=_timestamp_label(), is_saved=False, search_index=""
            )
        self._upsert(current.model_copy(update={"status": PresentationStatus(status)}))
