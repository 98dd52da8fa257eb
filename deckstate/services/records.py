"""Conversion between engine models and remote store records.

Remote data is never trusted to match the local schema: every reader here
type-checks field by field and substitutes a documented default.

    field              default when missing or mistyped
    order              position in the delivered list (1-based)
    title              title placeholder
    content / notes    subtitle placeholder / ""
    theme              "Default" (slides and snapshots)
    slideType          None
    createdAt          None
    comment author     "Team member"
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from deckstate.services.field_codec import ensure_formatting, placeholder_for
from deckstate.shared.encryption import FieldCipher
from deckstate.shared.enums import FieldKey, PresentationStatus, SlideType
from deckstate.shared.logging_utils import setup_logging
from deckstate.shared.models import (
    DEFAULT_THEME,
    CommentRecord,
    FieldPosition,
    FieldStyle,
    Slide,
    SlideDocument,
    SnapshotSlide,
    VersionSnapshot,
)

logger = setup_logging("remote-records")


def _str(value: Any, default: str = "") -> str:
    return value if isinstance(value, str) else default


def _optional_str(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def _int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return default


def _slide_type(value: Any) -> SlideType | None:
    try:
        return SlideType(value)
    except ValueError:
        return None


def coerce_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    return None


def _validated_map(raw: Any, model: type[FieldStyle] | type[FieldPosition]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    if not isinstance(raw, dict):
        return result
    for slot, value in raw.items():
        if not isinstance(value, dict):
            continue
        try:
            known = {key: item for key, item in value.items() if key in model.model_fields}
            result[str(slot)] = model.model_validate(known)
        except ValidationError:
            logger.debug(f"Dropping malformed {model.__name__} for slot {slot}")
    return result


# ----------------------------------------------------------------- slides


def slide_to_record(slide: Slide, cipher: FieldCipher) -> dict[str, Any]:
    """Remote slide record; content, notes and text boxes are encrypted."""
    return {
        "order": slide.order,
        "title": slide.title,
        "content": cipher.encrypt(slide.subtitle),
        "notes": cipher.encrypt(slide.notes),
        "theme": slide.theme or DEFAULT_THEME,
        "slideType": slide.slide_type.value if slide.slide_type else None,
        "layout": slide.layout,
        "transition": slide.transition,
        "formatting": ensure_formatting(slide.formatting).model_dump(mode="json"),
        "styles": {slot: style.model_dump(mode="json") for slot, style in slide.styles.items()},
        "positions": {slot: pos.model_dump(mode="json") for slot, pos in slide.positions.items()},
        "textBoxes": {box_id: cipher.encrypt(text) for box_id, text in slide.text_boxes.items()},
        "backgroundImage": slide.background_image,
    }


def slide_from_record(slide_id: str, data: Any, index: int, cipher: FieldCipher) -> Slide:
    data = data if isinstance(data, dict) else {}

    raw_content = _str(data.get("content"))
    if not raw_content:
        # legacy records kept the body under "subtitle"
        raw_content = _str(data.get("subtitle"))
    content = cipher.decrypt(raw_content) if raw_content else ""
    notes_raw = _str(data.get("notes"))

    raw_boxes = data.get("textBoxes")
    text_boxes: dict[str, str] = {}
    if isinstance(raw_boxes, dict):
        for box_id, text in raw_boxes.items():
            text_boxes[str(box_id)] = cipher.decrypt(text) if isinstance(text, str) else ""

    return Slide(
        id=slide_id,
        order=_int(data.get("order"), index + 1),
        title=_str(data.get("title")) or placeholder_for(FieldKey.TITLE),
        subtitle=content or placeholder_for(FieldKey.SUBTITLE),
        notes=cipher.decrypt(notes_raw) if notes_raw else "",
        text_boxes=text_boxes,
        formatting=ensure_formatting(data.get("formatting") if isinstance(data.get("formatting"), dict) else None),
        styles=_validated_map(data.get("styles"), FieldStyle),
        positions=_validated_map(data.get("positions"), FieldPosition),
        theme=_str(data.get("theme")) or DEFAULT_THEME,
        slide_type=_slide_type(data.get("slideType")),
        layout=_optional_str(data.get("layout")),
        transition=_optional_str(data.get("transition")),
        background_image=_optional_str(data.get("backgroundImage")),
    )


def slides_from_records(records: list[tuple[str, Any]], cipher: FieldCipher) -> list[Slide]:
    """Decode and sort by ``order``; ties keep arrival order (sort is stable)."""
    slides = [slide_from_record(slide_id, data, index, cipher) for index, (slide_id, data) in enumerate(records)]
    return sorted(slides, key=lambda slide: slide.order)


# ----------------------------------------------------------- presentations


def presentation_to_record(document: SlideDocument, is_shared: bool | None = None) -> dict[str, Any]:
    record: dict[str, Any] = {
        "title": document.title,
        "status": document.status.value,
        "collaboratorIds": list(document.collaborator_ids),
        "updatedAt": datetime.now(UTC),
    }
    if document.owner_id:
        record["ownerId"] = document.owner_id
    if is_shared is not None:
        record["isShared"] = is_shared
    return record


def apply_presentation_record(document: SlideDocument, data: Any) -> SlideDocument:
    data = data if isinstance(data, dict) else {}
    try:
        status = PresentationStatus(data.get("status"))
    except ValueError:
        status = PresentationStatus.DRAFT
    collaborators = data.get("collaboratorIds")
    return document.model_copy(
        update={
            "title": _str(data.get("title")).strip() or document.title,
            "status": status,
            "owner_id": _optional_str(data.get("ownerId")),
            "collaborator_ids": [c for c in collaborators if isinstance(c, str)]
            if isinstance(collaborators, list)
            else [],
        }
    )


# ---------------------------------------------------------------- versions


def snapshot_slide_to_record(snapshot: SnapshotSlide) -> dict[str, Any]:
    return {
        "slideId": snapshot.slide_id,
        "order": snapshot.order,
        "title": snapshot.title,
        "encryptedContent": snapshot.encrypted_content,
        "encryptedNotes": snapshot.encrypted_notes,
        "theme": snapshot.theme,
        "slideType": snapshot.slide_type.value if snapshot.slide_type else None,
    }


def version_to_record(version: VersionSnapshot) -> dict[str, Any]:
    return {
        "createdAt": version.created_at or datetime.now(UTC),
        "createdBy": version.created_by,
        "summary": version.summary,
        "slidesSnapshot": [snapshot_slide_to_record(item) for item in version.slides_snapshot],
    }


def version_from_record(version_id: str, data: Any) -> VersionSnapshot:
    data = data if isinstance(data, dict) else {}
    raw_slides = data.get("slidesSnapshot")
    snapshot: list[SnapshotSlide] = []
    for item in raw_slides if isinstance(raw_slides, list) else []:
        if not isinstance(item, dict):
            continue
        slide_id = _str(item.get("slideId"))
        if not slide_id:
            continue
        snapshot.append(
            SnapshotSlide(
                slide_id=slide_id,
                order=_int(item.get("order"), 0),
                title=_str(item.get("title")),
                encrypted_content=_str(item.get("encryptedContent")),
                encrypted_notes=_str(item.get("encryptedNotes")),
                theme=_str(item.get("theme")) or DEFAULT_THEME,
                slide_type=_slide_type(item.get("slideType")),
            )
        )
    return VersionSnapshot(
        id=version_id,
        created_at=coerce_datetime(data.get("createdAt")),
        created_by=_optional_str(data.get("createdBy")),
        summary=_str(data.get("summary")),
        slides_snapshot=snapshot,
    )


# ---------------------------------------------------------------- comments


def comment_from_record(comment_id: str, data: Any, cipher: FieldCipher) -> CommentRecord:
    data = data if isinstance(data, dict) else {}
    raw_text = _str(data.get("text"))
    message = (cipher.decrypt(raw_text) if raw_text else "") or raw_text
    created_at = coerce_datetime(data.get("createdAt"))
    return CommentRecord(
        id=comment_id,
        author=_str(data.get("userName")) or "Team member",
        message=message,
        timestamp=created_at.strftime("%H:%M") if created_at else "",
    )
