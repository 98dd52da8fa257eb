"""Field codec: editable-surface markup <-> stored field values, plus record defaults."""

from __future__ import annotations

import re
from typing import Any

from deckstate.shared.enums import FieldKey, ListType, TextAlign
from deckstate.shared.models import (
    DEFAULT_LINE_HEIGHTS,
    DEFAULT_THEME,
    FieldFormatting,
    Slide,
    SlideFormatting,
)

PLACEHOLDERS: dict[FieldKey, str] = {
    FieldKey.TITLE: "Click to add title",
    FieldKey.SUBTITLE: "Click to add subtitle",
    FieldKey.NOTES: "",
    FieldKey.TEXT_BOX: "",
}

TEXT_BOX_SLOT_PREFIX = "textBox:"

_LINE_BREAK_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
_NBSP_RE = re.compile(r"&nbsp;|\u00a0", re.IGNORECASE)
_EMPTY_WRAPPER_RE = re.compile(r"<(div|p|span)(\s[^>]*)?>\s*</\1>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")
_WHITESPACE_RE = re.compile(r"\s+")


def field_slot(field: FieldKey, box_id: str | None = None) -> str:
    """Name under which per-field style/position/formatting records are keyed."""
    if field is FieldKey.TITLE:
        return "title"
    if field is FieldKey.SUBTITLE:
        return "subtitle"
    if field is FieldKey.NOTES:
        return "notes"
    if field is FieldKey.TEXT_BOX:
        if not box_id:
            raise ValueError("text_box fields require a box id")
        return f"{TEXT_BOX_SLOT_PREFIX}{box_id}"
    raise ValueError(f"Unknown field: {field!r}")


def placeholder_for(field: FieldKey) -> str:
    return PLACEHOLDERS[field]


def strip_structural_markup(markup: str) -> str:
    """Remove markup that renders nothing: line breaks, nbsp and empty wrappers."""
    cleaned = _LINE_BREAK_RE.sub("", markup)
    cleaned = _NBSP_RE.sub(" ", cleaned)
    previous = None
    while previous != cleaned:
        previous = cleaned
        cleaned = _EMPTY_WRAPPER_RE.sub("", cleaned)
    return cleaned.strip()


def normalize(field: FieldKey, surface_content: str | None) -> str:
    """Convert raw surface markup into the stored field value.

    Structurally empty content becomes the field's placeholder; anything else is
    kept verbatim, markup included.
    """
    raw = surface_content or ""
    if not strip_structural_markup(raw):
        return placeholder_for(field)
    return raw


def denormalize(value: str) -> str:
    return value


def is_placeholder(field: FieldKey, value: str) -> bool:
    return value == placeholder_for(field)


def plain_text(markup: str) -> str:
    """Markup reduced to single-spaced text, used for search indexing."""
    text = _TAG_RE.sub(" ", markup or "")
    text = _NBSP_RE.sub(" ", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def _line_height(source: Any, default: float) -> FieldFormatting:
    value = None
    if isinstance(source, FieldFormatting):
        value = source.line_height
    elif isinstance(source, dict):
        value = source.get("line_height", source.get("lineHeight"))
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0:
        return FieldFormatting(line_height=float(value))
    return FieldFormatting(line_height=default)


def ensure_formatting(formatting: SlideFormatting | dict[str, Any] | None) -> SlideFormatting:
    """Return a complete formatting record, synthesizing defaults for anything missing.

    Total over partial or absent input and idempotent on its own output.
    """
    if isinstance(formatting, SlideFormatting):
        data: dict[str, Any] = formatting.model_dump()
    elif isinstance(formatting, dict):
        data = formatting
    else:
        data = {}

    raw_boxes = data.get("text_boxes", data.get("textBoxes"))
    text_boxes = {}
    if isinstance(raw_boxes, dict):
        for box_id, box_formatting in raw_boxes.items():
            text_boxes[str(box_id)] = _line_height(box_formatting, DEFAULT_LINE_HEIGHTS["text_box"])

    defaults = SlideFormatting()
    toggles: dict[str, Any] = {}
    for key in ("bold", "italic", "underline"):
        toggles[key] = data[key] if isinstance(data.get(key), bool) else getattr(defaults, key)
    try:
        toggles["align"] = TextAlign(data.get("align"))
    except ValueError:
        toggles["align"] = defaults.align
    try:
        toggles["list_type"] = ListType(data.get("list_type", data.get("listType")))
    except ValueError:
        toggles["list_type"] = defaults.list_type

    return SlideFormatting(
        title=_line_height(data.get("title"), DEFAULT_LINE_HEIGHTS["title"]),
        subtitle=_line_height(data.get("subtitle"), DEFAULT_LINE_HEIGHTS["subtitle"]),
        notes=_line_height(data.get("notes"), DEFAULT_LINE_HEIGHTS["notes"]),
        text_boxes=text_boxes,
        **toggles,
    )


def create_default_slide(slide_id: str, order: int = 1, theme: str = DEFAULT_THEME) -> Slide:
    return Slide(
        id=slide_id,
        order=order,
        title=placeholder_for(FieldKey.TITLE),
        subtitle=placeholder_for(FieldKey.SUBTITLE),
        notes="",
        theme=theme,
        formatting=ensure_formatting(None),
    )


def ensure_slide(slide: Slide) -> Slide:
    """Guarantee title/subtitle fields and a complete formatting record."""
    updates: dict[str, Any] = {"formatting": ensure_formatting(slide.formatting)}
    if not slide.title:
        updates["title"] = placeholder_for(FieldKey.TITLE)
    if not slide.subtitle:
        updates["subtitle"] = placeholder_for(FieldKey.SUBTITLE)
    if not slide.theme:
        updates["theme"] = DEFAULT_THEME
    return slide.model_copy(update=updates)
