"""In-memory slide collection for one editing session."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ValidationError

from deckstate.services.field_codec import (
    create_default_slide,
    ensure_formatting,
    ensure_slide,
    field_slot,
)
from deckstate.services.history import MutationHistory, clone_slides
from deckstate.shared.enums import FieldKey, MoveDirection
from deckstate.shared.logging_utils import setup_logging
from deckstate.shared.models import (
    DEFAULT_LINE_HEIGHTS,
    DEFAULT_THEME,
    CallerIdentity,
    FieldFormatting,
    FieldPosition,
    FieldStyle,
    Slide,
)

logger = setup_logging("slide-document-store")


@dataclass
class SessionContext:
    """Per-session state that is not part of the document.

    Focus and picker state live here so that changing them never touches the
    history.
    """

    presentation_id: str | None = None
    caller: CallerIdentity | None = None
    selected_slide_id: str | None = None
    selected_theme: str | None = None
    active_field: FieldKey | None = None
    active_box_id: str | None = None
    open_picker: str | None = None
    language: str = "en"


def new_slide_id() -> str:
    return f"slide-{uuid4().hex[:12]}"


def _merge(model: BaseModel, partial: dict[str, Any]) -> BaseModel:
    return type(model).model_validate({**model.model_dump(), **partial})


class SlideDocumentStore:
    """Owns the ordered slides and applies every mutation to them.

    Operations that change content, style, position or structure push a
    snapshot onto the history; failed preconditions are logged no-ops.
    """

    def __init__(self, context: SessionContext | None = None, history: MutationHistory | None = None) -> None:
        self.context = context or SessionContext()
        self.history = history or MutationHistory()
        self._slides: list[Slide] = []
        self.hydrated = False

    # ------------------------------------------------------------------ reads

    @property
    def slides(self) -> list[Slide]:
        return self._slides

    @property
    def selected_slide_id(self) -> str | None:
        return self.context.selected_slide_id

    @property
    def selected_slide(self) -> Slide | None:
        return self.get_slide(self.context.selected_slide_id)

    def get_slide(self, slide_id: str | None) -> Slide | None:
        if slide_id is None:
            return None
        for slide in self._slides:
            if slide.id == slide_id:
                return slide
        return None

    def index_of(self, slide_id: str | None) -> int:
        for index, slide in enumerate(self._slides):
            if slide.id == slide_id:
                return index
        return -1

    def snapshot(self) -> list[Slide]:
        return clone_slides(self._slides)

    # -------------------------------------------------------------- hydration

    def load(self, slides: list[Slide], select_slide_id: str | None = None) -> None:
        """Adopt a slide sequence as the new baseline and reseed the history."""
        if not slides:
            slides = [create_default_slide(new_slide_id(), theme=self.context.selected_theme or DEFAULT_THEME)]
        ordered = sorted((ensure_slide(slide) for slide in slides), key=lambda slide: slide.order)
        self._slides = clone_slides(ordered)
        self.history.reset(self._slides)
        self.hydrated = True

        if self.get_slide(select_slide_id) is not None:
            self.context.selected_slide_id = select_slide_id
        elif self.get_slide(self.context.selected_slide_id) is None:
            self.context.selected_slide_id = self._slides[0].id

    def new_document(self, slide_id: str | None = None) -> Slide:
        """Start a blank one-slide document. The blank state is not an undo target."""
        slide = create_default_slide(
            slide_id or new_slide_id(), theme=self.context.selected_theme or DEFAULT_THEME
        )
        self.load([slide], select_slide_id=slide.id)
        self.history.clear()
        return self._slides[0]

    # ---------------------------------------------------------- transient state

    def select_slide(self, slide_id: str) -> bool:
        if self.get_slide(slide_id) is None:
            return False
        self.context.selected_slide_id = slide_id
        return True

    def focus_field(self, field: FieldKey | None, box_id: str | None = None) -> None:
        self.context.active_field = field
        self.context.active_box_id = box_id if field is FieldKey.TEXT_BOX else None

    # ------------------------------------------------------------- mutations

    def _commit(self) -> None:
        self.history.push(self._slides)

    def _require(self, slide_id: str, operation: str) -> Slide | None:
        slide = self.get_slide(slide_id)
        if slide is None:
            logger.warning(f"{operation}: unknown slide {slide_id}")
        return slide

    def update_field(self, slide_id: str, field: FieldKey, value: str, box_id: str | None = None) -> bool:
        slide = self._require(slide_id, "update_field")
        if slide is None:
            return False

        if field is FieldKey.TITLE:
            changed = slide.title != value
            slide.title = value
        elif field is FieldKey.SUBTITLE:
            changed = slide.subtitle != value
            slide.subtitle = value
        elif field is FieldKey.NOTES:
            changed = slide.notes != value
            slide.notes = value
        elif field is FieldKey.TEXT_BOX:
            if box_id not in slide.text_boxes:
                logger.warning(f"update_field: slide {slide_id} has no text box {box_id}")
                return False
            changed = slide.text_boxes[box_id] != value
            slide.text_boxes[box_id] = value
        else:
            raise ValueError(f"Unknown field: {field!r}")

        if changed:
            self._commit()
        return changed

    def update_style(
        self, slide_id: str, field: FieldKey, partial: dict[str, Any], box_id: str | None = None
    ) -> bool:
        slide = self._require(slide_id, "update_style")
        if slide is None:
            return False
        slot = field_slot(field, box_id)
        try:
            slide.styles[slot] = _merge(slide.styles.get(slot) or FieldStyle(), partial)
        except ValidationError as e:
            logger.warning(f"update_style: rejected {partial} for {slot}: {e}")
            return False
        self._commit()
        return True

    def update_position(
        self, slide_id: str, field: FieldKey, partial: dict[str, Any], box_id: str | None = None
    ) -> bool:
        slide = self._require(slide_id, "update_position")
        if slide is None:
            return False
        slot = field_slot(field, box_id)
        try:
            slide.positions[slot] = _merge(slide.positions.get(slot) or FieldPosition(), partial)
        except ValidationError as e:
            logger.warning(f"update_position: rejected {partial} for {slot}: {e}")
            return False
        self._commit()
        return True

    def update_formatting(
        self, slide_id: str, field: FieldKey, partial: dict[str, Any], box_id: str | None = None
    ) -> bool:
        slide = self._require(slide_id, "update_formatting")
        if slide is None:
            return False
        formatting = ensure_formatting(slide.formatting)
        try:
            if field is FieldKey.TEXT_BOX:
                if not box_id:
                    raise ValueError("text_box fields require a box id")
                current = formatting.text_boxes.get(box_id) or FieldFormatting(
                    line_height=DEFAULT_LINE_HEIGHTS["text_box"]
                )
                formatting.text_boxes[box_id] = _merge(current, partial)
            else:
                slot = field_slot(field)
                setattr(formatting, slot, _merge(getattr(formatting, slot), partial))
        except ValidationError as e:
            logger.warning(f"update_formatting: rejected {partial} for {field.value}: {e}")
            return False
        slide.formatting = formatting
        self._commit()
        return True

    def set_theme(self, slide_id: str, theme: str) -> bool:
        slide = self._require(slide_id, "set_theme")
        if slide is None or slide.theme == theme:
            return False
        slide.theme = theme
        self.context.selected_theme = theme
        self._commit()
        return True

    def add_text_box(self, slide_id: str, text: str = "", box_id: str | None = None) -> str | None:
        slide = self._require(slide_id, "add_text_box")
        if slide is None:
            return None
        box_id = box_id or f"box-{uuid4().hex[:8]}"
        if box_id in slide.text_boxes:
            logger.warning(f"add_text_box: slide {slide_id} already has text box {box_id}")
            return None
        slide.text_boxes[box_id] = text
        self._commit()
        return box_id

    def remove_text_box(self, slide_id: str, box_id: str) -> bool:
        slide = self._require(slide_id, "remove_text_box")
        if slide is None or box_id not in slide.text_boxes:
            return False
        del slide.text_boxes[box_id]
        slot = field_slot(FieldKey.TEXT_BOX, box_id)
        slide.styles.pop(slot, None)
        slide.positions.pop(slot, None)
        slide.formatting.text_boxes.pop(box_id, None)
        if self.context.active_box_id == box_id:
            self.focus_field(None)
        self._commit()
        return True

    def add_slide(self) -> Slide:
        """Append a slide with the next dense order and select it."""
        selected = self.selected_slide
        theme = self.context.selected_theme or (selected.theme if selected else None) or DEFAULT_THEME
        next_order = max((slide.order for slide in self._slides), default=0) + 1
        slide = create_default_slide(new_slide_id(), order=next_order, theme=theme)
        while self.get_slide(slide.id) is not None:
            slide.id = new_slide_id()
        self._slides.append(slide)
        self.context.selected_slide_id = slide.id
        self._commit()
        return slide

    def delete_slide(self, slide_id: str) -> Slide | None:
        """Remove a slide, selecting its previous neighbour (or the next one)."""
        if len(self._slides) <= 1:
            logger.warning("At least one slide must remain in the presentation.")
            return None
        index = self.index_of(slide_id)
        if index == -1:
            logger.warning(f"delete_slide: unknown slide {slide_id}")
            return None

        neighbour = self._slides[index - 1] if index > 0 else self._slides[index + 1]
        removed = self._slides.pop(index)
        self.context.selected_slide_id = neighbour.id
        self._commit()
        return removed

    def move_slide(self, direction: MoveDirection | str) -> bool:
        direction = MoveDirection(direction)
        index = self.index_of(self.context.selected_slide_id)
        if index == -1:
            return False
        target = index - 1 if direction is MoveDirection.UP else index + 1
        if target < 0 or target >= len(self._slides):
            return False
        self._slides[index], self._slides[target] = self._slides[target], self._slides[index]
        self._commit()
        return True

    def reorder_commit(self) -> list[Slide]:
        """Renumber ``order`` densely as 1..N following the current sequence."""
        for position, slide in enumerate(self._slides, start=1):
            slide.order = position
        return self._slides

    # ---------------------------------------------------------------- history

    def _adopt(self, slides: list[Slide]) -> None:
        self._slides = slides
        if self.get_slide(self.context.selected_slide_id) is None and self._slides:
            self.context.selected_slide_id = self._slides[0].id

    def undo(self) -> bool:
        slides = self.history.undo()
        if slides is None:
            return False
        self._adopt(slides)
        return True

    def redo(self) -> bool:
        slides = self.history.redo()
        if slides is None:
            return False
        self._adopt(slides)
        return True
