from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .enums import FieldKey, ListType, MoveDirection, PresentationStatus, SlideType, StatusVariant, TextAlign

DEFAULT_THEME = "Default"
DEFAULT_LINE_HEIGHTS = {"title": 1.2, "subtitle": 1.3, "notes": 1.4, "text_box": 1.3}


class FieldFormatting(BaseModel):
    model_config = ConfigDict(extra="forbid")

    line_height: float = Field(default=1.3, gt=0)


class SlideFormatting(BaseModel):
    """Per-field line heights plus slide-wide text toggles."""

    title: FieldFormatting = Field(
        default_factory=lambda: FieldFormatting(line_height=DEFAULT_LINE_HEIGHTS["title"])
    )
    subtitle: FieldFormatting = Field(
        default_factory=lambda: FieldFormatting(line_height=DEFAULT_LINE_HEIGHTS["subtitle"])
    )
    notes: FieldFormatting = Field(
        default_factory=lambda: FieldFormatting(line_height=DEFAULT_LINE_HEIGHTS["notes"])
    )
    text_boxes: dict[str, FieldFormatting] = Field(default_factory=dict)
    bold: bool = False
    italic: bool = False
    underline: bool = False
    align: TextAlign = TextAlign.LEFT
    list_type: ListType = ListType.NONE


class FieldStyle(BaseModel):
    model_config = ConfigDict(extra="forbid")

    font_family: str = "Calibri"
    font_size: int = Field(default=24, gt=0)
    color: str = "#202124"
    bold: bool = False
    italic: bool = False
    letter_spacing: float = 0.0


class FieldPosition(BaseModel):
    model_config = ConfigDict(extra="forbid")

    x: float = 0.0
    y: float = 0.0
    z_index: int = 0


class Slide(BaseModel):
    """A single slide. ``subtitle`` is the body field persisted as ``content``."""

    id: str
    order: int = 1
    title: str = ""
    subtitle: str = ""
    notes: str = ""
    text_boxes: dict[str, str] = Field(default_factory=dict)
    formatting: SlideFormatting = Field(default_factory=SlideFormatting)
    styles: dict[str, FieldStyle] = Field(default_factory=dict)
    positions: dict[str, FieldPosition] = Field(default_factory=dict)
    theme: str = DEFAULT_THEME
    slide_type: SlideType | None = None
    layout: str | None = None
    transition: str | None = None
    background_image: str | None = None


class SlideDocument(BaseModel):
    """Everything a session hydrates for one presentation."""

    presentation_id: str | None = None
    title: str = "Untitled presentation"
    status: PresentationStatus = PresentationStatus.DRAFT
    owner_id: str | None = None
    collaborator_ids: list[str] = Field(default_factory=list)
    slides: list[Slide] = Field(default_factory=list)
    selected_slide_id: str | None = None


class SnapshotSlide(BaseModel):
    slide_id: str
    order: int = 0
    title: str = ""
    encrypted_content: str = ""
    encrypted_notes: str = ""
    theme: str = DEFAULT_THEME
    slide_type: SlideType | None = None


class VersionSnapshot(BaseModel):
    id: str
    created_at: datetime | None = None
    created_by: str | None = None
    summary: str = ""
    slides_snapshot: list[SnapshotSlide] = Field(default_factory=list)


class CommentRecord(BaseModel):
    id: str
    author: str = "Team member"
    message: str = ""
    timestamp: str = ""


class CallerIdentity(BaseModel):
    user_id: str
    email: str | None = None
    display_name: str | None = None

    @property
    def label(self) -> str:
        return self.display_name or self.email or "User"


class StatusMessage(BaseModel):
    text: str
    variant: StatusVariant = StatusVariant.INFO
    created_at: float = 0.0


class PresentationMeta(BaseModel):
    id: str
    title: str = "Untitled presentation"
    updated_at: str | None = None
    is_saved: bool = False
    search_index: str | None = None
    status: PresentationStatus = PresentationStatus.DRAFT


class AssistantSlideView(BaseModel):
    """Read-only projection handed to the AI assistant."""

    id: str
    title: str
    content: str
    notes: str
    language: str = "en"


class AssistantPatch(BaseModel):
    content: str | None = None
    notes: str | None = None


class AuditEvent(BaseModel):
    presentation_id: str
    action: str
    user_id: str | None = None
    user_email: str | None = None
    details: dict[str, Any] | None = None


# API request models


class OpenSessionRequest(BaseModel):
    presentation_id: str | None = None
    select_slide_id: str | None = None
    language: str = "en"


class ContentChangeRequest(BaseModel):
    field: FieldKey
    content: str | None = None
    box_id: str | None = None
    slide_id: str | None = None


class FieldFocusRequest(BaseModel):
    field: FieldKey
    box_id: str | None = None


class FieldRecordUpdateRequest(BaseModel):
    """Shallow update for a field's style, position or formatting record."""

    field: FieldKey
    box_id: str | None = None
    values: dict[str, Any] = Field(default_factory=dict)


class MoveSlideRequest(BaseModel):
    direction: MoveDirection


class ThemeRequest(BaseModel):
    theme: str = Field(..., min_length=1)
    slide_id: str | None = None


class SaveRequest(BaseModel):
    is_shared: bool | None = None
    title: str | None = None


class SaveVersionRequest(BaseModel):
    summary: str | None = None


class CommentRequest(BaseModel):
    message: str = Field(..., min_length=1)


class StatusRequest(BaseModel):
    status: PresentationStatus


class AssistantPatchRequest(BaseModel):
    slide_id: str | None = None
    patch: AssistantPatch
