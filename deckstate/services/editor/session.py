"""
Editor session: one presentation being edited by one caller.

Composes the document store, history, persistence adapter, version manager,
live listener, audit logger and presentation index. Mutations apply to the
store synchronously; persistence follows as fire-and-forget autosave.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable
from uuid import uuid4

from deckstate.services.audit import AuditLogger
from deckstate.services.document_store import SessionContext, SlideDocumentStore
from deckstate.services.field_codec import denormalize, is_placeholder, normalize
from deckstate.services.live_sync import LiveReconciliationListener
from deckstate.services.persistence.adapter import PersistenceAdapter
from deckstate.services.persistence.drivers.base import RemoteStore
from deckstate.services.persistence.local_storage import LocalStorage
from deckstate.services.presentation_meta import PresentationMetaIndex
from deckstate.services.status import StatusNotifier
from deckstate.services.versions import VersionSnapshotManager
from deckstate.shared.config import config
from deckstate.shared.encryption import FieldCipher
from deckstate.shared.enums import AuditAction, FieldKey, MoveDirection, PresentationStatus, StatusVariant
from deckstate.shared.errors import IdentityRequired
from deckstate.shared.logging_utils import setup_logging
from deckstate.shared.models import (
    AssistantPatch,
    AssistantSlideView,
    CallerIdentity,
    CommentRecord,
    Slide,
    SlideDocument,
    VersionSnapshot,
)

logger = setup_logging("editor-session")


class EditorSession:
    """Single-writer editing session.

    Remote mode is chosen once, at construction: it needs both a remote store
    and a presentation id. Without either the session works against local
    storage only.
    """

    def __init__(
        self,
        presentation_id: str | None = None,
        caller: CallerIdentity | None = None,
        remote: RemoteStore | None = None,
        local: LocalStorage | None = None,
        cipher: FieldCipher | None = None,
        notifier: StatusNotifier | None = None,
        autosave: bool | None = None,
    ) -> None:
        remote_mode = remote is not None and bool(presentation_id)
        self.context = SessionContext(
            presentation_id=presentation_id or f"local-{uuid4().hex[:12]}",
            caller=caller,
        )
        self.notifier = notifier or StatusNotifier()
        self.cipher = cipher or FieldCipher()
        self.local = local or LocalStorage()
        self.adapter = PersistenceAdapter(
            remote if remote_mode else None, self.local, self.cipher, self.notifier
        )
        self.store = SlideDocumentStore(self.context)
        self.audit = AuditLogger(self.adapter.remote)
        self.versions = VersionSnapshotManager(self.store, self.adapter, self.audit)
        self.listener = (
            LiveReconciliationListener(remote, self.store, self.cipher, self.versions) if remote_mode else None
        )
        self.meta = PresentationMetaIndex(self.local)
        self.autosave = config.get("autosave", True) if autosave is None else autosave
        # presentation-level metadata; slides live in the store
        self.document = SlideDocument(presentation_id=self.context.presentation_id)
        self._background: set[asyncio.Task] = set()

    # ------------------------------------------------------------------ state

    @property
    def presentation_id(self) -> str:
        return self.context.presentation_id

    @property
    def is_remote(self) -> bool:
        return self.adapter.is_remote

    @property
    def slides(self) -> list[Slide]:
        return self.store.slides

    @property
    def comments(self) -> list[CommentRecord]:
        return self.listener.comments if self.listener else []

    def current_document(self) -> SlideDocument:
        return self.document.model_copy(
            update={"slides": self.store.snapshot(), "selected_slide_id": self.store.selected_slide_id}
        )

    def _require_caller(self, message: str) -> CallerIdentity:
        if self.context.caller is None:
            self.notifier.post(message, StatusVariant.AUTH)
            raise IdentityRequired(message)
        return self.context.caller

    # -------------------------------------------------------------- lifecycle

    async def open(self, select_slide_id: str | None = None) -> bool:
        """Hydrate the store; a failed load leaves it untouched."""
        document = await self.adapter.load_document(self.presentation_id)
        if document is None:
            return False
        self.document = document.model_copy(update={"slides": []})
        self.store.load(document.slides, select_slide_id=select_slide_id)
        if self.listener is not None:
            await self.listener.start(self.presentation_id)
        self.meta.record_draft(self.presentation_id, self.document.title)
        logger.info(f"Opened {self.presentation_id} ({'remote' if self.is_remote else 'local'} mode)")
        return True

    async def reload(self, select_slide_id: str | None = None) -> bool:
        await self.flush()
        document = await self.adapter.load_document(self.presentation_id)
        if document is None:
            return False
        self.document = document.model_copy(update={"slides": []})
        self.store.load(document.slides, select_slide_id=select_slide_id or self.store.selected_slide_id)
        return True

    async def flush(self) -> None:
        """Wait for every pending autosave."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
        await self.adapter.flush()

    async def close(self) -> None:
        if self.listener is not None:
            self.listener.stop()
        await self.flush()
        await self.audit.drain()

    # ---------------------------------------------------------------- autosave

    def _spawn(self, call: Awaitable[Any]) -> None:
        task = asyncio.get_running_loop().create_task(call)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    def _can_autosave(self) -> bool:
        if not self.autosave:
            return False
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, autosave skipped")
            return False
        return True

    def _autosave_slide(self, slide_id: str) -> None:
        if not self._can_autosave():
            return
        if not self.is_remote:
            self._spawn(self.adapter.save_document(self.current_document()))
            return
        slide = self.store.get_slide(slide_id)
        if slide is not None:
            self.adapter.schedule_slide_write(self.presentation_id, slide)

    def _autosave_structure(self, previous_ids: set[str]) -> None:
        """Persist renumbered orders for every slide and remove slides that disappeared."""
        self.store.reorder_commit()
        if not self._can_autosave():
            return
        if not self.is_remote:
            self._spawn(self.adapter.save_document(self.current_document()))
            return
        current_ids = {slide.id for slide in self.store.slides}
        for slide_id in previous_ids - current_ids:
            self.adapter.schedule_slide_delete(self.presentation_id, slide_id)
        for slide in self.store.slides:
            self.adapter.schedule_slide_write(self.presentation_id, slide)

    def _slide_ids(self) -> set[str]:
        return {slide.id for slide in self.store.slides}

    # --------------------------------------------------- editing-surface contract

    def on_content_changed(
        self, field: FieldKey, raw_markup: str | None, box_id: str | None = None, slide_id: str | None = None
    ) -> bool:
        slide_id = slide_id or self.store.selected_slide_id
        if slide_id is None:
            return False
        changed = self.store.update_field(slide_id, FieldKey(field), normalize(FieldKey(field), raw_markup), box_id)
        if changed:
            self._autosave_slide(slide_id)
        return changed

    def on_field_focused(self, field: FieldKey, box_id: str | None = None) -> None:
        self.store.focus_field(FieldKey(field), box_id)

    def on_field_blurred(self, field: FieldKey, box_id: str | None = None) -> None:
        if self.context.active_field is FieldKey(field) and self.context.active_box_id == box_id:
            self.store.focus_field(None)

    def surface_content(self, field: FieldKey, box_id: str | None = None, slide_id: str | None = None) -> str:
        slide = self.store.get_slide(slide_id or self.store.selected_slide_id)
        if slide is None:
            return ""
        field = FieldKey(field)
        if field is FieldKey.TITLE:
            return denormalize(slide.title)
        if field is FieldKey.SUBTITLE:
            return denormalize(slide.subtitle)
        if field is FieldKey.NOTES:
            return denormalize(slide.notes)
        return denormalize(slide.text_boxes.get(box_id or "", ""))

    # ---------------------------------------------------------- slide edits

    def update_style(self, slide_id: str, field: FieldKey, partial: dict[str, Any], box_id: str | None = None) -> bool:
        changed = self.store.update_style(slide_id, FieldKey(field), partial, box_id)
        if changed:
            self._autosave_slide(slide_id)
        return changed

    def update_position(
        self, slide_id: str, field: FieldKey, partial: dict[str, Any], box_id: str | None = None
    ) -> bool:
        changed = self.store.update_position(slide_id, FieldKey(field), partial, box_id)
        if changed:
            self._autosave_slide(slide_id)
        return changed

    def update_formatting(
        self, slide_id: str, field: FieldKey, partial: dict[str, Any], box_id: str | None = None
    ) -> bool:
        changed = self.store.update_formatting(slide_id, FieldKey(field), partial, box_id)
        if changed:
            self._autosave_slide(slide_id)
        return changed

    def set_theme(self, theme: str, slide_id: str | None = None) -> bool:
        slide_id = slide_id or self.store.selected_slide_id
        if slide_id is None:
            return False
        changed = self.store.set_theme(slide_id, theme)
        if changed:
            self._autosave_slide(slide_id)
        return changed

    def add_text_box(self, slide_id: str, text: str = "") -> str | None:
        box_id = self.store.add_text_box(slide_id, text)
        if box_id is not None:
            self._autosave_slide(slide_id)
        return box_id

    def remove_text_box(self, slide_id: str, box_id: str) -> bool:
        removed = self.store.remove_text_box(slide_id, box_id)
        if removed:
            self._autosave_slide(slide_id)
        return removed

    def select_slide(self, slide_id: str) -> bool:
        return self.store.select_slide(slide_id)

    def set_title(self, title: str) -> None:
        self.document = self.document.model_copy(update={"title": title.strip() or self.document.title})
        self.meta.record_draft(self.presentation_id, self.document.title)

    # -------------------------------------------------------------- structure

    def add_slide(self) -> Slide:
        previous_ids = self._slide_ids()
        slide = self.store.add_slide()
        self._autosave_structure(previous_ids)
        self._audit(AuditAction.ADD_SLIDE, {"slideId": slide.id, "order": slide.order})
        return slide

    def delete_slide(self, slide_id: str) -> bool:
        previous_ids = self._slide_ids()
        removed = self.store.delete_slide(slide_id)
        if removed is None:
            self.notifier.post("At least one slide must remain in the presentation.", StatusVariant.INFO)
            return False
        self._autosave_structure(previous_ids)
        self._audit(AuditAction.DELETE_SLIDE, {"slideId": removed.id, "title": removed.title})
        return True

    def move_slide(self, direction: MoveDirection) -> bool:
        previous_ids = self._slide_ids()
        moved = self.store.move_slide(direction)
        if moved:
            self._autosave_structure(previous_ids)
        return moved

    def undo(self) -> bool:
        previous_ids = self._slide_ids()
        if not self.store.undo():
            return False
        self._autosave_structure(previous_ids)
        return True

    def redo(self) -> bool:
        previous_ids = self._slide_ids()
        if not self.store.redo():
            return False
        self._autosave_structure(previous_ids)
        return True

    def _audit(self, action: AuditAction, details: dict[str, Any]) -> None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return
        self.audit.emit(action, self.presentation_id, self.context.caller, details)

    # ---------------------------------------------------------- persistence

    async def save(self, is_shared: bool | None = None) -> bool:
        """Explicit save of the whole document. Raises IdentityRequired in remote mode without a caller."""
        if self.is_remote:
            self._require_caller("You must be logged in to save.")
        self.store.reorder_commit()
        document = self.current_document()
        saved = await self.adapter.save_document(document, self.context.caller, is_shared)
        if not saved:
            return False

        self.meta.mark_saved(self.presentation_id, document.title, document.slides, document.status)
        self.notifier.post("Presentation saved.", StatusVariant.SUCCESS)
        self._audit(AuditAction.UPDATE_SLIDE_SET, {"slideCount": len(document.slides)})
        if is_shared:
            self._audit(AuditAction.SHARE_PRESENTATION, {"collaboratorIds": document.collaborator_ids})
        return True

    async def set_status(self, status: PresentationStatus) -> bool:
        status = PresentationStatus(status)
        if self.is_remote:
            self._require_caller("You must be logged in to change the status.")
            if not await self.adapter.set_status(self.presentation_id, status):
                return False
        self.document = self.document.model_copy(update={"status": status})
        self.meta.update_status(self.presentation_id, status)
        if status is PresentationStatus.FINAL:
            self.notifier.post("Presentation marked as final.", StatusVariant.FINAL)
        else:
            self.notifier.post("Presentation moved back to draft.", StatusVariant.DRAFT)
        return True

    # ----------------------------------------------------------- collaboration

    async def add_comment(self, message: str) -> str | None:
        caller = self._require_caller("You must be logged in to comment.")
        message = (message or "").strip()
        if not message:
            return None
        if not self.is_remote:
            self.notifier.post("Comments are available once the presentation is saved.", StatusVariant.INFO)
            return None
        comment_id = await self.adapter.add_comment(self.presentation_id, caller, message)
        if comment_id is not None:
            self._audit(AuditAction.ADD_COMMENT, {"commentId": comment_id})
        return comment_id

    async def list_comments(self) -> list[CommentRecord]:
        if not self.is_remote:
            return []
        comments = await self.adapter.list_comments(self.presentation_id)
        return comments if comments is not None else self.comments

    async def save_version(self, summary: str | None = None) -> str | None:
        return await self.versions.save_version(summary)

    async def restore_version(self, version_id: str) -> bool:
        return await self.versions.restore_version(version_id)

    async def list_versions(self) -> list[VersionSnapshot]:
        return await self.versions.list_versions()

    # ------------------------------------------------------------ AI assistant

    def assistant_view(self, slide_id: str | None = None) -> AssistantSlideView | None:
        slide = self.store.get_slide(slide_id or self.store.selected_slide_id)
        if slide is None:
            return None
        return AssistantSlideView(
            id=slide.id,
            title="" if is_placeholder(FieldKey.TITLE, slide.title) else slide.title,
            content="" if is_placeholder(FieldKey.SUBTITLE, slide.subtitle) else slide.subtitle,
            notes=slide.notes,
            language=self.context.language,
        )

    def assistant_document_view(self) -> list[AssistantSlideView]:
        return [view for view in (self.assistant_view(slide.id) for slide in self.store.slides) if view]

    def apply_assistant_patch(self, patch: AssistantPatch, slide_id: str | None = None) -> bool:
        slide_id = slide_id or self.store.selected_slide_id
        if self.store.get_slide(slide_id) is None:
            return False
        changed = False
        if patch.content is not None:
            changed = self.on_content_changed(FieldKey.SUBTITLE, patch.content, slide_id=slide_id) or changed
        if patch.notes is not None:
            changed = self.on_content_changed(FieldKey.NOTES, patch.notes, slide_id=slide_id) or changed
        return changed
