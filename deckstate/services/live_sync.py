"""Live listener for the comment, version and slide change streams of one presentation."""

from __future__ import annotations

from typing import Any, Callable

from deckstate.services.document_store import SlideDocumentStore
from deckstate.services.persistence.drivers.base import Record, RemoteStore
from deckstate.services.records import comment_from_record, slides_from_records, version_from_record
from deckstate.services.versions import VersionSnapshotManager
from deckstate.shared.encryption import FieldCipher
from deckstate.shared.enums import RemoteChannel
from deckstate.shared.logging_utils import setup_logging
from deckstate.shared.models import CommentRecord, Slide, VersionSnapshot

logger = setup_logging("live-sync")


class LiveReconciliationListener:
    """Keeps comments and versions current and hydrates the store from the slide stream.

    Between explicit loads the local slides are authoritative, so slide
    snapshots that arrive after hydration are only recorded as pending
    unless a reload was requested.
    """

    def __init__(
        self,
        remote: RemoteStore,
        store: SlideDocumentStore,
        cipher: FieldCipher,
        versions: VersionSnapshotManager | None = None,
    ) -> None:
        self.remote = remote
        self.store = store
        self.cipher = cipher
        self.version_manager = versions
        self.presentation_id: str | None = None
        self.comments: list[CommentRecord] = []
        self.versions: list[VersionSnapshot] = []
        self.pending_remote_slides: list[Slide] | None = None
        self._reload_requested = False
        self._reload_select_id: str | None = None
        self._unsubscribers: list[Callable[[], None]] = []

    @property
    def active(self) -> bool:
        return bool(self._unsubscribers)

    async def start(self, presentation_id: str) -> None:
        if self._unsubscribers:
            self.stop()
        self.presentation_id = presentation_id
        handlers = (
            (RemoteChannel.COMMENTS, self._on_comments),
            (RemoteChannel.VERSIONS, self._on_versions),
            (RemoteChannel.SLIDES, self._on_slides),
        )
        for channel, handler in handlers:
            unsubscribe = await self.remote.subscribe(presentation_id, channel, handler, self._on_error)
            self._unsubscribers.append(unsubscribe)
        logger.info(f"Listening for changes on {presentation_id}")

    def stop(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    def request_reload(self, select_slide_id: str | None = None) -> None:
        """Apply the next slide snapshot even though the store is already hydrated."""
        self._reload_requested = True
        self._reload_select_id = select_slide_id

    async def reload(self, select_slide_id: str | None = None) -> None:
        if not self.presentation_id:
            return
        self.request_reload(select_slide_id)
        await self.remote.publish(self.presentation_id, RemoteChannel.SLIDES)

    # stream handlers

    def _on_comments(self, records: list[Record]) -> None:
        # delivered oldest first, displayed newest first
        self.comments = [comment_from_record(comment_id, data, self.cipher) for comment_id, data in reversed(records)]

    def _on_versions(self, records: list[Record]) -> None:
        self.versions = [version_from_record(version_id, data) for version_id, data in records]
        if self.version_manager is not None:
            self.version_manager.set_known_versions(self.versions)

    def _on_slides(self, records: list[Record]) -> None:
        slides = slides_from_records(records, self.cipher)
        if self.store.hydrated and not self._reload_requested:
            self.pending_remote_slides = slides
            return

        select_slide_id = self._reload_select_id
        self._reload_requested = False
        self._reload_select_id = None
        self.pending_remote_slides = None
        self.store.load(slides, select_slide_id=select_slide_id)
        logger.debug(f"Hydrated {len(self.store.slides)} slides from the slide stream")

    def _on_error(self, error: Any) -> None:
        logger.error(f"Change stream error for {self.presentation_id}: {error}")
