"""
Persistence adapter: the single boundary between an editing session and storage.

Remote mode talks to a ``RemoteStore`` driver; fallback mode (no remote
identity) replaces one JSON blob per presentation in ``LocalStorage``.
Failures are converted to a transient status message and a falsy return.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import Any, Awaitable, Callable

from deckstate.services.records import (
    apply_presentation_record,
    comment_from_record,
    presentation_to_record,
    slide_to_record,
    slides_from_records,
    version_from_record,
)
from deckstate.services.status import StatusNotifier
from deckstate.shared.config import config
from deckstate.shared.encryption import FieldCipher
from deckstate.shared.enums import PresentationStatus, StatusVariant
from deckstate.shared.errors import IdentityRequired, PersistenceFailure
from deckstate.shared.logging_utils import setup_logging
from deckstate.shared.models import CallerIdentity, CommentRecord, Slide, SlideDocument, VersionSnapshot

from .drivers.base import RemoteStore
from .local_storage import LocalStorage

logger = setup_logging("persistence-adapter")


def _default_timeout() -> float:
    return float(
        config.get_pipeline_value(
            "persistence.timeout_seconds", config.get("persistence_timeout_seconds", 10)
        )
    )


class PersistenceAdapter:
    def __init__(
        self,
        remote: RemoteStore | None,
        local: LocalStorage | None = None,
        cipher: FieldCipher | None = None,
        notifier: StatusNotifier | None = None,
        timeout: float | None = None,
    ) -> None:
        self.remote = remote
        self.local = local or LocalStorage()
        self.cipher = cipher or FieldCipher()
        self.notifier = notifier or StatusNotifier()
        self.timeout = timeout if timeout is not None else _default_timeout()
        # last queued write per slide id; each new write waits for its predecessor
        self._tails: dict[str, asyncio.Task] = {}

    @property
    def is_remote(self) -> bool:
        return self.remote is not None

    async def _call(self, operation: str, call: Awaitable[Any]) -> Any:
        try:
            return await asyncio.wait_for(call, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise PersistenceFailure(operation, f"timed out after {self.timeout}s") from e
        except PersistenceFailure:
            raise
        except Exception as e:
            raise PersistenceFailure(operation, str(e)) from e

    def _report(self, failure: PersistenceFailure, message: str) -> None:
        logger.error(str(failure))
        self.notifier.post(message, StatusVariant.ERROR)

    def _require_remote(self, operation: str) -> RemoteStore:
        if self.remote is None:
            raise PersistenceFailure(operation, "no remote store in fallback mode")
        return self.remote

    # ------------------------------------------------------------- documents

    async def load_document(self, presentation_id: str) -> SlideDocument | None:
        """Fetch a document; returns None (and posts a status) on failure."""
        try:
            if self.remote is None:
                slides = self.local.load_slides(presentation_id) or []
                return SlideDocument(presentation_id=presentation_id, slides=slides)

            presentation = await self._call("load presentation", self.remote.get_presentation(presentation_id))
            records = await self._call("load slides", self.remote.list_slides(presentation_id))
        except PersistenceFailure as e:
            self._report(e, "Failed to load presentation.")
            return None

        document = SlideDocument(
            presentation_id=presentation_id, slides=slides_from_records(records, self.cipher)
        )
        if presentation is not None:
            document = apply_presentation_record(document, presentation)
        logger.info(f"Loaded presentation {presentation_id} with {len(document.slides)} slides")
        return document

    async def save_document(
        self,
        document: SlideDocument,
        caller: CallerIdentity | None = None,
        is_shared: bool | None = None,
    ) -> bool:
        """Upsert the presentation record and every slide; local edits are never rolled back."""
        presentation_id = document.presentation_id
        if not presentation_id:
            logger.warning("save_document called without a presentation id")
            return False

        if self.remote is None:
            try:
                self.local.save_slides(presentation_id, document.slides)
            except PersistenceFailure as e:
                self._report(e, "Failed to save slides locally.")
                return False
            logger.debug(f"Saved {len(document.slides)} slides locally for {presentation_id}")
            return True

        if caller is None:
            raise IdentityRequired("You must be logged in to save.")

        try:
            await self._call(
                "save presentation",
                self.remote.set_presentation(
                    presentation_id, presentation_to_record(document, is_shared), merge=True
                ),
            )
        except PersistenceFailure as e:
            self._report(e, "Failed to save presentation.")
            return False

        results = await asyncio.gather(
            *(self.schedule_slide_write(presentation_id, slide) for slide in document.slides)
        )
        if not all(results):
            return False
        logger.info(f"Saved presentation {presentation_id} with {len(document.slides)} slides")
        return True

    # ------------------------------------------------------ per-slide queue

    def _enqueue(
        self, slide_id: str, operation: str, make_call: Callable[[], Awaitable[Any]], failure_message: str
    ) -> asyncio.Task:
        previous = self._tails.get(slide_id)

        async def run() -> bool:
            if previous is not None:
                await asyncio.gather(previous, return_exceptions=True)
            try:
                await self._call(operation, make_call())
            except PersistenceFailure as e:
                self._report(e, failure_message)
                return False
            return True

        task = asyncio.get_running_loop().create_task(run())
        self._tails[slide_id] = task

        def release(done: asyncio.Task) -> None:
            if self._tails.get(slide_id) is done:
                del self._tails[slide_id]

        task.add_done_callback(release)
        return task

    def schedule_slide_write(self, presentation_id: str, slide: Slide) -> asyncio.Task:
        """Queue an upsert of the slide as it is now; returns a task resolving to success."""
        remote = self._require_remote("save slide")
        record = slide_to_record(slide, self.cipher)
        return self._enqueue(
            slide.id,
            "save slide",
            lambda: remote.set_slide(presentation_id, slide.id, record, merge=True),
            "Failed to save slide.",
        )

    def schedule_slide_delete(self, presentation_id: str, slide_id: str) -> asyncio.Task:
        """Queue a removal of the slide behind any write already queued for it."""
        remote = self._require_remote("delete slide")
        return self._enqueue(
            slide_id,
            "delete slide",
            lambda: remote.delete_slide(presentation_id, slide_id),
            "Failed to delete slide.",
        )

    async def flush(self) -> None:
        """Wait until every queued slide write has settled."""
        while self._tails:
            await asyncio.gather(*list(self._tails.values()), return_exceptions=True)

    async def apply_restore_batch(
        self, presentation_id: str, upserts: dict[str, dict[str, Any]], deletes: list[str]
    ) -> bool:
        """Write a whole restore at once, after any in-flight writes to the same slides."""
        try:
            remote = self._require_remote("restore slides")
            affected = [self._tails[slide_id] for slide_id in [*upserts, *deletes] if slide_id in self._tails]
            if affected:
                await asyncio.gather(*affected, return_exceptions=True)
            await self._call("restore slides", remote.apply_batch(presentation_id, upserts, deletes))
            await self._call(
                "touch presentation",
                remote.set_presentation(presentation_id, {"updatedAt": datetime.now(UTC)}, merge=True),
            )
        except PersistenceFailure as e:
            self._report(e, "Failed to restore version.")
            return False
        return True

    # ----------------------------------------------------- presentation meta

    async def set_status(self, presentation_id: str, status: PresentationStatus) -> bool:
        try:
            remote = self._require_remote("update status")
            await self._call(
                "update status",
                remote.set_presentation(
                    presentation_id,
                    {"status": PresentationStatus(status).value, "updatedAt": datetime.now(UTC)},
                    merge=True,
                ),
            )
        except PersistenceFailure as e:
            self._report(e, "Failed to update presentation status.")
            return False
        return True

    # ------------------------------------------------------------- comments

    async def add_comment(self, presentation_id: str, caller: CallerIdentity, message: str) -> str | None:
        try:
            remote = self._require_remote("add comment")
            return await self._call(
                "add comment",
                remote.add_comment(
                    presentation_id,
                    {
                        "userId": caller.user_id,
                        "userName": caller.label,
                        "text": self.cipher.encrypt(message),
                        "createdAt": datetime.now(UTC),
                    },
                ),
            )
        except PersistenceFailure as e:
            self._report(e, "Failed to post comment.")
            return None

    async def list_comments(self, presentation_id: str) -> list[CommentRecord] | None:
        """Comments newest first."""
        try:
            remote = self._require_remote("load comments")
            records = await self._call("load comments", remote.list_comments(presentation_id))
        except PersistenceFailure as e:
            self._report(e, "Failed to load comments.")
            return None
        return [comment_from_record(comment_id, data, self.cipher) for comment_id, data in reversed(records)]

    # ------------------------------------------------------------- versions

    async def add_version(self, presentation_id: str, data: dict[str, Any]) -> str | None:
        try:
            remote = self._require_remote("save version")
            return await self._call("save version", remote.add_version(presentation_id, data))
        except PersistenceFailure as e:
            self._report(e, "Failed to save version.")
            return None

    async def list_versions(self, presentation_id: str) -> list[VersionSnapshot] | None:
        """Versions newest first."""
        try:
            remote = self._require_remote("load versions")
            records = await self._call("load versions", remote.list_versions(presentation_id))
        except PersistenceFailure as e:
            self._report(e, "Failed to load versions.")
            return None
        return [version_from_record(version_id, data) for version_id, data in records]
