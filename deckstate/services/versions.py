"""Durable, user-triggered version snapshots and restore by set reconciliation."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from deckstate.services.audit import AuditLogger
from deckstate.services.document_store import SlideDocumentStore
from deckstate.services.persistence.adapter import PersistenceAdapter
from deckstate.services.records import version_to_record
from deckstate.shared.enums import AuditAction, StatusVariant
from deckstate.shared.errors import IdentityRequired, RestoreIntegrityFailure
from deckstate.shared.logging_utils import setup_logging
from deckstate.shared.models import DEFAULT_THEME, SnapshotSlide, VersionSnapshot

logger = setup_logging("version-snapshots")


class VersionSnapshotManager:
    """Saves encrypted snapshots of the live slides and restores them.

    A snapshot never holds plaintext: content and notes are encrypted on
    save and carried over verbatim on restore.
    """

    def __init__(self, store: SlideDocumentStore, adapter: PersistenceAdapter, audit: AuditLogger) -> None:
        self.store = store
        self.adapter = adapter
        self.audit = audit
        self.versions: list[VersionSnapshot] = []
        self.is_saving = False
        self.is_restoring = False

    @property
    def presentation_id(self) -> str | None:
        return self.store.context.presentation_id

    def set_known_versions(self, versions: list[VersionSnapshot]) -> None:
        self.versions = list(versions)

    async def list_versions(self) -> list[VersionSnapshot]:
        if not self.adapter.is_remote or not self.presentation_id:
            return []
        versions = await self.adapter.list_versions(self.presentation_id)
        if versions is not None:
            self.set_known_versions(versions)
        return self.versions

    def _build_snapshot(self) -> list[SnapshotSlide]:
        cipher = self.adapter.cipher
        return [
            SnapshotSlide(
                slide_id=slide.id,
                order=index,
                title=slide.title,
                encrypted_content=cipher.encrypt(slide.subtitle),
                encrypted_notes=cipher.encrypt(slide.notes),
                theme=slide.theme or DEFAULT_THEME,
                slide_type=slide.slide_type,
            )
            for index, slide in enumerate(self.store.slides, start=1)
        ]

    async def save_version(self, summary: str | None = None) -> str | None:
        """Append an immutable snapshot of the current slides; returns the new version id."""
        caller = self.store.context.caller
        if caller is None:
            raise IdentityRequired("You must be signed in to save a version.")
        if self.is_saving:
            logger.debug("save_version already in progress")
            return None
        presentation_id = self.presentation_id
        if not self.adapter.is_remote or not presentation_id:
            logger.info("Versions are only kept for presentations stored remotely")
            return None

        version = VersionSnapshot(
            id="",
            created_at=datetime.now(UTC),
            created_by=caller.user_id,
            summary=summary.strip() if summary else "",
            slides_snapshot=self._build_snapshot(),
        )
        self.is_saving = True
        try:
            version_id = await self.adapter.add_version(presentation_id, version_to_record(version))
        finally:
            self.is_saving = False
        if version_id is None:
            return None

        # the version stream may already have delivered it
        if not any(known.id == version_id for known in self.versions):
            self.versions.insert(0, version.model_copy(update={"id": version_id}))
        self.audit.emit(
            AuditAction.SAVE_VERSION,
            presentation_id,
            caller,
            {"versionId": version_id, "slideCount": len(version.slides_snapshot)},
        )
        self.adapter.notifier.post("Version saved.", StatusVariant.SUCCESS)
        logger.info(f"Saved version {version_id} of {presentation_id}")
        return version_id

    async def _find_version(self, version_id: str) -> VersionSnapshot | None:
        for version in self.versions:
            if version.id == version_id:
                return version
        for version in await self.list_versions():
            if version.id == version_id:
                return version
        return None

    @staticmethod
    def _ordered_snapshot(version: VersionSnapshot) -> list[SnapshotSlide]:
        if not version.slides_snapshot:
            raise RestoreIntegrityFailure(f"Version {version.id} snapshot is empty")
        return sorted(version.slides_snapshot, key=lambda item: item.order)

    async def restore_version(self, version_id: str) -> bool:
        """Make the live slides exactly the snapshot's slides, then reload from storage."""
        presentation_id = self.presentation_id
        if self.is_restoring or not presentation_id or not self.adapter.is_remote:
            return False

        self.is_restoring = True
        try:
            version = await self._find_version(version_id)
            if version is None:
                logger.warning(f"Version {version_id} not found; nothing to restore")
                return False
            try:
                ordered = self._ordered_snapshot(version)
            except RestoreIntegrityFailure as e:
                logger.warning(f"{e}; nothing to restore")
                return False

            upserts: dict[str, dict[str, Any]] = {
                item.slide_id: {
                    "order": item.order,
                    "title": item.title,
                    "content": item.encrypted_content,
                    "notes": item.encrypted_notes,
                    "theme": item.theme or DEFAULT_THEME,
                    "slideType": item.slide_type.value if item.slide_type else None,
                }
                for item in ordered
            }
            deletes = [slide.id for slide in self.store.slides if slide.id not in upserts]

            if not await self.adapter.apply_restore_batch(presentation_id, upserts, deletes):
                return False

            first_slide_id = ordered[0].slide_id
            document = await self.adapter.load_document(presentation_id)
            if document is None:
                return False
            self.store.load(document.slides, select_slide_id=first_slide_id)
        finally:
            self.is_restoring = False

        self.audit.emit(
            AuditAction.RESTORE_VERSION,
            presentation_id,
            self.store.context.caller,
            {"versionId": version_id, "restoredSlideCount": len(ordered), "deletedSlideIds": deletes},
        )
        self.adapter.notifier.post("Version restored.", StatusVariant.SUCCESS)
        logger.info(f"Restored version {version_id} of {presentation_id}")
        return True
