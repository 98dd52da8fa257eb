"""Relational remote store backed by SQLAlchemy.

Sessions are blocking, so every query runs in a worker thread through
``asyncio.to_thread`` and the event loop stays free for edits.
"""

from __future__ import annotations

import asyncio
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any, Iterator
from uuid import uuid4

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from deckstate.database import create_database_engine, create_session_factory, init_database
from deckstate.models.database import AuditLog, CommentRow, Presentation, SlideRecord, VersionRecord
from deckstate.shared.enums import RemoteChannel
from deckstate.shared.logging_utils import setup_logging

from .base import Record, RemoteStore

logger = setup_logging("sqlalchemy-store")


class SQLAlchemyRemoteStore(RemoteStore):
    """Stores presentations, slides, versions, comments and audit logs in SQL tables."""

    name = "sqlalchemy"

    def __init__(self, engine: Engine | None = None, database_url: str | None = None) -> None:
        super().__init__()
        self.engine = engine or create_database_engine(database_url)
        init_database(self.engine)
        self._session_factory = create_session_factory(self.engine)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Database operation failed: {e}")
            raise
        finally:
            session.close()

    @staticmethod
    def _ensure_presentation(session: Session, presentation_id: str) -> Presentation:
        row = session.get(Presentation, presentation_id)
        if row is None:
            row = Presentation(id=presentation_id)
            session.add(row)
            session.flush()
        return row

    # presentations

    async def get_presentation(self, presentation_id: str) -> dict[str, Any] | None:
        return await asyncio.to_thread(self._get_presentation_sync, presentation_id)

    def _get_presentation_sync(self, presentation_id: str) -> dict[str, Any] | None:
        with self._session() as session:
            row = session.get(Presentation, presentation_id)
            return row.to_record() if row is not None else None

    async def set_presentation(self, presentation_id: str, data: dict[str, Any], merge: bool = True) -> None:
        await asyncio.to_thread(self._set_presentation_sync, presentation_id, data, merge)

    def _set_presentation_sync(self, presentation_id: str, data: dict[str, Any], merge: bool) -> None:
        with self._session() as session:
            row = self._ensure_presentation(session, presentation_id)
            for key, attr in Presentation.FIELD_MAP.items():
                if key in data:
                    setattr(row, attr, data[key])
                elif not merge and key != "createdAt":
                    setattr(row, attr, None)

    # slides

    async def list_slides(self, presentation_id: str) -> list[Record]:
        return await asyncio.to_thread(self._list_slides_sync, presentation_id)

    def _list_slides_sync(self, presentation_id: str) -> list[Record]:
        with self._session() as session:
            rows = (
                session.query(SlideRecord)
                .filter(SlideRecord.presentation_id == presentation_id)
                .order_by(SlideRecord.sort_order.asc(), SlideRecord.id.asc())
                .all()
            )
            return [(row.slide_id, row.to_record()) for row in rows]

    @staticmethod
    def _merge_slide(
        session: Session, presentation_id: str, slide_id: str, data: dict[str, Any], merge: bool
    ) -> None:
        row = (
            session.query(SlideRecord)
            .filter(SlideRecord.presentation_id == presentation_id, SlideRecord.slide_id == slide_id)
            .one_or_none()
        )
        if row is None:
            row = SlideRecord(presentation_id=presentation_id, slide_id=slide_id)
            session.add(row)
        for key, attr in SlideRecord.FIELD_MAP.items():
            if key in data:
                setattr(row, attr, data[key])
            elif not merge and key not in ("order", "updatedAt"):
                setattr(row, attr, None)
        if row.sort_order is None:
            row.sort_order = 0
        row.updated_at = datetime.now(UTC)

    async def set_slide(
        self, presentation_id: str, slide_id: str, data: dict[str, Any], merge: bool = True
    ) -> None:
        await asyncio.to_thread(self._set_slide_sync, presentation_id, slide_id, data, merge)
        await self.publish(presentation_id, RemoteChannel.SLIDES)

    def _set_slide_sync(self, presentation_id: str, slide_id: str, data: dict[str, Any], merge: bool) -> None:
        with self._session() as session:
            self._ensure_presentation(session, presentation_id)
            self._merge_slide(session, presentation_id, slide_id, data, merge)

    async def delete_slide(self, presentation_id: str, slide_id: str) -> None:
        await asyncio.to_thread(self._apply_batch_sync, presentation_id, {}, [slide_id])
        await self.publish(presentation_id, RemoteChannel.SLIDES)

    async def apply_batch(
        self, presentation_id: str, upserts: dict[str, dict[str, Any]], deletes: list[str]
    ) -> None:
        await asyncio.to_thread(self._apply_batch_sync, presentation_id, upserts, deletes)
        await self.publish(presentation_id, RemoteChannel.SLIDES)

    def _apply_batch_sync(
        self, presentation_id: str, upserts: dict[str, dict[str, Any]], deletes: list[str]
    ) -> None:
        # single transaction: either every write lands or none do
        with self._session() as session:
            if upserts:
                self._ensure_presentation(session, presentation_id)
            for slide_id, data in upserts.items():
                self._merge_slide(session, presentation_id, slide_id, data, merge=True)
            if deletes:
                session.query(SlideRecord).filter(
                    SlideRecord.presentation_id == presentation_id, SlideRecord.slide_id.in_(list(deletes))
                ).delete(synchronize_session=False)

    # versions

    async def add_version(self, presentation_id: str, data: dict[str, Any]) -> str:
        version_id = str(uuid4())
        await asyncio.to_thread(
            self._add_row_sync,
            presentation_id,
            VersionRecord(
                id=version_id,
                presentation_id=presentation_id,
                created_at=data.get("createdAt") or datetime.now(UTC),
                created_by=data.get("createdBy"),
                summary=data.get("summary"),
                slides_snapshot=data.get("slidesSnapshot") or [],
            ),
        )
        await self.publish(presentation_id, RemoteChannel.VERSIONS)
        return version_id

    async def list_versions(self, presentation_id: str) -> list[Record]:
        return await asyncio.to_thread(self._list_versions_sync, presentation_id)

    def _list_versions_sync(self, presentation_id: str) -> list[Record]:
        with self._session() as session:
            rows = (
                session.query(VersionRecord)
                .filter(VersionRecord.presentation_id == presentation_id)
                .order_by(VersionRecord.created_at.desc())
                .all()
            )
            return [(row.id, row.to_record()) for row in rows]

    def _add_row_sync(self, presentation_id: str | None, row: Any) -> None:
        with self._session() as session:
            if presentation_id is not None:
                self._ensure_presentation(session, presentation_id)
            session.add(row)

    # comments

    async def add_comment(self, presentation_id: str, data: dict[str, Any]) -> str:
        comment_id = str(uuid4())
        await asyncio.to_thread(
            self._add_row_sync,
            presentation_id,
            CommentRow(
                comment_id=comment_id,
                presentation_id=presentation_id,
                user_id=data.get("userId"),
                user_name=data.get("userName"),
                text=data.get("text") or "",
                created_at=data.get("createdAt") or datetime.now(UTC),
            ),
        )
        await self.publish(presentation_id, RemoteChannel.COMMENTS)
        return comment_id

    async def list_comments(self, presentation_id: str) -> list[Record]:
        return await asyncio.to_thread(self._list_comments_sync, presentation_id)

    def _list_comments_sync(self, presentation_id: str) -> list[Record]:
        with self._session() as session:
            rows = (
                session.query(CommentRow)
                .filter(CommentRow.presentation_id == presentation_id)
                .order_by(CommentRow.created_at.asc(), CommentRow.id.asc())
                .all()
            )
            return [(row.comment_id, row.to_record()) for row in rows]

    # audit

    async def add_audit_log(self, data: dict[str, Any]) -> str:
        entry_id = str(uuid4())
        await asyncio.to_thread(
            self._add_row_sync,
            None,
            AuditLog(
                id=entry_id,
                presentation_id=data.get("presentationId") or "",
                user_id=data.get("userId"),
                user_email=data.get("userEmail"),
                action=data.get("action") or "",
                details=data.get("details"),
            ),
        )
        return entry_id
