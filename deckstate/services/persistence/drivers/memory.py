"""In-process remote store, used for single-node deployments and tests."""

from __future__ import annotations

import copy
import itertools
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from deckstate.shared.enums import RemoteChannel

from .base import Record, RemoteStore


class InMemoryRemoteStore(RemoteStore):
    """Dictionary-backed store with the same merge and ordering semantics as the SQL driver."""

    name = "memory"

    def __init__(self) -> None:
        super().__init__()
        self._arrival = itertools.count()
        self.presentations: dict[str, dict[str, Any]] = {}
        self.slides: dict[str, dict[str, tuple[int, dict[str, Any]]]] = {}
        self.versions: dict[str, list[Record]] = {}
        self.comments: dict[str, list[Record]] = {}
        self.audit_logs: list[dict[str, Any]] = []

    async def get_presentation(self, presentation_id: str) -> dict[str, Any] | None:
        data = self.presentations.get(presentation_id)
        return copy.deepcopy(data) if data is not None else None

    async def set_presentation(self, presentation_id: str, data: dict[str, Any], merge: bool = True) -> None:
        current = self.presentations.get(presentation_id)
        if merge and current is not None:
            current.update(copy.deepcopy(data))
        else:
            self.presentations[presentation_id] = {"createdAt": datetime.now(UTC), **copy.deepcopy(data)}

    async def list_slides(self, presentation_id: str) -> list[Record]:
        entries = self.slides.get(presentation_id, {})
        ordered = sorted(entries.items(), key=lambda item: (_order_of(item[1][1]), item[1][0]))
        return [(slide_id, copy.deepcopy(data)) for slide_id, (_, data) in ordered]

    def _merge_slide(self, presentation_id: str, slide_id: str, data: dict[str, Any], merge: bool) -> None:
        entries = self.slides.setdefault(presentation_id, {})
        existing = entries.get(slide_id)
        payload = copy.deepcopy(data)
        payload["updatedAt"] = datetime.now(UTC)
        if existing is None:
            entries[slide_id] = (next(self._arrival), payload)
        elif merge:
            existing[1].update(payload)
        else:
            entries[slide_id] = (existing[0], payload)

    async def set_slide(
        self, presentation_id: str, slide_id: str, data: dict[str, Any], merge: bool = True
    ) -> None:
        self._merge_slide(presentation_id, slide_id, data, merge)
        await self.publish(presentation_id, RemoteChannel.SLIDES)

    async def delete_slide(self, presentation_id: str, slide_id: str) -> None:
        self.slides.get(presentation_id, {}).pop(slide_id, None)
        await self.publish(presentation_id, RemoteChannel.SLIDES)

    async def apply_batch(
        self, presentation_id: str, upserts: dict[str, dict[str, Any]], deletes: list[str]
    ) -> None:
        for slide_id, data in upserts.items():
            self._merge_slide(presentation_id, slide_id, data, merge=True)
        entries = self.slides.get(presentation_id, {})
        for slide_id in deletes:
            entries.pop(slide_id, None)
        await self.publish(presentation_id, RemoteChannel.SLIDES)

    async def add_version(self, presentation_id: str, data: dict[str, Any]) -> str:
        version_id = uuid4().hex
        payload = copy.deepcopy(data)
        payload.setdefault("createdAt", datetime.now(UTC))
        self.versions.setdefault(presentation_id, []).append((version_id, payload))
        await self.publish(presentation_id, RemoteChannel.VERSIONS)
        return version_id

    async def list_versions(self, presentation_id: str) -> list[Record]:
        records = self.versions.get(presentation_id, [])
        return [(version_id, copy.deepcopy(data)) for version_id, data in reversed(records)]

    async def add_comment(self, presentation_id: str, data: dict[str, Any]) -> str:
        comment_id = uuid4().hex
        payload = copy.deepcopy(data)
        payload.setdefault("createdAt", datetime.now(UTC))
        self.comments.setdefault(presentation_id, []).append((comment_id, payload))
        await self.publish(presentation_id, RemoteChannel.COMMENTS)
        return comment_id

    async def list_comments(self, presentation_id: str) -> list[Record]:
        return [(comment_id, copy.deepcopy(data)) for comment_id, data in self.comments.get(presentation_id, [])]

    async def add_audit_log(self, data: dict[str, Any]) -> str:
        entry_id = uuid4().hex
        self.audit_logs.append({"id": entry_id, "createdAt": datetime.now(UTC), **copy.deepcopy(data)})
        return entry_id


def _order_of(data: dict[str, Any]) -> int:
    order = data.get("order")
    return order if isinstance(order, int) and not isinstance(order, bool) else 0
