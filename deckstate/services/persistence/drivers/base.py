from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Any, Awaitable, Callable

from deckstate.shared.enums import RemoteChannel
from deckstate.shared.logging_utils import setup_logging

logger = setup_logging("remote-store")

Record = tuple[str, dict[str, Any]]
SnapshotCallback = Callable[[list[Record]], Awaitable[None] | None]
ErrorCallback = Callable[[Exception], Awaitable[None] | None]


class RemoteStore(ABC):
    """Abstract base class for the hosted document store.

    Writes with ``merge=True`` update only the keys they carry; records are
    keyed by id so repeating a write never duplicates anything. Change streams
    deliver the full ordered list for a channel on subscribe and after every
    write to it.
    """

    name = "remote"

    def __init__(self) -> None:
        self._subscribers: dict[tuple[str, RemoteChannel], list[tuple[SnapshotCallback, ErrorCallback | None]]] = (
            defaultdict(list)
        )

    # presentations

    @abstractmethod
    async def get_presentation(self, presentation_id: str) -> dict[str, Any] | None:
        pass

    @abstractmethod
    async def set_presentation(self, presentation_id: str, data: dict[str, Any], merge: bool = True) -> None:
        pass

    # slides

    @abstractmethod
    async def list_slides(self, presentation_id: str) -> list[Record]:
        """Slides ordered by ``order`` ascending, ties in arrival order."""

    @abstractmethod
    async def set_slide(
        self, presentation_id: str, slide_id: str, data: dict[str, Any], merge: bool = True
    ) -> None:
        pass

    @abstractmethod
    async def delete_slide(self, presentation_id: str, slide_id: str) -> None:
        pass

    @abstractmethod
    async def apply_batch(
        self, presentation_id: str, upserts: dict[str, dict[str, Any]], deletes: list[str]
    ) -> None:
        """Merge every upsert and remove every delete as one unit."""

    # versions, comments, audit

    @abstractmethod
    async def add_version(self, presentation_id: str, data: dict[str, Any]) -> str:
        pass

    @abstractmethod
    async def list_versions(self, presentation_id: str) -> list[Record]:
        """Versions newest first."""

    @abstractmethod
    async def add_comment(self, presentation_id: str, data: dict[str, Any]) -> str:
        pass

    @abstractmethod
    async def list_comments(self, presentation_id: str) -> list[Record]:
        """Comments oldest first."""

    @abstractmethod
    async def add_audit_log(self, data: dict[str, Any]) -> str:
        pass

    # change streams

    async def subscribe(
        self,
        presentation_id: str,
        channel: RemoteChannel,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback | None = None,
    ) -> Callable[[], None]:
        """Register a listener and deliver the current snapshot; returns an unsubscribe callable."""
        key = (presentation_id, RemoteChannel(channel))
        entry = (on_snapshot, on_error)
        self._subscribers[key].append(entry)

        def unsubscribe() -> None:
            listeners = self._subscribers.get(key)
            if listeners and entry in listeners:
                listeners.remove(entry)
                if not listeners:
                    self._subscribers.pop(key, None)

        await self._deliver(key, [entry])
        return unsubscribe

    def subscriber_count(self, presentation_id: str, channel: RemoteChannel) -> int:
        return len(self._subscribers.get((presentation_id, RemoteChannel(channel)), []))

    async def publish(self, presentation_id: str, channel: RemoteChannel) -> None:
        key = (presentation_id, RemoteChannel(channel))
        listeners = list(self._subscribers.get(key, []))
        if listeners:
            await self._deliver(key, listeners)

    async def _read_channel(self, presentation_id: str, channel: RemoteChannel) -> list[Record]:
        if channel is RemoteChannel.COMMENTS:
            return await self.list_comments(presentation_id)
        if channel is RemoteChannel.VERSIONS:
            return await self.list_versions(presentation_id)
        if channel is RemoteChannel.SLIDES:
            return await self.list_slides(presentation_id)
        raise ValueError(f"Unknown channel: {channel!r}")

    async def _deliver(
        self,
        key: tuple[str, RemoteChannel],
        listeners: list[tuple[SnapshotCallback, ErrorCallback | None]],
    ) -> None:
        presentation_id, channel = key
        try:
            records = await self._read_channel(presentation_id, channel)
        except Exception as e:
            logger.error(f"Failed to read {channel.value} for {presentation_id}: {e}")
            for _, on_error in listeners:
                if on_error is not None:
                    await _maybe_await(on_error(e))
            return

        for on_snapshot, on_error in listeners:
            try:
                await _maybe_await(on_snapshot(list(records)))
            except Exception as e:
                logger.error(f"Listener for {channel.value} on {presentation_id} failed: {e}")
                if on_error is not None:
                    await _maybe_await(on_error(e))


async def _maybe_await(result: Any) -> None:
    if inspect.isawaitable(result):
        await result
