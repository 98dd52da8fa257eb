"""Fire-and-forget audit trail."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import Any

from deckstate.services.persistence.drivers.base import RemoteStore
from deckstate.shared.enums import AuditAction
from deckstate.shared.logging_utils import setup_logging
from deckstate.shared.models import AuditEvent, CallerIdentity

logger = setup_logging("audit-logger")


class AuditLogger:
    """Schedules audit writes without blocking the caller; failures are logged and dropped."""

    def __init__(self, remote: RemoteStore | None) -> None:
        self.remote = remote
        self._pending: set[asyncio.Task] = set()

    def emit(
        self,
        action: AuditAction,
        presentation_id: str | None,
        actor: CallerIdentity | None,
        details: dict[str, Any] | None = None,
    ) -> asyncio.Task | None:
        if self.remote is None or not presentation_id:
            return None
        event = AuditEvent(
            presentation_id=presentation_id,
            action=AuditAction(action).value,
            user_id=actor.user_id if actor else None,
            user_email=actor.email if actor else None,
            details=details,
        )
        task = asyncio.get_running_loop().create_task(self._write(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _write(self, event: AuditEvent) -> None:
        try:
            await self.remote.add_audit_log(
                {
                    "presentationId": event.presentation_id,
                    "userId": event.user_id,
                    "userEmail": event.user_email,
                    "action": event.action,
                    "details": event.details,
                    "createdAt": datetime.now(UTC),
                }
            )
        except Exception as e:
            logger.error(f"Error logging audit action {event.action}: {e}")

    async def drain(self) -> None:
        """Wait for every scheduled write to settle."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
