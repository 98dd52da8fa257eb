"""Transient, self-dismissing status message for the editing surface."""

from __future__ import annotations

import time

from deckstate.shared.config import config
from deckstate.shared.enums import StatusVariant
from deckstate.shared.logging_utils import setup_logging
from deckstate.shared.models import StatusMessage

logger = setup_logging("status-notifier")


class StatusNotifier:
    """Holds at most one message; it expires ``ttl_seconds`` after being posted."""

    def __init__(self, ttl_seconds: float | None = None) -> None:
        if ttl_seconds is None:
            ttl_seconds = float(
                config.get_pipeline_value("status.ttl_seconds", config.get("status_ttl_seconds", 3))
            )
        self.ttl_seconds = ttl_seconds
        self._message: StatusMessage | None = None

    def post(self, text: str, variant: StatusVariant = StatusVariant.INFO) -> StatusMessage:
        self._message = StatusMessage(text=text, variant=variant, created_at=time.monotonic())
        logger.debug(f"Status ({variant.value}): {text}")
        return self._message

    def current(self) -> StatusMessage | None:
        if self._message is None:
            return None
        if time.monotonic() - self._message.created_at >= self.ttl_seconds:
            self._message = None
        return self._message

    def clear(self) -> None:
        self._message = None
