"""Key/value JSON storage on the local filesystem, used when no remote identity exists."""

from __future__ import annotations

import json
import os
import re
from typing import Any

from pydantic import ValidationError

from deckstate.services.field_codec import ensure_formatting, ensure_slide
from deckstate.shared.config import config
from deckstate.shared.errors import PersistenceFailure
from deckstate.shared.logging_utils import setup_logging
from deckstate.shared.models import Slide

logger = setup_logging("local-storage")

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def slides_storage_key(presentation_id: str) -> str:
    return f"presentation-{presentation_id}-slides"


class LocalStorage:
    """One JSON file per key under ``local_storage_root``. Writes replace the whole value."""

    def __init__(self, root: str | None = None) -> None:
        self.root = os.path.abspath(root or config.get("local_storage_root", "./.deckstate"))

    def _path(self, key: str) -> str:
        return os.path.join(self.root, f"{_UNSAFE_KEY_CHARS.sub('_', key)}.json")

    def get_item(self, key: str) -> Any:
        path = self._path(key)
        try:
            with open(path, "r", encoding="utf-8") as stream:
                return json.load(stream)
        except FileNotFoundError:
            return None
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring unreadable local value for {key}: {e}")
            return None
        except OSError as e:
            raise PersistenceFailure("read local storage", str(e)) from e

    def set_item(self, key: str, value: Any) -> None:
        path = self._path(key)
        tmp_path = f"{path}.tmp"
        try:
            os.makedirs(self.root, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as stream:
                json.dump(value, stream, ensure_ascii=False)
            os.replace(tmp_path, path)
        except (OSError, TypeError) as e:
            raise PersistenceFailure("write local storage", str(e)) from e

    # slide documents

    def load_slides(self, presentation_id: str) -> list[Slide] | None:
        """Stored slides in their saved sequence, or None when nothing was stored."""
        raw = self.get_item(slides_storage_key(presentation_id))
        if not isinstance(raw, list):
            return None

        slides: list[Slide] = []
        for index, item in enumerate(raw):
            if not isinstance(item, dict):
                continue
            data = dict(item)
            if not isinstance(data.get("id"), str) or not data["id"]:
                data["id"] = f"slide-{index + 1}"
            if not isinstance(data.get("order"), int) or isinstance(data.get("order"), bool):
                data["order"] = index + 1
            formatting = data.get("formatting")
            data["formatting"] = ensure_formatting(formatting if isinstance(formatting, dict) else None)
            try:
                slides.append(ensure_slide(Slide.model_validate(data)))
            except ValidationError as e:
                logger.warning(f"Skipping malformed local slide {data['id']}: {e.error_count()} errors")
        return sorted(slides, key=lambda slide: slide.order)

    def save_slides(self, presentation_id: str, slides: list[Slide]) -> None:
        self.set_item(
            slides_storage_key(presentation_id),
            [slide.model_dump(mode="json") for slide in slides],
        )
