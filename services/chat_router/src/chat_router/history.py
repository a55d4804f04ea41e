"""Append-only chat history with per-viewer visibility."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Iterable, Protocol

from pydantic import ValidationError

from .groups import GroupRegistry
from .models import ChatMessage, MessageKind

logger = logging.getLogger(__name__)


class HistoryBackend(Protocol):
    def load(self) -> list[ChatMessage]: ...

    def save(self, messages: list[ChatMessage]) -> None: ...


class MemoryBackend:
    """Keeps the last saved snapshot in memory only."""

    def __init__(self, messages: Iterable[ChatMessage] | None = None) -> None:
        self.saved: list[ChatMessage] = list(messages or [])

    def load(self) -> list[ChatMessage]:
        return list(self.saved)

    def save(self, messages: list[ChatMessage]) -> None:
        self.saved = list(messages)


class JsonFileBackend:
    """Whole-file JSON array, rewritten on every save."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> list[ChatMessage]:
        if not self.path.exists():
            return []
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                raw = json.load(fh)
        except (OSError, json.JSONDecodeError):
            logger.exception("Failed to read chat history from %s", self.path)
            return []
        if not isinstance(raw, list):
            logger.error("Chat history in %s is not a JSON array, ignoring it", self.path)
            return []

        messages: list[ChatMessage] = []
        for index, item in enumerate(raw):
            try:
                messages.append(ChatMessage.model_validate(item))
            except ValidationError as exc:
                logger.warning("Skip invalid history record #%d in %s: %s", index, self.path, exc)
        return messages

    def save(self, messages: list[ChatMessage]) -> None:
        payload = [message.to_wire() for message in messages]
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as fh:
            json.dump(payload, fh, ensure_ascii=False, indent=2)
        os.replace(tmp_path, self.path)


class HistoryStore:
    """Ordered message log; insertion order is replay order."""

    def __init__(self, backend: HistoryBackend) -> None:
        self._backend = backend
        self._messages: list[ChatMessage] = []
        self._dirty = False

    @property
    def dirty(self) -> bool:
        """True while in-memory changes are not yet persisted."""

        return self._dirty

    def load(self) -> int:
        self._messages = self._backend.load()
        self._dirty = False
        logger.info("Loaded %d history message(s)", len(self._messages))
        return len(self._messages)

    def append(self, message: ChatMessage) -> None:
        self._messages.append(message)
        self._dirty = True
        self.flush()

    def clear(self) -> bool:
        self._messages.clear()
        self._dirty = True
        return self.flush()

    def flush(self) -> bool:
        """Persist the whole log. Failures are logged, never raised."""

        try:
            self._backend.save(self._messages)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Failed to persist chat history")
            return False
        self._dirty = False
        return True

    def messages(self) -> list[ChatMessage]:
        return list(self._messages)

    def filter_for(self, viewer: str, groups: GroupRegistry) -> list[ChatMessage]:
        """Messages ``viewer`` may see, with group membership checked now."""

        return [message for message in self._messages if is_visible_to(message, viewer, groups)]

    def __len__(self) -> int:
        return len(self._messages)


def is_visible_to(message: ChatMessage, viewer: str, groups: GroupRegistry) -> bool:
    if message.kind is MessageKind.PUBLIC:
        return True
    if message.kind is MessageKind.PRIVATE:
        return viewer in (message.sender_nickname, message.target)
    if message.kind is MessageKind.GROUP:
        return message.target is not None and groups.is_member(message.target, viewer)
    return False


__all__ = ["HistoryBackend", "MemoryBackend", "JsonFileBackend", "HistoryStore", "is_visible_to"]
