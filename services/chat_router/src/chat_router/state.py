"""Container for the router's owned state."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from .config import Settings
from .directory import DuplicateNicknamePolicy, SessionDirectory
from .groups import GroupRegistry
from .history import HistoryBackend, HistoryStore, JsonFileBackend, MemoryBackend

logger = logging.getLogger(__name__)


@dataclass
class ChatState:
    directory: SessionDirectory = field(default_factory=SessionDirectory)
    groups: GroupRegistry = field(default_factory=GroupRegistry)
    history: HistoryStore = field(default_factory=lambda: HistoryStore(MemoryBackend()))

    @classmethod
    def from_settings(cls, settings: Settings) -> "ChatState":
        """Build state and load persisted history."""

        backend: HistoryBackend
        if settings.history_file:
            backend = JsonFileBackend(Path(settings.history_file))
        else:
            backend = MemoryBackend()
        state = cls(
            directory=SessionDirectory(
                unknown_nickname=settings.unknown_nickname,
                policy=DuplicateNicknamePolicy(settings.duplicate_nickname_policy),
            ),
            groups=GroupRegistry(),
            history=HistoryStore(backend),
        )
        state.history.load()
        return state

    def close(self) -> None:
        """Final flush at shutdown, only for changes not yet on disk."""

        if self.history.dirty and not self.history.flush():
            logger.warning("History was not flushed on shutdown")


__all__ = ["ChatState"]
