"""Live connection to nickname mapping."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, Iterator

from .exceptions import NicknameTaken

logger = logging.getLogger(__name__)


class DuplicateNicknamePolicy(str, Enum):
    REJECT = "reject"
    ALLOW = "allow"


class SessionDirectory:
    """Source of truth for who is online.

    Insertion order of the underlying dict defines the presence list order and
    the first-match order of :meth:`connection_of` when duplicates are allowed.
    """

    def __init__(
        self,
        *,
        unknown_nickname: str = "Unknown",
        policy: DuplicateNicknamePolicy = DuplicateNicknamePolicy.REJECT,
    ) -> None:
        self._nicknames: Dict[str, str] = {}
        self._unknown = unknown_nickname
        self._policy = policy

    def set_nickname(self, connection_id: str, nickname: str) -> None:
        """Bind ``nickname`` to ``connection_id``, replacing any previous one."""

        if self._policy is DuplicateNicknamePolicy.REJECT:
            holder = self.connection_of(nickname)
            if holder is not None and holder != connection_id:
                raise NicknameTaken(f'Nickname "{nickname}" is already in use.')
        previous = self._nicknames.get(connection_id)
        self._nicknames[connection_id] = nickname
        if previous is not None and previous != nickname:
            logger.debug("Connection %s renamed %s -> %s", connection_id, previous, nickname)

    def remove(self, connection_id: str) -> str | None:
        return self._nicknames.pop(connection_id, None)

    def nickname_of(self, connection_id: str) -> str:
        return self._nicknames.get(connection_id, self._unknown)

    def has_nickname(self, connection_id: str) -> bool:
        return connection_id in self._nicknames

    def connection_of(self, nickname: str) -> str | None:
        for connection_id, nick in self._nicknames.items():
            if nick == nickname:
                return connection_id
        return None

    def all_nicknames(self) -> list[str]:
        return list(self._nicknames.values())

    def items(self) -> Iterator[tuple[str, str]]:
        return iter(list(self._nicknames.items()))

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._nicknames

    def __len__(self) -> int:
        return len(self._nicknames)


__all__ = ["DuplicateNicknamePolicy", "SessionDirectory"]
