"""Named groups of nicknames."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable

from .exceptions import DuplicateGroup, InvalidRequest, NoValidMembers

logger = logging.getLogger(__name__)


@dataclass
class Group:
    """Membership snapshot taken at creation time."""

    name: str
    members: list[str] = field(default_factory=list)

    def __contains__(self, nickname: object) -> bool:
        return nickname in self.members


class GroupRegistry:
    """Groups keyed by name, independent of connection liveness."""

    def __init__(self) -> None:
        self._groups: Dict[str, Group] = {}

    def create(
        self,
        name: str,
        proposed_members: Iterable[str],
        creator_nickname: str | None,
        *,
        online: Iterable[str],
    ) -> Group:
        """Create a group from the proposed members that are currently online.

        The creator is always added when it has a nickname. Members keep the
        order in which they were first proposed.

        Raises:
            InvalidRequest: empty name or empty member list.
            DuplicateGroup: ``name`` is already registered.
            NoValidMembers: nobody left after filtering.
        """

        proposed = list(proposed_members)
        if not name or not proposed:
            raise InvalidRequest("Invalid group name or no members.")
        if name in self._groups:
            raise DuplicateGroup(f'Group "{name}" already exists.')

        connected = set(online)
        members: list[str] = []
        for nickname in proposed:
            if nickname in connected and nickname not in members:
                members.append(nickname)
        if creator_nickname and creator_nickname not in members:
            members.append(creator_nickname)
        if not members:
            raise NoValidMembers("None of the members is connected.")

        group = Group(name=name, members=members)
        self._groups[name] = group
        logger.info("Group %s created with %d member(s)", name, len(members))
        return group

    def groups_containing(self, nickname: str) -> list[str]:
        return [name for name, group in self._groups.items() if nickname in group]

    def members_of(self, name: str) -> list[str] | None:
        group = self._groups.get(name)
        if group is None:
            return None
        return list(group.members)

    def is_member(self, name: str, nickname: str) -> bool:
        group = self._groups.get(name)
        return group is not None and nickname in group

    def names(self) -> list[str]:
        return list(self._groups)

    def clear(self) -> None:
        self._groups.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._groups

    def __len__(self) -> int:
        return len(self._groups)


__all__ = ["Group", "GroupRegistry"]
