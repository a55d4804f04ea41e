"""Errors raised while routing chat events."""

from __future__ import annotations


class ChatRoutingError(RuntimeError):
    """Per-event failure reported back to the originating connection only."""

    def __init__(self, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause


class InvalidRequest(ChatRoutingError):
    """Malformed inbound payload."""


class DuplicateGroup(ChatRoutingError):
    """A group with the same name already exists."""


class NoValidMembers(ChatRoutingError):
    """None of the proposed members is connected."""


class TargetNotConnected(ChatRoutingError):
    """Private message addressed to an offline or unknown nickname."""


class GroupNotFound(ChatRoutingError):
    """Group message addressed to a group that does not exist."""


class NotAGroupMember(ChatRoutingError):
    """Sender is not a member of the target group."""


class NicknameTaken(ChatRoutingError):
    """Another live connection already holds the nickname."""


__all__ = [
    "ChatRoutingError",
    "InvalidRequest",
    "DuplicateGroup",
    "NoValidMembers",
    "TargetNotConnected",
    "GroupNotFound",
    "NotAGroupMember",
    "NicknameTaken",
]
