"""Domain models for chat routing."""

from __future__ import annotations

import time
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


def _now_ms() -> int:
    return int(time.time() * 1000)


class MessageKind(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"
    GROUP = "group"


class ChatMessage(BaseModel):
    """Immutable chat record stored in history and delivered to clients."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    sender_connection_id: str = Field(..., alias="id", description="Connection that sent the message.")
    sender_nickname: str = Field(..., alias="name", description="Nickname resolved at send time.")
    text: str = Field("", description="Message text, empty for images.")
    image: str | None = Field(default=None, description="Encoded image payload, opaque to the router.")
    timestamp: int = Field(default_factory=_now_ms, alias="time", description="Epoch milliseconds.")
    kind: MessageKind = Field(..., alias="type")
    target: str | None = Field(
        default=None,
        description="Recipient nickname for private messages, group name for group messages.",
    )

    @model_validator(mode="after")
    def _check_target(self) -> "ChatMessage":
        if self.kind is MessageKind.PUBLIC and self.target is not None:
            raise ValueError("public messages carry no target")
        if self.kind is not MessageKind.PUBLIC and not self.target:
            raise ValueError(f"{self.kind.value} messages require a target")
        return self

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class ChatPayload(BaseModel):
    """Body shared by public, private and group chat events."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str | None = None
    text: str | None = None
    data: str | None = None

    @property
    def is_image(self) -> bool:
        return self.type == "image"


class PrivatePayload(ChatPayload):
    target: str


class GroupPayload(ChatPayload):
    group_name: str = Field(..., alias="groupName")


class CreateGroupPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    group_name: str = Field(..., alias="groupName")
    members: list[str] = Field(default_factory=list)


class TypingPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: MessageKind
    target: str | None = None


class Envelope(BaseModel):
    """WebSocket frame: a named event with a JSON payload."""

    event: str = Field(..., min_length=1)
    data: Any = None


__all__ = [
    "MessageKind",
    "ChatMessage",
    "ChatPayload",
    "PrivatePayload",
    "GroupPayload",
    "CreateGroupPayload",
    "TypingPayload",
    "Envelope",
]
