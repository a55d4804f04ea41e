"""Routes inbound chat events to the connections entitled to see them."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, Protocol

from pydantic import ValidationError

from .exceptions import (
    ChatRoutingError,
    GroupNotFound,
    InvalidRequest,
    NotAGroupMember,
    TargetNotConnected,
)
from .models import (
    ChatMessage,
    ChatPayload,
    CreateGroupPayload,
    GroupPayload,
    MessageKind,
    PrivatePayload,
    TypingPayload,
)
from .schemas import validate_event_payload
from .state import ChatState

logger = logging.getLogger(__name__)

# Outbound event names.
USER_LIST = "user list"
GROUP_LIST = "group list"
CHAT_HISTORY = "chat history"
CHAT_MESSAGE = "chat message"
SYSTEM_MESSAGE = "system message"
TYPING = "typing"


class Transport(Protocol):
    """Delivery channel keyed by connection id."""

    async def send(self, connection_id: str, event: str, data: Any) -> None: ...

    async def broadcast(self, event: str, data: Any, *, exclude: str | None = None) -> None: ...


Handler = Callable[[str, Any], Awaitable[None]]


class MessageRouter:
    """Handles one inbound event at a time against the shared chat state.

    Every entry point takes the same lock, so directory, registry and history
    are never mutated by two handlers at once.
    """

    def __init__(self, state: ChatState, transport: Transport) -> None:
        self._state = state
        self._transport = transport
        self._lock = asyncio.Lock()
        self._handlers: Dict[str, Handler] = {
            "set nickname": self._on_set_nickname,
            "chat public": self._on_chat_public,
            "chat private": self._on_chat_private,
            "chat group": self._on_chat_group,
            "create group": self._on_create_group,
            TYPING: self._on_typing,
        }

    @property
    def state(self) -> ChatState:
        return self._state

    @property
    def events(self) -> list[str]:
        return list(self._handlers)

    async def connect(self, connection_id: str) -> None:
        logger.info("Connection opened: %s", connection_id)

    async def disconnect(self, connection_id: str) -> None:
        """Drop the session and refresh presence and group lists."""

        async with self._lock:
            nickname = self._state.directory.remove(connection_id)
            logger.info("Connection closed: %s (nickname=%s)", connection_id, nickname)
            await self._broadcast_user_list()
            for other_id, other_nick in self._state.directory.items():
                await self._send_group_list(other_id, other_nick)

    async def dispatch(self, connection_id: str, event: str, payload: Any) -> None:
        """Handle a single inbound event.

        Routing errors are reported to the originating connection as a
        ``system message``; typing errors are dropped silently.
        """

        handler = self._handlers.get(event)
        if handler is None:
            logger.warning("Ignoring unknown event %r from %s", event, connection_id)
            return

        async with self._lock:
            try:
                validate_event_payload(event, payload)
                await handler(connection_id, payload)
            except ChatRoutingError as exc:
                if event == TYPING:
                    logger.debug("Dropped typing event from %s: %s", connection_id, exc)
                    return
                logger.info("Rejected %r from %s: %s", event, connection_id, exc)
                await self._transport.send(connection_id, SYSTEM_MESSAGE, {"text": str(exc)})

    async def reset(self) -> None:
        """Clear history and groups; presence is preserved."""

        async with self._lock:
            self._state.history.clear()
            self._state.groups.clear()
            await self._broadcast_user_list()
            for connection_id, nickname in self._state.directory.items():
                await self._send_group_list(connection_id, nickname)
                await self._send_history(connection_id, nickname)
            logger.info("Chat reset by administrator")

    def filter_history_for(self, viewer: str) -> list[ChatMessage]:
        return self._state.history.filter_for(viewer, self._state.groups)

    # -- handlers -----------------------------------------------------------

    async def _on_set_nickname(self, connection_id: str, nickname: str) -> None:
        self._state.directory.set_nickname(connection_id, nickname)
        logger.info("Connection %s is now %s", connection_id, nickname)
        await self._broadcast_user_list()
        await self._send_history(connection_id, nickname)
        await self._send_group_list(connection_id, nickname)

    async def _on_chat_public(self, connection_id: str, payload: Any) -> None:
        body = ChatPayload(text=payload) if isinstance(payload, str) else _parse(ChatPayload, payload)
        message = self._build_message(connection_id, body, MessageKind.PUBLIC, None)
        self._state.history.append(message)
        await self._transport.broadcast(CHAT_MESSAGE, message.to_wire())

    async def _on_chat_private(self, connection_id: str, payload: Any) -> None:
        body = _parse(PrivatePayload, payload)
        target_id = self._state.directory.connection_of(body.target)
        if target_id is None:
            raise TargetNotConnected(f'User "{body.target}" is not connected.')

        message = self._build_message(connection_id, body, MessageKind.PRIVATE, body.target)
        self._state.history.append(message)
        await self._deliver(message, [connection_id, target_id])

    async def _on_chat_group(self, connection_id: str, payload: Any) -> None:
        body = _parse(GroupPayload, payload)
        members = self._state.groups.members_of(body.group_name) if body.group_name else None
        if members is None:
            raise GroupNotFound(f'Group "{body.group_name}" does not exist.')
        directory = self._state.directory
        if not directory.has_nickname(connection_id) or directory.nickname_of(connection_id) not in members:
            raise NotAGroupMember(f'You are not allowed to send messages to "{body.group_name}".')

        message = self._build_message(connection_id, body, MessageKind.GROUP, body.group_name)
        self._state.history.append(message)
        await self._deliver(message, self._live_connections(members))

    async def _on_create_group(self, connection_id: str, payload: Any) -> None:
        body = _parse(CreateGroupPayload, payload)
        directory = self._state.directory
        creator = directory.nickname_of(connection_id) if directory.has_nickname(connection_id) else None
        group = self._state.groups.create(
            body.group_name,
            body.members,
            creator,
            online=directory.all_nicknames(),
        )
        for nickname in group.members:
            member_id = directory.connection_of(nickname)
            if member_id is not None:
                await self._send_group_list(member_id, nickname)
        await self._transport.send(
            connection_id,
            SYSTEM_MESSAGE,
            {"text": f'Group "{group.name}" created with {len(group.members)} member(s).'},
        )

    async def _on_typing(self, connection_id: str, payload: Any) -> None:
        body = _parse(TypingPayload, payload)
        directory = self._state.directory
        notice = {
            "name": directory.nickname_of(connection_id),
            "type": body.type.value,
            "target": None if body.type is MessageKind.PUBLIC else body.target,
        }
        if body.type is MessageKind.PUBLIC:
            await self._transport.broadcast(TYPING, notice, exclude=connection_id)
            return
        if not body.target:
            return
        if body.type is MessageKind.PRIVATE:
            target_id = directory.connection_of(body.target)
            if target_id is not None:
                await self._transport.send(target_id, TYPING, notice)
            return
        members = self._state.groups.members_of(body.target)
        if members is None:
            return
        for member_id in self._live_connections(members):
            if member_id != connection_id:
                await self._transport.send(member_id, TYPING, notice)

    # -- helpers ------------------------------------------------------------

    def _build_message(
        self,
        connection_id: str,
        body: ChatPayload,
        kind: MessageKind,
        target: str | None,
    ) -> ChatMessage:
        return ChatMessage(
            sender_connection_id=connection_id,
            sender_nickname=self._state.directory.nickname_of(connection_id),
            text="" if body.is_image else (body.text or ""),
            image=body.data if body.is_image else None,
            kind=kind,
            target=target,
        )

    def _live_connections(self, nicknames: Iterable[str]) -> list[str]:
        connections: list[str] = []
        for nickname in nicknames:
            connection_id = self._state.directory.connection_of(nickname)
            if connection_id is not None and connection_id not in connections:
                connections.append(connection_id)
        return connections

    async def _deliver(self, message: ChatMessage, connection_ids: list[str]) -> None:
        payload = message.to_wire()
        recipients = list(dict.fromkeys(connection_ids))
        for connection_id in recipients:
            await self._transport.send(connection_id, CHAT_MESSAGE, payload)
        logger.info(
            "Routed %s message from %s to %d connection(s)",
            message.kind.value,
            message.sender_nickname,
            len(recipients),
        )

    async def _broadcast_user_list(self) -> None:
        await self._transport.broadcast(USER_LIST, self._state.directory.all_nicknames())

    async def _send_group_list(self, connection_id: str, nickname: str) -> None:
        await self._transport.send(connection_id, GROUP_LIST, self._state.groups.groups_containing(nickname))

    async def _send_history(self, connection_id: str, nickname: str) -> None:
        history = [message.to_wire() for message in self.filter_history_for(nickname)]
        await self._transport.send(connection_id, CHAT_HISTORY, history)


def _parse(model, payload: Any):  # type: ignore[no-untyped-def]
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise InvalidRequest(f"Invalid payload: {exc.error_count()} error(s)", cause=exc) from exc


__all__ = [
    "Transport",
    "MessageRouter",
    "USER_LIST",
    "GROUP_LIST",
    "CHAT_HISTORY",
    "CHAT_MESSAGE",
    "SYSTEM_MESSAGE",
    "TYPING",
]
