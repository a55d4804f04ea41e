"""Session and routing core for a multi-party chat service."""

from .directory import DuplicateNicknamePolicy, SessionDirectory
from .groups import Group, GroupRegistry
from .history import HistoryStore, JsonFileBackend, MemoryBackend
from .models import ChatMessage, MessageKind
from .router import MessageRouter
from .state import ChatState

__all__ = [
    "ChatMessage",
    "ChatState",
    "DuplicateNicknamePolicy",
    "Group",
    "GroupRegistry",
    "HistoryStore",
    "JsonFileBackend",
    "MemoryBackend",
    "MessageKind",
    "MessageRouter",
    "SessionDirectory",
]
