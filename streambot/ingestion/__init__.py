"""Live chat ingestion."""

from streambot.ingestion.live_chat import (
    ChatItem,
    ChatPage,
    ConnectionState,
    LiveChatClient,
    LiveChatEngine,
    PollResult,
)
from streambot.ingestion.target import LiveChatTarget, extract_video_id, resolve_target

__all__ = [
    "ChatItem",
    "ChatPage",
    "ConnectionState",
    "LiveChatClient",
    "LiveChatEngine",
    "LiveChatTarget",
    "PollResult",
    "extract_video_id",
    "resolve_target",
]
