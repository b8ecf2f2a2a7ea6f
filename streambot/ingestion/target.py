"""
Live chat target resolution.

An account points at its stream in one of three ways, tried in order:
1. livestream URL
2. video id
3. channel id, optionally narrowed by a title substring

Anything unresolvable raises ConfigurationError at connect time.
"""

import re
from dataclasses import dataclass
from typing import Any, Protocol

from streambot.errors import ConfigurationError
from streambot.state.models import Account


_VIDEO_ID_PATTERNS = [
    re.compile(r"[?&]v=([\w-]+)"),
    re.compile(r"youtu\.be/([\w-]+)"),
    re.compile(r"/(?:live|shorts|embed)/([\w-]+)"),
]


class VideoLookupClient(Protocol):
    async def get_video(self, video_id: str) -> dict[str, Any] | None: ...

    async def search_live_videos(self, channel_id: str) -> list[dict[str, Any]]: ...


@dataclass
class LiveChatTarget:
    """A resolved live chat and the stream it belongs to."""
    live_chat_id: str
    method: str  # "livestream_url", "video_id" or "channel_id"
    video_id: str
    channel_id: str | None = None
    title: str | None = None
    channel_title: str | None = None
    stream_start_at: str | None = None

    def to_target_info(self) -> dict[str, Any]:
        return {
            "video_id": self.video_id,
            "title": self.title,
            "channel_name": self.channel_title,
            "stream_start_at": self.stream_start_at,
        }


def extract_video_id(url: str) -> str | None:
    """Pull the video id out of a watch, short or live URL."""
    for pattern in _VIDEO_ID_PATTERNS:
        match = pattern.search(url or "")
        if match:
            return match.group(1)
    return None


async def resolve_target(client: VideoLookupClient, account: Account) -> LiveChatTarget:
    """
    Find the live chat for an account.

    Raises:
        ConfigurationError: No target configured, or the target has no
            active live chat.
    """
    if account.youtube_livestream_url:
        video_id = extract_video_id(account.youtube_livestream_url)
        if not video_id:
            raise ConfigurationError(f"Invalid YouTube URL: {account.youtube_livestream_url}")
        return await _resolve_video(client, video_id, "livestream_url")

    if account.youtube_video_id:
        return await _resolve_video(client, account.youtube_video_id, "video_id")

    if account.youtube_channel_id:
        return await _resolve_channel(
            client, account.youtube_channel_id, account.youtube_title_match.strip()
        )

    raise ConfigurationError(
        f"Account {account.id} has no livestream URL, video id or channel id"
    )


async def _resolve_video(client: VideoLookupClient, video_id: str, method: str) -> LiveChatTarget:
    video = await client.get_video(video_id)
    if not video:
        raise ConfigurationError(f"Video {video_id} not found")

    snippet = video.get("snippet") or {}
    details = video.get("liveStreamingDetails") or {}
    live_chat_id = details.get("activeLiveChatId")
    if not live_chat_id:
        raise ConfigurationError(
            f"Video {video_id} is not live or its chat is disabled"
        )
    return LiveChatTarget(
        live_chat_id=live_chat_id,
        method=method,
        video_id=video_id,
        channel_id=snippet.get("channelId"),
        title=snippet.get("title"),
        channel_title=snippet.get("channelTitle"),
        stream_start_at=details.get("actualStartTime"),
    )


async def _resolve_channel(
    client: VideoLookupClient,
    channel_id: str,
    title_match: str = "",
) -> LiveChatTarget:
    items = await client.search_live_videos(channel_id)
    if not items:
        raise ConfigurationError(f"No active live stream found on channel {channel_id}")

    candidate = items[0]
    if title_match:
        lower = title_match.lower()
        candidate = next(
            (i for i in items if lower in ((i.get("snippet") or {}).get("title") or "").lower()),
            candidate,
        )

    video_id = (candidate.get("id") or {}).get("videoId")
    if not video_id:
        raise ConfigurationError("Found a live item but could not resolve its video id")

    target = await _resolve_video(client, video_id, "channel_id")
    target.channel_id = target.channel_id or channel_id
    return target
