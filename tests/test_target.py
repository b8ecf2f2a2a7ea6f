"""
Tests for live chat target resolution.
"""

import pytest

from streambot.errors import ConfigurationError
from streambot.ingestion.target import extract_video_id, resolve_target
from streambot.state.models import Account


def video(video_id, chat_id="chat-1", title="Speedrun", channel_id="UC123"):
    details = {"actualStartTime": "2026-03-01T12:00:00Z"}
    if chat_id:
        details["activeLiveChatId"] = chat_id
    return {
        "id": video_id,
        "snippet": {"title": title, "channelId": channel_id, "channelTitle": "Acme TV"},
        "liveStreamingDetails": details,
    }


class FakeLookup:
    def __init__(self, videos=None, search=None):
        self.videos = videos or {}
        self.search = search or []
        self.searched = []

    async def get_video(self, video_id):
        return self.videos.get(video_id)

    async def search_live_videos(self, channel_id):
        self.searched.append(channel_id)
        return self.search


class TestExtractVideoId:
    """Tests for URL parsing."""

    @pytest.mark.parametrize("url", [
        "https://www.youtube.com/watch?v=abc123",
        "https://www.youtube.com/watch?feature=share&v=abc123",
        "https://youtu.be/abc123",
        "https://www.youtube.com/live/abc123?si=x",
    ])
    def test_supported_urls(self, url):
        assert extract_video_id(url) == "abc123"

    def test_unsupported_url(self):
        assert extract_video_id("https://example.com") is None


class TestResolveTarget:
    """Tests for resolve_target."""

    @pytest.mark.asyncio
    async def test_livestream_url_first(self):
        account = Account(
            id="a",
            name="A",
            youtube_livestream_url="https://youtu.be/vid1",
            youtube_video_id="vid2",
            youtube_channel_id="UC123",
        )
        lookup = FakeLookup(videos={"vid1": video("vid1"), "vid2": video("vid2", "chat-2")})

        target = await resolve_target(lookup, account)

        assert target.live_chat_id == "chat-1"
        assert target.method == "livestream_url"
        assert target.to_target_info()["channel_name"] == "Acme TV"
        assert lookup.searched == []

    @pytest.mark.asyncio
    async def test_video_id(self):
        account = Account(id="a", name="A", youtube_video_id="vid2")
        lookup = FakeLookup(videos={"vid2": video("vid2", "chat-2")})

        target = await resolve_target(lookup, account)

        assert target.live_chat_id == "chat-2"
        assert target.method == "video_id"

    @pytest.mark.asyncio
    async def test_channel_with_title_match(self):
        account = Account(id="a", name="A", youtube_channel_id="UC123", youtube_title_match="speedrun")
        lookup = FakeLookup(
            videos={"v1": video("v1", "chat-1", "Just chatting"), "v2": video("v2", "chat-2", "SPEEDRUN night")},
            search=[
                {"id": {"videoId": "v1"}, "snippet": {"title": "Just chatting"}},
                {"id": {"videoId": "v2"}, "snippet": {"title": "SPEEDRUN night"}},
            ],
        )

        target = await resolve_target(lookup, account)

        assert target.video_id == "v2"
        assert target.method == "channel_id"
        assert lookup.searched == ["UC123"]

    @pytest.mark.asyncio
    async def test_no_target_configured(self):
        with pytest.raises(ConfigurationError):
            await resolve_target(FakeLookup(), Account(id="a", name="A"))

    @pytest.mark.asyncio
    async def test_no_live_stream_on_channel(self):
        account = Account(id="a", name="A", youtube_channel_id="UC123")

        with pytest.raises(ConfigurationError):
            await resolve_target(FakeLookup(), account)

    @pytest.mark.asyncio
    async def test_video_without_chat(self):
        account = Account(id="a", name="A", youtube_video_id="vid1")
        lookup = FakeLookup(videos={"vid1": video("vid1", chat_id=None)})

        with pytest.raises(ConfigurationError):
            await resolve_target(lookup, account)
