"""
Tests for the YouTube Live Chat client.

Uses httpx.MockTransport so no network is touched.
"""

import json

import httpx
import pytest

from streambot.channels.youtube import YouTubeLiveChatClient, YouTubeTransport, parse_chat_item
from streambot.config.schema import YouTubeConfig
from streambot.errors import InvalidCursorError, LiveChatEndedError, YouTubeAPIError
from streambot.state.quota import QuotaTracker


def make_client(handler, quota=None, **config):
    config = YouTubeConfig(access_token="token-123", **config)
    http = httpx.AsyncClient(base_url=config.api_base, transport=httpx.MockTransport(handler))
    return YouTubeLiveChatClient(config, http=http, quota=quota)


def api_error(status, reason, message="error"):
    return httpx.Response(
        status,
        json={"error": {"code": status, "message": message, "errors": [{"reason": reason}]}},
    )


CHAT_MESSAGE = {
    "id": "m1",
    "snippet": {
        "type": "textMessageEvent",
        "publishedAt": "2026-03-01T12:00:05.123+00:00",
        "displayMessage": "!joke",
        "textMessageDetails": {"messageText": "!joke"},
    },
    "authorDetails": {
        "displayName": "Sam",
        "channelId": "UCsam",
        "isChatOwner": False,
        "isChatModerator": True,
    },
}


class TestFetch:
    """Tests for fetching chat pages."""

    @pytest.mark.asyncio
    async def test_fetch_parses_page(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={
                "items": [CHAT_MESSAGE],
                "nextPageToken": "c2",
                "pollingIntervalMillis": 4000,
            })

        client = make_client(handler)
        page = await client.fetch("chat-1", "c1")

        request = seen[0]
        assert request.url.path.endswith("/youtube/v3/liveChat/messages")
        assert request.url.params["liveChatId"] == "chat-1"
        assert request.url.params["pageToken"] == "c1"
        assert request.url.params["maxResults"] == "200"
        assert request.headers["Authorization"] == "Bearer token-123"
        assert page.next_cursor == "c2"
        assert page.polling_interval_ms == 4000
        assert page.items[0].text == "!joke"
        assert page.items[0].is_moderator is True

    @pytest.mark.asyncio
    async def test_fetch_without_cursor_omits_page_token(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"items": []})

        page = await make_client(handler).fetch("chat-1", None)

        assert "pageToken" not in seen[0].url.params
        assert page.items == []
        assert page.next_cursor is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reason", ["liveChatEnded", "liveChatNotFound", "liveChatDisabled"])
    async def test_ended_reasons(self, reason):
        client = make_client(lambda request: api_error(403, reason))

        with pytest.raises(LiveChatEndedError) as excinfo:
            await client.fetch("chat-1", "c1")

        assert excinfo.value.reason == reason

    @pytest.mark.asyncio
    async def test_invalid_page_token(self):
        client = make_client(lambda request: api_error(400, "invalidPageToken"))

        with pytest.raises(InvalidCursorError):
            await client.fetch("chat-1", "bad")

    @pytest.mark.asyncio
    async def test_other_errors(self):
        client = make_client(lambda request: api_error(403, "quotaExceeded", "Quota exceeded"))

        with pytest.raises(YouTubeAPIError) as excinfo:
            await client.fetch("chat-1", "c1")

        assert excinfo.value.status_code == 403
        assert excinfo.value.reason == "quotaExceeded"

    @pytest.mark.asyncio
    async def test_network_errors_are_wrapped(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(YouTubeAPIError) as excinfo:
            await make_client(handler).fetch("chat-1", None)

        assert excinfo.value.reason == "network"

    @pytest.mark.asyncio
    async def test_malformed_body_is_an_api_error(self):
        client = make_client(lambda request: httpx.Response(200, content=b"<html>oops</html>"))

        with pytest.raises(YouTubeAPIError) as excinfo:
            await client.fetch("chat-1", None)

        assert excinfo.value.reason == "invalidResponse"
        assert excinfo.value.status_code == 200

    @pytest.mark.asyncio
    async def test_configured_owner_channel(self):
        client = make_client(
            lambda request: httpx.Response(200, json={"items": [CHAT_MESSAGE]}),
            owner_channel_id="UCsam",
        )

        page = await client.fetch("chat-1", None)

        assert page.items[0].is_owner is True
        assert page.items[0].to_message().is_admin is True


class TestSend:
    """Tests for sending chat messages."""

    @pytest.mark.asyncio
    async def test_transport_posts_text_message(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"id": "sent-1"})

        transport = YouTubeTransport(make_client(handler), "chat-1")
        await transport.send("hello chat")

        request = seen[0]
        body = json.loads(request.content)
        assert request.method == "POST"
        assert request.url.params["part"] == "snippet"
        assert body["snippet"]["liveChatId"] == "chat-1"
        assert body["snippet"]["textMessageDetails"]["messageText"] == "hello chat"
        assert transport.type == "youtube"


class TestParseChatItem:
    """Tests for chat item normalization."""

    def test_owner_counts_as_admin(self):
        raw = {
            **CHAT_MESSAGE,
            "authorDetails": {"displayName": "Owner", "isChatOwner": True},
        }

        message = parse_chat_item(raw).to_message()

        assert message.is_owner is True
        assert message.is_admin is True
        assert message.platform == "youtube"

    def test_published_at_is_timezone_aware(self):
        item = parse_chat_item(CHAT_MESSAGE)

        assert item.published_at.tzinfo is not None
        assert item.message_type == "textMessageEvent"

    def test_owner_channel_id_marks_owner(self):
        assert parse_chat_item(CHAT_MESSAGE, owner_channel_id="UCsam").is_owner is True
        assert parse_chat_item(CHAT_MESSAGE, owner_channel_id="UCother").is_owner is False
        assert parse_chat_item(CHAT_MESSAGE).is_owner is False


class TestQuota:
    """Tests for quota charging."""

    @pytest.mark.asyncio
    async def test_calls_are_charged(self, tmp_path):
        tracker = QuotaTracker(tmp_path / "quota.json")

        client = make_client(lambda request: httpx.Response(200, json={"items": []}), quota=tracker)
        await client.fetch("chat-1", None)
        await client.send("chat-1", "hi")
        await client.search_live_videos("UC123")
        await client.get_video("v1")

        assert tracker.info().used == 5 + 50 + 100 + 1

    @pytest.mark.asyncio
    async def test_rejected_calls_are_charged(self, tmp_path):
        tracker = QuotaTracker(tmp_path / "quota.json")
        client = make_client(lambda request: api_error(403, "forbidden"), quota=tracker)

        with pytest.raises(YouTubeAPIError):
            await client.fetch("chat-1", None)

        assert tracker.info().used == 5

    @pytest.mark.asyncio
    async def test_network_failures_are_free(self, tmp_path):
        tracker = QuotaTracker(tmp_path / "quota.json")

        def handler(request):
            raise httpx.ConnectError("down", request=request)

        with pytest.raises(YouTubeAPIError):
            await make_client(handler, quota=tracker).fetch("chat-1", None)

        assert tracker.info().used == 0
