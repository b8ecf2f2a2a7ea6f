"""
YouTube Live Chat integration for streambot.

Talks to the YouTube Data API v3 over httpx:
- liveChat/messages list (polling) and insert (replies, announcements)
- search/videos lookups for live chat target resolution

API errors are mapped onto the streambot exception hierarchy so the
ingestion engine can tell an invalid cursor from an ended chat.
"""

from datetime import datetime, timezone
from typing import Any

import httpx
from loguru import logger

from streambot.channels.base import Transport
from streambot.config.schema import YouTubeConfig
from streambot.errors import ChatAPIError, InvalidCursorError, LiveChatEndedError, YouTubeAPIError
from streambot.ingestion.live_chat import ChatItem, ChatPage
from streambot.state.quota import QuotaTracker


ENDED_REASONS = {"liveChatEnded", "liveChatNotFound", "liveChatDisabled"}

# Data API unit costs per call
QUOTA_COSTS = {
    ("GET", "/liveChat/messages"): 5,
    ("POST", "/liveChat/messages"): 50,
    ("GET", "/videos"): 1,
    ("GET", "/search"): 100,
}


def _parse_published(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def parse_chat_item(item: dict[str, Any], owner_channel_id: str = "") -> ChatItem:
    """
    Unpack a liveChatMessage resource.

    An author whose channel id equals ``owner_channel_id`` counts as the chat
    owner even when YouTube does not flag them.
    """
    snippet = item.get("snippet") or {}
    author = item.get("authorDetails") or {}
    text = (snippet.get("textMessageDetails") or {}).get("messageText")
    return ChatItem(
        id=str(item.get("id", "")),
        message_type=snippet.get("type", ""),
        text=text if text is not None else snippet.get("displayMessage", ""),
        author_name=author.get("displayName", ""),
        author_id=author.get("channelId", ""),
        is_owner=bool(
            author.get("isChatOwner")
            or (owner_channel_id and author.get("channelId") == owner_channel_id)
        ),
        is_moderator=bool(author.get("isChatModerator")),
        published_at=_parse_published(snippet.get("publishedAt")),
        raw=item,
    )


def _error_from_response(response: httpx.Response) -> ChatAPIError:
    try:
        error = response.json().get("error") or {}
    except ValueError:
        error = {}
    errors = error.get("errors") or [{}]
    reason = errors[0].get("reason", "")
    message = error.get("message") or response.text or f"HTTP {response.status_code}"

    if reason == "invalidPageToken" or "invalidpagetoken" in message.lower():
        return InvalidCursorError(message, reason="invalidPageToken", status_code=response.status_code)
    if reason in ENDED_REASONS:
        return LiveChatEndedError(message, reason=reason, status_code=response.status_code)
    return YouTubeAPIError(message, reason=reason, status_code=response.status_code)


class YouTubeLiveChatClient:
    """
    Minimal YouTube Data API client.

    Args:
        config: YouTube configuration (access token, API base, timeout).
        max_results: Page size for chat fetches.
        http: Optional pre-built httpx client (tests pass a mock transport).
        quota: Optional tracker charged for every call that reaches the API.
    """

    def __init__(
        self,
        config: YouTubeConfig,
        max_results: int = 200,
        http: httpx.AsyncClient | None = None,
        quota: QuotaTracker | None = None,
    ):
        self.config = config
        self.max_results = max_results
        self.quota = quota
        self._http = http or httpx.AsyncClient(
            base_url=config.api_base,
            timeout=config.request_timeout,
        )

    @property
    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.config.access_token}"}

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any],
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        try:
            response = await self._http.request(
                method, path, params=params, json=json, headers=self._headers
            )
        except httpx.TimeoutException as e:
            raise YouTubeAPIError(f"Request timed out: {path}", reason="timeout") from e
        except httpx.HTTPError as e:
            raise YouTubeAPIError(f"Request failed: {e}", reason="network") from e

        if self.quota is not None:
            self.quota.add(QUOTA_COSTS.get((method, path), 1))

        if response.status_code >= 400:
            raise _error_from_response(response)
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise YouTubeAPIError(
                f"Invalid JSON from {path}", reason="invalidResponse", status_code=response.status_code
            ) from e

    # ========== Chat ==========

    async def fetch(self, chat_id: str, cursor: str | None) -> ChatPage:
        params = {
            "liveChatId": chat_id,
            "part": "snippet,authorDetails",
            "maxResults": self.max_results,
        }
        if cursor:
            params["pageToken"] = cursor

        data = await self._request("GET", "/liveChat/messages", params)
        return ChatPage(
            items=[
                parse_chat_item(item, self.config.owner_channel_id)
                for item in data.get("items") or []
            ],
            next_cursor=data.get("nextPageToken"),
            polling_interval_ms=data.get("pollingIntervalMillis"),
        )

    async def send(self, chat_id: str, text: str) -> None:
        await self._request(
            "POST",
            "/liveChat/messages",
            {"part": "snippet"},
            json={
                "snippet": {
                    "liveChatId": chat_id,
                    "type": "textMessageEvent",
                    "textMessageDetails": {"messageText": text},
                }
            },
        )

    # ========== Target lookup ==========

    async def get_video(self, video_id: str) -> dict[str, Any] | None:
        data = await self._request(
            "GET", "/videos", {"part": "liveStreamingDetails,snippet", "id": video_id}
        )
        items = data.get("items") or []
        return items[0] if items else None

    async def search_live_videos(self, channel_id: str) -> list[dict[str, Any]]:
        data = await self._request(
            "GET",
            "/search",
            {
                "part": "id,snippet",
                "channelId": channel_id,
                "eventType": "live",
                "type": "video",
                "maxResults": 5,
                "order": "date",
            },
        )
        return data.get("items") or []

    async def close(self) -> None:
        await self._http.aclose()


class YouTubeTransport(Transport):
    """Sends replies into one live chat."""

    type = "youtube"

    def __init__(self, client: YouTubeLiveChatClient, chat_id: str):
        self.client = client
        self.chat_id = chat_id

    async def send(self, text: str) -> None:
        logger.debug(f"YouTube send to {self.chat_id}: {text}")
        await self.client.send(self.chat_id, text)
