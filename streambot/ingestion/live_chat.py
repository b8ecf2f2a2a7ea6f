"""
Live chat ingestion for polling-based chat APIs.

One engine per account. The engine walks the chat feed with a forward
cursor:
- prime: fetch once, drop the history, keep the cursor
- poll_once: fetch one page with the stored cursor and dispatch new messages
- poll_chat: run poll_once forever as a background task

An invalidated cursor is recovered by priming again and retrying once.
Messages published before the process started are never dispatched.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Protocol

from loguru import logger

from streambot.channels.base import Transport
from streambot.commands.context import InboundMessage
from streambot.commands.router import Dispatcher
from streambot.config.schema import PollingConfig
from streambot.errors import InvalidCursorError, LiveChatEndedError
from streambot.state.models import AccountRuntime, AccountSettings
from streambot.state.store import AccountStore


TEXT_MESSAGE_EVENT = "textMessageEvent"


class ConnectionState(str, Enum):
    """Ingestion state of one account."""
    DISCONNECTED = "disconnected"
    PRIMED = "primed"
    POLLING = "polling"


@dataclass
class ChatItem:
    """One entry of a chat page, already unpacked from the API shape."""
    id: str
    message_type: str
    text: str = ""
    author_name: str = ""
    author_id: str = ""
    is_owner: bool = False
    is_moderator: bool = False
    published_at: datetime | None = None
    raw: Any = None

    def to_message(self) -> InboundMessage:
        return InboundMessage(
            text=self.text,
            author_name=self.author_name,
            author_id=self.author_id,
            platform="youtube",
            is_owner=self.is_owner,
            is_admin=self.is_owner or self.is_moderator,
            published_at=self.published_at,
            raw=self.raw,
        )


@dataclass
class ChatPage:
    """One page of the chat feed."""
    items: list[ChatItem] = field(default_factory=list)
    next_cursor: str | None = None
    polling_interval_ms: int | None = None


@dataclass
class PollResult:
    """Outcome of a single poll."""
    received: int  # Items on the fetched page
    handled: int  # Text messages passed to the dispatcher
    next_delay: float  # Seconds
    commands: int = 0  # Messages that ran a command
    ended: bool = False


class LiveChatClient(Protocol):
    """What the engine needs from a chat API."""

    async def fetch(self, chat_id: str, cursor: str | None) -> ChatPage: ...

    async def send(self, chat_id: str, text: str) -> None: ...


TransportFactory = Callable[[str], Transport]
EndedCallback = Callable[[str, str], Awaitable[None]]


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class LiveChatEngine:
    """
    Cursor-based ingestion for one account.

    Args:
        account_id: Account this engine belongs to.
        client: Chat API client.
        store: Account store; the cursor lives in the runtime record.
        dispatcher: Command dispatcher.
        transport_factory: Builds the reply transport for a chat id.
        started_at: Process start; older messages are dropped.
        config: Polling delays.
        on_ended: Awaited with (account_id, reason) once the chat has ended.
        sleep: Sleep coroutine used between polls.
    """

    def __init__(
        self,
        account_id: str,
        client: LiveChatClient,
        store: AccountStore,
        dispatcher: Dispatcher,
        transport_factory: TransportFactory,
        started_at: datetime,
        config: PollingConfig | None = None,
        on_ended: EndedCallback | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.account_id = account_id
        self.client = client
        self.store = store
        self.dispatcher = dispatcher
        self.transport_factory = transport_factory
        self.started_at = _as_utc(started_at)
        self.config = config or PollingConfig()
        self.on_ended = on_ended
        self._sleep = sleep

        self.state = ConnectionState.DISCONNECTED
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def prime(self, chat_id: str) -> str | None:
        """
        Fetch the newest page only to learn the forward cursor.

        Items on that page are discarded, so history is never replayed.

        Returns:
            The forward cursor (may be None).
        """
        page = await self.client.fetch(chat_id, None)

        def apply(runtime: AccountRuntime) -> None:
            runtime.live_chat_id = chat_id
            runtime.next_page_token = page.next_cursor
            runtime.primed = True

        await self.store.update_runtime(self.account_id, apply)
        if self.state == ConnectionState.DISCONNECTED:
            self.state = ConnectionState.PRIMED
        logger.info(f"Primed live chat {chat_id} for {self.account_id}")
        return page.next_cursor

    async def poll_once(self, chat_id: str) -> PollResult:
        """
        Fetch and dispatch one page.

        Raises:
            ChatAPIError: Any fetch error other than an invalid cursor or an
                ended chat, and any failure of the retried fetch.
        """
        self.state = ConnectionState.POLLING
        cursor = self.store.load_runtime(self.account_id).next_page_token

        try:
            try:
                page = await self.client.fetch(chat_id, cursor)
            except InvalidCursorError:
                logger.warning(f"Cursor rejected for {self.account_id}; priming again")
                cursor = await self.prime(chat_id)
                page = await self.client.fetch(chat_id, cursor)
        except LiveChatEndedError as e:
            await self._handle_ended(chat_id, e.reason or str(e))
            return PollResult(received=0, handled=0, next_delay=0.0, ended=True)

        transport = self.transport_factory(chat_id)
        received = len(page.items)
        handled = 0
        commands = 0
        for item in page.items:
            if item.message_type != TEXT_MESSAGE_EVENT:
                continue
            if item.published_at and _as_utc(item.published_at) < self.started_at:
                continue
            handled += 1
            if await self.dispatcher.dispatch(
                item.to_message(),
                account_id=self.account_id,
                transport=transport,
                platform_meta={"live_chat_id": chat_id, "message_id": item.id},
            ):
                commands += 1

        # A stop() while dispatching means the connection was torn down
        if self.state == ConnectionState.POLLING:
            next_cursor = page.next_cursor or cursor

            def apply(runtime: AccountRuntime) -> None:
                runtime.live_chat_id = chat_id
                runtime.next_page_token = next_cursor

            await self.store.update_runtime(self.account_id, apply)

        if page.polling_interval_ms:
            next_delay = page.polling_interval_ms / 1000
        else:
            next_delay = self.config.fallback_delay
        return PollResult(
            received=received, handled=handled, next_delay=next_delay, commands=commands
        )

    def poll_chat(self, chat_id: str) -> asyncio.Task:
        """Start the unattended polling loop (no-op if already running)."""
        if not self.running:
            self._task = asyncio.create_task(
                self._poll_loop(chat_id), name=f"poll:{self.account_id}"
            )
        return self._task

    async def _poll_loop(self, chat_id: str) -> None:
        logger.info(f"Polling live chat {chat_id} for {self.account_id}")
        while True:
            try:
                result = await self.poll_once(chat_id)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Polling error for {self.account_id}: {e}")
                await self._sleep(self.config.recovery_delay)
                continue

            if result.ended:
                logger.info(f"Live chat ended for {self.account_id}; polling stopped")
                return
            await self._sleep(result.next_delay)

    async def stop(self) -> None:
        """Cancel the polling task and mark the engine disconnected."""
        self.state = ConnectionState.DISCONNECTED
        task, self._task = self._task, None
        if task is None or task is asyncio.current_task():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def reset(self) -> None:
        """Stop and drop the connection fields from the runtime record."""
        await self.stop()
        await self.store.update_runtime(self.account_id, AccountRuntime.clear_connection)

    async def _handle_ended(self, chat_id: str, reason: str) -> None:
        logger.warning(f"Live chat {chat_id} unavailable for {self.account_id}: {reason}")
        self.state = ConnectionState.DISCONNECTED
        await self.store.update_runtime(self.account_id, AccountRuntime.clear_connection)

        def disable(settings: AccountSettings) -> None:
            settings.youtube.enabled = False

        self.store.update_settings(self.account_id, disable)
        if self.on_ended is not None:
            await self.on_ended(self.account_id, reason)
