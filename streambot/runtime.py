"""
Bot runtime: builds and owns every long-lived service.

One BotRuntime per process. It wires the registry, dispatcher, account store,
per-account live chat engines, the announcement scheduler and the Discord
gateway, and connects the failure callbacks between them.
"""

import asyncio
from datetime import datetime, timezone
from pathlib import Path

from loguru import logger

from streambot.announcements.scheduler import AnnouncementScheduler
from streambot.channels.base import Transport
from streambot.channels.discord import DiscordChannel
from streambot.channels.youtube import YouTubeLiveChatClient, YouTubeTransport
from streambot.commands.context import ContextBuilder, InboundMessage
from streambot.commands.registry import Registry, build_registry, load_registry
from streambot.commands.router import Dispatcher, settings_module_gate
from streambot.config.schema import Config
from streambot.errors import ChatAPIError, ConfigurationError
from streambot.ingestion.live_chat import LiveChatClient, LiveChatEngine, PollResult
from streambot.ingestion.target import LiveChatTarget, resolve_target
from streambot.modules import BUILTIN_MODULES
from streambot.state.models import AccountRuntime
from streambot.state.quota import QuotaTracker
from streambot.state.store import AccountStore, QUOTA_FILE


class BotRuntime:
    """
    Service container for a running bot.

    Args:
        config: Root configuration.
        store: Account store (built from config if omitted).
        client: Live chat client (YouTube over httpx if omitted).
        registry: Command registry (built-ins plus the modules dir if omitted).
        started_at: Process start; chat history before it is never dispatched.
    """

    def __init__(
        self,
        config: Config,
        store: AccountStore | None = None,
        client: LiveChatClient | None = None,
        registry: Registry | None = None,
        started_at: datetime | None = None,
    ):
        self.config = config
        self.started_at = started_at or datetime.now(timezone.utc)
        self.store = store or AccountStore(
            config.data_path,
            storage=config.storage,
            announcements=config.announcements,
            default_prefix=config.commands.prefix,
            quota=QuotaTracker(
                config.data_path / QUOTA_FILE, daily_limit=config.youtube.daily_quota
            ),
        )
        self.client = client or YouTubeLiveChatClient(
            config.youtube,
            max_results=config.polling.max_results,
            quota=self.store.quota,
        )
        self.registry = registry or self._build_registry()

        self.context_builder = ContextBuilder(registry=self.registry, store=self.store)
        self.dispatcher = Dispatcher(
            self.registry,
            self.context_builder,
            is_module_disabled=settings_module_gate(self.store),
            store=self.store,
            default_prefix=config.commands.prefix,
        )
        self.scheduler = AnnouncementScheduler(
            self.store,
            self._transport_for,
            config=config.announcements,
            on_connection_down=self.on_connection_down,
        )
        self.engines: dict[str, LiveChatEngine] = {}
        self.discord: DiscordChannel | None = None

    def _build_registry(self) -> Registry:
        disabled = self.config.commands.disabled_modules
        if self.config.commands.modules_dir:
            return load_registry(
                Path(self.config.commands.modules_dir).expanduser(),
                disabled=disabled,
                base=BUILTIN_MODULES,
            )
        return build_registry(BUILTIN_MODULES, disabled=disabled)

    def _transport_for(self, account_id: str, chat_id: str) -> Transport:
        return YouTubeTransport(self.client, chat_id)

    def engine_for(self, account_id: str) -> LiveChatEngine:
        engine = self.engines.get(account_id)
        if engine is None:
            engine = LiveChatEngine(
                account_id,
                self.client,
                self.store,
                self.dispatcher,
                transport_factory=lambda chat_id: self._transport_for(account_id, chat_id),
                started_at=self.started_at,
                config=self.config.polling,
                on_ended=self.on_chat_ended,
            )
            self.engines[account_id] = engine
        return engine

    # ========== Connections ==========

    async def connect_account(
        self,
        account_id: str,
        auto_poll: bool | None = None,
    ) -> LiveChatTarget | None:
        """
        Resolve, prime and start an account's live chat.

        Returns:
            The resolved target, or None if YouTube is disabled for the account.

        Raises:
            ConfigurationError: Unknown account, no credentials, or no
                resolvable live chat.
        """
        account = self.store.get_account(account_id)
        if account is None:
            raise ConfigurationError(f"Unknown account: {account_id}")

        settings = self.store.load_settings(account_id)
        if not self.config.youtube.enabled or not settings.youtube.enabled:
            logger.info(f"YouTube disabled for {account_id}; skipping connection")
            return None
        if isinstance(self.client, YouTubeLiveChatClient) and not self.config.youtube.access_token:
            raise ConfigurationError("No YouTube access token configured")

        target = await resolve_target(self.client, account)

        def apply(runtime: AccountRuntime) -> None:
            runtime.live_chat_id = target.live_chat_id
            runtime.youtube_channel_id = target.channel_id
            runtime.resolved_method = target.method
            runtime.target_info = target.to_target_info()

        await self.store.update_runtime(account_id, apply)
        await self.scheduler.clear_paused_state(account_id)

        engine = self.engine_for(account_id)
        await engine.prime(target.live_chat_id)

        if self.config.auto_poll if auto_poll is None else auto_poll:
            engine.poll_chat(target.live_chat_id)
        if self.config.announcements.enabled:
            self.scheduler.start(account_id)

        logger.info(
            f"Connected {account_id} to live chat {target.live_chat_id} via {target.method}"
        )
        return target

    async def disconnect_account(self, account_id: str) -> None:
        self.scheduler.stop(account_id)
        engine = self.engines.pop(account_id, None)
        if engine is not None:
            await engine.reset()
        else:
            await self.store.update_runtime(account_id, AccountRuntime.clear_connection)
        logger.info(f"Disconnected {account_id}")

    async def on_connection_down(self, account_id: str, reason: str) -> None:
        """Announcements paused the account; stop polling its chat."""
        engine = self.engines.get(account_id)
        if engine is not None:
            await engine.stop()
        logger.warning(f"Connection down for {account_id}: {reason}")

    async def on_chat_ended(self, account_id: str, reason: str) -> None:
        self.scheduler.stop(account_id)

    async def poll_once(self, account_id: str) -> PollResult:
        """Run a single poll for a connected account."""
        runtime = self.store.load_runtime(account_id)
        if not runtime.live_chat_id:
            raise ConfigurationError(f"Account {account_id} is not connected to a live chat")
        return await self.engine_for(account_id).poll_once(runtime.live_chat_id)

    async def dispatch_console(self, account_id: str, text: str, transport: Transport) -> bool:
        """Dispatch a line typed into the test console as the channel owner."""
        message = InboundMessage(
            text=text,
            author_name="console",
            author_id="console",
            platform="console",
            is_owner=True,
            is_admin=True,
            published_at=datetime.now(timezone.utc),
        )
        return await self.dispatcher.dispatch(message, account_id=account_id, transport=transport)

    # ========== Lifecycle ==========

    async def start_all(self) -> None:
        """Connect every account with a YouTube target and set up Discord."""
        for account in self.store.list_accounts():
            if not (
                account.youtube_livestream_url
                or account.youtube_video_id
                or account.youtube_channel_id
            ):
                logger.debug(f"No YouTube target for {account.id}")
                continue
            try:
                await self.connect_account(account.id)
            except (ConfigurationError, ChatAPIError) as e:
                logger.error(f"Could not connect {account.id}: {e}")

        if self.config.discord.enabled:
            if not self.config.discord.token:
                logger.warning("Discord enabled but no token configured")
            else:
                self.discord = DiscordChannel(self.config.discord, self.store, self.dispatcher)

    async def run(self) -> None:
        """Start everything and serve until cancelled."""
        await self.start_all()
        try:
            if self.discord is not None:
                await self.discord.start()
            else:
                await asyncio.Event().wait()
        finally:
            await self.stop_all()

    async def stop_all(self) -> None:
        self.scheduler.stop_all()
        for engine in self.engines.values():
            await engine.stop()
        if self.discord is not None:
            await self.discord.stop()
        if isinstance(self.client, YouTubeLiveChatClient):
            await self.client.close()
