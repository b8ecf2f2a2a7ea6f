"""
Discord channel integration for streambot.

Uses discord.py for the gateway with support for:
- Guild -> account routing
- Per-account routing toggle and channel allowlists
- Administrator / guild owner detection for admin-only commands
"""

from typing import Any, TYPE_CHECKING

import discord
from loguru import logger

from streambot.channels.base import Transport
from streambot.commands.context import InboundMessage
from streambot.config.schema import DiscordConfig
from streambot.state.store import AccountStore

if TYPE_CHECKING:
    from streambot.commands.router import Dispatcher


class DiscordTransport(Transport):
    """Replies into the channel a message came from."""

    type = "discord"

    def __init__(self, channel: Any):
        self.channel = channel

    async def send(self, text: str) -> None:
        await self.channel.send(text)


def normalize_message(message: Any) -> InboundMessage:
    """Turn a discord.Message into an InboundMessage."""
    author = message.author
    member = message.guild.get_member(author.id) if message.guild else None
    member = member or author
    permissions = getattr(member, "guild_permissions", None)

    is_owner = bool(message.guild and message.guild.owner_id == author.id)
    is_administrator = bool(permissions and permissions.administrator)

    return InboundMessage(
        text=message.content or "",
        author_name=(
            getattr(member, "display_name", None)
            or getattr(author, "global_name", None)
            or author.name
            or "DiscordUser"
        ),
        author_id=str(author.id),
        platform="discord",
        is_owner=is_owner,
        is_admin=is_owner or is_administrator,
        channel_id=str(message.channel.id),
        guild_id=str(message.guild.id) if message.guild else None,
        published_at=message.created_at,
        raw=message,
    )


class DiscordChannel:
    """
    Discord gateway adapter.

    One client serves every account; each message is routed to the account
    whose guild id matches.
    """

    name = "discord"

    def __init__(
        self,
        config: DiscordConfig,
        store: AccountStore,
        dispatcher: "Dispatcher",
        client: discord.Client | None = None,
    ):
        self.token = config.token
        self.store = store
        self.dispatcher = dispatcher
        self._running = False

        if client is None:
            intents = discord.Intents.default()
            intents.message_content = True
            intents.guild_messages = True
            client = discord.Client(intents=intents)
        self.client = client

        self._setup_handlers()

    def _setup_handlers(self) -> None:
        """Set up Discord event handlers."""

        @self.client.event
        async def on_ready():
            logger.info(f"Discord bot logged in as {self.client.user}")

        @self.client.event
        async def on_message(message: discord.Message):
            await self.handle_message(message)

    async def handle_message(self, message: Any) -> bool:
        """
        Route one gateway message to its account.

        Returns:
            True if a command ran.
        """
        if message.author == self.client.user or message.author.bot:
            return False
        if message.guild is None:
            return False

        account = self.store.find_account_by_guild(message.guild.id)
        if account is None:
            return False

        settings = self.store.load_settings(account.id)
        if not settings.discord.enabled:
            return False
        if not settings.discord.allows_channel(str(message.channel.id)):
            return False

        return await self.dispatcher.dispatch(
            normalize_message(message),
            account_id=account.id,
            transport=DiscordTransport(message.channel),
            platform_meta={
                "guild_id": str(message.guild.id),
                "channel_id": str(message.channel.id),
                "user_id": str(message.author.id),
            },
        )

    async def start(self) -> None:
        """Start the Discord bot."""
        logger.info("Starting Discord channel")
        self._running = True

        try:
            await self.client.start(self.token)
        except Exception as e:
            logger.error(f"Discord bot error: {e}")
            self._running = False
            raise

    async def stop(self) -> None:
        """Stop the Discord bot."""
        logger.info("Stopping Discord channel")
        self._running = False
        await self.client.close()

    @property
    def is_running(self) -> bool:
        """Check if the channel is running."""
        return self._running and self.client.is_ready()
