"""
Per-invocation dispatch context.

A context is built fresh for every command and carries the message, the
parsed arguments, account state and a ``reply`` coroutine bound to the
transport the message arrived on.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, TYPE_CHECKING

from loguru import logger

from streambot.commands.parser import first_token
from streambot.errors import TransportError

if TYPE_CHECKING:
    from streambot.channels.base import Transport
    from streambot.commands.registry import CommandDefinition, ModuleManifest, Registry
    from streambot.state.models import AccountRuntime, AccountSettings
    from streambot.state.store import AccountStore


@dataclass
class InboundMessage:
    """A chat message normalized across platforms."""
    text: str
    author_name: str = ""
    author_id: str = ""
    platform: str = "youtube"  # "youtube", "discord" or "console"
    is_owner: bool = False
    is_admin: bool = False
    channel_id: str | None = None
    guild_id: str | None = None
    published_at: datetime | None = None
    raw: Any = None


DefaultSender = Callable[["DispatchContext", str], Awaitable[None]]


@dataclass
class DispatchContext:
    """Everything a middleware stage or command handler can see."""
    message: InboundMessage
    args: list[str]
    author_name: str
    command_name: str  # First word of the text; for logs only
    prefix: str
    platform: str
    transport: "Transport | None" = None
    platform_meta: dict[str, Any] = field(default_factory=dict)
    account_id: str | None = None
    settings: "AccountSettings | None" = None
    runtime: "AccountRuntime | None" = None
    store: "AccountStore | None" = None
    registry: "Registry | None" = None
    module: "ModuleManifest | None" = None
    command: "CommandDefinition | None" = None
    default_sender: DefaultSender | None = None

    async def reply(self, text: str) -> None:
        """Log the reply, then send it through the bound transport."""
        logger.bind(
            channel="bot",
            command=self.command_name,
            user=self.author_name,
            reply=text,
        ).info(f"command.reply {self.command_name} -> {self.author_name}: {text}")

        if self.transport is not None:
            await self.transport.send(text)
        elif self.default_sender is not None:
            await self.default_sender(self, text)
        else:
            raise TransportError(f"No transport bound for reply to {self.command_name}")


class ContextBuilder:
    """
    Builds one DispatchContext per invocation.

    Args:
        registry: Registry exposed to handlers (help listings).
        store: Account store exposed to handlers (settings toggles).
        default_sender: Used by ``reply`` when no transport is bound.
    """

    def __init__(
        self,
        registry: "Registry | None" = None,
        store: "AccountStore | None" = None,
        default_sender: DefaultSender | None = None,
    ):
        self.registry = registry
        self.store = store
        self.default_sender = default_sender

    def build(
        self,
        message: InboundMessage,
        args: list[str],
        prefix: str,
        transport: "Transport | None" = None,
        platform_meta: dict[str, Any] | None = None,
        account_id: str | None = None,
        settings: "AccountSettings | None" = None,
        runtime: "AccountRuntime | None" = None,
        module: "ModuleManifest | None" = None,
        command: "CommandDefinition | None" = None,
    ) -> DispatchContext:
        platform = transport.type if transport is not None else message.platform
        return DispatchContext(
            message=message,
            args=list(args),
            author_name=message.author_name or "unknown",
            command_name=first_token(message.text, prefix),
            prefix=prefix,
            platform=platform,
            transport=transport,
            platform_meta=dict(platform_meta or {}),
            account_id=account_id,
            settings=settings,
            runtime=runtime,
            store=self.store,
            registry=self.registry,
            module=module,
            command=command,
            default_sender=self.default_sender,
        )
