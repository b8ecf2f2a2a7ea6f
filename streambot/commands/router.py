"""
Command router for streambot.

Resolves a chat message to at most one command, in this order:
1. Dotted form ``!mod.cmd`` - exact module + command
2. Space form ``!mod cmd`` - module name, then one of its commands
3. Flat form ``!cmd`` - any command name or alias across modules
4. Account custom command (platform scoped)
5. Account count command (YouTube only, admins only)

Tiers 1-3 are gated by a "module disabled" predicate. Nothing propagates out
of ``dispatch``: failures are logged and produce no reply.
"""

from typing import Any, Callable

from loguru import logger

from streambot.channels.base import Transport
from streambot.commands.context import ContextBuilder, DispatchContext, InboundMessage
from streambot.commands.middleware import TerminalStep, as_middleware, is_admin, run_chain
from streambot.commands.parser import ParsedCommand, parse_command
from streambot.commands.registry import Registry, RegistryEntry
from streambot.state.store import AccountStore
from streambot.utils.templates import build_template_values, render_template


# (module_name, account_id, platform) -> disabled?
ModuleGate = Callable[[str, str | None, str], bool]


def settings_module_gate(store: AccountStore) -> ModuleGate:
    """
    Module gate backed by account settings.

    The console transport is never gated so every module can be tried from
    the test console.
    """
    def is_module_disabled(module_name: str, account_id: str | None, platform: str) -> bool:
        if platform == "console" or not account_id:
            return False
        return store.load_settings(account_id).is_module_disabled(module_name, platform)

    return is_module_disabled


class Dispatcher:
    """
    Parses, resolves and executes commands.

    The transport is passed per call, so the same dispatcher serves live
    chat, Discord, the console and replay harnesses.
    """

    def __init__(
        self,
        registry: Registry,
        context_builder: ContextBuilder,
        is_module_disabled: ModuleGate | None = None,
        store: AccountStore | None = None,
        default_prefix: str = "!",
    ):
        self.registry = registry
        self.context_builder = context_builder
        self.is_module_disabled = is_module_disabled
        self.store = store
        self.default_prefix = default_prefix

    async def dispatch(
        self,
        message: InboundMessage,
        *,
        account_id: str | None = None,
        transport: Transport | None = None,
        platform_meta: dict[str, Any] | None = None,
    ) -> bool:
        """
        Dispatch one inbound message.

        Returns:
            True if a command was resolved and run (even if it failed),
            False if the message was not a command or nothing matched.
        """
        try:
            return await self._dispatch(message, account_id, transport, platform_meta or {})
        except Exception:
            logger.exception(
                f"Dispatch failed for {message.author_name or 'unknown'} ({account_id}): {message.text!r}"
            )
            return False

    async def _dispatch(
        self,
        message: InboundMessage,
        account_id: str | None,
        transport: Transport | None,
        platform_meta: dict[str, Any],
    ) -> bool:
        settings = None
        runtime = None
        if self.store is not None and account_id:
            settings = self.store.load_settings(account_id)
            runtime = self.store.load_runtime(account_id)
        prefix = settings.command_prefix if settings else self.default_prefix

        parsed = parse_command(message.text, prefix)
        if parsed is None:
            return False

        platform = transport.type if transport is not None else message.platform
        build = dict(
            message=message,
            prefix=prefix,
            transport=transport,
            platform_meta=platform_meta,
            account_id=account_id,
            settings=settings,
            runtime=runtime,
        )

        resolved = self._resolve_module_command(parsed)
        if resolved is not None:
            entry, args = resolved
            if self._gated(entry, account_id, platform):
                logger.debug(f"Module {entry.module.name} disabled for {account_id}/{platform}")
                return False
            ctx = self.context_builder.build(
                args=args, module=entry.module, command=entry.definition, **build
            )
            await self._run_command(ctx, entry)
            return True

        if self.store is None or not account_id:
            return False

        if await self._run_custom_command(parsed, platform, build):
            return True
        return await self._run_count_command(parsed, platform, build)

    def _resolve_module_command(
        self,
        parsed: ParsedCommand,
    ) -> tuple[RegistryEntry, list[str]] | None:
        # 1) dotted
        if parsed.dotted:
            entry = self.registry.get_command(parsed.module_token, parsed.command_token)
            return (entry, parsed.args) if entry else None

        # 2) space form: the first arg names a command of the module
        module = self.registry.modules.get(parsed.module_token)
        if module and parsed.args:
            definition = module.commands.get(parsed.args[0].lower())
            if definition:
                return RegistryEntry(module, definition), parsed.args[1:]

        # 3) flat
        entry = self.registry.lookup(parsed.module_token)
        return (entry, parsed.args) if entry else None

    def _gated(self, entry: RegistryEntry, account_id: str | None, platform: str) -> bool:
        if self.is_module_disabled is None:
            return False
        return self.is_module_disabled(entry.module.name, account_id, platform)

    async def _run_command(self, ctx: DispatchContext, entry: RegistryEntry) -> None:
        stack = [
            *(as_middleware(m) for m in entry.module.middleware),
            *(as_middleware(m) for m in entry.definition.middleware),
            TerminalStep(entry.definition.handler),
        ]
        try:
            await run_chain(ctx, stack)
        except Exception:
            logger.exception(
                f"Command error [{entry.module.name}.{entry.definition.name}] "
                f"author={ctx.author_name} account={ctx.account_id}"
            )

    async def _run_custom_command(
        self,
        parsed: ParsedCommand,
        platform: str,
        build: dict[str, Any],
    ) -> bool:
        account_id = build["account_id"]
        command = self.store.find_custom_command(account_id, parsed.name_token)
        if command is None or not command.enabled or not command.applies_to(platform):
            return False

        ctx = self.context_builder.build(args=parsed.args, **build)
        values = build_template_values(
            sender=ctx.author_name, runtime=ctx.runtime, quota=self.store.quota.info()
        )
        try:
            await ctx.reply(render_template(command.response, values))
        except Exception:
            logger.exception(
                f"Custom command error [{command.name}] author={ctx.author_name} account={account_id}"
            )
        return True

    async def _run_count_command(
        self,
        parsed: ParsedCommand,
        platform: str,
        build: dict[str, Any],
    ) -> bool:
        if platform != "youtube":
            return False
        account_id = build["account_id"]
        command = self.store.find_count_command(account_id, parsed.name_token)
        if command is None or not command.enabled:
            return False

        ctx = self.context_builder.build(args=parsed.args, **build)
        if not is_admin(ctx):
            logger.debug(f"Count command {command.name} ignored for non-admin {ctx.author_name}")
            return False

        try:
            count = self.store.increment_count(account_id, command.id)
            values = build_template_values(
                sender=ctx.author_name,
                runtime=ctx.runtime,
                extra={"count": count},
                quota=self.store.quota.info(),
            )
            await ctx.reply(render_template(command.response, values))
        except Exception:
            logger.exception(
                f"Count command error [{command.name}] author={ctx.author_name} account={account_id}"
            )
        return True
