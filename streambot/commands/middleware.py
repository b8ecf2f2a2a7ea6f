"""
Middleware chain for command execution.

Every stage has the same shape: ``handle(ctx, proceed)``. A stage continues
the chain by awaiting ``proceed()``; returning without calling it stops the
chain silently. The command handler itself runs as a ``TerminalStep`` at the
end of the stack.
"""

from typing import Any, Awaitable, Callable, TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from streambot.commands.context import DispatchContext


Proceed = Callable[[], Awaitable[None]]


class Middleware:
    """Base class for a chain stage."""

    async def handle(self, ctx: "DispatchContext", proceed: Proceed) -> None:
        await proceed()


class FunctionMiddleware(Middleware):
    """Adapts a plain ``async def fn(ctx, proceed)`` into a stage."""

    def __init__(self, fn: Callable[["DispatchContext", Proceed], Awaitable[None]]):
        self.fn = fn
        self.name = getattr(fn, "__name__", "middleware")

    async def handle(self, ctx: "DispatchContext", proceed: Proceed) -> None:
        await self.fn(ctx, proceed)


class TerminalStep(Middleware):
    """The command handler at the end of the chain."""

    def __init__(self, handler: Callable[["DispatchContext"], Awaitable[None]]):
        self.handler = handler

    async def handle(self, ctx: "DispatchContext", proceed: Proceed) -> None:
        await self.handler(ctx)


def as_middleware(stage: Any) -> Middleware:
    if isinstance(stage, Middleware):
        return stage
    if callable(stage):
        return FunctionMiddleware(stage)
    raise TypeError(f"Not a middleware: {stage!r}")


async def run_chain(ctx: "DispatchContext", stack: list[Middleware]) -> None:
    """Run ``stack`` in order, each stage handing off through ``proceed``."""
    index = -1

    async def proceed() -> None:
        nonlocal index
        index += 1
        if index >= len(stack):
            return
        await stack[index].handle(ctx, proceed)

    await proceed()


def is_owner(ctx: "DispatchContext") -> bool:
    """Channel/stream owner (YouTube) or guild owner (Discord)."""
    return bool(ctx.message.is_owner)


def is_admin(ctx: "DispatchContext") -> bool:
    """Owner, YouTube moderator, or Discord administrator."""
    return bool(ctx.message.is_owner or ctx.message.is_admin)


class PermissionGate(Middleware):
    """
    Blocks the chain unless ``check(ctx)`` passes.

    Args:
        check: Predicate on the context.
        label: Name used in the log line.
        message: Optional reply when blocked; None stays silent.
    """

    def __init__(
        self,
        check: Callable[["DispatchContext"], bool],
        label: str,
        message: str | None = None,
    ):
        self.check = check
        self.label = label
        self.message = message

    async def handle(self, ctx: "DispatchContext", proceed: Proceed) -> None:
        if self.check(ctx):
            await proceed()
            return

        if self.message:
            await ctx.reply(self.message)
        logger.warning(f"[{self.label}] blocked {ctx.author_name}")


def admin_only(message: str | None = None) -> PermissionGate:
    return PermissionGate(is_admin, "admin_only", message)


def owner_only(message: str | None = None) -> PermissionGate:
    return PermissionGate(is_owner, "owner_only", message)


async def log_command(ctx: "DispatchContext", proceed: Proceed) -> None:
    """Record every command invocation before running it."""
    logger.bind(channel="bot").info(
        f"command.received {ctx.command_name} by {ctx.author_name} args={ctx.args}"
    )
    await proceed()
