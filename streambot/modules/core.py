"""
Built-in ``core`` module.

Commands:
- help [module]  - list modules, or the commands of one module
- ping           - liveness check
- whoami         - show how the bot sees you (admins only)
- module <name> on|off [youtube|discord] - toggle a module for this account
"""

from streambot.commands.context import DispatchContext
from streambot.commands.middleware import admin_only, is_admin, is_owner, log_command
from streambot.commands.registry import CommandDefinition, ModuleManifest
from streambot.state.models import PLATFORMS, AccountSettings


async def help_command(ctx: DispatchContext) -> None:
    registry = ctx.registry
    if registry is None:
        await ctx.reply("No modules loaded.")
        return

    if ctx.args:
        module = registry.modules.get(ctx.args[0].lower())
        if module is None:
            await ctx.reply(f"Unknown module: {ctx.args[0]}")
            return
        names = [
            f"{ctx.prefix}{name}" for name, definition in module.commands.items()
            if not definition.hidden
        ]
        await ctx.reply(f"{module.name}: {', '.join(names) or 'no commands'}")
        return

    names = [
        name for name in registry.list_modules()
        if not (ctx.settings and ctx.settings.is_module_disabled(name, ctx.platform))
    ]
    await ctx.reply(
        f"Modules: {', '.join(names)}. Try {ctx.prefix}help <module> for commands."
    )


async def ping_command(ctx: DispatchContext) -> None:
    await ctx.reply(f"pong, {ctx.author_name}")


async def whoami_command(ctx: DispatchContext) -> None:
    role = "owner" if is_owner(ctx) else "admin" if is_admin(ctx) else "viewer"
    await ctx.reply(f"{ctx.author_name} ({role}) on {ctx.platform}")


async def module_command(ctx: DispatchContext) -> None:
    usage = f"Usage: {ctx.prefix}module <name> on|off [youtube|discord]"
    if len(ctx.args) < 2 or ctx.args[1].lower() not in ("on", "off"):
        await ctx.reply(usage)
        return
    if ctx.store is None or not ctx.account_id:
        await ctx.reply("Module toggles need an account.")
        return

    name = ctx.args[0].lower()
    enable = ctx.args[1].lower() == "on"
    platform = ctx.args[2].lower() if len(ctx.args) > 2 else None
    if platform is not None and platform not in PLATFORMS:
        await ctx.reply(usage)
        return
    if name == CORE_MODULE.name:
        await ctx.reply("The core module can't be disabled.")
        return
    if ctx.registry is not None and name not in ctx.registry.modules:
        await ctx.reply(f"Unknown module: {name}")
        return

    def apply(settings: AccountSettings) -> None:
        target = (
            settings.disabled_modules_by_platform.setdefault(platform, [])
            if platform else settings.disabled_modules
        )
        if enable and name in target:
            target.remove(name)
        elif not enable and name not in target:
            target.append(name)

    ctx.store.update_settings(ctx.account_id, apply)
    scope = f" on {platform}" if platform else ""
    await ctx.reply(f"Module {name} {'enabled' if enable else 'disabled'}{scope}.")


CORE_MODULE = ModuleManifest(
    name="core",
    description="Built-in bot commands",
    middleware=[log_command],
    commands={
        "help": CommandDefinition(
            name="help",
            handler=help_command,
            description="List modules or a module's commands",
            usage="help [module]",
            aliases=["commands"],
        ),
        "ping": CommandDefinition(
            name="ping",
            handler=ping_command,
            description="Check that the bot is alive",
        ),
        "whoami": CommandDefinition(
            name="whoami",
            handler=whoami_command,
            description="Show your role as the bot sees it",
            middleware=[admin_only()],
            hidden=True,
        ),
        "module": CommandDefinition(
            name="module",
            handler=module_command,
            description="Enable or disable a module for this account",
            usage="module <name> on|off [youtube|discord]",
            middleware=[admin_only("Only moderators can toggle modules.")],
        ),
    },
)

MODULE = CORE_MODULE
