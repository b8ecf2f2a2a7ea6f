"""CLI commands for streambot."""

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from streambot import __version__, __logo__

app = typer.Typer(
    name="streambot",
    help=f"{__logo__} streambot - live chat command bot",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} streambot v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-V", callback=version_callback, is_eager=True
    ),
):
    """streambot - live chat command bot."""
    pass


def _runtime(verbose: bool = False):
    from streambot.config.loader import load_config
    from streambot.runtime import BotRuntime
    from streambot.utils.log import setup_logging

    config = load_config()
    setup_logging(config.logging, verbose=verbose)
    return BotRuntime(config)


# ============================================================================
# Setup
# ============================================================================


@app.command()
def onboard():
    """Create the default configuration file and data directory."""
    from streambot.config.loader import get_config_path, save_config
    from streambot.config.schema import Config

    config_path = get_config_path()

    if config_path.exists():
        console.print(f"[yellow]Config already exists at {config_path}[/yellow]")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit()

    config = Config()
    save_config(config)
    config.data_path.mkdir(parents=True, exist_ok=True)
    console.print(f"[green]✓[/green] Created config at {config_path}")
    console.print(f"[green]✓[/green] Data directory: {config.data_path}")
    console.print("\nNext: set youtube.access_token in the config, then add an account:")
    console.print("  [cyan]streambot accounts add myshow --channel-id UC...[/cyan]")


# ============================================================================
# Bot
# ============================================================================


@app.command()
def run(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Connect every account and start Discord."""
    runtime = _runtime(verbose)
    console.print(f"{__logo__} Starting streambot ({runtime.config.mode})...")

    accounts = runtime.store.list_accounts()
    if not accounts:
        console.print("[yellow]Warning: No accounts configured[/yellow]")
    console.print(f"[green]✓[/green] Modules: {', '.join(runtime.registry.list_modules())}")

    try:
        asyncio.run(runtime.run())
    except KeyboardInterrupt:
        console.print("\nShutting down...")


@app.command("console")
def console_command(
    account_id: str = typer.Argument(..., help="Account to dispatch as"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Type commands into the dispatcher; replies print here."""
    from streambot.channels.console import ConsoleTransport

    runtime = _runtime(verbose)
    if runtime.store.get_account(account_id) is None:
        console.print(f"[red]Unknown account: {account_id}[/red]")
        raise typer.Exit(1)

    transport = ConsoleTransport(console)
    prefix = runtime.store.load_settings(account_id).command_prefix
    console.print(f"{__logo__} Test console for {account_id} (prefix {prefix}, Ctrl+C to exit)\n")

    async def run_interactive():
        while True:
            try:
                line = console.input("[bold blue]You:[/bold blue] ")
            except (KeyboardInterrupt, EOFError):
                console.print("\nGoodbye!")
                break
            if not line.strip():
                continue
            if not await runtime.dispatch_console(account_id, line, transport):
                console.print("[dim]no command matched[/dim]")

    asyncio.run(run_interactive())


@app.command("poll-once")
def poll_once(
    account_id: str = typer.Argument(..., help="Account to poll"),
    connect: bool = typer.Option(False, "--connect", help="Resolve and prime the chat first"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Fetch and dispatch a single page of live chat."""
    from streambot.errors import ChatAPIError, ConfigurationError

    runtime = _runtime(verbose)

    async def run_once():
        try:
            if connect:
                await runtime.connect_account(account_id, auto_poll=False)
            return await runtime.poll_once(account_id)
        finally:
            await runtime.stop_all()

    try:
        result = asyncio.run(run_once())
    except (ConfigurationError, ChatAPIError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if result.ended:
        console.print("[yellow]Live chat has ended; account disconnected[/yellow]")
        return
    console.print(
        f"Received {result.received}, dispatched {result.handled}, "
        f"ran {result.commands} commands, "
        f"next poll in {result.next_delay:.1f}s"
    )


@app.command()
def modules():
    """List loaded modules and their commands."""
    runtime = _runtime()

    table = Table(title="Modules")
    table.add_column("Module", style="cyan")
    table.add_column("Command")
    table.add_column("Aliases")
    table.add_column("Description")

    for name in runtime.registry.list_modules():
        manifest = runtime.registry.modules[name]
        for command_name, definition in manifest.commands.items():
            table.add_row(
                name,
                command_name + (" [dim](hidden)[/dim]" if definition.hidden else ""),
                ", ".join(definition.aliases),
                definition.description,
            )

    console.print(table)


@app.command()
def status():
    """Show configuration and per-account connection state."""
    from streambot.config.loader import get_config_path

    config_path = get_config_path()
    runtime = _runtime()
    config = runtime.config

    console.print(f"{__logo__} streambot Status\n")
    console.print(f"Config: {config_path} {'[green]✓[/green]' if config_path.exists() else '[red]✗[/red]'}")
    console.print(f"Data: {config.data_path} {'[green]✓[/green]' if config.data_path.exists() else '[red]✗[/red]'}")
    console.print(f"Mode: {config.mode}")
    console.print(f"YouTube token: {'[green]✓[/green]' if config.youtube.access_token else '[dim]not set[/dim]'}")
    console.print(f"Discord: {'[green]enabled[/green]' if config.discord.enabled else '[dim]disabled[/dim]'}")
    quota = runtime.store.quota.info()
    console.print(
        f"YouTube quota: {quota.used}/{quota.daily_limit} units ({quota.percent_used}%) for {quota.day}"
    )

    accounts = runtime.store.list_accounts()
    if not accounts:
        console.print("\nNo accounts configured.")
        return

    table = Table(title="Accounts")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Prefix")
    table.add_column("YouTube")
    table.add_column("Live chat")
    table.add_column("Announcements")

    for account in accounts:
        settings = runtime.store.load_settings(account.id)
        state = runtime.store.load_runtime(account.id)
        if state.announcements_paused:
            announcements = f"[yellow]paused[/yellow] {state.announcements_paused_reason}"
        else:
            enabled = [a for a in runtime.store.load_announcements(account.id) if a.enabled]
            announcements = str(len(enabled))
        table.add_row(
            account.id,
            account.name,
            settings.command_prefix,
            "[green]on[/green]" if settings.youtube.enabled else "[dim]off[/dim]",
            state.live_chat_id or "[dim]disconnected[/dim]",
            announcements,
        )

    console.print(table)


@app.command()
def quota(
    reset: bool = typer.Option(False, "--reset", help="Zero today's usage"),
):
    """Show today's approximate YouTube API quota usage."""
    runtime = _runtime()
    info = runtime.store.quota.reset() if reset else runtime.store.quota.info()

    table = Table(title=f"YouTube quota ({info.day}, Pacific time)")
    table.add_column("Used", justify="right")
    table.add_column("Remaining", justify="right")
    table.add_column("Limit", justify="right")
    table.add_column("Percent", justify="right")
    table.add_row(str(info.used), str(info.remaining), str(info.daily_limit), f"{info.percent_used}%")
    console.print(table)


# ============================================================================
# Accounts
# ============================================================================

accounts_app = typer.Typer(help="Manage accounts")
app.add_typer(accounts_app, name="accounts")


@accounts_app.command("list")
def accounts_list():
    """List configured accounts."""
    runtime = _runtime()
    accounts = runtime.store.list_accounts()
    if not accounts:
        console.print("No accounts configured.")
        return

    table = Table(title="Accounts")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("YouTube target")
    table.add_column("Discord guild")

    for account in accounts:
        target = (
            account.youtube_livestream_url
            or account.youtube_video_id
            or account.youtube_channel_id
            or "[dim]none[/dim]"
        )
        table.add_row(account.id, account.name, target, account.discord_guild_id or "[dim]none[/dim]")

    console.print(table)


@accounts_app.command("add")
def accounts_add(
    account_id: str = typer.Argument(..., help="Account ID"),
    name: str = typer.Option(None, "--name", "-n", help="Display name"),
    channel_id: str = typer.Option("", "--channel-id", help="YouTube channel ID"),
    title_match: str = typer.Option("", "--title-match", help="Pick the live stream whose title contains this"),
    video_id: str = typer.Option("", "--video-id", help="YouTube video ID"),
    url: str = typer.Option("", "--url", help="YouTube livestream URL"),
    guild_id: str = typer.Option("", "--guild-id", help="Discord guild ID"),
):
    """Add or update an account."""
    from streambot.state.models import Account

    runtime = _runtime()
    account = runtime.store.upsert_account(Account(
        id=account_id,
        name=name or account_id,
        youtube_channel_id=channel_id,
        youtube_livestream_url=url,
        youtube_video_id=video_id,
        youtube_title_match=title_match,
        discord_guild_id=guild_id,
    ))
    console.print(f"[green]✓[/green] Saved account '{account.name}' ({account.id})")
