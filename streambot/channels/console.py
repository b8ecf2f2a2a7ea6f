"""Test console transport: replies are printed instead of sent."""

from rich.console import Console

from streambot import __logo__
from streambot.channels.base import Transport


class ConsoleTransport(Transport):
    """Prints replies to a rich console."""

    type = "console"

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    async def send(self, text: str) -> None:
        self.console.print(f"[cyan]{__logo__} bot:[/cyan] {text}")
