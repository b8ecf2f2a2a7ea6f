"""
Command parsing for streambot.

Supports:
- Dotted form: ``!mod.cmd arg ...``
- Space form / flat form: ``!token arg ...`` (the router decides which)
"""

from dataclasses import dataclass, field


@dataclass
class ParsedCommand:
    """A prefixed chat message split into tokens."""
    module_token: str
    command_token: str | None = None
    args: list[str] = field(default_factory=list)
    raw: str = ""

    @property
    def dotted(self) -> bool:
        return self.command_token is not None

    @property
    def name_token(self) -> str:
        """First word as typed (lowercased), used for stored commands."""
        if self.command_token is None:
            return self.module_token
        return f"{self.module_token}.{self.command_token}"


def strip_command_prefix(text: str, prefix: str) -> str | None:
    """Return the text after ``prefix``, or None if it isn't a command."""
    trimmed = (text or "").strip()
    if not prefix or not trimmed.startswith(prefix):
        return None
    return trimmed[len(prefix):]


def first_token(text: str, prefix: str) -> str:
    """
    First whitespace-delimited word with the prefix stripped.

    Used for logging only; it can differ from what the router resolves.
    """
    body = strip_command_prefix(text, prefix)
    if body is None:
        body = (text or "").strip()
    parts = body.split()
    return parts[0].lower() if parts else ""


def parse_command(text: str, prefix: str) -> ParsedCommand | None:
    """
    Parse a prefixed message.

    Examples:
        !racing.upgrade tires -> ParsedCommand("racing", "upgrade", ["tires"])
        !racing upgrade tires -> ParsedCommand("racing", None, ["upgrade", "tires"])
        !joke                 -> ParsedCommand("joke", None, [])

    Args:
        text: Raw message text.
        prefix: Command prefix for the account (e.g. "!").

    Returns:
        ParsedCommand, or None if the text is not a command.
    """
    body = strip_command_prefix(text, prefix)
    if body is None:
        return None

    parts = body.split()
    if not parts:
        return None

    head, args = parts[0].lower(), parts[1:]
    if "." in head:
        module_token, _, command_token = head.partition(".")
        if module_token and command_token:
            return ParsedCommand(module_token, command_token, args, raw=text)

    return ParsedCommand(head, None, args, raw=text)
