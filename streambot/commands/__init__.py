"""Command dispatch: parsing, module registry, middleware and routing."""

from streambot.commands.context import ContextBuilder, DispatchContext, InboundMessage
from streambot.commands.middleware import (
    Middleware,
    PermissionGate,
    TerminalStep,
    admin_only,
    log_command,
    owner_only,
    run_chain,
)
from streambot.commands.parser import ParsedCommand, parse_command
from streambot.commands.registry import (
    CommandDefinition,
    ModuleManifest,
    Registry,
    build_registry,
    load_registry,
)
from streambot.commands.router import Dispatcher, settings_module_gate

__all__ = [
    "CommandDefinition",
    "ContextBuilder",
    "DispatchContext",
    "Dispatcher",
    "InboundMessage",
    "Middleware",
    "ModuleManifest",
    "ParsedCommand",
    "PermissionGate",
    "Registry",
    "TerminalStep",
    "admin_only",
    "build_registry",
    "load_registry",
    "log_command",
    "owner_only",
    "parse_command",
    "run_chain",
    "settings_module_gate",
]
