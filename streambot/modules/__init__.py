"""Built-in command modules."""

from streambot.modules.core import CORE_MODULE

BUILTIN_MODULES = [CORE_MODULE]

__all__ = ["BUILTIN_MODULES", "CORE_MODULE"]
