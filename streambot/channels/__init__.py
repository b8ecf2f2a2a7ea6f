"""Chat platform transports."""

from streambot.channels.base import CallbackTransport, Transport

__all__ = ["CallbackTransport", "Transport"]
