"""Transport abstraction shared by replies and announcements."""

from abc import ABC, abstractmethod
from typing import Awaitable, Callable


class Transport(ABC):
    """
    Outbound side of a chat platform.

    A transport is bound to one destination (a live chat, a Discord channel,
    the console) and knows its platform ``type``.
    """

    type: str = "unknown"

    @abstractmethod
    async def send(self, text: str) -> None:
        """Deliver ``text`` to the bound destination."""


class CallbackTransport(Transport):
    """Transport backed by an arbitrary coroutine; handy for replay and tests."""

    def __init__(self, type: str, send: Callable[[str], Awaitable[None]]):
        self.type = type
        self._send = send

    async def send(self, text: str) -> None:
        await self._send(text)
