"""
Tests for the test console transport.
"""

import io

import pytest
from rich.console import Console

from streambot.channels.console import ConsoleTransport


class TestConsoleTransport:
    """Tests for ConsoleTransport."""

    @pytest.mark.asyncio
    async def test_prints_without_keeping_history(self):
        output = io.StringIO()
        transport = ConsoleTransport(Console(file=output, force_terminal=False))

        await transport.send("pong, Sam")
        await transport.send("pong, Alex")

        assert "pong, Sam" in output.getvalue()
        assert "pong, Alex" in output.getvalue()
        assert not hasattr(transport, "sent")
        assert transport.type == "console"
