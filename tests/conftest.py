"""
Pytest configuration and shared fixtures for streambot tests.
"""

import pytest
import sys
from pathlib import Path

# Add the project root to the path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from streambot.channels.base import Transport
from streambot.commands.context import ContextBuilder, InboundMessage
from streambot.commands.registry import CommandDefinition, ModuleManifest, build_registry
from streambot.commands.router import Dispatcher, settings_module_gate
from streambot.modules.core import CORE_MODULE
from streambot.state.models import Account
from streambot.state.store import AccountStore


ACCOUNT_ID = "acme"


class RecordingTransport(Transport):
    """Transport that records what it was asked to send."""

    def __init__(self, type: str = "youtube", fail: bool = False):
        self.type = type
        self.fail = fail
        self.sent: list[str] = []

    async def send(self, text: str) -> None:
        if self.fail:
            raise RuntimeError("send failed")
        self.sent.append(text)


@pytest.fixture
def data_dir(tmp_path):
    """Create a temporary data directory."""
    data = tmp_path / "data"
    data.mkdir()
    return data


@pytest.fixture
def store(data_dir):
    """Account store with one account."""
    store = AccountStore(data_dir)
    store.upsert_account(Account(
        id=ACCOUNT_ID,
        name="Acme",
        youtube_channel_id="UC123",
        discord_guild_id="42",
    ))
    return store


@pytest.fixture
def account_id():
    return ACCOUNT_ID


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def make_transport():
    """Factory for recording transports."""
    return RecordingTransport


@pytest.fixture
def calls():
    """Shared log of handler invocations: (command, args)."""
    return []


@pytest.fixture
def test_modules(calls):
    """A racing module with `upgrade` and a league module with `joke`."""

    def recorder(name):
        async def handler(ctx):
            calls.append((name, list(ctx.args)))
            await ctx.reply(f"{name} ok")
        return handler

    racing = ModuleManifest(
        name="racing",
        description="Racing game",
        commands={
            "upgrade": CommandDefinition(name="upgrade", handler=recorder("racing.upgrade")),
            "race": CommandDefinition(
                name="race", handler=recorder("racing.race"), aliases=["go"]
            ),
        },
    )
    league = ModuleManifest(
        name="league",
        description="League lookups",
        commands={
            "joke": CommandDefinition(name="joke", handler=recorder("league.joke")),
            "rank": CommandDefinition(
                name="rank", handler=recorder("league.rank"), aliases=["racing"]
            ),
        },
    )
    return [racing, league]


@pytest.fixture
def registry(test_modules):
    return build_registry([CORE_MODULE, *test_modules])


@pytest.fixture
def dispatcher(registry, store):
    builder = ContextBuilder(registry=registry, store=store)
    return Dispatcher(
        registry,
        builder,
        is_module_disabled=settings_module_gate(store),
        store=store,
    )


@pytest.fixture
def make_message():
    """Factory for inbound messages."""

    def make(text, author="viewer", platform="youtube", **kwargs):
        return InboundMessage(text=text, author_name=author, platform=platform, **kwargs)

    return make
