"""
Tests for the built-in core module.
"""

import pytest


class TestCoreModule:
    """Tests for help, ping, whoami and module."""

    @pytest.mark.asyncio
    async def test_ping(self, dispatcher, make_message, transport, account_id):
        await dispatcher.dispatch(make_message("!ping", author="Sam"), account_id=account_id, transport=transport)

        assert transport.sent == ["pong, Sam"]

    @pytest.mark.asyncio
    async def test_help_lists_modules(self, dispatcher, make_message, transport, account_id):
        await dispatcher.dispatch(make_message("!help"), account_id=account_id, transport=transport)

        assert transport.sent == ["Modules: core, league, racing. Try !help <module> for commands."]

    @pytest.mark.asyncio
    async def test_help_for_module_hides_hidden_commands(self, dispatcher, make_message, transport, account_id):
        await dispatcher.dispatch(make_message("!core.help core"), account_id=account_id, transport=transport)

        assert transport.sent == ["core: !help, !ping, !module"]

    @pytest.mark.asyncio
    async def test_whoami_is_admin_only(self, dispatcher, make_message, transport, account_id):
        await dispatcher.dispatch(make_message("!whoami"), account_id=account_id, transport=transport)
        await dispatcher.dispatch(make_message("!whoami", author="Mod", is_admin=True), account_id=account_id, transport=transport)

        assert transport.sent == ["Mod (admin) on youtube"]

    @pytest.mark.asyncio
    async def test_module_toggle(self, dispatcher, store, make_message, transport, calls, account_id):
        await dispatcher.dispatch(
            make_message("!module league off", is_admin=True), account_id=account_id, transport=transport
        )
        await dispatcher.dispatch(make_message("!joke"), account_id=account_id, transport=transport)

        assert "league" in store.load_settings(account_id).disabled_modules
        assert calls == []

        await dispatcher.dispatch(
            make_message("!module league on", is_admin=True), account_id=account_id, transport=transport
        )
        await dispatcher.dispatch(make_message("!joke"), account_id=account_id, transport=transport)

        assert calls == [("league.joke", [])]

    @pytest.mark.asyncio
    async def test_module_toggle_per_platform(self, dispatcher, store, make_message, transport, account_id):
        await dispatcher.dispatch(
            make_message("!module racing off discord", is_owner=True), account_id=account_id, transport=transport
        )

        settings = store.load_settings(account_id)
        assert settings.disabled_modules_by_platform["discord"] == ["racing"]
        assert settings.disabled_modules == []

    @pytest.mark.asyncio
    async def test_module_toggle_requires_admin(self, dispatcher, store, make_message, transport, account_id):
        await dispatcher.dispatch(make_message("!module league off"), account_id=account_id, transport=transport)

        assert store.load_settings(account_id).disabled_modules == []
        assert transport.sent == ["Only moderators can toggle modules."]

    @pytest.mark.asyncio
    async def test_core_cannot_be_disabled(self, dispatcher, store, make_message, transport, account_id):
        await dispatcher.dispatch(
            make_message("!module core off", is_admin=True), account_id=account_id, transport=transport
        )

        assert transport.sent == ["The core module can't be disabled."]
        assert store.load_settings(account_id).disabled_modules == []
