"""
Tests for the JSON account store.

Tests:
- Accounts registry
- Runtime read-modify-persist
- Settings normalization
- Announcement, custom command and count command validation
"""

import asyncio
import json

import pytest

from streambot.errors import ValidationError
from streambot.state.models import Account
from streambot.state.store import AccountStore


class TestAccounts:
    """Tests for the account registry."""

    def test_find_account_by_guild(self, store, account_id):
        assert store.find_account_by_guild(42).id == account_id
        assert store.find_account_by_guild("7") is None
        assert store.find_account_by_guild(None) is None

    def test_upsert_replaces_existing(self, store, data_dir, account_id):
        store.upsert_account(Account(id=account_id, name="Renamed"))

        accounts = store.list_accounts()
        assert [a.name for a in accounts] == ["Renamed"]
        assert json.loads((data_dir / "accounts.json").read_text())["version"] == 1


class TestRuntime:
    """Tests for runtime persistence."""

    @pytest.mark.asyncio
    async def test_update_runtime_persists(self, store, data_dir, account_id):
        def apply(runtime):
            runtime.live_chat_id = "chat-1"
            runtime.next_page_token = "c1"

        await store.update_runtime(account_id, apply)

        fresh = AccountStore(data_dir)
        assert fresh.load_runtime(account_id).next_page_token == "c1"

    @pytest.mark.asyncio
    async def test_update_runtime_accepts_async_mutators(self, store, account_id):
        async def apply(runtime):
            await asyncio.sleep(0)
            runtime.primed = True

        saved = await store.update_runtime(account_id, apply)

        assert saved.primed is True
        assert store.load_runtime(account_id).primed is True

    @pytest.mark.asyncio
    async def test_concurrent_updates_do_not_lose_writes(self, store, account_id):
        async def set_cursor(runtime):
            await asyncio.sleep(0)
            runtime.next_page_token = "c9"

        async def pause(runtime):
            await asyncio.sleep(0)
            runtime.announcements_paused = True

        await asyncio.gather(
            store.update_runtime(account_id, set_cursor),
            store.update_runtime(account_id, pause),
        )

        runtime = store.load_runtime(account_id)
        assert runtime.next_page_token == "c9"
        assert runtime.announcements_paused is True

    def test_reset_runtime(self, store, account_id):
        runtime = store.load_runtime(account_id)
        runtime.live_chat_id = "chat-1"
        store.save_runtime(account_id, runtime)

        assert store.reset_runtime(account_id).live_chat_id is None
        assert store.load_runtime(account_id).connected is False

    def test_missing_account_id_is_rejected(self, store):
        with pytest.raises(ValidationError):
            store.load_runtime("")


class TestSettings:
    """Tests for account settings."""

    def test_defaults(self, store, account_id):
        settings = store.load_settings(account_id)

        assert settings.command_prefix == "!"
        assert settings.youtube.enabled is True
        assert settings.discord.allows_channel("123") is True

    def test_names_are_normalized(self, store, data_dir, account_id):
        path = data_dir / "accounts" / account_id
        path.mkdir(parents=True)
        (path / "settings.json").write_text(json.dumps({
            "command_prefix": "  ?  ",
            "disabled_modules": [" Racing ", ""],
            "disabled_modules_by_platform": {"discord": ["League"]},
            "discord": {"allowed_channel_ids": ["1", " ", 2]},
        }))

        settings = store.load_settings(account_id)

        assert settings.command_prefix == "?"
        assert settings.disabled_modules == ["racing"]
        assert settings.is_module_disabled("league", "discord")
        assert not settings.is_module_disabled("league", "youtube")
        assert settings.discord.allowed_channel_ids == ["1", "2"]
        assert settings.discord.allows_channel("2")
        assert not settings.discord.allows_channel("3")


class TestAnnouncements:
    """Tests for announcement validation."""

    def test_upsert_and_rename(self, store, account_id):
        created = store.upsert_announcement(account_id, "promo", "Follow!", 5)
        renamed = store.upsert_announcement(account_id, "socials", "Follow us!", 10, original_name="promo")

        items = store.load_announcements(account_id)
        assert [a.name for a in items] == ["socials"]
        assert renamed.id == created.id
        assert items[0].interval_seconds == 600

    @pytest.mark.parametrize("minutes", [2, 61])
    def test_interval_bounds(self, store, account_id, minutes):
        with pytest.raises(ValidationError):
            store.upsert_announcement(account_id, "promo", "Follow!", minutes)

    def test_duplicate_name_rejected(self, store, account_id):
        store.upsert_announcement(account_id, "promo", "a", 5)
        store.upsert_announcement(account_id, "rules", "b", 5)

        with pytest.raises(ValidationError):
            store.upsert_announcement(account_id, "PROMO", "c", 5, original_name="rules")

    def test_blank_message_rejected(self, store, account_id):
        with pytest.raises(ValidationError):
            store.upsert_announcement(account_id, "promo", "   ", 5)

    def test_per_account_limit(self, store, account_id):
        for i in range(store.announcements.max_per_account):
            store.upsert_announcement(account_id, f"a{i}", "hi", 5)

        with pytest.raises(ValidationError):
            store.upsert_announcement(account_id, "one-more", "hi", 5)


class TestCommands:
    """Tests for custom and count commands."""

    def test_custom_command_names_drop_prefix(self, store, account_id):
        store.upsert_custom_command(account_id, "!Hype", "hi", platform="YouTube")

        command = store.find_custom_command(account_id, "hype")
        assert command.name == "Hype"
        assert command.platform == "youtube"

    def test_unknown_platform_means_both(self, store, account_id):
        command = store.upsert_custom_command(account_id, "hype", "hi", platform="twitch")

        assert command.platform == "both"
        assert command.applies_to("discord")

    def test_delete_custom_command(self, store, account_id):
        store.upsert_custom_command(account_id, "hype", "hi")
        store.delete_custom_command(account_id, "!hype")

        assert store.find_custom_command(account_id, "hype") is None
        with pytest.raises(ValidationError):
            store.delete_custom_command(account_id, "hype")

    def test_count_commands_keep_counter_on_update(self, store, account_id):
        command = store.upsert_count_command(account_id, "deaths", "Deaths: {count}")
        store.increment_count(account_id, command.id)
        store.upsert_count_command(account_id, "deaths", "Died {count} times")

        saved = store.find_count_command(account_id, "deaths")
        assert saved.count == 1
        assert saved.response == "Died {count} times"

    def test_increment_unknown_count_command(self, store, account_id):
        with pytest.raises(ValidationError):
            store.increment_count(account_id, 99)
