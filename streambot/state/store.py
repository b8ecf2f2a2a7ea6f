"""
Per-account state storage for streambot.

Storage structure (under the configured data dir):
- accounts.json - Account registry
- accounts/<id>/runtime.json - Live connection state
- accounts/<id>/settings.json - Prefix, module toggles, platform switches
- accounts/<id>/announcements.json - Scheduled messages
- accounts/<id>/commands.json - Custom commands
- accounts/<id>/count_commands.json - Count commands
- quota_state.json - YouTube API units used today
"""

import asyncio
import json
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Awaitable

from loguru import logger

from streambot.config.schema import AnnouncementsConfig, StorageConfig
from streambot.errors import ValidationError
from streambot.state.quota import QuotaTracker
from streambot.state.models import (
    Account,
    AccountRuntime,
    AccountSettings,
    Announcement,
    CountCommand,
    CustomCommand,
    strip_prefix,
)


RUNTIME_FILE = "runtime.json"
SETTINGS_FILE = "settings.json"
ANNOUNCEMENTS_FILE = "announcements.json"
COMMANDS_FILE = "commands.json"
COUNT_COMMANDS_FILE = "count_commands.json"
QUOTA_FILE = "quota_state.json"


class AccountStore:
    """
    JSON-backed store for every per-account record.

    Reads are cached per account and file. Every load returns a fresh object,
    so callers can mutate what they get and hand it back to a save method.
    Runtime read-modify-persist cycles that span an await go through
    ``update_runtime``, which holds a per-account lock.
    """

    def __init__(
        self,
        data_dir: Path,
        storage: StorageConfig | None = None,
        announcements: AnnouncementsConfig | None = None,
        default_prefix: str = "!",
        quota: QuotaTracker | None = None,
    ):
        self.data_dir = data_dir
        self.quota = quota or QuotaTracker(data_dir / QUOTA_FILE)
        self.storage = storage or StorageConfig()
        self.announcements = announcements or AnnouncementsConfig()
        self.default_prefix = default_prefix

        self.accounts_file = data_dir / "accounts.json"
        self._cache: dict[tuple[str, str], Any] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    # ========== Files ==========

    def account_dir(self, account_id: str) -> Path:
        if not account_id:
            raise ValidationError("Account ID is required.")
        return self.data_dir / "accounts" / account_id

    def _read(self, account_id: str, filename: str, default: Any) -> Any:
        key = (account_id, filename)
        if key in self._cache:
            return self._cache[key]

        path = self.account_dir(account_id) / filename
        data = default
        if path.exists():
            try:
                data = json.loads(path.read_text())
            except json.JSONDecodeError as e:
                logger.warning(f"Ignoring unreadable {path}: {e}")
        self._cache[key] = data
        return data

    def _write(self, account_id: str, filename: str, data: Any) -> None:
        directory = self.account_dir(account_id)
        directory.mkdir(parents=True, exist_ok=True)
        (directory / filename).write_text(json.dumps(data, indent=2))
        self._cache[(account_id, filename)] = data

    def reset_cache(self, account_id: str | None = None) -> None:
        """Forget cached reads for one account, or for all."""
        if account_id is None:
            self._cache.clear()
            return
        for key in [k for k in self._cache if k[0] == account_id]:
            del self._cache[key]

    # ========== Accounts ==========

    def _read_accounts(self) -> list[dict[str, Any]]:
        if not self.accounts_file.exists():
            return []
        try:
            data = json.loads(self.accounts_file.read_text())
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring unreadable {self.accounts_file}: {e}")
            return []
        return list(data.get("accounts", [])) if isinstance(data, dict) else []

    def list_accounts(self) -> list[Account]:
        return [Account.from_dict(a) for a in self._read_accounts()]

    def get_account(self, account_id: str) -> Account | None:
        key = str(account_id or "").strip()
        return next((a for a in self.list_accounts() if a.id == key), None)

    def find_account_by_guild(self, guild_id: str | int | None) -> Account | None:
        """Find the account bound to a Discord guild."""
        if not guild_id:
            return None
        key = str(guild_id)
        return next(
            (a for a in self.list_accounts() if a.discord_guild_id and a.discord_guild_id == key),
            None,
        )

    def upsert_account(self, account: Account) -> Account:
        if not account.id:
            account.id = uuid.uuid4().hex[:8]
        accounts = [a for a in self._read_accounts() if a.get("id") != account.id]
        accounts.append(account.to_dict())
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.accounts_file.write_text(json.dumps({"version": 1, "accounts": accounts}, indent=2))
        return account

    # ========== Runtime ==========

    def runtime_lock(self, account_id: str) -> asyncio.Lock:
        lock = self._locks.get(account_id)
        if lock is None:
            lock = self._locks[account_id] = asyncio.Lock()
        return lock

    def load_runtime(self, account_id: str) -> AccountRuntime:
        return AccountRuntime.from_dict(self._read(account_id, RUNTIME_FILE, {}))

    def save_runtime(self, account_id: str, runtime: AccountRuntime) -> AccountRuntime:
        self._write(account_id, RUNTIME_FILE, runtime.to_dict())
        return runtime

    def reset_runtime(self, account_id: str) -> AccountRuntime:
        return self.save_runtime(account_id, AccountRuntime())

    async def update_runtime(
        self,
        account_id: str,
        mutate: Callable[[AccountRuntime], Awaitable[None] | None],
    ) -> AccountRuntime:
        """
        Read-modify-persist the runtime record as one unit.

        Args:
            account_id: Account to update.
            mutate: Called with the loaded record; may be sync or async.

        Returns:
            The saved record.
        """
        async with self.runtime_lock(account_id):
            runtime = self.load_runtime(account_id)
            result = mutate(runtime)
            if asyncio.iscoroutine(result):
                await result
            return self.save_runtime(account_id, runtime)

    # ========== Settings ==========

    def load_settings(self, account_id: str) -> AccountSettings:
        return AccountSettings.from_dict(
            self._read(account_id, SETTINGS_FILE, {}),
            default_prefix=self.default_prefix,
        )

    def save_settings(self, account_id: str, settings: AccountSettings) -> AccountSettings:
        self._write(account_id, SETTINGS_FILE, settings.to_dict())
        return settings

    def update_settings(
        self,
        account_id: str,
        mutate: Callable[[AccountSettings], None],
    ) -> AccountSettings:
        settings = self.load_settings(account_id)
        mutate(settings)
        return self.save_settings(account_id, settings)

    # ========== Announcements ==========

    def load_announcements(self, account_id: str) -> list[Announcement]:
        raw = self._read(account_id, ANNOUNCEMENTS_FILE, [])
        return [Announcement.from_dict(item) for item in raw if isinstance(item, dict)]

    def save_announcements(self, account_id: str, items: list[Announcement]) -> list[Announcement]:
        self._write(account_id, ANNOUNCEMENTS_FILE, [a.to_dict() for a in items])
        return items

    def _validate_text(self, value: Any, label: str) -> str:
        text = str(value or "").strip()
        if not text:
            raise ValidationError(f"{label} is required.")
        if len(text) > self.storage.max_chars:
            raise ValidationError(f"{label} exceeds {self.storage.max_chars} characters.")
        return text

    def upsert_announcement(
        self,
        account_id: str,
        name: str,
        message: str,
        interval_minutes: int,
        enabled: bool = True,
        original_name: str | None = None,
    ) -> Announcement:
        """
        Create or replace an announcement, matched by name.

        Raises:
            ValidationError: Bad name/message/interval, a name collision, or
                the per-account limit is reached.
        """
        name = self._validate_text(name, "Name")
        message = self._validate_text(message, "Message")
        low = self.announcements.min_interval_minutes
        high = self.announcements.max_interval_minutes
        if not isinstance(interval_minutes, int) or not low <= interval_minutes <= high:
            raise ValidationError(f"Interval must be between {low} and {high} minutes.")

        items = self.load_announcements(account_id)
        target = (original_name or name).strip().lower()
        existing = next((a for a in items if a.name.lower() == target), None)
        if any(a.name.lower() == name.lower() and a is not existing for a in items):
            raise ValidationError(f'Auto announcement "{name}" already exists.')

        if existing is None:
            if len(items) >= self.announcements.max_per_account:
                raise ValidationError(
                    f"You can only create {self.announcements.max_per_account} auto announcements."
                )
            existing = Announcement(
                id=uuid.uuid4().hex[:8],
                name=name,
                message=message,
                interval_seconds=interval_minutes * 60,
            )
            items.append(existing)

        existing.name = name
        existing.message = message
        existing.interval_seconds = interval_minutes * 60
        existing.enabled = enabled
        existing.updated_at = datetime.now()
        self.save_announcements(account_id, items)
        return existing

    def toggle_announcement(self, account_id: str, name: str, enabled: bool) -> Announcement:
        items = self.load_announcements(account_id)
        item = next((a for a in items if a.name.lower() == name.strip().lower()), None)
        if item is None:
            raise ValidationError("Auto announcement not found.")
        item.enabled = enabled
        item.updated_at = datetime.now()
        self.save_announcements(account_id, items)
        return item

    def delete_announcement(self, account_id: str, name: str) -> None:
        items = self.load_announcements(account_id)
        remaining = [a for a in items if a.name.lower() != name.strip().lower()]
        if len(remaining) == len(items):
            raise ValidationError("Auto announcement not found.")
        self.save_announcements(account_id, remaining)

    def update_announcement_last_sent(
        self,
        account_id: str,
        message_id: str,
        timestamp: datetime,
    ) -> None:
        """Persist when an announcement was last delivered."""
        items = self.load_announcements(account_id)
        for item in items:
            if item.id == message_id:
                item.last_sent_at = timestamp
                self.save_announcements(account_id, items)
                return
        logger.debug(f"Announcement {message_id} vanished before last_sent_at update ({account_id})")

    # ========== Custom commands ==========

    def load_custom_commands(self, account_id: str) -> list[CustomCommand]:
        raw = self._read(account_id, COMMANDS_FILE, [])
        return [CustomCommand.from_dict(item) for item in raw if isinstance(item, dict)]

    def find_custom_command(self, account_id: str, name: str) -> CustomCommand | None:
        key = strip_prefix(name).lower()
        return next(
            (c for c in self.load_custom_commands(account_id) if c.name.lower() == key),
            None,
        )

    def upsert_custom_command(
        self,
        account_id: str,
        name: str,
        response: str,
        platform: str = "both",
        enabled: bool = True,
    ) -> CustomCommand:
        command = CustomCommand.from_dict({
            "name": self._validate_text(strip_prefix(name), "Command name"),
            "response": self._validate_text(response, "Command response"),
            "platform": platform,
            "enabled": enabled,
        })
        commands = [
            c for c in self.load_custom_commands(account_id)
            if c.name.lower() != command.name.lower()
        ]
        commands.append(command)
        self._write(account_id, COMMANDS_FILE, [c.to_dict() for c in commands])
        return command

    def delete_custom_command(self, account_id: str, name: str) -> None:
        commands = self.load_custom_commands(account_id)
        key = strip_prefix(name).lower()
        remaining = [c for c in commands if c.name.lower() != key]
        if len(remaining) == len(commands):
            raise ValidationError("Command not found.")
        self._write(account_id, COMMANDS_FILE, [c.to_dict() for c in remaining])

    # ========== Count commands ==========

    def load_count_commands(self, account_id: str) -> list[CountCommand]:
        raw = self._read(account_id, COUNT_COMMANDS_FILE, [])
        return [CountCommand.from_dict(item) for item in raw if isinstance(item, dict)]

    def find_count_command(self, account_id: str, name: str) -> CountCommand | None:
        key = strip_prefix(name).lower()
        return next(
            (c for c in self.load_count_commands(account_id) if c.name.lower() == key),
            None,
        )

    def upsert_count_command(
        self,
        account_id: str,
        name: str,
        response: str,
        enabled: bool = True,
    ) -> CountCommand:
        """Create or update a count command by name; the counter is preserved."""
        name = self._validate_text(strip_prefix(name), "Command name")
        response = self._validate_text(response, "Command response")
        commands = self.load_count_commands(account_id)
        existing = next((c for c in commands if c.name.lower() == name.lower()), None)

        if existing is None:
            if len(commands) >= self.storage.count_commands_max:
                raise ValidationError(
                    f"You can only create {self.storage.count_commands_max} count commands."
                )
            existing = CountCommand(
                id=max((c.id for c in commands), default=0) + 1,
                name=name,
                response=response,
            )
            commands.append(existing)

        existing.response = response
        existing.enabled = enabled
        self._write(account_id, COUNT_COMMANDS_FILE, [c.to_dict() for c in commands])
        return existing

    def increment_count(self, account_id: str, command_id: int) -> int:
        """Bump and persist a counter; returns the new value."""
        commands = self.load_count_commands(account_id)
        for command in commands:
            if command.id == command_id:
                command.count += 1
                self._write(account_id, COUNT_COMMANDS_FILE, [c.to_dict() for c in commands])
                return command.count
        raise ValidationError("Command not found.")


