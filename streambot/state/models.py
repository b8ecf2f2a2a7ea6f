"""
Persisted per-account records.

Each record round-trips through a plain dict so the store can keep one JSON
file per record type per account.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any


PLATFORMS = ("youtube", "discord")


def _parse_time(value: Any) -> datetime | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


def _format_time(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass
class AccountRuntime:
    """
    Live connection state for one account.

    Mutated by the ingestion engine (cursor and prime updates) and by the
    announcement scheduler's pause path. Always written back as a whole
    record.
    """
    live_chat_id: str | None = None
    next_page_token: str | None = None
    primed: bool = False
    youtube_channel_id: str | None = None
    resolved_method: str | None = None
    target_info: dict[str, Any] = field(default_factory=dict)
    announcements_paused: bool = False
    announcements_paused_at: datetime | None = None
    announcements_paused_reason: str = ""

    @property
    def connected(self) -> bool:
        return bool(self.live_chat_id)

    def clear_connection(self) -> None:
        """Drop every field that ties this account to a live chat."""
        self.live_chat_id = None
        self.next_page_token = None
        self.primed = False
        self.youtube_channel_id = None
        self.resolved_method = None
        self.target_info = {}

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["announcements_paused_at"] = _format_time(self.announcements_paused_at)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AccountRuntime":
        return cls(
            live_chat_id=data.get("live_chat_id"),
            next_page_token=data.get("next_page_token"),
            primed=bool(data.get("primed", False)),
            youtube_channel_id=data.get("youtube_channel_id"),
            resolved_method=data.get("resolved_method"),
            target_info=dict(data.get("target_info") or {}),
            announcements_paused=bool(data.get("announcements_paused", False)),
            announcements_paused_at=_parse_time(data.get("announcements_paused_at")),
            announcements_paused_reason=data.get("announcements_paused_reason", ""),
        )


@dataclass
class PlatformToggle:
    """Per-platform routing switch."""
    enabled: bool = True
    allowed_channel_ids: list[str] = field(default_factory=list)

    def allows_channel(self, channel_id: str | None) -> bool:
        """An empty allow list admits every channel."""
        if not channel_id or not self.allowed_channel_ids:
            return True
        return str(channel_id) in self.allowed_channel_ids


@dataclass
class AccountSettings:
    """Per-account command and platform settings."""
    command_prefix: str = "!"
    disabled_modules: list[str] = field(default_factory=list)
    disabled_modules_by_platform: dict[str, list[str]] = field(
        default_factory=lambda: {p: [] for p in PLATFORMS}
    )
    youtube: PlatformToggle = field(default_factory=PlatformToggle)
    discord: PlatformToggle = field(default_factory=PlatformToggle)

    def is_module_disabled(self, module_name: str, platform: str | None = None) -> bool:
        """Check the global list, then the list for ``platform``."""
        key = module_name.lower()
        if key in self.disabled_modules:
            return True
        if platform in PLATFORMS:
            return key in self.disabled_modules_by_platform.get(platform, [])
        return False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any], default_prefix: str = "!") -> "AccountSettings":
        by_platform = data.get("disabled_modules_by_platform") or {}
        youtube = data.get("youtube") or {}
        discord = data.get("discord") or {}
        return cls(
            command_prefix=str(data.get("command_prefix") or default_prefix).strip() or default_prefix,
            disabled_modules=_normalize_names(data.get("disabled_modules")),
            disabled_modules_by_platform={
                p: _normalize_names(by_platform.get(p)) for p in PLATFORMS
            },
            youtube=PlatformToggle(enabled=bool(youtube.get("enabled", True))),
            discord=PlatformToggle(
                enabled=bool(discord.get("enabled", True)),
                allowed_channel_ids=[
                    str(c).strip() for c in discord.get("allowed_channel_ids") or [] if str(c).strip()
                ],
            ),
        )


def _normalize_names(values: Any) -> list[str]:
    return [str(v).strip().lower() for v in values or [] if str(v).strip()]


@dataclass
class Announcement:
    """A scheduled template message."""
    id: str
    name: str
    message: str
    interval_seconds: int
    enabled: bool = True
    last_sent_at: datetime | None = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["last_sent_at"] = _format_time(self.last_sent_at)
        data["created_at"] = _format_time(self.created_at)
        data["updated_at"] = _format_time(self.updated_at)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Announcement":
        name = str(data.get("name", "")).strip()
        return cls(
            id=str(data.get("id") or name.lower()),
            name=name,
            message=str(data.get("message", "")),
            interval_seconds=int(data.get("interval_seconds") or 0),
            enabled=data.get("enabled", True) is not False,
            last_sent_at=_parse_time(data.get("last_sent_at")),
            created_at=_parse_time(data.get("created_at")) or datetime.now(),
            updated_at=_parse_time(data.get("updated_at")) or datetime.now(),
        )


@dataclass
class CustomCommand:
    """A stored name -> response template pair with a platform scope."""
    name: str
    response: str
    platform: str = "both"  # "youtube", "discord" or "both"
    enabled: bool = True

    def applies_to(self, platform: str) -> bool:
        return self.platform == "both" or self.platform == platform

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CustomCommand":
        platform = str(data.get("platform", "")).strip().lower()
        return cls(
            name=strip_prefix(data.get("name", "")),
            response=str(data.get("response", "")),
            platform=platform if platform in PLATFORMS else "both",
            enabled=data.get("enabled", True) is not False,
        )


@dataclass
class CountCommand:
    """A stored template with a persisted counter (YouTube only)."""
    id: int
    name: str
    response: str
    count: int = 0
    enabled: bool = True

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CountCommand":
        try:
            count = max(0, int(data.get("count") or 0))
        except (TypeError, ValueError):
            count = 0
        return cls(
            id=int(data.get("id") or 0),
            name=strip_prefix(data.get("name", "")),
            response=str(data.get("response", "")),
            count=count,
            enabled=data.get("enabled", True) is not False,
        )


@dataclass
class Account:
    """A tenant: one YouTube channel and/or one Discord guild."""
    id: str
    name: str
    youtube_channel_id: str = ""
    youtube_livestream_url: str = ""
    youtube_video_id: str = ""
    youtube_title_match: str = ""
    discord_guild_id: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Account":
        return cls(**{k: data[k] for k in cls.__dataclass_fields__ if k in data})


def strip_prefix(raw: Any, prefix: str = "!") -> str:
    """Normalize a stored command name: trimmed, without a leading prefix."""
    name = str(raw or "").strip()
    return name[len(prefix):] if prefix and name.startswith(prefix) else name
