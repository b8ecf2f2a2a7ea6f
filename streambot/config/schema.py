"""Configuration schema using Pydantic."""

from pathlib import Path
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class YouTubeConfig(BaseModel):
    """YouTube Live Chat configuration."""
    enabled: bool = True
    access_token: str = ""  # OAuth access token for the bot's Google account
    api_base: str = "https://www.googleapis.com/youtube/v3"
    request_timeout: float = 15.0
    owner_channel_id: str = ""  # Author channel treated as the owner in every chat
    daily_quota: int = 10_000  # API units per Pacific-time day


class DiscordConfig(BaseModel):
    """Discord gateway configuration."""
    enabled: bool = False
    token: str = ""  # Bot token from Discord Developer Portal


class CommandsConfig(BaseModel):
    """Command dispatch configuration."""
    prefix: str = "!"
    disabled_modules: list[str] = Field(default_factory=list)  # Never loaded
    modules_dir: str = ""  # Optional directory of extra module descriptors


class PollingConfig(BaseModel):
    """Live chat polling configuration."""
    fallback_delay: float = 2.0  # Used when the server sends no interval hint
    recovery_delay: float = 5.0  # Wait after a failed fetch
    max_results: int = 200


class AnnouncementsConfig(BaseModel):
    """Scheduled announcement configuration."""
    enabled: bool = True
    failure_limit: int = 2  # Consecutive send failures before pausing
    min_timer_delay: float = 1.0
    start_delay: float = 1.0
    fallback_check_delay: float = 30.0  # Re-check after an unexpected tick error
    min_interval_minutes: int = 3
    max_interval_minutes: int = 60
    max_per_account: int = 10


class StorageConfig(BaseModel):
    """Per-account state storage."""
    data_dir: str = "~/.streambot/data"
    max_chars: int = 200  # Longest name/template accepted
    count_commands_max: int = 10


class LoggingConfig(BaseModel):
    """Logging sinks."""
    level: str = "INFO"
    log_dir: str = ""  # Empty = console only
    rotation: str = "10 MB"
    retention: str = "14 days"


class Config(BaseSettings):
    """Root configuration for streambot."""
    mode: str = "prod"  # "dev" primes chats but leaves polling to the console
    youtube: YouTubeConfig = Field(default_factory=YouTubeConfig)
    discord: DiscordConfig = Field(default_factory=DiscordConfig)
    commands: CommandsConfig = Field(default_factory=CommandsConfig)
    polling: PollingConfig = Field(default_factory=PollingConfig)
    announcements: AnnouncementsConfig = Field(default_factory=AnnouncementsConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_prefix="STREAMBOT_",
        env_nested_delimiter="__",
    )

    @property
    def data_path(self) -> Path:
        """Get expanded data directory path."""
        return Path(self.storage.data_dir).expanduser()

    @property
    def auto_poll(self) -> bool:
        """Whether connected chats are polled continuously."""
        return self.mode != "dev"
