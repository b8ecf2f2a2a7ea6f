"""Persisted per-account state."""

from streambot.state.models import (
    Account,
    AccountRuntime,
    AccountSettings,
    Announcement,
    CountCommand,
    CustomCommand,
)
from streambot.state.quota import QuotaInfo, QuotaTracker
from streambot.state.store import AccountStore

__all__ = [
    "Account",
    "AccountRuntime",
    "AccountSettings",
    "Announcement",
    "CountCommand",
    "CustomCommand",
    "AccountStore",
    "QuotaInfo",
    "QuotaTracker",
]
