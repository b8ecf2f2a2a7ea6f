"""
Template variables for custom commands and announcements.

Templates use ``{name}`` placeholders, for example
``"Welcome {sender}! We've been live for {live_uptime}."``. Unknown
placeholders are left untouched.
"""

import re
from datetime import datetime, timezone
from typing import Any

from streambot.state.models import AccountRuntime
from streambot.state.quota import QuotaInfo


_PLACEHOLDER = re.compile(r"\{([a-z_]+)\}", re.IGNORECASE)


def format_live_uptime(stream_start_at: str | None, now: datetime | None = None) -> str:
    """Human readable time since the stream started, e.g. ``"1 hour, 5 minutes"``."""
    if not stream_start_at:
        return "unknown"
    try:
        started = datetime.fromisoformat(stream_start_at.replace("Z", "+00:00"))
    except ValueError:
        return "unknown"
    if started.tzinfo is None:
        started = started.replace(tzinfo=timezone.utc)

    now = now or datetime.now(timezone.utc)
    seconds = (now - started).total_seconds()
    if seconds < 0:
        return "unknown"

    total_minutes = round(seconds / 60)
    hours, minutes = divmod(total_minutes, 60)
    minute_label = "minute" if minutes == 1 else "minutes"
    if hours:
        hour_label = "hour" if hours == 1 else "hours"
        return f"{hours} {hour_label}, {minutes} {minute_label}"
    return f"{minutes} {minute_label}"


def build_template_values(
    sender: str = "",
    runtime: AccountRuntime | None = None,
    extra: dict[str, Any] | None = None,
    quota: QuotaInfo | None = None,
) -> dict[str, str]:
    """
    Collect the live variables a template can reference.

    Args:
        sender: Display name of the user who triggered the message.
        runtime: Account runtime; its target_info carries channel/stream data.
        extra: Additional values (e.g. ``count`` for count commands).
        quota: Today's API usage for ``{quota_percent}``.
    """
    target = runtime.target_info if runtime else {}
    values = {
        "sender": sender or "",
        "channel_name": target.get("channel_name") or target.get("channel_title") or "unknown",
        "live_title": target.get("title") or "unknown",
        "live_uptime": format_live_uptime(target.get("stream_start_at")),
        "quota_percent": f"{quota.percent_used}%" if quota else "unknown",
        "time_local": datetime.now().strftime("%m/%d/%Y, %I:%M %p"),
    }
    for key, value in (extra or {}).items():
        values[key.lower()] = str(value)
    return values


def render_template(text: str, values: dict[str, Any]) -> str:
    """Substitute ``{key}`` placeholders (case-insensitive) from ``values``."""
    def replace(match: re.Match) -> str:
        key = match.group(1).lower()
        if key not in values:
            return match.group(0)
        return str(values[key] if values[key] is not None else "")

    return _PLACEHOLDER.sub(replace, str(text or ""))
