"""
Tests for template variables and rendering.
"""

from datetime import datetime, timezone

from streambot.state.models import AccountRuntime
from streambot.state.quota import QuotaInfo
from streambot.utils.templates import build_template_values, format_live_uptime, render_template


class TestRenderTemplate:
    """Tests for render_template."""

    def test_known_and_unknown_placeholders(self):
        text = render_template("Hi {sender}, {Channel_Name} {nope}", {"sender": "Sam", "channel_name": "Acme"})

        assert text == "Hi Sam, Acme {nope}"

    def test_none_value_renders_empty(self):
        assert render_template("[{sender}]", {"sender": None}) == "[]"


class TestTemplateValues:
    """Tests for build_template_values."""

    def test_runtime_values(self):
        runtime = AccountRuntime(target_info={"channel_name": "Acme", "title": "Speedrun"})

        values = build_template_values(sender="Sam", runtime=runtime, extra={"Count": 3})

        assert values["sender"] == "Sam"
        assert values["channel_name"] == "Acme"
        assert values["live_title"] == "Speedrun"
        assert values["live_uptime"] == "unknown"
        assert values["count"] == "3"
        assert "time_local" in values

    def test_defaults_without_runtime(self):
        values = build_template_values()

        assert values["channel_name"] == "unknown"
        assert values["live_title"] == "unknown"
        assert values["quota_percent"] == "unknown"

    def test_quota_percent(self):
        values = build_template_values(quota=QuotaInfo(daily_limit=10_000, used=2_500, day="2026-03-01"))

        assert render_template("Quota {quota_percent}", values) == "Quota 25%"


class TestLiveUptime:
    """Tests for format_live_uptime."""

    def test_hours_and_minutes(self):
        now = datetime(2026, 3, 1, 14, 5, tzinfo=timezone.utc)

        assert format_live_uptime("2026-03-01T13:00:00Z", now) == "1 hour, 5 minutes"
        assert format_live_uptime("2026-03-01T14:04:00Z", now) == "1 minute"

    def test_invalid_or_future(self):
        now = datetime(2026, 3, 1, 14, 5, tzinfo=timezone.utc)

        assert format_live_uptime(None, now) == "unknown"
        assert format_live_uptime("garbage", now) == "unknown"
        assert format_live_uptime("2026-03-01T15:00:00Z", now) == "unknown"
