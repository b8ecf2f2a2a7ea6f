"""Scheduled auto announcements."""

from streambot.announcements.scheduler import AnnouncementScheduler

__all__ = ["AnnouncementScheduler"]
