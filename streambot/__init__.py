"""
streambot - multi-tenant chat bot engine for YouTube live chat and Discord.
"""

__version__ = "0.3.0"
__logo__ = "📡"
