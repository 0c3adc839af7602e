"""
RSS Relay - Relay new RSS/Atom posts to subscribed chats.

Polls RSS/Atom feeds, detects entries that were not seen before,
and notifies every subscriber of the feed exactly once per new entry.
"""

__version__ = "1.0.0"
