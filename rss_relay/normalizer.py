"""
Entry normalization.

Converts loosely-typed feedparser entries into canonical Post records.
"""

import time
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from rss_relay.models import Post


UNKNOWN_AUTHOR = "unknown"
MISSING_DESCRIPTION = "None"


def _raw(entry: Mapping[str, Any], key: str) -> Any:
    # FeedParserDict.get answers "updated" keys with the published date
    if isinstance(entry, dict):
        return dict.get(entry, key)
    return entry.get(key)


def _author(entry: Mapping[str, Any]) -> str:
    author = entry.get("author")
    if author is None or author == "":
        return UNKNOWN_AUTHOR
    return str(author)


def _description(entry: Mapping[str, Any]) -> str:
    """
    Extract the entry description.

    feedparser exposes the description as a ``summary_detail`` container
    with a ``value`` key. Plain mappings may carry ``summary`` or
    ``description`` directly.
    """
    detail = entry.get("summary_detail")
    if detail is not None:
        return str(detail.get("value"))

    for key in ("summary", "description"):
        if key in entry:
            value = entry.get(key)
            if value is None:
                return MISSING_DESCRIPTION
            return str(value)

    return MISSING_DESCRIPTION


def _timestamp(entry: Mapping[str, Any], name: str) -> datetime | None:
    """
    Extract a timestamp as an aware datetime.

    Prefers feedparser's ``<name>_parsed`` struct_time (always UTC) and
    falls back to a datetime stored under ``<name>``.
    """
    parsed = _raw(entry, f"{name}_parsed")
    if isinstance(parsed, time.struct_time):
        return datetime(*parsed[:6], tzinfo=timezone.utc)

    value = _raw(entry, name)
    if isinstance(value, datetime):
        return value

    return None


def normalize_entry(entry: Mapping[str, Any], feed_url: str) -> Post:
    """
    Create a Post from a raw feed entry.

    Missing or empty authors become ``"unknown"`` and a missing description
    becomes ``"None"``. Title and link are kept verbatim, even when absent.

    Parameters
    ----------
    entry : Mapping[str, Any]
        A feedparser entry or any mapping with the same keys.
    feed_url : str
        URL of the feed the entry belongs to.

    Returns
    -------
    Post
        The normalized post.

    Raises
    ------
    ValueError
        If ``feed_url`` is empty.
    """
    if not feed_url:
        raise ValueError("Feed URL is required to normalize an entry")

    return Post(
        feed_url=feed_url,
        title=entry.get("title"),
        author=_author(entry),
        link=entry.get("link"),
        description=_description(entry),
        published=_timestamp(entry, "published"),
        updated=_timestamp(entry, "updated"),
    )
