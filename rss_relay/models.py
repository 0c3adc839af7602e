"""
Core data model for RSS Relay.

Defines feeds, normalized posts, and the subscribers bound to feeds.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import NamedTuple


class PostKey(NamedTuple):
    """
    Deduplication key of a post within a feed.

    Feeds provide no stable identifier, so a post is identified by
    the pair of its link and its title.
    """

    link: str | None
    title: str | None


class Destination(NamedTuple):
    """
    Opaque destination identifier pair understood by a notification sink.

    Attributes
    ----------
    chat_id : str
        Conversation identifier (e.g., a Telegram chat ID).
    thread_id : str | None
        Sub-thread identifier inside the conversation (e.g., a forum topic).
    """

    chat_id: str
    thread_id: str | None = None


class Feed:
    """
    A syndication source identified by its URL.

    The URL is fixed at creation; the title is refreshed on every
    successful fetch.
    """

    def __init__(self, url: str, title: str = ""):
        """
        Initialize a feed.

        Parameters
        ----------
        url : str
            URL of the RSS/Atom feed. Must be non-empty.
        title : str
            Last known feed title.
        """
        if not url:
            raise ValueError("Feed URL cannot be empty")
        self._url = url
        self.title = title

    @property
    def url(self) -> str:
        """URL of the feed."""
        return self._url

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Feed):
            return NotImplemented
        return self._url == other._url

    def __hash__(self) -> int:
        return hash(self._url)

    def __repr__(self) -> str:
        return f"Feed(url={self._url!r}, title={self.title!r})"


@dataclass(frozen=True)
class Post:
    """
    Normalized representation of one feed entry.

    Attributes
    ----------
    feed_url : str
        URL of the owning feed.
    title : str | None
        Entry title, stored verbatim.
    author : str
        Entry author, ``"unknown"`` when the feed gives none.
    link : str | None
        Entry URL, stored verbatim.
    description : str
        Entry description, ``"None"`` when the feed gives none.
    published : datetime | None
        Publication timestamp.
    updated : datetime | None
        Last update timestamp.
    """

    feed_url: str
    title: str | None
    author: str
    link: str | None
    description: str
    published: datetime | None = None
    updated: datetime | None = None

    @property
    def key(self) -> PostKey:
        """Deduplication key of this post."""
        return PostKey(self.link, self.title)


@dataclass(frozen=True)
class Subscriber:
    """
    A destination bound to a feed.

    Attributes
    ----------
    feed_url : str
        URL of the feed this subscriber follows.
    destination : Destination
        Where the sink should deliver new posts.
    """

    feed_url: str
    destination: Destination
