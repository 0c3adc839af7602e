"""
Feed registry.

Owns the registered feeds, the known posts of each feed, and the
subscribers bound to them. The registry is created at startup and
passed explicitly to the update cycle.
"""

import logging
from collections.abc import Iterable, Iterator

from rss_relay.models import Destination, Feed, Post, PostKey, Subscriber

logger = logging.getLogger(__name__)


class KnownPosts:
    """
    Append-only record of the posts already seen for one feed.

    Posts are kept in discovery order and are unique by their
    ``(link, title)`` key.
    """

    def __init__(self, feed_url: str, posts: Iterable[Post] = ()):
        """
        Initialize the collection.

        Parameters
        ----------
        feed_url : str
            URL of the feed owning these posts.
        posts : Iterable[Post]
            Previously persisted posts, in discovery order. Duplicate keys
            are ignored.
        """
        self.feed_url = feed_url
        self._posts: list[Post] = []
        self._keys: set[PostKey] = set()
        for post in posts:
            self.add(post)

    def __contains__(self, post: object) -> bool:
        if isinstance(post, Post):
            return post.key in self._keys
        if isinstance(post, tuple) and len(post) == 2:
            return PostKey(*post) in self._keys
        return False

    def __iter__(self) -> Iterator[Post]:
        return iter(self._posts)

    def __len__(self) -> int:
        return len(self._posts)

    def add(self, post: Post) -> bool:
        """
        Append a post if its key is not known yet.

        Parameters
        ----------
        post : Post
            The post to record.

        Returns
        -------
        bool
            True if the post was appended, False if its key was already known.

        Raises
        ------
        ValueError
            If the post belongs to another feed.
        """
        if post.feed_url != self.feed_url:
            raise ValueError(
                f"Post belongs to feed {post.feed_url!r}, not {self.feed_url!r}"
            )
        if post.key in self._keys:
            return False
        self._keys.add(post.key)
        self._posts.append(post)
        return True


class FeedRegistry:
    """
    Registry of feeds, their known posts, and their subscribers.
    """

    def __init__(self) -> None:
        self._feeds: dict[str, Feed] = {}
        self._known: dict[str, KnownPosts] = {}
        self._subscribers: list[Subscriber] = []

    @property
    def feeds(self) -> list[Feed]:
        """Registered feeds in registration order."""
        return list(self._feeds.values())

    @property
    def subscribers(self) -> list[Subscriber]:
        """All subscribers in subscription order."""
        return list(self._subscribers)

    def __contains__(self, feed_url: object) -> bool:
        return feed_url in self._feeds

    def __len__(self) -> int:
        return len(self._feeds)

    def get_feed(self, feed_url: str) -> Feed:
        """
        Return a registered feed.

        Raises
        ------
        KeyError
            If the feed is not registered.
        """
        try:
            return self._feeds[feed_url]
        except KeyError:
            raise KeyError(f"Feed not registered: {feed_url}") from None

    def register_feed(self, feed_url: str, title: str = "") -> Feed:
        """
        Register a feed, or return it if it already exists.

        Parameters
        ----------
        feed_url : str
            URL of the feed.
        title : str
            Initial title, typically restored from storage.

        Returns
        -------
        Feed
            The registered feed.
        """
        feed = self._feeds.get(feed_url)
        if feed is not None:
            return feed

        feed = Feed(feed_url, title)
        self._feeds[feed_url] = feed
        self._known[feed_url] = KnownPosts(feed_url)
        logger.debug("Registered feed: %s", feed_url)
        return feed

    def remove_feed(self, feed_url: str) -> None:
        """
        Remove a feed together with its known posts and subscribers.

        Raises
        ------
        KeyError
            If the feed is not registered.
        """
        self.get_feed(feed_url)
        del self._feeds[feed_url]
        del self._known[feed_url]
        self._subscribers = [s for s in self._subscribers if s.feed_url != feed_url]
        logger.debug("Removed feed: %s", feed_url)

    def known_posts(self, feed_url: str) -> KnownPosts:
        """
        Return the known posts of a registered feed.

        Raises
        ------
        KeyError
            If the feed is not registered.
        """
        self.get_feed(feed_url)
        return self._known[feed_url]

    def load_posts(self, posts: Iterable[Post]) -> int:
        """
        Restore previously seen posts into their feeds' collections.

        Posts of feeds that are no longer registered are skipped.

        Returns
        -------
        int
            Number of posts restored.
        """
        restored = 0
        skipped = 0
        for post in posts:
            known = self._known.get(post.feed_url)
            if known is None:
                skipped += 1
                continue
            if known.add(post):
                restored += 1

        if skipped:
            logger.debug("Skipped %d stored posts of unregistered feeds", skipped)
        return restored

    def subscribe(self, feed_url: str, destination: Destination) -> Subscriber:
        """
        Bind a destination to a registered feed.

        Subscribing the same destination twice returns the existing subscriber.

        Raises
        ------
        KeyError
            If the feed is not registered.
        """
        self.get_feed(feed_url)
        subscriber = Subscriber(feed_url, destination)
        if subscriber not in self._subscribers:
            self._subscribers.append(subscriber)
        return subscriber

    def unsubscribe(self, subscriber: Subscriber) -> None:
        """Remove a subscriber if present."""
        if subscriber in self._subscribers:
            self._subscribers.remove(subscriber)

    def subscribers_for(self, feed_url: str) -> list[Subscriber]:
        """Return the subscribers bound to a feed."""
        return [s for s in self._subscribers if s.feed_url == feed_url]
