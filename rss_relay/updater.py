"""
Feed update cycle.

Fetches every registered feed in turn, finds its new posts, and notifies
the feed's subscribers. A failing feed never stops the others.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from rss_relay.diff import diff_new_posts
from rss_relay.dispatcher import dispatch
from rss_relay.models import Feed, Post
from rss_relay.notifier import Notifier
from rss_relay.registry import FeedRegistry
from rss_relay.rss_parser import FeedError, FeedParser, FetchError, ParseError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeedUpdated:
    """
    Successful update of one feed.

    Attributes
    ----------
    feed_url : str
        URL of the updated feed.
    new_posts : list[Post]
        Posts discovered in this pass, oldest first.
    delivered : int
        Number of successful notifications sent for them.
    """

    feed_url: str
    new_posts: list[Post] = field(default_factory=list)
    delivered: int = 0


@dataclass(frozen=True)
class FeedFailed:
    """
    Failed update of one feed.

    Attributes
    ----------
    feed_url : str
        URL of the feed.
    error : Exception
        A FetchError or ParseError, or the unexpected exception raised.
    """

    feed_url: str
    error: Exception


FeedUpdateResult = FeedUpdated | FeedFailed

ErrorHook = Callable[[Feed, Exception], None]


def log_feed_error(feed: Feed, error: Exception) -> None:
    """Default error hook: log the skipped feed."""
    match error:
        case FetchError():
            logger.warning("Skipping feed '%s', fetch failed: %s", feed.url, error)
        case ParseError():
            logger.warning("Skipping feed '%s', parse failed: %s", feed.url, error)
        case _:
            logger.error(
                "Skipping feed '%s' after unexpected error: %s",
                feed.url,
                error,
                exc_info=error,
            )


async def update_feed(
    feed: Feed,
    registry: FeedRegistry,
    parser: FeedParser,
    sink: Notifier,
) -> FeedUpdateResult:
    """
    Update a single feed.

    Parameters
    ----------
    feed : Feed
        A feed registered in ``registry``.
    registry : FeedRegistry
        Registry owning the feed's known posts and subscribers.
    parser : FeedParser
        Fetches and parses the feed document.
    sink : Notifier
        Notification sink for new posts.

    Returns
    -------
    FeedUpdateResult
        FeedUpdated with the new posts, or FeedFailed with the fetch or
        parse error. Nothing has been recorded or sent for a failed feed.
    """
    logger.debug("Checking feed: %s", feed.url)

    try:
        server_posts = await parser.fetch_feed(feed)
    except FeedError as e:
        return FeedFailed(feed.url, e)

    new_posts = diff_new_posts(server_posts, registry.known_posts(feed.url))
    if not new_posts:
        logger.debug("No new posts in feed '%s'", feed.url)
        return FeedUpdated(feed.url)

    subscribers = registry.subscribers_for(feed.url)
    logger.info(
        "Found %d new post%s in '%s', notifying %d subscriber%s",
        len(new_posts),
        "" if len(new_posts) == 1 else "s",
        feed.title or feed.url,
        len(subscribers),
        "" if len(subscribers) == 1 else "s",
    )

    delivered = await dispatch(new_posts, subscribers, sink)
    return FeedUpdated(feed.url, new_posts, delivered)


async def update_feeds(
    registry: FeedRegistry,
    parser: FeedParser,
    sink: Notifier,
    on_error: ErrorHook | None = None,
) -> list[FeedUpdateResult]:
    """
    Run one update pass over every registered feed.

    Feeds are processed one after another. A feed that fails to fetch or
    parse contributes no posts and no notifications; its error is handed
    to ``on_error`` and the pass moves on. No exception escapes.

    Parameters
    ----------
    registry : FeedRegistry
        Registry of feeds, known posts, and subscribers.
    parser : FeedParser
        Fetches and parses feed documents.
    sink : Notifier
        Notification sink for new posts.
    on_error : ErrorHook | None
        Called with the feed and the error of every failed feed.
        Defaults to logging it.

    Returns
    -------
    list[FeedUpdateResult]
        One result per feed, in registry order.
    """
    on_error = on_error or log_feed_error
    results: list[FeedUpdateResult] = []

    for feed in registry.feeds:
        try:
            result = await update_feed(feed, registry, parser, sink)
        except Exception as e:
            result = FeedFailed(feed.url, e)

        match result:
            case FeedUpdated(new_posts=new_posts, delivered=delivered):
                logger.debug(
                    "Feed '%s' updated: %d new, %d delivered",
                    feed.url,
                    len(new_posts),
                    delivered,
                )
            case FeedFailed(error=error):
                try:
                    on_error(feed, error)
                except Exception:
                    logger.exception("Error hook failed for feed '%s'", feed.url)

        results.append(result)

    updated = sum(1 for r in results if isinstance(r, FeedUpdated))
    new_count = sum(len(r.new_posts) for r in results if isinstance(r, FeedUpdated))
    logger.info(
        "Update pass done: %d/%d feed(s) updated, %d new post(s)",
        updated,
        len(results),
        new_count,
    )

    return results
