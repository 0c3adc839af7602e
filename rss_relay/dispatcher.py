"""
Notification fan-out.

Delivers each new post to every subscriber of its feed.
"""

import logging
from collections.abc import Iterable

from rss_relay.models import Post, Subscriber
from rss_relay.notifier import Notifier

logger = logging.getLogger(__name__)


async def dispatch(
    new_posts: Iterable[Post],
    subscribers: Iterable[Subscriber],
    sink: Notifier,
) -> int:
    """
    Send every new post to the subscribers bound to its feed.

    Posts are delivered in the given order, so each subscriber receives a
    feed's posts oldest first. A failed delivery is logged and does not
    stop the remaining ones.

    Parameters
    ----------
    new_posts : Iterable[Post]
        New posts, oldest first.
    subscribers : Iterable[Subscriber]
        Candidate subscribers; only those bound to a post's feed receive it.
    sink : Notifier
        Notification sink rendering the posts.

    Returns
    -------
    int
        Number of successful deliveries.
    """
    subscribers = list(subscribers)
    delivered = 0

    for post in new_posts:
        for subscriber in subscribers:
            if subscriber.feed_url != post.feed_url:
                continue

            try:
                success = await sink.send_post(subscriber.destination, post)
            except Exception as e:
                logger.error(
                    "Failed to notify %s for post '%s': %s",
                    subscriber.destination.chat_id,
                    (post.title or "")[:50],
                    e,
                )
                continue

            if success:
                delivered += 1
            else:
                logger.warning(
                    "Notification for post '%s' to %s was not delivered",
                    (post.title or "")[:50],
                    subscriber.destination.chat_id,
                )

    return delivered
