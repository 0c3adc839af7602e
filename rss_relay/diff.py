"""
Feed diffing.

Determines which freshly fetched posts of a feed have not been seen before.
"""

import logging
from collections.abc import Iterable

from rss_relay.models import Post
from rss_relay.registry import KnownPosts

logger = logging.getLogger(__name__)


def diff_new_posts(server_posts: Iterable[Post], known_posts: KnownPosts) -> list[Post]:
    """
    Return the posts that are new, and record them as known.

    A post is known when a post with the same link and the same title was
    already recorded for the feed. Changing either field makes it a
    different post. New posts are appended to ``known_posts`` as they are
    found, so running the diff again on the same snapshot yields nothing.

    Parameters
    ----------
    server_posts : Iterable[Post]
        Posts of the feed as currently published, oldest first.
    known_posts : KnownPosts
        The feed's known posts. Mutated in place.

    Returns
    -------
    list[Post]
        New posts, oldest first.
    """
    new_posts = []
    for post in server_posts:
        if known_posts.add(post):
            new_posts.append(post)

    if new_posts:
        logger.debug(
            "Found %d new post%s in %s",
            len(new_posts),
            "" if len(new_posts) == 1 else "s",
            known_posts.feed_url,
        )

    return new_posts
