"""
Protocol definition for notification sinks.

Defines the common interface that all notifiers must implement.
"""

from typing import Protocol, runtime_checkable

from rss_relay.models import Destination, Post


@runtime_checkable
class Notifier(Protocol):
    """
    Protocol defining the interface for notification sinks.

    A sink renders a post into a user-visible message at a destination.
    """

    async def test_connection(self) -> bool:
        """
        Test the connection to the notification backend.

        Returns
        -------
        bool
            True if the connection is working and messages can be sent.
        """
        ...

    async def send_post(self, destination: Destination, post: Post) -> bool:
        """
        Render a post at a destination.

        Parameters
        ----------
        destination : Destination
            Destination identifier pair of the subscriber.
        post : Post
            The post to deliver.

        Returns
        -------
        bool
            True if the notification was sent successfully.
        """
        ...

    async def close(self) -> None:
        """Close the notifier and release any resources."""
        ...
