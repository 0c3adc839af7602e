"""
Main entry point for RSS Relay.

Runs update passes over the configured feeds and notifies subscribers
of new posts.
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

import aiosqlite
import coloredlogs

from rss_relay.config import AppConfig, load_config
from rss_relay.models import Destination
from rss_relay.registry import FeedRegistry
from rss_relay.rss_parser import FeedParser
from rss_relay.storage import Storage
from rss_relay.telegram import TelegramNotifier
from rss_relay.updater import FeedUpdated, FeedUpdateResult, update_feeds
from rss_relay.utils import redact_proxy_url

logger = logging.getLogger(__name__)


def build_registry(config: AppConfig) -> FeedRegistry:
    """
    Create a registry holding the enabled feeds and their subscribers.

    Parameters
    ----------
    config : AppConfig
        Validated application configuration.

    Returns
    -------
    FeedRegistry
        Registry with feeds and subscribers, without known posts.
    """
    registry = FeedRegistry()
    for feed in config.feeds:
        if feed.enabled:
            registry.register_feed(feed.url)

    for subscriber in config.subscribers:
        if subscriber.feed_url not in registry:
            logger.debug("Ignoring subscriber of disabled feed: %s", subscriber.feed_url)
            continue
        registry.subscribe(
            subscriber.feed_url,
            Destination(subscriber.chat_id, subscriber.thread_id),
        )

    return registry


class RSSRelay:
    """
    Main RSS Relay application.

    Coordinates storage, feed parsing, and notifications around the
    update cycle.
    """

    def __init__(self, config_path: str | Path):
        """
        Initialize the relay.

        Parameters
        ----------
        config_path : str | Path
            Path to the YAML configuration file.
        """
        self.config = load_config(config_path)
        self.registry = build_registry(self.config)
        self.storage: Storage | None = None
        self.parser: FeedParser | None = None
        self.notifier: TelegramNotifier | None = None
        self._running = False
        self._stop_event = asyncio.Event()

    async def setup(self) -> bool:
        """
        Open storage, restore known posts, and connect the notifier.

        Returns
        -------
        bool
            True if every component is ready.
        """
        logger.info("Starting RSS Relay")

        self.storage = Storage(self.config.storage.database_path)
        await self.storage.initialize()

        titles = await self.storage.load_feed_titles()
        for feed in self.registry.feeds:
            feed.title = titles.get(feed.url, feed.title)

        restored = self.registry.load_posts(await self.storage.load_posts())
        logger.info(
            "Restored %d known post(s) for %d feed(s)",
            restored,
            len(self.registry),
        )

        proxy_url = self.config.defaults.proxy
        if proxy_url:
            logger.info("Using proxy: %s", redact_proxy_url(proxy_url))

        self.parser = FeedParser(
            timeout=self.config.defaults.request_timeout,
            max_retries=self.config.defaults.max_retries,
            user_agent=self.config.defaults.user_agent,
            proxy_url=proxy_url,
        )

        self.notifier = TelegramNotifier(self.config.telegram, proxy_url=proxy_url)
        if not await self.notifier.test_connection():
            logger.error("Failed to connect to Telegram")
            return False

        return True

    async def run_once(self) -> list[FeedUpdateResult]:
        """
        Run one update pass and persist its outcome.

        A storage failure for one feed is logged and does not stop the
        other feeds from being persisted.

        Returns
        -------
        list[FeedUpdateResult]
            One result per feed.
        """
        if not self.parser or not self.storage or not self.notifier:
            raise RuntimeError("Components not initialized")

        results = await update_feeds(self.registry, self.parser, self.notifier)

        for result in results:
            if not isinstance(result, FeedUpdated):
                continue
            try:
                await self.storage.save_feed(self.registry.get_feed(result.feed_url))
                await self.storage.add_posts(result.new_posts)
            except aiosqlite.Error:
                logger.exception("Failed to persist posts of feed '%s'", result.feed_url)

        return results

    async def start(self) -> None:
        """Run update passes until stopped."""
        if not await self.setup():
            await self.stop()
            sys.exit(1)

        self._running = True
        interval = self.config.defaults.check_interval
        logger.info(
            "RSS Relay started with %d active feed(s), checking every %ds",
            len(self.registry),
            interval,
        )

        while self._running:
            await self.run_once()
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass

    def request_stop(self) -> None:
        """Ask the update loop to finish after the current pass."""
        self._running = False
        self._stop_event.set()

    async def stop(self) -> None:
        """Stop the relay gracefully and release its components."""
        logger.info("Stopping RSS Relay")
        self.request_stop()

        if self.parser:
            await self.parser.close()
            self.parser = None
        if self.storage:
            await self.storage.close()
            self.storage = None
        if self.notifier:
            await self.notifier.close()
            self.notifier = None

        logger.info("RSS Relay stopped")


def setup_logging(verbose: bool = False) -> None:
    """
    Configure application logging.

    Parameters
    ----------
    verbose : bool
        If True, set log level to DEBUG.
    """
    level = logging.DEBUG if verbose else logging.INFO

    coloredlogs.install(
        level=level,
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("telegram").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


async def _run_once(relay: RSSRelay) -> int:
    try:
        if not await relay.setup():
            return 1
        await relay.run_once()
        return 0
    finally:
        await relay.stop()


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="RSS/Atom feed relay with Telegram notifications",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "-c",
        "--config",
        default="config.yaml",
        help="Path to configuration file",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single update pass and exit",
    )
    args = parser.parse_args()

    setup_logging(args.verbose)

    config_path = Path(args.config)
    if not config_path.exists():
        logger.error("Configuration file not found: %s", config_path)
        sys.exit(1)

    relay = RSSRelay(config_path)

    if args.once:
        sys.exit(asyncio.run(_run_once(relay)))

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    def signal_handler():
        logger.info("Received shutdown signal")
        relay.request_stop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    try:
        loop.run_until_complete(relay.start())
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    finally:
        loop.run_until_complete(relay.stop())
        loop.close()


if __name__ == "__main__":
    main()
