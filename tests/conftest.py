"""
Shared fixtures for RSS Relay tests.

Provides common test fixtures for use across all test modules.
"""

from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from rss_relay.config import AppConfig, FeedConfig, SubscriberConfig, TelegramConfig
from rss_relay.models import Destination, Post
from rss_relay.registry import FeedRegistry
from rss_relay.storage import Storage


# Path to test fixtures directory
FIXTURES_DIR = Path(__file__).parent / "fixtures"

FEED_URL = "https://example.com/feed.xml"
OTHER_FEED_URL = "https://example.org/atom.xml"


def make_post(
    n: int,
    feed_url: str = FEED_URL,
    title: str | None = None,
    link: str | None = None,
) -> Post:
    """Build the n-th post of a feed, published on day n of January 2024."""
    return Post(
        feed_url=feed_url,
        title=title if title is not None else f"Post {n}",
        author="Alice",
        link=link if link is not None else f"https://example.com/posts/{n}",
        description=f"Description {n}",
        published=datetime(2024, 1, n, 12, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def post_factory():
    """Return the ``make_post`` builder."""
    return make_post


@pytest.fixture
def fixtures_dir() -> Path:
    """Return path to fixtures directory."""
    return FIXTURES_DIR


@pytest.fixture
def sample_config_path(fixtures_dir: Path) -> Path:
    """Return path to sample config file."""
    return fixtures_dir / "sample_config.yaml"


@pytest.fixture
def sample_rss_content(fixtures_dir: Path) -> str:
    """Return contents of sample RSS feed."""
    return (fixtures_dir / "sample_rss.xml").read_text()


@pytest.fixture
def sample_atom_content(fixtures_dir: Path) -> str:
    """Return contents of sample Atom feed."""
    return (fixtures_dir / "sample_atom.xml").read_text()


@pytest.fixture
def sample_post() -> Post:
    """Create a fully populated post."""
    return Post(
        feed_url=FEED_URL,
        title="Test Post Title",
        author="Test Author",
        link="https://example.com/test-post",
        description="<p>This is the <b>test</b> post description.</p>",
        published=datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def registry() -> FeedRegistry:
    """
    Create a registry with two feeds.

    FEED_URL has two subscribers, OTHER_FEED_URL has one.
    """
    registry = FeedRegistry()
    registry.register_feed(FEED_URL)
    registry.register_feed(OTHER_FEED_URL)
    registry.subscribe(FEED_URL, Destination("chat-a"))
    registry.subscribe(FEED_URL, Destination("chat-b", "7"))
    registry.subscribe(OTHER_FEED_URL, Destination("chat-c"))
    return registry


@pytest.fixture
def mock_sink() -> MagicMock:
    """Create a notification sink that accepts every post."""
    sink = MagicMock()
    sink.send_post = AsyncMock(return_value=True)
    sink.test_connection = AsyncMock(return_value=True)
    sink.close = AsyncMock()
    return sink


@pytest.fixture
def minimal_telegram_config() -> TelegramConfig:
    """Create a minimal valid Telegram configuration."""
    return TelegramConfig(bot_token="1234567890:ABCdefGHIjklMNOpqrsTUVwxyz")


@pytest.fixture
def minimal_config_dict() -> dict[str, Any]:
    """
    Create a minimal valid configuration dictionary.

    Returns
    -------
    dict
        Configuration dictionary that can be used to create AppConfig.
    """
    return {
        "telegram": {"bot_token": "1234567890:ABCdefGHIjklMNOpqrsTUVwxyz"},
        "feeds": [{"url": FEED_URL}],
        "subscribers": [{"feed_url": FEED_URL, "chat_id": "-1001234567890"}],
    }


@pytest.fixture
def minimal_app_config(minimal_telegram_config: TelegramConfig) -> AppConfig:
    """Create a minimal valid app configuration."""
    return AppConfig(
        telegram=minimal_telegram_config,
        feeds=[FeedConfig(url=FEED_URL)],
        subscribers=[SubscriberConfig(feed_url=FEED_URL, chat_id="-1001234567890")],
    )


@pytest_asyncio.fixture
async def in_memory_storage() -> AsyncGenerator[Storage, None]:
    """
    Create an in-memory SQLite storage for testing.

    Yields
    ------
    Storage
        An initialized in-memory storage instance.
    """
    storage = Storage(":memory:")
    await storage.initialize()
    yield storage
    await storage.close()


@pytest.fixture
def mock_telegram_bot() -> MagicMock:
    """
    Create a mock Telegram bot.

    Returns
    -------
    MagicMock
        A mock Bot instance with common methods mocked.
    """
    bot = MagicMock()
    bot.send_message = AsyncMock()
    bot.get_me = AsyncMock(return_value=MagicMock(username="test_bot"))
    bot.shutdown = AsyncMock()
    return bot
