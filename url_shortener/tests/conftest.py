"""Pytest configuration and fixtures."""

import random

import pytest

from url_shortener.lib.activity_log import ActivityLog
from url_shortener.lib.analytics import AnalyticsAggregator
from url_shortener.lib.clock import ManualClock
from url_shortener.lib.common.logging_config import setup_logging
from url_shortener.lib.records import URLRecordManager
from url_shortener.lib.service import URLShortenerService
from url_shortener.lib.shortcode import ShortCodeGenerator
from url_shortener.lib.storage import MemoryStore, StoreAdapter


@pytest.fixture
def logger():
    """Create test logger."""
    return setup_logging(level="DEBUG")


@pytest.fixture
def clock():
    """Clock that only moves when a test advances it."""
    return ManualClock(start_ms=1_700_000_000_000)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def adapter(store, logger):
    return StoreAdapter(store, logger=logger)


@pytest.fixture
def short_code_generator(logger):
    """Create short code generator with a seeded random source."""
    return ShortCodeGenerator(default_length=6, rng=random.Random(1234), logger=logger)


@pytest.fixture
def activity_log(adapter, clock, logger):
    return ActivityLog(adapter, clock=clock, logger=logger)


@pytest.fixture
def records(adapter, short_code_generator, clock, logger):
    return URLRecordManager(adapter, generator=short_code_generator, clock=clock, logger=logger)


@pytest.fixture
def analytics(adapter, clock, logger):
    return AnalyticsAggregator(adapter, clock=clock, logger=logger)


@pytest.fixture
def service(store, clock, short_code_generator, logger) -> URLShortenerService:
    """Create service instance over an in-memory store."""
    return URLShortenerService(
        store=store,
        clock=clock,
        short_code_generator=short_code_generator,
        logger=logger,
    )


@pytest.fixture
def sample_urls():
    """Sample URLs for testing."""
    return [
        "https://example.com/test",
        "https://github.com/user/repo",
        "https://stackoverflow.com/questions/123456",
    ]
