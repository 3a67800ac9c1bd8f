"""
Pytest configuration for web unit tests.

Provides shared fixtures and setup/teardown for all tests.
"""

import os

# Must be set before src.web.config is imported: keeps the lifespan from
# starting the scheduler and points the app-level cache at process memory.
os.environ["TESTING"] = "true"
os.environ.setdefault("CACHE_URL", "memory://")

from datetime import datetime, timedelta

import pytest
from sqlalchemy.orm import Session

from src.web.cache import CacheBackend, CacheClient, InMemoryCacheBackend
from src.web.database import get_test_db
from src.web.models import Article

BASE_TIME = datetime(2024, 5, 1, 12, 0, 0)


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class BrokenCacheBackend(CacheBackend):
    """Backend whose every call fails, like an unreachable Redis."""

    def __init__(self):
        self.calls = 0

    async def get(self, key):
        self.calls += 1
        raise ConnectionError("cache down")

    async def set(self, key, value, ttl):
        self.calls += 1
        raise ConnectionError("cache down")

    async def delete(self, *keys):
        self.calls += 1
        raise ConnectionError("cache down")

    async def delete_pattern(self, pattern):
        self.calls += 1
        raise ConnectionError("cache down")


def _insert_article(
    db: Session,
    title: str,
    category: str = "general",
    hours_ago: int = 0,
    description: str = None,
    url: str = None,
) -> Article:
    """Insert an article published ``hours_ago`` hours before BASE_TIME."""
    article = Article(
        title=title,
        description=description,
        url=url or f"https://example.com/{title.lower().replace(' ', '-')}",
        source="Example Wire",
        published_at=BASE_TIME - timedelta(hours=hours_ago),
        category=category,
    )
    db.add(article)
    db.commit()
    db.refresh(article)
    return article


@pytest.fixture
def db():
    """Provide test database session."""
    yield from get_test_db()


@pytest.fixture
def make_article(db: Session):
    """Factory inserting articles into the test database."""

    def factory(title: str, **kwargs) -> Article:
        return _insert_article(db, title, **kwargs)

    return factory


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_backend(clock):
    return InMemoryCacheBackend(clock=clock)


@pytest.fixture
def cache(memory_backend):
    """Cache client over a process-local backend with a fake clock."""
    return CacheClient(memory_backend, timeout=1.0)


@pytest.fixture
def broken_cache():
    """Cache client whose backend always fails."""
    return CacheClient(BrokenCacheBackend(), timeout=1.0)
