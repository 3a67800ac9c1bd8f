"""
Ingestion service for Newsdesk web application.

Fetches recent articles from NewsAPI, assigns each a category with a keyword
heuristic, upserts them by URL and invalidates the feed caches once the
batch is stored.
"""

import asyncio
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional

import aiohttp
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.web.cache import CacheClient
from src.web.config import settings
from src.web.exceptions import NewsdeskError
from src.web.services import article_service, feed_service

logger = logging.getLogger(__name__)

# First match wins; anything else is "general"
CATEGORY_KEYWORDS = (
    ("technology", ("technology", "tech")),
    ("business", ("business", "finance")),
    ("sports", ("sports", "game")),
    ("health", ("health", "medical")),
    ("science", ("science", "research")),
    ("entertainment", ("entertainment", "celebrity")),
)
DEFAULT_CATEGORY = "general"


class IngestionError(NewsdeskError):
    """Raised when the news API cannot be read."""

    pass


def categorize(title: Optional[str], description: Optional[str]) -> str:
    """
    Assign a category from title and description keywords.

    Matching is case-insensitive substring matching.
    """
    content = f"{title or ''} {description or ''}".lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in content for keyword in keywords):
            return category
    return DEFAULT_CATEGORY


def parse_published_at(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp into a naive UTC datetime.

    Returns:
        datetime, or None if value is missing or malformed
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def to_article_data(raw: dict) -> Optional[dict]:
    """
    Map a NewsAPI article to store fields.

    Returns:
        Field dict for upsert_article_by_url, or None if url, title or
        publishedAt is missing
    """
    url = raw.get("url")
    title = raw.get("title")
    published_at = parse_published_at(raw.get("publishedAt"))
    if not url or not title or published_at is None:
        return None

    description = raw.get("description")
    return {
        "title": title,
        "description": description,
        "content": raw.get("content"),
        "url": url,
        "image_url": raw.get("urlToImage"),
        "source": (raw.get("source") or {}).get("name") or "Unknown",
        "published_at": published_at,
        "category": categorize(title, description),
        "author": raw.get("author"),
    }


async def fetch_news_api_articles(
    api_key: str,
    query: str,
    from_date: date,
    url: str,
    timeout: int = 30,
) -> list[dict]:
    """
    Fetch articles from the NewsAPI "everything" endpoint.

    Raises:
        IngestionError: If the API answers with a non-200 status
        aiohttp.ClientError / asyncio.TimeoutError: On transport failures
    """
    params = {
        "q": query,
        "from": from_date.isoformat(),
        "sortBy": "publishedAt",
        "apiKey": api_key,
    }

    async with aiohttp.ClientSession(
        timeout=aiohttp.ClientTimeout(total=timeout)
    ) as session:
        async with session.get(url, params=params) as response:
            if response.status != 200:
                body = await response.text()
                raise IngestionError(
                    f"News API returned {response.status}: {body[:200]}"
                )
            payload = await response.json()

    return payload.get("articles") or []


def store_articles(
    db: Session, raw_articles: list[dict], now: Optional[datetime] = None
) -> list[int]:
    """
    Upsert fetched articles by URL.

    Articles dated in the future are skipped; a failure on one article is
    logged and does not stop the batch.

    Returns:
        Ids of stored (inserted or updated) articles, without duplicates
    """
    if now is None:
        now = datetime.now(timezone.utc).replace(tzinfo=None)

    stored_ids = {}
    skipped = 0

    for raw in raw_articles:
        data = to_article_data(raw)
        if data is None:
            skipped += 1
            continue

        if data["published_at"] > now:
            logger.info(f"Skipping article with future date: {data['title']}")
            skipped += 1
            continue

        try:
            article = article_service.upsert_article_by_url(db, data)
        except article_service.ArticleValidationError as e:
            logger.warning(f"Invalid article {data['url']}: {e}")
            skipped += 1
            continue
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error storing article {data['url']}: {e}")
            skipped += 1
            continue

        stored_ids[article.id] = None

    logger.info(f"Stored {len(stored_ids)} articles, skipped {skipped}")
    return list(stored_ids)


async def fetch_and_store_articles(db: Session, cache: CacheClient) -> int:
    """
    Run one ingestion pass.

    Failures to reach the news API are logged, not raised, so a scheduled
    run never takes the application down.

    Returns:
        Number of articles stored
    """
    if not settings.news_api_key:
        logger.warning("NEWS_API_KEY is not set, skipping article ingestion")
        return 0

    from_date = date.today() - timedelta(days=settings.news_api_lookback_days)

    try:
        raw_articles = await fetch_news_api_articles(
            settings.news_api_key,
            settings.news_api_query,
            from_date,
            settings.news_api_url,
            timeout=settings.news_api_timeout_seconds,
        )
    except (IngestionError, aiohttp.ClientError, asyncio.TimeoutError) as e:
        logger.error(f"Error fetching articles: {e}")
        return 0

    if not raw_articles:
        logger.info("No articles fetched from the news API")
        return 0

    logger.info(f"Fetched {len(raw_articles)} articles from the news API")

    stored_ids = store_articles(db, raw_articles)
    if stored_ids:
        await feed_service.invalidate_after_ingest(cache, stored_ids)

    return len(stored_ids)
