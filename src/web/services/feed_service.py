"""
Feed service for Newsdesk web application.

Read-through caching in front of the article store and the recommendation
engine, plus cache invalidation after the writes that feed those reads.

Reads:
    list_articles    articles:<page>:<limit>:<category|all>   5 min
    search_articles  search:<query>:<page>:<limit>           15 min
    get_article      article:<id>                            60 min
    recommend        recommended:<user>:<page>:<limit>       30 min

Writes:
    mark_read, update_preferences  -> recommended:<user>:*
    delete_article                 -> article:<id> + every listing family
    invalidate_after_ingest        -> article:<id>... + every listing family

Invalidation runs after the store commit and is best effort: a failed
invalidation is logged and the stale entry lives until its TTL.
"""

import logging
from contextlib import contextmanager
from typing import Callable, Iterable, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.web import cache_keys
from src.web.cache import CacheClient
from src.web.config import settings
from src.web.exceptions import InvalidArgumentError, StoreUnavailableError
from src.web.pagination import page_offset, total_pages, validate_page_params
from src.web.schemas import (
    ArticleListResponse,
    ArticleResponse,
    RecommendationResponse,
    SearchResponse,
)
from src.web.services import (
    article_service,
    preference_service,
    recommendation_service,
    user_service,
)

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class SearchValidationError(InvalidArgumentError):
    """Raised when a search query is empty."""

    pass


@contextmanager
def _store_errors(db: Session, action: str):
    """Translate SQLAlchemy failures into StoreUnavailableError."""
    try:
        yield
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Store failure while {action}: {e}")
        raise StoreUnavailableError(f"Article store unavailable while {action}") from e


async def _read_through(
    db: Session,
    cache: CacheClient,
    key: str,
    ttl: int,
    schema: Type[T],
    compute: Callable[[], T],
) -> T:
    """
    Return the cached payload for key, or compute, cache and return it.

    Unreadable cache entries are dropped and treated as a miss. Errors from
    compute (NotFound and friends) propagate and nothing is cached.
    """
    cached = await cache.get(key)
    if cached is not None:
        try:
            return schema.model_validate_json(cached)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable cache entry {key}: {e}")
            await cache.delete(key)

    with _store_errors(db, f"computing {key}"):
        result = compute()

    await cache.set(key, result.model_dump_json(), ttl)
    return result


async def _invalidate_feeds(cache: CacheClient) -> None:
    """Drop every listing, search and recommendation entry."""
    for operation in (
        cache_keys.ARTICLES,
        cache_keys.SEARCH,
        cache_keys.RECOMMENDED,
    ):
        await cache.delete_pattern(cache_keys.key_family(operation))


async def list_articles(
    db: Session,
    cache: CacheClient,
    page: int = 1,
    limit: int = 20,
    category: Optional[str] = None,
) -> ArticleListResponse:
    """
    Paginated article listing, newest first, optionally by category.

    Raises:
        PaginationError: If page or limit is out of range
        ArticleValidationError: If category is not in the vocabulary
        StoreUnavailableError: If the store query fails
    """
    validate_page_params(page, limit)
    category = cache_keys.normalize_category(category)
    if category is not None:
        article_service.validate_category(category)

    def compute() -> ArticleListResponse:
        article_filter = article_service.ArticleFilter(category=category)
        total = article_service.count_articles(db, article_filter)
        articles = article_service.find_articles(
            db, article_filter, page_offset(page, limit), limit
        )
        return ArticleListResponse(
            articles=[ArticleResponse.model_validate(a) for a in articles],
            current_page=page,
            total_pages=total_pages(total, limit),
            total_articles=total,
        )

    return await _read_through(
        db,
        cache,
        cache_keys.articles_key(page, limit, category),
        settings.cache_ttl_articles,
        ArticleListResponse,
        compute,
    )


async def search_articles(
    db: Session,
    cache: CacheClient,
    query: str,
    page: int = 1,
    limit: int = 20,
) -> SearchResponse:
    """
    Paginated full-text search, most relevant first.

    Queries differing only in case or whitespace share one cache entry.

    Raises:
        SearchValidationError: If the query is empty
        PaginationError: If page or limit is out of range
        StoreUnavailableError: If the store query fails
    """
    validate_page_params(page, limit)
    query = cache_keys.normalize_query(query or "")
    if not query:
        raise SearchValidationError("Search query cannot be empty")

    def compute() -> SearchResponse:
        total = article_service.count_search_results(db, query)
        results = article_service.search_articles(
            db, query, page_offset(page, limit), limit
        )
        return SearchResponse(
            results=[ArticleResponse.model_validate(a) for a in results],
            current_page=page,
            total_pages=total_pages(total, limit),
            total_results=total,
        )

    return await _read_through(
        db,
        cache,
        cache_keys.search_key(query, page, limit),
        settings.cache_ttl_search,
        SearchResponse,
        compute,
    )


async def get_article(
    db: Session, cache: CacheClient, article_id: int
) -> ArticleResponse:
    """
    Single article by id.

    Raises:
        ArticleValidationError: If article_id is malformed
        ArticleNotFoundError: If article doesn't exist (not cached)
        StoreUnavailableError: If the store query fails
    """
    article_service.validate_article_id(article_id)

    def compute() -> ArticleResponse:
        return ArticleResponse.model_validate(article_service.get_article(db, article_id))

    return await _read_through(
        db,
        cache,
        cache_keys.article_key(article_id),
        settings.cache_ttl_article,
        ArticleResponse,
        compute,
    )


async def recommend(
    db: Session,
    cache: CacheClient,
    user_id: int,
    page: int = 1,
    limit: int = 20,
) -> RecommendationResponse:
    """
    Page of recommendations for a user.

    Raises:
        UserValidationError: If user_id is malformed
        PaginationError: If page or limit is out of range
        UserNotFoundError: If user doesn't exist (not cached)
        StoreUnavailableError: If the store query fails
    """
    user_service.validate_user_id(user_id)
    validate_page_params(page, limit)

    return await _read_through(
        db,
        cache,
        cache_keys.recommended_key(user_id, page, limit),
        settings.cache_ttl_recommendations,
        RecommendationResponse,
        lambda: recommendation_service.recommend(db, user_id, page, limit),
    )


async def mark_read(
    db: Session, cache: CacheClient, user_id: int, article_id: int
) -> bool:
    """
    Add an article to a user's read set and drop their recommendations.

    Every page/limit variant is invalidated: one more read article changes
    both the candidate set and the keyword scores.

    Returns:
        True if the article was newly marked, False if already read

    Raises:
        UserNotFoundError / ArticleNotFoundError: If either doesn't exist
        StoreUnavailableError: If the store write fails
    """
    with _store_errors(db, f"marking article {article_id} read"):
        added = preference_service.add_read_article(db, user_id, article_id)

    await cache.delete_pattern(cache_keys.key_family(cache_keys.RECOMMENDED, user_id))
    return added


async def update_preferences(
    db: Session, cache: CacheClient, user_id: int, categories: list[str]
) -> list[str]:
    """
    Replace a user's preferred categories and drop their recommendations.

    Raises:
        UserNotFoundError: If user doesn't exist
        PreferenceValidationError: If a category is unknown
        StoreUnavailableError: If the store write fails
    """
    with _store_errors(db, f"updating preferences of user {user_id}"):
        stored = preference_service.set_preferred_categories(db, user_id, categories)

    await cache.delete_pattern(cache_keys.key_family(cache_keys.RECOMMENDED, user_id))
    return stored


async def delete_article(db: Session, cache: CacheClient, article_id: int) -> bool:
    """
    Delete an article (and its saved/read references) and its cache entries.

    Raises:
        ArticleValidationError: If article_id is malformed
        ArticleNotFoundError: If article doesn't exist
        StoreUnavailableError: If the store write fails
    """
    with _store_errors(db, f"deleting article {article_id}"):
        article_service.delete_article(db, article_id)

    await cache.delete(cache_keys.article_key(article_id))
    await _invalidate_feeds(cache)
    return True


async def invalidate_after_ingest(cache: CacheClient, article_ids: Iterable[int]) -> None:
    """
    Drop cache entries made stale by a bulk ingestion run.

    New articles change totals and rankings for every listing, search and
    user, so whole families go; updated articles lose their single entry.
    """
    keys = [cache_keys.article_key(article_id) for article_id in article_ids]
    if keys:
        await cache.delete(*keys)
    await _invalidate_feeds(cache)
    logger.info(f"Invalidated feed caches after ingesting {len(keys)} articles")
