"""
Recommendation service for Newsdesk web application.

Ranks the articles a user has not read yet by blending explicit category
preferences with interest keywords mined from the titles the user has read:

    score = 2 if category is preferred, else 0
          + number of distinct interest keywords found in the title

Ties fall back to recency (published_at, then id, both descending), so a
user with no preferences and no history gets a plain newest-first feed.
"""

import logging
import re
from collections import Counter
from datetime import datetime
from typing import Iterable, NamedTuple

from sqlalchemy.orm import Session

from src.web.config import settings
from src.web.pagination import page_offset, total_pages, validate_page_params
from src.web.schemas import ArticleResponse, RecommendationResponse
from src.web.services import article_service, preference_service, user_service

logger = logging.getLogger(__name__)

CATEGORY_WEIGHT = 2

_WORD = re.compile(r"\w+")


class ScoredArticle(NamedTuple):
    score: int
    published_at: datetime
    id: int


def tokenize(text: str) -> list[str]:
    """Lower-cased word tokens of text."""
    return _WORD.findall((text or "").lower())


def extract_keywords(
    titles: Iterable[str],
    count: int = 10,
    min_length: int = 4,
) -> list[str]:
    """
    Most frequent words across titles.

    Args:
        titles: Titles of articles the user has read
        count: Number of keywords to keep
        min_length: Shortest word considered

    Returns:
        Up to ``count`` words, most frequent first (ties alphabetical)
    """
    counter = Counter(
        word for title in titles for word in tokenize(title) if len(word) >= min_length
    )
    ranked = sorted(counter.items(), key=lambda item: (-item[1], item[0]))
    return [word for word, _ in ranked[:count]]


def score_article(
    title: str, category: str, preferred_categories: set, keywords: set
) -> int:
    """Score one candidate article."""
    score = CATEGORY_WEIGHT if category in preferred_categories else 0
    score += len(keywords.intersection(tokenize(title)))
    return score


def rank_candidates(
    candidates: Iterable, preferred_categories: set, keywords: set
) -> list[ScoredArticle]:
    """
    Score and order candidate rows.

    Args:
        candidates: Rows with id, title, category and published_at
        preferred_categories: The user's preferred categories
        keywords: The user's interest keywords

    Returns:
        ScoredArticle tuples, best first
    """
    scored = [
        ScoredArticle(
            score_article(row.title, row.category, preferred_categories, keywords),
            row.published_at,
            row.id,
        )
        for row in candidates
    ]
    scored.sort(reverse=True)
    return scored


def recommend(
    db: Session, user_id: int, page: int, limit: int
) -> RecommendationResponse:
    """
    Compute a page of recommendations for a user.

    Args:
        db: Database session
        user_id: User ID
        page: 1-based page number
        limit: Page size

    Returns:
        RecommendationResponse; total_recommendations counts every unread
        article, the same set the page is cut from

    Raises:
        UserValidationError: If user_id is malformed
        PaginationError: If page or limit is out of range
        UserNotFoundError: If user doesn't exist
    """
    user_service.validate_user_id(user_id)
    validate_page_params(page, limit)
    user_service.get_user(db, user_id)

    preferred = set(preference_service.get_preferred_categories(db, user_id))
    read_ids = preference_service.get_read_article_ids(db, user_id)

    keywords = set()
    if read_ids:
        keywords = set(
            extract_keywords(
                article_service.get_titles(db, read_ids),
                count=settings.recommendation_keyword_count,
                min_length=settings.recommendation_min_word_length,
            )
        )

    candidates = article_service.get_candidate_rows(db, read_ids)
    ranked = rank_candidates(candidates, preferred, keywords)

    total = len(ranked)
    start = page_offset(page, limit)
    page_ids = [item.id for item in ranked[start : start + limit]]
    articles = article_service.get_articles_by_ids(db, page_ids)

    logger.debug(
        f"Recommendations for user {user_id}: {total} candidates, "
        f"{len(preferred)} categories, {len(keywords)} keywords"
    )

    return RecommendationResponse(
        recommendations=[ArticleResponse.model_validate(a) for a in articles],
        current_page=page,
        total_pages=total_pages(total, limit),
        total_recommendations=total,
    )
