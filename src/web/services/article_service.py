"""
Article service for Newsdesk web application.

The article store: lookups, filtered listings, full-text search,
upsert-by-URL for ingestion and admin deletion.

Listing and counting share one filter builder so a page and its total are
always computed against the same predicate.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import case, or_
from sqlalchemy.orm import Session

from src.web.exceptions import InvalidArgumentError, NotFoundError
from src.web.models import Article, CATEGORIES, MAX_ID


# Custom Exceptions
class ArticleNotFoundError(NotFoundError):
    """Raised when article is not found."""

    pass


class ArticleValidationError(InvalidArgumentError):
    """Raised when article data validation fails."""

    pass


REQUIRED_FIELDS = ("title", "url", "source", "published_at", "category")
UPDATABLE_FIELDS = (
    "title",
    "description",
    "content",
    "image_url",
    "source",
    "published_at",
    "category",
    "author",
)


@dataclass(frozen=True)
class ArticleFilter:
    """Predicate for article listings.

    category: restrict to one category (None for all)
    exclude_ids: article ids to leave out
    """

    category: Optional[str] = None
    exclude_ids: frozenset = frozenset()

    def clauses(self) -> list:
        clauses = []
        if self.category is not None:
            clauses.append(Article.category == self.category)
        if self.exclude_ids:
            clauses.append(Article.id.not_in(sorted(self.exclude_ids)))
        return clauses


def validate_article_id(article_id) -> int:
    """
    Ensure article_id is a well-formed identifier.

    Raises:
        ArticleValidationError: If article_id is not a positive integer in
            the storable id range
    """
    if not isinstance(article_id, int) or isinstance(article_id, bool) or article_id < 1:
        raise ArticleValidationError("Article ID must be a positive integer")

    if article_id > MAX_ID:
        raise ArticleValidationError("Article ID is out of range")

    return article_id


def validate_category(category: str) -> str:
    """
    Ensure category belongs to the categorization vocabulary.

    Raises:
        ArticleValidationError: If category is unknown
    """
    if category not in CATEGORIES:
        raise ArticleValidationError(
            f"Unknown category '{category}'. Expected one of: {', '.join(CATEGORIES)}"
        )
    return category


def get_article(db: Session, article_id: int) -> Article:
    """
    Retrieve article by ID.

    Raises:
        ArticleNotFoundError: If article doesn't exist
        ArticleValidationError: If article_id is malformed
    """
    validate_article_id(article_id)

    article = db.query(Article).filter(Article.id == article_id).first()

    if article is None:
        raise ArticleNotFoundError(f"Article with ID {article_id} not found")

    return article


def find_articles(
    db: Session, article_filter: ArticleFilter, skip: int, limit: int
) -> list[Article]:
    """
    List articles matching a filter, newest first.

    Ties on published_at are broken by id so paging is stable.
    """
    return (
        db.query(Article)
        .filter(*article_filter.clauses())
        .order_by(Article.published_at.desc(), Article.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


def count_articles(db: Session, article_filter: ArticleFilter) -> int:
    """Count articles matching the same filter find_articles uses."""
    return db.query(Article).filter(*article_filter.clauses()).count()


def _search_terms(query: str) -> list[str]:
    return [term for term in query.split() if term]


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _search_clauses(terms: list[str]):
    """Match and relevance expressions for a list of search terms.

    A title hit weighs 2, a description hit 1, summed over terms.
    """
    matches = []
    relevance = []
    for term in terms:
        pattern = f"%{_escape_like(term)}%"
        in_title = Article.title.ilike(pattern, escape="\\")
        in_description = Article.description.ilike(pattern, escape="\\")
        matches.append(or_(in_title, in_description))
        relevance.append(case((in_title, 2), else_=0))
        relevance.append(case((in_description, 1), else_=0))
    return or_(*matches), sum(relevance[1:], relevance[0])


def search_articles(db: Session, query: str, skip: int, limit: int) -> list[Article]:
    """
    Full-text search over title and description, most relevant first.

    An article matches when any query term appears in its title or
    description (case-insensitive). Equal relevance falls back to recency.
    """
    terms = _search_terms(query)
    if not terms:
        return []

    match, relevance = _search_clauses(terms)
    return (
        db.query(Article)
        .filter(match)
        .order_by(relevance.desc(), Article.published_at.desc(), Article.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


def count_search_results(db: Session, query: str) -> int:
    """Count articles matching the same predicate search_articles uses."""
    terms = _search_terms(query)
    if not terms:
        return 0

    match, _ = _search_clauses(terms)
    return db.query(Article).filter(match).count()


def get_candidate_rows(db: Session, exclude_ids: Iterable[int]) -> list[tuple]:
    """
    Lightweight (id, title, category, published_at) rows for scoring.

    Args:
        db: Database session
        exclude_ids: Article ids to leave out (the user's read set)
    """
    article_filter = ArticleFilter(exclude_ids=frozenset(exclude_ids))
    return (
        db.query(Article.id, Article.title, Article.category, Article.published_at)
        .filter(*article_filter.clauses())
        .all()
    )


def get_articles_by_ids(db: Session, article_ids: list[int]) -> list[Article]:
    """Load articles and return them in the order of article_ids."""
    if not article_ids:
        return []
    rows = db.query(Article).filter(Article.id.in_(article_ids)).all()
    by_id = {article.id: article for article in rows}
    return [by_id[i] for i in article_ids if i in by_id]


def get_titles(db: Session, article_ids: Iterable[int]) -> list[str]:
    """Titles of the given articles (missing ids are ignored)."""
    article_ids = list(article_ids)
    if not article_ids:
        return []
    rows = (
        db.query(Article.title)
        .filter(Article.id.in_(article_ids))
        .order_by(Article.id)
        .all()
    )
    return [row.title for row in rows]


def upsert_article_by_url(db: Session, data: dict) -> Article:
    """
    Insert an article, or update the existing one with the same URL.

    Args:
        db: Database session
        data: Article fields; title, url, source, published_at and category
            are required

    Returns:
        The stored Article

    Raises:
        ArticleValidationError: If a required field is missing or invalid
    """
    for field in REQUIRED_FIELDS:
        if not data.get(field):
            raise ArticleValidationError(f"Article field '{field}' is required")

    if not isinstance(data["published_at"], datetime):
        raise ArticleValidationError("Article field 'published_at' must be a datetime")

    validate_category(data["category"])

    article = db.query(Article).filter(Article.url == data["url"]).first()

    if article is None:
        article = Article(url=data["url"])
        db.add(article)

    for field in UPDATABLE_FIELDS:
        if field in data:
            setattr(article, field, data[field])

    db.commit()
    db.refresh(article)

    return article


def delete_article(db: Session, article_id: int) -> bool:
    """
    Delete article by ID.

    Cascades to saved_articles and read_articles.

    Returns:
        True if article was deleted

    Raises:
        ArticleNotFoundError: If article doesn't exist
    """
    article = get_article(db, article_id)

    db.delete(article)
    db.commit()

    return True
