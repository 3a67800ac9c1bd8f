"""
Preference service for Newsdesk web application.

The user-profile half of recommendations: preferred categories (a membership
set replaced wholesale on update) and the set of read article ids
(idempotent add).
"""

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.web.exceptions import InvalidArgumentError
from src.web.models import CATEGORIES, ReadArticle, UserCategory
from src.web.services import article_service, user_service


# Custom Exceptions
class PreferenceValidationError(InvalidArgumentError):
    """Raised when preference data validation fails."""

    pass


def get_preferred_categories(db: Session, user_id: int) -> list[str]:
    """
    Get a user's preferred categories.

    Args:
        db: Database session
        user_id: User ID

    Returns:
        Category names, alphabetically (empty list if none)
    """
    rows = (
        db.query(UserCategory.category)
        .filter(UserCategory.user_id == user_id)
        .order_by(UserCategory.category)
        .all()
    )
    return [row.category for row in rows]


def normalize_categories(categories: list[str]) -> list[str]:
    """
    Trim, lower-case and dedupe category names.

    Returns:
        Category names, alphabetically

    Raises:
        PreferenceValidationError: If a category is not in the vocabulary
    """
    normalized = set()
    for category in categories:
        name = (category or "").strip().lower()
        if name not in CATEGORIES:
            raise PreferenceValidationError(
                f"Unknown category '{category}'. Expected one of: {', '.join(CATEGORIES)}"
            )
        normalized.add(name)
    return sorted(normalized)


def set_preferred_categories(
    db: Session, user_id: int, categories: list[str]
) -> list[str]:
    """
    Replace a user's preferred categories.

    Names are trimmed and lower-cased; duplicates collapse.

    Args:
        db: Database session
        user_id: User ID
        categories: New category set

    Returns:
        The stored category names, alphabetically

    Raises:
        UserNotFoundError: If user doesn't exist
        PreferenceValidationError: If a category is not in the vocabulary
    """
    user_service.get_user(db, user_id)
    normalized = normalize_categories(categories)

    db.query(UserCategory).filter(UserCategory.user_id == user_id).delete(
        synchronize_session=False
    )
    for name in normalized:
        db.add(UserCategory(user_id=user_id, category=name))

    db.commit()

    return normalized


def get_read_article_ids(db: Session, user_id: int) -> set[int]:
    """
    Get the ids of articles a user has read.

    Returns:
        Set of article ids (empty if none)
    """
    rows = db.query(ReadArticle.article_id).filter(ReadArticle.user_id == user_id).all()
    return {row.article_id for row in rows}


def add_read_article(db: Session, user_id: int, article_id: int) -> bool:
    """
    Add an article to a user's read set.

    Adding an article that is already in the set is a no-op.

    Args:
        db: Database session
        user_id: User ID
        article_id: Article ID

    Returns:
        True if the article was newly added, False if already present

    Raises:
        UserNotFoundError: If user doesn't exist
        ArticleNotFoundError: If article doesn't exist
    """
    user_service.get_user(db, user_id)
    article_service.get_article(db, article_id)

    existing = (
        db.query(ReadArticle)
        .filter(ReadArticle.user_id == user_id, ReadArticle.article_id == article_id)
        .first()
    )
    if existing:
        return False

    db.add(ReadArticle(user_id=user_id, article_id=article_id))
    try:
        db.commit()
    except IntegrityError:
        # A concurrent request added the same pair first
        db.rollback()
        return False

    return True
