"""
Saved article service for Newsdesk web application.

Bookmarks: save, unsave and list a user's saved articles.
"""

from sqlalchemy.orm import Session, joinedload

from src.web.exceptions import NotFoundError
from src.web.models import SavedArticle
from src.web.services import article_service, user_service


# Custom Exceptions
class SavedArticleNotFoundError(NotFoundError):
    """Raised when an article is not in the user's saved list."""

    pass


def save_article(db: Session, user_id: int, article_id: int) -> SavedArticle:
    """
    Save an article for a user.

    Saving an already-saved article returns the existing entry.

    Raises:
        UserNotFoundError: If user doesn't exist
        ArticleNotFoundError: If article doesn't exist
    """
    user_service.get_user(db, user_id)
    article_service.get_article(db, article_id)

    existing = (
        db.query(SavedArticle)
        .filter(SavedArticle.user_id == user_id, SavedArticle.article_id == article_id)
        .first()
    )
    if existing:
        return existing

    saved = SavedArticle(user_id=user_id, article_id=article_id)
    db.add(saved)
    db.commit()
    db.refresh(saved)

    return saved


def unsave_article(db: Session, user_id: int, article_id: int) -> bool:
    """
    Remove an article from a user's saved list.

    Raises:
        ArticleValidationError: If article_id is malformed
        SavedArticleNotFoundError: If the article is not saved
    """
    article_service.validate_article_id(article_id)

    saved = (
        db.query(SavedArticle)
        .filter(SavedArticle.user_id == user_id, SavedArticle.article_id == article_id)
        .first()
    )
    if not saved:
        raise SavedArticleNotFoundError(
            f"Article {article_id} not found in saved list of user {user_id}"
        )

    db.delete(saved)
    db.commit()

    return True


def get_saved_articles(db: Session, user_id: int) -> list[SavedArticle]:
    """
    Get a user's saved articles, most recently saved first.

    Eager loads the article to avoid N+1 queries when serializing.
    """
    return (
        db.query(SavedArticle)
        .options(joinedload(SavedArticle.article))
        .filter(SavedArticle.user_id == user_id)
        .order_by(SavedArticle.saved_at.desc(), SavedArticle.id.desc())
        .all()
    )
