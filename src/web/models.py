"""SQLAlchemy ORM models for Newsdesk web application."""

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    CheckConstraint,
    UniqueConstraint,
    Index,
    func,
)
from sqlalchemy.orm import relationship, declarative_base

Base = declarative_base()

# Fixed categorization vocabulary assigned at ingestion time
CATEGORIES = (
    "technology",
    "business",
    "sports",
    "health",
    "science",
    "entertainment",
    "general",
)

_CATEGORY_LIST = ", ".join(f"'{c}'" for c in CATEGORIES)

# Largest value a SQLite INTEGER column holds; larger ids cannot exist
MAX_ID = 2**63 - 1


class Article(Base):
    """Article model - one row per unique source URL."""

    __tablename__ = "articles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    content = Column(Text, nullable=True)
    url = Column(String, nullable=False, unique=True)
    image_url = Column(String, nullable=True)
    source = Column(String, nullable=False)
    published_at = Column(DateTime, nullable=False)
    category = Column(String, nullable=False)
    author = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint(
            f"category IN ({_CATEGORY_LIST})", name="check_article_category"
        ),
        # Listing filters by category and always sorts by recency
        Index("idx_articles_category", "category"),
        Index("idx_articles_published_at", "published_at"),
    )

    # Relationships
    saved_by = relationship(
        "SavedArticle", back_populates="article", cascade="all, delete-orphan"
    )
    read_by = relationship(
        "ReadArticle", back_populates="article", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Article(id={self.id}, category='{self.category}', url='{self.url}')>"


class User(Base):
    """User model - the profile recommendations are computed for."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String, nullable=False, unique=True)
    email = Column(String, nullable=False, unique=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    # Relationships
    categories = relationship(
        "UserCategory", back_populates="user", cascade="all, delete-orphan"
    )
    read_articles = relationship(
        "ReadArticle", back_populates="user", cascade="all, delete-orphan"
    )
    saved_articles = relationship(
        "SavedArticle", back_populates="user", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}')>"


class UserCategory(Base):
    """UserCategory model - one preferred category of a user."""

    __tablename__ = "user_categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    category = Column(String, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "category", name="uq_user_category"),
        Index("idx_user_categories_user_id", "user_id"),
    )

    user = relationship("User", back_populates="categories")

    def __repr__(self):
        return f"<UserCategory(user_id={self.user_id}, category='{self.category}')>"


class ReadArticle(Base):
    """ReadArticle model - membership of an article in a user's read set."""

    __tablename__ = "read_articles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    article_id = Column(
        Integer, ForeignKey("articles.id", ondelete="CASCADE"), nullable=False
    )
    read_at = Column(DateTime, nullable=False, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "article_id", name="uq_read_article"),
        Index("idx_read_articles_user_id", "user_id"),
    )

    user = relationship("User", back_populates="read_articles")
    article = relationship("Article", back_populates="read_by")

    def __repr__(self):
        return f"<ReadArticle(user_id={self.user_id}, article_id={self.article_id})>"


class SavedArticle(Base):
    """SavedArticle model - an article bookmarked by a user."""

    __tablename__ = "saved_articles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    article_id = Column(
        Integer, ForeignKey("articles.id", ondelete="CASCADE"), nullable=False
    )
    saved_at = Column(DateTime, nullable=False, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "article_id", name="uq_saved_article"),
        Index("idx_saved_articles_user_id", "user_id"),
    )

    user = relationship("User", back_populates="saved_articles")
    article = relationship("Article", back_populates="saved_by")

    def __repr__(self):
        return f"<SavedArticle(user_id={self.user_id}, article_id={self.article_id})>"
