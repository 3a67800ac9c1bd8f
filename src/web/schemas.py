"""
Pydantic schemas for Newsdesk web API.

Request/response models for FastAPI endpoints with validation. The list
responses double as the serialization schemas of cached payloads:
``model_validate_json(model_dump_json(x)) == x`` for every valid value.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional
from datetime import datetime

from src.web.models import MAX_ID


# Article Schemas
class ArticleResponse(BaseModel):
    """Response schema for article data."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: Optional[str] = None
    content: Optional[str] = None
    url: str
    image_url: Optional[str] = None
    source: str
    published_at: datetime
    category: str
    author: Optional[str] = None


class ArticleListResponse(BaseModel):
    """Paginated article listing."""

    articles: list[ArticleResponse]
    current_page: int
    total_pages: int
    total_articles: int


class SearchResponse(BaseModel):
    """Paginated search results, most relevant first."""

    results: list[ArticleResponse]
    current_page: int
    total_pages: int
    total_results: int


class RecommendationResponse(BaseModel):
    """Paginated, ranked recommendations for one user."""

    recommendations: list[ArticleResponse]
    current_page: int
    total_pages: int
    total_recommendations: int


# User Schemas
class UserCreate(BaseModel):
    """Request schema for creating a new user."""

    username: str = Field(..., min_length=3, max_length=50)
    email: str = Field(..., min_length=3, max_length=254)
    categories: list[str] = Field(default_factory=list)

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        """Ensure username is not just whitespace."""
        if not v.strip():
            raise ValueError("Username cannot be empty or whitespace")
        return v.strip()


class UserUpdate(BaseModel):
    """Request schema for updating a profile; omitted fields are unchanged."""

    username: Optional[str] = Field(None, min_length=3, max_length=50)
    email: Optional[str] = Field(None, min_length=3, max_length=254)


class UserResponse(BaseModel):
    """Response schema for user data."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    created_at: datetime


class ProfileResponse(BaseModel):
    """Response schema for complete profile data."""

    user: UserResponse
    categories: list[str]
    read_count: int
    saved_count: int


# Preference Schemas
class PreferencesUpdate(BaseModel):
    """Request schema for replacing preferred categories."""

    categories: list[str] = Field(default_factory=list)


class PreferencesResponse(BaseModel):
    """Response schema for preferences."""

    categories: list[str]


# Saved Article Schemas
class SaveArticleRequest(BaseModel):
    """Request schema for saving an article."""

    article_id: int = Field(..., ge=1, le=MAX_ID)


class SavedArticleResponse(BaseModel):
    """Response schema for a saved article."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    article_id: int
    saved_at: datetime
    article: ArticleResponse


class MessageResponse(BaseModel):
    """Simple acknowledgement."""

    message: str


# Error Response Schema
class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str
    error_type: Optional[str] = None
