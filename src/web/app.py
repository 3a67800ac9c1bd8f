"""FastAPI application for Newsdesk.

Article listings, search, per-user recommendations and profile endpoints.
Read endpoints go through the feed service's read-through cache.
"""

import os
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Depends, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.orm import Session

from src.utils.logger import setup_logging
from src.web.cache import CacheClient, create_cache_client
from src.web.config import settings
from src.web.database import get_db, init_db
from src.web.dependencies import get_cache, require_user
from src.web.exceptions import NewsdeskError
from src.web.models import User
from src.web.schemas import (
    ArticleListResponse,
    ArticleResponse,
    MessageResponse,
    PreferencesResponse,
    PreferencesUpdate,
    ProfileResponse,
    RecommendationResponse,
    SaveArticleRequest,
    SavedArticleResponse,
    SearchResponse,
    UserCreate,
    UserResponse,
    UserUpdate,
)
from src.web.services import (
    feed_service,
    preference_service,
    saved_article_service,
    scheduler_service,
    user_service,
)
from src.web.error_handlers import (
    global_exception_handler,
    service_exception_handler,
    validation_exception_handler,
)

setup_logging(settings.log_level, settings.log_file)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle (startup/shutdown)."""
    # Startup
    logger.info("Starting Newsdesk web application")

    # Disable scheduler and table creation during tests to avoid
    # interference with test fixtures
    is_testing = os.getenv("TESTING", "false").lower() == "true"

    app.state.cache = create_cache_client(
        settings.cache_url,
        timeout=settings.cache_timeout_seconds,
        invalidation_timeout=settings.cache_invalidation_timeout_seconds,
    )

    if not is_testing:
        init_db()

        config = {
            "SCHEDULER_ENABLED": settings.scheduler_enabled,
            "INGEST_INTERVAL_MINUTES": settings.ingest_interval_minutes,
        }
        scheduler_service.start_scheduler(config, app.state.cache)

    yield

    # Shutdown
    logger.info("Shutting down Newsdesk web application")
    if not is_testing:
        scheduler_service.stop_scheduler()
    await app.state.cache.close()


# Initialize FastAPI app with lifespan
app = FastAPI(title=settings.app_title, lifespan=lifespan)

# Register exception handlers
app.add_exception_handler(NewsdeskError, service_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)


# Articles


@app.get("/api/articles", response_model=ArticleListResponse)
async def list_articles(
    page: int = 1,
    limit: int = settings.default_page_size,
    category: Optional[str] = None,
    db: Session = Depends(get_db),
    cache: CacheClient = Depends(get_cache),
):
    """Paginated article listing, newest first."""
    return await feed_service.list_articles(db, cache, page, limit, category)


@app.get("/api/articles/search", response_model=SearchResponse)
async def search_articles(
    query: str = "",
    page: int = 1,
    limit: int = settings.default_page_size,
    db: Session = Depends(get_db),
    cache: CacheClient = Depends(get_cache),
):
    """Full-text search over titles and descriptions."""
    return await feed_service.search_articles(db, cache, query, page, limit)


@app.get("/api/articles/recommended", response_model=RecommendationResponse)
async def recommended_articles(
    page: int = 1,
    limit: int = settings.default_page_size,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
    cache: CacheClient = Depends(get_cache),
):
    """Personalized recommendations for the current user."""
    return await feed_service.recommend(db, cache, user.id, page, limit)


@app.get("/api/articles/{article_id}", response_model=ArticleResponse)
async def get_article(
    article_id: int,
    db: Session = Depends(get_db),
    cache: CacheClient = Depends(get_cache),
):
    """Single article."""
    return await feed_service.get_article(db, cache, article_id)


@app.post("/api/articles/{article_id}/read", response_model=MessageResponse)
async def mark_article_read(
    article_id: int,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
    cache: CacheClient = Depends(get_cache),
):
    """Mark an article as read for the current user."""
    await feed_service.mark_read(db, cache, user.id, article_id)
    return {"message": "Article marked as read"}


@app.delete("/api/articles/{article_id}", response_model=MessageResponse)
async def delete_article(
    article_id: int,
    db: Session = Depends(get_db),
    cache: CacheClient = Depends(get_cache),
):
    """Delete an article and every saved/read reference to it."""
    await feed_service.delete_article(db, cache, article_id)
    return {"message": "Article deleted successfully"}


# Users


@app.post("/api/users", status_code=status.HTTP_201_CREATED)
async def create_user(profile_data: UserCreate, db: Session = Depends(get_db)):
    """Create a profile with optional preferred categories and set the session cookie."""
    # Reject bad categories before the user row exists
    categories = preference_service.normalize_categories(profile_data.categories)

    user = user_service.create_user(
        db, username=profile_data.username, email=profile_data.email
    )

    if categories:
        preference_service.set_preferred_categories(db, user.id, categories)

    response = JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=UserResponse.model_validate(user).model_dump(mode="json"),
    )
    response.set_cookie(key="user_id", value=str(user.id))
    return response


@app.get("/api/users/profile", response_model=ProfileResponse)
async def get_profile(user: User = Depends(require_user), db: Session = Depends(get_db)):
    """Profile of the current user."""
    return ProfileResponse(
        user=UserResponse.model_validate(user),
        categories=preference_service.get_preferred_categories(db, user.id),
        read_count=len(preference_service.get_read_article_ids(db, user.id)),
        saved_count=len(saved_article_service.get_saved_articles(db, user.id)),
    )


@app.put("/api/users/profile", response_model=UserResponse)
async def update_profile(
    profile_data: UserUpdate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Change the current user's username and/or email."""
    return user_service.update_user(
        db, user.id, username=profile_data.username, email=profile_data.email
    )


@app.get("/api/users/preferences", response_model=PreferencesResponse)
async def get_preferences(
    user: User = Depends(require_user), db: Session = Depends(get_db)
):
    """Preferred categories of the current user."""
    return {"categories": preference_service.get_preferred_categories(db, user.id)}


@app.put("/api/users/preferences", response_model=PreferencesResponse)
async def update_preferences(
    preferences: PreferencesUpdate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
    cache: CacheClient = Depends(get_cache),
):
    """Replace the preferred categories of the current user."""
    categories = await feed_service.update_preferences(
        db, cache, user.id, preferences.categories
    )
    return {"categories": categories}


@app.get("/api/users/saved-articles", response_model=list[SavedArticleResponse])
async def get_saved_articles(
    user: User = Depends(require_user), db: Session = Depends(get_db)
):
    """Saved articles of the current user, most recent first."""
    return saved_article_service.get_saved_articles(db, user.id)


@app.post(
    "/api/users/saved-articles",
    response_model=SavedArticleResponse,
    status_code=status.HTTP_201_CREATED,
)
async def save_article(
    request_data: SaveArticleRequest,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Save an article for the current user."""
    return saved_article_service.save_article(db, user.id, request_data.article_id)


@app.delete("/api/users/saved-articles/{article_id}", response_model=MessageResponse)
async def unsave_article(
    article_id: int,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Remove an article from the current user's saved list."""
    saved_article_service.unsave_article(db, user.id, article_id)
    return {"message": "Article unsaved successfully"}


# Health


@app.get("/health")
async def health(cache: CacheClient = Depends(get_cache)):
    """Liveness plus cache hit/miss counters."""
    return {"status": "ok", "cache": cache.stats()}


@app.get("/health/scheduler")
async def scheduler_health():
    """Ingestion scheduler state and the next run of each job."""
    return scheduler_service.get_status()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=8000)
