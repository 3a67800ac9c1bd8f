"""
Configuration for Newsdesk web application.

Environment-based settings using Pydantic BaseSettings.
"""
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Database
    database_url: str = "sqlite:///data/newsdesk.db"

    # Cache ("redis://host:port/db" for the shared cache, "memory://" for a
    # process-local one)
    cache_url: str = "redis://localhost:6379/0"
    cache_timeout_seconds: float = 0.25
    # Deletes walk the keyspace, so they get a longer bound than reads
    cache_invalidation_timeout_seconds: float = 5.0

    # Cache TTLs (seconds)
    cache_ttl_articles: int = 300  # 5 minutes
    cache_ttl_search: int = 900  # 15 minutes
    cache_ttl_article: int = 3600  # 1 hour
    cache_ttl_recommendations: int = 1800  # 30 minutes

    # Pagination
    default_page_size: int = 20
    max_page_size: int = 100

    # Recommendations
    recommendation_keyword_count: int = 10
    recommendation_min_word_length: int = 4

    # News ingestion
    news_api_key: Optional[str] = None
    news_api_url: str = "https://newsapi.org/v2/everything"
    news_api_query: str = "technology"
    news_api_lookback_days: int = 30
    news_api_timeout_seconds: int = 30

    # Scheduler
    scheduler_enabled: bool = True
    ingest_interval_minutes: int = 60

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    # Application
    app_title: str = "Newsdesk"


# Global settings instance
settings = Settings()
