"""
Cache key derivation for Newsdesk read operations.

Keys look like ``<operation>:<param1>:<param2>:...``. Every parameter that
affects the cached result is part of the key, absent optional parameters
render as ``all`` and every other value is percent-encoded, so a ``:`` or a
glob character inside a search query can never merge two keys or widen an
invalidation pattern.
"""

import re
from typing import Optional
from urllib.parse import quote

ABSENT = "all"

ARTICLES = "articles"
SEARCH = "search"
ARTICLE = "article"
RECOMMENDED = "recommended"

_WHITESPACE = re.compile(r"\s+")


def _render(value) -> str:
    if value is None:
        return ABSENT
    return quote(str(value), safe="")


def derive_key(operation: str, *params) -> str:
    """
    Build the cache key for an operation and its parameters.

    Args:
        operation: Operation name (one of the module constants)
        *params: Ordered parameters that determine the result

    Returns:
        Cache key string
    """
    return ":".join([operation, *(_render(p) for p in params)])


def key_family(operation: str, *prefix_params) -> str:
    """
    Glob pattern matching every key of an operation sharing a prefix.

    Example:
        key_family(RECOMMENDED, 7) -> "recommended:7:*"
    """
    return derive_key(operation, *prefix_params) + ":*"


def normalize_query(query: str) -> str:
    """Collapse whitespace and lower-case a free-text search query."""
    return _WHITESPACE.sub(" ", query).strip().lower()


def normalize_category(category: Optional[str]) -> Optional[str]:
    """Map the "no filter" spellings ("", "all", None) to None."""
    if category is None:
        return None
    category = category.strip().lower()
    if not category or category == ABSENT:
        return None
    return category


def articles_key(page: int, limit: int, category: Optional[str]) -> str:
    return derive_key(ARTICLES, page, limit, category)


def search_key(query: str, page: int, limit: int) -> str:
    return derive_key(SEARCH, query, page, limit)


def article_key(article_id: int) -> str:
    return derive_key(ARTICLE, article_id)


def recommended_key(user_id: int, page: int, limit: int) -> str:
    return derive_key(RECOMMENDED, user_id, page, limit)
