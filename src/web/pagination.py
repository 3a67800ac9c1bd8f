"""
Pagination helpers shared by listing, search and recommendation reads.
"""

import math

from src.web.config import settings
from src.web.exceptions import InvalidArgumentError
from src.web.models import MAX_ID


class PaginationError(InvalidArgumentError):
    """Raised when page or limit is out of range."""

    pass


def validate_page_params(page: int, limit: int) -> None:
    """
    Validate page/limit arguments.

    Args:
        page: 1-based page number
        limit: Page size

    Raises:
        PaginationError: If page < 1, limit < 1, limit exceeds max_page_size
            or the page starts beyond the storable row range
    """
    if not isinstance(page, int) or isinstance(page, bool) or page < 1:
        raise PaginationError("Page must be a positive integer")

    if not isinstance(limit, int) or isinstance(limit, bool) or limit < 1:
        raise PaginationError("Limit must be a positive integer")

    if limit > settings.max_page_size:
        raise PaginationError(f"Limit cannot exceed {settings.max_page_size}")

    if page_offset(page, limit) > MAX_ID:
        raise PaginationError("Page is out of range")


def page_offset(page: int, limit: int) -> int:
    """Number of items to skip before the given page."""
    return (page - 1) * limit


def total_pages(total: int, limit: int) -> int:
    """Page count for ``total`` items at ``limit`` per page."""
    return math.ceil(total / limit)
