"""
FastAPI dependencies for Newsdesk.

Database session, the application cache client, and the user identified by
the ``user_id`` cookie (authentication itself happens upstream).
"""

from typing import Optional

from fastapi import Cookie, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from src.web.cache import CacheClient
from src.web.database import get_db
from src.web.models import MAX_ID, User


def get_cache(request: Request) -> CacheClient:
    """
    Cache client opened by the application lifespan.

    Tests substitute an in-memory client with
    ``app.dependency_overrides[get_cache]``.
    """
    return request.app.state.cache


def get_current_user(
    user_id: Optional[str] = Cookie(None), db: Session = Depends(get_db)
) -> Optional[User]:
    """User named by the cookie, or None if absent, malformed or unknown."""
    if not user_id:
        return None

    try:
        user_id_int = int(user_id)
    except ValueError:
        return None

    if not 1 <= user_id_int <= MAX_ID:
        return None

    return db.query(User).filter(User.id == user_id_int).first()


def require_user(
    user_id: Optional[str] = Cookie(None), db: Session = Depends(get_db)
) -> User:
    """
    Like get_current_user, but answers 401 when there is no user.

    Example:
        @app.get("/api/articles/recommended")
        async def recommended(user: User = Depends(require_user)):
            ...
    """
    current = get_current_user(user_id, db)
    if current is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No active user session.",
        )
    return current


__all__ = ["get_db", "get_cache", "get_current_user", "require_user"]
