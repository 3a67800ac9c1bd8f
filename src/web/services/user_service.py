"""
User service for Newsdesk web application.

User profile creation, lookup and updates with validation.
"""

import re
from typing import Optional

from sqlalchemy.orm import Session

from src.web.exceptions import ConflictError, InvalidArgumentError, NotFoundError
from src.web.models import MAX_ID, User

EMAIL_PATTERN = re.compile(r".+@.+\..+")


# Custom Exceptions
class UserNotFoundError(NotFoundError):
    """Raised when user is not found."""

    pass


class UserValidationError(InvalidArgumentError):
    """Raised when user data validation fails."""

    pass


class DuplicateUserError(ConflictError):
    """Raised when username or email is already taken."""

    pass


def validate_user_id(user_id) -> int:
    """
    Ensure user_id is a well-formed identifier.

    Raises:
        UserValidationError: If user_id is not a positive integer
    """
    if not isinstance(user_id, int) or isinstance(user_id, bool):
        raise UserValidationError("User ID must be an integer")

    if user_id < 1:
        raise UserValidationError("User ID must be positive")

    if user_id > MAX_ID:
        raise UserValidationError("User ID is out of range")

    return user_id


def _clean_username(username: Optional[str]) -> str:
    if username is None:
        raise UserValidationError("Username is required")

    username = username.strip()

    if len(username) < 3:
        raise UserValidationError("Username must be at least 3 characters")

    if len(username) > 50:
        raise UserValidationError("Username cannot exceed 50 characters")

    return username


def _clean_email(email: Optional[str]) -> str:
    if email is None or not EMAIL_PATTERN.fullmatch(email.strip()):
        raise UserValidationError("Please enter a valid email address")

    return email.strip().lower()


def _ensure_available(
    db: Session, username: str, email: str, exclude_id: Optional[int] = None
) -> None:
    """Raise DuplicateUserError if another user holds username or email."""
    query = db.query(User).filter((User.username == username) | (User.email == email))
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)

    if query.first():
        raise DuplicateUserError("Username or email is already registered")


def create_user(db: Session, username: Optional[str], email: Optional[str]) -> User:
    """
    Create a new user.

    Args:
        db: Database session
        username: Username (required, 3-50 chars, unique)
        email: Email address (required, unique, stored lower-cased)

    Returns:
        Created User object with generated ID

    Raises:
        UserValidationError: If validation fails
        DuplicateUserError: If username or email is taken
    """
    username = _clean_username(username)
    email = _clean_email(email)
    _ensure_available(db, username, email)

    user = User(username=username, email=email)

    db.add(user)
    db.commit()
    db.refresh(user)

    return user


def update_user(
    db: Session,
    user_id: int,
    username: Optional[str] = None,
    email: Optional[str] = None,
) -> User:
    """
    Update username and/or email.

    Fields left as None keep their current value; provided values go
    through the same checks as create_user.

    Raises:
        UserNotFoundError: If user doesn't exist
        UserValidationError: If validation fails
        DuplicateUserError: If another user holds the username or email
    """
    user = get_user(db, user_id)

    new_username = _clean_username(username) if username is not None else user.username
    new_email = _clean_email(email) if email is not None else user.email
    _ensure_available(db, new_username, new_email, exclude_id=user.id)

    user.username = new_username
    user.email = new_email

    db.commit()
    db.refresh(user)

    return user


def get_user(db: Session, user_id: int) -> User:
    """
    Retrieve user by ID.

    Args:
        db: Database session
        user_id: User ID to retrieve

    Returns:
        User object

    Raises:
        UserNotFoundError: If user doesn't exist
        UserValidationError: If user_id is malformed
    """
    validate_user_id(user_id)

    user = db.query(User).filter(User.id == user_id).first()

    if user is None:
        raise UserNotFoundError(f"User with ID {user_id} not found")

    return user
