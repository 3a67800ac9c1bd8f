"""
Unit tests for user routes.

Tests profile creation and session cookie, profile summary, preferences
and saved articles:
- POST /api/users
- GET/PUT /api/users/profile
- GET/PUT /api/users/preferences
- GET/POST /api/users/saved-articles
- DELETE /api/users/saved-articles/{article_id}
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from src.web.app import app
from src.web.database import get_db
from src.web.dependencies import get_cache
from src.web.services.user_service import create_user

# Fits a Python int but not a SQLite INTEGER column
HUGE_ID = 99999999999999999999


@pytest.fixture
def client(db: Session, cache):
    """Provide test client with database and cache overrides."""

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = lambda: cache
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def user_client(client: TestClient):
    """Test client after creating a profile (cookie set by the response)."""
    response = client.post(
        "/api/users",
        json={"username": "alice", "email": "alice@example.com", "categories": ["sports"]},
    )
    assert response.status_code == 201
    return client


class TestCreateUser:
    """Tests for POST /api/users."""

    def test_create_sets_cookie(self, client: TestClient):
        response = client.post(
            "/api/users", json={"username": "alice", "email": "Alice@Example.com"}
        )

        assert response.status_code == 201
        data = response.json()
        assert data["username"] == "alice"
        assert data["email"] == "alice@example.com"
        assert response.cookies.get("user_id") == str(data["id"])

    def test_duplicate_user(self, client: TestClient):
        payload = {"username": "alice", "email": "alice@example.com"}
        client.post("/api/users", json=payload)

        response = client.post("/api/users", json=payload)

        assert response.status_code == 409
        assert response.json()["error_type"] == "DuplicateUserError"

    def test_invalid_email(self, client: TestClient):
        response = client.post("/api/users", json={"username": "alice", "email": "nope"})

        assert response.status_code == 400

    def test_short_username_fails_validation(self, client: TestClient):
        response = client.post("/api/users", json={"username": "al", "email": "al@example.com"})

        assert response.status_code == 422

    def test_unknown_category(self, client: TestClient):
        response = client.post(
            "/api/users",
            json={"username": "bob", "email": "bob@example.com", "categories": ["weather"]},
        )

        assert response.status_code == 400
        assert client.post(
            "/api/users", json={"username": "bob", "email": "bob@example.com"}
        ).status_code == 201


class TestProfile:
    """Tests for GET /api/users/profile."""

    def test_requires_session(self, client: TestClient):
        response = client.get("/api/users/profile")

        assert response.status_code == 401
        assert response.json()["detail"] == "No active user session."

    def test_profile_summary(self, user_client: TestClient, make_article):
        article = make_article("Cup final tonight", category="sports")
        user_client.post(f"/api/articles/{article.id}/read")
        user_client.post("/api/users/saved-articles", json={"article_id": article.id})

        data = user_client.get("/api/users/profile").json()

        assert data["user"]["username"] == "alice"
        assert data["categories"] == ["sports"]
        assert data["read_count"] == 1
        assert data["saved_count"] == 1


class TestUpdateProfile:
    """Tests for PUT /api/users/profile."""

    def test_update_profile(self, user_client: TestClient):
        response = user_client.put(
            "/api/users/profile", json={"username": "alicia", "email": "Alicia@Example.com"}
        )

        assert response.status_code == 200
        assert response.json()["username"] == "alicia"
        assert response.json()["email"] == "alicia@example.com"
        assert user_client.get("/api/users/profile").json()["user"]["username"] == "alicia"

    def test_duplicate_username(self, user_client: TestClient, db: Session):
        create_user(db, username="bob", email="bob@example.com")

        response = user_client.put("/api/users/profile", json={"username": "bob"})

        assert response.status_code == 409
        assert response.json()["error_type"] == "DuplicateUserError"

    def test_invalid_email(self, user_client: TestClient):
        response = user_client.put("/api/users/profile", json={"email": "not-an-email"})

        assert response.status_code == 400
        assert response.json()["error_type"] == "UserValidationError"

    def test_requires_session(self, client: TestClient):
        response = client.put("/api/users/profile", json={"username": "ghost"})

        assert response.status_code == 401


class TestPreferences:
    """Tests for GET/PUT /api/users/preferences."""

    def test_get_preferences(self, user_client: TestClient):
        response = user_client.get("/api/users/preferences")

        assert response.json() == {"categories": ["sports"]}

    def test_replace_preferences(self, user_client: TestClient):
        response = user_client.put(
            "/api/users/preferences", json={"categories": ["Science", "health"]}
        )

        assert response.status_code == 200
        assert response.json() == {"categories": ["health", "science"]}
        assert user_client.get("/api/users/preferences").json() == {
            "categories": ["health", "science"]
        }

    def test_replace_invalidates_recommendations(self, user_client: TestClient, make_article):
        sports = make_article("Cup final tonight", category="sports", hours_ago=5)
        science = make_article("Research on bees", category="science", hours_ago=6)

        first = user_client.get("/api/articles/recommended").json()
        assert first["recommendations"][0]["id"] == sports.id

        user_client.put("/api/users/preferences", json={"categories": ["science"]})

        second = user_client.get("/api/articles/recommended").json()
        assert second["recommendations"][0]["id"] == science.id

    def test_unknown_category(self, user_client: TestClient):
        response = user_client.put("/api/users/preferences", json={"categories": ["weather"]})

        assert response.status_code == 400
        assert response.json()["error_type"] == "PreferenceValidationError"


class TestSavedArticles:
    """Tests for saved article endpoints."""

    def test_save_list_unsave(self, user_client: TestClient, make_article):
        article = make_article("Worth keeping")

        response = user_client.post("/api/users/saved-articles", json={"article_id": article.id})
        assert response.status_code == 201
        assert response.json()["article"]["title"] == "Worth keeping"

        saved = user_client.get("/api/users/saved-articles").json()
        assert [s["article_id"] for s in saved] == [article.id]

        response = user_client.delete(f"/api/users/saved-articles/{article.id}")
        assert response.status_code == 200
        assert user_client.get("/api/users/saved-articles").json() == []

    def test_save_missing_article(self, user_client: TestClient):
        response = user_client.post("/api/users/saved-articles", json={"article_id": 999})

        assert response.status_code == 404

    def test_unsave_not_saved(self, user_client: TestClient):
        response = user_client.delete("/api/users/saved-articles/999")

        assert response.status_code == 404
        assert response.json()["error_type"] == "SavedArticleNotFoundError"

    def test_unsave_id_beyond_integer_column_range(self, user_client: TestClient):
        response = user_client.delete(f"/api/users/saved-articles/{HUGE_ID}")

        assert response.status_code == 400
        assert response.json()["error_type"] == "ArticleValidationError"

    def test_save_id_beyond_integer_column_range(self, user_client: TestClient):
        response = user_client.post("/api/users/saved-articles", json={"article_id": HUGE_ID})

        assert response.status_code == 422
