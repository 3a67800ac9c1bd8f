"""
Unit tests for recommendation_service.

Tests keyword extraction, scoring, ranking order, exclusion of read
articles and pagination consistency.
"""

from collections import namedtuple
from datetime import datetime

import pytest
from sqlalchemy.orm import Session

from src.web.pagination import PaginationError
from src.web.services import preference_service, recommendation_service
from src.web.services.recommendation_service import (
    ScoredArticle,
    extract_keywords,
    rank_candidates,
    score_article,
)
from src.web.services.user_service import (
    UserNotFoundError,
    UserValidationError,
    create_user,
)

Row = namedtuple("Row", "id title category published_at")


@pytest.fixture
def user(db: Session):
    return create_user(db, username="alice", email="alice@example.com")


class TestExtractKeywords:
    def test_most_frequent_first(self):
        titles = [
            "Rust compiler release",
            "Rust async runtime",
            "Compiler internals explained",
            "Rust borrow checker",
        ]

        keywords = extract_keywords(titles, count=2)

        assert keywords == ["rust", "compiler"]

    def test_short_words_ignored(self):
        assert extract_keywords(["AI and ML are big"], min_length=4) == []

    def test_ties_are_alphabetical(self):
        assert extract_keywords(["zeta beta alpha"], count=2) == ["alpha", "beta"]

    def test_case_folded(self):
        assert extract_keywords(["Python PYTHON python"]) == ["python"]

    def test_no_titles(self):
        assert extract_keywords([]) == []


class TestScoreArticle:
    def test_preferred_category_weight(self):
        assert score_article("Anything", "sports", {"sports"}, set()) == 2

    def test_keyword_hits_counted_once_each(self):
        score = score_article("Rust rust compiler news", "general", set(), {"rust", "compiler"})

        assert score == 2

    def test_combined(self):
        score = score_article("Rust release", "technology", {"technology"}, {"rust"})

        assert score == 3

    def test_no_signal(self):
        assert score_article("Weather today", "general", {"sports"}, {"rust"}) == 0


class TestRankCandidates:
    def test_score_then_recency_then_id(self):
        t = datetime(2024, 1, 1)
        later = datetime(2024, 1, 2)
        candidates = [
            Row(1, "Plain news", "general", later),
            Row(2, "Sports final", "sports", t),
            Row(3, "Other news", "general", t),
            Row(4, "More news", "general", t),
        ]

        ranked = rank_candidates(candidates, {"sports"}, set())

        assert [item.id for item in ranked] == [2, 1, 4, 3]
        assert ranked[0] == ScoredArticle(2, t, 2)


class TestRecommend:
    def test_preferred_category_scenario(self, db: Session, user, make_article):
        """3 tech + 2 general articles, technology preferred, page 1 of 2."""
        tech_old = make_article("Chip design trends", category="technology", hours_ago=5)
        tech_mid = make_article("Cloud outage report", category="technology", hours_ago=3)
        tech_new = make_article("Browser update ships", category="technology", hours_ago=1)
        make_article("Local bakery opens", category="general", hours_ago=0)
        make_article("Town fair weekend", category="general", hours_ago=2)
        preference_service.set_preferred_categories(db, user.id, ["technology"])

        response = recommendation_service.recommend(db, user.id, 1, 2)

        assert [a.id for a in response.recommendations] == [tech_new.id, tech_mid.id]
        assert response.total_recommendations == 5
        assert response.total_pages == 3
        assert response.current_page == 1

        last_page = recommendation_service.recommend(db, user.id, 2, 2)
        assert last_page.recommendations[0].id == tech_old.id

    def test_read_articles_are_excluded(self, db: Session, user, make_article):
        read = make_article("Read already")
        unread = make_article("Still unread", hours_ago=1)
        preference_service.add_read_article(db, user.id, read.id)

        response = recommendation_service.recommend(db, user.id, 1, 10)

        assert [a.id for a in response.recommendations] == [unread.id]
        assert response.total_recommendations == 1

    def test_keywords_from_read_titles_boost(self, db: Session, user, make_article):
        read = make_article("Python packaging guide", hours_ago=10)
        boosted = make_article("Python typing tips", hours_ago=9)
        newer = make_article("Unrelated headline", hours_ago=0)
        preference_service.add_read_article(db, user.id, read.id)

        response = recommendation_service.recommend(db, user.id, 1, 10)

        assert [a.id for a in response.recommendations] == [boosted.id, newer.id]

    def test_cold_start_is_newest_first(self, db: Session, user, make_article):
        older = make_article("Older", hours_ago=4)
        newer = make_article("Newer", hours_ago=1)

        response = recommendation_service.recommend(db, user.id, 1, 10)

        assert [a.id for a in response.recommendations] == [newer.id, older.id]

    def test_deterministic(self, db: Session, user, make_article):
        for i in range(6):
            make_article(f"Same time story {i}", category="sports", hours_ago=1)
        preference_service.set_preferred_categories(db, user.id, ["sports"])

        first = recommendation_service.recommend(db, user.id, 1, 6)
        second = recommendation_service.recommend(db, user.id, 1, 6)

        assert first == second

    def test_pages_partition_the_ranking(self, db: Session, user, make_article):
        for i in range(7):
            make_article(f"Story number {i}", hours_ago=i)

        full = recommendation_service.recommend(db, user.id, 1, 7)
        pages = [recommendation_service.recommend(db, user.id, p, 3) for p in (1, 2, 3)]

        paged_ids = [a.id for page in pages for a in page.recommendations]
        assert paged_ids == [a.id for a in full.recommendations]
        assert len(paged_ids) == len(set(paged_ids)) == 7
        assert all(page.total_recommendations == 7 for page in pages)
        assert pages[0].total_pages == 3

    def test_page_past_end_is_empty(self, db: Session, user, make_article):
        make_article("Only one")

        response = recommendation_service.recommend(db, user.id, 5, 10)

        assert response.recommendations == []
        assert response.total_recommendations == 1

    def test_no_articles(self, db: Session, user):
        response = recommendation_service.recommend(db, user.id, 1, 20)

        assert response.recommendations == []
        assert response.total_pages == 0

    def test_unknown_user(self, db: Session):
        with pytest.raises(UserNotFoundError):
            recommendation_service.recommend(db, 99, 1, 20)

    def test_malformed_user_id(self, db: Session):
        with pytest.raises(UserValidationError):
            recommendation_service.recommend(db, 0, 1, 20)

    def test_bad_pagination(self, db: Session, user):
        with pytest.raises(PaginationError):
            recommendation_service.recommend(db, user.id, 0, 20)
