"""Tests for RatingService."""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from models.rating import Rating
from schemas.rating import CategoryRatings, RatingCreate, RatingSource, RatingUpdate, UsageContext
from services.exceptions import (
    RatingConflictError,
    RatingNotFoundError,
    RatingPermissionError,
)
from services.rating_service import RatingService, total_pages
from tests.fixtures import create_rating


def _create_body(**kwargs) -> RatingCreate:
    values = {
        "rating": 5,
        "title": "Great tool",
        "review": "Turns my spreadsheets into charts in seconds.",
    }
    values.update(kwargs)
    return RatingCreate(**values)


class TestSubmit:
    """Tests for RatingService.submit."""

    def test_creates_pending_rating(self, db):
        rating = RatingService.submit(
            db,
            "user-1",
            _create_body(
                categories=CategoryRatings(usability=5, performance=4),
                usage_context=UsageContext(industry="Finance", company_size="small"),
            ),
            author_name="Ada Lovelace",
            ip_address="10.0.0.1",
            user_agent="pytest",
        )

        assert rating.id is not None
        assert rating.status == "pending"
        assert rating.source == "web"
        assert rating.author_name == "Ada Lovelace"
        assert rating.category_ratings == {"usability": 5, "performance": 4}
        assert rating.avg_category_rating == 4.5
        assert rating.industry == "Finance"
        assert rating.company_size == "small"
        assert rating.ip_address == "10.0.0.1"

    def test_records_source(self, db):
        rating = RatingService.submit(db, "user-1", _create_body(), source=RatingSource.popup)
        assert rating.source == "popup"

    def test_one_rating_per_user(self, db):
        RatingService.submit(db, "user-1", _create_body())
        with pytest.raises(RatingConflictError):
            RatingService.submit(db, "user-1", _create_body(rating=1))
        assert db.query(Rating).count() == 1

    def test_concurrent_duplicate_maps_to_conflict(self, db):
        """Losing the unique constraint race is reported as a conflict."""
        create_rating(db, "user-1")
        with patch.object(RatingService, "has_rating", return_value=False):
            with pytest.raises(RatingConflictError):
                RatingService.submit(db, "user-1", _create_body())
        assert db.query(Rating).count() == 1

    def test_has_rating(self, db):
        assert RatingService.has_rating(db, "user-1") is False
        create_rating(db, "user-1", status="rejected")
        assert RatingService.has_rating(db, "user-1") is True


class TestUpdateOwn:
    """Tests for RatingService.update_own."""

    def test_updates_and_resets_moderation(self, db, approved_rating):
        rating = RatingService.update_own(
            db,
            approved_rating.user_id,
            RatingUpdate(rating=4, review="Still great, a little slower lately."),
        )
        db.commit()

        assert rating.rating == 4
        assert rating.review == "Still great, a little slower lately."
        assert rating.title == "Great tool"
        assert rating.status == "pending"
        assert rating.reviewed_by is None

    def test_clears_usage_context_when_sent(self, db, approved_rating):
        rating = RatingService.update_own(
            db, approved_rating.user_id, RatingUpdate(usage_context=UsageContext(industry="Retail"))
        )
        assert rating.industry == "Retail"
        assert rating.primary_use_case is None

    def test_missing_rating(self, db):
        with pytest.raises(RatingNotFoundError):
            RatingService.update_own(db, "nobody", RatingUpdate(rating=3))


class TestMarkHelpful:
    """Tests for RatingService.mark_helpful."""

    def test_increments_votes(self, db, approved_rating):
        RatingService.mark_helpful(db, approved_rating.id, "voter-1")
        rating = RatingService.mark_helpful(db, approved_rating.id, "voter-2")
        assert rating.helpful_votes == 2

    def test_own_rating_rejected(self, db, approved_rating):
        with pytest.raises(RatingPermissionError):
            RatingService.mark_helpful(db, approved_rating.id, approved_rating.user_id)

    def test_missing_rating(self, db):
        with pytest.raises(RatingNotFoundError):
            RatingService.mark_helpful(db, "missing", "voter-1")


class TestListPublic:
    """Tests for RatingService.list_public and featured."""

    def test_only_approved_public(self, db, approved_rating, pending_rating):
        create_rating(db, "private", status="approved", is_public=False)
        create_rating(db, "rejected", status="rejected")

        result = RatingService.list_public(db, min_rating=1)
        assert [r.id for r in result] == [approved_rating.id]

    def test_min_rating_and_industry(self, db):
        low = create_rating(db, "u1", status="approved", rating=2, industry="Retail")
        high = create_rating(db, "u2", status="approved", rating=5, industry="Retail")
        create_rating(db, "u3", status="approved", rating=5, industry="Finance")

        assert [r.id for r in RatingService.list_public(db, min_rating=4, industry="Retail")] == [high.id]
        assert {r.id for r in RatingService.list_public(db, min_rating=1, industry="Retail")} == {low.id, high.id}

    def test_most_helpful_first(self, db):
        first = create_rating(db, "u1", status="approved", helpful_votes=1)
        second = create_rating(db, "u2", status="approved", helpful_votes=7)

        assert [r.id for r in RatingService.list_public(db)] == [second.id, first.id]

    def test_featured_excludes_low_ratings(self, db):
        create_rating(db, "u1", status="approved", rating=3)
        good = create_rating(db, "u2", status="approved", rating=4)

        assert [r.id for r in RatingService.featured(db, limit=3)] == [good.id]


class TestSummaryAndStats:
    """Tests for RatingService.summary and stats."""

    def test_empty(self, db):
        assert RatingService.summary(db) == {
            "avg_rating": 0.0,
            "total_ratings": 0,
            "distribution": {1: 0, 2: 0, 3: 0, 4: 0, 5: 0},
        }

    def test_distribution_and_average(self, db, pending_rating):
        for i, stars in enumerate([5, 5, 4, 2]):
            create_rating(db, f"u{i}", status="approved", rating=stars)

        summary = RatingService.summary(db)

        assert summary["total_ratings"] == 4
        assert summary["avg_rating"] == 4.0
        assert summary["distribution"] == {1: 0, 2: 1, 3: 0, 4: 1, 5: 2}

    def test_average_rounded(self, db):
        for i, stars in enumerate([5, 4, 4]):
            create_rating(db, f"u{i}", status="approved", rating=stars)
        assert RatingService.summary(db)["avg_rating"] == 4.3

    def test_stats_recent_and_verified(self, db):
        now = datetime(2026, 3, 1, tzinfo=timezone.utc)
        create_rating(db, "u1", status="approved", created_at=now - timedelta(days=2), is_verified=True)
        create_rating(db, "u2", status="approved", created_at=now - timedelta(days=45))

        stats = RatingService.stats(db, now=now)

        assert stats["total_ratings"] == 2
        assert stats["recent_ratings"] == 1
        assert stats["verified_ratings"] == 1
        assert stats["last_updated"] == now


class TestModeration:
    """Tests for list_pending, approve and reject."""

    def test_list_pending_paged(self, db):
        base = datetime(2026, 3, 1, tzinfo=timezone.utc)
        for i in range(5):
            create_rating(db, f"u{i}", created_at=base + timedelta(minutes=i))
        create_rating(db, "done", status="approved")

        items, total = RatingService.list_pending(db, page=2, limit=2)

        assert total == 5
        assert [r.user_id for r in items] == ["u2", "u1"]

    def test_approve(self, db, pending_rating):
        rating = RatingService.approve(db, pending_rating.id, "admin-1")
        assert rating.status == "approved"
        assert rating.reviewed_by == "admin-1"
        assert rating.reviewed_at is not None

    def test_reject_keeps_reason(self, db, pending_rating):
        rating = RatingService.reject(db, pending_rating.id, "admin-1", "Spam")
        assert rating.status == "rejected"
        assert rating.admin_notes == "Spam"

    def test_missing(self, db):
        with pytest.raises(RatingNotFoundError):
            RatingService.approve(db, "missing", "admin-1")


class TestTotalPages:
    def test_total_pages(self):
        assert total_pages(0, 20) == 0
        assert total_pages(20, 20) == 1
        assert total_pages(21, 20) == 2
