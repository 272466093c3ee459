"""Test fixtures and sample data."""
import json
from datetime import datetime, timezone

import pytest
from sqlalchemy.orm import Session

from models import Rating, ReviewPreference


def create_preference(db: Session, **kwargs) -> ReviewPreference:
    """Create a ReviewPreference with sensible defaults.

    This is a helper function (not a fixture) for tests that need
    records in specific states.
    """
    defaults = {
        "anonymous_id": "anon-123",
        "device_fingerprint": "f" * 32,
        "activity_count": 0,
        "target_activity_count": 10,
        "page_view_count": 0,
        "active_time_minutes": 0,
        "file_uploads": 0,
        "charts_generated": 0,
        "reports_analyzed": 0,
    }
    defaults.update(kwargs)
    pref = ReviewPreference(**defaults)
    db.add(pref)
    db.commit()
    db.refresh(pref)
    return pref


def create_rating(db: Session, user_id: str, **kwargs) -> Rating:
    """Create a Rating for ``user_id`` with sensible defaults."""
    defaults = {
        "author_name": "Test User",
        "rating": 5,
        "title": "Great tool",
        "review": "Charts from my spreadsheets in seconds.",
        "status": "pending",
        "is_public": True,
        "created_at": datetime.now(timezone.utc),
    }
    categories = kwargs.pop("categories", None)
    defaults.update(kwargs)
    rating = Rating(user_id=user_id, **defaults)
    if categories is not None:
        rating.categories = json.dumps(categories)
    db.add(rating)
    db.commit()
    db.refresh(rating)
    return rating


@pytest.fixture
def approved_rating(db: Session) -> Rating:
    """Create an approved, public five-star rating."""
    return create_rating(
        db,
        "reviewer-1",
        author_name="Jane Doe",
        status="approved",
        industry="Finance",
        primary_use_case="Reporting",
        usage_duration="3-6_months",
    )


@pytest.fixture
def pending_rating(db: Session) -> Rating:
    """Create a rating awaiting moderation."""
    return create_rating(db, "reviewer-2", author_name="John Roe", rating=3)
