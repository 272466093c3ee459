"""Rating model - a user's product rating and review."""

import json
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text

from database import Base
from models.utils import ensure_utc, generate_uuid


class Rating(Base):
    """A product rating submitted by an authenticated user.

    One rating per user (unique ``user_id``). New and edited ratings go
    through moderation (``status``) before they are shown publicly.
    """

    __tablename__ = "ratings"
    __table_args__ = (
        Index("ix_ratings_rating_status_public", "rating", "status", "is_public"),
        Index("ix_ratings_status_public_created", "status", "is_public", "created_at"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String, unique=True, index=True, nullable=False)
    author_name = Column(String, nullable=True)

    rating = Column(Integer, nullable=False)
    title = Column(String(100), nullable=False)
    review = Column(Text, nullable=False)
    categories = Column(Text, nullable=True)  # JSON-serialized {category: 1-5}

    is_verified = Column(Boolean, default=False, nullable=False)
    is_public = Column(Boolean, default=True, nullable=False)
    status = Column(String, default="pending", nullable=False)  # pending/approved/rejected/flagged

    # Usage context
    industry = Column(String, index=True, nullable=True)
    company_size = Column(String, nullable=True)
    usage_duration = Column(String, nullable=True)
    primary_use_case = Column(String, nullable=True)

    helpful_votes = Column(Integer, default=0, nullable=False)
    report_count = Column(Integer, default=0, nullable=False)

    # Moderation
    admin_notes = Column(Text, nullable=True)
    reviewed_by = Column(String, nullable=True)
    reviewed_at = Column(DateTime, nullable=True)

    # Request metadata
    ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    source = Column(String, default="web", nullable=False)

    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    @property
    def category_ratings(self) -> dict[str, int] | None:
        if not self.categories:
            return None
        return json.loads(self.categories)

    @property
    def avg_category_rating(self) -> float | None:
        """Mean of the category sub-ratings, rounded to one decimal."""
        cats = self.category_ratings
        if not cats:
            return None
        values = [v for v in cats.values() if v and v > 0]
        if not values:
            return None
        return round(sum(values) / len(values), 1)

    @property
    def age_in_days(self) -> int:
        created = ensure_utc(self.created_at) or datetime.now(timezone.utc)
        return (datetime.now(timezone.utc) - created).days
