"""Rating service - product ratings, testimonials and moderation."""

import json
import logging
import math
from datetime import datetime, timedelta
from typing import Any, Optional

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.rating import Rating
from models.utils import utcnow
from schemas.rating import RatingCreate, RatingSource, RatingStatus, RatingUpdate
from services.exceptions import (
    RatingConflictError,
    RatingNotFoundError,
    RatingPermissionError,
)

logger = logging.getLogger(__name__)

_USAGE_CONTEXT_FIELDS = ("industry", "company_size", "usage_duration", "primary_use_case")
RECENT_WINDOW = timedelta(days=30)
FEATURED_MIN_RATING = 4


def _serialize_categories(categories: Any) -> Optional[str]:
    if categories is None:
        return None
    values = categories.model_dump(exclude_none=True) if hasattr(categories, "model_dump") else dict(categories)
    return json.dumps(values) if values else None


def _apply_usage_context(rating: Rating, usage_context: Any) -> None:
    values = usage_context.model_dump(mode="json") if usage_context is not None else {}
    for field in _USAGE_CONTEXT_FIELDS:
        setattr(rating, field, values.get(field))


def _public_approved(query):
    return query.filter(
        Rating.status == RatingStatus.approved.value,
        Rating.is_public.is_(True),
    )


class RatingService:
    """Service for product ratings (one per user)."""

    @staticmethod
    def has_rating(db: Session, user_id: str) -> bool:
        """True if the user owns a rating in any moderation state."""
        return db.query(Rating.id).filter(Rating.user_id == user_id).first() is not None

    @staticmethod
    def get_by_user(db: Session, user_id: str) -> Rating | None:
        return db.query(Rating).filter(Rating.user_id == user_id).first()

    @staticmethod
    def get(db: Session, rating_id: str) -> Rating:
        """Fetch a rating by id.

        Raises:
            RatingNotFoundError: If no rating has this id.
        """
        rating = db.query(Rating).filter(Rating.id == rating_id).first()
        if rating is None:
            raise RatingNotFoundError(f"Rating '{rating_id}' not found")
        return rating

    @staticmethod
    def submit(
        db: Session,
        user_id: str,
        data: RatingCreate,
        author_name: str | None = None,
        source: RatingSource = RatingSource.web,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> Rating:
        """Create the user's rating in ``pending`` state.

        Raises:
            RatingConflictError: If the user already has a rating, including
                when a concurrent submission wins the unique constraint.
        """
        if RatingService.has_rating(db, user_id):
            raise RatingConflictError("You have already submitted a review. You can update it from your profile.")

        rating = Rating(
            user_id=user_id,
            author_name=author_name,
            rating=data.rating,
            title=data.title,
            review=data.review,
            categories=_serialize_categories(data.categories),
            is_public=data.is_public,
            status=RatingStatus.pending.value,
            source=RatingSource(source).value,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        _apply_usage_context(rating, data.usage_context)
        db.add(rating)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise RatingConflictError("You have already submitted a review.")

        db.refresh(rating)
        logger.info("Rating %s submitted by user %s (%d stars, source=%s)", rating.id, user_id, rating.rating, rating.source)
        return rating

    @staticmethod
    def update_own(db: Session, user_id: str, data: RatingUpdate) -> Rating:
        """Update the user's rating and send it back to moderation.

        Raises:
            RatingNotFoundError: If the user has no rating.
        """
        rating = RatingService.get_by_user(db, user_id)
        if rating is None:
            raise RatingNotFoundError("No existing rating found to update")

        changes = data.model_dump(exclude_unset=True)
        for field in ("rating", "title", "review", "is_public"):
            if field in changes and changes[field] is not None:
                setattr(rating, field, changes[field])
        if "categories" in changes:
            rating.categories = _serialize_categories(data.categories)
        if "usage_context" in changes:
            _apply_usage_context(rating, data.usage_context)

        rating.status = RatingStatus.pending.value
        rating.reviewed_by = None
        rating.reviewed_at = None
        db.flush()
        logger.info("Rating %s updated by user %s, awaiting moderation", rating.id, user_id)
        return rating

    @staticmethod
    def mark_helpful(db: Session, rating_id: str, voter_id: str) -> Rating:
        """Add a helpful vote from another user.

        Raises:
            RatingNotFoundError: If the rating does not exist.
            RatingPermissionError: If the voter owns the rating.
        """
        rating = RatingService.get(db, rating_id)
        if rating.user_id == voter_id:
            raise RatingPermissionError("You cannot mark your own rating as helpful")

        db.execute(
            update(Rating)
            .where(Rating.id == rating_id)
            .values(helpful_votes=Rating.helpful_votes + 1)
            .execution_options(synchronize_session=False)
        )
        db.flush()
        db.refresh(rating)
        return rating

    @staticmethod
    def list_public(
        db: Session,
        limit: int = 6,
        min_rating: int = 4,
        industry: str | None = None,
    ) -> list[Rating]:
        """Approved public ratings for testimonials, most helpful first."""
        query = _public_approved(db.query(Rating)).filter(Rating.rating >= min_rating)
        if industry:
            query = query.filter(Rating.industry == industry)
        return (
            query.order_by(Rating.helpful_votes.desc(), Rating.created_at.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def featured(db: Session, limit: int = 6) -> list[Rating]:
        """Top approved public ratings of four stars or more."""
        return RatingService.list_public(db, limit=limit, min_rating=FEATURED_MIN_RATING)

    @staticmethod
    def summary(db: Session) -> dict[str, Any]:
        """Average, count and 1-5 distribution over approved public ratings."""
        rows = (
            _public_approved(db.query(Rating.rating, func.count(Rating.id)))
            .group_by(Rating.rating)
            .all()
        )
        distribution = {star: 0 for star in range(1, 6)}
        for star, count in rows:
            distribution[star] = distribution.get(star, 0) + count

        total = sum(distribution.values())
        if total == 0:
            return {"avg_rating": 0.0, "total_ratings": 0, "distribution": distribution}

        avg = sum(star * count for star, count in distribution.items()) / total
        return {
            "avg_rating": round(avg, 1),
            "total_ratings": total,
            "distribution": distribution,
        }

    @staticmethod
    def stats(db: Session, now: datetime | None = None) -> dict[str, Any]:
        """Summary plus recent (30 day) and verified counts."""
        now = now or utcnow()
        result = RatingService.summary(db)
        result["recent_ratings"] = (
            _public_approved(db.query(func.count(Rating.id)))
            .filter(Rating.created_at >= now - RECENT_WINDOW)
            .scalar()
        )
        result["verified_ratings"] = (
            _public_approved(db.query(func.count(Rating.id)))
            .filter(Rating.is_verified.is_(True))
            .scalar()
        )
        result["last_updated"] = now
        return result

    @staticmethod
    def list_pending(db: Session, page: int = 1, limit: int = 20) -> tuple[list[Rating], int]:
        """A page of ratings awaiting moderation, newest first, and the total count."""
        query = db.query(Rating).filter(Rating.status == RatingStatus.pending.value)
        total = query.count()
        items = (
            query.order_by(Rating.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total

    @staticmethod
    def approve(db: Session, rating_id: str, admin_id: str) -> Rating:
        rating = RatingService.get(db, rating_id)
        rating.status = RatingStatus.approved.value
        rating.reviewed_by = admin_id
        rating.reviewed_at = utcnow()
        db.flush()
        logger.info("Rating %s approved by %s", rating_id, admin_id)
        return rating

    @staticmethod
    def reject(db: Session, rating_id: str, admin_id: str, reason: str | None = None) -> Rating:
        rating = RatingService.get(db, rating_id)
        rating.status = RatingStatus.rejected.value
        rating.reviewed_by = admin_id
        rating.reviewed_at = utcnow()
        rating.admin_notes = reason
        db.flush()
        logger.info("Rating %s rejected by %s", rating_id, admin_id)
        return rating


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0
