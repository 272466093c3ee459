"""Review preference service - activity counters and prompt preferences.

All writes are upserts keyed by the subject's lookup filter. Counter
increments are issued as SQL-side ``col = col + n`` updates against the
resolved row so concurrent requests for one subject never lose updates.
"""

import logging
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import case, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import settings
from models.review_preference import ReviewPreference
from models.utils import utcnow
from schemas.review_popup import PromptPreference
from services.identity_service import Subject, lookup_filter

logger = logging.getLogger(__name__)

# Activity types that bump a dedicated counter in addition to activity_count.
# active_time is handled separately because it carries a minute count.
_ACTIVITY_COUNTERS: dict[str, str] = {
    "file_upload": "file_uploads",
    "chart_generated": "charts_generated",
    "report_analyzed": "reports_analyzed",
    "page_view": "page_view_count",
}

MIN_REMIND_DAYS = 1
MAX_REMIND_DAYS = 365


def activity_increments(activity_type: str, data: dict[str, Any] | None = None) -> dict[str, int]:
    """Map an activity event to the counter increments it causes.

    Every event counts towards ``activity_count``. Unknown types only
    touch that base counter.
    """
    increments = {"activity_count": 1}
    if activity_type == "active_time":
        minutes = (data or {}).get("minutes")
        increments["active_time_minutes"] = minutes if minutes and minutes > 0 else 1
    else:
        column = _ACTIVITY_COUNTERS.get(activity_type)
        if column:
            increments[column] = 1
    return increments


class ReviewPreferenceService:
    """Service for the per-subject ReviewPreference store."""

    @staticmethod
    def find(db: Session, subject: Subject) -> ReviewPreference | None:
        """Return the subject's record, or None if it has none yet.

        When an anonymous subject matches several records, the one holding
        its anonymous id wins over fingerprint-only matches.
        """
        query = db.query(ReviewPreference).filter(lookup_filter(subject))
        if not subject.is_authenticated and subject.anonymous_id:
            query = query.order_by(
                case((ReviewPreference.anonymous_id == subject.anonymous_id, 0), else_=1),
                ReviewPreference.created_at,
            )
        else:
            query = query.order_by(ReviewPreference.created_at)
        return query.first()

    @staticmethod
    def _resolve_id(db: Session, subject: Subject) -> str | None:
        """Find the id of the record to write to, claiming an anonymous one on login.

        An authenticated subject without its own record takes over the
        unowned record created under its anonymous id, so pre-login
        activity carries over to the account.
        """
        record = ReviewPreferenceService.find(db, subject)
        if record is not None:
            return record.id

        if subject.is_authenticated and subject.anonymous_id:
            result = db.execute(
                update(ReviewPreference)
                .where(
                    ReviewPreference.anonymous_id == subject.anonymous_id,
                    ReviewPreference.user_id.is_(None),
                )
                .values(user_id=subject.user_id)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount:
                logger.info(
                    "Linked anonymous review preference %s to user %s",
                    subject.anonymous_id,
                    subject.user_id,
                )
                return (
                    db.query(ReviewPreference.id)
                    .filter(ReviewPreference.user_id == subject.user_id)
                    .scalar()
                )
        return None

    @staticmethod
    def _upsert(
        db: Session,
        subject: Subject,
        updates: dict[str, Any],
        initial: dict[str, Any],
    ) -> ReviewPreference:
        """Apply ``updates`` to the subject's record, creating it from ``initial`` if absent."""
        record_id = ReviewPreferenceService._resolve_id(db, subject)

        if record_id is None:
            pref = ReviewPreference(
                user_id=subject.user_id,
                # Authenticated records only take an anonymous id by claiming it
                anonymous_id=None if subject.is_authenticated else subject.anonymous_id,
                device_fingerprint=subject.device_fingerprint,
                target_activity_count=settings.REVIEW_TARGET_ACTIVITY_COUNT,
                **initial,
            )
            db.add(pref)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                record_id = ReviewPreferenceService._resolve_id(db, subject)
                if record_id is None:
                    raise
                logger.info("Review preference created concurrently, applying as update: %s", record_id)
            else:
                db.refresh(pref)
                logger.info("Created review preference: %s", pref.id)
                return pref

        db.execute(
            update(ReviewPreference)
            .where(ReviewPreference.id == record_id)
            .values(**updates)
            .execution_options(synchronize_session=False)
        )
        db.commit()

        pref = db.get(ReviewPreference, record_id)
        db.refresh(pref)
        return pref

    @staticmethod
    def record_activity(
        db: Session,
        subject: Subject,
        activity_type: str,
        data: dict[str, Any] | None = None,
    ) -> ReviewPreference:
        """Count one activity event for the subject and return the updated record."""
        increments = activity_increments(activity_type, data)
        updates = {
            column: getattr(ReviewPreference, column) + amount
            for column, amount in increments.items()
        }
        pref = ReviewPreferenceService._upsert(db, subject, updates, increments)
        logger.debug(
            "Tracked %s for review preference %s (activity_count=%d)",
            activity_type,
            pref.id,
            pref.activity_count,
        )
        return pref

    @staticmethod
    def set_preference(
        db: Session,
        subject: Subject,
        preference: PromptPreference | str,
        remind_days: int | None = None,
        now: datetime | None = None,
    ) -> ReviewPreference:
        """Store an explicit prompt choice.

        Always stamps ``last_shown``. ``remind_at`` is only kept for
        ``later`` and cleared for every other choice.

        Raises:
            ValueError: If the preference is unknown or remind_days is out of range.
        """
        preference = PromptPreference(preference)
        now = now or utcnow()

        remind_at = None
        if preference is PromptPreference.later:
            days = remind_days if remind_days is not None else settings.REVIEW_DEFAULT_REMIND_DAYS
            if not MIN_REMIND_DAYS <= days <= MAX_REMIND_DAYS:
                raise ValueError(
                    f"remind_days must be between {MIN_REMIND_DAYS} and {MAX_REMIND_DAYS}, got {days}"
                )
            remind_at = now + timedelta(days=days)

        values = {
            "preference": preference.value,
            "remind_at": remind_at,
            "last_shown": now,
        }
        pref = ReviewPreferenceService._upsert(db, subject, values, values)
        logger.info("Set review preference %s to %s", pref.id, preference.value)
        return pref

    @staticmethod
    def mark_reviewed(db: Session, subject: Subject, now: datetime | None = None) -> ReviewPreference:
        """Stop prompting a subject that has submitted a review."""
        return ReviewPreferenceService.set_preference(
            db, subject, PromptPreference.never, now=now
        )

    @staticmethod
    def record_shown(db: Session, subject: Subject, now: datetime | None = None) -> ReviewPreference:
        """Stamp ``last_shown`` after the prompt was actually displayed."""
        values = {"last_shown": now or utcnow()}
        return ReviewPreferenceService._upsert(db, subject, values, values)
