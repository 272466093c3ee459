"""ReviewPreference model - per-subject review prompt state and engagement counters."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Index, Integer, String, and_

from database import Base
from models.utils import generate_uuid


class ReviewPreference(Base):
    """Prompt preference and activity counters for one subject.

    A subject is identified by any of ``user_id``, ``anonymous_id`` or
    ``device_fingerprint``; lookups match on any of them. ``preference``
    is NULL until the user makes an explicit choice.
    """

    __tablename__ = "review_preferences"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String, unique=True, index=True, nullable=True)
    anonymous_id = Column(String, unique=True, index=True, nullable=True)
    device_fingerprint = Column(String(64), index=True, nullable=True)

    preference = Column(String, nullable=True)  # "never" | "later" | "dismissed"
    remind_at = Column(DateTime, nullable=True)
    last_shown = Column(DateTime, nullable=True)

    activity_count = Column(Integer, default=0, nullable=False)
    target_activity_count = Column(Integer, default=10, nullable=False)
    page_view_count = Column(Integer, default=0, nullable=False)
    active_time_minutes = Column(Integer, default=0, nullable=False)
    file_uploads = Column(Integer, default=0, nullable=False)
    charts_generated = Column(Integer, default=0, nullable=False)
    reports_analyzed = Column(Integer, default=0, nullable=False)

    total_sessions = Column(Integer, default=1, nullable=False)
    session_start_time = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Records keyed by fingerprint alone have no other unique column, so two
    # concurrent first events would otherwise both insert.
    __table_args__ = (
        Index(
            "uq_review_preferences_fingerprint_only",
            "device_fingerprint",
            unique=True,
            sqlite_where=and_(user_id.is_(None), anonymous_id.is_(None)),
            postgresql_where=and_(user_id.is_(None), anonymous_id.is_(None)),
        ),
    )

    @property
    def meaningful_actions(self) -> dict[str, int]:
        return {
            "file_uploads": self.file_uploads or 0,
            "charts_generated": self.charts_generated or 0,
            "reports_analyzed": self.reports_analyzed or 0,
        }

    @property
    def total_meaningful_actions(self) -> int:
        return sum(self.meaningful_actions.values())
