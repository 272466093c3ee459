"""Review prompt eligibility - decides whether the review popup should be shown.

The decision is an ordered list of suppression rules evaluated top to
bottom; the first rule that applies determines the outcome. The order
encodes priority: explicit opt-outs, then temporary snoozes, then the
engagement thresholds, then the once-a-week rate limit. A subject that
passes every rule is shown the prompt.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional

from sqlalchemy.orm import Session

from config import settings
from models.review_preference import ReviewPreference
from models.utils import ensure_utc, utcnow
from schemas.review_popup import PromptPreference
from services.identity_service import Subject
from services.rating_service import RatingService
from services.review_preference_service import ReviewPreferenceService

logger = logging.getLogger(__name__)


class ReasonCode(str, Enum):
    """Machine-readable outcome of an eligibility check."""

    already_reviewed = "already_reviewed"
    new_user = "new_user"
    never_preference = "never_preference"
    dismissed_this_session = "dismissed_this_session"
    remind_later_not_ready = "remind_later_not_ready"
    activity_threshold_not_met = "activity_threshold_not_met"
    too_soon_since_last_shown = "too_soon_since_last_shown"
    criteria_met = "criteria_met"


@dataclass(frozen=True)
class EligibilityThresholds:
    """Engagement thresholds and cool-down periods."""

    meaningful_actions: int = 3
    page_views: int = 15
    active_time_minutes: int = 30
    dismiss_cooldown: timedelta = timedelta(hours=4)
    min_interval_between_prompts: timedelta = timedelta(days=7)

    @classmethod
    def from_settings(cls) -> "EligibilityThresholds":
        return cls(
            meaningful_actions=settings.REVIEW_MEANINGFUL_ACTIONS_THRESHOLD,
            page_views=settings.REVIEW_PAGE_VIEW_THRESHOLD,
            active_time_minutes=settings.REVIEW_ACTIVE_MINUTES_THRESHOLD,
            dismiss_cooldown=timedelta(hours=settings.REVIEW_DISMISS_COOLDOWN_HOURS),
            min_interval_between_prompts=timedelta(days=settings.REVIEW_MIN_DAYS_BETWEEN_PROMPTS),
        )


@dataclass(frozen=True)
class ActivityProgress:
    """Snapshot of the engagement metrics and their thresholds."""

    activity_count: int
    target_activity_count: int
    meaningful_actions: int
    meaningful_actions_target: int
    page_view_count: int
    page_view_target: int
    active_time_minutes: int
    active_time_target: int

    @property
    def threshold_met(self) -> bool:
        return (
            self.activity_count >= self.target_activity_count
            or self.meaningful_actions >= self.meaningful_actions_target
            or self.page_view_count >= self.page_view_target
            or self.active_time_minutes >= self.active_time_target
        )

    @classmethod
    def of(cls, record: ReviewPreference, thresholds: EligibilityThresholds) -> "ActivityProgress":
        return cls(
            activity_count=record.activity_count or 0,
            target_activity_count=record.target_activity_count,
            meaningful_actions=record.total_meaningful_actions,
            meaningful_actions_target=thresholds.meaningful_actions,
            page_view_count=record.page_view_count or 0,
            page_view_target=thresholds.page_views,
            active_time_minutes=record.active_time_minutes or 0,
            active_time_target=thresholds.active_time_minutes,
        )


@dataclass(frozen=True)
class EligibilityContext:
    """Everything a rule may look at."""

    record: Optional[ReviewPreference]
    has_review: bool
    now: datetime
    thresholds: EligibilityThresholds

    @property
    def preference(self) -> Optional[str]:
        return self.record.preference if self.record is not None else None

    def elapsed_since_shown(self) -> Optional[timedelta]:
        last_shown = ensure_utc(self.record.last_shown) if self.record is not None else None
        if last_shown is None:
            return None
        return self.now - last_shown


@dataclass(frozen=True)
class Rule:
    """A suppression rule: when ``applies`` is true the prompt is not shown."""

    reason: ReasonCode
    applies: Callable[[EligibilityContext], bool]


@dataclass(frozen=True)
class Decision:
    """Outcome of an eligibility check."""

    should_show: bool
    reason: ReasonCode
    record: Optional[ReviewPreference] = None
    progress: Optional[ActivityProgress] = None

    @property
    def has_review(self) -> bool:
        return self.reason is ReasonCode.already_reviewed


def _dismissed_recently(ctx: EligibilityContext) -> bool:
    if ctx.preference != PromptPreference.dismissed.value:
        return False
    elapsed = ctx.elapsed_since_shown()
    return elapsed is not None and elapsed < ctx.thresholds.dismiss_cooldown


def _snoozed(ctx: EligibilityContext) -> bool:
    if ctx.preference != PromptPreference.later.value:
        return False
    remind_at = ensure_utc(ctx.record.remind_at)
    return remind_at is not None and ctx.now < remind_at


def _below_activity_threshold(ctx: EligibilityContext) -> bool:
    return not ActivityProgress.of(ctx.record, ctx.thresholds).threshold_met


def _shown_recently(ctx: EligibilityContext) -> bool:
    elapsed = ctx.elapsed_since_shown()
    return elapsed is not None and elapsed < ctx.thresholds.min_interval_between_prompts


# Evaluated in order; the first rule that applies wins.
RULES: tuple[Rule, ...] = (
    Rule(ReasonCode.already_reviewed, lambda ctx: ctx.has_review),
    Rule(ReasonCode.new_user, lambda ctx: ctx.record is None),
    Rule(ReasonCode.never_preference, lambda ctx: ctx.preference == PromptPreference.never.value),
    Rule(ReasonCode.dismissed_this_session, _dismissed_recently),
    Rule(ReasonCode.remind_later_not_ready, _snoozed),
    Rule(ReasonCode.activity_threshold_not_met, _below_activity_threshold),
    Rule(ReasonCode.too_soon_since_last_shown, _shown_recently),
)


def evaluate(
    record: Optional[ReviewPreference],
    now: Optional[datetime] = None,
    has_review: bool = False,
    thresholds: Optional[EligibilityThresholds] = None,
) -> Decision:
    """Run the rule chain against a preference record. Pure; never writes."""
    ctx = EligibilityContext(
        record=record,
        has_review=has_review,
        now=ensure_utc(now) if now is not None else utcnow(),
        thresholds=thresholds or EligibilityThresholds.from_settings(),
    )
    for rule in RULES:
        if rule.applies(ctx):
            progress = None
            if rule.reason is ReasonCode.activity_threshold_not_met:
                progress = ActivityProgress.of(record, ctx.thresholds)
            return Decision(False, rule.reason, record, progress)
    return Decision(True, ReasonCode.criteria_met, record)


class EligibilityService:
    """Loads a subject's state and evaluates the prompt rules."""

    @staticmethod
    def decide(
        db: Session,
        subject: Subject,
        now: Optional[datetime] = None,
        thresholds: Optional[EligibilityThresholds] = None,
    ) -> Decision:
        has_review = subject.is_authenticated and RatingService.has_rating(db, subject.user_id)
        record = None if has_review else ReviewPreferenceService.find(db, subject)
        decision = evaluate(record, now=now, has_review=has_review, thresholds=thresholds)
        logger.debug(
            "Review prompt decision for %s: %s",
            subject.user_id or subject.anonymous_id or subject.device_fingerprint,
            decision.reason.value,
        )
        return decision
