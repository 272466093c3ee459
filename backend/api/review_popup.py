"""Review popup API endpoints."""

import logging
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from api.auth import AuthenticatedUser, get_current_user, get_optional_user
from api.helpers import client_ip, featured_review_dict, request_subject
from config import settings
from database import get_db
from schemas.rating import RatingCreate, RatingSource
from schemas.review_popup import (
    PopupReviewSubmit,
    PopupStatsResponse,
    PopupStatusResponse,
    PreferenceRequest,
    PreferenceUpdateResponse,
    ReviewSubmitResponse,
    TrackActivityRequest,
    TrackActivityResponse,
)
from services.eligibility_service import EligibilityService
from services.exceptions import RatingConflictError
from services.identity_service import generate_anonymous_id
from services.rating_service import RatingService
from services.review_preference_service import ReviewPreferenceService
from utils.rate_limit import RateLimiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/review-popup", tags=["review-popup"])

activity_rate_limit = RateLimiter(
    scope="review-popup-activity",
    max_requests=settings.ACTIVITY_RATE_LIMIT,
    window_seconds=settings.ACTIVITY_RATE_WINDOW_SECONDS,
    message="Too many preference updates, please try again later.",
)
submit_rate_limit = RateLimiter(
    scope="review-popup-submit",
    max_requests=settings.SUBMIT_RATE_LIMIT,
    window_seconds=settings.SUBMIT_RATE_WINDOW_SECONDS,
    message="Too many review attempts, please try again later.",
)


@router.get("/status", response_model=PopupStatusResponse)
def get_status(
    request: Request,
    anonymous_id: Optional[str] = Query(default=None, max_length=128),
    user: Optional[AuthenticatedUser] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """Decide whether the review popup should be shown to the caller."""
    subject = request_subject(request, user, anonymous_id)
    decision = EligibilityService.decide(db, subject)
    record = decision.record

    return {
        "should_show": decision.should_show,
        "reason": decision.reason.value,
        "has_review": decision.has_review,
        "preference": record.preference if record is not None else None,
        "remind_at": record.remind_at if record is not None else None,
        "progress": asdict(decision.progress) if decision.progress is not None else None,
        "anonymous_id": subject.anonymous_id or generate_anonymous_id(),
        "device_fingerprint": subject.device_fingerprint,
    }


@router.post(
    "/track-activity",
    response_model=TrackActivityResponse,
    dependencies=[Depends(activity_rate_limit)],
)
def track_activity(
    body: TrackActivityRequest,
    request: Request,
    user: Optional[AuthenticatedUser] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """Count an activity event towards the caller's engagement thresholds."""
    subject = request_subject(request, user, body.anonymous_id)
    pref = ReviewPreferenceService.record_activity(
        db, subject, body.activity_type.value, body.data.model_dump(exclude_none=True)
    )
    return {
        "success": True,
        "activity_count": pref.activity_count,
        "meaningful_actions": pref.meaningful_actions,
        "page_view_count": pref.page_view_count,
        "active_time_minutes": pref.active_time_minutes,
    }


@router.post(
    "/preference",
    response_model=PreferenceUpdateResponse,
    dependencies=[Depends(activity_rate_limit)],
)
def set_preference(
    body: PreferenceRequest,
    request: Request,
    user: Optional[AuthenticatedUser] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """Save the caller's choice on the popup (never, later or dismissed)."""
    subject = request_subject(request, user, body.anonymous_id)
    try:
        pref = ReviewPreferenceService.set_preference(
            db, subject, body.preference, remind_days=body.remind_days
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True, "preference": pref.preference, "remind_at": pref.remind_at}


@router.post(
    "/shown",
    status_code=204,
    dependencies=[Depends(activity_rate_limit)],
)
def record_shown(
    request: Request,
    anonymous_id: Optional[str] = Query(default=None, max_length=128),
    user: Optional[AuthenticatedUser] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """Record that the popup was displayed to the caller."""
    subject = request_subject(request, user, anonymous_id)
    ReviewPreferenceService.record_shown(db, subject)


@router.post(
    "/submit",
    response_model=ReviewSubmitResponse,
    status_code=201,
    dependencies=[Depends(submit_rate_limit)],
)
def submit_review(
    body: PopupReviewSubmit,
    request: Request,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Submit a review from the popup and stop prompting the user."""
    subject = request_subject(request, user, body.anonymous_id)
    data = RatingCreate(
        rating=body.rating,
        title=body.title,
        review=body.review,
        categories=body.categories,
    )
    try:
        rating = RatingService.submit(
            db,
            user.id,
            data,
            author_name=user.name,
            source=RatingSource.popup,
            ip_address=client_ip(request),
            user_agent=request.headers.get("user-agent"),
        )
    except RatingConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    try:
        ReviewPreferenceService.mark_reviewed(db, subject)
    except SQLAlchemyError:
        # The stored rating alone keeps the prompt suppressed
        db.rollback()
        logger.error("Failed to stop review prompts for user %s", user.id, exc_info=True)

    return {
        "success": True,
        "message": "Review submitted successfully! It will be published after approval.",
        "review_id": rating.id,
    }


@router.get("/stats", response_model=PopupStatsResponse)
def get_stats(db: Session = Depends(get_db)):
    """Rating statistics and a few featured reviews."""
    summary = RatingService.summary(db)
    featured = RatingService.featured(db, limit=settings.REVIEW_FEATURED_LIMIT)
    return {**summary, "featured_reviews": [featured_review_dict(r) for r in featured]}
