"""Ratings API endpoints: testimonials, own rating, helpful votes and moderation."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from api.auth import AuthenticatedUser, get_current_user, require_admin
from api.helpers import client_ip, rating_response_dict, testimonial_dict
from database import get_db
from schemas.rating import (
    HelpfulResponse,
    PendingRatingsPage,
    RatingCreate,
    RatingResponse,
    RatingStatsResponse,
    RatingUpdate,
    RejectRequest,
    TestimonialResponse,
)
from services.exceptions import (
    RatingConflictError,
    RatingNotFoundError,
    RatingPermissionError,
)
from services.rating_service import RatingService, total_pages

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ratings", tags=["ratings"])


@router.get("/public", response_model=list[TestimonialResponse])
def list_public_ratings(
    limit: int = Query(default=6, ge=1, le=50),
    min_rating: int = Query(default=4, ge=1, le=5),
    industry: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """Approved public ratings shaped for the testimonials section."""
    ratings = RatingService.list_public(db, limit=limit, min_rating=min_rating, industry=industry)
    return [testimonial_dict(r) for r in ratings]


@router.get("/stats", response_model=RatingStatsResponse)
def get_rating_stats(db: Session = Depends(get_db)):
    """Aggregate rating statistics."""
    return RatingService.stats(db)


@router.post("", response_model=RatingResponse, status_code=201)
def submit_rating(
    body: RatingCreate,
    request: Request,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Submit the caller's rating (one per user)."""
    try:
        rating = RatingService.submit(
            db,
            user.id,
            body,
            author_name=user.name,
            ip_address=client_ip(request),
            user_agent=request.headers.get("user-agent"),
        )
    except RatingConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return rating_response_dict(rating)


@router.get("/mine", response_model=Optional[RatingResponse])
def get_my_rating(
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """The caller's own rating, or null if they have none."""
    rating = RatingService.get_by_user(db, user.id)
    return rating_response_dict(rating) if rating else None


@router.put("/mine", response_model=RatingResponse)
def update_my_rating(
    body: RatingUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Update the caller's rating; it returns to moderation."""
    try:
        rating = RatingService.update_own(db, user.id, body)
    except RatingNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    db.commit()
    db.refresh(rating)
    return rating_response_dict(rating)


@router.post("/{rating_id}/helpful", response_model=HelpfulResponse)
def mark_rating_helpful(
    rating_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Add a helpful vote to another user's rating."""
    try:
        rating = RatingService.mark_helpful(db, rating_id, user.id)
    except RatingNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RatingPermissionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    db.commit()
    return {"helpful_votes": rating.helpful_votes}


@router.get("/admin/pending", response_model=PendingRatingsPage)
def list_pending_ratings(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    admin: AuthenticatedUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Ratings awaiting moderation, newest first."""
    items, total = RatingService.list_pending(db, page=page, limit=limit)
    return {
        "items": [rating_response_dict(r) for r in items],
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": total_pages(total, limit),
    }


@router.post("/admin/{rating_id}/approve", response_model=RatingResponse)
def approve_rating(
    rating_id: str,
    admin: AuthenticatedUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Approve a rating for public display."""
    try:
        rating = RatingService.approve(db, rating_id, admin.id)
    except RatingNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    db.commit()
    db.refresh(rating)
    return rating_response_dict(rating)


@router.post("/admin/{rating_id}/reject", response_model=RatingResponse)
def reject_rating(
    rating_id: str,
    body: RejectRequest,
    admin: AuthenticatedUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Reject a rating with an optional reason."""
    try:
        rating = RatingService.reject(db, rating_id, admin.id, body.reason)
    except RatingNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    db.commit()
    db.refresh(rating)
    return rating_response_dict(rating)
