"""Shared API helpers for route handlers.

Request-to-subject resolution and response builders used across
multiple route files.
"""

from typing import Optional

from fastapi import Request

from api.auth import AuthenticatedUser
from models import Rating
from services.identity_service import Subject, resolve_subject

FEATURED_EXCERPT_LENGTH = 100


def client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


def request_subject(
    request: Request,
    user: Optional[AuthenticatedUser],
    anonymous_id: Optional[str],
) -> Subject:
    """Resolve the review prompt subject for a request.

    Args:
        request: The incoming request (headers and client address).
        user: The authenticated user, if any.
        anonymous_id: Client-supplied anonymous id, if any.

    Returns:
        The Subject carrying every identity key available.
    """
    return resolve_subject(
        user_id=user.id if user else None,
        anonymous_id=anonymous_id,
        user_agent=request.headers.get("user-agent"),
        accept_language=request.headers.get("accept-language"),
        client_ip=client_ip(request),
    )


def rating_response_dict(rating: Rating) -> dict:
    """Build a RatingResponse-compatible dict from a Rating."""
    return {
        "id": rating.id,
        "user_id": rating.user_id,
        "author_name": rating.author_name,
        "rating": rating.rating,
        "title": rating.title,
        "review": rating.review,
        "categories": rating.category_ratings,
        "avg_category_rating": rating.avg_category_rating,
        "usage_context": {
            "industry": rating.industry,
            "company_size": rating.company_size,
            "usage_duration": rating.usage_duration,
            "primary_use_case": rating.primary_use_case,
        },
        "is_public": rating.is_public,
        "is_verified": rating.is_verified,
        "status": rating.status,
        "helpful_votes": rating.helpful_votes,
        "source": rating.source,
        "created_at": rating.created_at,
        "updated_at": rating.updated_at,
    }


def testimonial_dict(rating: Rating) -> dict:
    """Build a TestimonialResponse-compatible dict from an approved Rating."""
    return {
        "id": rating.id,
        "name": rating.author_name or "Anonymous",
        "title": rating.title,
        "content": rating.review,
        "rating": rating.rating,
        "company": rating.industry or "Technology Company",
        "role": rating.primary_use_case or "Data Professional",
        "usage_duration": rating.usage_duration,
        "categories": rating.category_ratings,
        "helpful_votes": rating.helpful_votes,
        "is_verified": rating.is_verified,
        "created_at": rating.created_at,
    }


def _initials(name: str) -> str:
    return "".join(part[0] for part in name.split()[:2]).upper()


def featured_review_dict(rating: Rating) -> dict:
    """Build a FeaturedReview-compatible dict with a shortened review text."""
    name = rating.author_name or "Anonymous"
    excerpt = rating.review[:FEATURED_EXCERPT_LENGTH]
    if len(rating.review) > FEATURED_EXCERPT_LENGTH:
        excerpt += "..."
    return {
        "id": rating.id,
        "rating": rating.rating,
        "title": rating.title,
        "review": excerpt,
        "user_name": name,
        "user_initials": _initials(name),
        "helpful_votes": rating.helpful_votes,
        "created_at": rating.created_at,
    }
