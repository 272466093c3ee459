"""Pydantic schemas for product ratings."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class RatingStatus(str, Enum):
    """Moderation states of a rating."""

    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    flagged = "flagged"


class RatingSource(str, Enum):
    """Where a rating was submitted from."""

    web = "web"
    popup = "popup"
    mobile = "mobile"
    email_survey = "email_survey"
    admin_import = "admin_import"


class CompanySize(str, Enum):
    startup = "startup"
    small = "small"
    medium = "medium"
    large = "large"
    enterprise = "enterprise"


class UsageDuration(str, Enum):
    less_than_month = "less_than_month"
    one_to_three_months = "1-3_months"
    three_to_six_months = "3-6_months"
    six_to_twelve_months = "6-12_months"
    over_year = "over_year"


class CategoryRatings(BaseModel):
    """Optional per-category sub-ratings (1-5 each)."""

    usability: Optional[int] = Field(default=None, ge=1, le=5)
    performance: Optional[int] = Field(default=None, ge=1, le=5)
    features: Optional[int] = Field(default=None, ge=1, le=5)
    support: Optional[int] = Field(default=None, ge=1, le=5)
    value: Optional[int] = Field(default=None, ge=1, le=5)


class UsageContext(BaseModel):
    """How and where the reviewer uses the product."""

    model_config = ConfigDict(str_strip_whitespace=True)

    industry: Optional[str] = None
    company_size: Optional[CompanySize] = None
    usage_duration: Optional[UsageDuration] = None
    primary_use_case: Optional[str] = None


class RatingCreate(BaseModel):
    """Request body for submitting a rating."""

    model_config = ConfigDict(str_strip_whitespace=True)

    rating: int = Field(ge=1, le=5)
    title: str = Field(min_length=3, max_length=100)
    review: str = Field(min_length=10, max_length=1000)
    categories: Optional[CategoryRatings] = None
    usage_context: Optional[UsageContext] = None
    is_public: bool = True


class RatingUpdate(BaseModel):
    """Request body for updating the caller's own rating."""

    model_config = ConfigDict(str_strip_whitespace=True)

    rating: Optional[int] = Field(default=None, ge=1, le=5)
    title: Optional[str] = Field(default=None, min_length=3, max_length=100)
    review: Optional[str] = Field(default=None, min_length=10, max_length=1000)
    categories: Optional[CategoryRatings] = None
    usage_context: Optional[UsageContext] = None
    is_public: Optional[bool] = None


class RatingResponse(BaseModel):
    """A rating as seen by its author or an admin."""

    id: str
    user_id: str
    author_name: Optional[str] = None
    rating: int
    title: str
    review: str
    categories: Optional[dict[str, int]] = None
    avg_category_rating: Optional[float] = None
    usage_context: UsageContext
    is_public: bool
    is_verified: bool
    status: RatingStatus
    helpful_votes: int
    source: str
    created_at: datetime
    updated_at: datetime


class TestimonialResponse(BaseModel):
    """A public, approved rating shaped for the testimonials section."""

    id: str
    name: str
    title: str
    content: str
    rating: int
    company: str
    role: str
    usage_duration: Optional[str] = None
    categories: Optional[dict[str, int]] = None
    helpful_votes: int
    is_verified: bool
    created_at: datetime


class RatingSummary(BaseModel):
    """Aggregate over approved, public ratings."""

    avg_rating: float
    total_ratings: int
    distribution: dict[int, int]


class RatingStatsResponse(RatingSummary):
    """Aggregate statistics plus recency/verification counts."""

    recent_ratings: int
    verified_ratings: int
    last_updated: datetime


class PendingRatingsPage(BaseModel):
    """Paged list of ratings awaiting moderation."""

    items: list[RatingResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class RejectRequest(BaseModel):
    """Request body for rejecting a rating."""

    reason: Optional[str] = Field(default=None, max_length=1000)


class HelpfulResponse(BaseModel):
    helpful_votes: int
