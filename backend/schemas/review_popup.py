"""Pydantic schemas for the review popup endpoints."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from schemas.rating import CategoryRatings, RatingSummary


class PromptPreference(str, Enum):
    """Explicit choices a user can make on the review prompt."""

    never = "never"
    later = "later"
    dismissed = "dismissed"


class ActivityType(str, Enum):
    """Activity types accepted by the tracking endpoint."""

    file_upload = "file_upload"
    chart_generated = "chart_generated"
    report_analyzed = "report_analyzed"
    page_view = "page_view"
    active_time = "active_time"


class ActivityData(BaseModel):
    """Extra payload for an activity event."""

    model_config = ConfigDict(extra="allow")

    minutes: Optional[int] = Field(default=None, ge=1, le=1440)


class TrackActivityRequest(BaseModel):
    anonymous_id: Optional[str] = Field(default=None, max_length=128)
    activity_type: ActivityType
    data: ActivityData = Field(default_factory=ActivityData)


class PreferenceRequest(BaseModel):
    preference: PromptPreference
    anonymous_id: Optional[str] = Field(default=None, max_length=128)
    remind_days: Optional[int] = Field(default=None, ge=1, le=365)


class PopupReviewSubmit(BaseModel):
    """Review submitted from the popup."""

    model_config = ConfigDict(str_strip_whitespace=True)

    rating: int = Field(ge=1, le=5)
    title: str = Field(min_length=3, max_length=100)
    review: str = Field(min_length=10, max_length=1000)
    categories: Optional[CategoryRatings] = None
    anonymous_id: Optional[str] = Field(default=None, max_length=128)


class ActivityProgressResponse(BaseModel):
    """Engagement progress towards the prompt thresholds."""

    activity_count: int
    target_activity_count: int
    meaningful_actions: int
    meaningful_actions_target: int
    page_view_count: int
    page_view_target: int
    active_time_minutes: int
    active_time_target: int


class PopupStatusResponse(BaseModel):
    should_show: bool
    reason: str
    has_review: bool = False
    preference: Optional[PromptPreference] = None
    remind_at: Optional[datetime] = None
    progress: Optional[ActivityProgressResponse] = None
    anonymous_id: str
    device_fingerprint: str


class TrackActivityResponse(BaseModel):
    success: bool = True
    activity_count: int
    meaningful_actions: dict[str, int]
    page_view_count: int
    active_time_minutes: int


class PreferenceUpdateResponse(BaseModel):
    success: bool = True
    preference: PromptPreference
    remind_at: Optional[datetime] = None


class ReviewSubmitResponse(BaseModel):
    success: bool = True
    message: str
    review_id: str


class FeaturedReview(BaseModel):
    id: str
    rating: int
    title: str
    review: str
    user_name: str
    user_initials: str
    helpful_votes: int
    created_at: datetime


class PopupStatsResponse(RatingSummary):
    featured_reviews: list[FeaturedReview]
