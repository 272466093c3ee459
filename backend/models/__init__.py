"""SQLAlchemy ORM models."""

from .rating import Rating
from .review_preference import ReviewPreference
from .utils import generate_uuid

__all__ = ["Rating", "ReviewPreference", "generate_uuid"]
