"""API route handlers."""
from . import ratings, review_popup

__all__ = ["ratings", "review_popup"]
