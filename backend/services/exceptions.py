"""Typed exceptions for review and rating operations.

Route handlers translate these into HTTP responses; services never
raise ``HTTPException`` themselves.
"""


class ReviewError(Exception):
    """Base exception for review/rating domain errors."""

    pass


class RatingConflictError(ReviewError):
    """The user already owns a rating (one rating per user)."""

    pass


class RatingNotFoundError(ReviewError):
    """The requested rating does not exist."""

    pass


class RatingPermissionError(ReviewError):
    """The caller may not perform this action on the rating."""

    pass
