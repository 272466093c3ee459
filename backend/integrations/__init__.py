"""Client-side integrations with the review popup API.

This package contains:
- ReviewPopupClient: HTTP client for the ``/api/review-popup`` endpoints
- ActivityTracker: session-scoped engagement reporting with a heartbeat
- ReviewPopupManager: periodic status checks that raise the popup
"""

from integrations.review_popup_client import ReviewPopupClient
from integrations.review_tracking import ActivityTracker, ReviewPopupManager

__all__ = [
    "ActivityTracker",
    "ReviewPopupClient",
    "ReviewPopupManager",
]
