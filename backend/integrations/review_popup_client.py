"""HTTP client for the review popup API."""

import logging
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)


class ReviewPopupClient:
    """Thin wrapper over the ``/api/review-popup`` endpoints.

    Carries the caller's anonymous id on every request and an optional
    bearer token. Errors propagate as ``httpx`` exceptions; fire-and-forget
    behaviour belongs to :class:`integrations.review_tracking.ActivityTracker`.
    """

    def __init__(
        self,
        base_url: str,
        anonymous_id: str,
        token: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        headers: dict[str, str] = {}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self.anonymous_id = anonymous_id
        self._client = httpx.Client(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    def _json(self, response: httpx.Response) -> dict[str, Any]:
        response.raise_for_status()
        return response.json()

    def get_status(self) -> dict[str, Any]:
        response = self._client.get(
            "/api/review-popup/status", params={"anonymous_id": self.anonymous_id}
        )
        return self._json(response)

    def track_activity(self, activity_type: str, **data: Any) -> dict[str, Any]:
        response = self._client.post(
            "/api/review-popup/track-activity",
            json={"anonymous_id": self.anonymous_id, "activity_type": activity_type, "data": data},
        )
        return self._json(response)

    def set_preference(self, preference: str, remind_days: Optional[int] = None) -> dict[str, Any]:
        body: dict[str, Any] = {"preference": preference, "anonymous_id": self.anonymous_id}
        if remind_days is not None:
            body["remind_days"] = remind_days
        response = self._client.post("/api/review-popup/preference", json=body)
        return self._json(response)

    def record_shown(self) -> None:
        response = self._client.post(
            "/api/review-popup/shown", params={"anonymous_id": self.anonymous_id}
        )
        response.raise_for_status()

    def submit_review(
        self,
        rating: int,
        title: str,
        review: str,
        categories: Optional[dict[str, int]] = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "rating": rating,
            "title": title,
            "review": review,
            "anonymous_id": self.anonymous_id,
        }
        if categories:
            body["categories"] = categories
        response = self._client.post("/api/review-popup/submit", json=body)
        return self._json(response)

    def get_stats(self) -> dict[str, Any]:
        return self._json(self._client.get("/api/review-popup/stats"))
