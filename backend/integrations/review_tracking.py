"""Client-side activity tracking and review popup scheduling.

Both classes are explicit instances owned by the application session:
construct once, pass them where needed, and call ``start()``/``stop()``
around the session. Network failures are logged and swallowed; a failed
ping never blocks the action being tracked and is not retried.
"""

import logging
import threading
import time
from typing import Any, Callable, Optional

import httpx

from integrations.review_popup_client import ReviewPopupClient

logger = logging.getLogger(__name__)


class _PeriodicTask:
    """Runs ``fn`` every ``interval`` seconds on a daemon thread until stopped."""

    def __init__(self, name: str, interval: float, fn: Callable[[], None], initial_delay: Optional[float] = None):
        self._name = name
        self._interval = interval
        self._initial_delay = interval if initial_delay is None else initial_delay
        self._fn = fn
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _run(self) -> None:
        delay = self._initial_delay
        while not self._stop.wait(delay):
            try:
                self._fn()
            except Exception:
                logger.warning("%s tick failed", self._name, exc_info=True)
            delay = self._interval


class ActivityTracker:
    """Reports engagement events for one application session."""

    def __init__(
        self,
        client: ReviewPopupClient,
        heartbeat_interval: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._client = client
        self._heartbeat_interval = heartbeat_interval
        self._clock = clock
        self._heartbeat = _PeriodicTask("review-activity-heartbeat", heartbeat_interval, self.heartbeat)
        self.session_start = clock()
        self.last_activity = self.session_start
        self.active_minutes = 0
        self.page_views = 0
        self.is_visible = True

    @property
    def anonymous_id(self) -> str:
        return self._client.anonymous_id

    def start(self) -> None:
        """Record the landing page view and start the active-time heartbeat."""
        self.track_page_view()
        self._heartbeat.start()

    def stop(self) -> None:
        self._heartbeat.stop()

    def mark_active(self) -> None:
        """Note user input (clicks, keys, scrolling)."""
        self.last_activity = self._clock()

    def set_visible(self, visible: bool) -> None:
        self.is_visible = visible

    def heartbeat(self) -> None:
        """Count one active minute if the user interacted during the last interval."""
        if not self.is_visible:
            return
        if self._clock() - self.last_activity >= self._heartbeat_interval:
            return
        self.active_minutes += 1
        self.track("active_time", minutes=1)

    def track(self, activity_type: str, **data: Any) -> Optional[dict[str, Any]]:
        """Send one activity event. Returns the server counters, or None on failure."""
        try:
            return self._client.track_activity(activity_type, **data)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Failed to track %s activity: %s", activity_type, e)
            return None

    def track_file_upload(self) -> Optional[dict[str, Any]]:
        return self.track("file_upload")

    def track_chart_generated(self) -> Optional[dict[str, Any]]:
        return self.track("chart_generated")

    def track_report_analyzed(self) -> Optional[dict[str, Any]]:
        return self.track("report_analyzed")

    def track_page_view(self) -> Optional[dict[str, Any]]:
        self.page_views += 1
        return self.track("page_view")

    def session_stats(self) -> dict[str, Any]:
        return {
            "session_seconds": self._clock() - self.session_start,
            "active_time_minutes": self.active_minutes,
            "page_view_count": self.page_views,
            "anonymous_id": self.anonymous_id,
        }


class ReviewPopupManager:
    """Polls the status endpoint and raises the popup when it is due."""

    def __init__(
        self,
        client: ReviewPopupClient,
        on_show: Optional[Callable[[], None]] = None,
        on_hide: Optional[Callable[[], None]] = None,
        on_submit: Optional[Callable[[dict[str, Any]], None]] = None,
        on_preference: Optional[Callable[[str], None]] = None,
        check_interval: float = 30.0,
        initial_delay: float = 10.0,
    ):
        self._client = client
        self._on_show = on_show
        self._on_hide = on_hide
        self._on_submit = on_submit
        self._on_preference = on_preference
        self._checker = _PeriodicTask(
            "review-popup-check", check_interval, self.check, initial_delay=initial_delay
        )
        self.is_shown = False

    def start(self) -> None:
        self._checker.start()

    def stop(self) -> None:
        self._checker.stop()

    def check(self) -> bool:
        """Ask the server whether to show the popup; show it if so."""
        if self.is_shown:
            return False
        try:
            status = self._client.get_status()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Failed to check review popup status: %s", e)
            return False

        if status.get("should_show") and not status.get("has_review"):
            self.show()
            return True
        logger.debug("Review popup not shown: %s", status.get("reason"))
        return False

    def show(self) -> None:
        if self.is_shown:
            return
        self.is_shown = True
        try:
            self._client.record_shown()
        except httpx.HTTPError as e:
            logger.warning("Failed to record review popup display: %s", e)
        if self._on_show:
            self._on_show()

    def hide(self) -> None:
        self.is_shown = False
        if self._on_hide:
            self._on_hide()

    def handle_submit(self, review: dict[str, Any]) -> None:
        self.is_shown = False
        if self._on_submit:
            self._on_submit(review)

    def handle_preference(self, preference: str) -> None:
        self.is_shown = False
        if self._on_preference:
            self._on_preference(preference)
