import logging
import time
from collections import deque
from threading import Lock
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SECONDS = 3600
DEFAULT_THRESHOLDS = {
    "SUBDOMAIN_CONFLICT": 10,
    "AI_GENERATION_FAILED": 5,
    "WATERMARK_WRITE_FAILED": 5,
}


class AuditAlertTracker:
    """Logs a warning each time an action reaches a multiple of its threshold within the window."""

    def __init__(self, window_seconds: int, thresholds: dict[str, int]) -> None:
        self._window_seconds = window_seconds
        self._thresholds = thresholds
        self._events: dict[str, deque[float]] = {}
        self._lock = Lock()

    def record(self, action: str, metadata: Optional[dict] = None) -> bool:
        limit = self._thresholds.get(action)
        if not limit:
            return False
        now = time.monotonic()
        with self._lock:
            events = self._events.setdefault(action, deque())
            cutoff = now - self._window_seconds
            while events and events[0] <= cutoff:
                events.popleft()
            events.append(now)
            count = len(events)

        if count % limit != 0:
            return False
        logger.warning(
            "ALERT action=%s count=%s window_seconds=%s metadata=%s",
            action,
            count,
            self._window_seconds,
            metadata or {},
        )
        return True

    def reset(self) -> None:
        with self._lock:
            self._events.clear()


alert_tracker = AuditAlertTracker(DEFAULT_WINDOW_SECONDS, DEFAULT_THRESHOLDS)
