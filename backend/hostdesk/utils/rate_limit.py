import ipaddress
import time
from collections import deque
from threading import Lock
from typing import Optional

from fastapi import Request

from hostdesk.core.config import get_settings

_MAX_BUCKETS = 10_000
_PRUNE_INTERVAL_SECONDS = 60


class SlidingWindowRateLimiter:
    """In-process sliding window limiter keyed by an arbitrary string."""

    def __init__(self, *, max_buckets: int = _MAX_BUCKETS, prune_interval_seconds: int = _PRUNE_INTERVAL_SECONDS) -> None:
        self._buckets: dict[str, deque[float]] = {}
        self._lock = Lock()
        self._max_buckets = max_buckets
        self._prune_interval_seconds = max(1, int(prune_interval_seconds))
        self._last_prune_at = 0.0

    def allow(self, key: str, limit: int, window_seconds: int) -> bool:
        if limit <= 0 or window_seconds <= 0:
            return True
        now = time.monotonic()
        cutoff = now - window_seconds
        with self._lock:
            if len(self._buckets) > self._max_buckets or (now - self._last_prune_at) >= self._prune_interval_seconds:
                self._prune(cutoff)
                self._last_prune_at = now

            bucket = self._buckets.setdefault(key, deque())
            while bucket and bucket[0] <= cutoff:
                bucket.popleft()
            if len(bucket) >= limit:
                return False
            bucket.append(now)
            return True

    def _prune(self, cutoff: float) -> None:
        for key in [k for k, bucket in self._buckets.items() if not bucket or bucket[-1] <= cutoff]:
            del self._buckets[key]

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()
            self._last_prune_at = 0.0


rate_limiter = SlidingWindowRateLimiter()


def _peer_is_trusted(peer_ip: Optional[str], trusted_cidrs: list[str]) -> bool:
    if not peer_ip or not trusted_cidrs:
        return False
    try:
        peer = ipaddress.ip_address(peer_ip)
    except ValueError:
        return False
    for entry in trusted_cidrs:
        try:
            if peer in ipaddress.ip_network(entry, strict=False):
                return True
        except ValueError:
            continue
    return False


def get_client_ip(request: Request) -> Optional[str]:
    """Peer address, or the proxy-reported client when the peer is a trusted proxy."""
    peer_ip = request.client.host if request.client else None
    if _peer_is_trusted(peer_ip, get_settings().trusted_proxy_cidrs):
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            parts = [p.strip() for p in forwarded.split(",") if p.strip()]
            if parts:
                return parts[-1]
    return peer_ip


def get_user_agent(request: Request) -> Optional[str]:
    return request.headers.get("user-agent") if request else None
