import logging
import os
from types import SimpleNamespace
from unittest.mock import patch

from hostdesk.core.config import get_settings
from hostdesk.utils.alerting import AuditAlertTracker
from hostdesk.utils.rate_limit import SlidingWindowRateLimiter, get_client_ip


def _fake_clock(monkeypatch, module: str, start: float = 1000.0) -> dict:
    t = {"now": start}
    monkeypatch.setattr(f"{module}.time.monotonic", lambda: t["now"])
    return t


def test_rate_limiter_blocks_within_window_and_recovers(monkeypatch):
    t = _fake_clock(monkeypatch, "hostdesk.utils.rate_limit")
    rl = SlidingWindowRateLimiter()

    assert rl.allow("ai:ip:1.2.3.4", limit=2, window_seconds=60) is True
    assert rl.allow("ai:ip:1.2.3.4", limit=2, window_seconds=60) is True
    assert rl.allow("ai:ip:1.2.3.4", limit=2, window_seconds=60) is False
    # Other keys are independent.
    assert rl.allow("ai:ip:5.6.7.8", limit=2, window_seconds=60) is True

    t["now"] += 61
    assert rl.allow("ai:ip:1.2.3.4", limit=2, window_seconds=60) is True


def test_rate_limiter_prunes_stale_buckets(monkeypatch):
    t = _fake_clock(monkeypatch, "hostdesk.utils.rate_limit")
    rl = SlidingWindowRateLimiter(prune_interval_seconds=1)

    for i in range(50):
        assert rl.allow(f"k:{i}", limit=1, window_seconds=60) is True

    t["now"] += 120
    assert rl.allow("k:new", limit=1, window_seconds=60) is True
    assert set(rl._buckets) == {"k:new"}


def test_zero_limit_disables_limiting():
    rl = SlidingWindowRateLimiter()
    assert all(rl.allow("k", limit=0, window_seconds=60) for _ in range(5))


def _request(peer: str, forwarded: str = ""):
    headers = {"x-forwarded-for": forwarded} if forwarded else {}
    return SimpleNamespace(client=SimpleNamespace(host=peer), headers=headers)


def test_forwarded_header_only_trusted_from_configured_proxies():
    with patch.dict(os.environ, {"TRUSTED_PROXY_CIDRS": "10.0.0.0/8"}):
        get_settings.cache_clear()
        assert get_client_ip(_request("10.1.2.3", "203.0.113.9, 198.51.100.7")) == "198.51.100.7"
        assert get_client_ip(_request("192.0.2.1", "203.0.113.9")) == "192.0.2.1"
        assert get_client_ip(_request("10.1.2.3")) == "10.1.2.3"


def test_alert_fires_at_threshold_multiples(monkeypatch, caplog):
    t = _fake_clock(monkeypatch, "hostdesk.utils.alerting")
    tracker = AuditAlertTracker(window_seconds=600, thresholds={"SUBDOMAIN_CONFLICT": 3})

    with caplog.at_level(logging.WARNING, logger="hostdesk.utils.alerting"):
        fired = [tracker.record("SUBDOMAIN_CONFLICT", {"label": "shopify"}) for _ in range(6)]
    assert fired == [False, False, True, False, False, True]
    assert sum("ALERT action=SUBDOMAIN_CONFLICT" in r.getMessage() for r in caplog.records) == 2

    t["now"] += 601
    assert tracker.record("SUBDOMAIN_CONFLICT") is False


def test_untracked_actions_never_alert():
    tracker = AuditAlertTracker(window_seconds=60, thresholds={"SUBDOMAIN_CONFLICT": 1})
    assert tracker.record("REQUEST_CREATED") is False
    assert tracker.record("SUBDOMAIN_CONFLICT") is True
