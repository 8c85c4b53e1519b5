"""Subdomain Allocator: label normalization, availability checks and the create-time re-check."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from enum import Enum
from typing import Optional

from hostdesk.services.errors import StoreUnavailable, SubdomainUnavailable
from hostdesk.services.request_store import RequestStore

logger = logging.getLogger(__name__)

MIN_LABEL_LENGTH = 3
_DISALLOWED_CHARS_RE = re.compile(r"[^a-z0-9-]")
# One retry when the lookup itself fails; a TAKEN answer is never retried.
LOOKUP_ATTEMPTS = 2


class Availability(str, Enum):
    AVAILABLE = "AVAILABLE"
    TAKEN = "TAKEN"
    RESERVED = "RESERVED"
    TOO_SHORT = "TOO_SHORT"


def normalize_label(raw: str) -> str:
    return _DISALLOWED_CHARS_RE.sub("", (raw or "").lower())


class SubdomainAllocator:
    def __init__(self, store: RequestStore, reserved: Iterable[str]) -> None:
        self.store = store
        self.reserved = frozenset(reserved)

    def check_availability(self, label: str, *, exclude_request_id: Optional[str] = None) -> Availability:
        if len(label) < MIN_LABEL_LENGTH:
            return Availability.TOO_SHORT
        if label in self.reserved:
            return Availability.RESERVED

        existing = self._lookup(label)
        if existing is not None and str(existing.id) != str(exclude_request_id):
            return Availability.TAKEN
        return Availability.AVAILABLE

    def _lookup(self, label: str):
        for attempt in range(1, LOOKUP_ATTEMPTS + 1):
            try:
                return self.store.find_by_subdomain(label)
            except StoreUnavailable:
                if attempt == LOOKUP_ATTEMPTS:
                    raise
                logger.warning("Subdomain lookup failed for %r, retrying", label)
        return None

    def confirm_available(self, label: str, *, exclude_request_id: Optional[str] = None) -> None:
        """Authoritative re-check right before a write; raises ``SubdomainUnavailable``."""
        availability = self.check_availability(label, exclude_request_id=exclude_request_id)
        if availability != Availability.AVAILABLE:
            raise SubdomainUnavailable(label, availability.value)
