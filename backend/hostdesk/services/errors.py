"""Domain errors raised by the request lifecycle services.

Routers translate these into HTTP responses; services never raise
``HTTPException`` themselves.
"""

from __future__ import annotations

from typing import Optional


class HostDeskError(Exception):
    pass


class FieldValidationError(HostDeskError):
    def __init__(self, message: str, *, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


class WriteDenied(HostDeskError):
    pass


class RequestNotFound(HostDeskError):
    pass


class VersionConflict(HostDeskError):
    pass


class SubdomainUnavailable(HostDeskError):
    def __init__(self, label: str, availability: str) -> None:
        super().__init__(f"Subdomain {label!r} is not available ({availability})")
        self.label = label
        self.availability = availability


class EmptyComment(FieldValidationError):
    def __init__(self) -> None:
        super().__init__("Comment text must not be empty", field="text")


class GenerationError(HostDeskError):
    """Upstream text generation failed; the caller may retry."""


class StoreUnavailable(HostDeskError):
    """The backing store could not be reached."""


class ProviderNotConfigured(GenerationError):
    """The configured AI provider is not allowed, unknown, or has no API key."""
