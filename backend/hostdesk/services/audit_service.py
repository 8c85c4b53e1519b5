import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from hostdesk.core.config import get_settings
from hostdesk.models.request import AuditLog
from hostdesk.services.access import Actor
from hostdesk.utils.alerting import alert_tracker

logger = logging.getLogger(__name__)

REDACTED = "[REDACTED]"
PII_REDACTION_FALLBACK_FIELDS = {"email", "whatsapp", "phone"}


def _redact_pii(value: Any, redact_keys: set[str]) -> Any:
    if isinstance(value, dict):
        return {
            key: REDACTED if isinstance(key, str) and key.lower() in redact_keys else _redact_pii(item, redact_keys)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [_redact_pii(item, redact_keys) for item in value]
    return value


def create_audit_log(
    db: Session,
    *,
    entity_type: str,
    entity_id: str,
    action: str,
    actor: Optional[Actor],
    old_value: Optional[dict[str, Any]] = None,
    new_value: Optional[dict[str, Any]] = None,
    metadata: Optional[dict[str, Any]] = None,
) -> AuditLog:
    """Add an audit row to the session; the caller owns the commit."""
    settings = get_settings()
    if settings.pii_redaction_enabled:
        redact_keys = {item.lower() for item in settings.pii_redaction_fields} or set(PII_REDACTION_FALLBACK_FIELDS)
        old_value = _redact_pii(old_value, redact_keys)
        new_value = _redact_pii(new_value, redact_keys)
        metadata = _redact_pii(metadata, redact_keys)

    log = AuditLog(
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        old_value=old_value,
        new_value=new_value,
        actor_type=actor.actor_type if actor else "SYSTEM",
        actor_id=actor.user_id if actor else None,
        ip_address=actor.ip_address if actor else None,
        user_agent=actor.user_agent if actor else None,
        audit_meta=metadata,
    )
    db.add(log)
    try:
        alert_tracker.record(action, metadata)
    except Exception:
        logger.exception("Alert tracker failed for action=%s", action)
    return log


class AuditTrail:
    """Commits one audit row per completed lifecycle operation."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def record(
        self,
        action: str,
        *,
        entity_id: str,
        actor: Optional[Actor],
        entity_type: str = "service_request",
        old_value: Optional[dict[str, Any]] = None,
        new_value: Optional[dict[str, Any]] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> None:
        create_audit_log(
            self.db,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            actor=actor,
            old_value=old_value,
            new_value=new_value,
            metadata=metadata,
        )
        self.db.commit()
