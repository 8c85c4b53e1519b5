"""Comment threads and owner unread tracking."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from hostdesk.models.request import ServiceRequest
from hostdesk.schemas.request import RequestStatus
from hostdesk.services.access import Actor
from hostdesk.services.audit_service import AuditTrail
from hostdesk.services.errors import EmptyComment, HostDeskError, VersionConflict
from hostdesk.services.lifecycle_service import status_after_comment
from hostdesk.services.request_store import NewComment, RequestStore
from hostdesk.utils.alerting import alert_tracker
from hostdesk.utils.clock import ensure_utc, utcnow

logger = logging.getLogger(__name__)

# One re-read when the request changes between reading its status and writing the comment.
COMMENT_ATTEMPTS = 2


def has_unread_update(updated_at: Optional[datetime], last_viewed: Optional[datetime]) -> bool:
    updated_at = ensure_utc(updated_at)
    if updated_at is None:
        return False
    last_viewed = ensure_utc(last_viewed)
    return last_viewed is None or updated_at > last_viewed


def author_name(actor: Actor) -> str:
    if actor.display_name and actor.display_name.strip():
        return actor.display_name.strip()
    return "Admin" if actor.is_admin else "User"


class CommentThread:
    def __init__(self, store: RequestStore, audit: Optional[AuditTrail] = None) -> None:
        self.store = store
        self.audit = audit

    def post_comment(self, actor: Actor, request_id: str, text: str) -> ServiceRequest:
        text = (text or "").strip()
        if not text:
            raise EmptyComment()
        comment = NewComment(author=author_name(actor), author_id=actor.user_id, text=text)

        for attempt in range(1, COMMENT_ATTEMPTS + 1):
            record = self.store.get_by_id(actor, request_id)
            current = RequestStatus(record.status)
            # Admins never trigger the auto-transition, even on their own requests.
            by_owner = record.user_id == actor.user_id and not actor.is_admin
            next_status = status_after_comment(current, by_owner=by_owner)

            fields = {"status": next_status.value} if next_status != current else None
            try:
                # A status change is only written against the version it was derived from.
                record = self.store.append_comment(
                    actor,
                    request_id,
                    comment,
                    fields=fields,
                    expected_version=record.row_version if fields else None,
                )
                break
            except VersionConflict:
                if attempt == COMMENT_ATTEMPTS:
                    raise
                logger.info("Request %s changed while commenting, re-reading status", request_id)

        if fields:
            logger.info("Owner comment moved request %s from %s to %s", request_id, current.value, next_status.value)

        if self.audit is not None:
            self.audit.record(
                "COMMENT_POSTED",
                entity_id=request_id,
                actor=actor,
                old_value={"status": current.value},
                new_value={"status": next_status.value},
                metadata={"length": len(text)},
            )
        return record

    def mark_viewed(self, actor: Actor, record: ServiceRequest) -> bool:
        """Best-effort watermark write for the owner's detail view.

        Returns True when the watermark was written. Failures are logged and
        never raised; the unread indicator simply stays on.
        """
        if record.user_id != actor.user_id:
            return False
        if not has_unread_update(record.updated_at, record.last_viewed_by_client):
            return False
        try:
            self.store.update_by_id(actor, str(record.id), {"last_viewed_by_client": utcnow()})
        except HostDeskError as exc:
            logger.warning("Could not record view watermark for request %s: %s", record.id, exc)
            alert_tracker.record("WATERMARK_WRITE_FAILED", {"request_id": str(record.id)})
            return False
        return True
