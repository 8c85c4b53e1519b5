"""Request lifecycle: submission, status transitions and admin edits.

Status table::

    Pending -> {In Progress, Rejected} -> {New Update, Active, Completed} <-> New Update

The graph above is the intended flow, but admins may move a request from any
status to any other status (including out of Completed/Rejected). Owners never
set a status directly; the only owner-driven change is the comment
auto-transition in ``status_after_comment``.
"""

from __future__ import annotations

import logging
from typing import Optional

from hostdesk.models.request import ServiceRequest
from hostdesk.schemas.request import DetailsUpdate, RequestStatus, ServiceRequestCreate
from hostdesk.services.access import Actor, ensure_admin
from hostdesk.services.audit_service import AuditTrail
from hostdesk.services.errors import SubdomainUnavailable, WriteDenied
from hostdesk.services.request_store import RequestStore
from hostdesk.services.subdomain_allocator import SubdomainAllocator
from hostdesk.utils.clock import ensure_utc

logger = logging.getLogger(__name__)

INITIAL_STATUS = RequestStatus.PENDING

ADMIN_TRANSITIONS: dict[RequestStatus, frozenset[RequestStatus]] = {
    status: frozenset(RequestStatus) - {status} for status in RequestStatus
}
OWNER_TRANSITIONS: dict[RequestStatus, frozenset[RequestStatus]] = {
    status: frozenset() for status in RequestStatus
}
OWNER_COMMENT_TRANSITIONS: dict[RequestStatus, RequestStatus] = {
    RequestStatus.ACTIVE: RequestStatus.NEW_UPDATE,
    RequestStatus.COMPLETED: RequestStatus.NEW_UPDATE,
}


def allowed_transitions(current: RequestStatus, actor: Actor) -> frozenset[RequestStatus]:
    table = ADMIN_TRANSITIONS if actor.is_admin else OWNER_TRANSITIONS
    return table.get(current, frozenset())


def status_after_comment(current: RequestStatus, *, by_owner: bool) -> RequestStatus:
    if not by_owner:
        return current
    return OWNER_COMMENT_TRANSITIONS.get(current, current)


def newest_first(records: list[ServiceRequest]) -> list[ServiceRequest]:
    return sorted(records, key=lambda r: ensure_utc(r.created_at), reverse=True)


class RequestLifecycle:
    def __init__(
        self,
        store: RequestStore,
        allocator: SubdomainAllocator,
        audit: Optional[AuditTrail] = None,
    ) -> None:
        self.store = store
        self.allocator = allocator
        self.audit = audit

    def _audit(self, action: str, entity_id: str, actor: Actor, **kwargs) -> None:
        if self.audit is not None:
            self.audit.record(action, entity_id=entity_id, actor=actor, **kwargs)

    def submit(self, actor: Actor, payload: ServiceRequestCreate) -> ServiceRequest:
        try:
            self.allocator.confirm_available(payload.subdomain)
        except SubdomainUnavailable as exc:
            logger.info("Submission rejected: subdomain=%s availability=%s", exc.label, exc.availability)
            self._audit(
                "SUBDOMAIN_CONFLICT",
                exc.label,
                actor,
                entity_type="subdomain",
                metadata={"availability": exc.availability},
            )
            raise

        fields = payload.model_dump(mode="json")
        fields["user_id"] = actor.user_id
        fields["status"] = INITIAL_STATUS.value
        request_id = self.store.create(actor, fields)
        self._audit("REQUEST_CREATED", request_id, actor, new_value=fields)
        return self.store.get_by_id(actor, request_id)

    def get(self, actor: Actor, request_id: str) -> ServiceRequest:
        return self.store.get_by_id(actor, request_id)

    def list_for_owner(self, actor: Actor) -> list[ServiceRequest]:
        return newest_first(self.store.query_by_owner(actor.user_id))

    def list_all(self, actor: Actor) -> list[ServiceRequest]:
        return self.store.query_all(actor)

    def set_status(
        self,
        actor: Actor,
        request_id: str,
        new_status: RequestStatus,
        *,
        expected_version: Optional[int] = None,
    ) -> ServiceRequest:
        record = self.store.get_by_id(actor, request_id)
        current = RequestStatus(record.status)
        if new_status == current:
            return record
        if new_status not in allowed_transitions(current, actor):
            raise WriteDenied(f"{actor.actor_type} may not move a request from {current.value} to {new_status.value}")

        record = self.store.update_by_id(
            actor,
            request_id,
            {"status": new_status.value},
            expected_version=expected_version,
        )
        logger.info("Request %s status %s -> %s by %s", request_id, current.value, new_status.value, actor.user_id)
        self._audit(
            "STATUS_CHANGE",
            request_id,
            actor,
            old_value={"status": current.value},
            new_value={"status": new_status.value},
        )
        return record

    def update_details(self, actor: Actor, request_id: str, changes: DetailsUpdate) -> ServiceRequest:
        ensure_admin(actor)
        record = self.store.get_by_id(actor, request_id)
        fields = changes.model_dump(mode="json", exclude_none=True, exclude={"expected_row_version"})
        fields = {k: v for k, v in fields.items() if getattr(record, k) != v}
        if not fields:
            return record

        if "subdomain" in fields:
            self.allocator.confirm_available(fields["subdomain"], exclude_request_id=request_id)

        old_value = {k: getattr(record, k) for k in fields}
        record = self.store.update_by_id(
            actor,
            request_id,
            fields,
            expected_version=changes.expected_row_version,
        )
        self._audit("DETAILS_UPDATED", request_id, actor, old_value=old_value, new_value=fields)
        return record
