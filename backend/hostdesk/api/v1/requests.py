"""Service request API: intake, owner dashboard, comments and admin management."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from hostdesk.core.auth import CurrentUser, get_current_user, require_admin
from hostdesk.core.config import get_settings
from hostdesk.core.dependencies import get_db
from hostdesk.models.request import ServiceRequest
from hostdesk.schemas.request import (
    CommentCreate,
    CommentOut,
    DetailsUpdate,
    ServiceRequestCreate,
    ServiceRequestListResponse,
    ServiceRequestOut,
    StatusUpdate,
    SubdomainAvailabilityOut,
)
from hostdesk.services.access import Actor, build_actor
from hostdesk.services.audit_service import AuditTrail
from hostdesk.services.comment_service import CommentThread, has_unread_update
from hostdesk.services.errors import (
    FieldValidationError,
    HostDeskError,
    RequestNotFound,
    StoreUnavailable,
    SubdomainUnavailable,
    VersionConflict,
    WriteDenied,
)
from hostdesk.services.lifecycle_service import RequestLifecycle
from hostdesk.services.profile_service import get_profile
from hostdesk.services.request_store import SqlRequestStore
from hostdesk.services.subdomain_allocator import Availability, SubdomainAllocator, normalize_label
from hostdesk.utils.rate_limit import get_client_ip, get_user_agent

logger = logging.getLogger(__name__)

router = APIRouter()

ACCESS_DENIED = "Access denied"


def get_actor(
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Actor:
    display_name = current_user.display_name
    if not display_name:
        profile = get_profile(db, current_user.id)
        display_name = profile.display_name if profile else None
    return build_actor(
        current_user.id,
        get_settings().admin_user_ids,
        display_name=display_name,
        email=current_user.email,
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
    )


def _allocator(store: SqlRequestStore) -> SubdomainAllocator:
    return SubdomainAllocator(store, get_settings().reserved_subdomains)


def _lifecycle(db: Session) -> RequestLifecycle:
    store = SqlRequestStore(db)
    return RequestLifecycle(store, _allocator(store), AuditTrail(db))


def _thread(db: Session) -> CommentThread:
    return CommentThread(SqlRequestStore(db), AuditTrail(db))


def to_http_error(exc: HostDeskError, actor: Actor) -> HTTPException:
    if isinstance(exc, RequestNotFound):
        # Non-admins get the same answer for "missing" and "not yours".
        if actor.is_admin:
            return HTTPException(404, "Request not found")
        return HTTPException(403, ACCESS_DENIED)
    if isinstance(exc, WriteDenied):
        return HTTPException(403, ACCESS_DENIED)
    if isinstance(exc, SubdomainUnavailable):
        return HTTPException(
            409,
            {
                "error": "subdomain_unavailable",
                "subdomain": exc.label,
                "availability": exc.availability,
                "message": "Please choose a different subdomain.",
            },
        )
    if isinstance(exc, VersionConflict):
        return HTTPException(409, "Version conflict")
    if isinstance(exc, FieldValidationError):
        return HTTPException(400, str(exc))
    if isinstance(exc, StoreUnavailable):
        return HTTPException(503, "Storage unavailable")
    logger.error("Unmapped domain error %s: %s", type(exc).__name__, exc)
    return HTTPException(500, "Internal error")


def to_out(record: ServiceRequest) -> ServiceRequestOut:
    return ServiceRequestOut(
        id=str(record.id),
        user_id=record.user_id,
        name=record.name,
        email=record.email,
        whatsapp=record.whatsapp,
        project_name=record.project_name,
        project_type=record.project_type,
        subdomain=record.subdomain,
        other_project_type_description=record.other_project_type_description,
        has_project_files=record.has_project_files,
        project_link=record.project_link,
        new_project_description=record.new_project_description,
        status=record.status,
        row_version=record.row_version,
        created_at=record.created_at,
        updated_at=record.updated_at,
        last_viewed_by_client=record.last_viewed_by_client,
        has_unread_update=has_unread_update(record.updated_at, record.last_viewed_by_client),
        comments=[
            CommentOut(author=c.author, author_id=c.author_id, text=c.text, created_at=c.created_at)
            for c in record.comments
        ],
    )


# ─── Intake ────────────────────────────────────────────


@router.get("/subdomains/{label}/availability", response_model=SubdomainAvailabilityOut)
def check_subdomain(
    label: str,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    normalized = normalize_label(label)
    try:
        availability = _allocator(SqlRequestStore(db)).check_availability(normalized)
    except HostDeskError as exc:
        raise to_http_error(exc, actor) from exc
    return SubdomainAvailabilityOut(
        label=normalized,
        availability=availability.value,
        available=availability == Availability.AVAILABLE,
    )


@router.post("/requests", response_model=ServiceRequestOut, status_code=201)
def submit_request(
    payload: ServiceRequestCreate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    try:
        record = _lifecycle(db).submit(actor, payload)
    except HostDeskError as exc:
        raise to_http_error(exc, actor) from exc
    return to_out(record)


# ─── Owner dashboard ───────────────────────────────────


@router.get("/requests", response_model=ServiceRequestListResponse)
def list_my_requests(
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    records = _lifecycle(db).list_for_owner(actor)
    return ServiceRequestListResponse(items=[to_out(r) for r in records])


@router.get("/requests/{request_id}", response_model=ServiceRequestOut)
def get_request(
    request_id: str,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    try:
        record = _lifecycle(db).get(actor, request_id)
    except HostDeskError as exc:
        raise to_http_error(exc, actor) from exc
    _thread(db).mark_viewed(actor, record)
    return to_out(record)


@router.post("/requests/{request_id}/comments", response_model=ServiceRequestOut, status_code=201)
def post_comment(
    request_id: str,
    payload: CommentCreate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    try:
        record = _thread(db).post_comment(actor, request_id, payload.text)
    except HostDeskError as exc:
        raise to_http_error(exc, actor) from exc
    return to_out(record)


# ─── Admin ─────────────────────────────────────────────


@router.get("/admin/requests", response_model=ServiceRequestListResponse)
def list_all_requests(
    _admin: CurrentUser = Depends(require_admin),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    try:
        records = _lifecycle(db).list_all(actor)
    except HostDeskError as exc:
        raise to_http_error(exc, actor) from exc
    return ServiceRequestListResponse(items=[to_out(r) for r in records])


@router.patch("/admin/requests/{request_id}/status", response_model=ServiceRequestOut)
def update_status(
    request_id: str,
    payload: StatusUpdate,
    _admin: CurrentUser = Depends(require_admin),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    try:
        record = _lifecycle(db).set_status(
            actor,
            request_id,
            payload.status,
            expected_version=payload.expected_row_version,
        )
    except HostDeskError as exc:
        raise to_http_error(exc, actor) from exc
    return to_out(record)


@router.patch("/admin/requests/{request_id}", response_model=ServiceRequestOut)
def update_details(
    request_id: str,
    payload: DetailsUpdate,
    _admin: CurrentUser = Depends(require_admin),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    try:
        record = _lifecycle(db).update_details(actor, request_id, payload)
    except HostDeskError as exc:
        raise to_http_error(exc, actor) from exc
    return to_out(record)
