"""Request Store Adapter.

``RequestStore`` is the narrow persistence contract the lifecycle services
depend on. ``SqlRequestStore`` binds it to a SQLAlchemy session.

Every mutation stamps ``updated_at`` (never earlier than the previous stamp)
and bumps ``row_version``; a write carrying an expected version claims it with
a conditional UPDATE, so a concurrent change turns into ``VersionConflict``.
Recording the owner's view watermark alone touches neither. Comments are
separate append-only rows, so concurrent appends compose instead of
overwriting one another.
"""

from __future__ import annotations

import abc
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from hostdesk.models.request import RequestComment, ServiceRequest
from hostdesk.services.access import Actor, ensure_admin, ensure_can_access
from hostdesk.services.errors import (
    FieldValidationError,
    RequestNotFound,
    StoreUnavailable,
    SubdomainUnavailable,
    VersionConflict,
    WriteDenied,
)
from hostdesk.utils.clock import ensure_utc, utcnow

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = (
    "user_id",
    "name",
    "email",
    "whatsapp",
    "project_name",
    "project_type",
    "subdomain",
    "has_project_files",
)
UPDATABLE_FIELDS = frozenset(
    {
        "name",
        "email",
        "whatsapp",
        "project_name",
        "project_type",
        "other_project_type_description",
        "subdomain",
        "has_project_files",
        "project_link",
        "new_project_description",
        "status",
        "last_viewed_by_client",
    }
)


@dataclass(frozen=True)
class NewComment:
    author: str
    author_id: str
    text: str


class RequestStore(abc.ABC):
    """Persistence contract for service requests."""

    @abc.abstractmethod
    def create(self, actor: Actor, fields: dict[str, Any]) -> str:
        """Insert a request and return its id."""

    @abc.abstractmethod
    def get_by_id(self, actor: Actor, request_id: str) -> ServiceRequest:
        ...

    @abc.abstractmethod
    def update_by_id(
        self,
        actor: Actor,
        request_id: str,
        fields: dict[str, Any],
        *,
        expected_version: Optional[int] = None,
    ) -> ServiceRequest:
        ...

    @abc.abstractmethod
    def query_by_owner(self, owner_id: str) -> list[ServiceRequest]:
        ...

    @abc.abstractmethod
    def query_all(self, actor: Actor) -> list[ServiceRequest]:
        """All requests, newest first. Admin only."""

    @abc.abstractmethod
    def append_comment(
        self,
        actor: Actor,
        request_id: str,
        comment: NewComment,
        *,
        fields: Optional[dict[str, Any]] = None,
        expected_version: Optional[int] = None,
    ) -> ServiceRequest:
        """Append *comment* and merge *fields* in the same write."""

    @abc.abstractmethod
    def find_by_subdomain(self, label: str) -> Optional[ServiceRequest]:
        ...


def _parse_id(request_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(request_id))
    except ValueError as exc:
        raise RequestNotFound(f"Request {request_id!r} not found") from exc


class SqlRequestStore(RequestStore):
    def __init__(self, db: Session) -> None:
        self.db = db

    def _next_stamp(self, record: ServiceRequest) -> datetime:
        now = utcnow()
        previous = ensure_utc(record.updated_at) or ensure_utc(record.created_at)
        if previous is not None and previous > now:
            return previous
        return now

    def _load(self, request_id: str) -> ServiceRequest:
        try:
            record = self.db.get(ServiceRequest, _parse_id(request_id), populate_existing=True)
        except SQLAlchemyError as exc:
            raise StoreUnavailable(str(exc)) from exc
        if record is None:
            raise RequestNotFound(f"Request {request_id!r} not found")
        return record

    def _commit(self, record: ServiceRequest) -> None:
        label = record.subdomain
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            if "subdomain" in str(exc.orig).lower():
                raise SubdomainUnavailable(label, "TAKEN") from exc
            raise FieldValidationError(str(exc.orig)) from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StoreUnavailable(str(exc)) from exc
        self.db.refresh(record)

    def create(self, actor: Actor, fields: dict[str, Any]) -> str:
        if fields.get("user_id") != actor.user_id:
            raise WriteDenied("Requests can only be created for the acting user")
        missing = [name for name in REQUIRED_FIELDS if not fields.get(name)]
        if missing:
            raise FieldValidationError(f"Missing required fields: {', '.join(missing)}", field=missing[0])

        record = ServiceRequest(
            id=uuid.uuid4(),
            created_at=utcnow(),
            row_version=1,
            **{k: v for k, v in fields.items() if k in UPDATABLE_FIELDS or k == "user_id"},
        )
        self.db.add(record)
        self._commit(record)
        logger.info("Created service request id=%s subdomain=%s", record.id, record.subdomain)
        return str(record.id)

    def get_by_id(self, actor: Actor, request_id: str) -> ServiceRequest:
        record = self._load(request_id)
        ensure_can_access(actor, record.user_id)
        return record

    def _apply(
        self,
        actor: Actor,
        record: ServiceRequest,
        fields: dict[str, Any],
        expected_version: Optional[int],
    ) -> None:
        ensure_can_access(actor, record.user_id)
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise FieldValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        if set(fields) == {"last_viewed_by_client"}:
            # Viewing is bookkeeping: no stamp, no version bump.
            previous = ensure_utc(record.updated_at)
            value = ensure_utc(fields["last_viewed_by_client"])
            if value is not None and previous is not None:
                value = max(value, previous)
            record.last_viewed_by_client = value
            return

        if expected_version is not None:
            self._claim_version(record, expected_version)
        else:
            record.row_version = ServiceRequest.row_version + 1

        stamp = self._next_stamp(record)
        for key, value in fields.items():
            if key == "last_viewed_by_client" and value is not None:
                # A watermark never trails the stamp written alongside it.
                value = max(ensure_utc(value), stamp)
            setattr(record, key, value)
        record.updated_at = stamp

    def _claim_version(self, record: ServiceRequest, expected_version: int) -> None:
        """Compare-and-swap ``row_version`` in the database, inside the write's transaction."""
        stmt = (
            update(ServiceRequest)
            .where(ServiceRequest.id == record.id, ServiceRequest.row_version == expected_version)
            .values(row_version=expected_version + 1)
            .execution_options(synchronize_session=False)
        )
        try:
            claimed = self.db.execute(stmt).rowcount
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StoreUnavailable(str(exc)) from exc
        if claimed != 1:
            self.db.rollback()
            raise VersionConflict(f"Request {record.id} is no longer at version {expected_version}")

    def update_by_id(
        self,
        actor: Actor,
        request_id: str,
        fields: dict[str, Any],
        *,
        expected_version: Optional[int] = None,
    ) -> ServiceRequest:
        record = self._load(request_id)
        self._apply(actor, record, fields, expected_version)
        self._commit(record)
        return record

    def query_by_owner(self, owner_id: str) -> list[ServiceRequest]:
        stmt = select(ServiceRequest).where(ServiceRequest.user_id == owner_id)
        return list(self.db.scalars(stmt).all())

    def query_all(self, actor: Actor) -> list[ServiceRequest]:
        ensure_admin(actor)
        stmt = select(ServiceRequest).order_by(ServiceRequest.created_at.desc())
        return list(self.db.scalars(stmt).all())

    def append_comment(
        self,
        actor: Actor,
        request_id: str,
        comment: NewComment,
        *,
        fields: Optional[dict[str, Any]] = None,
        expected_version: Optional[int] = None,
    ) -> ServiceRequest:
        record = self._load(request_id)
        self._apply(actor, record, dict(fields or {}), expected_version)
        self.db.add(
            RequestComment(
                request_id=record.id,
                author=comment.author,
                author_id=comment.author_id,
                text=comment.text,
                created_at=record.updated_at,
            )
        )
        self._commit(record)
        return record

    def find_by_subdomain(self, label: str) -> Optional[ServiceRequest]:
        try:
            stmt = select(ServiceRequest).where(ServiceRequest.subdomain == label).limit(1)
            return self.db.scalars(stmt).first()
        except SQLAlchemyError as exc:
            raise StoreUnavailable(str(exc)) from exc
