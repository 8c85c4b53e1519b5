import uuid

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import INET, JSONB
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func
from sqlalchemy.types import CHAR, TypeDecorator

from hostdesk.utils.clock import utcnow

Base = declarative_base()


class GUID(TypeDecorator):
    """UUID on PostgreSQL, 36-char string everywhere else."""

    impl = CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(PGUUID(as_uuid=True))
        return dialect.type_descriptor(CHAR(36))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if not isinstance(value, uuid.UUID):
            try:
                value = uuid.UUID(str(value))
            except ValueError:
                return str(value)
        return value if dialect.name == "postgresql" else str(value)

    def process_result_value(self, value, dialect):
        if value is None or isinstance(value, uuid.UUID):
            return value
        try:
            return uuid.UUID(value)
        except ValueError:
            return value


UUID_TYPE = GUID()
JSON_TYPE = JSON().with_variant(JSONB, "postgresql")
INET_TYPE = String(45).with_variant(INET, "postgresql")

class ServiceRequest(Base):
    __tablename__ = "service_requests"

    id = Column(UUID_TYPE, primary_key=True, default=uuid.uuid4)
    user_id = Column(String(128), nullable=False)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    whatsapp = Column(String(32), nullable=False)
    project_name = Column(String(255), nullable=False)
    project_type = Column(String(64), nullable=False)
    other_project_type_description = Column(Text)
    subdomain = Column(String(63), nullable=False)
    has_project_files = Column(String(64), nullable=False)
    project_link = Column(Text)
    new_project_description = Column(Text)
    status = Column(String(32), nullable=False, default="Pending", server_default=text("'Pending'"))
    row_version = Column(Integer, nullable=False, default=1, server_default=text("1"))
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True))
    last_viewed_by_client = Column(DateTime(timezone=True))

    comments = relationship(
        "RequestComment",
        back_populates="request",
        order_by=lambda: [RequestComment.created_at, RequestComment.id],
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('Pending','In Progress','New Update','Active','Completed','Rejected')",
            name="chk_service_request_status",
        ),
        Index("uq_service_requests_subdomain", "subdomain", unique=True),
        Index("idx_service_requests_user", "user_id"),
        Index("idx_service_requests_created", "created_at"),
    )


class RequestComment(Base):
    __tablename__ = "request_comments"

    # Monotonic integer id breaks created_at ties so thread order is stable.
    id = Column(Integer, primary_key=True, autoincrement=True)
    request_id = Column(UUID_TYPE, ForeignKey("service_requests.id", ondelete="CASCADE"), nullable=False)
    author = Column(String(255), nullable=False)
    author_id = Column(String(128), nullable=False)
    text = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    request = relationship("ServiceRequest", back_populates="comments")

    __table_args__ = (Index("idx_request_comments_request", "request_id", "created_at"),)


class UserProfile(Base):
    __tablename__ = "user_profiles"

    user_id = Column(String(128), primary_key=True)
    display_name = Column(String(255))
    website = Column(Text)
    github = Column(Text)
    twitter = Column(Text)
    linkedin = Column(Text)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(UUID_TYPE, primary_key=True, default=uuid.uuid4)
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(String(64), nullable=False)
    action = Column(String(64), nullable=False)
    old_value = Column(JSON_TYPE)
    new_value = Column(JSON_TYPE)
    actor_type = Column(String(50), nullable=False)
    actor_id = Column(String(128))
    ip_address = Column(INET_TYPE)
    user_agent = Column(Text)
    audit_meta = Column("metadata", JSON_TYPE, nullable=True)
    timestamp = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    __table_args__ = (Index("idx_audit_logs_entity", "entity_type", "entity_id"),)
