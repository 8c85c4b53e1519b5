import uuid

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from hostdesk.models.request import Base
from hostdesk.services.access import Actor

ADMIN_ID = "admin-0001"
OWNER_ID = "owner-0001"
OTHER_ID = "owner-0002"

ADMIN = Actor(user_id=ADMIN_ID, is_admin=True, display_name="Support Team")
OWNER = Actor(user_id=OWNER_ID, is_admin=False, display_name="Ada Obi")
OTHER = Actor(user_id=OTHER_ID, is_admin=False)


def make_memory_sessionmaker():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine, sessionmaker(bind=engine, autoflush=False)


def make_file_sessionmaker(path):
    engine = create_engine(f"sqlite:///{path}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(engine)
    return engine, sessionmaker(bind=engine, autoflush=False)


def admin_env(**extra) -> dict:
    return {
        "ADMIN_USER_IDS": ADMIN_ID,
        "AI_ALLOWED_PROVIDERS": "mock",
        "AI_ENRICHMENT_PROVIDER": "mock",
        **extra,
    }


def request_payload(**overrides) -> dict:
    payload = {
        "name": "Ada Obi",
        "email": "ada@example.com",
        "whatsapp": "+2348012345678",
        "project_name": "Ada's Bakery",
        "project_type": "Local Marketplace/Shop",
        "subdomain": f"bakery-{uuid.uuid4().hex[:8]}",
        "has_project_files": "No, I need a new project built",
        "new_project_description": "An online shop for cakes with delivery slots.",
    }
    payload.update(overrides)
    return payload
