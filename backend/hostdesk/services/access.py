"""Ownership and admin checks shared by the store and the lifecycle services."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Optional

from hostdesk.services.errors import WriteDenied


@dataclass(frozen=True)
class Actor:
    user_id: str
    is_admin: bool
    display_name: Optional[str] = None
    email: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    @property
    def actor_type(self) -> str:
        return "ADMIN" if self.is_admin else "CLIENT"


def is_admin(user_id: Optional[str], admin_ids: Iterable[str]) -> bool:
    if not user_id:
        return False
    return user_id in set(admin_ids)


def build_actor(
    user_id: str,
    admin_ids: Iterable[str],
    *,
    display_name: Optional[str] = None,
    email: Optional[str] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> Actor:
    return Actor(
        user_id=user_id,
        is_admin=is_admin(user_id, admin_ids),
        display_name=display_name,
        email=email,
        ip_address=ip_address,
        user_agent=user_agent,
    )


def can_access(actor: Actor, owner_id: str) -> bool:
    return actor.is_admin or actor.user_id == owner_id


def ensure_can_access(actor: Actor, owner_id: str) -> None:
    if not can_access(actor, owner_id):
        raise WriteDenied("Only the owner or an admin may access this request")


def ensure_admin(actor: Actor) -> None:
    if not actor.is_admin:
        raise WriteDenied("Admin capability required")
