import logging
import threading
from dataclasses import dataclass
from typing import Optional

import jwt
from fastapi import Depends, Header, HTTPException
from jwt import PyJWKClient

from hostdesk.core.config import get_settings
from hostdesk.services.access import is_admin

logger = logging.getLogger(__name__)

ASYMMETRIC_ALGORITHMS = ["RS256", "ES256"]

_jwks_client: Optional[PyJWKClient] = None
_jwks_lock = threading.Lock()


def _get_jwks_client(jwks_url: str) -> PyJWKClient:
    global _jwks_client
    if _jwks_client is not None and _jwks_client.uri == jwks_url:
        return _jwks_client
    with _jwks_lock:
        if _jwks_client is None or _jwks_client.uri != jwks_url:
            _jwks_client = PyJWKClient(jwks_url, cache_keys=True, lifespan=3600)
        return _jwks_client


@dataclass
class CurrentUser:
    """Identity supplied by the identity provider for the current request."""

    id: str
    email: Optional[str] = None
    display_name: Optional[str] = None


def _decode_kwargs(settings) -> dict:
    audience = (settings.auth_jwt_audience or "").strip()
    if audience:
        return {"audience": audience, "options": {"verify_aud": True}}
    return {"options": {"verify_aud": False}}


def _decode_shared_secret(token: str, settings) -> Optional[dict]:
    try:
        return jwt.decode(token, settings.auth_jwt_secret, algorithms=["HS256"], **_decode_kwargs(settings))
    except jwt.InvalidTokenError:
        return None


def _decode_with_jwks(token: str, settings) -> Optional[dict]:
    jwks_url = (settings.auth_jwks_url or "").strip()
    if not jwks_url:
        return None
    try:
        signing_key = _get_jwks_client(jwks_url).get_signing_key_from_jwt(token)
        return jwt.decode(token, signing_key.key, algorithms=ASYMMETRIC_ALGORITHMS, **_decode_kwargs(settings))
    except (jwt.InvalidTokenError, jwt.PyJWKClientError) as exc:
        logger.debug("JWKS verification failed: %s", exc)
        return None


def get_current_user(
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> CurrentUser:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(401, "Missing bearer token")

    token = authorization.split(" ", 1)[1].strip()
    settings = get_settings()

    if not settings.auth_jwt_secret and not settings.auth_jwks_url:
        raise HTTPException(500, "Token verification is not configured")

    try:
        header = jwt.get_unverified_header(token)
    except jwt.DecodeError:
        raise HTTPException(401, "Invalid token")

    payload = None
    if header.get("alg") == "HS256":
        if settings.auth_jwt_secret:
            payload = _decode_shared_secret(token, settings)
    else:
        payload = _decode_with_jwks(token, settings)

    if payload is None:
        raise HTTPException(401, "Invalid token")

    user_id = payload.get("sub") or payload.get("user_id")
    if not user_id:
        raise HTTPException(401, "Invalid token")

    return CurrentUser(
        id=str(user_id),
        email=payload.get("email"),
        display_name=payload.get("name"),
    )


def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not is_admin(user.id, get_settings().admin_user_ids):
        raise HTTPException(403, "Admin access required")
    return user
