"""
Access token handling.

Tokens are issued by the account service; this module only verifies them
and turns their claims into an ``Actor``. ``create_access_token`` exists
for local tooling and tests.
"""

from datetime import datetime, timedelta, timezone
import logging
from typing import Any, Dict, Optional, cast

import jwt
from jwt import PyJWTError

from .core.config import settings
from .core.enums import RoleName
from .core.exceptions import UnauthorizedError
from .principal import Actor

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_TTL = timedelta(hours=12)


def _secret_value(secret_obj: Any) -> str:
    getter = getattr(secret_obj, "get_secret_value", None)
    if callable(getter):
        return cast(str, getter())
    return cast(str, secret_obj)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed JWT access token.

    Args:
        data: Claims to encode (sub, role, role_id, email)
        expires_delta: Optional lifetime; defaults to 12 hours
    """
    to_encode = data.copy()
    to_encode["exp"] = datetime.now(timezone.utc) + (expires_delta or DEFAULT_TOKEN_TTL)
    return jwt.encode(to_encode, _secret_value(settings.secret_key), algorithm=settings.algorithm)


def decode_access_token(token: str) -> Dict[str, Any]:
    payload_raw = jwt.decode(
        token,
        _secret_value(settings.secret_key),
        algorithms=[settings.algorithm],
        options={"verify_aud": False},
    )
    return cast(Dict[str, Any], payload_raw)


def actor_from_token(token: str) -> Actor:
    """Decode ``token`` into an Actor, raising UnauthorizedError on any defect."""
    try:
        claims = decode_access_token(token)
    except PyJWTError as e:
        logger.info(f"Rejected access token: {str(e)}")
        raise UnauthorizedError("Could not validate credentials") from e

    user_id = claims.get("sub")
    role_raw = claims.get("role")
    role_id = claims.get("role_id") or user_id
    if not user_id or not role_raw:
        raise UnauthorizedError("Token is missing required claims")
    try:
        role = RoleName(str(role_raw).lower())
    except ValueError as e:
        raise UnauthorizedError(f"Unknown role: {role_raw}") from e

    return Actor(user_id=str(user_id), role=role, role_id=str(role_id), email=str(claims.get("email", "")))
