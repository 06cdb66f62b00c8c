# backend/tripbooking/api/dependencies/auth.py
"""
Authentication dependencies.

The bearer token is decoded without a database round-trip; its claims
carry everything the services need to authorize the call.
"""

import logging
from typing import Callable

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ...auth import actor_from_token
from ...core.enums import RoleName
from ...core.exceptions import ForbiddenError, UnauthorizedError
from ...principal import Actor

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
) -> Actor:
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Not authenticated")
    return actor_from_token(credentials.credentials)


def require_role(*roles: RoleName) -> Callable[[Actor], Actor]:
    """Dependency factory: the caller must hold one of ``roles``."""

    def _check(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in roles:
            logger.info(
                "Role check failed",
                extra={"user_id": actor.user_id, "role": actor.role.value},
            )
            raise ForbiddenError(
                f"Requires role: {', '.join(role.value for role in roles)}"
            )
        return actor

    return _check
