"""Bearer headers for route tests."""

from typing import Dict

from tripbooking.auth import create_access_token
from tripbooking.principal import Actor


def auth_headers(actor: Actor) -> Dict[str, str]:
    token = create_access_token(
        {"sub": actor.user_id, "role": actor.role.value, "role_id": actor.role_id, "email": actor.email}
    )
    return {"Authorization": f"Bearer {token}"}
