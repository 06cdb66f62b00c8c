"""The authenticated actor behind a request."""

from __future__ import annotations

from dataclasses import dataclass

from .core.enums import RoleName


@dataclass(frozen=True)
class Actor:
    """
    Caller identity decoded from the access token.

    ``role_id`` is the tourist or driver record the user acts as; admins
    carry their user id there.
    """

    user_id: str
    role: RoleName
    role_id: str
    email: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == RoleName.ADMIN

    @property
    def is_tourist(self) -> bool:
        return self.role == RoleName.TOURIST

    @property
    def is_driver(self) -> bool:
        return self.role == RoleName.DRIVER
