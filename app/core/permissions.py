"""Actors and role checks."""

import uuid
from dataclasses import dataclass
from enum import Enum

from app.core.exceptions import AuthorizationError


class UserRole(str, Enum):
    """User roles in the system."""

    GUEST = "guest"
    HOST = "host"
    ADMIN = "admin"


@dataclass(frozen=True)
class Actor:
    """The authenticated caller of a core operation."""

    user_id: uuid.UUID
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role is UserRole.ADMIN


def require_role(actor: Actor, *allowed_roles: UserRole) -> None:
    """Raise AuthorizationError unless the actor holds one of the roles."""
    if actor.role not in allowed_roles:
        raise AuthorizationError(
            f"Role '{actor.role.value}' is not authorized for this action"
        )


def require_admin(actor: Actor) -> None:
    require_role(actor, UserRole.ADMIN)


def require_host_access(actor: Actor, host_id: uuid.UUID) -> None:
    """Hosts may only see their own ledger; admins see every host's."""
    if actor.is_admin:
        return
    if actor.role is not UserRole.HOST:
        raise AuthorizationError("Only hosts can access earnings")
    if actor.user_id != host_id:
        raise AuthorizationError("Not authorized to access another host's earnings")
