"""Actors and input validation shared by the lifecycle workflows."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date
from uuid import UUID

from solarcrew.errors import ForbiddenError, ValidationError


class Role(str, enum.Enum):
    """Roles that can drive workflow operations."""

    admin = "admin"
    leader = "leader"
    worker = "worker"


@dataclass(frozen=True)
class Actor:
    """The authenticated user behind a request.

    Attributes:
        actor_id: User or crew member identifier.
        role: Actor role.
        crew_id: Crew the actor works in, if any.
    """

    actor_id: str
    role: Role
    crew_id: UUID | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.admin


def require_role(actor: Actor, *roles: Role, action: str) -> None:
    """Raise ForbiddenError unless the actor has one of the roles."""
    if actor.role not in roles:
        raise ForbiddenError(
            f"Role {actor.role.value} may not {action}",
            role=actor.role.value,
            allowed=",".join(r.value for r in roles),
        )


def require_text(field: str, value: str | None, min_length: int) -> str:
    """Return the stripped value, or raise if it is shorter than min_length."""
    text = (value or "").strip()
    if len(text) < min_length:
        raise ValidationError(
            field,
            f"{field} must be at least {min_length} characters",
        )
    return text


def require_not_past(field: str, value: date, today: date) -> date:
    """Raise ValidationError if the date lies before today."""
    if value < today:
        raise ValidationError(field, f"{field} must be today or later")
    return value
