"""Auth domain models: roles, caller identity, and the per-request user context."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class Role(str, Enum):
    """Role hierarchy: sysadmin > programOwner > operations."""

    sysadmin = "sysadmin"
    program_owner = "programOwner"
    operations = "operations"

    @property
    def level(self) -> int:
        """Return numeric level for comparison (higher = more privileges)."""
        return ROLE_LEVELS[self.value]

    @classmethod
    def values(cls) -> list[str]:
        return [r.value for r in cls]


ROLE_LEVELS: dict[str, int] = {
    "sysadmin": 3,
    "programOwner": 2,
    "operations": 1,
}


def role_level(role: Any) -> int:
    """Hierarchy level of *role*; unknown roles map to 0."""
    value = role.value if isinstance(role, Role) else role
    return ROLE_LEVELS.get(value, 0)


@dataclass
class AuthInfo:
    """Caller identity delivered by the transport (``request.auth``)."""

    uid: str
    email: str = ""
    role: Optional[str] = None  # role claim embedded in the token, if any


@dataclass
class CallableRequest:
    """An inbound callable invocation: optional identity plus a JSON payload."""

    auth: Optional[AuthInfo] = None
    data: dict[str, Any] = field(default_factory=dict)
    ip_address: Optional[str] = None


@dataclass
class UserContext:
    """Verified caller, produced by ``authenticate_user`` for one request."""

    user_id: str
    email: str
    role: Role
    display_name: str = ""
    active: bool = True

    def __post_init__(self) -> None:
        if isinstance(self.role, str):
            self.role = Role(self.role)
