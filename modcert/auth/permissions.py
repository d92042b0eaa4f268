"""Role-based access control, ownership checks and the active-round gate.

Role hierarchy: sysadmin > programOwner > operations

``authorize_request`` is the single entry point a mutating callable goes
through before touching the store. Its checks always run in this order:

1. authenticate the caller
2. exact role-set membership (``require_roles``)
3. minimum hierarchy level (``require_min_role``)
4. an active certification round (``require_active_round``)
5. resource ownership (``require_ownership``)

The first failing check raises and the rest are skipped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Union

from modcert.auth.authenticator import authenticate_user
from modcert.auth.models import CallableRequest, Role, UserContext, role_level
from modcert.errors import ForbiddenError, NotFoundError, ValidationError
from modcert.store.documents import DocumentStore

logger = logging.getLogger(__name__)

ROUNDS_COLLECTION = "certificationRounds"

RoleSpec = Union[Role, str, Iterable[Union[Role, str]]]


def _role_value(role: Union[Role, str]) -> str:
    return role.value if isinstance(role, Role) else role


def _as_role_values(roles: RoleSpec) -> list[str]:
    if isinstance(roles, (Role, str)):
        return [_role_value(roles)]
    return [_role_value(r) for r in roles]


def has_permission(user: UserContext, required_role: Union[Role, str]) -> bool:
    """Check if a user's role meets or exceeds the required role level.

    Parameters
    ----------
    user:
        The authenticated user to check.
    required_role:
        The minimum role required.

    Returns
    -------
    bool
        True if user's role level >= required role level.
    """
    return role_level(user.role) >= role_level(required_role)


def require_role(user: UserContext, allowed_roles: RoleSpec) -> None:
    """Validate that the user's role is one of *allowed_roles*.

    A single role is treated as a one-element set. Raises ``ForbiddenError``
    otherwise.
    """
    allowed = _as_role_values(allowed_roles)
    if _role_value(user.role) not in allowed:
        raise ForbiddenError(f"Requires one of these roles: {', '.join(allowed)}")


def require_min_role(user: UserContext, min_role: Union[Role, str]) -> None:
    """Validate that the user has at least the given role.

    Raises ``ForbiddenError`` if the user lacks the required role.
    """
    if not has_permission(user, min_role):
        raise ForbiddenError(f"Requires minimum role: {_role_value(min_role)}")


def require_active_certification_round(store: DocumentStore) -> dict[str, Any]:
    """Return the active certification round, or raise ``ForbiddenError``.

    Applies to every caller, sysadmins included.
    """
    snapshot = (
        store.query(ROUNDS_COLLECTION)
        .where("status", "==", "active")
        .limit(1)
        .get()
    )
    if snapshot.empty:
        raise ForbiddenError("No active certification round. Changes are not allowed.")
    doc = snapshot.docs[0]
    round_data = doc.data() or {}
    round_data.setdefault("id", doc.id)
    return round_data


def require_ownership(
    user: UserContext,
    resource_type: str,
    resource_id: str,
    store: DocumentStore,
    owner_field: str = "createdBy",
) -> None:
    """Check that *user* owns ``resource_type/resource_id``.

    Sysadmins pass without the document being read.
    """
    if user.role == Role.sysadmin:
        return

    snapshot = store.get(resource_type, resource_id)
    if not snapshot.exists:
        raise NotFoundError(f"{resource_type} not found")

    resource = snapshot.data() or {}
    if resource.get(owner_field) != user.user_id:
        raise ForbiddenError(f"You do not own this {resource_type}")


def validate_email_domain(email: str, allowed_domains: Iterable[str]) -> None:
    """Reject addresses whose domain is not in *allowed_domains*."""
    allowed = list(allowed_domains)
    domain = email.rsplit("@", 1)[-1].lower() if "@" in email else ""
    if domain not in allowed:
        raise ValidationError(f"Email domain not allowed. Must be one of: {', '.join(allowed)}")


@dataclass
class OwnershipCheck:
    resource_type: str
    resource_id: str
    owner_field: str = "createdBy"


@dataclass
class AuthorizeOptions:
    require_roles: Optional[RoleSpec] = None
    require_min_role: Optional[Union[Role, str]] = None
    require_active_round: bool = False
    require_ownership: Optional[OwnershipCheck] = None


@dataclass
class AuthorizationResult:
    user_context: UserContext
    active_round: Optional[dict[str, Any]] = None


def authorize_request(
    request: CallableRequest,
    store: DocumentStore,
    options: Optional[AuthorizeOptions] = None,
) -> AuthorizationResult:
    """Run the full authorization pipeline for one request.

    Usage in a callable::

        @callable_function("updateModule")
        def update_module(request, services):
            auth = authorize_request(request, services.store, AuthorizeOptions(
                require_min_role=Role.program_owner,
                require_active_round=True,
                require_ownership=OwnershipCheck("modules", module_id),
            ))
            ...
    """
    options = options or AuthorizeOptions()

    user = authenticate_user(request, store)

    try:
        if options.require_roles is not None:
            require_role(user, options.require_roles)

        if options.require_min_role is not None:
            require_min_role(user, options.require_min_role)

        active_round = None
        if options.require_active_round:
            active_round = require_active_certification_round(store)

        if options.require_ownership is not None:
            check = options.require_ownership
            require_ownership(
                user,
                check.resource_type,
                check.resource_id,
                store,
                owner_field=check.owner_field,
            )
    except ForbiddenError as exc:
        logger.info("Denied %s (%s): %s", user.user_id, user.role.value, exc.message)
        raise

    return AuthorizationResult(user_context=user, active_round=active_round)
