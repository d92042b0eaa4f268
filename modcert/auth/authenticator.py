"""Resolve a caller identity into a verified ``UserContext``."""

from __future__ import annotations

import logging

from modcert.auth.models import CallableRequest, Role, UserContext
from modcert.errors import AuthError
from modcert.store.documents import DocumentStore

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"


def authenticate_user(request: CallableRequest, store: DocumentStore) -> UserContext:
    """Verify the caller against the ``users`` profile collection.

    The role claim carried by the identity token wins over the stored
    profile role; either way the result must be one of the defined roles.

    Raises
    ------
    AuthError
        If the request carries no identity, the user is unknown or
        deactivated, or no valid role can be determined.
    """
    if request.auth is None:
        raise AuthError("Unauthorized: No authentication provided")

    user_id = request.auth.uid
    email = request.auth.email

    snapshot = store.get(USERS_COLLECTION, user_id)
    if not snapshot.exists:
        logger.warning("Rejected caller %s: no user profile", user_id)
        raise AuthError("Unauthorized: User not found in system")

    profile = snapshot.data() or {}
    if not profile.get("active"):
        logger.warning("Rejected caller %s: account deactivated", user_id)
        raise AuthError("Unauthorized: User account is deactivated")

    role = request.auth.role or profile.get("role")
    if not role or role not in Role.values():
        logger.warning("Rejected caller %s: invalid role %r", user_id, role)
        raise AuthError("Unauthorized: Invalid user role")

    return UserContext(
        user_id=user_id,
        email=email or profile.get("email", ""),
        role=Role(role),
        display_name=profile.get("displayName", ""),
        active=True,
    )
