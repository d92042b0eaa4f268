"""User administration and audit-log callables (sysadmin only)."""

from __future__ import annotations

from typing import Any

from modcert.auth.authenticator import USERS_COLLECTION
from modcert.auth.models import CallableRequest, Role
from modcert.auth.permissions import AuthorizeOptions, authorize_request
from modcert.errors import ValidationError
from modcert.functions.registry import Services, apply_abuse_guard, audit_details, callable_function
from modcert.store.documents import SERVER_TIMESTAMP
from modcert.utils.validators import validate_number, validate_optional, validate_required, validate_user_input


@callable_function("createUser")
def create_user(request: CallableRequest, services: Services) -> dict[str, Any]:
    data = request.data or {}
    apply_abuse_guard(request, services, "createUser")

    auth = authorize_request(request, services.store, AuthorizeOptions(require_roles=Role.sysadmin))
    admin = auth.user_context

    validated = validate_user_input(data, services.settings.allowed_email_domains)
    user_id = validate_required(data.get("userId"), "User ID")
    if services.store.get(USERS_COLLECTION, user_id).exists:
        raise ValidationError(f"User {user_id} already exists")

    services.store.set(USERS_COLLECTION, user_id, {
        **validated,
        "active": True,
        "createdBy": admin.user_id,
        "createdAt": SERVER_TIMESTAMP,
        "updatedAt": SERVER_TIMESTAMP,
    })

    services.audit.log_audit(
        "CREATE_USER", admin, USERS_COLLECTION, user_id,
        audit_details(request, email=validated["email"], role=validated["role"]),
    )
    user = {"id": user_id, **(services.store.get(USERS_COLLECTION, user_id).data() or {})}
    return {"success": True, "user": user, "message": "User created successfully"}


@callable_function("setUserActive")
def set_user_active(request: CallableRequest, services: Services) -> dict[str, Any]:
    data = request.data or {}
    apply_abuse_guard(request, services, "setUserActive")

    auth = authorize_request(request, services.store, AuthorizeOptions(require_roles=Role.sysadmin))
    admin = auth.user_context

    user_id = validate_required(data.get("userId"), "User ID")
    active = data.get("active")
    if not isinstance(active, bool):
        raise ValidationError("Active must be true or false")

    services.store.update(USERS_COLLECTION, user_id, {"active": active, "updatedAt": SERVER_TIMESTAMP})

    action = "ACTIVATE_USER" if active else "DEACTIVATE_USER"
    services.audit.log_audit(action, admin, USERS_COLLECTION, user_id, audit_details(request))
    return {"success": True, "userId": user_id, "active": active}


@callable_function("listAuditLogs")
def list_audit_logs(request: CallableRequest, services: Services) -> dict[str, Any]:
    data = request.data or {}
    authorize_request(request, services.store, AuthorizeOptions(require_roles=Role.sysadmin))

    limit = validate_number(data["limit"], 1, 1000, "Limit") if data.get("limit") else 200
    entries = services.audit.get_events(
        user_id=validate_optional(data.get("userId"), field_name="User ID"),
        action=validate_optional(data.get("action"), field_name="Action"),
        resource_type=validate_optional(data.get("resourceType"), field_name="Resource Type"),
        limit=int(limit),
    )
    return {"success": True, "entries": [e.to_response() for e in entries], "count": len(entries)}
