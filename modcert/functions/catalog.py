"""Catalog callables: modules, courses and module comments.

Every callable here mutates, so each one runs the abuse guard, then
``authorize_request`` with the active-round gate, then validation, then the
write, then the audit entry.
"""

from __future__ import annotations

import logging
from typing import Any

from modcert.auth.models import CallableRequest, Role
from modcert.auth.permissions import AuthorizeOptions, OwnershipCheck, authorize_request
from modcert.errors import NotFoundError, ValidationError
from modcert.functions.registry import Services, apply_abuse_guard, audit_details, callable_function
from modcert.store.documents import SERVER_TIMESTAMP
from modcert.utils.validators import (
    sanitize_string,
    validate_comment_input,
    validate_course_input,
    validate_module_input,
)

logger = logging.getLogger(__name__)

MODULES_COLLECTION = "modules"
COURSES_COLLECTION = "courses"
COMMENTS_COLLECTION = "comments"


def _document(services: Services, collection: str, doc_id: str) -> dict[str, Any]:
    snapshot = services.store.get(collection, doc_id)
    return {"id": doc_id, **(snapshot.data() or {})}


# ---------------------------------------------------------------------------
# Modules
# ---------------------------------------------------------------------------


@callable_function("createModule")
def create_module(request: CallableRequest, services: Services) -> dict[str, Any]:
    data = request.data or {}
    apply_abuse_guard(request, services, "createModule", content=data.get("titleEn"))

    auth = authorize_request(request, services.store, AuthorizeOptions(
        require_min_role=Role.program_owner,
        require_active_round=True,
    ))
    user = auth.user_context

    validated = validate_module_input(data)
    ref = services.store.add(MODULES_COLLECTION, {
        **validated,
        "status": "draft",
        "certificationRoundId": (auth.active_round or {}).get("id"),
        "createdBy": user.user_id,
        "createdAt": SERVER_TIMESTAMP,
        "updatedAt": SERVER_TIMESTAMP,
    })

    services.audit.log_audit(
        "CREATE_MODULE", user, MODULES_COLLECTION, ref.id,
        audit_details(request, titleEn=validated["titleEn"]),
    )
    logger.info("Module %s created by %s", ref.id, user.user_id)
    return {
        "success": True,
        "module": _document(services, MODULES_COLLECTION, ref.id),
        "message": "Module created successfully",
    }


@callable_function("updateModule")
def update_module(request: CallableRequest, services: Services) -> dict[str, Any]:
    data = request.data or {}
    apply_abuse_guard(request, services, "updateModule")

    # The ownership check needs the id before anything else is validated.
    module_id = sanitize_string(data.get("moduleId"))
    if not module_id:
        raise ValidationError("Module ID is required and cannot be empty")

    auth = authorize_request(request, services.store, AuthorizeOptions(
        require_min_role=Role.program_owner,
        require_active_round=True,
        require_ownership=OwnershipCheck(MODULES_COLLECTION, module_id),
    ))
    user = auth.user_context

    validated = validate_module_input(data)
    # Optional fields the caller left out keep their stored values.
    changes = {k: v for k, v in validated.items() if v is not None}
    services.store.update(MODULES_COLLECTION, module_id, {
        **changes,
        "updatedBy": user.user_id,
        "updatedAt": SERVER_TIMESTAMP,
    })

    services.audit.log_audit(
        "UPDATE_MODULE", user, MODULES_COLLECTION, module_id,
        audit_details(request, fields=sorted(changes)),
    )
    return {
        "success": True,
        "module": _document(services, MODULES_COLLECTION, module_id),
        "message": "Module updated successfully",
    }


# ---------------------------------------------------------------------------
# Courses
# ---------------------------------------------------------------------------


@callable_function("createCourse")
def create_course(request: CallableRequest, services: Services) -> dict[str, Any]:
    data = request.data or {}
    apply_abuse_guard(request, services, "createCourse", content=data.get("name"))

    auth = authorize_request(request, services.store, AuthorizeOptions(
        require_roles=[Role.sysadmin, Role.program_owner],
        require_active_round=True,
    ))
    user = auth.user_context

    validated = validate_course_input(data)
    ref = services.store.add(COURSES_COLLECTION, {
        **validated,
        "createdBy": user.user_id,
        "createdAt": SERVER_TIMESTAMP,
        "updatedAt": SERVER_TIMESTAMP,
    })

    services.audit.log_audit(
        "CREATE_COURSE", user, COURSES_COLLECTION, ref.id,
        audit_details(request, name=validated["name"]),
    )
    return {
        "success": True,
        "course": _document(services, COURSES_COLLECTION, ref.id),
        "message": "Course created successfully",
    }


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------


@callable_function("addComment")
def add_comment(request: CallableRequest, services: Services) -> dict[str, Any]:
    data = request.data or {}
    apply_abuse_guard(request, services, "addComment", content=data.get("text"))

    auth = authorize_request(request, services.store, AuthorizeOptions(
        require_min_role=Role.operations,
        require_active_round=True,
    ))
    user = auth.user_context

    validated = validate_comment_input(data)
    if not services.store.get(MODULES_COLLECTION, validated["moduleId"]).exists:
        raise NotFoundError(f"{MODULES_COLLECTION} not found")

    ref = services.store.add(COMMENTS_COLLECTION, {
        **validated,
        "authorName": user.display_name,
        "createdBy": user.user_id,
        "createdAt": SERVER_TIMESTAMP,
    })

    services.audit.log_audit(
        "CREATE_COMMENT", user, COMMENTS_COLLECTION, ref.id,
        audit_details(request, moduleId=validated["moduleId"]),
    )
    return {
        "success": True,
        "comment": _document(services, COMMENTS_COLLECTION, ref.id),
        "message": "Comment added successfully",
    }
