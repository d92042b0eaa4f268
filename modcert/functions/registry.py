"""Callable function registry and the handler boundary.

A callable takes a ``CallableRequest`` and the shared ``Services`` and
returns a JSON-able dict. ``invoke`` is the only way the transport runs one:
errors from the ``modcert.errors`` taxonomy pass through unchanged, anything
else is logged and replaced by a generic ``InternalError``.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Optional

from modcert.auth.models import CallableRequest
from modcert.auth.sessions import TokenStore
from modcert.config import Settings
from modcert.errors import InternalError, ModcertError, NotFoundError
from modcert.moderation.guard import AbuseGuard
from modcert.moderation.window_store import open_window_store
from modcert.security.audit_log import AuditLogger
from modcert.store.documents import DocumentStore, open_store

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything a callable needs, built once per process."""

    settings: Settings
    store: DocumentStore
    guard: AbuseGuard
    audit: AuditLogger
    tokens: TokenStore

    @classmethod
    def from_settings(cls, settings: Settings, store: Optional[DocumentStore] = None) -> "Services":
        store = store if store is not None else open_store(settings)
        guard = AbuseGuard(
            open_window_store(settings),
            max_requests=settings.rate_limit_max,
            window_seconds=settings.rate_limit_window,
            duplicate_window_seconds=settings.duplicate_window,
        )
        executor = (
            ThreadPoolExecutor(max_workers=2, thread_name_prefix="audit")
            if settings.audit_async
            else None
        )
        return cls(
            settings=settings,
            store=store,
            guard=guard,
            audit=AuditLogger(store, executor=executor),
            tokens=TokenStore(store),
        )


CallableFn = Callable[[CallableRequest, Services], dict[str, Any]]

_FUNCTIONS: dict[str, CallableFn] = {}


def callable_function(name: str) -> Callable[[CallableFn], CallableFn]:
    """Register the decorated function under *name*."""

    def decorator(fn: CallableFn) -> CallableFn:
        _FUNCTIONS[name] = fn
        return fn

    return decorator


def list_functions() -> list[str]:
    return sorted(_FUNCTIONS)


def invoke(name: str, request: CallableRequest, services: Services) -> dict[str, Any]:
    """Run callable *name* behind the error boundary."""
    fn = _FUNCTIONS.get(name)
    if fn is None:
        raise NotFoundError(f"Function {name} not found")
    try:
        return fn(request, services)
    except ModcertError:
        raise
    except Exception:
        logger.exception("Unhandled error in %s", name)
        raise InternalError(f"Failed to {name}") from None


# ---------------------------------------------------------------------------
# Helpers shared by the callables
# ---------------------------------------------------------------------------


def apply_abuse_guard(
    request: CallableRequest,
    services: Services,
    action: str,
    content: Any = None,
) -> None:
    """Rate-limit (and optionally de-duplicate) a mutating call.

    Anonymous calls are left to ``authorize_request`` to reject. The guard runs
    before authorization and validation, so a rejected call still counts and
    still opens a duplicate window for its content.
    """
    if request.auth is None:
        return
    services.guard.check_rate_limit(request.auth.uid, action)
    if isinstance(content, str) and content:
        services.guard.check_duplicate_content(request.auth.uid, content, action)


def audit_details(request: CallableRequest, **extra: Any) -> dict[str, Any]:
    details = dict(extra)
    if request.ip_address:
        details["ipAddress"] = request.ip_address
    return details
