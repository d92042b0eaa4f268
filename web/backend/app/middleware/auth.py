"""Auth middleware -- FastAPI dependencies for the caller identity and services.

The caller identity comes from an ``Authorization: Bearer <token>`` header
issued by ``modcert tokens issue``. A missing, unknown or expired token
means an anonymous call; the callable decides whether that is allowed.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header

from modcert.auth.models import AuthInfo
from modcert.config import Settings
from modcert.functions import Services

# Shared services instance
_services: Optional[Services] = None


def get_services() -> Services:
    """Return the singleton Services instance."""
    global _services
    if _services is None:
        _services = Services.from_settings(Settings.from_env())
    return _services


async def get_caller(
    authorization: Optional[str] = Header(None),
    services: Services = Depends(get_services),
) -> Optional[AuthInfo]:
    """FastAPI dependency that resolves the bearer token, if any."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return services.tokens.resolve(token)
