"""Shared fixtures: an in-memory store, a controllable clock and wired services."""

from __future__ import annotations

from typing import Any, Optional

import pytest

from modcert.auth.models import AuthInfo, CallableRequest
from modcert.auth.sessions import TokenStore
from modcert.config import Settings
from modcert.functions import Services
from modcert.moderation.guard import AbuseGuard
from modcert.moderation.window_store import InMemoryWindowStore
from modcert.security.audit_log import AuditLogger
from modcert.store.documents import MemoryDocumentStore


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def add_user(
    store,
    uid: str,
    role: Optional[str] = "programOwner",
    active: bool = True,
    email: Optional[str] = None,
    display_name: str = "",
) -> None:
    store.set("users", uid, {
        "email": email or f"{uid}@wbscodingschool.com",
        "displayName": display_name or uid.title(),
        "role": role,
        "active": active,
    })


def add_round(store, status: str = "active", name: str = "Spring round") -> str:
    return store.add("certificationRounds", {"name": name, "status": status}).id


def make_request(
    uid: Optional[str] = None,
    data: Optional[dict[str, Any]] = None,
    role_claim: Optional[str] = None,
    ip_address: Optional[str] = None,
) -> CallableRequest:
    auth = AuthInfo(uid=uid, email=f"{uid}@wbscodingschool.com", role=role_claim) if uid else None
    return CallableRequest(auth=auth, data=data or {}, ip_address=ip_address)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> MemoryDocumentStore:
    return MemoryDocumentStore()


@pytest.fixture
def settings() -> Settings:
    return Settings(store_backend="memory", audit_async=False)


@pytest.fixture
def services(store, settings, clock) -> Services:
    return Services(
        settings=settings,
        store=store,
        guard=AbuseGuard(
            InMemoryWindowStore(clock=clock),
            max_requests=settings.rate_limit_max,
            window_seconds=settings.rate_limit_window,
            duplicate_window_seconds=settings.duplicate_window,
        ),
        audit=AuditLogger(store),
        tokens=TokenStore(store),
    )
