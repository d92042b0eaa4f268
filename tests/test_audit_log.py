"""Tests for the best-effort audit logger."""

import json
import logging
from concurrent.futures import ThreadPoolExecutor

from modcert.auth.models import UserContext
from modcert.security.audit_log import AUDIT_COLLECTION, AuditLogger
from modcert.store.documents import MemoryDocumentStore


class _BrokenStore(MemoryDocumentStore):
    def add(self, collection, data):
        raise RuntimeError("store offline")


def _user(role="programOwner"):
    return UserContext(user_id="u1", email="u1@wbs.de", role=role)


def _insert(store, ts, action="CREATE_MODULE", user_id="u1", resource_type="modules"):
    store.set(AUDIT_COLLECTION, f"e-{ts}", {
        "action": action,
        "userId": user_id,
        "userEmail": f"{user_id}@wbs.de",
        "userRole": "programOwner",
        "resourceType": resource_type,
        "resourceId": "r1",
        "details": {},
        "timestamp": ts,
        "ipAddress": None,
    })


def test_log_audit_writes_entry(store):
    AuditLogger(store).log_audit(
        "CREATE_MODULE", _user(), "modules", "m1", {"title": "Data", "ipAddress": "10.0.0.1"}
    )

    docs = list(store.query(AUDIT_COLLECTION).get())
    assert len(docs) == 1
    entry = docs[0].data()
    assert entry["action"] == "CREATE_MODULE"
    assert entry["userId"] == "u1"
    assert entry["userEmail"] == "u1@wbs.de"
    assert entry["userRole"] == "programOwner"
    assert entry["resourceType"] == "modules"
    assert entry["resourceId"] == "m1"
    assert entry["details"]["title"] == "Data"
    assert entry["ipAddress"] == "10.0.0.1"
    assert isinstance(entry["timestamp"], str) and entry["timestamp"]


def test_log_audit_without_details(store):
    AuditLogger(store).log_audit("DELETE_MODULE", _user("sysadmin"), "modules", "m1")
    entry = store.query(AUDIT_COLLECTION).get().docs[0].data()
    assert entry["details"] == {}
    assert entry["ipAddress"] is None


def test_failed_write_is_swallowed_and_reported(caplog):
    failures = []
    audit = AuditLogger(_BrokenStore(), on_failure=failures.append)

    with caplog.at_level(logging.ERROR, logger="modcert.security.audit_log"):
        audit.log_audit("CREATE_MODULE", _user(), "modules", "m1")

    assert len(failures) == 1
    assert isinstance(failures[0], RuntimeError)
    assert "Audit log failed for CREATE_MODULE" in caplog.text


def test_failure_hook_errors_are_contained():
    def hook(exc):
        raise ValueError("hook broke")

    AuditLogger(_BrokenStore(), on_failure=hook).log_audit("X", _user(), "modules", "m1")


def test_background_write_with_executor(store):
    executor = ThreadPoolExecutor(max_workers=1)
    audit = AuditLogger(store, executor=executor)
    audit.log_audit("CREATE_COURSE", _user(), "courses", "c1")
    executor.shutdown(wait=True)

    assert len(store.query(AUDIT_COLLECTION).get()) == 1


def test_background_failure_reaches_hook():
    failures = []
    executor = ThreadPoolExecutor(max_workers=1)
    audit = AuditLogger(_BrokenStore(), executor=executor, on_failure=failures.append)
    audit.log_audit("CREATE_COURSE", _user(), "courses", "c1")
    executor.shutdown(wait=True)

    assert len(failures) == 1


def test_get_events_newest_first_with_limit(store):
    for ts in ("2025-01-01T00:00:00+00:00", "2025-03-01T00:00:00+00:00", "2025-02-01T00:00:00+00:00"):
        _insert(store, ts)

    events = AuditLogger(store).get_events(limit=2)
    assert [e.timestamp[:7] for e in events] == ["2025-03", "2025-02"]


def test_get_events_filters(store):
    _insert(store, "2025-01-01", action="CREATE_MODULE", user_id="u1")
    _insert(store, "2025-01-02", action="CREATE_COMMENT", user_id="u1", resource_type="comments")
    _insert(store, "2025-01-03", action="CREATE_MODULE", user_id="u2")

    audit = AuditLogger(store)
    assert {e.id for e in audit.get_events(user_id="u1")} == {"e-2025-01-01", "e-2025-01-02"}
    assert [e.id for e in audit.get_events(action="CREATE_MODULE")] == ["e-2025-01-03", "e-2025-01-01"]
    assert [e.id for e in audit.get_events(resource_type="comments")] == ["e-2025-01-02"]


def test_export_events(store):
    _insert(store, "2025-01-01")
    audit = AuditLogger(store)

    exported = json.loads(audit.export_events("json"))
    assert exported[0]["action"] == "CREATE_MODULE"

    csv_text = audit.export_events("csv")
    header, row = csv_text.splitlines()
    assert header.startswith("id,timestamp,action")
    assert row.startswith("e-2025-01-01,2025-01-01,CREATE_MODULE,u1")


def test_entry_response_uses_camel_case(store):
    _insert(store, "2025-01-01")
    response = AuditLogger(store).get_events()[0].to_response()
    assert response["userId"] == "u1"
    assert response["resourceType"] == "modules"
