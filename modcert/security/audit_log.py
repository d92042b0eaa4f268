"""Audit logging for governed actions.

Entries are appended to the ``auditLogs`` collection of the document store.
Writing is best-effort: a failed write is logged and reported to the
optional ``on_failure`` hook, and never reaches the caller of the action
being audited. With an executor, writes run in the background and are
never awaited.
"""

from __future__ import annotations

import json
import logging
from concurrent.futures import Executor, Future
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Optional

from modcert.auth.models import UserContext
from modcert.store.documents import SERVER_TIMESTAMP, DocumentStore

logger = logging.getLogger(__name__)

AUDIT_COLLECTION = "auditLogs"


@dataclass
class AuditEntry:
    """A single audit log entry."""

    id: str
    action: str
    user_id: str
    user_email: str
    user_role: str
    resource_type: str
    resource_id: str
    details: dict[str, Any] = field(default_factory=dict)
    timestamp: str = ""
    ip_address: Optional[str] = None

    @classmethod
    def from_document(cls, doc_id: str, d: dict[str, Any]) -> "AuditEntry":
        return cls(
            id=doc_id,
            action=d.get("action", ""),
            user_id=d.get("userId", ""),
            user_email=d.get("userEmail", ""),
            user_role=d.get("userRole", ""),
            resource_type=d.get("resourceType", ""),
            resource_id=d.get("resourceId", ""),
            details=d.get("details") or {},
            timestamp=d.get("timestamp", ""),
            ip_address=d.get("ipAddress"),
        )

    def to_response(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "action": self.action,
            "userId": self.user_id,
            "userEmail": self.user_email,
            "userRole": self.user_role,
            "resourceType": self.resource_type,
            "resourceId": self.resource_id,
            "details": self.details,
            "timestamp": self.timestamp,
            "ipAddress": self.ip_address,
        }


class AuditLogger:
    """Best-effort writer and reader of the ``auditLogs`` collection."""

    def __init__(
        self,
        store: DocumentStore,
        executor: Optional[Executor] = None,
        on_failure: Optional[Callable[[BaseException], None]] = None,
    ) -> None:
        self._store = store
        self._executor = executor
        self._on_failure = on_failure

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _write(self, record: dict[str, Any]) -> str:
        return self._store.add(AUDIT_COLLECTION, record).id

    def _report_failure(self, exc: BaseException, action: str) -> None:
        logger.error("Audit log failed for %s", action, exc_info=exc)
        if self._on_failure is not None:
            try:
                self._on_failure(exc)
            except Exception:
                logger.exception("Audit failure hook raised")

    def _on_done(self, future: Future, action: str) -> None:
        exc = future.exception()
        if exc is not None:
            self._report_failure(exc, action)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def log_audit(
        self,
        action: str,
        user_context: UserContext,
        resource_type: str,
        resource_id: str,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """Record that *user_context* performed *action* on a resource.

        Never raises.
        """
        details = details or {}
        record = {
            "action": action,
            "userId": user_context.user_id,
            "userEmail": user_context.email,
            "userRole": user_context.role.value,
            "resourceType": resource_type,
            "resourceId": resource_id,
            "details": details,
            "timestamp": SERVER_TIMESTAMP,
            "ipAddress": details.get("ipAddress"),
        }

        if self._executor is not None:
            try:
                future = self._executor.submit(self._write, record)
            except Exception as exc:
                self._report_failure(exc, action)
                return
            future.add_done_callback(lambda f: self._on_done(f, action))
            return

        try:
            self._write(record)
        except Exception as exc:
            self._report_failure(exc, action)

    def get_events(
        self,
        *,
        user_id: Optional[str] = None,
        action: Optional[str] = None,
        resource_type: Optional[str] = None,
        limit: int = 200,
    ) -> list[AuditEntry]:
        """Return filtered audit events, newest first."""
        query = self._store.query(AUDIT_COLLECTION)
        if user_id:
            query = query.where("userId", "==", user_id)
        if action:
            query = query.where("action", "==", action)
        if resource_type:
            query = query.where("resourceType", "==", resource_type)

        entries = [AuditEntry.from_document(doc.id, doc.data() or {}) for doc in query.get()]
        entries.sort(key=lambda e: e.timestamp, reverse=True)
        return entries[:limit]

    def export_events(self, fmt: str = "json", **filters: Any) -> str:
        """Export audit events in the specified format (``json`` or ``csv``)."""
        entries = self.get_events(**filters)

        if fmt == "csv":
            lines = ["id,timestamp,action,user_id,user_role,resource_type,resource_id,ip_address"]
            for e in entries:
                lines.append(
                    f"{e.id},{e.timestamp},{e.action},{e.user_id},{e.user_role},"
                    f"{e.resource_type},{e.resource_id},{e.ip_address or ''}"
                )
            return "\n".join(lines)

        return json.dumps([asdict(e) for e in entries], indent=2)
