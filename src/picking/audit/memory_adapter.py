"""In-memory audit adapter: keeps entries for inspection in tests and tooling."""

import threading
from datetime import UTC, datetime

from picking.audit.port import AuditEntry, AuditTrailPort


class InMemoryAuditTrail(AuditTrailPort):
    def __init__(self):
        self._entries: list[AuditEntry] = []
        self._lock = threading.Lock()

    def record(
        self,
        tenant_id: str,
        action: str,
        subject_kind: str,
        subject_id: str,
        actor_id: str | None = None,
        details: dict | None = None,
    ) -> AuditEntry:
        entry = AuditEntry(
            tenant_id=tenant_id,
            action=action,
            subject_kind=subject_kind,
            subject_id=subject_id,
            actor_id=actor_id,
            recorded_at=datetime.now(UTC),
            details=details or {},
        )
        with self._lock:
            self._entries.append(entry)
        return entry

    def entries(self, tenant_id: str | None = None, action: str | None = None) -> list[AuditEntry]:
        with self._lock:
            entries = list(self._entries)
        if tenant_id is not None:
            entries = [e for e in entries if e.tenant_id == tenant_id]
        if action is not None:
            entries = [e for e in entries if e.action == action]
        return entries

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
