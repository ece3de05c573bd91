"""Log audit adapter: audit entries as structlog events."""

from datetime import UTC, datetime

import structlog

from picking.audit.port import AuditEntry, AuditTrailPort

audit_logger = structlog.get_logger("picking.audit")


class LogAuditTrail(AuditTrailPort):
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
        audit_logger.info(
            "audit",
            tenant_id=tenant_id,
            action=action,
            subject_kind=subject_kind,
            subject_id=subject_id,
            actor_id=actor_id,
            **entry.details,
        )
        return entry
