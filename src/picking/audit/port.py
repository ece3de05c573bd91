"""Audit trail port: who did what to which order, job or product.

Entries are written after the unit of work they describe has committed.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class AuditEntry:
    tenant_id: str
    action: str
    subject_kind: str
    subject_id: str
    actor_id: str | None
    recorded_at: datetime
    details: dict = field(default_factory=dict)


class AuditTrailPort(ABC):
    """Abstract interface for audit trail adapters."""

    @abstractmethod
    def record(
        self,
        tenant_id: str,
        action: str,
        subject_kind: str,
        subject_id: str,
        actor_id: str | None = None,
        details: dict | None = None,
    ) -> AuditEntry:
        """Record one audited action and return the stored entry."""
        ...
