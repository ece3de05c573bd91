"""Audit trail abstraction: pluggable recording of picking actions."""

import os

_audit_instance = None


def get_audit_trail():
    """Return the configured audit trail adapter (singleton).

    Uses LogAuditTrail by default. Configure via the AUDIT_ADAPTER
    environment variable (``log`` or ``memory``).
    """
    global _audit_instance
    if _audit_instance is None:
        adapter = os.environ.get("AUDIT_ADAPTER", "log")
        if adapter == "log":
            from picking.audit.log_adapter import LogAuditTrail

            _audit_instance = LogAuditTrail()
        elif adapter == "memory":
            from picking.audit.memory_adapter import InMemoryAuditTrail

            _audit_instance = InMemoryAuditTrail()
        else:
            raise ValueError(f"Unknown audit adapter: {adapter}")
    return _audit_instance


def reset_audit_trail():
    """Reset the audit trail singleton (useful for testing)."""
    global _audit_instance
    _audit_instance = None
