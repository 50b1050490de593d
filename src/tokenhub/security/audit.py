"""
Audit Logging.
Created: 2026-10-12

Append-only JSONL trail of credential events: applications created/deleted,
secrets regenerated, tokens issued/revoked/pruned and failed client logins.
Never contains plaintext secrets. A failed audit write never fails the
operation being audited.
"""

import json
import logging
import uuid
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

logger = logging.getLogger("audit")


class AuditSeverity(str, Enum):
    INFO = "info"  # Normal operation (token issued)
    WARNING = "warning"  # Credential change (secret regenerated, token revoked)
    ALERT = "alert"  # Failed authentication


@dataclass
class AuditEvent:
    """A single audit log entry."""

    id: str
    timestamp: str
    severity: AuditSeverity
    actor: str  # user:<id>, client:<client_id> or "system"
    action: str  # e.g. "token_issued", "client_auth_failed"
    target: str  # e.g. "application:<id>", "token:<id>"
    context: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        severity: AuditSeverity,
        actor: str,
        action: str,
        target: str,
        **context: Any,
    ) -> "AuditEvent":
        return cls(
            id=str(uuid.uuid4()),
            timestamp=datetime.now(tz=UTC).isoformat(),
            severity=severity,
            actor=actor,
            action=action,
            target=target,
            context=context,
        )


class AuditLogger:
    """
    Append-only audit logger.
    Writes to <config dir>/audit.jsonl.
    """

    def __init__(self, log_path: Path | None = None):
        if log_path is None:
            from tokenhub.config import get_config_dir

            log_path = get_config_dir() / "audit.jsonl"
        self.log_path = log_path

    def log(self, event: AuditEvent) -> None:
        """Write an event to the audit log."""
        try:
            event_dict = asdict(event)
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(json.dumps(event_dict, default=str) + "\n")
        except OSError as e:
            # Fall back to the system logger; the audited operation still succeeds.
            logger.critical("FAILED TO WRITE AUDIT LOG: %s | Event: %s", e, event)

    def log_event(
        self,
        action: str,
        target: str,
        actor: str = "system",
        severity: AuditSeverity = AuditSeverity.INFO,
        **context: Any,
    ) -> str:
        """Helper to log a credential event. Returns the event id."""
        event = AuditEvent.create(
            severity=severity,
            actor=actor,
            action=action,
            target=target,
            **context,
        )
        self.log(event)
        return event.id


# Singleton
_audit_logger: AuditLogger | None = None


def get_audit_logger() -> AuditLogger:
    global _audit_logger
    if _audit_logger is None:
        _audit_logger = AuditLogger()
    return _audit_logger


def reset_audit_logger() -> None:
    """Reset singleton (for testing)."""
    global _audit_logger
    _audit_logger = None
