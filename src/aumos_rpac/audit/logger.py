"""Append-only JSONL audit trail for authorization decisions.

Each line is one :class:`AuditEntry` with a fixed schema: the event kind,
the namespace and action checked, the outcome and its reason, the
signature, a log-safe subject label, the matched roles, and for lookup
failures the failing collaborator.  Entries are stamped with a UTC
ISO-8601 timestamp and the logger's session identifier.

Writes are serialized with a threading.Lock so one logger can be shared
by every resolver and request thread of a process.

Example
-------
>>> audit = DecisionAuditLogger(Path("/tmp/rpac_audit.jsonl"))
>>> audit.record_decision(decision, namespace="Post", subject=user)
>>> [entry.signature for entry in audit.denials()]
['Post:update']
"""
from __future__ import annotations

import json
import logging
import threading
import uuid
from collections import Counter
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterator

if TYPE_CHECKING:
    from aumos_rpac.errors import LookupFailure
    from aumos_rpac.resolver.engine import AuthorizationDecision

logger = logging.getLogger(__name__)

AUTHORIZATION_EVENT: str = "authorization"
LOOKUP_FAILURE_EVENT: str = "lookup_failure"


def describe_subject(subject: Any) -> str | None:
    """Return a short, log-safe identifier for ``subject``."""
    if subject is None:
        return None
    identity = getattr(subject, "id", None)
    if identity is not None:
        return f"{type(subject).__name__}:{identity}"
    return type(subject).__name__


@dataclass(frozen=True)
class AuditEntry:
    """One line of the decision audit trail.

    Attributes
    ----------
    event:
        ``"authorization"`` for a decision, ``"lookup_failure"`` for a
        collaborator failure seen while deciding.
    reason:
        :class:`~aumos_rpac.resolver.engine.DecisionReason` value.
    subject:
        ``"<Type>:<id>"`` label, or ``None`` for an anonymous subject.
    """

    event: str
    namespace: str
    action: str
    allowed: bool
    reason: str
    signature: str | None = None
    subject: str | None = None
    matched_roles: tuple[str, ...] = ()
    collaborator: str | None = None
    error: str | None = None
    timestamp: str = ""
    session_id: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AuditEntry:
        """Rebuild an entry from a parsed JSON line.

        Raises
        ------
        KeyError
            If a required field is missing.
        """
        return cls(
            event=str(data["event"]),
            namespace=str(data["namespace"]),
            action=str(data["action"]),
            allowed=bool(data["allowed"]),
            reason=str(data["reason"]),
            signature=data.get("signature"),
            subject=data.get("subject"),
            matched_roles=tuple(data.get("matched_roles") or ()),
            collaborator=data.get("collaborator"),
            error=data.get("error"),
            timestamp=str(data.get("timestamp", "")),
            session_id=str(data.get("session_id", "")),
        )

    def to_dict(self) -> dict[str, Any]:
        record = asdict(self)
        record["matched_roles"] = list(self.matched_roles)
        return record


class DecisionAuditLogger:
    """Append-only JSONL log of authorization decisions.

    Parameters
    ----------
    log_path:
        Path to the ``.jsonl`` audit file.  Parent directories are created
        automatically on first write.
    session_id:
        Optional session identifier stamped on every entry.  A random UUID
        is generated if not supplied.
    """

    def __init__(
        self,
        log_path: Path,
        session_id: str | None = None,
    ) -> None:
        self._log_path = Path(log_path)
        self._session_id: str = session_id or str(uuid.uuid4())
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record_decision(
        self,
        decision: AuthorizationDecision,
        namespace: str,
        subject: Any = None,
    ) -> AuditEntry:
        """Append the outcome of one authorization check.

        Raises
        ------
        OSError
            If the audit file cannot be written.
        """
        failure = decision.error
        entry = AuditEntry(
            event=AUTHORIZATION_EVENT,
            namespace=namespace,
            action=decision.action,
            allowed=decision.allowed,
            reason=decision.reason.value,
            signature=decision.signature,
            subject=describe_subject(subject),
            matched_roles=tuple(sorted(decision.matched_roles)),
            collaborator=failure.collaborator if failure is not None else None,
            error=str(failure) if failure is not None else None,
            timestamp=self._now(),
            session_id=self._session_id,
        )
        self._append(entry)
        return entry

    def record_lookup_failure(
        self,
        namespace: str,
        action: str,
        failure: LookupFailure,
    ) -> AuditEntry:
        """Append a collaborator failure that forced a deny.

        Raises
        ------
        OSError
            If the audit file cannot be written.
        """
        entry = AuditEntry(
            event=LOOKUP_FAILURE_EVENT,
            namespace=namespace,
            action=action,
            allowed=False,
            reason=LOOKUP_FAILURE_EVENT,
            collaborator=failure.collaborator,
            error=str(failure),
            timestamp=self._now(),
            session_id=self._session_id,
        )
        self._append(entry)
        return entry

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def entries(self) -> list[AuditEntry]:
        """Every entry, oldest first (empty if the file is missing)."""
        return list(self._iter_entries())

    def decisions(
        self,
        *,
        allowed: bool | None = None,
        reason: str | None = None,
        signature: str | None = None,
        namespace: str | None = None,
        subject: str | None = None,
    ) -> list[AuditEntry]:
        """Authorization entries matching every given field.

        ``reason`` accepts a :class:`DecisionReason` or its string value.
        """
        wanted = {
            "allowed": allowed,
            "reason": reason,
            "signature": signature,
            "namespace": namespace,
            "subject": subject,
        }
        filters = {name: value for name, value in wanted.items() if value is not None}
        return [
            entry
            for entry in self._iter_entries()
            if entry.event == AUTHORIZATION_EVENT
            and all(getattr(entry, name) == value for name, value in filters.items())
        ]

    def denials(self) -> list[AuditEntry]:
        return self.decisions(allowed=False)

    def lookup_failures(self) -> list[AuditEntry]:
        return [e for e in self._iter_entries() if e.event == LOOKUP_FAILURE_EVENT]

    def reason_counts(self) -> dict[str, int]:
        """Number of authorization entries per decision reason."""
        return dict(Counter(entry.reason for entry in self.decisions()))

    def count(self) -> int:
        return sum(1 for _ in self._iter_entries())

    def last_n(self, n: int) -> list[AuditEntry]:
        """The ``n`` most recent entries."""
        if n <= 0:
            return []
        return self.entries()[-n:]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _now() -> str:
        return datetime.now(tz=timezone.utc).isoformat()

    def _append(self, entry: AuditEntry) -> None:
        line = json.dumps(entry.to_dict())
        with self._lock:
            self._log_path.parent.mkdir(parents=True, exist_ok=True)
            with self._log_path.open("a", encoding="utf-8") as fh:
                fh.write(line + "\n")

    def _iter_entries(self) -> Iterator[AuditEntry]:
        if not self._log_path.exists():
            return
        with self._lock:
            with self._log_path.open("r", encoding="utf-8") as fh:
                lines = fh.readlines()
        for number, line in enumerate(lines, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                yield AuditEntry.from_dict(json.loads(line))
            except (json.JSONDecodeError, KeyError, TypeError):
                logger.warning("Skipping malformed audit line %d in %s", number, self._log_path)

    @property
    def log_path(self) -> Path:
        return self._log_path

    @property
    def session_id(self) -> str:
        return self._session_id
