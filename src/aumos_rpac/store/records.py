"""Dynamic permission records and immutable snapshots.

A :class:`PermissionRecord` grants one role for one signature
(``"<namespace>:<action>"``).  Signatures are not unique: several records
may share one, each contributing a single role.

A :class:`PermissionSnapshot` is the immutable, versioned collection of
records the :class:`~aumos_rpac.store.permission_store.PermissionStore`
hands to readers.  Snapshots are never mutated after construction, so a
reader holding one never sees a half-applied refresh.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Iterator

WILDCARD_ROLE: str = "*"
SIGNATURE_SEPARATOR: str = ":"


def make_signature(namespace: str, action: str) -> str:
    """Return the lookup key for ``(namespace, action)``."""
    return f"{namespace}{SIGNATURE_SEPARATOR}{action}"


@dataclass(frozen=True)
class PermissionRecord:
    """A single dynamic permission entry.

    Attributes
    ----------
    signature:
        ``"<namespace>:<action>"`` key, e.g. ``"Post:update"``.
    role:
        The role allowed to perform the action.  ``"*"`` means anyone,
        including anonymous subjects.
    """

    signature: str
    role: str

    @classmethod
    def for_action(cls, namespace: str, action: str, role: str) -> PermissionRecord:
        """Build a record from its namespace and action parts."""
        return cls(signature=make_signature(namespace, action), role=role)

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> PermissionRecord:
        """Build a record from a ``{"signature": ..., "role": ...}`` mapping.

        Raises
        ------
        ValueError
            If either field is missing or empty.
        """
        signature = str(data.get("signature", "") or "")
        role = str(data.get("role", "") or "")
        if not signature:
            raise ValueError("PermissionRecord.signature must not be empty.")
        if not role:
            raise ValueError("PermissionRecord.role must not be empty.")
        return cls(signature=signature, role=role)

    @property
    def namespace(self) -> str:
        """The namespace half of the signature."""
        return self.signature.rpartition(SIGNATURE_SEPARATOR)[0]

    @property
    def action(self) -> str:
        """The action half of the signature."""
        return self.signature.rpartition(SIGNATURE_SEPARATOR)[2]

    def to_dict(self) -> dict[str, str]:
        return {"signature": self.signature, "role": self.role}


@dataclass(frozen=True)
class PermissionSnapshot:
    """Immutable, versioned view of the dynamic permission table.

    Attributes
    ----------
    records:
        Records in load order.
    version:
        Incremented by the store on every swap.
    loaded_at:
        UTC time the snapshot was built.
    """

    records: tuple[PermissionRecord, ...] = ()
    version: int = 0
    loaded_at: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))
    _index: dict[str, frozenset[str]] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        grouped: dict[str, set[str]] = {}
        for record in self.records:
            grouped.setdefault(record.signature, set()).add(record.role)
        # Frozen dataclass: populate the private index in place once.
        self._index.update({sig: frozenset(roles) for sig, roles in grouped.items()})

    @classmethod
    def of(cls, records: Iterable[PermissionRecord], version: int = 0) -> PermissionSnapshot:
        """Build a snapshot from any iterable of records."""
        return cls(records=tuple(records), version=version)

    def roles_for(self, signature: str) -> frozenset[str]:
        """Return every role granted for ``signature`` (empty if none)."""
        return self._index.get(signature, frozenset())

    def signatures(self) -> list[str]:
        """Return the distinct signatures present, sorted."""
        return sorted(self._index)

    def for_namespace(self, namespace: str) -> list[PermissionRecord]:
        """Return the records whose signature belongs to ``namespace``."""
        return [r for r in self.records if r.namespace == namespace]

    def __iter__(self) -> Iterator[PermissionRecord]:
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)
