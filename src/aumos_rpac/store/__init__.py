"""Dynamic permission storage: records, snapshots, the store and its loader.

Example
-------
::

    from aumos_rpac.store import PermissionRecord, PermissionStore

    store = PermissionStore(records=[PermissionRecord("Post:update", "owner")])
    store.current().roles_for("Post:update")   # frozenset({"owner"})
"""
from __future__ import annotations

from aumos_rpac.store.loader import PermissionLoader
from aumos_rpac.store.permission_store import PermissionStore
from aumos_rpac.store.records import (
    WILDCARD_ROLE,
    PermissionRecord,
    PermissionSnapshot,
    make_signature,
)

__all__ = [
    "WILDCARD_ROLE",
    "PermissionLoader",
    "PermissionRecord",
    "PermissionSnapshot",
    "PermissionStore",
    "make_signature",
]
