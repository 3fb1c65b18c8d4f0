"""Process-wide, refreshable store of dynamic permission records.

The store hands out immutable :class:`PermissionSnapshot` objects.  A
refresh builds a complete new snapshot off to the side and then swaps a
single reference, so concurrent readers see either the old table or the
new one, never a mix.

Writers (``refresh``, ``replace``, ``invalidate``) are serialized by a
``threading.Lock``.  Readers never take the lock once a snapshot exists.

Example
-------
>>> store = PermissionStore(records=[PermissionRecord("Post:view", "*")])
>>> store.current().roles_for("Post:view")
frozenset({'*'})
>>> _ = store.replace([PermissionRecord("Post:view", "editor")])
>>> store.current().roles_for("Post:view")
frozenset({'editor'})
"""
from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable, Iterable

from aumos_rpac.errors import LookupFailure
from aumos_rpac.store.records import PermissionRecord, PermissionSnapshot

logger = logging.getLogger(__name__)

RecordLoader = Callable[[], Iterable[PermissionRecord]]


class PermissionStore:
    """Read-mostly holder of the current permission snapshot.

    Parameters
    ----------
    loader:
        Optional zero-argument callable returning the full set of records.
        Called lazily on the first :meth:`current` and on every
        :meth:`refresh`.
    records:
        Optional initial records.  When supplied, the store starts with
        this snapshot and does not call ``loader`` until refreshed.  A
        store given neither starts with an empty snapshot.
    """

    def __init__(
        self,
        loader: RecordLoader | None = None,
        records: Iterable[PermissionRecord] | None = None,
    ) -> None:
        self._loader = loader
        self._lock = threading.Lock()
        self._version = 0
        self._snapshot: PermissionSnapshot | None = None
        if records is None and loader is None:
            records = ()
        if records is not None:
            self._snapshot = self._build(records)

    @classmethod
    def from_yaml(cls, path: str | Path) -> PermissionStore:
        """Build a store that loads (and reloads) records from a YAML file."""
        from aumos_rpac.store.loader import PermissionLoader

        loader = PermissionLoader()
        return cls(loader=lambda: loader.load(path))

    # ------------------------------------------------------------------
    # Read API
    # ------------------------------------------------------------------

    def current(self) -> PermissionSnapshot:
        """Return the current snapshot, loading it on first access.

        Raises
        ------
        LookupFailure
            If no snapshot exists yet and the loader fails.
        """
        snapshot = self._snapshot
        if snapshot is not None:
            return snapshot
        with self._lock:
            if self._snapshot is None:
                self._snapshot = self._build(self._load())
            return self._snapshot

    @property
    def version(self) -> int:
        """Version of the most recently installed snapshot (0 if none)."""
        return self._version

    @property
    def is_loaded(self) -> bool:
        return self._snapshot is not None

    # ------------------------------------------------------------------
    # Write API
    # ------------------------------------------------------------------

    def refresh(self) -> PermissionSnapshot:
        """Reload from the loader and swap the snapshot atomically.

        The previous snapshot stays installed if the loader fails.

        Raises
        ------
        LookupFailure
            If the loader raises or no loader is configured.
        """
        with self._lock:
            self._snapshot = self._build(self._load())
            return self._snapshot

    def replace(self, records: Iterable[PermissionRecord]) -> PermissionSnapshot:
        """Install a snapshot built from ``records``."""
        with self._lock:
            self._snapshot = self._build(records)
            return self._snapshot

    def invalidate(self) -> None:
        """Drop the snapshot so the next :meth:`current` reloads it.

        A store without a loader has nothing to reload from and keeps its
        current snapshot.
        """
        if self._loader is None:
            logger.debug("No permission loader configured; keeping current snapshot")
            return
        with self._lock:
            self._snapshot = None
        logger.debug("Permission snapshot invalidated")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _load(self) -> list[PermissionRecord]:
        """Call the loader; must be invoked with the lock held."""
        if self._loader is None:
            raise LookupFailure("permission_store", "no permission loader configured")
        try:
            return list(self._loader())
        except LookupFailure:
            raise
        except Exception as exc:
            raise LookupFailure(
                "permission_store", f"failed to load permissions: {exc}"
            ) from exc

    def _build(self, records: Iterable[PermissionRecord]) -> PermissionSnapshot:
        self._version += 1
        snapshot = PermissionSnapshot.of(records, version=self._version)
        logger.info(
            "Installed permission snapshot v%d with %d records",
            snapshot.version,
            len(snapshot),
        )
        return snapshot
