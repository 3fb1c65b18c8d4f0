"""YAML loader for dynamic permission records.

Two layouts are accepted.  A list of records::

    version: "1.0"
    permissions:
      - signature: "Post:update"
        role: owner
      - signature: "Post:view"
        role: "*"

or a mapping of signature to roles::

    version: "1.0"
    permissions:
      "Post:update": [owner, editor]
      "Post:view": "*"

Example
-------
::

    loader = PermissionLoader()
    records = loader.load("/etc/rpac/permissions.yaml")
    store = PermissionStore(records=records)
"""
from __future__ import annotations

import logging
from pathlib import Path

import yaml

from aumos_rpac.errors import ConfigurationError
from aumos_rpac.store.records import SIGNATURE_SEPARATOR, PermissionRecord

logger = logging.getLogger(__name__)

_SUPPORTED_VERSIONS: frozenset[str] = frozenset(["1.0", "1"])


class PermissionLoader:
    """Loads :class:`PermissionRecord` lists from YAML files, strings or dicts.

    Parameters
    ----------
    strict:
        When ``True``, unknown top-level keys and signatures without a
        ``namespace:action`` separator are errors.  Default ``False``.
    """

    _KNOWN_TOP_KEYS: frozenset[str] = frozenset(
        ["version", "permissions", "metadata", "description"]
    )

    def __init__(self, strict: bool = False) -> None:
        self._strict = strict

    def load(self, config_path: str | Path) -> list[PermissionRecord]:
        """Load records from a YAML file on disk.

        Raises
        ------
        FileNotFoundError
            If the file does not exist.
        ConfigurationError
            If the file cannot be parsed or is structurally invalid.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Permission file not found: {config_path}")

        try:
            with config_path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(
                f"Failed to parse YAML: {exc}", str(config_path)
            ) from exc

        return self._build_records(raw, config_path=str(config_path))

    def load_from_yaml_string(
        self,
        yaml_string: str,
        config_path: str | None = None,
    ) -> list[PermissionRecord]:
        """Load records from a YAML string."""
        try:
            raw = yaml.safe_load(yaml_string) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(
                f"Failed to parse YAML string: {exc}", config_path
            ) from exc
        return self._build_records(raw, config_path=config_path)

    def load_from_dict(
        self,
        config: dict[str, object],
        config_path: str | None = None,
    ) -> list[PermissionRecord]:
        """Load records from an already-parsed mapping."""
        return self._build_records(config, config_path=config_path)

    def parse_entries(
        self,
        entries: object,
        config_path: str | None = None,
    ) -> list[PermissionRecord]:
        """Parse the value of a ``permissions`` key in either layout."""
        if entries is None:
            return []
        if isinstance(entries, dict):
            return self._from_mapping(entries, config_path)
        if isinstance(entries, list):
            return self._from_list(entries, config_path)
        raise ConfigurationError(
            "'permissions' must be a list of records or a signature mapping.",
            config_path,
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _build_records(
        self,
        raw: object,
        config_path: str | None = None,
    ) -> list[PermissionRecord]:
        if not isinstance(raw, dict):
            raise ConfigurationError(
                "Permission file must be a YAML mapping (dict).", config_path
            )

        version = str(raw.get("version", "1.0"))
        if version not in _SUPPORTED_VERSIONS:
            raise ConfigurationError(
                f"Unsupported permission file version {version!r}. "
                f"Supported: {sorted(_SUPPORTED_VERSIONS)}.",
                config_path,
            )

        if self._strict:
            unknown_keys = set(raw.keys()) - self._KNOWN_TOP_KEYS
            if unknown_keys:
                raise ConfigurationError(
                    f"Unknown top-level keys: {sorted(unknown_keys)}.",
                    config_path,
                )

        records = self.parse_entries(raw.get("permissions"), config_path)
        logger.info(
            "Loaded %d permission records from %s",
            len(records),
            config_path or "<dict>",
        )
        return records

    def _from_list(
        self,
        entries: list[object],
        config_path: str | None,
    ) -> list[PermissionRecord]:
        records: list[PermissionRecord] = []
        for index, entry in enumerate(entries):
            if not isinstance(entry, dict):
                raise ConfigurationError(
                    f"Permission at index {index} must be a mapping; got {entry!r}.",
                    config_path,
                )
            try:
                record = PermissionRecord.from_dict(entry)
            except ValueError as exc:
                raise ConfigurationError(
                    f"Error in permission at index {index}: {exc}", config_path
                ) from exc
            self._check_signature(record.signature, config_path)
            records.append(record)
        return records

    def _from_mapping(
        self,
        entries: dict[object, object],
        config_path: str | None,
    ) -> list[PermissionRecord]:
        records: list[PermissionRecord] = []
        for signature, roles in entries.items():
            signature = str(signature)
            self._check_signature(signature, config_path)
            role_list = [roles] if isinstance(roles, str) else list(roles or [])  # type: ignore[call-overload]
            for role in role_list:
                if not role:
                    raise ConfigurationError(
                        f"Empty role for signature {signature!r}.", config_path
                    )
                records.append(PermissionRecord(signature=signature, role=str(role)))
        return records

    def _check_signature(self, signature: str, config_path: str | None) -> None:
        if SIGNATURE_SEPARATOR in signature:
            return
        if self._strict:
            raise ConfigurationError(
                f"Signature {signature!r} is not of the form 'namespace:action'.",
                config_path,
            )
        logger.warning(
            "Signature %r has no namespace separator and can never match.",
            signature,
        )
