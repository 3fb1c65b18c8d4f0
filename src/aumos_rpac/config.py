"""Resolver configuration loader with Pydantic v2 validation.

Loads and validates an ``rpac.yaml`` file into a typed :class:`RpacConfig`.
Unknown keys are allowed so that newer files still load on older
releases.

Example ``rpac.yaml``::

    version: "1"
    guest_role: guest
    permissions:
      - signature: "Post:update"
        role: owner
    policies:
      Post:
        actions:
          view: "*"
          update: [editor]
    gates:
      staff: [staff, admin]
    audit:
      enabled: true
      log_path: ./rpac_audit.jsonl

Example
-------
>>> loader = ConfigLoader()
>>> config = loader.load(Path("rpac.yaml"))
>>> config.gates["staff"]
['staff', 'admin']
"""
from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from aumos_rpac.errors import ConfigurationError
from aumos_rpac.gate.role_gate import parse_roles


class AuditConfig(BaseModel):
    """Configuration for the decision audit trail."""

    model_config = {"extra": "allow"}

    enabled: bool = Field(default=False)
    log_path: Path = Field(default=Path("./rpac_audit.jsonl"))


class RpacConfig(BaseModel):
    """Top-level resolver configuration schema.

    All sections are optional and fall back to sensible defaults.
    """

    model_config = {"extra": "allow"}

    version: str = Field(default="1")
    guest_role: str = Field(default="guest", min_length=1)
    wildcard_role: str = Field(default="*", min_length=1)
    raise_lookup_errors: bool = Field(default=False)
    permissions_file: Path | None = Field(default=None)
    permissions: list[dict[str, object]] | dict[str, object] = Field(default_factory=list)
    policies: dict[str, dict[str, object] | None] = Field(default_factory=dict)
    gates: dict[str, list[str]] = Field(default_factory=dict)
    audit: AuditConfig = Field(default_factory=AuditConfig)

    @field_validator("version", mode="before")
    @classmethod
    def coerce_version(cls, value: object) -> str:
        return str(value)

    @field_validator("gates", mode="before")
    @classmethod
    def split_gate_roles(cls, value: object) -> object:
        if not isinstance(value, dict):
            return value
        return {name: sorted(parse_roles(roles)) for name, roles in value.items()}


class ConfigLoader:
    """Loads and validates resolver YAML configuration.

    Example
    -------
    >>> loader = ConfigLoader()
    >>> config = loader.load(Path("rpac.yaml"))
    """

    def load(self, config_path: Path) -> RpacConfig:
        """Load and validate a YAML config file.

        Raises
        ------
        FileNotFoundError:
            When the config file does not exist.
        ConfigurationError:
            When the YAML cannot be parsed or fails validation.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Resolver config not found: {config_path}")

        with config_path.open("r", encoding="utf-8") as fh:
            text = fh.read()
        config = self.load_string(text, config_path=str(config_path))
        if config.permissions_file is not None and not config.permissions_file.is_absolute():
            config.permissions_file = config_path.parent / config.permissions_file
        return config

    def load_string(self, yaml_content: str, config_path: str | None = None) -> RpacConfig:
        """Load and validate a YAML string directly."""
        try:
            raw = yaml.safe_load(yaml_content) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Failed to parse YAML: {exc}", config_path) from exc
        return self.load_dict(raw, config_path=config_path)

    def load_dict(self, raw: object, config_path: str | None = None) -> RpacConfig:
        """Validate an already-parsed mapping."""
        if not isinstance(raw, dict):
            raise ConfigurationError("Resolver config must be a YAML mapping.", config_path)
        try:
            return RpacConfig.model_validate(raw)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid resolver config: {exc}", config_path) from exc

    def defaults(self) -> RpacConfig:
        """Return a configuration with all defaults applied."""
        return RpacConfig()
