"""Exception hierarchy for aumos-rpac.

Every error raised by the resolver, the role gate or the configuration
loaders derives from :class:`RpacError` so callers can catch the whole
family with a single ``except`` clause.

- :class:`ConfigurationError`: caller contract violations and malformed
  configuration (model action without an entity, missing namespace,
  invalid YAML).
- :class:`LookupFailure`: a collaborator (role provider, entity
  descriptor, permission store loader) could not produce a result.
- :class:`AccessDeniedError`: raised by :meth:`RoleGate.enforce` so that
  request-pipeline filters can translate it into an HTTP 403.
"""
from __future__ import annotations


class RpacError(Exception):
    """Base class for all aumos-rpac errors."""


class ConfigurationError(RpacError, ValueError):
    """Raised when the resolver is called or configured incorrectly.

    Attributes
    ----------
    config_path:
        The path to the config file that caused the error, if known.
    """

    def __init__(self, message: str, config_path: str | None = None) -> None:
        self.config_path = config_path
        prefix = f"[{config_path}] " if config_path else ""
        super().__init__(f"{prefix}{message}")


class LookupFailure(RpacError, RuntimeError):
    """Raised when a collaborator lookup fails.

    The resolver converts this into a deny unless exception propagation
    has been enabled with ``raise_lookup_errors=True``.

    Attributes
    ----------
    collaborator:
        Short name of the failing collaborator (``"role_provider"``,
        ``"entity_descriptor"``, ``"permission_store"``).
    """

    def __init__(self, collaborator: str, message: str) -> None:
        self.collaborator = collaborator
        super().__init__(f"{collaborator}: {message}")


class AccessDeniedError(RpacError):
    """Raised by :meth:`RoleGate.enforce` when the subject lacks every allowed role.

    Attributes
    ----------
    allowed_roles:
        The allow-list the subject was checked against.
    status_code:
        HTTP status a request filter should answer with.
    """

    status_code: int = 403

    def __init__(self, allowed_roles: frozenset[str]) -> None:
        self.allowed_roles = allowed_roles
        roles = ", ".join(sorted(allowed_roles)) or "<none>"
        super().__init__(f"Access denied: requires one of roles [{roles}].")
