"""Role-only request gate.

RoleGate admits a subject when any of its static roles appears in a
fixed allow-list.  It never looks at entities, relationships, policy
units or the dynamic permission store, which makes it suitable as a
coarse route-level filter ("must be staff or admin") that runs before
any entity-specific check.

An empty allow-list admits nobody, and an absent subject is always
refused.

Example
-------
>>> gate = RoleGate(MappingRoleProvider())
>>> gate.check(user, {"admin", "staff"})
False
>>> gate.check(user, parse_roles("editor|admin"))
True
"""
from __future__ import annotations

import logging
from typing import Any, Iterable

from aumos_rpac.contracts import RoleProvider
from aumos_rpac.errors import AccessDeniedError, ConfigurationError, LookupFailure

logger = logging.getLogger(__name__)

ROLE_DELIMITER: str = "|"


def parse_roles(spec: str | Iterable[str] | None) -> frozenset[str]:
    """Turn a pipe-delimited route parameter (``"staff|admin"``) into a role set.

    Iterables are passed through; blank entries are dropped.
    """
    if spec is None:
        return frozenset()
    parts = spec.split(ROLE_DELIMITER) if isinstance(spec, str) else spec
    return frozenset(part.strip() for part in parts if part and part.strip())


class RoleGate:
    """Static-role allow-list check for request pipelines.

    Parameters
    ----------
    role_provider:
        Supplies the subject's static roles.
    raise_lookup_errors:
        Re-raise role provider failures as :class:`LookupFailure` instead
        of denying.
    presets:
        Optional named allow-lists usable through :meth:`check_named`.
    """

    def __init__(
        self,
        role_provider: RoleProvider,
        raise_lookup_errors: bool = False,
        presets: dict[str, Iterable[str]] | None = None,
    ) -> None:
        self._roles = role_provider
        self._raise_lookup_errors = raise_lookup_errors
        self._presets = {name: parse_roles(roles) for name, roles in (presets or {}).items()}

    def check(self, subject: Any, allowed_roles: str | Iterable[str]) -> bool:
        """Return True iff ``subject`` holds at least one of ``allowed_roles``."""
        allowed = parse_roles(allowed_roles)
        if subject is None or not allowed:
            return False
        try:
            held = frozenset(self._roles.roles_of(subject))
        except Exception as exc:
            failure = LookupFailure("role_provider", f"{type(exc).__name__}: {exc}")
            logger.warning("Role lookup failed in RoleGate; denying", exc_info=exc)
            if self._raise_lookup_errors:
                raise failure from exc
            return False
        granted = bool(held & allowed)
        logger.debug(
            "RoleGate %s: required=%s", "ALLOW" if granted else "DENY", sorted(allowed)
        )
        return granted

    def enforce(self, subject: Any, allowed_roles: str | Iterable[str]) -> None:
        """Raise :class:`AccessDeniedError` unless :meth:`check` passes."""
        if not self.check(subject, allowed_roles):
            raise AccessDeniedError(parse_roles(allowed_roles))

    def check_named(self, subject: Any, preset: str) -> bool:
        """Check ``subject`` against a preset allow-list registered by name.

        Raises
        ------
        ConfigurationError
            If no preset with that name exists.
        """
        try:
            allowed = self._presets[preset]
        except KeyError:
            raise ConfigurationError(
                f"Unknown role gate {preset!r}. Known: {sorted(self._presets)}."
            ) from None
        return self.check(subject, allowed)

    @property
    def presets(self) -> dict[str, frozenset[str]]:
        return dict(self._presets)
