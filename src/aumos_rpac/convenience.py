"""Convenience API for aumos-rpac: 3-line quickstart.

Example
-------
::

    from aumos_rpac import RpacAuthorizer
    authorizer = RpacAuthorizer({"policies": {"Post": {"actions": {"view": "*"}}}})
    authorizer.authorize("view", user, post)

"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable

from aumos_rpac.audit.logger import DecisionAuditLogger
from aumos_rpac.config import ConfigLoader, RpacConfig
from aumos_rpac.contracts import (
    AttributeEntityDescriptor,
    EntityDescriptor,
    MappingRoleProvider,
    RoleProvider,
)
from aumos_rpac.errors import ConfigurationError
from aumos_rpac.gate.role_gate import RoleGate
from aumos_rpac.policies.parser import PolicyParser
from aumos_rpac.policies.unit import PolicyUnit
from aumos_rpac.resolver.context import AuthorizationContext
from aumos_rpac.resolver.engine import AuthorizationDecision, PermissionResolver
from aumos_rpac.store.loader import PermissionLoader
from aumos_rpac.store.permission_store import PermissionStore
from aumos_rpac.store.records import PermissionRecord

logger = logging.getLogger(__name__)


class RpacAuthorizer:
    """One-stop authorization facade for the common case.

    Wires a :class:`PermissionStore`, one :class:`PermissionResolver` per
    namespace and a :class:`RoleGate` from a single configuration.

    Parameters
    ----------
    config:
        An :class:`RpacConfig`, a raw config dict, or ``None`` for defaults.
    role_provider:
        Defaults to :class:`MappingRoleProvider`.
    entity_descriptor:
        Defaults to :class:`AttributeEntityDescriptor`.
    policies:
        Code-defined policy units.  They take precedence over policies of
        the same namespace declared in ``config``.
    store:
        Overrides the store that would be built from ``config``.
    """

    def __init__(
        self,
        config: RpacConfig | dict[str, Any] | None = None,
        role_provider: RoleProvider | None = None,
        entity_descriptor: EntityDescriptor | None = None,
        policies: Iterable[PolicyUnit] = (),
        store: PermissionStore | None = None,
    ) -> None:
        if config is None:
            config = RpacConfig()
        elif isinstance(config, dict):
            config = ConfigLoader().load_dict(config)
        self._config = config
        self._role_provider = role_provider or MappingRoleProvider()
        self._entities = entity_descriptor or AttributeEntityDescriptor()
        self._store = store or self._build_store(config)
        self._audit_logger = (
            DecisionAuditLogger(config.audit.log_path) if config.audit.enabled else None
        )

        self._policies: dict[str, PolicyUnit] = dict(
            PolicyParser().parse_policies(config.policies)
        )
        for policy in policies:
            self._policies[policy.namespace] = policy
        self._resolvers: dict[str, PermissionResolver] = {}

        self._gate = RoleGate(
            self._role_provider,
            raise_lookup_errors=config.raise_lookup_errors,
            presets=config.gates,
        )

    @classmethod
    def from_file(cls, config_path: str | Path, **kwargs: Any) -> RpacAuthorizer:
        """Build an authorizer from an ``rpac.yaml`` file."""
        return cls(ConfigLoader().load(Path(config_path)), **kwargs)

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    def register(self, policy: PolicyUnit) -> None:
        """Add or replace the policy unit for ``policy.namespace``."""
        self._policies[policy.namespace] = policy
        self._resolvers.pop(policy.namespace, None)

    def resolver(self, namespace: str) -> PermissionResolver:
        """Return the resolver for ``namespace``.

        Raises
        ------
        ConfigurationError
            If no policy is registered for ``namespace``.
        """
        resolver = self._resolvers.get(namespace)
        if resolver is not None:
            return resolver
        policy = self._policies.get(namespace)
        if policy is None:
            raise ConfigurationError(
                f"No policy registered for namespace {namespace!r}. "
                f"Known: {sorted(self._policies)}."
            )
        resolver = PermissionResolver(
            policy,
            self._store,
            self._role_provider,
            self._entities,
            guest_role=self._config.guest_role,
            wildcard_role=self._config.wildcard_role,
            raise_lookup_errors=self._config.raise_lookup_errors,
            audit_logger=self._audit_logger,
        )
        self._resolvers[namespace] = resolver
        return resolver

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def authorize(
        self,
        action: str,
        subject: Any = None,
        entity: Any = None,
        *,
        namespace: str | None = None,
        context: AuthorizationContext | None = None,
    ) -> bool:
        """Authorize ``action``, applying soft-delete guards where they exist.

        ``namespace`` is required when ``entity`` is ``None``.
        """
        return self.decide(action, subject, entity, namespace=namespace, context=context).allowed

    def decide(
        self,
        action: str,
        subject: Any = None,
        entity: Any = None,
        *,
        namespace: str | None = None,
        context: AuthorizationContext | None = None,
    ) -> AuthorizationDecision:
        if namespace is None:
            if entity is None:
                raise ConfigurationError(
                    "A namespace is required for entity-less actions."
                )
            namespace = self._entities.namespace_of(type(entity))
        return self.resolver(namespace).decide(action, subject, entity, context=context)

    def check_role(self, subject: Any, roles: str | Iterable[str]) -> bool:
        """Role-only check: ``roles`` is a preset name or an allow-list."""
        if isinstance(roles, str) and roles in self._gate.presets:
            return self._gate.check_named(subject, roles)
        return self._gate.check(subject, roles)

    def new_context(self, subject: Any = None, entity: Any = None) -> AuthorizationContext:
        return AuthorizationContext(subject, entity)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def config(self) -> RpacConfig:
        return self._config

    @property
    def store(self) -> PermissionStore:
        return self._store

    @property
    def gate(self) -> RoleGate:
        return self._gate

    @property
    def namespaces(self) -> list[str]:
        return sorted(self._policies)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _build_store(config: RpacConfig) -> PermissionStore:
        loader = PermissionLoader()
        inline = loader.parse_entries(config.permissions)
        permissions_file = config.permissions_file
        if permissions_file is None:
            return PermissionStore(records=inline)

        def load_all() -> list[PermissionRecord]:
            return [*loader.load(permissions_file), *inline]

        return PermissionStore(loader=load_all)

    def __repr__(self) -> str:
        return f"RpacAuthorizer(namespaces={self.namespaces!r})"
