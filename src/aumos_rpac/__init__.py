"""aumos-rpac: role and relationship based authorization resolver.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import aumos_rpac as rpac
>>> rpac.__version__
'0.1.0'
>>> authorizer = rpac.RpacAuthorizer({"policies": {"Post": {"actions": {"viewAny": "*"}}}})
>>> authorizer.authorize("viewAny", None, namespace="Post")
True
"""
from __future__ import annotations

__version__: str = "0.1.0"

from aumos_rpac.convenience import RpacAuthorizer

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------
from aumos_rpac.errors import (
    AccessDeniedError,
    ConfigurationError,
    LookupFailure,
    RpacError,
)

# ---------------------------------------------------------------------------
# Collaborator contracts
# ---------------------------------------------------------------------------
from aumos_rpac.contracts import (
    AttributeEntityDescriptor,
    EntityDescriptor,
    MappingRoleProvider,
    RoleProvider,
)

# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------
from aumos_rpac.store.loader import PermissionLoader
from aumos_rpac.store.permission_store import PermissionStore
from aumos_rpac.store.records import (
    WILDCARD_ROLE,
    PermissionRecord,
    PermissionSnapshot,
    make_signature,
)

# ---------------------------------------------------------------------------
# Policies
# ---------------------------------------------------------------------------
from aumos_rpac.policies.unit import STANDARD_ACTIONS, ActionKind, ActionSpec, PolicyUnit
from aumos_rpac.policies.parser import PolicyParser, TablePolicy

# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------
from aumos_rpac.resolver.context import AuthorizationContext
from aumos_rpac.resolver.engine import (
    AuthorizationDecision,
    DecisionReason,
    PermissionResolver,
)

# ---------------------------------------------------------------------------
# Gate, audit, config
# ---------------------------------------------------------------------------
from aumos_rpac.gate.role_gate import RoleGate, parse_roles
from aumos_rpac.audit.logger import AuditEntry, DecisionAuditLogger
from aumos_rpac.config import AuditConfig, ConfigLoader, RpacConfig

__all__ = [
    "__version__",
    "RpacAuthorizer",
    # Errors
    "AccessDeniedError",
    "ConfigurationError",
    "LookupFailure",
    "RpacError",
    # Contracts
    "AttributeEntityDescriptor",
    "EntityDescriptor",
    "MappingRoleProvider",
    "RoleProvider",
    # Store
    "WILDCARD_ROLE",
    "PermissionLoader",
    "PermissionRecord",
    "PermissionSnapshot",
    "PermissionStore",
    "make_signature",
    # Policies
    "STANDARD_ACTIONS",
    "ActionKind",
    "ActionSpec",
    "PolicyParser",
    "PolicyUnit",
    "TablePolicy",
    # Resolver
    "AuthorizationContext",
    "AuthorizationDecision",
    "DecisionReason",
    "PermissionResolver",
    # Gate, audit, config
    "AuditConfig",
    "AuditEntry",
    "ConfigLoader",
    "DecisionAuditLogger",
    "RoleGate",
    "RpacConfig",
    "parse_roles",
]
