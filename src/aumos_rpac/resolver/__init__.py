"""The permission resolver and its per-request context."""
from __future__ import annotations

from aumos_rpac.audit.logger import describe_subject
from aumos_rpac.resolver.context import AuthorizationContext
from aumos_rpac.resolver.engine import (
    DEFAULT_GUEST_ROLE,
    AuthorizationDecision,
    DecisionReason,
    PermissionResolver,
)

__all__ = [
    "DEFAULT_GUEST_ROLE",
    "AuthorizationContext",
    "AuthorizationDecision",
    "DecisionReason",
    "PermissionResolver",
    "describe_subject",
]
