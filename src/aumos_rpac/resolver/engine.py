"""Permission resolver: the authorization decision engine.

For a ``(subject, action, entity?)`` triple the resolver:

1. derives the namespace (from the entity's type, else from the policy);
2. builds the signature ``"<namespace>:<action>"``;
3. merges the policy's static roles with every dynamic store record for
   that signature (set union);
4. allows immediately if the wildcard role is present;
5. otherwise merges the subject's relationship roles with its static
   roles (``{"guest"}`` when anonymous) and allows iff the two sets
   intersect.

The named wrappers (:meth:`PermissionResolver.view`,
:meth:`PermissionResolver.delete`, ...) are the normal entry points.
``delete``, ``restore`` and ``force_delete`` first apply soft-delete
guards which deny regardless of any role, the wildcard included.

Collaborator failures never escape as arbitrary exceptions: they become
a deny with reason :attr:`DecisionReason.LOOKUP_FAILURE`, are logged at
WARNING, and are re-raised as :class:`LookupFailure` only when the
resolver was built with ``raise_lookup_errors=True``.

Example
-------
::

    resolver = PermissionResolver(
        policy=PostPolicy(),
        store=PermissionStore(records=[PermissionRecord("Post:update", "owner")]),
        role_provider=MappingRoleProvider(),
    )
    resolver.update(user, post)   # True when user owns post
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, TypeVar

from aumos_rpac.contracts import AttributeEntityDescriptor, EntityDescriptor, RoleProvider
from aumos_rpac.errors import ConfigurationError, LookupFailure
from aumos_rpac.policies.unit import PolicyUnit
from aumos_rpac.resolver.context import AuthorizationContext
from aumos_rpac.store.permission_store import PermissionStore
from aumos_rpac.store.records import WILDCARD_ROLE, make_signature

if TYPE_CHECKING:
    from aumos_rpac.audit.logger import DecisionAuditLogger

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

DEFAULT_GUEST_ROLE: str = "guest"


class DecisionReason(str, Enum):
    """Why a decision came out the way it did."""

    WILDCARD = "wildcard"
    ROLE_MATCH = "role_match"
    NO_MATCHING_ROLE = "no_matching_role"
    ALREADY_DELETED = "already_deleted"
    NOT_DELETED = "not_deleted"
    SOFT_DELETE_UNSUPPORTED = "soft_delete_unsupported"
    LOOKUP_FAILURE = "lookup_failure"

    @property
    def is_structural(self) -> bool:
        """True for soft-delete guard denials."""
        return self in _STRUCTURAL_REASONS


_STRUCTURAL_REASONS = frozenset(
    {
        DecisionReason.ALREADY_DELETED,
        DecisionReason.NOT_DELETED,
        DecisionReason.SOFT_DELETE_UNSUPPORTED,
    }
)


@dataclass(frozen=True)
class AuthorizationDecision:
    """Immutable outcome of one authorization check.

    Attributes
    ----------
    allowed:
        Whether the action is permitted.
    reason:
        The :class:`DecisionReason` behind the outcome.
    action:
        The action that was checked.
    signature:
        The ``namespace:action`` signature, or ``None`` when a guard or a
        lookup failure stopped resolution before it was computed.
    matched_roles:
        Roles present in both the allowed set and the subject's role set
        (``{"*"}`` for a wildcard allow).
    error:
        The :class:`LookupFailure` that caused a deny, if any.
    """

    allowed: bool
    reason: DecisionReason
    action: str
    signature: str | None = None
    matched_roles: frozenset[str] = frozenset()
    error: LookupFailure | None = None

    def __bool__(self) -> bool:
        return self.allowed


class PermissionResolver:
    """Resolves allow/deny decisions for one policy unit.

    Parameters
    ----------
    policy:
        The :class:`PolicyUnit` for the namespace being authorized.
    store:
        Source of dynamic permission records.
    role_provider:
        Supplies static roles and relationship tests.
    entity_descriptor:
        Describes entity types.  Defaults to
        :class:`AttributeEntityDescriptor`.
    guest_role:
        Static role assumed for an absent subject.
    wildcard_role:
        Role meaning "anyone".
    raise_lookup_errors:
        Re-raise collaborator failures as :class:`LookupFailure` instead
        of denying.  Meant for diagnostics.
    audit_logger:
        Optional :class:`DecisionAuditLogger` receiving every decision.
    """

    def __init__(
        self,
        policy: PolicyUnit,
        store: PermissionStore,
        role_provider: RoleProvider,
        entity_descriptor: EntityDescriptor | None = None,
        *,
        guest_role: str = DEFAULT_GUEST_ROLE,
        wildcard_role: str = WILDCARD_ROLE,
        raise_lookup_errors: bool = False,
        audit_logger: DecisionAuditLogger | None = None,
    ) -> None:
        self._policy = policy
        self._store = store
        self._roles = role_provider
        self._entities = entity_descriptor or AttributeEntityDescriptor()
        self._guest_role = guest_role
        self._wildcard_role = wildcard_role
        self._raise_lookup_errors = raise_lookup_errors
        self._audit_logger = audit_logger

    @property
    def policy(self) -> PolicyUnit:
        return self._policy

    @property
    def store(self) -> PermissionStore:
        return self._store

    def new_context(self, subject: Any = None, entity: Any = None) -> AuthorizationContext:
        """Create a fresh per-request context."""
        return AuthorizationContext(subject, entity)

    # ------------------------------------------------------------------
    # Core API
    # ------------------------------------------------------------------

    def authorize(
        self,
        action: str,
        subject: Any = None,
        entity: Any = None,
        *,
        context: AuthorizationContext | None = None,
    ) -> bool:
        """Return True if ``subject`` may perform ``action`` (on ``entity``).

        Raises
        ------
        ConfigurationError
            If ``action`` is a model action and ``entity`` is ``None``.
        """
        return self.evaluate(action, subject, entity, context=context).allowed

    def evaluate(
        self,
        action: str,
        subject: Any = None,
        entity: Any = None,
        *,
        context: AuthorizationContext | None = None,
    ) -> AuthorizationDecision:
        """Like :meth:`authorize` but return the full :class:`AuthorizationDecision`."""
        self._require_entity(action, entity)
        return self._evaluate(action, subject, entity, context)

    def permissions_for(self, action: str, entity: Any = None) -> frozenset[str]:
        """Return the merged static and dynamic roles allowed to ``action``.

        Raises
        ------
        LookupFailure
            If the entity descriptor or the permission store fails.
        """
        return self._allowed_roles(action, self._signature_for(action, entity))

    # ------------------------------------------------------------------
    # Standard actions
    # ------------------------------------------------------------------

    def view_any(self, subject: Any = None, *, context: AuthorizationContext | None = None) -> bool:
        return self.authorize("viewAny", subject, context=context)

    def view(self, subject: Any, entity: Any, *, context: AuthorizationContext | None = None) -> bool:
        self._require_entity("view", entity, always=True)
        return self._evaluate("view", subject, entity, context).allowed

    def create(self, subject: Any = None, *, context: AuthorizationContext | None = None) -> bool:
        return self.authorize("create", subject, context=context)

    def update(self, subject: Any, entity: Any, *, context: AuthorizationContext | None = None) -> bool:
        self._require_entity("update", entity, always=True)
        return self._evaluate("update", subject, entity, context).allowed

    def delete(self, subject: Any, entity: Any, *, context: AuthorizationContext | None = None) -> bool:
        return self.decide("delete", subject, entity, context=context).allowed

    def restore(self, subject: Any, entity: Any, *, context: AuthorizationContext | None = None) -> bool:
        return self.decide("restore", subject, entity, context=context).allowed

    def force_delete(
        self, subject: Any, entity: Any, *, context: AuthorizationContext | None = None
    ) -> bool:
        return self.decide("forceDelete", subject, entity, context=context).allowed

    def decide(
        self,
        action: str,
        subject: Any = None,
        entity: Any = None,
        *,
        context: AuthorizationContext | None = None,
    ) -> AuthorizationDecision:
        """Evaluate ``action`` with the soft-delete guards applied first.

        Guards exist for ``delete``, ``restore`` and ``forceDelete``; any
        other action is passed straight to :meth:`evaluate`.
        """
        if action not in _GUARDS:
            return self.evaluate(action, subject, entity, context=context)
        self._require_entity(action, entity, always=True)
        try:
            reason = _GUARDS[action](self, entity)
        except LookupFailure as exc:
            return self._record(self._lookup_failed(action, exc), subject)
        if reason is not None:
            logger.debug("Structural deny: action=%s reason=%s", action, reason.value)
            return self._record(
                AuthorizationDecision(allowed=False, reason=reason, action=action),
                subject,
            )
        return self._evaluate(action, subject, entity, context)

    # ------------------------------------------------------------------
    # Soft-delete guards
    # ------------------------------------------------------------------

    def _guard_delete(self, entity: Any) -> DecisionReason | None:
        if self._soft_deletes(entity) and self._trashed(entity):
            return DecisionReason.ALREADY_DELETED
        return None

    def _guard_restore(self, entity: Any) -> DecisionReason | None:
        if self._soft_deletes(entity) and not self._trashed(entity):
            return DecisionReason.NOT_DELETED
        return None

    def _guard_force_delete(self, entity: Any) -> DecisionReason | None:
        if not self._soft_deletes(entity):
            return DecisionReason.SOFT_DELETE_UNSUPPORTED
        return None

    def _soft_deletes(self, entity: Any) -> bool:
        return bool(
            self._call("entity_descriptor", self._entities.supports_soft_delete, type(entity))
        )

    def _trashed(self, entity: Any) -> bool:
        return bool(self._call("entity_descriptor", self._entities.is_soft_deleted, entity))

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def _evaluate(
        self,
        action: str,
        subject: Any,
        entity: Any,
        context: AuthorizationContext | None,
    ) -> AuthorizationDecision:
        context = context or AuthorizationContext(subject, entity)
        try:
            decision = self._resolve(action, subject, entity, context)
        except LookupFailure as exc:
            decision = self._lookup_failed(action, exc)
        return self._record(decision, subject)

    def _resolve(
        self,
        action: str,
        subject: Any,
        entity: Any,
        context: AuthorizationContext,
    ) -> AuthorizationDecision:
        signature = self._signature_for(action, entity)
        allowed_roles = self._allowed_roles(action, signature)

        if self._wildcard_role in allowed_roles:
            return AuthorizationDecision(
                allowed=True,
                reason=DecisionReason.WILDCARD,
                action=action,
                signature=signature,
                matched_roles=frozenset([self._wildcard_role]),
            )

        subject_roles = self._relationship_roles(subject, entity) | self._static_roles(
            subject, context
        )
        matched = allowed_roles & subject_roles
        return AuthorizationDecision(
            allowed=bool(matched),
            reason=DecisionReason.ROLE_MATCH if matched else DecisionReason.NO_MATCHING_ROLE,
            action=action,
            signature=signature,
            matched_roles=frozenset(matched),
        )

    def _signature_for(self, action: str, entity: Any) -> str:
        if entity is None:
            namespace = self._policy.namespace
        else:
            namespace = self._call("entity_descriptor", self._entities.namespace_of, type(entity))
            if namespace != self._policy.namespace:
                logger.debug(
                    "Entity namespace %r differs from policy namespace %r",
                    namespace,
                    self._policy.namespace,
                )
        if not namespace:
            raise ConfigurationError("No namespace could be resolved for the policy or entity.")
        return make_signature(namespace, action)

    def _allowed_roles(self, action: str, signature: str) -> frozenset[str]:
        snapshot = self._store.current()
        return self._policy.permissions_of(action) | snapshot.roles_for(signature)

    def _relationship_roles(self, subject: Any, entity: Any) -> frozenset[str]:
        if subject is None or entity is None:
            return frozenset()
        relationships = self._call(
            "entity_descriptor", self._entities.relationships_of, type(entity)
        )
        return frozenset(
            name
            for name in relationships
            if self._call("role_provider", self._roles.related_to, subject, entity, name)
        )

    def _static_roles(self, subject: Any, context: AuthorizationContext) -> frozenset[str]:
        if subject is None:
            return frozenset([self._guest_role])
        return context.static_roles(
            subject, lambda s: self._call("role_provider", self._roles.roles_of, s)
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_entity(self, action: str, entity: Any, *, always: bool = False) -> None:
        """Reject a missing entity for model actions, or for any action when ``always``."""
        if entity is None and (always or self._policy.is_model_action(action)):
            raise ConfigurationError(
                f"Action {action!r} of {self._policy.namespace!r} requires an entity."
            )

    def _call(self, collaborator: str, fn: Callable[..., _T], *args: Any) -> _T:
        try:
            return fn(*args)
        except (ConfigurationError, LookupFailure):
            raise
        except Exception as exc:
            raise LookupFailure(collaborator, f"{type(exc).__name__}: {exc}") from exc

    def _lookup_failed(self, action: str, exc: LookupFailure) -> AuthorizationDecision:
        logger.warning(
            "Lookup failure while authorizing %s:%s; denying",
            self._policy.namespace,
            action,
            exc_info=exc,
        )
        self._audit("record_lookup_failure", self._policy.namespace, action, exc)
        if self._raise_lookup_errors:
            raise exc
        return AuthorizationDecision(
            allowed=False,
            reason=DecisionReason.LOOKUP_FAILURE,
            action=action,
            error=exc,
        )

    def _record(self, decision: AuthorizationDecision, subject: Any) -> AuthorizationDecision:
        logger.debug(
            "Authorization %s: action=%s signature=%s reason=%s",
            "ALLOW" if decision.allowed else "DENY",
            decision.action,
            decision.signature,
            decision.reason.value,
        )
        self._audit("record_decision", decision, self._policy.namespace, subject)
        return decision

    def _audit(self, method: str, *args: Any) -> None:
        audit_logger = self._audit_logger
        if audit_logger is None:
            return
        # An unwritable audit trail never changes the decision.
        try:
            getattr(audit_logger, method)(*args)
        except OSError:
            logger.warning(
                "Failed to write audit record to %s", audit_logger.log_path, exc_info=True
            )

    def __repr__(self) -> str:
        return f"PermissionResolver(policy={self._policy!r})"


_GUARDS: dict[str, Callable[[PermissionResolver, Any], DecisionReason | None]] = {
    "delete": PermissionResolver._guard_delete,
    "restore": PermissionResolver._guard_restore,
    "forceDelete": PermissionResolver._guard_force_delete,
}
