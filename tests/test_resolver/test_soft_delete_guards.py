"""Tests for the delete / restore / forceDelete soft-delete guards."""
from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from aumos_rpac.contracts import EntityDescriptor, MappingRoleProvider, RoleProvider
from aumos_rpac.errors import ConfigurationError
from aumos_rpac.policies.unit import PolicyUnit
from aumos_rpac.resolver.engine import DecisionReason, PermissionResolver
from aumos_rpac.store.permission_store import PermissionStore
from aumos_rpac.store.records import PermissionRecord


class User:
    def __init__(self, user_id: int, roles: tuple[str, ...] = ()) -> None:
        self.id = user_id
        self.roles = roles


class Document:
    """Soft-deleting entity: defines ``restore``."""

    def __init__(self, trashed: bool = False) -> None:
        self.deleted_at = datetime.now(tz=timezone.utc) if trashed else None

    def restore(self) -> None:
        self.deleted_at = None


class Tag:
    """Hard-deleting entity."""


class OpenPolicy(PolicyUnit):
    NAMESPACE = "Document"

    def permissions(self, action: str) -> str:
        return "*"


@pytest.fixture()
def resolver() -> PermissionResolver:
    return PermissionResolver(OpenPolicy(), PermissionStore(), MappingRoleProvider())


class TestDeleteGuard:
    def test_trashed_entity_cannot_be_deleted_even_with_wildcard(
        self, resolver: PermissionResolver
    ) -> None:
        assert resolver.delete(User(1), Document(trashed=True)) is False

    def test_live_entity_can_be_deleted(self, resolver: PermissionResolver) -> None:
        assert resolver.delete(User(1), Document()) is True

    def test_hard_deleting_entity_passes_guard(self, resolver: PermissionResolver) -> None:
        assert resolver.delete(None, Tag()) is True

    def test_reason_code(self, resolver: PermissionResolver) -> None:
        decision = resolver.decide("delete", User(1), Document(trashed=True))
        assert decision.reason is DecisionReason.ALREADY_DELETED
        assert decision.reason.is_structural is True
        assert decision.signature is None


class TestRestoreGuard:
    def test_live_entity_cannot_be_restored(self, resolver: PermissionResolver) -> None:
        assert resolver.restore(User(1), Document()) is False

    def test_trashed_entity_can_be_restored(self, resolver: PermissionResolver) -> None:
        assert resolver.restore(User(1), Document(trashed=True)) is True

    def test_reason_code(self, resolver: PermissionResolver) -> None:
        decision = resolver.decide("restore", None, Document())
        assert decision.reason is DecisionReason.NOT_DELETED


class TestForceDeleteGuard:
    def test_unsupported_type_cannot_be_force_deleted(self, resolver: PermissionResolver) -> None:
        assert resolver.force_delete(User(1), Tag()) is False

    def test_soft_deleting_type_can_be_force_deleted(self, resolver: PermissionResolver) -> None:
        assert resolver.force_delete(User(1), Document()) is True

    def test_reason_code(self, resolver: PermissionResolver) -> None:
        decision = resolver.decide("forceDelete", User(1), Tag())
        assert decision.reason is DecisionReason.SOFT_DELETE_UNSUPPORTED


class TestGuardOrdering:
    def test_guard_runs_before_store_and_roles(self) -> None:
        store = MagicMock(spec=PermissionStore)
        provider = MagicMock(spec=RoleProvider)
        resolver = PermissionResolver(OpenPolicy(), store, provider)

        assert resolver.delete(User(1), Document(trashed=True)) is False
        store.current.assert_not_called()
        provider.roles_of.assert_not_called()

    def test_guard_holds_against_dynamic_grants(self) -> None:
        store = PermissionStore(records=[PermissionRecord("Document:restore", "admin")])
        resolver = PermissionResolver(OpenPolicy(), store, MappingRoleProvider())
        assert resolver.restore(User(1, roles=("admin",)), Document()) is False

    def test_missing_entity_rejected(self, resolver: PermissionResolver) -> None:
        with pytest.raises(ConfigurationError):
            resolver.delete(User(1), None)

    def test_descriptor_failure_denies(self) -> None:
        descriptor = MagicMock(spec=EntityDescriptor)
        descriptor.supports_soft_delete.side_effect = RuntimeError("schema unavailable")
        resolver = PermissionResolver(
            OpenPolicy(), PermissionStore(), MappingRoleProvider(), descriptor
        )
        decision = resolver.decide("forceDelete", User(1), Document())
        assert decision.allowed is False
        assert decision.reason is DecisionReason.LOOKUP_FAILURE

    def test_unguarded_action_goes_straight_to_evaluation(
        self, resolver: PermissionResolver
    ) -> None:
        decision = resolver.decide("update", User(1), Document(trashed=True))
        assert decision.reason is DecisionReason.WILDCARD
