"""Tests for RoleGate and parse_roles."""
from __future__ import annotations

import logging
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from aumos_rpac.contracts import MappingRoleProvider, RoleProvider
from aumos_rpac.errors import AccessDeniedError, ConfigurationError, LookupFailure
from aumos_rpac.gate.role_gate import RoleGate, parse_roles


@pytest.fixture()
def gate() -> RoleGate:
    return RoleGate(MappingRoleProvider(), presets={"staff": "staff|admin"})


@pytest.fixture()
def editor() -> SimpleNamespace:
    return SimpleNamespace(id=1, roles=["editor"])


class TestParseRoles:
    def test_pipe_delimited(self) -> None:
        assert parse_roles("staff|admin") == frozenset({"staff", "admin"})

    def test_blank_entries_dropped(self) -> None:
        assert parse_roles("staff|| admin |") == frozenset({"staff", "admin"})

    def test_iterable_passed_through(self) -> None:
        assert parse_roles(["a", "b"]) == frozenset({"a", "b"})

    def test_none_is_empty(self) -> None:
        assert parse_roles(None) == frozenset()


class TestCheck:
    def test_matching_role_admits(self, gate: RoleGate, editor: SimpleNamespace) -> None:
        assert gate.check(editor, "editor|admin") is True

    def test_no_matching_role_refuses(self, gate: RoleGate, editor: SimpleNamespace) -> None:
        assert gate.check(editor, {"admin", "staff"}) is False

    def test_absent_subject_refused(self, gate: RoleGate) -> None:
        assert gate.check(None, "guest") is False

    def test_empty_allow_list_admits_nobody(
        self, gate: RoleGate, editor: SimpleNamespace
    ) -> None:
        assert gate.check(editor, []) is False
        assert gate.check(editor, "") is False

    def test_relationship_roles_never_considered(self) -> None:
        provider = MagicMock(spec=RoleProvider)
        provider.roles_of.return_value = []
        provider.related_to.return_value = True
        assert RoleGate(provider).check(object(), "owner") is False
        provider.related_to.assert_not_called()


class TestLookupFailure:
    @pytest.fixture()
    def broken(self) -> MagicMock:
        provider = MagicMock(spec=RoleProvider)
        provider.roles_of.side_effect = ConnectionError("directory unreachable")
        return provider

    def test_denies_and_logs(
        self, broken: MagicMock, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING, logger="aumos_rpac.gate.role_gate"):
            assert RoleGate(broken).check(object(), "admin") is False
        assert "Role lookup failed" in caplog.text

    def test_raises_when_opted_in(self, broken: MagicMock) -> None:
        gate = RoleGate(broken, raise_lookup_errors=True)
        with pytest.raises(LookupFailure, match="directory unreachable") as excinfo:
            gate.check(object(), "admin")
        assert excinfo.value.collaborator == "role_provider"


class TestEnforceAndPresets:
    def test_enforce_raises(self, gate: RoleGate, editor: SimpleNamespace) -> None:
        with pytest.raises(AccessDeniedError) as excinfo:
            gate.enforce(editor, "admin|staff")
        assert excinfo.value.allowed_roles == frozenset({"admin", "staff"})
        assert excinfo.value.status_code == 403

    def test_enforce_passes(self, gate: RoleGate, editor: SimpleNamespace) -> None:
        gate.enforce(editor, "editor")

    def test_check_named(self, gate: RoleGate) -> None:
        staff = SimpleNamespace(id=2, roles=["staff"])
        assert gate.check_named(staff, "staff") is True

    def test_unknown_preset(self, gate: RoleGate, editor: SimpleNamespace) -> None:
        with pytest.raises(ConfigurationError, match="Unknown role gate"):
            gate.check_named(editor, "ops")

    def test_presets_parsed(self, gate: RoleGate) -> None:
        assert gate.presets == {"staff": frozenset({"staff", "admin"})}
