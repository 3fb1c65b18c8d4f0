"""Tests for the rpac command-line interface."""
from __future__ import annotations

import textwrap
from pathlib import Path

import pytest
from click.testing import CliRunner

from aumos_rpac.cli.main import cli

_CONFIG_YAML = textwrap.dedent(
    """
    version: "1"
    permissions:
      - signature: "Post:update"
        role: owner
      - signature: "Post:forceDelete"
        role: admin
      - signature: "Tag:view"
        role: "*"
    policies:
      Post:
        actions:
          viewAny: "*"
          view: "*"
          create: [member]
          update: [editor]
          delete: [admin]
          restore: [admin]
      Tag: {}
    gates:
      staff: "staff|admin"
    """
)


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def config_file(tmp_path: Path) -> str:
    path = tmp_path / "rpac.yaml"
    path.write_text(_CONFIG_YAML, encoding="utf-8")
    return str(path)


class TestVersion:
    def test_version_command(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["version"])
        assert result.exit_code == 0
        assert "aumos-rpac" in result.output


class TestCheck:
    def test_static_role_allowed(self, runner: CliRunner, config_file: str) -> None:
        result = runner.invoke(
            cli, ["check", "Post", "update", "-r", "editor", "-c", config_file]
        )
        assert result.exit_code == 0
        assert "ALLOWED" in result.output
        assert "Post:update" in result.output
        assert "role_match" in result.output

    def test_relationship_role_allowed(self, runner: CliRunner, config_file: str) -> None:
        result = runner.invoke(
            cli, ["check", "Post", "update", "--relation", "owner", "-c", config_file]
        )
        assert result.exit_code == 0
        assert "owner" in result.output

    def test_denied_exit_code(self, runner: CliRunner, config_file: str) -> None:
        result = runner.invoke(
            cli, ["check", "Post", "update", "-r", "member", "-c", config_file]
        )
        assert result.exit_code == 1
        assert "DENIED" in result.output

    def test_anonymous_wildcard(self, runner: CliRunner, config_file: str) -> None:
        result = runner.invoke(cli, ["check", "Post", "viewAny", "--anonymous", "-c", config_file])
        assert result.exit_code == 0
        assert "wildcard" in result.output

    def test_structural_denial(self, runner: CliRunner, config_file: str) -> None:
        result = runner.invoke(
            cli, ["check", "Post", "delete", "-r", "admin", "--trashed", "-c", config_file]
        )
        assert result.exit_code == 1
        assert "already_deleted" in result.output

    def test_force_delete_requires_soft_delete(
        self, runner: CliRunner, config_file: str
    ) -> None:
        result = runner.invoke(
            cli,
            ["check", "Post", "forceDelete", "-r", "admin", "--no-soft-deletes", "-c", config_file],
        )
        assert result.exit_code == 1
        assert "soft_delete_unsupported" in result.output

    def test_unknown_namespace(self, runner: CliRunner, config_file: str) -> None:
        result = runner.invoke(cli, ["check", "Invoice", "view", "-c", config_file])
        assert result.exit_code == 2

    def test_missing_config_has_no_policies(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(
            cli, ["check", "Post", "view", "-c", str(tmp_path / "absent.yaml")]
        )
        assert result.exit_code == 2

    def test_invalid_config(self, runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "rpac.yaml"
        path.write_text("guest_role: ''\n", encoding="utf-8")
        result = runner.invoke(cli, ["check", "Post", "view", "-c", str(path)])
        assert result.exit_code == 2


class TestPermissionsList:
    def test_lists_records(self, runner: CliRunner, config_file: str) -> None:
        result = runner.invoke(cli, ["permissions", "list", "-c", config_file])
        assert result.exit_code == 0
        assert "Post:update" in result.output
        assert "Tag:view" in result.output

    def test_namespace_filter(self, runner: CliRunner, config_file: str) -> None:
        result = runner.invoke(cli, ["permissions", "list", "-n", "Tag", "-c", config_file])
        assert result.exit_code == 0
        assert "Tag:view" in result.output
        assert "Post:update" not in result.output

    def test_no_records(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(
            cli, ["permissions", "list", "-c", str(tmp_path / "absent.yaml")]
        )
        assert result.exit_code == 0
        assert "No permission records" in result.output


class TestPoliciesShow:
    def test_show(self, runner: CliRunner, config_file: str) -> None:
        result = runner.invoke(cli, ["policies", "show", "Post", "-c", config_file])
        assert result.exit_code == 0
        assert "forceDelete" in result.output
        assert "non-model" in result.output

    def test_unknown(self, runner: CliRunner, config_file: str) -> None:
        result = runner.invoke(cli, ["policies", "show", "Invoice", "-c", config_file])
        assert result.exit_code == 2


class TestGate:
    def test_preset_allows(self, runner: CliRunner, config_file: str) -> None:
        result = runner.invoke(cli, ["gate", "staff", "-r", "admin", "-c", config_file])
        assert result.exit_code == 0
        assert "ALLOWED" in result.output

    def test_inline_roles_deny(self, runner: CliRunner, config_file: str) -> None:
        result = runner.invoke(cli, ["gate", "ops|admin", "-r", "editor", "-c", config_file])
        assert result.exit_code == 1
        assert "DENIED" in result.output

    def test_anonymous_denied(self, runner: CliRunner, config_file: str) -> None:
        result = runner.invoke(cli, ["gate", "staff", "--anonymous", "-c", config_file])
        assert result.exit_code == 1
