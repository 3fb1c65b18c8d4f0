"""Tests for PolicyParser and TablePolicy."""
from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from aumos_rpac.errors import ConfigurationError
from aumos_rpac.policies.parser import PolicyParser, TablePolicy
from aumos_rpac.policies.unit import ActionKind

_POLICY_YAML = textwrap.dedent(
    """
    policies:
      Post:
        actions:
          viewAny: "*"
          update: [editor]
          publish:
            roles: [editor, author]
          export:
            kind: non-model
            roles: admin
      Tag: {}
    """
)


@pytest.fixture()
def parser() -> PolicyParser:
    return PolicyParser()


class TestTablePolicy:
    def test_roles_and_kinds(self) -> None:
        policy = TablePolicy(
            "Post",
            roles={"update": ["editor"], "export": "admin"},
            kinds={"export": ActionKind.NON_MODEL},
        )
        assert policy.namespace == "Post"
        assert policy.permissions_of("update") == frozenset({"editor"})
        assert policy.permissions_of("export") == frozenset({"admin"})
        assert policy.is_model_action("export") is False

    def test_unlisted_action_has_no_roles(self) -> None:
        assert TablePolicy("Post").permissions_of("update") == frozenset()


class TestPolicyParser:
    def test_parse_string(self, parser: PolicyParser) -> None:
        policies = parser.parse_string(_POLICY_YAML)
        assert sorted(policies) == ["Post", "Tag"]
        post = policies["Post"]
        assert post.permissions_of("viewAny") == frozenset({"*"})
        assert post.permissions_of("publish") == frozenset({"editor", "author"})

    def test_custom_action_defaults_to_model(self, parser: PolicyParser) -> None:
        post = parser.parse_string(_POLICY_YAML)["Post"]
        assert post.is_model_action("publish") is True
        assert post.is_model_action("export") is False

    def test_empty_policy_has_standard_actions(self, parser: PolicyParser) -> None:
        tag = parser.parse_string(_POLICY_YAML)["Tag"]
        assert tag.non_model_actions() == ["viewAny", "create"]

    def test_unknown_kind_raises(self, parser: PolicyParser) -> None:
        with pytest.raises(ConfigurationError, match="unknown kind"):
            parser.parse_policies({"Post": {"actions": {"x": {"kind": "instance"}}}})

    def test_policies_must_be_mapping(self, parser: PolicyParser) -> None:
        with pytest.raises(ConfigurationError):
            parser.parse_policies(["Post"])

    def test_actions_must_be_mapping(self, parser: PolicyParser) -> None:
        with pytest.raises(ConfigurationError, match="actions"):
            parser.parse_policies({"Post": {"actions": ["view"]}})

    def test_parse_file(self, parser: PolicyParser, tmp_path: Path) -> None:
        path = tmp_path / "policies.yaml"
        path.write_text(_POLICY_YAML, encoding="utf-8")
        assert "Post" in parser.parse(path)

    def test_parse_missing_file(self, parser: PolicyParser, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            parser.parse(tmp_path / "missing.yaml")
