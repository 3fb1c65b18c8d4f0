"""Tests for PolicyUnit action tables and namespace resolution."""
from __future__ import annotations

import pytest

from aumos_rpac.errors import ConfigurationError
from aumos_rpac.policies.unit import (
    STANDARD_ACTIONS,
    ActionKind,
    PolicyUnit,
    normalize_roles,
)


class PostPolicy(PolicyUnit):
    ACTIONS = {"publish": ActionKind.MODEL, "export": "non-model"}

    def permissions(self, action: str) -> object:
        if action in ("view", "viewAny"):
            return "*"
        if action == "publish":
            return ["editor", "author"]
        if action == "archive":
            return ("archivist",)
        return None


class ArticlePolicy(PolicyUnit):
    NAMESPACE = "blog.Article"

    def permissions(self, action: str) -> None:
        return None


class Policy(PolicyUnit):
    def permissions(self, action: str) -> None:
        return None


class TestNamespace:
    def test_derived_from_class_name(self) -> None:
        assert PostPolicy().namespace == "Post"

    def test_class_attribute_wins(self) -> None:
        assert ArticlePolicy().namespace == "blog.Article"

    def test_constructor_override(self) -> None:
        assert PostPolicy(namespace="Entry").namespace == "Entry"

    def test_unresolvable_namespace_raises(self) -> None:
        with pytest.raises(ConfigurationError, match="NAMESPACE"):
            Policy()

    def test_bare_name_allowed_with_override(self) -> None:
        assert Policy(namespace="Thing").namespace == "Thing"


class TestActionTable:
    def test_standard_actions_present(self) -> None:
        table = PostPolicy().action_table
        for name in STANDARD_ACTIONS:
            assert name in table

    def test_model_and_non_model_lists(self) -> None:
        policy = PostPolicy()
        assert policy.model_actions() == [
            "view",
            "update",
            "delete",
            "restore",
            "forceDelete",
            "publish",
        ]
        assert policy.non_model_actions() == ["viewAny", "create", "export"]

    def test_is_model_action(self) -> None:
        policy = PostPolicy()
        assert policy.is_model_action("publish") is True
        assert policy.is_model_action("export") is False
        assert policy.is_model_action("unknown") is False

    def test_action_spec(self) -> None:
        spec = PostPolicy().action_spec("publish")
        assert spec is not None
        assert spec.requires_entity is True
        assert spec.default_roles == frozenset({"editor", "author"})

    def test_table_is_a_copy(self) -> None:
        policy = PostPolicy()
        policy.action_table.clear()
        assert policy.action_spec("view") is not None

    def test_custom_action_can_override_standard_kind(self) -> None:
        class LoosePolicy(PolicyUnit):
            ACTIONS = {"view": ActionKind.NON_MODEL}

            def permissions(self, action: str) -> None:
                return None

        assert LoosePolicy().is_model_action("view") is False


class TestPermissionsOf:
    def test_wildcard_string(self) -> None:
        assert PostPolicy().permissions_of("view") == frozenset({"*"})

    def test_none_is_empty(self) -> None:
        assert PostPolicy().permissions_of("update") == frozenset()

    def test_undeclared_action_falls_through(self) -> None:
        assert PostPolicy().permissions_of("archive") == frozenset({"archivist"})


class TestNormalizeRoles:
    @pytest.mark.parametrize(
        ("spec", "expected"),
        [
            (None, frozenset()),
            ("", frozenset()),
            ("admin", frozenset({"admin"})),
            (["a", "b", "a"], frozenset({"a", "b"})),
            (("a", ""), frozenset({"a"})),
        ],
    )
    def test_normalize(self, spec: object, expected: frozenset[str]) -> None:
        assert normalize_roles(spec) == expected  # type: ignore[arg-type]
