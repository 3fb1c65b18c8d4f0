"""YAML policy parser.

Builds :class:`TablePolicy` units from configuration instead of code.
The expected structure is::

    policies:
      Post:
        actions:
          viewAny: "*"
          view: "*"
          update: [editor]
          publish:
            kind: model
            roles: [editor, author]
      Comment:
        actions:
          create: [member]

Standard actions (``viewAny``, ``view``, ``create``, ``update``,
``delete``, ``restore``, ``forceDelete``) may be given as a bare role list;
custom actions default to ``model`` unless ``kind: non-model`` is set.

Example
-------
>>> parser = PolicyParser()
>>> policies = parser.parse_string("policies: {Post: {actions: {update: [editor]}}}")
>>> policies["Post"].permissions_of("update")
frozenset({'editor'})
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping

import yaml

from aumos_rpac.errors import ConfigurationError
from aumos_rpac.policies.unit import (
    STANDARD_ACTIONS,
    ActionKind,
    PolicyUnit,
    RoleSpec,
    normalize_roles,
)

logger = logging.getLogger(__name__)


class TablePolicy(PolicyUnit):
    """A policy unit whose static roles come from a plain mapping.

    Parameters
    ----------
    namespace:
        The namespace this unit authorizes.
    roles:
        Mapping of action name to allowed roles.
    kinds:
        Mapping of custom action name to :class:`ActionKind`.  Standard
        actions keep their standard kind unless overridden here.
    """

    def __init__(
        self,
        namespace: str,
        roles: Mapping[str, RoleSpec] | None = None,
        kinds: Mapping[str, ActionKind | str] | None = None,
    ) -> None:
        self._roles = {name: normalize_roles(spec) for name, spec in (roles or {}).items()}
        self._kinds = {name: ActionKind(kind) for name, kind in (kinds or {}).items()}
        super().__init__(namespace=namespace)

    def declared_actions(self) -> Mapping[str, ActionKind]:
        return self._kinds

    def permissions(self, action: str) -> RoleSpec:
        return self._roles.get(action)


class PolicyParser:
    """Parses policy YAML into ``{namespace: TablePolicy}`` mappings."""

    VALID_KINDS: frozenset[str] = frozenset(kind.value for kind in ActionKind)

    def parse(self, config_path: str | Path) -> dict[str, TablePolicy]:
        """Parse a YAML policy file.

        Raises
        ------
        FileNotFoundError
            If the file does not exist.
        ConfigurationError
            If the YAML is malformed or structurally invalid.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Policy file not found: {config_path}")

        with config_path.open("r", encoding="utf-8") as fh:
            try:
                raw = yaml.safe_load(fh) or {}
            except yaml.YAMLError as exc:
                raise ConfigurationError(f"Failed to parse YAML: {exc}", str(config_path)) from exc

        if not isinstance(raw, dict):
            raise ConfigurationError("Policy file must be a YAML mapping.", str(config_path))
        return self.parse_policies(raw.get("policies") or {}, str(config_path))

    def parse_string(self, yaml_content: str) -> dict[str, TablePolicy]:
        """Parse a YAML string directly (useful for testing)."""
        raw = yaml.safe_load(yaml_content) or {}
        if not isinstance(raw, dict):
            raise ConfigurationError("Policy document must be a YAML mapping.")
        return self.parse_policies(raw.get("policies") or {})

    def parse_policies(
        self,
        raw_policies: object,
        config_path: str | None = None,
    ) -> dict[str, TablePolicy]:
        """Convert the value of a ``policies`` key into policy units."""
        if not isinstance(raw_policies, dict):
            raise ConfigurationError(
                "'policies' must be a mapping of namespace to policy.", config_path
            )
        policies: dict[str, TablePolicy] = {}
        for namespace, body in raw_policies.items():
            policies[str(namespace)] = self._parse_policy(str(namespace), body, config_path)
        logger.info(
            "Parsed %d policies from %s", len(policies), config_path or "<string>"
        )
        return policies

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _parse_policy(
        self,
        namespace: str,
        body: object,
        config_path: str | None,
    ) -> TablePolicy:
        if not namespace:
            raise ConfigurationError("Policy namespace must not be empty.", config_path)
        if body is None:
            body = {}
        if not isinstance(body, dict):
            raise ConfigurationError(
                f"Policy {namespace!r} must be a mapping.", config_path
            )
        raw_actions = body.get("actions") or {}
        if not isinstance(raw_actions, dict):
            raise ConfigurationError(
                f"Policy {namespace!r}: 'actions' must be a mapping.", config_path
            )

        roles: dict[str, RoleSpec] = {}
        kinds: dict[str, ActionKind] = {}
        for action, spec in raw_actions.items():
            action = str(action)
            if isinstance(spec, dict):
                roles[action] = spec.get("roles")  # type: ignore[assignment]
                kind_raw = spec.get("kind")
                if kind_raw is not None:
                    kinds[action] = self._parse_kind(namespace, action, kind_raw, config_path)
                elif action not in STANDARD_ACTIONS:
                    kinds[action] = ActionKind.MODEL
            else:
                roles[action] = spec  # type: ignore[assignment]
                if action not in STANDARD_ACTIONS:
                    kinds[action] = ActionKind.MODEL
        return TablePolicy(namespace, roles=roles, kinds=kinds)

    def _parse_kind(
        self,
        namespace: str,
        action: str,
        kind_raw: object,
        config_path: str | None,
    ) -> ActionKind:
        kind = str(kind_raw).lower()
        if kind not in self.VALID_KINDS:
            raise ConfigurationError(
                f"Policy {namespace!r} action {action!r} has unknown kind {kind!r}. "
                f"Valid: {sorted(self.VALID_KINDS)}.",
                config_path,
            )
        return ActionKind(kind)
