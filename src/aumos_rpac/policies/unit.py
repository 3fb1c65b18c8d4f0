"""Policy units: per-namespace action tables with statically allowed roles.

Each :class:`PolicyUnit` subclass covers one entity namespace.  It
declares, up front, which actions exist and whether each one is a *model*
action (needs an entity instance, e.g. ``update``) or a *non-model*
action (entity-less, e.g. ``create``), and implements
:meth:`PolicyUnit.permissions` to return the roles compiled into code for
each action.

The action table is built once at construction time; nothing is
discovered by inspecting method signatures.

Example
-------
::

    class PostPolicy(PolicyUnit):
        ACTIONS = {"publish": ActionKind.MODEL}

        def permissions(self, action):
            if action in ("view", "viewAny"):
                return "*"
            if action == "publish":
                return ["editor", "author"]
            return ["admin"]

    policy = PostPolicy()
    policy.namespace                 # "Post"
    policy.permissions_of("publish") # frozenset({"editor", "author"})
    policy.is_model_action("create") # False
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Iterable, Mapping, Union

from aumos_rpac.errors import ConfigurationError

logger = logging.getLogger(__name__)

RoleSpec = Union[str, Iterable[str], None]


class ActionKind(str, Enum):
    """Whether an action operates on an entity instance."""

    MODEL = "model"
    NON_MODEL = "non-model"


@dataclass(frozen=True)
class ActionSpec:
    """One row of a policy's action table.

    Attributes
    ----------
    name:
        Action name, e.g. ``"update"``.
    kind:
        :class:`ActionKind` of the action.
    default_roles:
        Roles allowed by code, independent of the dynamic store.
    """

    name: str
    kind: ActionKind
    default_roles: frozenset[str] = frozenset()

    @property
    def requires_entity(self) -> bool:
        return self.kind is ActionKind.MODEL


STANDARD_ACTIONS: dict[str, ActionKind] = {
    "viewAny": ActionKind.NON_MODEL,
    "view": ActionKind.MODEL,
    "create": ActionKind.NON_MODEL,
    "update": ActionKind.MODEL,
    "delete": ActionKind.MODEL,
    "restore": ActionKind.MODEL,
    "forceDelete": ActionKind.MODEL,
}


def normalize_roles(roles: RoleSpec) -> frozenset[str]:
    """Coerce a role declaration (``None``, one name, or many) to a frozenset."""
    if roles is None:
        return frozenset()
    if isinstance(roles, str):
        return frozenset([roles]) if roles else frozenset()
    return frozenset(str(role) for role in roles if role)


class PolicyUnit(ABC):
    """Authorization unit for a single entity namespace.

    Subclasses set :attr:`NAMESPACE` (or rely on the class name minus a
    trailing ``Policy``), optionally extend :attr:`ACTIONS` with custom
    actions, and implement :meth:`permissions`.

    Parameters
    ----------
    namespace:
        Overrides the class-level namespace for this instance.
    """

    NAMESPACE: ClassVar[str | None] = None
    ACTIONS: ClassVar[Mapping[str, ActionKind | str]] = {}

    def __init__(self, namespace: str | None = None) -> None:
        self._namespace = namespace or self._resolve_namespace()
        self._table = self._build_table()

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------

    @abstractmethod
    def permissions(self, action: str) -> RoleSpec:
        """Return the roles statically allowed to perform ``action``.

        May return ``None``, a single role name, or an iterable of role
        names.  The wildcard ``"*"`` allows anyone.
        """

    # ------------------------------------------------------------------
    # Action table
    # ------------------------------------------------------------------

    def declared_actions(self) -> Mapping[str, ActionKind | str]:
        """Custom actions declared on top of :data:`STANDARD_ACTIONS`."""
        return self.ACTIONS

    @property
    def namespace(self) -> str:
        """The namespace this unit authorizes."""
        return self._namespace

    @property
    def action_table(self) -> dict[str, ActionSpec]:
        """A copy of the action table, keyed by action name."""
        return dict(self._table)

    def action_spec(self, action: str) -> ActionSpec | None:
        return self._table.get(action)

    def is_model_action(self, action: str) -> bool:
        spec = self._table.get(action)
        return spec is not None and spec.requires_entity

    def model_actions(self) -> list[str]:
        """Actions that require an entity instance, in declaration order."""
        return [name for name, spec in self._table.items() if spec.kind is ActionKind.MODEL]

    def non_model_actions(self) -> list[str]:
        """Entity-less actions, in declaration order."""
        return [name for name, spec in self._table.items() if spec.kind is ActionKind.NON_MODEL]

    def permissions_of(self, action: str) -> frozenset[str]:
        """Return the normalized static roles for ``action``.

        Declared actions are answered from the table built at
        construction time; undeclared ones fall through to
        :meth:`permissions`.
        """
        spec = self._table.get(action)
        if spec is not None:
            return spec.default_roles
        return normalize_roles(self.permissions(action))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _resolve_namespace(self) -> str:
        declared = type(self).NAMESPACE
        if declared:
            return declared
        class_name = type(self).__name__
        derived = class_name[: -len("Policy")] if class_name.endswith("Policy") else class_name
        if not derived:
            raise ConfigurationError(
                f"Policy class {class_name!r} has no resolvable namespace; "
                "set the NAMESPACE class attribute."
            )
        return derived

    def _build_table(self) -> dict[str, ActionSpec]:
        kinds: dict[str, ActionKind] = dict(STANDARD_ACTIONS)
        for name, kind in self.declared_actions().items():
            kinds[name] = ActionKind(kind)
        table = {
            name: ActionSpec(
                name=name,
                kind=kind,
                default_roles=normalize_roles(self.permissions(name)),
            )
            for name, kind in kinds.items()
        }
        logger.debug(
            "Built action table for %s: %d actions", self._namespace, len(table)
        )
        return table

    def __repr__(self) -> str:
        return f"{type(self).__name__}(namespace={self._namespace!r})"
