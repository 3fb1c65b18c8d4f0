"""Collaborator contracts consumed by the resolver and the role gate.

The resolver never talks to a user model or an ORM directly.  It asks a
:class:`RoleProvider` for a subject's static roles and relationships and
an :class:`EntityDescriptor` for the type-level facts about an entity
(namespace, relationship names, soft-delete capability).

Two attribute-driven defaults are provided so that plain Python objects
work without any glue:

- :class:`AttributeEntityDescriptor` reads ``__rpac_namespace__``,
  ``__rpac_relationships__`` and ``__rpac_soft_deletes__`` class
  attributes and the instance's ``deleted_at`` / ``trashed()`` state.
- :class:`MappingRoleProvider` reads a ``roles`` attribute off the subject
  and resolves a relationship by comparing ``entity.<name>_id`` (or
  ``entity.<name>``) against the subject.

Example
-------
::

    class Post:
        __rpac_relationships__ = ("author",)

        def __init__(self, author_id):
            self.author_id = author_id
            self.deleted_at = None

    descriptor = AttributeEntityDescriptor()
    descriptor.namespace_of(Post)          # "Post"
    descriptor.relationships_of(Post)      # ("author",)
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Iterable, Sequence


# ---------------------------------------------------------------------------
# Abstract contracts
# ---------------------------------------------------------------------------


class RoleProvider(ABC):
    """Supplies static roles and relationship tests for subjects."""

    @abstractmethod
    def roles_of(self, subject: Any) -> Iterable[str]:
        """Return the static role names held by ``subject``."""

    @abstractmethod
    def related_to(self, subject: Any, entity: Any, relationship: str) -> bool:
        """Return True if ``subject`` relates to ``entity`` through ``relationship``."""


class EntityDescriptor(ABC):
    """Describes the authorization-relevant facts of an entity type."""

    @abstractmethod
    def namespace_of(self, entity_type: type) -> str:
        """Return the stable namespace string for ``entity_type``."""

    @abstractmethod
    def relationships_of(self, entity_type: type) -> Sequence[str]:
        """Return the relationship names ``entity_type`` exposes, in order."""

    @abstractmethod
    def supports_soft_delete(self, entity_type: type) -> bool:
        """Return True if instances of ``entity_type`` can be soft-deleted."""

    @abstractmethod
    def is_soft_deleted(self, entity: Any) -> bool:
        """Return True if ``entity`` is currently soft-deleted."""


# ---------------------------------------------------------------------------
# Attribute-driven defaults
# ---------------------------------------------------------------------------


class AttributeEntityDescriptor(EntityDescriptor):
    """Entity descriptor driven by class attributes.

    Parameters
    ----------
    deleted_attribute:
        Instance attribute holding the soft-delete marker.  A value other
        than ``None`` means the instance is soft-deleted.
    """

    def __init__(self, deleted_attribute: str = "deleted_at") -> None:
        self._deleted_attribute = deleted_attribute

    def namespace_of(self, entity_type: type) -> str:
        namespace = getattr(entity_type, "__rpac_namespace__", None)
        return str(namespace) if namespace else entity_type.__name__

    def relationships_of(self, entity_type: type) -> Sequence[str]:
        return tuple(getattr(entity_type, "__rpac_relationships__", ()))

    def supports_soft_delete(self, entity_type: type) -> bool:
        declared = getattr(entity_type, "__rpac_soft_deletes__", None)
        if declared is not None:
            return bool(declared)
        # A restorable model is a soft-deleting model.
        return callable(getattr(entity_type, "restore", None))

    def is_soft_deleted(self, entity: Any) -> bool:
        trashed = getattr(entity, "trashed", None)
        if callable(trashed):
            return bool(trashed())
        return getattr(entity, self._deleted_attribute, None) is not None


class MappingRoleProvider(RoleProvider):
    """Role provider that reads roles and relationships off plain objects.

    Parameters
    ----------
    roles_attribute:
        Subject attribute holding an iterable of role names.
    identity_attribute:
        Subject attribute used when comparing against ``<relationship>_id``
        foreign keys on the entity.
    relations:
        Optional mapping of relationship name to a ``(subject, entity) ->
        bool`` callable.  Takes precedence over the attribute convention.
    """

    def __init__(
        self,
        roles_attribute: str = "roles",
        identity_attribute: str = "id",
        relations: dict[str, Callable[[Any, Any], bool]] | None = None,
    ) -> None:
        self._roles_attribute = roles_attribute
        self._identity_attribute = identity_attribute
        self._relations = dict(relations or {})

    def roles_of(self, subject: Any) -> Iterable[str]:
        return tuple(getattr(subject, self._roles_attribute, None) or ())

    def related_to(self, subject: Any, entity: Any, relationship: str) -> bool:
        custom = self._relations.get(relationship)
        if custom is not None:
            return bool(custom(subject, entity))

        subject_id = getattr(subject, self._identity_attribute, None)

        foreign_key = getattr(entity, f"{relationship}_id", None)
        if foreign_key is not None:
            return subject_id is not None and foreign_key == subject_id

        related = getattr(entity, relationship, None)
        if related is None:
            return False
        if isinstance(related, (list, tuple, set, frozenset)):
            return any(self._same(subject, subject_id, item) for item in related)
        return self._same(subject, subject_id, related)

    def _same(self, subject: Any, subject_id: Any, other: Any) -> bool:
        if other is subject:
            return True
        if subject_id is None:
            return False
        other_id = getattr(other, self._identity_attribute, other)
        return other_id == subject_id
