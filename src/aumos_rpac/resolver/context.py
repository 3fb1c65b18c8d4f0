"""Per-request authorization context.

An :class:`AuthorizationContext` carries the subject and (optionally) the
entity of one incoming request, plus a memo of the subject's static roles
so that several checks made while serving that request hit the role
provider only once.

Contexts must not outlive the request they were created for: a subject's
roles can change between requests, and a reused context would keep
answering with the old ones.

Example
-------
::

    context = resolver.new_context(current_user)
    can_edit = resolver.update(current_user, post, context=context)
    can_delete = resolver.delete(current_user, post, context=context)
    # roles_of(current_user) was called once.
"""
from __future__ import annotations

from typing import Any, Callable, Hashable, Iterable

IdentityKey = Callable[[Any], Hashable]


class AuthorizationContext:
    """Transient state of a single authorization request.

    Parameters
    ----------
    subject:
        The acting subject, or ``None`` for an anonymous request.
    entity:
        Optional target entity.
    identity_key:
        Maps a subject to the key its cached roles are stored under.
        Defaults to :func:`id`, i.e. object identity.  Cached subjects are
        held for the life of the context so an identity key is never
        reused by another object while its entry exists.
    """

    def __init__(
        self,
        subject: Any = None,
        entity: Any = None,
        identity_key: IdentityKey = id,
    ) -> None:
        self.subject = subject
        self.entity = entity
        self._identity_key = identity_key
        self._role_cache: dict[Hashable, tuple[Any, frozenset[str]]] = {}

    def static_roles(
        self,
        subject: Any,
        load: Callable[[Any], Iterable[str]],
    ) -> frozenset[str]:
        """Return ``subject``'s static roles, calling ``load`` on first use only.

        Nothing is cached when ``load`` raises.
        """
        entry = self._lookup(subject)
        if entry is None:
            entry = (subject, frozenset(load(subject)))
            self._role_cache[self._identity_key(subject)] = entry
        return entry[1]

    def is_cached(self, subject: Any) -> bool:
        return self._lookup(subject) is not None

    def clear(self) -> None:
        """Forget every memoized role set."""
        self._role_cache.clear()

    def _lookup(self, subject: Any) -> tuple[Any, frozenset[str]] | None:
        entry = self._role_cache.get(self._identity_key(subject))
        if entry is None:
            return None
        # Object identity keys only match the very object that was cached.
        if self._identity_key is id and entry[0] is not subject:
            return None
        return entry

    def __repr__(self) -> str:
        return (
            f"AuthorizationContext(subject={self.subject!r}, "
            f"entity={self.entity!r}, cached={len(self._role_cache)})"
        )
