"""
Storage collaborator used by the authorization engine.

The engine never talks to a database directly. It asks an ``AuthzStore``
for raw rows using named bulk fetches, always keyed by a set of primary
keys and (where the fetch is principal specific) the authenticated ids.

Named fetches used by the engine:

    <entity>            / "authz"       one row per object with the
                                        attributes its handler needs
    "ACLEntries"        / "authz"       object_id, principal_id, permissions
                                        (restricted to auth_ids)
    "ACLEntries"        / "authz_count" object_id, entry_count
                                        (all principals)
    "ProjectAssignments"/ "authz_acl"   project_id, company_id, has_access,
                                        access_right (restricted to auth_ids)

Every row is a plain mapping. Rows of the "authz" fetches carry the
object's primary key under ``"id"``.
"""

from __future__ import annotations

from typing import Any, Collection, Mapping, Protocol, runtime_checkable

from .gid import GlobalID

Row = Mapping[str, Any]

AUTHZ_FETCH = "authz"
ACL_COUNT_FETCH = "authz_count"
PROJECT_ACL_FETCH = "authz_acl"

ACL_ENTITY = "ACLEntries"
PROJECT_ASSIGNMENT_ENTITY = "ProjectAssignments"


class StoreError(Exception):
    """Raised by a store when a bulk fetch cannot be performed."""


@runtime_checkable
class AuthzStore(Protocol):
    def authenticated_ids(self, account_id: int) -> frozenset[int]:
        """All principal ids (account + teams) the account acts as."""
        ...

    def bulk_fetch(
        self,
        entity: str,
        ids: Collection[int],
        auth_ids: Collection[int] | None = None,
        *,
        fetch: str = AUTHZ_FETCH,
    ) -> list[Row]:
        ...

    def has_entity(self, entity: str) -> bool:
        ...

    def materialized_object(self, gid: GlobalID) -> Any | None:
        """Best-effort in-memory lookup; must not perform I/O."""
        ...
