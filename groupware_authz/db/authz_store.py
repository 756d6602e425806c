"""
SQLAlchemy implementation of the ``AuthzStore`` used by the permission
engine.

Every named fetch is a single ``SELECT ... WHERE key IN (...)``. Rows are
returned as plain dicts so the engine never holds on to ORM state.
"""

from __future__ import annotations

import logging
from typing import Any, Collection

from sqlalchemy import Select, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from groupware_authz.authz.gid import GlobalID
from groupware_authz.authz.store import (
    ACL_COUNT_FETCH,
    ACL_ENTITY,
    AUTHZ_FETCH,
    PROJECT_ACL_FETCH,
    PROJECT_ASSIGNMENT_ENTITY,
    Row,
    StoreError,
)
from groupware_authz.models import (
    ACLEntry,
    Address,
    Contact,
    ContactComment,
    Document,
    EMailAddress,
    Event,
    PhoneNumber,
    Project,
    ProjectAssignment,
    Task,
    TeamMembership,
)

logger = logging.getLogger(__name__)


# Entity name -> mapped class. Contacts of all kinds live in one table and are
# fetched by key regardless of the kind implied by the entity name; the same
# applies to documents and notes.
ENTITY_MODELS: dict[str, type] = {
    "Persons": Contact,
    "Accounts": Contact,
    "Teams": Contact,
    "Companies": Contact,
    "PersonAddresses": Address,
    "CompanyAddresses": Address,
    "PersonPhones": PhoneNumber,
    "CompanyPhones": PhoneNumber,
    "PersonEMails": EMailAddress,
    "CompanyEMails": EMailAddress,
    "PersonComments": ContactComment,
    "CompanyComments": ContactComment,
    "TeamComments": ContactComment,
    "Projects": Project,
    "ProjectPersons": ProjectAssignment,
    "ProjectTeams": ProjectAssignment,
    "ProjectCompanies": ProjectAssignment,
    "ProjectsToCompany": ProjectAssignment,
    PROJECT_ASSIGNMENT_ENTITY: ProjectAssignment,
    "Tasks": Task,
    "Documents": Document,
    "Notes": Document,
    "Events": Event,
    ACL_ENTITY: ACLEntry,
    "TeamMemberships": TeamMembership,
}

# Columns returned by the "authz" fetch of each model (besides "id").
AUTHZ_COLUMNS: dict[type, tuple[str, ...]] = {
    Contact: ("owner_id", "contact_id", "is_private", "is_readonly"),
    Address: ("contact_id", "type"),
    PhoneNumber: ("contact_id", "type"),
    EMailAddress: ("contact_id", "label"),
    ContactComment: ("contact_id",),
    Project: ("owner_id", "team_id"),
    ProjectAssignment: ("project_id", "company_id", "has_access", "access_right"),
    Task: ("creator_id", "owner_id", "project_id"),
    Document: ("project_id", "contact_id", "event_id", "parent_id", "creator_id", "owner_id"),
    Event: ("owner_id",),
    TeamMembership: ("team_id", "member_id"),
}


class SqlAuthzStore:
    def __init__(self, session: Session):
        self.session = session

    def authenticated_ids(self, account_id: int) -> frozenset[int]:
        stmt = select(TeamMembership.team_id).where(TeamMembership.member_id == account_id)
        try:
            team_ids = self.session.execute(stmt).scalars().all()
        except SQLAlchemyError as e:
            raise StoreError(f"could not fetch teams of account {account_id}") from e
        return frozenset([account_id, *team_ids])

    def has_entity(self, entity: str) -> bool:
        return entity in ENTITY_MODELS

    def materialized_object(self, gid: GlobalID) -> Any | None:
        model = ENTITY_MODELS.get(gid.entity)
        if model is None:
            return None
        return self.session.identity_map.get(self.session.identity_key(model, gid.keys))

    def bulk_fetch(
        self,
        entity: str,
        ids: Collection[int],
        auth_ids: Collection[int] | None = None,
        *,
        fetch: str = AUTHZ_FETCH,
    ) -> list[Row]:
        if not ids:
            return []

        stmt = self._build_fetch(entity, list(ids), auth_ids, fetch)
        logger.debug("bulk fetch %s/%s: #%d keys", entity, fetch, len(ids))
        try:
            result = self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise StoreError(f"bulk fetch {entity}/{fetch} failed") from e
        return [dict(row._mapping) for row in result]

    # ---- Named fetches --------------------------------------------------------------

    def _build_fetch(self, entity: str, ids: list[int], auth_ids: Collection[int] | None, fetch: str) -> Select:
        if entity == ACL_ENTITY and fetch == AUTHZ_FETCH:
            return _acl_entries_fetch(ids, auth_ids)
        if entity == ACL_ENTITY and fetch == ACL_COUNT_FETCH:
            return _acl_count_fetch(ids)
        if entity == PROJECT_ASSIGNMENT_ENTITY and fetch == PROJECT_ACL_FETCH:
            return _project_acl_fetch(ids, auth_ids)
        if fetch == AUTHZ_FETCH:
            model = ENTITY_MODELS.get(entity)
            if model is not None and model in AUTHZ_COLUMNS:
                return _object_fetch(model, ids)

        raise StoreError(f"no fetch named {fetch!r} for entity {entity!r}")


def _object_fetch(model: type, ids: list[int]) -> Select:
    columns = [getattr(model, "id")] + [getattr(model, name) for name in AUTHZ_COLUMNS[model]]
    return select(*columns).where(getattr(model, "id").in_(ids))


def _acl_entries_fetch(ids: list[int], auth_ids: Collection[int] | None) -> Select:
    stmt = select(ACLEntry.object_id, ACLEntry.principal_id, ACLEntry.permissions).where(
        ACLEntry.object_id.in_(ids)
    )
    if auth_ids is not None:
        stmt = stmt.where(ACLEntry.principal_id.in_(list(auth_ids)))
    return stmt


def _acl_count_fetch(ids: list[int]) -> Select:
    return (
        select(ACLEntry.object_id, func.count(ACLEntry.id).label("entry_count"))
        .where(ACLEntry.object_id.in_(ids))
        .group_by(ACLEntry.object_id)
    )


def _project_acl_fetch(ids: list[int], auth_ids: Collection[int] | None) -> Select:
    stmt = select(
        ProjectAssignment.project_id,
        ProjectAssignment.company_id,
        ProjectAssignment.has_access,
        ProjectAssignment.access_right,
    ).where(ProjectAssignment.project_id.in_(ids), ProjectAssignment.has_access.is_(True))
    if auth_ids is not None:
        stmt = stmt.where(ProjectAssignment.company_id.in_(list(auth_ids)))
    return stmt
