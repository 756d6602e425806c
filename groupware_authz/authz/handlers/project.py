"""
Permissions of projects.

- the owner (a principal, may be a team) gets 'mrwid'
- everyone else gets the union of the project ACEs naming one of the
  authenticated principals; ACEs are the project assignments flagged
  ``has_access``, the permission characters live in ``access_right``
- membership in the project team adds 'r'
- 'm' (manage) implies all the other project permissions
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
import logging
from typing import Any, Collection

from .. import mask as m
from ..gid import GlobalID
from ..store import AUTHZ_FETCH, PROJECT_ACL_FETCH, PROJECT_ASSIGNMENT_ENTITY, Row
from .base import ObjectInfo, PermissionHandler, loaded_attribute

logger = logging.getLogger(__name__)

PROJECT_ENTITY = "Projects"

OWNER_PERMISSIONS = m.as_mask("mrwid")
TEAM_PERMISSIONS = m.as_mask("r")
MANAGE_PERMISSIONS = m.as_mask("mrwid")


def resolve_compound(perms: m.MaskLike) -> m.Mask:
    perms = m.as_mask(perms)
    if "m" in perms:
        return perms | MANAGE_PERMISSIONS
    return perms


@dataclass(frozen=True)
class ProjectInfo(ObjectInfo):
    owner_id: int | None = None
    team_id: int | None = None
    # joined during the info fetch
    acl_permissions: m.Mask | None = None
    # assignments carried by a materialized project
    assignments: tuple[Any, ...] | None = None
    from_row: bool = False


class ProjectPermissionHandler(PermissionHandler):
    name = "project"
    info_type = ProjectInfo
    fields = {
        "owner_id": ("owner_id", "owner_id"),
        "team_id": ("team_id", "team_id"),
    }

    def extra_input(self, obj: Any | None, row: Row | None) -> dict[str, Any]:
        assignments = loaded_attribute(obj, "assignments")
        acl = row.get("acl_permissions") if row else None
        return {
            "assignments": tuple(assignments) if assignments is not None else None,
            "acl_permissions": m.as_mask(acl) if acl is not None else None,
            "from_row": bool(row),
        }

    def evaluate(self, ctx, gid: GlobalID, info: ProjectInfo) -> bool:
        if ctx.has_principal(info.owner_id):
            logger.debug("DONE: detected ownership on project %s", gid)
            ctx.record_permission(gid, OWNER_PERMISSIONS)
            return True

        if info.assignments is not None:
            acl_perms = self.permissions_of_assignments(ctx, info.assignments)
            logger.debug("project object carried ACL %r: %s", m.to_string(acl_perms), gid)
        elif info.acl_permissions is not None:
            acl_perms = info.acl_permissions
        elif not info.from_row:
            logger.debug("requesting project info, need ACL: %s", gid)
            ctx.request_info_fetch(self, gid)
            return False
        else:
            logger.warning("missing ACL permissions in project info of %s", gid)
            acl_perms = m.NO_PERMISSION

        if ctx.has_principal(info.team_id):
            acl_perms = acl_perms | TEAM_PERMISSIONS

        ctx.record_permission(gid, resolve_compound(acl_perms))
        return True

    def permissions_of_assignments(self, ctx, assignments: Collection[Any]) -> m.Mask:
        perms: set[str] = set()
        for ace in assignments:
            if not getattr(ace, "has_access", False):
                continue  # attached record, not an ACE
            if not ctx.has_principal(getattr(ace, "company_id", None)):
                continue
            perms.update(m.as_mask(getattr(ace, "access_right", None) or ""))
        return frozenset(perms)

    def fetch_infos(self, ctx, gids: Collection[GlobalID]) -> dict[GlobalID, Row] | None:
        """
        Fetch the project rows, record owned projects right away and join
        the matching ACEs of the remaining ones into ``acl_permissions``.
        """

        if not gids:
            return None

        key_to_gids: dict[Any, list[GlobalID]] = defaultdict(list)
        for gid in gids:
            key_to_gids[gid.key].append(gid)

        logger.debug("fetch project infos: #%d", len(key_to_gids))
        rows = ctx.store.bulk_fetch(PROJECT_ENTITY, list(key_to_gids), ctx.authenticated_ids, fetch=AUTHZ_FETCH)

        infos: dict[GlobalID, dict[str, Any]] = {}
        acl_keys: set[Any] = set()
        for row in rows:
            key = row.get("id")
            if ctx.has_principal(row.get("owner_id")):
                logger.debug("detected ownership on project %s during fetch", key)
                for gid in key_to_gids.get(key, ()):
                    ctx.record_permission(gid, OWNER_PERMISSIONS)
                continue

            for gid in key_to_gids.get(key, ()):
                infos[gid] = {**row, "acl_permissions": m.NO_PERMISSION}
                acl_keys.add(key)

        if not acl_keys:
            return infos

        logger.debug("check project ACLs: %s", sorted(acl_keys))
        aces = ctx.store.bulk_fetch(
            PROJECT_ASSIGNMENT_ENTITY, sorted(acl_keys), ctx.authenticated_ids, fetch=PROJECT_ACL_FETCH
        )
        for ace in aces:
            if not ace.get("has_access"):
                continue
            if not ctx.has_principal(ace.get("company_id")):
                logger.debug("ACE not covered: %s", dict(ace))
                continue
            for gid in key_to_gids.get(ace.get("project_id"), ()):
                info = infos.get(gid)
                if info is None:
                    logger.warning("no info fetched for project %s", gid)
                    continue
                info["acl_permissions"] = info["acl_permissions"] | m.as_mask(ace.get("access_right") or "")

        return infos
