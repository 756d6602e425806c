"""
Permissions of documents, folders and notes.

A document is attached to a project, or (when it has no project) to a
contact and/or an appointment, and may live inside a parent folder. The
resolution runs in three stages:

1. reject early using what the context already knows: no access to the
   project, contact, appointment or parent folder, or an ACL which exists
   but does not list us
2. request everything still unknown (project, contact, appointment and
   parent permissions, plus an opportunistic ACL fetch) and stay pending
3. compute: owner gets 'rwd'; an ACL decides if there is one; otherwise
   'rwd' for project documents, 'r' for documents attached to a contact or
   appointment and nothing for unattached ones. A parent granting 'd' adds
   'd', and the project permissions are the ceiling.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging

from .. import mask as m
from ..gid import GlobalID
from .base import ObjectInfo, PermissionHandler
from .project import PROJECT_ENTITY

logger = logging.getLogger(__name__)

OWNER_PERMISSIONS = m.as_mask("rwd")
PUBLIC_PROJECT_PERMISSIONS = m.as_mask("rwd")
PUBLIC_NO_PROJECT_PERMISSIONS = m.as_mask("r")
PUBLIC_UNATTACHED_PERMISSIONS = m.NO_PERMISSION

CONTACT_ENTITIES = ("Persons", "Companies")
PARENT_ENTITIES = ("Documents", "Notes")
EVENT_ENTITY = "Events"


@dataclass(frozen=True)
class DocumentInfo(ObjectInfo):
    project_id: int | None = None
    contact_id: int | None = None
    event_id: int | None = None
    parent_id: int | None = None
    creator_id: int | None = None
    owner_id: int | None = None


class DocumentPermissionHandler(PermissionHandler):
    name = "document"
    info_type = DocumentInfo
    fields = {
        "project_id": ("project_id", "project_id"),
        "contact_id": ("contact_id", "contact_id"),
        "event_id": ("event_id", "event_id"),
        "parent_id": ("parent_id", "parent_id"),
        "creator_id": ("creator_id", "creator_id"),
        "owner_id": ("owner_id", "owner_id"),
    }
    consider_acl_on_fetch = True

    def evaluate(self, ctx, gid: GlobalID, info: DocumentInfo) -> bool:
        project_perms: m.Mask | None = None
        contact_access: bool | None = None
        event_access: bool | None = None
        parent_perms: m.Mask | None = None

        # ---- cached rejections ------------------------------------------------------

        if info.project_id is not None:
            if ctx.has_project_access(info.project_id) is False:
                return self._reject(ctx, gid, "no project access")
            project_perms = ctx.permissions_for(PROJECT_ENTITY, info.project_id)
        else:
            if info.contact_id is not None:
                contact_access = self._first_known(
                    ctx.has_read_access(entity, info.contact_id) for entity in CONTACT_ENTITIES
                )
                if contact_access is False:
                    return self._reject(ctx, gid, "no contact access")
            if info.event_id is not None:
                event_access = ctx.has_read_access(EVENT_ENTITY, info.event_id)
                if event_access is False:
                    return self._reject(ctx, gid, "no event access")

        if info.parent_id is not None:
            parent_perms = self._first_known(
                ctx.permissions_for(entity, info.parent_id) for entity in PARENT_ENTITIES
            )
            if parent_perms is not None and "r" not in parent_perms:
                return self._reject(ctx, gid, "no parent access")

        we_own = ctx.has_account(info.owner_id)
        acl_perms = ctx.acl_permissions(gid)
        if not we_own and acl_perms is not None and ctx.has_acl(gid) and not acl_perms:
            return self._reject(ctx, gid, "ACL does not list us")

        # ---- requests ---------------------------------------------------------------

        if info.project_id is not None:
            if project_perms is None:
                logger.debug("request: need permissions of project %s for %s", info.project_id, gid)
                ctx.register_dependency(gid, GlobalID.of(PROJECT_ENTITY, info.project_id))
                if not we_own:
                    ctx.consider_acl_fetch(self, gid)
                return False
        else:
            if info.contact_id is not None and contact_access is None:
                logger.debug("request: need permissions of contact %s for %s", info.contact_id, gid)
                for entity in CONTACT_ENTITIES:
                    ctx.register_dependency(gid, GlobalID.of(entity, info.contact_id))
                if not we_own:
                    ctx.consider_acl_fetch(self, gid)
                return False
            if info.event_id is not None and event_access is None:
                logger.debug("request: need permissions of event %s for %s", info.event_id, gid)
                ctx.register_dependency(gid, GlobalID.of(EVENT_ENTITY, info.event_id))
                if not we_own:
                    ctx.consider_acl_fetch(self, gid)
                return False

        if info.parent_id is not None and parent_perms is None:
            logger.debug("request: need permissions of parent %s for %s", info.parent_id, gid)
            for entity in PARENT_ENTITIES:
                ctx.register_dependency(gid, GlobalID.of(entity, info.parent_id))
            ctx.consider_acl_fetch(self, gid)
            return False

        # ---- compute ----------------------------------------------------------------

        if we_own:
            perms = OWNER_PERMISSIONS
        elif acl_perms is None:
            ctx.request_acl_fetch(self, gid)
            return False
        elif ctx.has_acl(gid):
            perms = acl_perms
        elif project_perms is not None:
            perms = PUBLIC_PROJECT_PERMISSIONS
        elif info.event_id is not None or info.contact_id is not None:
            perms = PUBLIC_NO_PROJECT_PERMISSIONS
        else:
            perms = PUBLIC_UNATTACHED_PERMISSIONS

        if parent_perms is not None and "d" in parent_perms:
            perms = perms | {"d"}
        if project_perms is not None:
            perms = m.intersect(perms, project_perms)

        logger.debug("DONE: document %s => %r", gid, m.to_string(perms))
        ctx.record_permission(gid, perms)
        return True

    @staticmethod
    def _first_known(values):
        for value in values:
            if value is not None:
                return value
        return None

    @staticmethod
    def _reject(ctx, gid: GlobalID, reason: str) -> bool:
        logger.debug("DONE: %s for %s", reason, gid)
        ctx.record_permission(gid, m.NO_PERMISSION)
        return True
