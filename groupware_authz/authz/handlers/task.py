from __future__ import annotations

from dataclasses import dataclass
import logging

from .. import mask as m
from ..gid import GlobalID
from ..store import Row
from .base import ObjectInfo, PermissionHandler
from .project import PROJECT_ENTITY

logger = logging.getLogger(__name__)

CREATOR_PERMISSIONS = m.as_mask("lrwadA")
OWNER_PERMISSIONS = m.as_mask("lrwaA")
PROJECT_PERMISSIONS = m.as_mask("lr")


@dataclass(frozen=True)
class TaskInfo(ObjectInfo):
    creator_id: int | None = None
    owner_id: int | None = None
    project_id: int | None = None


class TaskPermissionHandler(PermissionHandler):
    """
    Tasks: the creator gets 'lrwadA', the executant (a person or a team)
    'lrwaA'. Anyone else may list and read the task if it is attached to a
    project they have access to.
    """

    name = "task"
    info_type = TaskInfo
    fields = {
        "creator_id": ("creator_id", "creator_id"),
        "owner_id": ("owner_id", "owner_id"),
        "project_id": ("project_id", "project_id"),
    }

    def evaluate(self, ctx, gid: GlobalID, info: TaskInfo) -> bool:
        if ctx.has_principal(info.creator_id):
            logger.debug("DONE: detected creator on task %s", gid)
            ctx.record_permission(gid, CREATOR_PERMISSIONS)
            return True

        if ctx.has_principal(info.owner_id):
            logger.debug("DONE: detected ownership on task %s", gid)
            ctx.record_permission(gid, OWNER_PERMISSIONS)
            return True

        if info.project_id is None:
            logger.debug("DONE: task %s has no project, no permission", gid)
            ctx.record_permission(gid, m.NO_PERMISSION)
            return True

        can_access = ctx.has_project_access(info.project_id)
        if can_access is None:
            logger.debug("requesting project access for task %s", gid)
            ctx.register_dependency(gid, GlobalID.of(PROJECT_ENTITY, info.project_id))
            return False

        ctx.record_permission(gid, PROJECT_PERMISSIONS if can_access else m.NO_PERMISSION)
        return True

    def resolve_inline(self, ctx, gid: GlobalID, row: Row) -> bool:
        if ctx.has_principal(row.get("creator_id")):
            logger.debug("detected creator on task %s during fetch", gid)
            ctx.record_permission(gid, CREATOR_PERMISSIONS)
            return True
        return False
