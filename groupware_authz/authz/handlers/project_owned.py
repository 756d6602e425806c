from __future__ import annotations

from dataclasses import dataclass
import logging

from .. import mask as m
from ..gid import GlobalID
from .base import ObjectInfo, PermissionHandler
from .project import PROJECT_ENTITY

logger = logging.getLogger(__name__)

PROJECT_MEMBER_PERMISSIONS = m.as_mask("rw")


@dataclass(frozen=True)
class ProjectOwnedInfo(ObjectInfo):
    project_id: int | None = None


class ProjectOwnedPermissionHandler(PermissionHandler):
    """Project assignments: 'rw' for anyone with any access to the project."""

    name = "project_owned"
    info_type = ProjectOwnedInfo
    fields = {"project_id": ("project_id", "project_id")}

    def evaluate(self, ctx, gid: GlobalID, info: ProjectOwnedInfo) -> bool:
        can_access = ctx.has_project_access(info.project_id)
        if can_access is None:
            project_gid = GlobalID.of(PROJECT_ENTITY, info.project_id)
            logger.debug("requesting project permissions %s for %s", project_gid, gid)
            ctx.register_dependency(gid, project_gid)
            return False

        ctx.record_permission(gid, PROJECT_MEMBER_PERMISSIONS if can_access else m.NO_PERMISSION)
        return True
