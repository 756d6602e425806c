from __future__ import annotations

import logging

from .. import mask as m
from ..gid import GlobalID
from .base import PermissionHandler

logger = logging.getLogger(__name__)

DEFAULT_GENERIC_PERMISSIONS = m.as_mask("dirw")


class GenericPermissionHandler(PermissionHandler):
    """
    Fallback for entities without a dedicated handler. Records a fixed mask
    without looking at the object.
    """

    name = "generic"

    def __init__(self, permissions: m.MaskLike = DEFAULT_GENERIC_PERMISSIONS) -> None:
        self.permissions = m.as_mask(permissions)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {m.to_string(self.permissions)!r}>"

    def process(self, ctx, gid: GlobalID, info) -> bool:
        ctx.record_permission(gid, self.permissions)
        return True

    def fetch_infos(self, ctx, gids):
        logger.error("%r does not fetch infos: #%d objects", self, len(gids))
        return None


class PublicObjectPermissionHandler(GenericPermissionHandler):
    """Objects which are not access controlled per row (ACEs, memberships)."""

    name = "public"

    def __init__(self) -> None:
        super().__init__(m.ALL_PERMISSIONS)
