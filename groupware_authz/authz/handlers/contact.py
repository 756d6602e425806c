"""
Permissions of contacts (persons, accounts, teams, companies).

Rules, checked in this order:

- the owner (owner_id) always has full access
- if the contact is not flagged private it is PUBLIC and the ACL is not
  consulted; the read-only flag restricts public access to 'r'
- otherwise the ACL decides; the primary contact (contact_id) gets 'r'
  added, and an account looking at its own contact record also gets 'r'
- 'w' implies 'r', 'r' implies the detail flags (see resolve_compound)

Contact detail flags:
    l list, b business data, p private data, I IM data, P private details
    (birthday etc), M mobile numbers, s may send messages, c may connect
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any

from .. import mask as m
from ..gid import GlobalID
from ..store import Row
from .base import ObjectInfo, PermissionHandler, loaded_attribute

logger = logging.getLogger(__name__)

PUBLIC_READONLY_PERMISSIONS = m.as_mask("r")
PUBLIC_PERMISSIONS = m.as_mask("rw")
OWNER_BASE_PERMISSIONS = m.as_mask("rw")
PRIMARY_CONTACT_PERMISSIONS = m.as_mask("r")
AUTHORIZED_CONTACT_PERMISSIONS = m.as_mask("r")

R_PERMISSIONS = m.as_mask("rlbpIPM")
W_PERMISSIONS = m.as_mask("rwlbpIPMsc")


def resolve_compound(perms: m.MaskLike) -> m.Mask:
    """Expand the implied contact flags ('w' implies 'r', any flag implies 'l')."""

    perms = m.as_mask(perms)
    if not perms:
        return perms
    if "w" in perms:
        return perms | W_PERMISSIONS
    if "r" in perms:
        return perms | R_PERMISSIONS
    return perms | {"l"}


OWNER_PERMISSIONS = resolve_compound(OWNER_BASE_PERMISSIONS)


@dataclass(frozen=True)
class ContactInfo(ObjectInfo):
    owner_id: int | None = None
    contact_id: int | None = None
    is_private: bool | None = None
    is_readonly: bool | None = None
    # ACEs carried by a materialized object; None if not available
    acl_entries: tuple[Any, ...] | None = None


class ContactPermissionHandler(PermissionHandler):
    name = "contact"
    info_type = ContactInfo
    fields = {
        "owner_id": ("owner_id", "owner_id"),
        "contact_id": ("contact_id", "contact_id"),
        "is_private": ("is_private", "is_private"),
        "is_readonly": ("is_readonly", "is_readonly"),
    }
    consider_acl_on_fetch = True

    def extra_input(self, obj: Any | None, row: Row | None) -> dict[str, Any]:
        entries = loaded_attribute(obj, "acl_entries")
        return {"acl_entries": tuple(entries) if entries is not None else None}

    def evaluate(self, ctx, gid: GlobalID, info: ContactInfo) -> bool:
        if ctx.has_account(info.owner_id):
            logger.debug("DONE: we own the contact %s", gid)
            ctx.record_permission(gid, OWNER_PERMISSIONS)
            return True

        if not info.is_private:
            logger.debug("DONE: contact is public %s", gid)
            perms = PUBLIC_READONLY_PERMISSIONS if info.is_readonly else PUBLIC_PERMISSIONS
            ctx.record_permission(gid, resolve_compound(perms))
            return True

        # private and not ours, the ACL decides
        if info.acl_entries is not None:
            acl_perms = ctx.object_acl_permissions(info.acl_entries)
        else:
            acl_perms = ctx.acl_permissions(gid)
        if acl_perms is None:
            ctx.request_acl_fetch(self, gid)
            return False

        if ctx.has_principal(info.contact_id):
            logger.debug("we are the primary contact of %s", gid)
            acl_perms = acl_perms | PRIMARY_CONTACT_PERMISSIONS

        if ctx.has_account(gid.key):
            logger.debug("DONE: we are the contact %s", gid)
            ctx.record_permission(gid, resolve_compound(acl_perms | AUTHORIZED_CONTACT_PERMISSIONS))
            return True

        logger.debug("DONE: ACL of contact %s grants %r", gid, m.to_string(acl_perms))
        ctx.record_permission(gid, resolve_compound(acl_perms))
        return True

    def resolve_inline(self, ctx, gid: GlobalID, row: Row) -> bool:
        if ctx.has_account(row.get("owner_id")):
            logger.debug("detected ownership on %s during fetch", gid)
            ctx.record_permission(gid, OWNER_PERMISSIONS)
            return True
        return False
