"""
Permissions of objects which hang off a contact: addresses, phone numbers,
email addresses and contact comments.

The permission is derived from the permission of the owning contact:

- 'w' on the contact gives 'rw' on the sub-object
- 'r' on the contact gives 'r'
- otherwise the sub-object's type/label decides, using the contact's
  field visibility flags ('b' business, 'p' private, 'M' mobile)

Types are either legacy internal codes ("private", "05_tel_private",
"03_tel_funk") or vCard style lists prefixed with "V:" ("V:WORK,PREF").
Email addresses carry a vCard label list ("WORK;PREF") instead.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging

from .. import mask as m
from ..gid import GlobalID
from .base import ObjectInfo, PermissionHandler

logger = logging.getLogger(__name__)

WRITE_PERMISSIONS = m.as_mask("rw")
READ_PERMISSIONS = m.as_mask("r")

_CONTACT_ENTITY_BY_PREFIX = (
    ("Person", "Persons"),
    ("Company", "Companies"),
    ("Team", "Teams"),
)


def contact_entity_for(entity: str) -> str | None:
    """Map eg "PersonPhones" -> "Persons"."""
    for prefix, contact_entity in _CONTACT_ENTITY_BY_PREFIX:
        if entity.startswith(prefix):
            return contact_entity
    return None


@dataclass(frozen=True)
class SubobjectInfo(ObjectInfo):
    contact_id: int | None = None
    type: str | None = None
    label: str | None = None


class ContactOwnedPermissionHandler(PermissionHandler):
    """Default rule, used as is for contact comments."""

    name = "contact_comment"
    info_type = SubobjectInfo
    fields = {
        "contact_id": ("contact_id", "contact_id"),
        "type": ("type", "type"),
        "label": ("label", "label"),
    }

    def evaluate(self, ctx, gid: GlobalID, info: SubobjectInfo) -> bool:
        contact_entity = contact_entity_for(gid.entity)
        if contact_entity is None or info.contact_id is None:
            logger.error("could not determine the contact of %s", gid)
            ctx.record_permission(gid, m.NO_PERMISSION)
            return True

        contact_gid = GlobalID.of(contact_entity, info.contact_id)
        contact_perms = ctx.permissions_for_object(contact_gid)
        if contact_perms is None:
            logger.debug("requesting contact permissions %s for %s", contact_gid, gid)
            ctx.register_dependency(gid, contact_gid)
            return False

        perms = self.permissions_for_contact_permissions(contact_perms, info)
        logger.debug("DONE: %s derived %r from %s", gid, m.to_string(perms), contact_gid)
        ctx.record_permission(gid, perms)
        return True

    def permissions_for_contact_permissions(self, contact_perms: m.Mask, info: SubobjectInfo) -> m.Mask:
        if not contact_perms:
            return m.NO_PERMISSION
        if "w" in contact_perms:
            return WRITE_PERMISSIONS
        if "r" in contact_perms:
            return READ_PERMISSIONS
        return self.classify(contact_perms, info)

    def classify(self, contact_perms: m.Mask, info: SubobjectInfo) -> m.Mask:
        return m.NO_PERMISSION


class AddressPermissionHandler(ContactOwnedPermissionHandler):
    name = "address"

    def classify(self, contact_perms: m.Mask, info: SubobjectInfo) -> m.Mask:
        return classify_address(contact_perms, info.type)


class PhoneNumberPermissionHandler(ContactOwnedPermissionHandler):
    name = "phone"

    def classify(self, contact_perms: m.Mask, info: SubobjectInfo) -> m.Mask:
        return classify_phone(contact_perms, info.type)


class EMailAddressPermissionHandler(ContactOwnedPermissionHandler):
    name = "email"

    def classify(self, contact_perms: m.Mask, info: SubobjectInfo) -> m.Mask:
        return classify_email(contact_perms, info.label)


# ---- Classifiers ---------------------------------------------------------------------


def classify_address(contact_perms: m.Mask, address_type: str | None) -> m.Mask:
    """
    Legacy types: bill, location, mailing, ship need 'b'; private needs 'p'.
    vCard types: HOME needs 'p', WORK needs 'b'.
    """

    if address_type is None:
        logger.warning("cannot classify address without a type")
        return m.NO_PERMISSION

    if address_type.startswith("V:"):
        vtype = address_type.upper()
        if "p" in contact_perms and "HOME" in vtype:
            return READ_PERMISSIONS
        if "b" in contact_perms and "WORK" in vtype:
            return READ_PERMISSIONS
        return m.NO_PERMISSION

    if "private" in address_type:
        return READ_PERMISSIONS if "p" in contact_perms else m.NO_PERMISSION
    return READ_PERMISSIONS if "b" in contact_perms else m.NO_PERMISSION


def classify_phone(contact_perms: m.Mask, phone_type: str | None) -> m.Mask:
    """
    Legacy types: *_funk and *_pager need 'M', *_private needs 'p', the rest
    (01_tel, 10_fax, 31_other1, ...) needs 'b'.
    vCard types: CELL, CAR, PAGER need 'M' (and are visible with just 'M'
    when not tagged HOME or WORK), WORK needs 'b', HOME needs 'p'.
    """

    if phone_type is None:
        logger.warning("cannot classify phone number without a type")
        return m.NO_PERMISSION

    if phone_type.startswith("V:"):
        vtype = phone_type.upper()
        has_work = "WORK" in vtype
        has_home = "HOME" in vtype

        if "CELL" in vtype or "CAR" in vtype or "PAGER" in vtype:
            if "M" not in contact_perms:
                return m.NO_PERMISSION
            if not has_work and not has_home:
                return READ_PERMISSIONS

        if "b" in contact_perms and has_work:
            return READ_PERMISSIONS
        if "p" in contact_perms and has_home:
            return READ_PERMISSIONS
        return m.NO_PERMISSION

    is_mobile = "_funk" in phone_type or "_pager" in phone_type
    if is_mobile and "M" not in contact_perms:
        return m.NO_PERMISSION
    if "_private" in phone_type:
        return READ_PERMISSIONS if "p" in contact_perms else m.NO_PERMISSION
    return READ_PERMISSIONS if "b" in contact_perms else m.NO_PERMISSION


def classify_email(contact_perms: m.Mask, label: str | None) -> m.Mask:
    """Labels are vCard lists like "WORK;PREF". Unlabeled addresses stay hidden."""

    if not label:
        return m.NO_PERMISSION
    label = label.upper()
    if "b" in contact_perms and "WORK" in label:
        return READ_PERMISSIONS
    if "p" in contact_perms and "HOME" in label:
        return READ_PERMISSIONS
    return m.NO_PERMISSION
