from __future__ import annotations

from types import MappingProxyType
from typing import TYPE_CHECKING, Mapping

from .. import mask as m
from .base import PermissionHandler
from .contact import ContactPermissionHandler
from .contact_owned import (
    AddressPermissionHandler,
    ContactOwnedPermissionHandler,
    EMailAddressPermissionHandler,
    PhoneNumberPermissionHandler,
)
from .document import DocumentPermissionHandler
from .generic import DEFAULT_GENERIC_PERMISSIONS, GenericPermissionHandler, PublicObjectPermissionHandler
from .project import ProjectPermissionHandler
from .project_owned import ProjectOwnedPermissionHandler
from .task import TaskPermissionHandler

if TYPE_CHECKING:
    from ..config import AuthzConfigModel

CONTACT_HANDLER = ContactPermissionHandler()
ADDRESS_HANDLER = AddressPermissionHandler()
PHONE_HANDLER = PhoneNumberPermissionHandler()
EMAIL_HANDLER = EMailAddressPermissionHandler()
CONTACT_COMMENT_HANDLER = ContactOwnedPermissionHandler()
PROJECT_HANDLER = ProjectPermissionHandler()
PROJECT_OWNED_HANDLER = ProjectOwnedPermissionHandler()
TASK_HANDLER = TaskPermissionHandler()
DOCUMENT_HANDLER = DocumentPermissionHandler()
PUBLIC_HANDLER = PublicObjectPermissionHandler()

HANDLERS_BY_NAME: Mapping[str, PermissionHandler] = MappingProxyType(
    {
        handler.name: handler
        for handler in (
            CONTACT_HANDLER,
            ADDRESS_HANDLER,
            PHONE_HANDLER,
            EMAIL_HANDLER,
            CONTACT_COMMENT_HANDLER,
            PROJECT_HANDLER,
            PROJECT_OWNED_HANDLER,
            TASK_HANDLER,
            DOCUMENT_HANDLER,
            PUBLIC_HANDLER,
        )
    }
)

DEFAULT_ENTITY_HANDLERS: Mapping[str, PermissionHandler] = MappingProxyType(
    {
        "Persons": CONTACT_HANDLER,
        "Accounts": CONTACT_HANDLER,
        "Teams": CONTACT_HANDLER,
        "Companies": CONTACT_HANDLER,
        "PersonPhones": PHONE_HANDLER,
        "CompanyPhones": PHONE_HANDLER,
        "PersonEMails": EMAIL_HANDLER,
        "CompanyEMails": EMAIL_HANDLER,
        "PersonAddresses": ADDRESS_HANDLER,
        "CompanyAddresses": ADDRESS_HANDLER,
        "PersonComments": CONTACT_COMMENT_HANDLER,
        "CompanyComments": CONTACT_COMMENT_HANDLER,
        "TeamComments": CONTACT_COMMENT_HANDLER,
        "Projects": PROJECT_HANDLER,
        "ProjectPersons": PROJECT_OWNED_HANDLER,
        "ProjectTeams": PROJECT_OWNED_HANDLER,
        "ProjectCompanies": PROJECT_OWNED_HANDLER,
        "ProjectsToCompany": PROJECT_OWNED_HANDLER,
        "Tasks": TASK_HANDLER,
        "Documents": DOCUMENT_HANDLER,
        "Notes": DOCUMENT_HANDLER,
        "ACLEntries": PUBLIC_HANDLER,
        "TeamMemberships": PUBLIC_HANDLER,
        "Employments": PUBLIC_HANDLER,
    }
)


class HandlerRegistry:
    """Immutable entity name -> handler table plus the fallback handler."""

    def __init__(self, handlers: Mapping[str, PermissionHandler], fallback: PermissionHandler) -> None:
        self._handlers = MappingProxyType(dict(handlers))
        self.fallback = fallback

    @property
    def handlers(self) -> Mapping[str, PermissionHandler]:
        return self._handlers

    def handler_for(self, entity: str) -> PermissionHandler | None:
        return self._handlers.get(entity)

    def __contains__(self, entity: object) -> bool:
        return entity in self._handlers


def fallback_handler(policy: str) -> GenericPermissionHandler:
    if policy == "deny":
        return GenericPermissionHandler(m.NO_PERMISSION)
    return GenericPermissionHandler(DEFAULT_GENERIC_PERMISSIONS)


DEFAULT_REGISTRY = HandlerRegistry(DEFAULT_ENTITY_HANDLERS, fallback_handler("allow"))


def build_registry(config: AuthzConfigModel | None = None) -> HandlerRegistry:
    """
    Build the registry for ``config``: the default table, extended or
    overridden by ``config.entities`` (entity -> handler name).
    """

    if config is None:
        return DEFAULT_REGISTRY

    handlers = dict(DEFAULT_ENTITY_HANDLERS)
    for entity, handler_name in config.entities.items():
        handler = HANDLERS_BY_NAME.get(handler_name)
        if handler is None:
            raise ValueError(f"Unknown permission handler {handler_name!r} for entity {entity!r}")
        handlers[entity] = handler
    return HandlerRegistry(handlers, fallback_handler(config.unknown_entity_policy))
