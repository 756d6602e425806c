from groupware_authz.models.acl import ACLEntry
from groupware_authz.models.contacts import Address, Contact, ContactComment, EMailAddress, PhoneNumber, TeamMembership
from groupware_authz.models.documents import Document, Event
from groupware_authz.models.projects import Project, ProjectAssignment, Task

__all__ = [
    "ACLEntry",
    "Address",
    "Contact",
    "ContactComment",
    "Document",
    "EMailAddress",
    "Event",
    "PhoneNumber",
    "Project",
    "ProjectAssignment",
    "Task",
    "TeamMembership",
]
