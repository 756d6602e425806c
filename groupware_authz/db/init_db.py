from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from groupware_authz.db.base import Base
from groupware_authz.db.session import SessionLocal, engine
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

# Accounts of the demo data, usable as bearer tokens.
ALICE_ID = 10000
BOB_ID = 10010
CAROL_ID = 10020
DEV_TEAM_ID = 10100


def init_db() -> None:
    """
    Create tables + seed demo data.

    Primary keys are assigned explicitly from one range so that they are
    unique across all tables, which is what the ACL table relies on.
    """

    Base.metadata.create_all(bind=engine)

    with SessionLocal() as db:
        if _has_seed_data(db):
            return
        _seed(db)


def _has_seed_data(db: Session) -> bool:
    return db.execute(select(Contact.id).limit(1)).first() is not None


def _seed(db: Session) -> None:
    # Accounts and teams
    db.add_all(
        [
            Contact(id=ALICE_ID, kind="person", name="Alice Admin", is_account=True, owner_id=ALICE_ID),
            Contact(id=BOB_ID, kind="person", name="Bob Builder", is_account=True, owner_id=BOB_ID),
            Contact(id=CAROL_ID, kind="person", name="Carol Contractor", is_account=True, owner_id=CAROL_ID),
            Contact(id=DEV_TEAM_ID, kind="team", name="Developers", owner_id=ALICE_ID),
        ]
    )
    db.add(TeamMembership(id=10110, team_id=DEV_TEAM_ID, member_id=BOB_ID))

    # Contacts
    db.add_all(
        [
            Contact(id=10200, kind="company", name="Acme Corp", owner_id=ALICE_ID),
            Contact(id=10210, kind="company", name="Private Holdings", owner_id=ALICE_ID, is_private=True),
            Contact(id=10220, kind="company", name="Read Only Inc", owner_id=ALICE_ID, is_readonly=True),
            Contact(id=10300, kind="person", name="Dave Private", owner_id=ALICE_ID, contact_id=CAROL_ID, is_private=True),
        ]
    )
    db.add_all(
        [
            PhoneNumber(id=10400, contact_id=10200, type="01_tel", number="+1 555 0100"),
            PhoneNumber(id=10401, contact_id=10200, type="V:CELL", number="+1 555 0101"),
            EMailAddress(id=10410, contact_id=10300, label="WORK;PREF", address="dave@example.com"),
            Address(id=10420, contact_id=10210, type="private", street="1 Hidden Lane", city="Springfield"),
            ContactComment(id=10430, contact_id=10210, body="Key account, handle with care."),
        ]
    )
    # Bob may read the private company; the private person has no ACL at all.
    db.add(ACLEntry(id=10900, object_id=10210, principal_id=BOB_ID, permissions="r"))
    db.flush()

    # Projects and tasks
    db.add(Project(id=10500, name="Apollo", owner_id=ALICE_ID, team_id=DEV_TEAM_ID))
    db.flush()
    db.add_all(
        [
            ProjectAssignment(id=10510, project_id=10500, company_id=CAROL_ID, has_access=True, access_right="rw"),
            ProjectAssignment(id=10511, project_id=10500, company_id=10200, has_access=False),
        ]
    )
    db.add_all(
        [
            Task(id=10600, title="Write the launch plan", creator_id=ALICE_ID, owner_id=DEV_TEAM_ID, project_id=10500),
            Task(id=10601, title="Private errand", creator_id=ALICE_ID, owner_id=ALICE_ID),
        ]
    )

    # Documents, notes and an appointment
    db.add(Event(id=10800, title="Kickoff meeting", owner_id=ALICE_ID))
    db.add_all(
        [
            Document(id=10700, kind="folder", title="Apollo", project_id=10500, owner_id=ALICE_ID),
            Document(id=10701, kind="document", title="Plan.txt", project_id=10500, parent_id=10700, owner_id=ALICE_ID),
            Document(id=10702, kind="note", title="Kickoff notes", event_id=10800, owner_id=ALICE_ID),
            Document(id=10703, kind="note", title="About Dave", contact_id=10300, owner_id=ALICE_ID),
        ]
    )

    db.commit()
