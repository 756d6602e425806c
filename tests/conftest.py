"""
Pytest fixtures for the test suite.

Data-layer tests use an in-memory SQLite engine and a session that rolls back
after each test, so tests do not affect each other.
"""
from __future__ import annotations

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker


TEST_DB_URL = "sqlite:///:memory:"


@pytest.fixture
def engine():
    """Create a fresh in-memory SQLite engine for each test."""
    return create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        echo=False,
    )


@pytest.fixture
def tables(engine):
    """Create all ORM tables on the test engine."""
    from groupware_authz.db.base import Base
    import groupware_authz.models  # noqa: F401  (register mappers)

    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture
def db_session(tables):
    """
    Provide a Session bound to the test DB; roll back after each test.

    The transaction is rolled back so the next test gets a clean state.
    """
    connection = tables.connect()
    transaction = connection.begin()
    TestSession = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        class_=Session,
    )
    session = TestSession()
    yield session
    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def seeded_session(db_session):
    """
    db_session with a small groupware data set:

    - accounts 1000 (alice), 1010 (bob, member of team 1100), 1020 (carol)
    - contacts 2000 (public), 2001 (private, ACL: bob 'r'), 2002 (private, no ACL)
    - project 3000 (owner alice, bob may read), task 3100, document 3200 with ACL bob 'rw'
    """
    from groupware_authz.models import (
        ACLEntry,
        Contact,
        Document,
        PhoneNumber,
        Project,
        ProjectAssignment,
        Task,
        TeamMembership,
    )

    db_session.add_all(
        [
            Contact(id=1000, kind="person", name="Alice", is_account=True, owner_id=1000),
            Contact(id=1010, kind="person", name="Bob", is_account=True, owner_id=1010),
            Contact(id=1020, kind="person", name="Carol", is_account=True, owner_id=1020),
            Contact(id=1030, kind="person", name="Not An Account", owner_id=1000),
            Contact(id=1100, kind="team", name="Developers", owner_id=1000),
            Contact(id=2000, kind="company", name="Acme", owner_id=1000),
            Contact(id=2001, kind="company", name="Hidden", owner_id=1000, is_private=True),
            Contact(id=2002, kind="person", name="Secret", owner_id=1000, is_private=True),
        ]
    )
    db_session.add_all(
        [
            TeamMembership(id=1110, team_id=1100, member_id=1010),
            PhoneNumber(id=2100, contact_id=2000, type="01_tel", number="555-0100"),
            ACLEntry(id=2900, object_id=2001, principal_id=1010, permissions="r"),
            Project(id=3000, name="Apollo", owner_id=1000, team_id=None),
        ]
    )
    db_session.flush()
    db_session.add_all(
        [
            ProjectAssignment(id=3010, project_id=3000, company_id=1010, has_access=True, access_right="r"),
            Task(id=3100, title="Launch", creator_id=1000, owner_id=1100, project_id=3000),
            Document(id=3200, kind="document", title="Plan", project_id=3000, owner_id=1000),
            ACLEntry(id=3290, object_id=3200, principal_id=1010, permissions="rw"),
        ]
    )
    db_session.flush()
    return db_session
