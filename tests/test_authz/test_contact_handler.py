"""Tests for contact permissions (persons, companies, teams, accounts)."""
from __future__ import annotations

from types import SimpleNamespace

from groupware_authz.authz import mask as m
from groupware_authz.authz.context import AuthzFetchContext
from groupware_authz.authz.gid import GlobalID
from groupware_authz.authz.handlers.contact import OWNER_PERMISSIONS, R_PERMISSIONS, W_PERMISSIONS

from memory_store import ALICE, BOB, CAROL, DEV_TEAM


def _resolve(store, gid, *auth_ids, account_ids=None, **kwargs):
    ctx = AuthzFetchContext(store, auth_ids, account_ids=account_ids, **kwargs)
    return ctx.resolve_permissions([gid])


def test_owner_gets_owner_mask_regardless_of_acl(store):
    store.add("contacts", 100, owner_id=ALICE, is_private=True, is_readonly=True)
    store.add_ace(100, ALICE, "l")
    gid = GlobalID.of("Persons", 100)

    result = _resolve(store, gid, ALICE)

    assert result[gid] == OWNER_PERMISSIONS
    assert {"r", "w"} <= result[gid]
    # ownership is detected while fetching, no ACL round trip needed
    assert store.fetches("ACLEntries") == []


def test_public_contact_grants_read_write(store):
    store.add("contacts", 101, owner_id=ALICE, is_private=False, is_readonly=False)
    gid = GlobalID.of("Companies", 101)

    result = _resolve(store, gid, BOB)

    assert result[gid] == m.union("rw", W_PERMISSIONS)
    assert store.fetches("ACLEntries") == []


def test_public_readonly_contact_grants_read(store):
    store.add("contacts", 102, owner_id=ALICE, is_private=False, is_readonly=True)
    gid = GlobalID.of("Companies", 102)

    assert _resolve(store, gid, BOB)[gid] == R_PERMISSIONS


def test_private_contact_without_acl_is_hidden(store):
    store.add("contacts", 103, owner_id=ALICE, is_private=True)
    gid = GlobalID.of("Persons", 103)

    assert _resolve(store, gid, BOB)[gid] == m.NO_PERMISSION


def test_private_contact_with_acl_excluding_us_is_hidden(store):
    store.add("contacts", 104, owner_id=ALICE, is_private=True)
    store.add_ace(104, CAROL, "rw")
    gid = GlobalID.of("Persons", 104)

    assert _resolve(store, gid, BOB)[gid] == m.NO_PERMISSION


def test_private_contact_acl_via_team(store):
    store.add("contacts", 105, owner_id=ALICE, is_private=True)
    store.add_ace(105, DEV_TEAM, "w")
    gid = GlobalID.of("Persons", 105)

    result = _resolve(store, gid, BOB, DEV_TEAM, account_ids={BOB})

    assert result[gid] == m.union("w", W_PERMISSIONS)
    assert "r" in result[gid]


def test_primary_contact_gets_read(store):
    store.add("contacts", 106, owner_id=ALICE, contact_id=BOB, is_private=True)
    gid = GlobalID.of("Companies", 106)

    assert _resolve(store, gid, BOB)[gid] == R_PERMISSIONS


def test_account_sees_its_own_contact_record(store):
    store.add("contacts", BOB, owner_id=ALICE, is_private=True)
    store.add_ace(BOB, CAROL, "rw")
    gid = GlobalID.of("Accounts", BOB)

    assert _resolve(store, gid, BOB)[gid] == R_PERMISSIONS


def test_team_membership_does_not_count_as_account(store):
    store.add("contacts", 107, owner_id=DEV_TEAM, is_private=True)
    gid = GlobalID.of("Persons", 107)

    result = _resolve(store, gid, BOB, DEV_TEAM, account_ids={BOB})

    assert result[gid] == m.NO_PERMISSION


def test_acl_carried_by_materialized_contact(store):
    gid = GlobalID.of("Persons", 108)
    obj = SimpleNamespace(
        owner_id=ALICE,
        contact_id=None,
        is_private=True,
        is_readonly=False,
        acl_entries=[
            SimpleNamespace(principal_id=BOB, permissions="rw"),
            SimpleNamespace(principal_id=CAROL, permissions="d"),
        ],
    )

    result = _resolve(store, gid, BOB, objects={gid: obj})

    assert result[gid] == m.union("rw", W_PERMISSIONS)
    assert store.calls == []


def test_missing_contact_gets_no_permission(store):
    gid = GlobalID.of("Persons", 109)
    assert _resolve(store, gid, ALICE)[gid] == m.NO_PERMISSION
