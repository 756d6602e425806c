"""Tests for the bulk ACL fetch (mask union + presence)."""
from __future__ import annotations

import pytest

from groupware_authz.authz.acl import BulkACLFetcher
from groupware_authz.authz.gid import GlobalID
from groupware_authz.authz.store import StoreError

from memory_store import ALICE, BOB, CAROL, DEV_TEAM


def test_unions_entries_of_our_principals(store):
    store.add_ace(10, ALICE, "r")
    store.add_ace(10, DEV_TEAM, "wl")
    store.add_ace(10, CAROL, "d")
    gid = GlobalID.of("Persons", 10)

    result = BulkACLFetcher(store).fetch([gid], {ALICE, DEV_TEAM})

    assert result.masks[gid] == {"r", "w", "l"}
    assert result.present[gid] is True


def test_distinguishes_missing_acl_from_acl_excluding_us(store):
    store.add_ace(11, CAROL, "r")
    excluded = GlobalID.of("Companies", 11)
    no_acl = GlobalID.of("Companies", 12)

    result = BulkACLFetcher(store).fetch([excluded, no_acl], {ALICE})

    assert result.masks[excluded] == frozenset()
    assert result.present[excluded] is True
    assert result.masks[no_acl] == frozenset()
    assert result.present[no_acl] is False


def test_count_fetch_only_for_keys_without_matching_entries(store):
    store.add_ace(10, ALICE, "r")
    store.add_ace(11, CAROL, "r")
    gids = [GlobalID.of("Persons", key) for key in (10, 11, 12)]

    BulkACLFetcher(store).fetch(gids, {ALICE})

    assert store.fetches("ACLEntries", "authz") == [(10, 11, 12)]
    assert store.fetches("ACLEntries", "authz_count") == [(11, 12)]


def test_gids_sharing_a_key_get_the_same_entry(store):
    store.add_ace(20, BOB, "rw")
    person = GlobalID.of("Persons", 20)
    company = GlobalID.of("Companies", 20)

    result = BulkACLFetcher(store).fetch([person, company], {BOB})

    assert result.masks[person] == result.masks[company] == {"r", "w"}
    assert result.present[person] and result.present[company]
    assert store.fetches("ACLEntries", "authz") == [(20,)]


def test_skips_entries_without_permissions(store, caplog):
    store.add_ace(13, ALICE, None)
    gid = GlobalID.of("Documents", 13)

    result = BulkACLFetcher(store).fetch([gid], {ALICE})

    assert "Skipping ACE without object_id or permissions" in caplog.text
    # the entry still exists, so the object has an ACL
    assert result.masks[gid] == frozenset()
    assert result.present[gid] is True


def test_empty_input_does_not_hit_the_store(store):
    result = BulkACLFetcher(store).fetch([], {ALICE})
    assert result.masks == {} and result.present == {}
    assert store.calls == []


def test_store_errors_propagate(store):
    store.fail("ACLEntries")
    with pytest.raises(StoreError):
        BulkACLFetcher(store).fetch([GlobalID.of("Persons", 10)], {ALICE})
