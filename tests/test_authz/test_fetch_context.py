"""Tests for the fixed-point loop of the fetch context."""
from __future__ import annotations

import logging

import pytest

from groupware_authz.authz import mask as m
from groupware_authz.authz.config import AuthzConfigModel
from groupware_authz.authz.context import AuthzFetchContext, resolve_permissions
from groupware_authz.authz.errors import AccessDeniedError
from groupware_authz.authz.gid import GlobalID
from groupware_authz.authz.handlers import DEFAULT_ENTITY_HANDLERS, HandlerRegistry, PermissionHandler
from groupware_authz.authz.handlers.generic import GenericPermissionHandler

from memory_store import ALICE, BOB, CAROL


class ChainHandler(PermissionHandler):
    """Never resolves, always asks for the next object in the chain."""

    name = "chain"

    def __init__(self):
        self.calls = 0

    def process(self, ctx, gid, info):
        self.calls += 1
        ctx.register_dependency(gid, GlobalID.of(gid.entity, gid.key + 1))
        return False


class MutualHandler(PermissionHandler):
    """A needs B, B needs A."""

    name = "mutual"

    def __init__(self):
        self.calls = 0

    def process(self, ctx, gid, info):
        self.calls += 1
        other = GlobalID.of(gid.entity, 2 if gid.key == 1 else 1)
        if ctx.permissions_for_object(other) is None:
            ctx.register_dependency(gid, other)
            return False
        ctx.record_permission(gid, "r")
        return True


class RefetchHandler(PermissionHandler):
    """Asks for its info every time, but the fetch never delivers."""

    name = "refetch"

    def __init__(self):
        self.fetches = 0

    def process(self, ctx, gid, info):
        ctx.request_info_fetch(self, gid)
        return False

    def fetch_infos(self, ctx, gids):
        self.fetches += 1
        return None


def _registry(**handlers):
    return HandlerRegistry({**DEFAULT_ENTITY_HANDLERS, **handlers}, GenericPermissionHandler())


def _private_contact(store, id, owner_id=ALICE):
    store.add("contacts", id, owner_id=owner_id, contact_id=None, is_private=True, is_readonly=False)


def test_record_permission_is_write_once(store):
    ctx = AuthzFetchContext(store, {BOB})
    gid = GlobalID.of("Persons", 1)

    ctx.record_permission(gid, "r")
    ctx.record_permission(gid, "rw")

    assert ctx.permissions_for_object(gid) == {"r"}


def test_resolution_is_monotonic_across_runs(store):
    _private_contact(store, 100)
    store.add_ace(100, BOB, "r")
    ctx = AuthzFetchContext(store, {BOB})
    gid = GlobalID.of("Persons", 100)

    first = ctx.resolve_permissions([gid])
    store.add_ace(100, BOB, "w")
    second = ctx.resolve_permissions([gid])

    assert first[gid] == second[gid]


def test_fetched_acls_are_not_fetched_again(store):
    _private_contact(store, 100)
    ctx = AuthzFetchContext(store, {BOB})
    person = GlobalID.of("Persons", 100)
    company = GlobalID.of("Companies", 100)

    ctx.resolve_permissions([person, company])
    calls = list(store.calls)
    ctx.request_acl_fetch(None, person)
    ctx.consider_acl_fetch(None, company)
    ctx.resolve_permissions([person, company])

    assert len(store.fetches("ACLEntries")) == 1
    assert store.calls == calls
    assert ctx._required_acls == set()
    assert ctx._optional_acls == set()


def test_optional_acls_ride_along_with_required_ones(store):
    _private_contact(store, 100)
    store.add("projects", 300, owner_id=ALICE, team_id=None)
    store.add("documents", 500, project_id=300, contact_id=None, event_id=None, parent_id=None, owner_id=ALICE)
    contact = GlobalID.of("Persons", 100)
    document = GlobalID.of("Documents", 500)

    AuthzFetchContext(store, {BOB}).resolve_permissions([contact, document])

    assert store.fetches("ACLEntries")[0] == (100, 500)


def test_optional_acls_alone_are_not_fetched(store):
    store.add("contacts", 101, owner_id=ALICE, is_private=False, is_readonly=False)

    AuthzFetchContext(store, {BOB}).resolve_permissions([GlobalID.of("Persons", 101)])

    assert store.fetches("ACLEntries") == []


def test_inner_loop_is_bounded(store, caplog):
    chain = ChainHandler()
    config = AuthzConfigModel(max_scan_iterations=4)
    ctx = AuthzFetchContext(store, {BOB}, config=config, registry=_registry(Chain=chain))

    result = ctx.resolve_permissions([GlobalID.of("Chain", 1)])

    assert result == {}
    # 1 + 2 + 3 + 4 objects processed in four scans
    assert chain.calls == 10
    assert "authz fetch is stuck" in caplog.text


def test_mutual_dependency_terminates(store, caplog):
    mutual = MutualHandler()
    config = AuthzConfigModel()
    ctx = AuthzFetchContext(store, {BOB}, config=config, registry=_registry(Mutual=mutual))
    a, b = GlobalID.of("Mutual", 1), GlobalID.of("Mutual", 2)

    result = ctx.resolve_permissions([a])

    assert a not in result and b not in result
    # a, then a and b once more; the second scan neither resolves nor adds anything
    assert mutual.calls == 3
    assert "authz fetch is stuck" in caplog.text


def test_outer_loop_is_bounded(store, caplog):
    refetch = RefetchHandler()
    config = AuthzConfigModel(max_fetch_iterations=3)
    ctx = AuthzFetchContext(store, {BOB}, config=config, registry=_registry(Refetch=refetch))

    result = ctx.resolve_permissions([GlobalID.of("Refetch", 1)])

    assert result == {}
    assert refetch.fetches == 3
    assert "returned no infos" in caplog.text
    assert "gave up after 3 iterations" in caplog.text


def test_acl_store_error_is_contained(store, caplog):
    _private_contact(store, 100)
    store.add("contacts", 101, owner_id=ALICE, is_private=False, is_readonly=False)
    store.fail("ACLEntries")
    hidden = GlobalID.of("Persons", 100)
    public = GlobalID.of("Persons", 101)

    result = AuthzFetchContext(store, {BOB}).resolve_permissions([hidden, public])

    assert hidden not in result
    assert "r" in result[public]
    assert "bulk ACL fetch failed" in caplog.text
    # retried on every remaining iteration
    assert len(store.fetches("ACLEntries")) == 9


def test_info_store_error_is_contained(store, caplog):
    store.add("contacts", 101, owner_id=ALICE, is_private=False, is_readonly=False)
    store.fail("Tasks")
    task = GlobalID.of("Tasks", 400)
    public = GlobalID.of("Persons", 101)

    result = AuthzFetchContext(store, {BOB}).resolve_permissions([task, public])

    assert task not in result
    assert public in result
    assert "info fetch of" in caplog.text


def test_malformed_ids_are_skipped(store, caplog):
    store.add("contacts", 101, owner_id=ALICE, is_private=False, is_readonly=False)
    good = GlobalID.of("Persons", 101)
    bad = ["Persons:101", GlobalID.of("Persons", "101"), GlobalID("Links", (1, 2))]

    result = AuthzFetchContext(store, {BOB}).resolve_permissions([*bad, good])

    assert list(result) == [good]
    assert caplog.text.count("cannot resolve permissions of") == 3


def test_entity_unknown_to_the_store_gets_nothing(store, caplog):
    gid = GlobalID.of("Spaceships", 1)

    result = AuthzFetchContext(store, {BOB}).resolve_permissions([gid])

    assert result[gid] == m.NO_PERMISSION
    assert "unknown entity Spaceships" in caplog.text


@pytest.mark.parametrize("policy, expected", [("allow", frozenset("dirw")), ("deny", m.NO_PERMISSION)])
def test_entity_without_handler_uses_fallback(store, caplog, policy, expected):
    caplog.set_level(logging.INFO, logger="groupware_authz")
    config = AuthzConfigModel(unknown_entity_policy=policy)
    gids = [GlobalID.of("Events", 700), GlobalID.of("Events", 701)]

    result = AuthzFetchContext(store, {BOB}, config=config).resolve_permissions(gids)

    assert result[gids[0]] == result[gids[1]] == expected
    assert store.has_entity_calls["Events"] == 1
    assert "no permission handler for entity Events" in caplog.text


def test_public_objects_get_all_permissions(store):
    gid = GlobalID.of("ACLEntries", 900)

    result = AuthzFetchContext(store, {BOB}).resolve_permissions([gid])

    assert result[gid] == m.ALL_PERMISSIONS
    assert store.calls == []


def test_ensure_permissions(store):
    store.add("contacts", 102, owner_id=ALICE, is_private=False, is_readonly=True)
    ctx = AuthzFetchContext(store, {BOB})
    gid = GlobalID.of("Companies", 102)

    assert "r" in ctx.ensure_permissions(gid, "r")

    with pytest.raises(AccessDeniedError) as exc_info:
        ctx.ensure_permissions(gid, "rw")

    err = exc_info.value
    assert err.http_status == 403
    assert err.gid == gid
    assert err.missing == {"w"}
    assert err.to_dict()["missing"] == "w"


def test_ensure_permissions_on_unresolvable_object(store):
    ctx = AuthzFetchContext(store, {BOB})

    with pytest.raises(AccessDeniedError) as exc_info:
        ctx.ensure_permissions(GlobalID.of("Spaceships", 1), "r")

    assert exc_info.value.available == m.NO_PERMISSION


def test_helpers(store):
    ctx = AuthzFetchContext(store, {BOB, 1100}, account_ids={BOB})
    ctx.record_permission(GlobalID.of("Projects", 300), "")
    ctx.record_permission(GlobalID.of("Projects", 301), "l")
    ctx.record_permission(GlobalID.of("Persons", 10), "lr")

    assert ctx.has_principal(1100) and not ctx.has_account(1100)
    assert not ctx.has_principal(None)
    assert ctx.has_project_access(None) is True
    assert ctx.has_project_access(300) is False
    assert ctx.has_project_access(301) is True
    assert ctx.has_project_access(302) is None
    assert ctx.has_read_access("Persons", 10) is True
    assert ctx.has_read_access("Companies", 10) is None
    assert ctx.permissions_for("Persons", None) is None


def test_module_level_resolve_permissions(store):
    store.add("contacts", 101, owner_id=CAROL, is_private=False, is_readonly=False)
    gid = GlobalID.of("Persons", 101)

    result = resolve_permissions([gid], {CAROL}, store)

    assert "w" in result[gid]
