"""
Authorization fetch context.

Resolves the permission masks of a batch of objects for one set of
authenticated principals. Handlers often need data they do not have yet
(the row of the object, its ACL, or the permissions of another object).
Instead of fetching one by one, they register what they need with the
context and return "pending". The context then:

    repeat (fetch iterations):
        repeat (scan iterations):
            let every pending handler try again with what is cached
            add the dependencies they asked for to the pending set
            stop scanning when a pass neither resolved nor requested anything
        stop if nothing is pending
        bulk fetch the required ACLs (plus the optional ones, if any
        ACL fetch happens anyway) and the requested rows, grouped by handler

Both loops are bounded. Objects which could not be resolved within the
budget are simply absent from the result; callers must treat them as
inaccessible.

A context is request scoped: it caches per-principal results and must not
be shared between requests.
"""

from __future__ import annotations

import logging
from typing import Any, Collection, Iterable, Mapping

from . import mask as m
from .acl import BulkACLFetcher
from .config import AuthzConfigModel, default_authz_config
from .errors import AccessDeniedError
from .gid import GlobalID
from .handlers.base import PermissionHandler
from .handlers.project import PROJECT_ENTITY
from .handlers.registry import HandlerRegistry, build_registry
from .store import AuthzStore, Row, StoreError

logger = logging.getLogger(__name__)


class AuthzFetchContext:
    def __init__(
        self,
        store: AuthzStore,
        authenticated_ids: Iterable[int],
        *,
        account_ids: Iterable[int] | None = None,
        registry: HandlerRegistry | None = None,
        config: AuthzConfigModel | None = None,
        objects: Mapping[GlobalID, Any] | None = None,
    ) -> None:
        """
        ``authenticated_ids`` are all principals we act as (account, teams);
        ``account_ids`` the subset which are accounts (defaults to all of them).
        ``objects`` are materialized objects the caller already holds.
        """

        self.store = store
        self.authenticated_ids = frozenset(authenticated_ids)
        self.account_ids = frozenset(account_ids) if account_ids is not None else self.authenticated_ids
        self.config = config or default_authz_config()
        self.registry = registry or build_registry(config)

        self.resolved: dict[GlobalID, m.Mask] = {}

        self._objects: dict[GlobalID, Any] = dict(objects or {})
        self._infos: dict[GlobalID, Row] = {}
        self._acl_masks: dict[GlobalID, m.Mask] = {}
        self._acl_present: dict[GlobalID, bool] = {}

        self._dependencies: set[GlobalID] = set()
        self._required_acls: set[GlobalID] = set()
        self._optional_acls: set[GlobalID] = set()
        self._info_requests: dict[PermissionHandler, set[GlobalID]] = {}

        self._fallback_handlers: dict[str, PermissionHandler | None] = {}
        self._acl_fetcher = BulkACLFetcher(store)

    def __repr__(self) -> str:
        return f"<AuthzFetchContext auth={sorted(self.authenticated_ids)} resolved=#{len(self.resolved)}>"

    # ---- Public API -----------------------------------------------------------------

    def resolve_permissions(self, gids: Iterable[Any]) -> dict[GlobalID, m.Mask]:
        """
        Resolve ``gids`` and return everything resolved so far (this includes
        the objects the requested ones depended on).
        """

        pending = {gid for gid in gids if self._is_valid_gid(gid)}
        if not pending:
            return dict(self.resolved)

        max_fetch_iterations = self.config.max_fetch_iterations
        for fetch_iteration in range(1, max_fetch_iterations + 1):
            logger.debug("authz fetch iteration %d, pending #%d", fetch_iteration, len(pending))
            pending = self._scan(pending)
            if not pending:
                break

            if self._required_acls:
                self._required_acls |= self._optional_acls
            self._optional_acls.clear()

            if not self._required_acls and not self._info_requests:
                logger.error("authz fetch is stuck, nothing to fetch for pending: %s", _describe(pending))
                break

            if self._required_acls:
                self._fetch_acls()
            if self._info_requests:
                self._fetch_infos()
        else:
            logger.error(
                "authz fetch gave up after %d iterations, unresolved: %s", max_fetch_iterations, _describe(pending)
            )

        return dict(self.resolved)

    def permissions_for_object(self, gid: GlobalID) -> m.Mask | None:
        """Cache lookup only, None if ``gid`` is not resolved (yet)."""
        return self.resolved.get(gid)

    def ensure_permissions(self, gid: GlobalID, requested: m.MaskLike) -> m.Mask:
        """Return the permissions of ``gid`` or raise AccessDeniedError if they do not cover ``requested``."""

        available = self.permissions_for_object(gid)
        if available is None:
            self.resolve_permissions([gid])
            available = self.resolved.get(gid, m.NO_PERMISSION)

        if not m.contains_all(available, requested):
            raise AccessDeniedError(gid, requested, available)
        return available

    # ---- Principals -----------------------------------------------------------------

    def has_principal(self, principal_id: int | None) -> bool:
        return principal_id is not None and principal_id in self.authenticated_ids

    def has_account(self, account_id: int | None) -> bool:
        return account_id is not None and account_id in self.account_ids

    # ---- Cache lookups used by handlers ---------------------------------------------

    def permissions_for(self, entity: str, key: int | None) -> m.Mask | None:
        if key is None:
            logger.error("permissions_for called without a key, entity: %s", entity)
            return None
        return self.resolved.get(GlobalID.of(entity, key))

    def has_read_access(self, entity: str, key: int | None) -> bool | None:
        """None if not known yet, else whether the object grants 'r'."""
        perms = self.permissions_for(entity, key)
        if perms is None:
            return None
        return "r" in perms

    def has_project_access(self, project_id: int | None) -> bool | None:
        """
        None if not known yet, else whether we have any access to the
        project. Objects without a project count as accessible.
        """

        if project_id is None:
            return True
        perms = self.permissions_for(PROJECT_ENTITY, project_id)
        if perms is None:
            return None
        return bool(perms)

    def acl_permissions(self, gid: GlobalID) -> m.Mask | None:
        """The unioned ACL of ``gid`` for our principals, None if not fetched."""
        return self._acl_masks.get(gid)

    def has_acl(self, gid: GlobalID) -> bool | None:
        return self._acl_present.get(gid)

    def object_acl_permissions(self, aces: Iterable[Any]) -> m.Mask:
        """Union the ACEs carried by a materialized object which name one of our principals."""

        perms: set[str] = set()
        for ace in aces:
            if not self.has_principal(getattr(ace, "principal_id", None)):
                continue
            perms.update(m.as_mask(getattr(ace, "permissions", None)))
        return frozenset(perms)

    # ---- Requests from handlers -----------------------------------------------------

    def request_info_fetch(self, handler: PermissionHandler, gid: GlobalID) -> None:
        if gid in self._infos:
            logger.debug("info of %s already fetched, ignoring request", gid)
            return
        self._info_requests.setdefault(handler, set()).add(gid)

    def register_dependency(self, gid: GlobalID, required_gid: GlobalID) -> None:
        if not self._is_valid_gid(required_gid):
            logger.error("%s depends on invalid object id %r", gid, required_gid)
            return
        self._dependencies.add(required_gid)

    def request_acl_fetch(self, handler: PermissionHandler, gid: GlobalID) -> None:
        if gid in self._acl_masks:
            return
        self._required_acls.add(gid)

    def consider_acl_fetch(self, handler: PermissionHandler, gid: GlobalID) -> None:
        if gid in self._acl_masks:
            return
        self._optional_acls.add(gid)

    def record_permission(self, gid: GlobalID, permissions: m.MaskLike) -> None:
        if gid in self.resolved:
            logger.debug("permissions of %s already recorded, ignoring %r", gid, permissions)
            return
        self.resolved[gid] = m.as_mask(permissions)

    # ---- Internals ------------------------------------------------------------------

    def handler_for(self, entity: str) -> PermissionHandler | None:
        handler = self.registry.handler_for(entity)
        if handler is not None:
            return handler
        if entity in self._fallback_handlers:
            return self._fallback_handlers[entity]

        if self.store.has_entity(entity):
            handler = self.registry.fallback
            logger.info("no permission handler for entity %s, using %r", entity, handler)
        else:
            logger.warning("unknown entity %s, objects get no permissions", entity)
            handler = None
        self._fallback_handlers[entity] = handler
        return handler

    def _object_for(self, gid: GlobalID) -> Any | None:
        obj = self._objects.get(gid)
        if obj is None:
            obj = self.store.materialized_object(gid)
        return obj

    def _scan(self, pending: set[GlobalID]) -> set[GlobalID]:
        for scan_iteration in range(1, self.config.max_scan_iterations + 1):
            resolved_this_pass: set[GlobalID] = set()

            for gid in list(pending):
                if gid in self.resolved:
                    resolved_this_pass.add(gid)
                    continue

                handler = self.handler_for(gid.entity)
                if handler is None:
                    self.record_permission(gid, m.NO_PERMISSION)
                    resolved_this_pass.add(gid)
                    continue

                info = handler.build_input(self._object_for(gid), self._infos.get(gid))
                if handler.process(self, gid, info):
                    resolved_this_pass.add(gid)

            newly_requested = self._dependencies - pending
            self._dependencies.clear()
            pending = (pending | newly_requested) - resolved_this_pass

            logger.debug(
                "  scan %d: resolved #%d, new dependencies #%d, pending #%d",
                scan_iteration,
                len(resolved_this_pass),
                len(newly_requested),
                len(pending),
            )
            if not resolved_this_pass and not newly_requested:
                break
        return pending

    def _fetch_acls(self) -> None:
        gids = set(self._required_acls)
        logger.debug("  fetch ACLs: #%d", len(gids))
        try:
            result = self._acl_fetcher.fetch(gids, self.authenticated_ids)
        except StoreError:
            logger.exception("bulk ACL fetch failed for #%d objects", len(gids))
            return

        self._acl_masks.update(result.masks)
        self._acl_present.update(result.present)
        self._required_acls.clear()

    def _fetch_infos(self) -> None:
        requests, self._info_requests = self._info_requests, {}

        for handler, gids in requests.items():
            batch = {gid for gid in gids if gid not in self.resolved and gid not in self._infos}
            if not batch:
                continue

            logger.debug("  fetch infos: %r #%d", handler, len(batch))
            try:
                infos = handler.fetch_infos(self, batch)
            except StoreError:
                logger.exception("info fetch of %r failed for #%d objects", handler, len(batch))
                continue
            if infos is None:
                logger.error("%r returned no infos for: %s", handler, _describe(batch))
                continue

            for gid in batch:
                row = infos.get(gid)
                if row is None:
                    if gid in self.resolved:
                        continue
                    row = {}
                self._infos[gid] = row

    @staticmethod
    def _is_valid_gid(gid: Any) -> bool:
        if not isinstance(gid, GlobalID):
            logger.error("cannot resolve permissions of %r, not a GlobalID", gid)
            return False
        if not gid.is_single_int_key:
            logger.error("cannot resolve permissions of %s, expected a single integer key", gid)
            return False
        return True


def resolve_permissions(
    gids: Iterable[Any],
    authenticated_ids: Iterable[int],
    store: AuthzStore,
    **kwargs: Any,
) -> dict[GlobalID, m.Mask]:
    """One-shot helper: resolve ``gids`` in a fresh context."""
    return AuthzFetchContext(store, authenticated_ids, **kwargs).resolve_permissions(gids)


def _describe(gids: Collection[GlobalID]) -> str:
    return ", ".join(sorted(str(gid) for gid in gids))
