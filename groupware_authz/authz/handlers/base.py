"""
Base contract for entity permission handlers.

A handler knows how to derive the permission mask of one entity kind. It is
invoked by the fetch context during the scan phase and either resolves the
permission (records it and returns True) or registers what it still needs
(dependency, raw info, ACL) and returns False.

Handlers never see the raw "materialized object vs. fetched row" split:
the context asks ``build_input`` to normalize both into one frozen info
object with optional fields, object attributes taking precedence.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, Any, ClassVar, Collection, Mapping

from sqlalchemy import inspect

from .. import mask as m
from ..gid import GlobalID
from ..store import AUTHZ_FETCH, Row

if TYPE_CHECKING:
    from ..context import AuthzFetchContext

logger = logging.getLogger(__name__)


def loaded_attribute(obj: Any | None, name: str) -> Any | None:
    """
    ``getattr`` which never triggers a lazy load: None for an attribute of an
    ORM instance which is not loaded yet.
    """

    if obj is None:
        return None
    state = inspect(obj, raiseerr=False)
    if state is not None and name in state.unloaded:
        return None
    return getattr(obj, name, None)


@dataclass(frozen=True)
class ObjectInfo:
    """Normalized handler input. ``missing`` means the row was not found."""

    missing: bool = False


class PermissionHandler:
    name: ClassVar[str] = "base"

    info_type: ClassVar[type[ObjectInfo]] = ObjectInfo

    # info field -> (object attribute, raw row column)
    fields: ClassVar[Mapping[str, tuple[str, str]]] = {}

    # Hint the context to fetch our ACL together with required ones.
    consider_acl_on_fetch: ClassVar[bool] = False

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"

    # ---- Input normalization --------------------------------------------------------

    def build_input(self, obj: Any | None, row: Row | None) -> ObjectInfo | None:
        if obj is None and row is None:
            return None
        if row is not None and not row:
            # fetched, but the store has no such row
            return self.info_type(missing=True)

        values: dict[str, Any] = {}
        for name, (attribute, column) in self.fields.items():
            value = getattr(obj, attribute, None) if obj is not None else None
            if value is None and row:
                value = row.get(column)
            values[name] = value
        values.update(self.extra_input(obj, row))
        return self.info_type(**values)

    def extra_input(self, obj: Any | None, row: Row | None) -> dict[str, Any]:
        """Hook for inputs which are not a plain attribute/column pair."""
        return {}

    # ---- Scan phase -----------------------------------------------------------------

    def process(self, ctx: AuthzFetchContext, gid: GlobalID, info: ObjectInfo | None) -> bool:
        if info is None:
            logger.debug("process %s w/o object/info, requesting fetch", gid)
            ctx.request_info_fetch(self, gid)
            if self.consider_acl_on_fetch:
                ctx.consider_acl_fetch(self, gid)
            return False

        if info.missing:
            logger.debug("DONE: %s not found in store, no permission", gid)
            ctx.record_permission(gid, m.NO_PERMISSION)
            return True

        return self.evaluate(ctx, gid, info)

    def evaluate(self, ctx: AuthzFetchContext, gid: GlobalID, info: Any) -> bool:
        raise NotImplementedError

    # ---- Fetch phase ----------------------------------------------------------------

    def fetch_infos(self, ctx: AuthzFetchContext, gids: Collection[GlobalID]) -> dict[GlobalID, Row] | None:
        """
        Bulk fetch the raw rows needed by ``evaluate``.

        GIDs are grouped by entity, one named "authz" fetch per entity. Rows
        which ``resolve_inline`` could already classify are not returned.
        """

        if not gids:
            return None

        by_entity: dict[str, dict[Any, list[GlobalID]]] = defaultdict(lambda: defaultdict(list))
        for gid in gids:
            by_entity[gid.entity][gid.key].append(gid)

        infos: dict[GlobalID, Row] = {}
        for entity, key_to_gids in by_entity.items():
            rows = ctx.store.bulk_fetch(entity, list(key_to_gids), ctx.authenticated_ids, fetch=AUTHZ_FETCH)
            for row in rows:
                for gid in key_to_gids.get(row.get("id"), ()):
                    if self.resolve_inline(ctx, gid, row):
                        continue
                    infos[gid] = row
        return infos

    def resolve_inline(self, ctx: AuthzFetchContext, gid: GlobalID, row: Row) -> bool:
        """Optionally record a permission straight from the fetched row."""
        return False
