"""
Bulk ACL fetch.

Fetches the explicit ACL entries (ACEs) of a batch of objects in one go and
compresses them into a single mask per object. Only ACEs naming one of the
authenticated principals contribute to the mask.

For objects where no ACE matched we also need to know whether the object
has an ACL *at all*:

- no ACL configured  -> the handler falls back to its public/default rule
- ACL exists, but does not list us -> hard denial for non-owners

This takes a second, count-style fetch restricted to those keys.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
import logging
from typing import Collection

from . import mask as m
from .gid import GlobalID
from .store import ACL_COUNT_FETCH, ACL_ENTITY, AUTHZ_FETCH, AuthzStore

logger = logging.getLogger(__name__)


@dataclass
class ACLFetchResult:
    masks: dict[GlobalID, m.Mask] = field(default_factory=dict)
    present: dict[GlobalID, bool] = field(default_factory=dict)


class BulkACLFetcher:
    def __init__(self, store: AuthzStore) -> None:
        self._store = store

    def fetch(self, gids: Collection[GlobalID], principal_ids: Collection[int]) -> ACLFetchResult:
        """
        Fetch and union the ACLs of ``gids`` for ``principal_ids``.

        Every GID passed in gets an entry in both result maps, even if no
        rows matched. Store errors propagate to the caller.
        """

        result = ACLFetchResult()
        if not gids:
            return result

        # Several GIDs may share a key (eg Persons<10> and Companies<10>).
        key_to_gids: dict[int, list[GlobalID]] = defaultdict(list)
        for gid in gids:
            result.masks[gid] = m.NO_PERMISSION
            result.present[gid] = False
            key_to_gids[gid.key].append(gid)

        unseen_keys = set(key_to_gids)
        collected: dict[int, set[str]] = defaultdict(set)

        rows = self._store.bulk_fetch(ACL_ENTITY, list(key_to_gids), list(principal_ids), fetch=AUTHZ_FETCH)
        for ace in rows:
            object_id = ace.get("object_id")
            perms = ace.get("permissions")
            if object_id is None or perms is None:
                logger.warning("Skipping ACE without object_id or permissions: %s", dict(ace))
                continue
            if object_id not in key_to_gids:
                logger.warning("Skipping ACE for unrequested object_id=%s", object_id)
                continue

            unseen_keys.discard(object_id)
            collected[object_id].update(m.as_mask(perms))

        if unseen_keys:
            logger.debug("ACL count fetch for #%d keys without matching ACEs", len(unseen_keys))
            counts = self._store.bulk_fetch(ACL_ENTITY, sorted(unseen_keys), fetch=ACL_COUNT_FETCH)
            for row in counts:
                object_id = row.get("object_id")
                if object_id in unseen_keys and (row.get("entry_count") or 0) > 0:
                    collected.setdefault(object_id, set())

        for key, chars in collected.items():
            for gid in key_to_gids[key]:
                result.masks[gid] = frozenset(chars)
                result.present[gid] = True

        return result
