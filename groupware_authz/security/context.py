from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Principal:
    """
    The authenticated caller of a request.

    ``authenticated_ids`` holds the account id plus the ids of all teams the
    account is a member of; permissions granted to any of them apply.
    """

    account_id: int
    authenticated_ids: frozenset[int]
