from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query

from groupware_authz.authz import mask as m
from groupware_authz.authz.context import AuthzFetchContext
from groupware_authz.authz.errors import AccessDeniedError
from groupware_authz.authz.gid import GlobalID
from groupware_authz.schemas.authz import (
    AccessDeniedOut,
    CheckResponse,
    ObjectPermissions,
    PermissionsRequest,
    PermissionsResponse,
)
from groupware_authz.security.context import Principal
from groupware_authz.security.dependencies import get_authz_context, get_principal

logger = logging.getLogger(__name__)

router = APIRouter(tags=["permissions"])


def _permissions_out(gid: GlobalID, resolved: dict[GlobalID, m.Mask]) -> ObjectPermissions:
    # Unresolved objects are reported without permissions.
    perms = resolved.get(gid)
    return ObjectPermissions(
        entity=gid.entity,
        key=gid.key,
        permissions=m.to_string(perms or m.NO_PERMISSION),
        resolved=perms is not None,
    )


@router.post("/permissions", response_model=PermissionsResponse)
def resolve_permissions(
    body: PermissionsRequest,
    principal: Principal = Depends(get_principal),
    ctx: AuthzFetchContext = Depends(get_authz_context),
) -> PermissionsResponse:
    gids = [GlobalID.of(ref.entity, ref.key) for ref in body.objects]
    resolved = ctx.resolve_permissions(gids)
    logger.info(
        "resolved permissions account=%s requested=%d resolved=%d",
        principal.account_id,
        len(gids),
        sum(1 for gid in gids if gid in resolved),
    )
    return PermissionsResponse(
        account_id=principal.account_id,
        authenticated_ids=sorted(principal.authenticated_ids),
        results=[_permissions_out(gid, resolved) for gid in gids],
    )


@router.get("/objects/{entity}/{key}/permissions", response_model=ObjectPermissions)
def object_permissions(
    entity: str,
    key: int,
    ctx: AuthzFetchContext = Depends(get_authz_context),
) -> ObjectPermissions:
    gid = GlobalID.of(entity, key)
    return _permissions_out(gid, ctx.resolve_permissions([gid]))


@router.get(
    "/objects/{entity}/{key}/check",
    response_model=CheckResponse,
    responses={403: {"model": AccessDeniedOut}},
)
def check_permissions(
    entity: str,
    key: int,
    required: str = Query(default="r", min_length=1, pattern="^[a-zA-Z]+$"),
    ctx: AuthzFetchContext = Depends(get_authz_context),
) -> CheckResponse:
    """403 (with the missing permissions) unless the caller holds all of ``required``."""

    gid = GlobalID.of(entity, key)
    available = ctx.ensure_permissions(gid, required)
    return CheckResponse(
        entity=entity,
        key=key,
        required=m.to_string(required),
        permissions=m.to_string(available),
    )
