from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from groupware_authz.authz.config import AuthzConfigModel
from groupware_authz.authz.context import AuthzFetchContext
from groupware_authz.authz.handlers import HandlerRegistry, build_registry
from groupware_authz.authz.store import StoreError
from groupware_authz.db.authz_store import SqlAuthzStore
from groupware_authz.db.session import get_db
from groupware_authz.security.auth import extract_account_id, load_account
from groupware_authz.security.context import Principal


def get_authz_config(request: Request) -> AuthzConfigModel:
    config = getattr(request.app.state, "authz_config", None)
    if config is None:
        raise RuntimeError("Authz config not loaded. Did app startup run?")
    return config


def get_handler_registry(
    request: Request,
    config: AuthzConfigModel = Depends(get_authz_config),
) -> HandlerRegistry:
    registry = getattr(request.app.state, "authz_registry", None)
    if registry is None:
        registry = build_registry(config)
        request.app.state.authz_registry = registry
    return registry


def get_principal(
    request: Request,
    config: AuthzConfigModel = Depends(get_authz_config),
    db: Session = Depends(get_db),
) -> Principal:
    account_id = extract_account_id(request, config.auth)
    if account_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")

    account = load_account(db, account_id)
    try:
        authenticated_ids = SqlAuthzStore(db).authenticated_ids(account.id)
    except StoreError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Store unavailable") from exc

    principal = Principal(account_id=account.id, authenticated_ids=authenticated_ids)
    request.state.principal = principal
    return principal


def get_authz_context(
    principal: Principal = Depends(get_principal),
    config: AuthzConfigModel = Depends(get_authz_config),
    registry: HandlerRegistry = Depends(get_handler_registry),
    db: Session = Depends(get_db),
) -> AuthzFetchContext:
    """A fresh fetch context per request, bound to the caller's principals."""

    return AuthzFetchContext(
        SqlAuthzStore(db),
        principal.authenticated_ids,
        account_ids={principal.account_id},
        registry=registry,
        config=config,
    )
