from __future__ import annotations

import logging

from fastapi import HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from groupware_authz.authz.config import AuthConfig
from groupware_authz.models import Contact

logger = logging.getLogger(__name__)


def extract_account_id(request: Request, auth: AuthConfig) -> int | None:
    """
    Demo auth: extract bearer token and treat it as an account id.

    - Input: `Authorization: Bearer <token>`
    - Demo behavior: `<token>` must be an integer account id
    - Token verification is left to the host system
    """

    header_name = auth.authorization_header
    bearer_prefix = auth.bearer_prefix

    raw = request.headers.get(header_name)
    if not raw:
        logger.info("Missing Authorization header path=%s method=%s", request.url.path, request.method)
        return None

    prefix = f"{bearer_prefix} "
    if not raw.startswith(prefix):
        logger.warning("Invalid Authorization header format path=%s method=%s", request.url.path, request.method)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {header_name}. Expected '{bearer_prefix} <token>'.",
        )

    token = raw[len(prefix) :].strip()
    if not token:
        logger.warning("Empty bearer token path=%s method=%s", request.url.path, request.method)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {header_name}. Missing token after '{bearer_prefix}'.",
        )

    try:
        return int(token)
    except ValueError as exc:
        logger.warning("Bearer token not an int path=%s method=%s", request.url.path, request.method)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid bearer token for demo (expected integer account id).",
        ) from exc


def load_account(db: Session, account_id: int) -> Contact:
    account = db.execute(select(Contact).where(Contact.id == account_id)).scalar_one_or_none()

    if account is None or not account.is_account:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid account")

    return account
