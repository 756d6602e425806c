from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .handlers.registry import HANDLERS_BY_NAME


class AuthzConfigError(ValueError):
    pass


class AuthConfig(BaseModel):
    authorization_header: str = "Authorization"
    bearer_prefix: str = "Bearer"


class AuthzConfigModel(BaseModel):
    max_fetch_iterations: int = Field(default=10, ge=1)
    max_scan_iterations: int = Field(default=8, ge=1)

    # What to do with entities the store knows but no handler is registered for.
    unknown_entity_policy: Literal["allow", "deny"] = "allow"

    # entity name -> handler name, on top of the built-in table
    entities: dict[str, str] = Field(default_factory=dict)

    auth: AuthConfig = Field(default_factory=AuthConfig)

    @field_validator("entities")
    @classmethod
    def _known_handlers(cls, value: dict[str, str]) -> dict[str, str]:
        unknown = sorted({name for name in value.values() if name not in HANDLERS_BY_NAME})
        if unknown:
            raise ValueError(f"unknown permission handlers: {unknown}, known: {sorted(HANDLERS_BY_NAME)}")
        return value


def default_authz_config() -> AuthzConfigModel:
    return AuthzConfigModel()


def load_authz_config(path: Path) -> AuthzConfigModel:
    raw_text = path.read_text(encoding="utf-8")
    raw: dict[str, Any] = yaml.safe_load(raw_text) or {}

    if "authz" not in raw:
        raise AuthzConfigError(f"Missing top-level 'authz' key in config: {path}")

    try:
        return AuthzConfigModel.model_validate(raw["authz"] or {})
    except ValidationError as e:
        raise AuthzConfigError(f"Invalid authz config {path}: {e}") from e
