from __future__ import annotations

from pydantic import BaseModel, Field


class ObjectRef(BaseModel):
    entity: str = Field(min_length=1)
    key: int


class PermissionsRequest(BaseModel):
    objects: list[ObjectRef] = Field(default_factory=list)


class ObjectPermissions(BaseModel):
    entity: str
    key: int
    permissions: str
    resolved: bool = True


class PermissionsResponse(BaseModel):
    account_id: int
    authenticated_ids: list[int]
    results: list[ObjectPermissions]


class CheckResponse(BaseModel):
    entity: str
    key: int
    required: str
    permissions: str
    allowed: bool = True


class AccessDeniedOut(BaseModel):
    detail: str
    object: str | None
    requested: str
    available: str
    missing: str
