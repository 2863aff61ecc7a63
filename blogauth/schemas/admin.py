from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, StrictStr, field_validator

from blogauth.models.user import Role
from blogauth.schemas.common import CamelModel


class RoleByEntity(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Role


# A role arrives either as a bare name or as a role object.
RoleRef = Union[StrictStr, RoleByEntity]


class UserUpdateRequest(CamelModel):
    active: bool | None = None
    role: Optional[RoleRef] = None

    @field_validator("role", mode="after")
    @classmethod
    def _resolve_role(cls, value: RoleRef | None) -> Role | None:
        if value is None:
            return None
        if isinstance(value, RoleByEntity):
            return value.name
        return Role.from_name(value)


class UserView(CamelModel):
    id: int
    username: str
    email: str
    role: Role
    mfa_enabled: bool
    is_active: bool
    failed_login_attempts: int
    created_at: datetime


class AuditEntry(CamelModel):
    occurred_at: datetime
    user_id: int | None
    token_id: int | None
    action: str
    detail: str | None
