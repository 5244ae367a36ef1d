"""
Pydantic models for patient profiles read from the ``profiles`` table.
"""
import logging
from enum import Enum
from typing import List, Optional

from pydantic import Field, field_validator

from .base import CamelModel

logger = logging.getLogger("mood-api.users")


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    STAFF = "STAFF"
    USER = "USER"


class UserStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"


def _coerce_enum(enum_cls, value, default, field: str):
    """Uppercase known values; unknown or missing ones fall back to ``default``."""
    if isinstance(value, enum_cls):
        return value
    normalized = value.strip().upper() if isinstance(value, str) else None
    if normalized in enum_cls.__members__:
        return enum_cls[normalized]
    logger.warning("Unknown profile %s %r, using %s", field, value, default.value)
    return default


class UserProfile(CamelModel):
    """Patient profile; missing columns fall back to typed defaults."""

    id: str
    name: str = ""
    email: str = ""
    role: UserRole = UserRole.USER
    status: UserStatus = UserStatus.ACTIVE
    photo_url: Optional[str] = Field(default=None, description="Avatar URL")

    @field_validator("name", "email", mode="before")
    @classmethod
    def _null_to_empty(cls, value):
        return "" if value is None else value

    @field_validator("role", mode="before")
    @classmethod
    def _coerce_role(cls, value):
        return _coerce_enum(UserRole, value, UserRole.USER, "role")

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value):
        # an unrecognised status never counts as active
        return _coerce_enum(UserStatus, value, UserStatus.INACTIVE, "status")


class AuthContext(CamelModel):
    """Verified caller: token uid, profile role and its permissions."""

    uid: str
    role: UserRole = UserRole.USER
    permissions: List[str] = Field(default_factory=list)

    def can(self, permission: str) -> bool:
        return permission in self.permissions
