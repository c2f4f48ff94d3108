"""Pydantic schemas for caller identity."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from .permissions import UserRole


class TokenPayload(BaseModel):
    """Claims of an access token issued by the identity service."""

    sub: UUID  # User ID
    role: UserRole
    org: UUID  # Organization ID
    exp: datetime
    iat: datetime | None = None
    type: str  # "access"


class AuthenticatedUser(BaseModel):
    """Caller identity three-tuple handed to every engine operation."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    role: UserRole
    organization_id: UUID

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_instructor(self) -> bool:
        return self.role == UserRole.INSTRUCTOR

    @property
    def is_trainee(self) -> bool:
        return self.role == UserRole.TRAINEE
