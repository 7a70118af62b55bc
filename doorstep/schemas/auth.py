"""Authentication schemas."""

from enum import Enum
from uuid import UUID

from pydantic import BaseModel


class UserRole(str, Enum):
    """Application roles stored in ``user_roles``."""

    PATIENT = "patient"
    DOCTOR = "doctor"
    ADMIN = "admin"


class AuthenticatedUser(BaseModel):
    """Caller identity resolved once per request.

    ``role`` is None when the user has no ``user_roles`` row.
    """

    id: UUID
    email: str | None = None
    role: UserRole | None = None

    model_config = {"frozen": True}

    @property
    def is_doctor(self) -> bool:
        """Whether the caller holds the doctor role."""
        return self.role == UserRole.DOCTOR

    @property
    def is_admin(self) -> bool:
        """Whether the caller holds the admin role."""
        return self.role == UserRole.ADMIN
