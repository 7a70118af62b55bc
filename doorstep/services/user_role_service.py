"""Role lookups against ``user_roles``."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from doorstep.models.user_roles import user_roles
from doorstep.schemas.auth import UserRole


class UserRoleService:
    """Service for reading user roles."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def get_role(self, user_id: UUID) -> UserRole | None:
        """Return the user's role, or None if they have no role row."""
        result = await self.db.execute(
            select(user_roles.c.role).where(user_roles.c.user_id == user_id)
        )
        role = result.scalar_one_or_none()
        return UserRole(role) if role else None

    async def is_doctor(self, user_id: UUID) -> bool:
        """Check whether ``user_id`` resolves to a doctor."""
        return await self.get_role(user_id) == UserRole.DOCTOR
