"""Doctor credential service for business logic."""

from datetime import UTC, datetime
from uuid import UUID

import structlog
from sqlalchemy import and_, func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from doorstep.core.exceptions import NotFoundError
from doorstep.core.redis_client import CacheManager
from doorstep.models.medical_credentials import medical_credentials
from doorstep.schemas.credentials import (
    CredentialsResponse,
    CredentialsUpdate,
    DoctorDirectoryEntry,
    DoctorDirectoryResponse,
)
from doorstep.schemas.validators import clean_list

logger = structlog.get_logger(__name__)


class CredentialService:
    """Service for doctor credentials and the public directory."""

    # Directory pages change only when credentials are written
    DIRECTORY_CACHE_TTL = 300
    DIRECTORY_CACHE_PATTERN = "doctors:directory:*"

    def __init__(self, db: AsyncSession, cache_manager: CacheManager | None = None):
        """Initialize service with database session and optional cache manager."""
        self.db = db
        self.cache = cache_manager

    async def get_or_create(self, doctor_id: UUID) -> CredentialsResponse:
        """Return the doctor's credentials, creating an empty row on first access."""
        row = await self._get_row(doctor_id)
        if row is None:
            try:
                await self.db.execute(insert(medical_credentials).values(doctor_id=doctor_id))
                await self.db.commit()
                logger.info("credentials_created", doctor_id=str(doctor_id))
            except IntegrityError:
                # Created by a concurrent first view
                await self.db.rollback()
            row = await self._get_row(doctor_id)
        return CredentialsResponse.model_validate(dict(row))

    async def update(self, doctor_id: UUID, data: CredentialsUpdate) -> CredentialsResponse:
        """Apply the doctor's own edits. ``verified`` is never touched here."""
        await self.get_or_create(doctor_id)

        values = data.model_dump(exclude_unset=True)
        for field in ("specialties", "board_certifications"):
            if field in values:
                values[field] = clean_list(values[field])
        for field in ("license_number", "license_state"):
            if field in values and values[field] is None:
                values[field] = ""

        if values:
            await self.db.execute(
                update(medical_credentials)
                .where(medical_credentials.c.doctor_id == doctor_id)
                .values(**values)
            )
            await self.db.commit()
            self._invalidate_directory()

        return await self.get_or_create(doctor_id)

    async def set_verified(
        self, doctor_id: UUID, verified: bool, reviewer_id: UUID
    ) -> CredentialsResponse:
        """
        Record an administrative verification decision.

        Raises:
            NotFoundError: If the doctor has no credentials yet
        """
        stmt = (
            update(medical_credentials)
            .where(medical_credentials.c.doctor_id == doctor_id)
            .values(
                verified=verified,
                verified_at=datetime.now(UTC) if verified else None,
                verified_by=reviewer_id if verified else None,
            )
            .returning(medical_credentials)
        )
        row = (await self.db.execute(stmt)).mappings().first()
        if not row:
            await self.db.rollback()
            raise NotFoundError("Doctor credentials not found")
        await self.db.commit()
        self._invalidate_directory()

        logger.info(
            "credentials_verification_changed",
            doctor_id=str(doctor_id),
            verified=verified,
            reviewer_id=str(reviewer_id),
        )
        return CredentialsResponse.model_validate(dict(row))

    async def list_verified(
        self,
        specialty: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> DoctorDirectoryResponse:
        """Verified doctors, optionally limited to one specialty."""
        cache_key = f"doctors:directory:{(specialty or '').lower()}:{page}:{page_size}"
        if self.cache:
            cached = self.cache.get_json(cache_key)
            if cached:
                return DoctorDirectoryResponse(**cached)

        conditions = [medical_credentials.c.verified.is_(True)]
        stmt = (
            select(medical_credentials)
            .where(and_(*conditions))
            .order_by(
                medical_credentials.c.years_experience.desc().nulls_last(),
                medical_credentials.c.created_at,
            )
        )
        offset = (page - 1) * page_size

        if specialty:
            # specialties is a JSON list; filtering here keeps the query portable
            wanted = specialty.strip().lower()
            rows = [
                r
                for r in (await self.db.execute(stmt)).mappings().all()
                if wanted in (s.lower() for s in r["specialties"] or [])
            ]
            total = len(rows)
            rows = rows[offset : offset + page_size]
        else:
            total = (
                await self.db.execute(
                    select(func.count()).select_from(medical_credentials).where(and_(*conditions))
                )
            ).scalar() or 0
            rows = (
                (await self.db.execute(stmt.limit(page_size).offset(offset))).mappings().all()
            )

        response = DoctorDirectoryResponse(
            total=total,
            page=page,
            page_size=page_size,
            items=[DoctorDirectoryEntry.model_validate(dict(r)) for r in rows],
        )

        if self.cache:
            self.cache.set_json(
                cache_key, response.model_dump(mode="json"), ttl=self.DIRECTORY_CACHE_TTL
            )
        return response

    async def _get_row(self, doctor_id: UUID):
        result = await self.db.execute(
            select(medical_credentials).where(medical_credentials.c.doctor_id == doctor_id)
        )
        return result.mappings().first()

    def _invalidate_directory(self) -> None:
        if self.cache:
            self.cache.delete_pattern(self.DIRECTORY_CACHE_PATTERN)
