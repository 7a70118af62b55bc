"""Patient medical history service."""

from uuid import UUID

from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from doorstep.models.patient_medical_history import patient_medical_history
from doorstep.schemas.medical_history import MedicalHistoryResponse, MedicalHistoryUpdate
from doorstep.schemas.validators import clean_list

LIST_FIELDS = ("allergies", "medications", "medical_conditions")


class MedicalHistoryService:
    """Service for a patient's own medical history."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def get_or_create(self, patient_id: UUID) -> MedicalHistoryResponse:
        """Return the patient's history, creating an empty row on first access."""
        row = await self._get_row(patient_id)
        if row is None:
            try:
                await self.db.execute(
                    insert(patient_medical_history).values(patient_id=patient_id)
                )
                await self.db.commit()
            except IntegrityError:
                await self.db.rollback()
            row = await self._get_row(patient_id)
        return MedicalHistoryResponse.model_validate(dict(row))

    async def update(self, patient_id: UUID, data: MedicalHistoryUpdate) -> MedicalHistoryResponse:
        """Apply the patient's own edits."""
        await self.get_or_create(patient_id)

        values = data.model_dump(exclude_unset=True)
        for field in LIST_FIELDS:
            if field in values:
                values[field] = clean_list(values[field])

        if values:
            await self.db.execute(
                update(patient_medical_history)
                .where(patient_medical_history.c.patient_id == patient_id)
                .values(**values)
            )
            await self.db.commit()

        return await self.get_or_create(patient_id)

    async def _get_row(self, patient_id: UUID):
        result = await self.db.execute(
            select(patient_medical_history).where(
                patient_medical_history.c.patient_id == patient_id
            )
        )
        return result.mappings().first()
