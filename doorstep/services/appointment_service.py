"""Appointment ledger: appointment rows and their status transitions."""

from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import and_, case, func, insert, or_, select, update
from sqlalchemy.engine import RowMapping
from sqlalchemy.ext.asyncio import AsyncSession

from doorstep.core.exceptions import AuthorizationError, ConflictError, NotFoundError
from doorstep.models.appointments import appointments
from doorstep.models.base import utcnow
from doorstep.schemas.appointments import (
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatus,
    ConsultationType,
    DoctorStatsResponse,
    PaymentStatus,
)
from doorstep.schemas.auth import AuthenticatedUser

logger = structlog.get_logger(__name__)

# Allowed status moves. ``confirmed`` is only reached through reconciliation.
STATUS_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset(
        {AppointmentStatus.CONFIRMED, AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}
    ),
    AppointmentStatus.CONFIRMED: frozenset(
        {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}
    ),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
}

DOCTOR_SETTABLE_STATUSES = frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED})

# Well above the provider request timeout
PAYMENT_CLAIM_TTL = timedelta(minutes=2)


class AppointmentService:
    """Service for managing appointment rows."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def create(
        self,
        patient_id: UUID,
        doctor_id: UUID,
        appointment_date: datetime,
        consultation_type: ConsultationType,
        address: str,
        amount: int,
        notes: str | None = None,
    ) -> RowMapping:
        """
        Insert a new appointment in ``pending/pending``.

        A fresh ``payment_reference`` is generated here so it exists before
        the first payment attempt.

        Returns:
            The inserted row
        """
        stmt = (
            insert(appointments)
            .values(
                patient_id=patient_id,
                doctor_id=doctor_id,
                appointment_date=appointment_date,
                consultation_type=consultation_type.value,
                address=address,
                notes=notes,
                amount=amount,
                status=AppointmentStatus.PENDING.value,
                payment_status=PaymentStatus.PENDING.value,
            )
            .returning(appointments)
        )
        result = await self.db.execute(stmt)
        row = result.mappings().one()
        await self.db.commit()

        logger.info(
            "appointment_created",
            appointment_id=str(row["id"]),
            doctor_id=str(doctor_id),
            patient_id=str(patient_id),
            amount=amount,
        )
        return row

    async def get_row(self, appointment_id: UUID) -> RowMapping:
        """
        Fetch an appointment row without access checks.

        Raises:
            NotFoundError: If appointment not found
        """
        result = await self.db.execute(
            select(appointments).where(appointments.c.id == appointment_id)
        )
        row = result.mappings().first()
        if not row:
            raise NotFoundError("Appointment not found")
        return row

    async def get_by_tracking_id(self, tracking_id: str) -> RowMapping | None:
        """Find the appointment paid for by a provider tracking id."""
        result = await self.db.execute(
            select(appointments).where(appointments.c.tracking_id == tracking_id)
        )
        return result.mappings().first()

    async def get(self, appointment_id: UUID, user: AuthenticatedUser) -> AppointmentResponse:
        """
        Get an appointment visible to ``user``.

        Raises:
            NotFoundError: If appointment not found
            AuthorizationError: If user is neither participant nor admin
        """
        row = await self.get_row(appointment_id)
        if user.id not in (row["patient_id"], row["doctor_id"]) and not user.is_admin:
            raise AuthorizationError("Access denied to this appointment")
        return AppointmentResponse.model_validate(dict(row))

    async def list_by_patient(
        self, patient_id: UUID, filters: AppointmentFilters
    ) -> AppointmentListResponse:
        """List a patient's appointments."""
        return await self._list(appointments.c.patient_id == patient_id, filters)

    async def list_by_doctor(
        self, doctor_id: UUID, filters: AppointmentFilters
    ) -> AppointmentListResponse:
        """List a doctor's appointments."""
        return await self._list(appointments.c.doctor_id == doctor_id, filters)

    async def _list(self, owner_clause: Any, filters: AppointmentFilters) -> AppointmentListResponse:
        conditions = [owner_clause]

        if filters.status:
            conditions.append(appointments.c.status == filters.status.value)

        if filters.payment_status:
            conditions.append(appointments.c.payment_status == filters.payment_status.value)

        if filters.from_date:
            conditions.append(appointments.c.appointment_date >= filters.from_date)

        if filters.to_date:
            conditions.append(appointments.c.appointment_date <= filters.to_date)

        count_stmt = select(func.count()).select_from(appointments).where(and_(*conditions))
        total = (await self.db.execute(count_stmt)).scalar() or 0

        offset = (filters.page - 1) * filters.page_size
        stmt = (
            select(appointments)
            .where(and_(*conditions))
            .order_by(appointments.c.appointment_date.desc())
            .limit(filters.page_size)
            .offset(offset)
        )
        rows = (await self.db.execute(stmt)).mappings().all()

        return AppointmentListResponse(
            total=total,
            page=filters.page,
            page_size=filters.page_size,
            items=[AppointmentResponse.model_validate(dict(row)) for row in rows],
        )

    async def set_status(
        self,
        appointment_id: UUID,
        new_status: AppointmentStatus,
        actor: AuthenticatedUser | None,
    ) -> AppointmentResponse:
        """
        Move an appointment to ``new_status``.

        Args:
            appointment_id: Appointment ID
            new_status: Target status
            actor: Requesting doctor, or None for automated transitions

        Returns:
            Updated appointment

        Raises:
            NotFoundError: If appointment not found
            AuthorizationError: If actor is not the appointment's doctor
            ConflictError: If the transition is not allowed
        """
        row = await self.get_row(appointment_id)

        if actor is not None:
            if row["doctor_id"] != actor.id:
                raise AuthorizationError("Only the appointment's doctor can change its status")
            if new_status not in DOCTOR_SETTABLE_STATUSES:
                raise ConflictError(f"Doctors cannot set status '{new_status.value}'")

        current = AppointmentStatus(row["status"])
        payment_status = PaymentStatus(row["payment_status"])

        if new_status not in STATUS_TRANSITIONS[current]:
            raise ConflictError(
                f"Cannot change appointment status from '{current.value}' to '{new_status.value}'"
            )
        if new_status == AppointmentStatus.COMPLETED and payment_status != PaymentStatus.COMPLETED:
            raise ConflictError("Appointment cannot be completed before payment is completed")
        if new_status == AppointmentStatus.CANCELLED and payment_status == PaymentStatus.COMPLETED:
            raise ConflictError("Paid appointments cannot be cancelled")

        values: dict[str, Any] = {"status": new_status.value}
        if new_status == AppointmentStatus.CANCELLED:
            values["cancelled_at"] = utcnow()

        # Compare-and-set on the status we validated against
        stmt = (
            update(appointments)
            .where(
                appointments.c.id == appointment_id,
                appointments.c.status == current.value,
                appointments.c.payment_status == payment_status.value,
            )
            .values(**values)
            .returning(appointments)
        )
        updated = (await self.db.execute(stmt)).mappings().first()
        if not updated:
            await self.db.rollback()
            raise ConflictError("Appointment was modified concurrently, retry")
        await self.db.commit()

        logger.info(
            "appointment_status_changed",
            appointment_id=str(appointment_id),
            old_status=current.value,
            new_status=new_status.value,
            actor=str(actor.id) if actor else "system",
        )
        return AppointmentResponse.model_validate(dict(updated))

    async def claim_payment_initiation(self, appointment_id: UUID) -> None:
        """
        Reserve the single payment prompt of an appointment.

        Concurrent callers race on one conditional UPDATE and only the winner
        may call the provider. A claim older than ``PAYMENT_CLAIM_TTL`` that
        never got a tracking id is treated as abandoned and can be taken over.

        Raises:
            ConflictError: If a prompt is already being sent or was sent
        """
        now = utcnow()
        stmt = (
            update(appointments)
            .where(
                appointments.c.id == appointment_id,
                appointments.c.tracking_id.is_(None),
                appointments.c.payment_status == PaymentStatus.PENDING.value,
                appointments.c.status != AppointmentStatus.CANCELLED.value,
                or_(
                    appointments.c.payment_initiated_at.is_(None),
                    appointments.c.payment_initiated_at < now - PAYMENT_CLAIM_TTL,
                ),
            )
            .values(payment_initiated_at=now)
            .returning(appointments.c.id)
        )
        claimed = (await self.db.execute(stmt)).first()
        if claimed is None:
            await self.db.rollback()
            raise ConflictError("A payment has already been initiated for this appointment")
        await self.db.commit()

    async def release_payment_claim(self, appointment_id: UUID) -> None:
        """Drop a claim that produced no prompt so the patient can retry."""
        stmt = (
            update(appointments)
            .where(
                appointments.c.id == appointment_id,
                appointments.c.tracking_id.is_(None),
            )
            .values(payment_initiated_at=None)
        )
        await self.db.execute(stmt)
        await self.db.commit()

    async def record_payment_initiation(
        self,
        appointment_id: UUID,
        tracking_id: str,
        checkout_id: str | None,
        amount: int,
    ) -> RowMapping:
        """
        Attach the provider tracking id to a claimed, still-unpaid appointment.

        Raises:
            ConflictError: If a prompt was already recorded for the appointment
        """
        stmt = (
            update(appointments)
            .where(
                appointments.c.id == appointment_id,
                appointments.c.tracking_id.is_(None),
                appointments.c.payment_status == PaymentStatus.PENDING.value,
            )
            .values(tracking_id=tracking_id, checkout_id=checkout_id, amount=amount)
            .returning(appointments)
        )
        row = (await self.db.execute(stmt)).mappings().first()
        if not row:
            await self.db.rollback()
            logger.error(
                "payment_initiation_not_recorded",
                appointment_id=str(appointment_id),
                tracking_id=tracking_id,
            )
            raise ConflictError("A payment has already been initiated for this appointment")
        await self.db.commit()
        return row

    async def set_payment_status(
        self,
        tracking_id: str,
        new_status: PaymentStatus,
    ) -> RowMapping | None:
        """
        Apply a provider-confirmed payment outcome.

        Only moves ``payment_status`` out of ``pending``; a completed payment
        also confirms a pending appointment in the same statement. Concurrent
        or repeated callbacks race on the ``WHERE payment_status = 'pending'``
        clause and only the first one updates a row.

        Returns:
            The updated row, or None if nothing was pending for ``tracking_id``
        """
        if new_status == PaymentStatus.PENDING:
            raise ValueError("payment_status can only move to completed or failed")

        conditions = [
            appointments.c.tracking_id == tracking_id,
            appointments.c.payment_status == PaymentStatus.PENDING.value,
        ]
        values: dict[str, Any] = {"payment_status": new_status.value}

        if new_status == PaymentStatus.COMPLETED:
            conditions.append(appointments.c.status != AppointmentStatus.CANCELLED.value)
            values["paid_at"] = utcnow()
            values["status"] = case(
                (
                    appointments.c.status == AppointmentStatus.PENDING.value,
                    AppointmentStatus.CONFIRMED.value,
                ),
                else_=appointments.c.status,
            )

        stmt = update(appointments).where(*conditions).values(**values).returning(appointments)
        row = (await self.db.execute(stmt)).mappings().first()
        await self.db.commit()
        return row

    async def doctor_stats(self, doctor_id: UUID) -> DoctorStatsResponse:
        """Dashboard counters for one doctor."""
        stmt = select(
            func.count(),
            func.count(
                case((appointments.c.status == AppointmentStatus.PENDING.value, 1))
            ),
            func.count(
                case((appointments.c.status == AppointmentStatus.COMPLETED.value, 1))
            ),
            func.coalesce(
                func.sum(
                    case(
                        (
                            appointments.c.payment_status == PaymentStatus.COMPLETED.value,
                            appointments.c.amount,
                        ),
                        else_=0,
                    )
                ),
                0,
            ),
        ).where(appointments.c.doctor_id == doctor_id)

        total, pending, completed, earnings = (await self.db.execute(stmt)).one()
        return DoctorStatsResponse(
            total_appointments=total,
            pending_appointments=pending,
            completed_appointments=completed,
            total_earnings=int(earnings or 0),
        )
