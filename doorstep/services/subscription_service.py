"""Subscription ledger for doctor plans."""

import calendar
from datetime import UTC, datetime
from uuid import UUID

import structlog
from sqlalchemy import func, insert, select, update
from sqlalchemy.engine import RowMapping
from sqlalchemy.ext.asyncio import AsyncSession

from doorstep.config import settings
from doorstep.core.exceptions import AuthorizationError, ConfigurationError, GatewayError
from doorstep.models.subscriptions import subscriptions
from doorstep.schemas.auth import AuthenticatedUser
from doorstep.schemas.payments import SubscriptionPaymentResponse
from doorstep.schemas.subscriptions import (
    SUBSCRIPTION_PLANS,
    CurrentSubscriptionResponse,
    PlanType,
    SubscriptionResponse,
    SubscriptionStatus,
)
from doorstep.services.booking_service import validate_phone
from doorstep.services.payment_gateway import InstasendGateway

logger = structlog.get_logger(__name__)


def add_months(moment: datetime, months: int = 1) -> datetime:
    """Same day-of-month ``months`` later, clamped to the end of shorter months."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=UTC)


class SubscriptionService:
    """Service for doctor subscriptions."""

    def __init__(self, db: AsyncSession, gateway: InstasendGateway | None = None):
        """Initialize service with database session and optional payment gateway."""
        self.db = db
        self.gateway = gateway

    async def subscribe(
        self,
        doctor: AuthenticatedUser,
        plan_type: PlanType,
        phone_number: str,
        email: str | None,
    ) -> SubscriptionPaymentResponse:
        """
        Record a pending subscription and send its payment prompt.

        Args:
            doctor: Authenticated caller, must hold the doctor role
            plan_type: Requested plan
            phone_number: Payer phone number
            email: Payer email

        Returns:
            Tracking details for the prompt

        Raises:
            AuthorizationError: If the caller is not a doctor (no side effects)
            ValidationError: If the phone number is invalid
            GatewayError: If the provider call fails (the row is marked failed)
        """
        if not doctor.is_doctor:
            raise AuthorizationError("Access denied: Only doctors can subscribe to plans")

        if self.gateway is None:
            raise ConfigurationError("Payment gateway is not configured")

        plan = SUBSCRIPTION_PLANS[plan_type]
        phone = validate_phone(phone_number)

        result = await self.db.execute(
            insert(subscriptions)
            .values(
                doctor_id=doctor.id,
                plan_type=plan.plan_type.value,
                amount=plan.amount,
                status=SubscriptionStatus.PENDING.value,
            )
            .returning(subscriptions)
        )
        row = result.mappings().one()
        await self.db.commit()

        logger.info(
            "subscription_requested",
            subscription_id=str(row["id"]),
            doctor_id=str(doctor.id),
            plan=plan.name,
            amount=plan.amount,
        )

        try:
            initiation = await self.gateway.initiate_payment(
                amount=plan.amount,
                phone_number=phone,
                email=email or doctor.email,
                narrative=f"Doctor subscription - {plan.name}",
                currency=settings.payment_currency,
                api_ref=str(row["payment_reference"]),
                purpose="subscription",
            )
        except GatewayError:
            await self.db.execute(
                update(subscriptions)
                .where(subscriptions.c.id == row["id"])
                .values(status=SubscriptionStatus.FAILED.value)
            )
            await self.db.commit()
            raise

        await self.db.execute(
            update(subscriptions)
            .where(subscriptions.c.id == row["id"])
            .values(tracking_id=initiation.tracking_id, checkout_id=initiation.checkout_id)
        )
        await self.db.commit()

        return SubscriptionPaymentResponse(
            subscription_id=row["id"],
            tracking_id=initiation.tracking_id,
            checkout_id=initiation.checkout_id,
            plan=plan.name,
            amount=plan.amount,
        )

    async def get_by_tracking_id(self, tracking_id: str) -> RowMapping | None:
        """Find the subscription paid for by a provider tracking id."""
        result = await self.db.execute(
            select(subscriptions).where(subscriptions.c.tracking_id == tracking_id)
        )
        return result.mappings().first()

    async def activate(self, tracking_id: str, at: datetime | None = None) -> RowMapping | None:
        """
        Start the subscription window for a paid subscription.

        A renewal bought while another window is running starts when that
        window ends. Activations for one doctor are serialized: the doctor's
        rows are locked, and the pending row is claimed before the latest
        window end is read, so two confirmations arriving together cannot
        both start from the same point.

        Returns:
            The activated row, or None if nothing was pending for ``tracking_id``
        """
        row = await self.get_by_tracking_id(tracking_id)
        if not row or row["status"] != SubscriptionStatus.PENDING.value:
            return None

        # Row locks on Postgres; SQLite takes its write lock at the claim below
        await self.db.execute(
            select(subscriptions.c.id)
            .where(subscriptions.c.doctor_id == row["doctor_id"])
            .with_for_update()
        )

        claim = (
            update(subscriptions)
            .where(
                subscriptions.c.id == row["id"],
                subscriptions.c.status == SubscriptionStatus.PENDING.value,
            )
            .values(status=SubscriptionStatus.ACTIVE.value)
            .returning(subscriptions.c.id)
        )
        if (await self.db.execute(claim)).first() is None:
            await self.db.rollback()
            return None

        start = at or datetime.now(UTC)
        current_end = (
            await self.db.execute(
                select(func.max(subscriptions.c.ends_at)).where(
                    subscriptions.c.doctor_id == row["doctor_id"],
                    subscriptions.c.status == SubscriptionStatus.ACTIVE.value,
                    subscriptions.c.id != row["id"],
                )
            )
        ).scalar()
        if current_end is not None and _as_utc(current_end) > start:
            start = _as_utc(current_end)

        stmt = (
            update(subscriptions)
            .where(subscriptions.c.id == row["id"])
            .values(starts_at=start, ends_at=add_months(start))
            .returning(subscriptions)
        )
        activated = (await self.db.execute(stmt)).mappings().one()
        await self.db.commit()

        logger.info(
            "subscription_activated",
            subscription_id=str(activated["id"]),
            doctor_id=str(activated["doctor_id"]),
            starts_at=str(activated["starts_at"]),
            ends_at=str(activated["ends_at"]),
        )
        return activated

    async def mark_failed(self, tracking_id: str) -> RowMapping | None:
        """Record a failed subscription payment. No-op unless still pending."""
        stmt = (
            update(subscriptions)
            .where(
                subscriptions.c.tracking_id == tracking_id,
                subscriptions.c.status == SubscriptionStatus.PENDING.value,
            )
            .values(status=SubscriptionStatus.FAILED.value)
            .returning(subscriptions)
        )
        row = (await self.db.execute(stmt)).mappings().first()
        await self.db.commit()
        return row

    async def is_active(self, doctor_id: UUID, at: datetime | None = None) -> bool:
        """Whether the doctor has a paid window covering ``at``."""
        at = at or datetime.now(UTC)
        stmt = (
            select(func.count())
            .select_from(subscriptions)
            .where(
                subscriptions.c.doctor_id == doctor_id,
                subscriptions.c.status == SubscriptionStatus.ACTIVE.value,
                subscriptions.c.starts_at <= at,
                subscriptions.c.ends_at > at,
            )
        )
        return bool((await self.db.execute(stmt)).scalar())

    async def current(self, doctor_id: UUID) -> CurrentSubscriptionResponse:
        """Latest subscription row for the doctor and whether one is active now."""
        result = await self.db.execute(
            select(subscriptions)
            .where(subscriptions.c.doctor_id == doctor_id)
            .order_by(subscriptions.c.created_at.desc())
            .limit(1)
        )
        row = result.mappings().first()
        return CurrentSubscriptionResponse(
            is_active=await self.is_active(doctor_id),
            subscription=SubscriptionResponse.model_validate(dict(row)) if row else None,
        )
