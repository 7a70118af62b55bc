"""Reconciliation of provider payment callbacks into the ledgers."""

import json
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from doorstep.config import settings
from doorstep.core.exceptions import (
    AuthenticationError,
    ConfigurationError,
    NotFoundError,
    ValidationError,
)
from doorstep.core.metrics import payment_callbacks_total
from doorstep.core.webhook_security import verify_callback
from doorstep.schemas.appointments import AppointmentStatus, PaymentStatus
from doorstep.schemas.payments import CallbackResult
from doorstep.schemas.subscriptions import SubscriptionStatus
from doorstep.services.appointment_service import AppointmentService
from doorstep.services.subscription_service import SubscriptionService

logger = structlog.get_logger(__name__)

# Provider ``state`` values. PENDING/PROCESSING are interim and change nothing.
PROVIDER_STATE_MAP: dict[str, PaymentStatus | None] = {
    "COMPLETE": PaymentStatus.COMPLETED,
    "COMPLETED": PaymentStatus.COMPLETED,
    "SUCCESS": PaymentStatus.COMPLETED,
    "SUCCESSFUL": PaymentStatus.COMPLETED,
    "FAILED": PaymentStatus.FAILED,
    "FAILURE": PaymentStatus.FAILED,
    "CANCELLED": PaymentStatus.FAILED,
    "CANCELED": PaymentStatus.FAILED,
    "RETRY": PaymentStatus.FAILED,
    "PENDING": None,
    "PROCESSING": None,
}

# Payment outcome a subscription row stands for
SUBSCRIPTION_PAYMENT_STATUS: dict[str, str] = {
    SubscriptionStatus.PENDING.value: PaymentStatus.PENDING.value,
    SubscriptionStatus.ACTIVE.value: PaymentStatus.COMPLETED.value,
    SubscriptionStatus.FAILED.value: PaymentStatus.FAILED.value,
}


def map_provider_state(state: str | None) -> PaymentStatus | None:
    """
    Translate a provider state into a payment status.

    Returns:
        ``completed``/``failed``, or None for interim states

    Raises:
        ValidationError: If the state is missing or unknown
    """
    if not state:
        raise ValidationError("Callback is missing the payment state")
    key = state.strip().upper()
    if key not in PROVIDER_STATE_MAP:
        raise ValidationError(f"Unknown payment state '{state}'")
    return PROVIDER_STATE_MAP[key]


class ReconciliationService:
    """Applies provider-verified payment outcomes.

    Payment state only ever advances from here; client-reported success is
    never trusted. Redelivered callbacks are absorbed: the second delivery
    finds the row already settled and returns ``applied=False``.
    """

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db
        self.appointments = AppointmentService(db)
        self.subscriptions = SubscriptionService(db)

    def parse_callback(self, raw_body: bytes, signature: str | None) -> dict[str, Any]:
        """
        Decode and authenticate a callback body.

        Raises:
            ConfigurationError: If no webhook secret is configured
            ValidationError: If the body is not a JSON object
            AuthenticationError: If neither signature nor challenge matches
        """
        secret = settings.instasend_webhook_secret
        if not secret:
            raise ConfigurationError("INSTASEND_WEBHOOK_SECRET is not set")

        try:
            payload = json.loads(raw_body)
        except ValueError as e:
            raise ValidationError("Callback body must be JSON") from e
        if not isinstance(payload, dict):
            raise ValidationError("Callback body must be a JSON object")

        if not verify_callback(secret, raw_body, signature, payload.get("challenge")):
            payment_callbacks_total.labels(target="unknown", outcome="bad_signature").inc()
            logger.warning("payment_callback_rejected", reason="bad_signature")
            raise AuthenticationError("Invalid callback signature")

        return payload

    async def handle_provider_callback(
        self,
        raw_body: bytes,
        signature: str | None,
    ) -> CallbackResult:
        """
        Authenticate a provider callback and apply it.

        Args:
            raw_body: Request body exactly as received
            signature: Signature header value, if sent

        Returns:
            What was applied

        Raises:
            AuthenticationError: On a bad signature
            ValidationError: On a malformed payload
            NotFoundError: If no appointment or subscription has this tracking id
        """
        payload = self.parse_callback(raw_body, signature)

        tracking_id = payload.get("invoice_id") or payload.get("tracking_id")
        if not tracking_id:
            raise ValidationError("Callback is missing the tracking id")
        tracking_id = str(tracking_id)
        outcome = map_provider_state(payload.get("state"))

        log = logger.bind(
            tracking_id=tracking_id,
            provider_state=payload.get("state"),
            api_ref=payload.get("api_ref"),
        )

        appointment = await self.appointments.get_by_tracking_id(tracking_id)
        if appointment is not None:
            return await self._apply_to_appointment(tracking_id, appointment, outcome, payload, log)

        subscription = await self.subscriptions.get_by_tracking_id(tracking_id)
        if subscription is not None:
            return await self._apply_to_subscription(tracking_id, subscription, outcome, log)

        payment_callbacks_total.labels(target="unknown", outcome="not_found").inc()
        log.warning("payment_callback_unmatched")
        raise NotFoundError(f"No payment found for tracking id '{tracking_id}'")

    async def _apply_to_appointment(
        self,
        tracking_id: str,
        appointment: Any,
        outcome: PaymentStatus | None,
        payload: dict[str, Any],
        log: Any,
    ) -> CallbackResult:
        log = log.bind(appointment_id=str(appointment["id"]))

        if outcome is None:
            payment_callbacks_total.labels(target="appointment", outcome="interim").inc()
            log.info("payment_callback_interim")
            return CallbackResult(
                tracking_id=tracking_id,
                target="appointment",
                applied=False,
                payment_status=appointment["payment_status"],
            )

        updated = await self.appointments.set_payment_status(tracking_id, outcome)
        if updated is not None:
            payment_callbacks_total.labels(target="appointment", outcome=outcome.value).inc()
            log.info(
                "payment_callback_applied",
                payment_status=updated["payment_status"],
                status=updated["status"],
                failed_reason=payload.get("failed_reason"),
            )
            return CallbackResult(
                tracking_id=tracking_id,
                target="appointment",
                applied=True,
                payment_status=updated["payment_status"],
            )

        current = await self.appointments.get_row(appointment["id"])
        if (
            outcome == PaymentStatus.COMPLETED
            and current["payment_status"] == PaymentStatus.PENDING.value
            and current["status"] == AppointmentStatus.CANCELLED.value
        ):
            payment_callbacks_total.labels(target="appointment", outcome="cancelled").inc()
            log.warning("payment_received_for_cancelled_appointment")
        else:
            payment_callbacks_total.labels(target="appointment", outcome="duplicate").inc()
            log.info("payment_callback_duplicate", payment_status=current["payment_status"])

        return CallbackResult(
            tracking_id=tracking_id,
            target="appointment",
            applied=False,
            payment_status=current["payment_status"],
        )

    async def _apply_to_subscription(
        self,
        tracking_id: str,
        subscription: Any,
        outcome: PaymentStatus | None,
        log: Any,
    ) -> CallbackResult:
        log = log.bind(subscription_id=str(subscription["id"]))

        if outcome is None:
            payment_callbacks_total.labels(target="subscription", outcome="interim").inc()
            log.info("payment_callback_interim")
            return CallbackResult(
                tracking_id=tracking_id,
                target="subscription",
                applied=False,
                payment_status=SUBSCRIPTION_PAYMENT_STATUS[subscription["status"]],
            )

        if outcome == PaymentStatus.COMPLETED:
            row = await self.subscriptions.activate(tracking_id)
        else:
            row = await self.subscriptions.mark_failed(tracking_id)

        applied = row is not None
        if not applied:
            row = await self.subscriptions.get_by_tracking_id(tracking_id)

        payment_callbacks_total.labels(
            target="subscription",
            outcome=outcome.value if applied else "duplicate",
        ).inc()
        log.info(
            "subscription_callback_processed",
            applied=applied,
            outcome=outcome.value,
            status=row["status"],
        )

        return CallbackResult(
            tracking_id=tracking_id,
            target="subscription",
            applied=applied,
            payment_status=SUBSCRIPTION_PAYMENT_STATUS[row["status"]],
        )
