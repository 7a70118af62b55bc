"""IntaSend M-Pesa STK push adapter."""

from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from doorstep.config import settings
from doorstep.core.exceptions import ConfigurationError, GatewayError
from doorstep.core.metrics import payment_initiations_total
from doorstep.schemas.validators import mask_msisdn

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PaymentInitiation:
    """What the provider returned for a push request."""

    tracking_id: str
    checkout_id: str | None
    state: str | None = None


class InstasendGateway:
    """Sends STK push prompts through the IntaSend REST API.

    One outbound call per request and no retries; a second call for the
    same charge sends a second prompt, so callers must guard against it.
    """

    STK_PUSH_PATH = "/api/v1/payment/mpesa-stk-push/"

    def __init__(
        self,
        secret_key: str | None,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.secret_key = secret_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls) -> "InstasendGateway":
        """Build a gateway from application settings."""
        return cls(
            secret_key=settings.instasend_secret_key,
            base_url=settings.instasend_base_url,
            timeout=settings.instasend_timeout_seconds,
        )

    async def initiate_payment(
        self,
        amount: int,
        phone_number: str,
        email: str | None,
        narrative: str,
        currency: str = "KES",
        api_ref: str | None = None,
        purpose: str = "appointment",
    ) -> PaymentInitiation:
        """
        Send one STK push prompt to the payer's phone.

        Args:
            amount: Whole units of ``currency``
            phone_number: Normalized MSISDN
            email: Payer email, forwarded to the provider
            narrative: Text shown on the provider's side
            currency: ISO currency code
            api_ref: Our idempotency reference, echoed back in callbacks
            purpose: Metric label (``appointment`` or ``subscription``)

        Returns:
            Provider tracking and checkout identifiers

        Raises:
            ConfigurationError: If the provider secret is not set
            GatewayError: On network failure, non-2xx, or a malformed response
        """
        if not self.secret_key:
            raise ConfigurationError("INSTASEND_SECRET_KEY is not set")

        payload: dict[str, Any] = {
            "amount": amount,
            "phone_number": phone_number,
            "email": email,
            "narrative": narrative,
            "currency": currency,
        }
        if api_ref:
            payload["api_ref"] = api_ref

        log = logger.bind(
            purpose=purpose,
            amount=amount,
            currency=currency,
            phone_number=mask_msisdn(phone_number),
            api_ref=api_ref,
        )
        log.info("payment_initiation_started")

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    self.STK_PUSH_PATH,
                    json=payload,
                    headers={"Authorization": f"Bearer {self.secret_key}"},
                )
        except httpx.HTTPError as e:
            payment_initiations_total.labels(purpose=purpose, outcome="network_error").inc()
            log.error("payment_initiation_unreachable", error=str(e))
            raise GatewayError(f"Payment provider unreachable: {e!s}") from e

        data = self._parse_body(response)

        if response.is_error:
            payment_initiations_total.labels(purpose=purpose, outcome="rejected").inc()
            message = data.get("message") or data.get("detail") or "Unknown error"
            log.warning(
                "payment_initiation_rejected",
                status_code=response.status_code,
                provider_message=message,
            )
            raise GatewayError(f"Instasend API error: {message}")

        invoice = data.get("invoice") or {}
        tracking_id = data.get("tracking_id") or invoice.get("invoice_id")
        if not tracking_id:
            payment_initiations_total.labels(purpose=purpose, outcome="malformed").inc()
            log.error("payment_initiation_missing_tracking_id", body=data)
            raise GatewayError("Instasend API error: response did not include a tracking id")

        payment_initiations_total.labels(purpose=purpose, outcome="sent").inc()
        log.info("payment_initiated", tracking_id=tracking_id)

        checkout_id = data.get("id")
        return PaymentInitiation(
            tracking_id=str(tracking_id),
            checkout_id=str(checkout_id) if checkout_id is not None else None,
            state=invoice.get("state") or data.get("state"),
        )

    @staticmethod
    def _parse_body(response: httpx.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            return {"message": response.text[:200] or response.reason_phrase}
        return data if isinstance(data, dict) else {"message": str(data)}
