"""Domain metrics exposed alongside the HTTP metrics at ``/metrics``."""

from prometheus_client import Counter

payment_initiations_total = Counter(
    "doorstep_payment_initiations_total",
    "STK push initiations sent to the payment provider",
    ["purpose", "outcome"],
)

payment_callbacks_total = Counter(
    "doorstep_payment_callbacks_total",
    "Payment provider callbacks received",
    ["target", "outcome"],
)
