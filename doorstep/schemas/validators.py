"""Input normalization shared by schemas and services."""

import re

_SEPARATORS = re.compile(r"[\s\-()]")
# Safaricom/Airtel style mobile numbers: 2547XXXXXXXX or 2541XXXXXXXX
_KENYAN_MSISDN = re.compile(r"^254[17]\d{8}$")


def normalize_msisdn(value: str) -> str:
    """
    Normalize a Kenyan mobile number to the ``2547XXXXXXXX`` form M-Pesa expects.

    Accepts ``0712 345 678``, ``+254712345678``, ``254712345678`` and
    ``712345678``.

    Raises:
        ValueError: If the value is not a Kenyan mobile number
    """
    cleaned = _SEPARATORS.sub("", value or "").lstrip("+")
    if cleaned.startswith("0"):
        cleaned = "254" + cleaned[1:]
    elif len(cleaned) == 9 and cleaned[0] in "17":
        cleaned = "254" + cleaned
    if not _KENYAN_MSISDN.match(cleaned):
        raise ValueError("Phone number must be a Kenyan mobile number, e.g. 254712345678")
    return cleaned


def mask_msisdn(value: str | None) -> str | None:
    """Hide all but the last three digits of a phone number for logging."""
    if not value:
        return value
    return "*" * max(len(value) - 3, 0) + value[-3:]


def clean_list(values: list[str] | None) -> list[str]:
    """Strip entries, drop blanks and duplicates, keep first-seen order."""
    seen: dict[str, None] = {}
    for item in values or []:
        stripped = item.strip()
        if stripped and stripped not in seen:
            seen[stripped] = None
    return list(seen)
