"""Authentication of payment provider callbacks."""

import hashlib
import hmac

SIGNATURE_HEADER = "X-IntaSend-Signature"


def compute_signature(secret: str, payload: bytes) -> str:
    """HMAC-SHA256 of the raw payload, hex encoded."""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def constant_time_compare(a: str | None, b: str | None) -> bool:
    """Compare two strings in constant time; empty values never match."""
    if not a or not b:
        return False
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def verify_callback(
    secret: str,
    payload: bytes,
    signature: str | None,
    challenge: str | None = None,
) -> bool:
    """
    Check that a callback was sent by the provider.

    Accepts either a valid HMAC signature header or the ``challenge`` value
    the provider echoes back from its webhook configuration.

    Args:
        secret: Shared webhook secret
        payload: Raw request body
        signature: Value of the signature header, if any
        challenge: ``challenge`` field from the body, if any

    Returns:
        True if the callback is authentic
    """
    if signature and constant_time_compare(compute_signature(secret, payload), signature.lower()):
        return True
    return constant_time_compare(challenge, secret)
