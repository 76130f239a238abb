"""Webhook signature verification.

Miniflux signs every webhook delivery with HMAC-SHA256 over the raw request
body, keyed by the webhook secret, and sends the lowercase hex digest in the
X-Miniflux-Signature header.

Verification must happen on the raw bytes before the body is parsed.
A mismatch is a normal negative result (False), not an exception; only an
unusable secret raises.
"""

import hashlib
import hmac

from config import ConfigError

SIGNATURE_HEADER = "X-Miniflux-Signature"


def _key_bytes(secret: str | bytes) -> bytes:
    """Convert the shared secret into an HMAC key.

    Raises:
        ConfigError: If the secret is empty or not str/bytes
    """
    if isinstance(secret, str):
        secret = secret.encode("utf-8")
    if not isinstance(secret, (bytes, bytearray)) or not secret:
        raise ConfigError("Webhook secret is missing or unusable as an HMAC key")
    return bytes(secret)


def compute_signature(secret: str | bytes, body: bytes) -> str:
    """Compute the hex-encoded HMAC-SHA256 of a body.

    Args:
        secret: Shared webhook secret
        body: Raw request body (may be empty)

    Returns:
        Lowercase hex digest
    """
    return hmac.new(_key_bytes(secret), body, hashlib.sha256).hexdigest()


def verify_signature(secret: str | bytes, body: bytes, received: str) -> bool:
    """Check a received signature against the body.

    Args:
        secret: Shared webhook secret
        body: Raw request body
        received: Signature string taken from the request header

    Returns:
        True only when the received value equals the expected hex digest exactly
    """
    expected = compute_signature(secret, body)
    # Undecodable header bytes arrive as lone surrogates; they must compare unequal, not raise
    return hmac.compare_digest(expected.encode("ascii"), received.encode("utf-8", "surrogatepass"))
