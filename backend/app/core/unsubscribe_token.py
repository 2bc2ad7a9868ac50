"""
Signed unsubscribe tokens for email footer links.

A token proves "this request may change notification settings for user X"
without a database lookup. It is self-contained and verified by signature
and age alone.

Token Format:
-------------
    base64url("<user_id>:<issued_at_ms>") + "." + base64url(HMAC-SHA256(secret, payload))

Both parts use unpadded base64url. The signature covers the decoded payload
string, so the mailer (which issues tokens) and this service (which verifies
them) only need to share the secret.

Verification is deliberately opaque: a malformed token, a forged signature
and an expired token all produce the same ``None`` result and the same log
line. Callers cannot tell which check failed.
"""

import base64
import binascii
import hashlib
import hmac
import re
import time
from datetime import timedelta
from urllib.parse import urlencode

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

# Tokens issued slightly "in the future" are tolerated to absorb clock skew
# between the mailer host and this service.
CLOCK_SKEW_MS = 5 * 60 * 1000

_B64URL_RE = re.compile(r"[A-Za-z0-9_-]+")
_DIGITS_RE = re.compile(r"[0-9]+")


class UnsubscribeSecretMissing(RuntimeError):
    """Raised when a token must be issued but no signing secret is configured."""


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def _b64url_decode(s: str) -> bytes:
    padding = "=" * (-len(s) % 4)
    return base64.urlsafe_b64decode(s + padding)


def _sign(payload: str, secret: str) -> str:
    mac = hmac.new(secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256).digest()
    return _b64url(mac)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _default_max_age() -> timedelta:
    return timedelta(days=settings.UNSUBSCRIBE_TOKEN_MAX_AGE_DAYS)


def generate_unsubscribe_token(
    user_id: int,
    *,
    secret: str | None = None,
    now_ms: int | None = None,
) -> str:
    """
    Issue a signed unsubscribe token for ``user_id``.

    Args:
        user_id: Internal user id the token acts for
        secret: Signing secret (defaults to the configured one)
        now_ms: Issue time in epoch milliseconds (defaults to the current time)

    Returns:
        Opaque token string safe to embed in a URL

    Raises:
        UnsubscribeSecretMissing: If no signing secret is configured
    """
    secret = secret or settings.unsubscribe_signing_secret
    if not secret:
        raise UnsubscribeSecretMissing(
            "UNSUBSCRIBE_SECRET or CRON_SECRET must be set"
        )

    issued_at = _now_ms() if now_ms is None else now_ms
    payload = f"{user_id}:{issued_at}"
    return f"{_b64url(payload.encode('utf-8'))}.{_sign(payload, secret)}"


def verify_unsubscribe_token(
    token: str,
    *,
    secret: str | None = None,
    now_ms: int | None = None,
    max_age: timedelta | None = None,
) -> int | None:
    """
    Verify an unsubscribe token and return the user id it was issued for.

    Returns ``None`` when the token is structurally invalid, carries a bad
    signature, or is older than ``max_age`` (30 days by default). The
    function is pure: no I/O, no state, same answer for the same inputs.

    Example:
        >>> token = generate_unsubscribe_token(42, secret="k" * 32)
        >>> verify_unsubscribe_token(token, secret="k" * 32)
        42
        >>> verify_unsubscribe_token(token + "x", secret="k" * 32) is None
        True
    """
    user_id = _verify(
        token,
        secret=secret or settings.unsubscribe_signing_secret,
        now_ms=_now_ms() if now_ms is None else now_ms,
        max_age=_default_max_age() if max_age is None else max_age,
    )
    if user_id is None:
        # One log line for every failure cause; never the token itself
        logger.info("unsubscribe_token_rejected")
    return user_id


def _verify(token: str, *, secret: str | None, now_ms: int, max_age: timedelta) -> int | None:
    if not secret or not isinstance(token, str):
        return None

    parts = token.split(".")
    if len(parts) != 2 or not all(_B64URL_RE.fullmatch(part) for part in parts):
        return None
    encoded_payload, provided_signature = parts

    try:
        payload = _b64url_decode(encoded_payload).decode("utf-8")
    except (binascii.Error, ValueError):
        return None

    raw_user_id, sep, raw_issued_at = payload.rpartition(":")
    if not sep or not _DIGITS_RE.fullmatch(raw_user_id) or not _DIGITS_RE.fullmatch(raw_issued_at):
        return None

    # Signature first: nothing below runs for forged payloads
    expected_signature = _sign(payload, secret)
    if not hmac.compare_digest(
        provided_signature.encode("utf-8"), expected_signature.encode("utf-8")
    ):
        return None

    issued_at = int(raw_issued_at)
    age_ms = now_ms - issued_at
    if age_ms > max_age.total_seconds() * 1000 or age_ms < -CLOCK_SKEW_MS:
        return None

    user_id = int(raw_user_id)
    if user_id <= 0:
        return None
    return user_id


def build_unsubscribe_url(user_id: int, scope: str | None = None) -> str:
    """
    Build the footer link for an outgoing email.

    Example:
        https://qaskills.sh/unsubscribe?token=MTI6MTcw...&type=weekly
    """
    query = {"token": generate_unsubscribe_token(user_id)}
    if scope:
        query["type"] = scope
    return f"{settings.PUBLIC_BASE_URL.rstrip('/')}/unsubscribe?{urlencode(query)}"
