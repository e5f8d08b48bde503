"""WebSub `X-Hub-Signature` verification."""

from __future__ import annotations

import hashlib
import hmac
from typing import Optional

SUPPORTED_ALGORITHM = "sha1"


def compute_signature(secret: str, body: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha1).hexdigest()


def verify_signature(secret: str, body: bytes, header: Optional[str]) -> bool:
    """
    Check an `algo=hexdigest` header against HMAC(secret, body).

    Only sha1 is accepted. The comparison is constant-time.
    """
    if not header or not secret:
        return False

    algo, sep, received = header.partition("=")
    if not sep or algo.strip().lower() != SUPPORTED_ALGORITHM:
        return False

    expected = compute_signature(secret, body)
    return hmac.compare_digest(
        expected.encode("ascii"),
        received.strip().lower().encode("utf-8", "replace"),
    )
