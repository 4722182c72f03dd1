"""HMAC-SHA256 payload signing.

The signature covers the exact bytes sent as the request body, so the
serialization here is the single source of truth for both.
"""

from __future__ import annotations

import hashlib
import hmac
import json
from collections.abc import Mapping
from typing import Any


def canonical_json(payload: Mapping[str, Any]) -> bytes:
    """Serialize a payload to its wire bytes.

    Compact separators, insertion-ordered keys and unescaped UTF-8, matching
    what JavaScript's JSON.stringify produces for the same object.

    Args:
        payload: JSON-serializable mapping.

    Returns:
        UTF-8 encoded JSON body.
    """
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def sign_body(secret: str, body: bytes) -> str:
    """Compute the HMAC-SHA256 signature of a raw request body.

    Args:
        secret: Shared secret for HMAC.
        body: Bytes that are (or were) sent over the wire.

    Returns:
        Signature in format "sha256=<hex_digest>".
    """
    signature = hmac.new(
        key=secret.encode("utf-8"),
        msg=body,
        digestmod=hashlib.sha256,
    ).hexdigest()
    return f"sha256={signature}"


def sign(secret: str, payload: Mapping[str, Any]) -> str:
    """Compute the signature for a payload as it will be transmitted.

    Args:
        secret: Shared secret for HMAC.
        payload: JSON-serializable mapping.

    Returns:
        Signature in format "sha256=<hex_digest>".
    """
    return sign_body(secret, canonical_json(payload))


def verify_signature(secret: str, body: bytes | str, signature: str) -> bool:
    """Verify a received body against its X-Webhook-Signature header.

    Receivers should pass the raw request body, not a re-serialized copy.

    Args:
        secret: Shared secret for HMAC.
        body: Raw request body.
        signature: Header value (format: "sha256=<hex_digest>").

    Returns:
        True if signature is valid, False otherwise.
    """
    if isinstance(body, str):
        body = body.encode("utf-8")
    expected = sign_body(secret, body)
    return hmac.compare_digest(expected, signature)
