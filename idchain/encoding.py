"""
Deterministic encodings shared by the publish and resolve paths.

Operation envelopes are serialized as canonical JSON before they are
ABI-encoded into call data, so the same envelope always produces the same
ledger payload. Payloads inside an envelope are base64url without padding.
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any


def canonical_json(obj: Any) -> str:
    """Serialize ``obj`` with sorted keys, no whitespace, UTF-8 preserved."""
    return json.dumps(
        obj,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )


def canonical_json_bytes(obj: Any) -> bytes:
    """Serialize to canonical JSON as UTF-8 bytes."""
    return canonical_json(obj).encode("utf-8")


def b64url_encode(data: bytes) -> str:
    """Base64url-encode without trailing padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(value: str) -> bytes:
    """Decode base64url, tolerating missing padding.

    Raises:
        ValueError: If ``value`` is not valid base64url.
    """
    if any(c in value for c in "+/"):
        raise ValueError("not base64url: contains '+' or '/'")
    padded = value + "=" * (-len(value) % 4)
    try:
        return base64.b64decode(padded.encode("ascii"), altchars=b"-_", validate=True)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise ValueError(f"not base64url: {exc}") from exc
