"""
Call-data encoding for the identity-registry contract.

The registry exposes one write entry point:

    function operationDID(string payload)

A published operation is the canonical JSON of a signed envelope, passed
as that single string argument. Call data is the 4-byte keccak selector
of the function signature followed by the ABI encoding of the string.

Encoding is pure and deterministic. Invalid input is a programmer error
and raises ``ValueError`` immediately; the publisher never retries it.
"""

from __future__ import annotations

from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from web3 import Web3

# Registry entry point for recording an identity operation.
REGISTRY_FUNCTION = "operationDID"
REGISTRY_SIGNATURE = f"{REGISTRY_FUNCTION}(string)"

# First four bytes of keccak256(REGISTRY_SIGNATURE).
REGISTRY_SELECTOR: bytes = bytes(Web3.keccak(text=REGISTRY_SIGNATURE)[:4])


def encode_record_operation(payload: bytes) -> str:
    """Encode an operation payload as registry call data.

    Args:
        payload: UTF-8 bytes of the operation envelope.

    Returns:
        ``0x``-prefixed hex call data.

    Raises:
        ValueError: If payload is empty or not valid UTF-8.
    """
    if not payload:
        raise ValueError("payload must be non-empty")
    try:
        text = payload.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ValueError(f"payload must be UTF-8: {exc}") from exc

    data = REGISTRY_SELECTOR + abi_encode(["string"], [text])
    return "0x" + data.hex()


def decode_record_operation(data: str) -> bytes:
    """Recover the operation payload from registry call data.

    Raises:
        ValueError: If the selector does not match or the body is not
            a single ABI-encoded string.
    """
    raw = bytes.fromhex(data[2:] if data.startswith("0x") else data)
    if raw[:4] != REGISTRY_SELECTOR:
        raise ValueError(
            f"call data does not target {REGISTRY_SIGNATURE}: selector 0x{raw[:4].hex()}"
        )
    try:
        (text,) = abi_decode(["string"], raw[4:])
    except Exception as exc:
        raise ValueError(f"malformed call data: {exc}") from exc
    return text.encode("utf-8")
