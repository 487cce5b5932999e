"""
Call-transaction builder for registry writes.

Builds the unsigned transaction dict for a registry call. Pure and
deterministic: no nonce, no network state. The node assigns the nonce
and signs for ``from`` when it receives ``eth_sendTransaction``.

The builder enforces:
    - ``from`` and ``to`` are valid addresses (checksummed on output)
    - ``value`` is always 0 (registry writes never move funds)
    - ``data`` is non-empty 0x hex
    - fee parameters come from a ``FeePolicy``
"""

from __future__ import annotations

from web3 import Web3

from idchain.config import FeePolicy


def plan_registry_call(
    sender: str,
    contract_address: str,
    data: str,
    fee_policy: FeePolicy,
) -> dict[str, object]:
    """Build an unsigned registry call transaction.

    Args:
        sender: Address of the submitting account.
        contract_address: Identity-registry contract address.
        data: ``0x``-prefixed call data from ``encode_record_operation``.
        fee_policy: Gas price and gas limit.

    Returns:
        Transaction dict with integer quantities; the JSON-RPC client
        hex-encodes them on the wire.

    Raises:
        ValueError: If an address is invalid or data is empty.
    """
    if not Web3.is_address(sender):
        raise ValueError(f"sender must be a valid address, got: {sender!r}")
    if not Web3.is_address(contract_address):
        raise ValueError(
            f"contract_address must be a valid address, got: {contract_address!r}"
        )
    if not data or not data.startswith("0x") or len(data) <= 2:
        raise ValueError("data must be non-empty 0x-prefixed hex")

    return {
        "from": Web3.to_checksum_address(sender),
        "to": Web3.to_checksum_address(contract_address),
        "value": 0,
        "data": data,
        "gasPrice": fee_policy.fee_price,
        "gas": fee_policy.fee_limit,
    }
