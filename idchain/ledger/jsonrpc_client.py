"""
Ledger JSON-RPC client: real network implementation of LedgerClient.

Translates Ethereum-style JSON-RPC responses into the result dataclasses
of ``idchain.ledger.client``. Uses an injectable transport
(``JsonRpcTransport``) so the HTTP layer can be swapped for test fakes.

No retry loops, no secrets, no business logic beyond response parsing.

Methods used:
    - eth_sendTransaction        → SendResult
    - eth_getTransactionReceipt  → ReceiptResult (null result = not mined)
    - eth_getTransactionByHash   → TransactionLookupResult (null = unknown)
    - eth_blockNumber            → BlockNumberResult

Quantities travel as 0x-hex strings on the wire and as ints in results.
"""

from __future__ import annotations

import itertools
from typing import Any

from idchain.ledger.client import (
    BlockNumberResult,
    LedgerTransaction,
    ReceiptResult,
    RpcError,
    SendResult,
    TransactionLookupResult,
    TransactionReceipt,
)
from idchain.ledger.transport import HttpxTransport, JsonRpcTransport

# Error code used when a response is structurally unusable.
MALFORMED_RESPONSE_CODE = -32603

_QUANTITY_FIELDS = ("value", "gas", "gasPrice", "nonce")

_request_ids = itertools.count(1)


def build_request(method: str, params: list[Any]) -> dict[str, Any]:
    """Build a JSON-RPC 2.0 request body."""
    return {
        "jsonrpc": "2.0",
        "method": method,
        "params": params,
        "id": next(_request_ids),
    }


def split_response(response: dict[str, Any]) -> tuple[Any, RpcError | None]:
    """Separate a JSON-RPC response into (result, error)."""
    error = response.get("error")
    if error is not None:
        if isinstance(error, dict):
            return None, RpcError(
                code=int(error.get("code", MALFORMED_RESPONSE_CODE)),
                message=str(error.get("message", "unknown error")),
            )
        return None, RpcError(code=MALFORMED_RESPONSE_CODE, message=str(error))
    if "result" not in response:
        return None, RpcError(
            code=MALFORMED_RESPONSE_CODE, message="response has neither result nor error"
        )
    return response["result"], None


def to_quantity(value: int) -> str:
    """Encode an int as a JSON-RPC quantity ("0x0", "0x1a", ...)."""
    if value < 0:
        raise ValueError(f"quantity must be >= 0, got: {value}")
    return hex(value)


def from_quantity(value: Any) -> int | None:
    """Decode a JSON-RPC quantity; None passes through.

    Raises:
        ValueError: If value is neither None, an int, nor 0x-hex.
    """
    if value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.startswith("0x"):
        return int(value, 16)
    raise ValueError(f"not a hex quantity: {value!r}")


class JsonRpcClient:
    """Ledger JSON-RPC client implementing the LedgerClient protocol.

    Args:
        url: The node's JSON-RPC endpoint.
        transport: Injectable transport. Defaults to HttpxTransport.
    """

    def __init__(
        self,
        url: str,
        transport: JsonRpcTransport | None = None,
    ) -> None:
        self._url = url
        self._transport = transport or HttpxTransport()

    @property
    def url(self) -> str:
        return self._url

    async def _call(self, method: str, params: list[Any]) -> tuple[Any, RpcError | None]:
        response = await self._transport.post_json(self._url, build_request(method, params))
        return split_response(response)

    # -----------------------------------------------------------------
    # LedgerClient protocol methods
    # -----------------------------------------------------------------

    async def send_transaction(self, tx: dict[str, Any]) -> SendResult:
        """Submit via ``eth_sendTransaction``.

        Transport exceptions propagate; the publisher maps them to
        SubmissionError.
        """
        result, error = await self._call("eth_sendTransaction", [_encode_tx(tx)])
        if error is not None:
            return SendResult(error=error)
        if not isinstance(result, str) or not result:
            return SendResult(
                error=RpcError(
                    code=MALFORMED_RESPONSE_CODE,
                    message=f"eth_sendTransaction returned no hash: {result!r}",
                )
            )
        return SendResult(tx_hash=result)

    async def get_transaction_receipt(self, tx_hash: str) -> ReceiptResult:
        result, error = await self._call("eth_getTransactionReceipt", [tx_hash])
        if error is not None:
            return ReceiptResult(error=error)
        if result is None:
            return ReceiptResult()
        try:
            return ReceiptResult(receipt=_parse_receipt(result, tx_hash))
        except (KeyError, TypeError, ValueError) as exc:
            return ReceiptResult(
                error=RpcError(code=MALFORMED_RESPONSE_CODE, message=f"bad receipt: {exc}")
            )

    async def get_transaction_by_hash(self, tx_hash: str) -> TransactionLookupResult:
        result, error = await self._call("eth_getTransactionByHash", [tx_hash])
        if error is not None:
            return TransactionLookupResult(error=error)
        if result is None:
            return TransactionLookupResult()
        try:
            return TransactionLookupResult(transaction=_parse_transaction(result, tx_hash))
        except (TypeError, ValueError) as exc:
            return TransactionLookupResult(
                error=RpcError(
                    code=MALFORMED_RESPONSE_CODE, message=f"bad transaction: {exc}"
                )
            )

    async def get_block_number(self) -> BlockNumberResult:
        result, error = await self._call("eth_blockNumber", [])
        if error is not None:
            return BlockNumberResult(error=error)
        try:
            height = from_quantity(result)
        except ValueError as exc:
            return BlockNumberResult(
                error=RpcError(code=MALFORMED_RESPONSE_CODE, message=str(exc))
            )
        if height is None:
            return BlockNumberResult(
                error=RpcError(code=MALFORMED_RESPONSE_CODE, message="null block number")
            )
        return BlockNumberResult(block_number=height)


# =====================================================================
# Wire encoding / response parsing (pure functions, no I/O)
# =====================================================================


def _encode_tx(tx: dict[str, Any]) -> dict[str, Any]:
    encoded = dict(tx)
    for name in _QUANTITY_FIELDS:
        value = encoded.get(name)
        if isinstance(value, int):
            encoded[name] = to_quantity(value)
    return encoded


def _parse_receipt(result: dict[str, Any], tx_hash: str) -> TransactionReceipt:
    block_number = from_quantity(result["blockNumber"])
    if block_number is None:
        raise ValueError("receipt without blockNumber")
    return TransactionReceipt(
        tx_hash=result.get("transactionHash") or tx_hash,
        block_number=block_number,
        block_hash=result.get("blockHash"),
        status=from_quantity(result.get("status")),
        gas_used=from_quantity(result.get("gasUsed")),
    )


def _parse_transaction(result: dict[str, Any], tx_hash: str) -> LedgerTransaction:
    return LedgerTransaction(
        tx_hash=result.get("hash") or tx_hash,
        block_number=from_quantity(result.get("blockNumber")),
        sender=result.get("from"),
        to=result.get("to"),
    )
