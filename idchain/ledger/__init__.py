"""
Ledger boundary for identity-registry writes.

Public API:

    Pure layer (no I/O):
        - ``encode_record_operation()`` / ``decode_record_operation()``:
          registry call data.
        - ``plan_registry_call()``: unsigned call transaction dict.

    Protocols (for dependency injection):
        - ``LedgerClient``: network boundary (send, receipt, lookup, height).
        - ``LedgerAccount``: address of the submitting account.
        - ``JsonRpcTransport``: HTTP seam under the JSON-RPC client.

    Result types:
        - ``SendResult``, ``ReceiptResult``, ``TransactionLookupResult``,
          ``BlockNumberResult``, ``TransactionReceipt``, ``LedgerTransaction``,
          ``RpcError``.

    Concrete implementations:
        - ``JsonRpcClient``: Ethereum-style JSON-RPC.
        - ``HttpxTransport``: default httpx-based transport.
        - ``StaticAccount``: fixed, node-managed account address.
"""

from idchain.ledger.account import LedgerAccount, StaticAccount
from idchain.ledger.calldata import (
    REGISTRY_FUNCTION,
    REGISTRY_SELECTOR,
    REGISTRY_SIGNATURE,
    decode_record_operation,
    encode_record_operation,
)
from idchain.ledger.client import (
    BlockNumberResult,
    LedgerClient,
    LedgerTransaction,
    ReceiptResult,
    RpcError,
    SendResult,
    TransactionLookupResult,
    TransactionReceipt,
)
from idchain.ledger.jsonrpc_client import JsonRpcClient
from idchain.ledger.transport import HttpxTransport, JsonRpcTransport
from idchain.ledger.tx import plan_registry_call

__all__ = [
    "REGISTRY_FUNCTION",
    "REGISTRY_SELECTOR",
    "REGISTRY_SIGNATURE",
    "BlockNumberResult",
    "HttpxTransport",
    "JsonRpcClient",
    "JsonRpcTransport",
    "LedgerAccount",
    "LedgerClient",
    "LedgerTransaction",
    "ReceiptResult",
    "RpcError",
    "SendResult",
    "StaticAccount",
    "TransactionLookupResult",
    "TransactionReceipt",
    "decode_record_operation",
    "encode_record_operation",
    "plan_registry_call",
]
