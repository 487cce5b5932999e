"""
Ledger client protocol: the network boundary.

The publisher depends on this interface, not on a concrete RPC library,
so fee policy, polling, and confirmation logic can be tested against
in-memory fakes.

Concrete implementations:
    - JsonRpcClient (Ethereum-style JSON-RPC over an injectable transport)
    - FakeLedgerClient (tests)

Every method returns a small frozen dataclass. Node-reported failures are
captured as a structured ``RpcError`` (code + message) on the result rather
than raised; transport-level exceptions (connection refused, TLS, timeout)
may propagate and are mapped by the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


# =========================================================================
# Result types
# =========================================================================


@dataclass(frozen=True)
class RpcError:
    """Structured error reported by the RPC node."""

    code: int
    message: str

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


@dataclass(frozen=True)
class TransactionReceipt:
    """Receipt of a mined transaction.

    Attributes:
        tx_hash: Transaction hash (0x + 64 hex).
        block_number: Height of the block that includes the transaction.
        block_hash: Hash of that block, if reported.
        status: 1 for success, 0 for reverted. None on pre-Byzantium nodes.
        gas_used: Gas consumed, if reported.
    """

    tx_hash: str
    block_number: int
    block_hash: str | None = None
    status: int | None = None
    gas_used: int | None = None

    @property
    def reverted(self) -> bool:
        return self.status == 0


@dataclass(frozen=True)
class LedgerTransaction:
    """A transaction as reported by ``get_transaction_by_hash``.

    ``block_number`` is None while the transaction is still pending.
    """

    tx_hash: str
    block_number: int | None = None
    sender: str | None = None
    to: str | None = None

    @property
    def pending(self) -> bool:
        return self.block_number is None


@dataclass(frozen=True)
class SendResult:
    tx_hash: str | None = None
    error: RpcError | None = None


@dataclass(frozen=True)
class ReceiptResult:
    """``receipt`` is None (with no error) while the transaction is unmined."""

    receipt: TransactionReceipt | None = None
    error: RpcError | None = None


@dataclass(frozen=True)
class TransactionLookupResult:
    """``transaction`` is None (with no error) when the node does not know it."""

    transaction: LedgerTransaction | None = None
    error: RpcError | None = None


@dataclass(frozen=True)
class BlockNumberResult:
    block_number: int | None = None
    error: RpcError | None = None


# =========================================================================
# Protocol
# =========================================================================


@runtime_checkable
class LedgerClient(Protocol):
    """Interface for ledger RPC operations used by the publisher."""

    async def send_transaction(self, tx: dict[str, Any]) -> SendResult:
        """Submit a call transaction; the node signs for ``tx["from"]``."""
        ...

    async def get_transaction_receipt(self, tx_hash: str) -> ReceiptResult:
        ...

    async def get_transaction_by_hash(self, tx_hash: str) -> TransactionLookupResult:
        ...

    async def get_block_number(self) -> BlockNumberResult:
        ...
