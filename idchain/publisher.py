"""
Transaction publisher for identity-registry operations.

Composes the pure planning layer (calldata.py, tx.py) with the network
boundary (LedgerClient) to put one operation on the ledger and wait for it
to be mined.

One call to ``publish()`` does:
    1. Encode the payload as registry call data (ValueError on bad input).
    2. Build the call transaction with the configured fee policy.
    3. Submit it once. Any RPC failure → SubmissionError, never resubmitted.
    4. Remember the hash as ``last_tx_hash``.
    5. Poll for the receipt up to ``max_wait_attempts`` times, sleeping
       ``wait_interval`` between polls. RPC failure → ReceiptQueryError;
       budget exhausted → ConfirmationTimeoutError.

``last_tx_hash`` survives every failure after step 4, including task
cancellation during the wait: the transaction is not retractable, only the
local wait is. ``is_available()`` uses it as a single-outstanding-write
admission gate.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass
from typing import Awaitable, Callable

from idchain.config import PublisherConfig
from idchain.errors import (
    ConfirmationQueryError,
    ConfirmationTimeoutError,
    ReceiptQueryError,
    SubmissionError,
)
from idchain.ledger.account import LedgerAccount
from idchain.ledger.calldata import encode_record_operation
from idchain.ledger.client import LedgerClient, TransactionReceipt
from idchain.ledger.jsonrpc_client import JsonRpcClient
from idchain.ledger.transport import HttpxTransport, JsonRpcTransport
from idchain.ledger.tx import plan_registry_call

LOGGER = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class PublishResult:
    """Outcome of a successful publish.

    Attributes:
        tx_hash: Hash of the submitted transaction.
        receipt: Receipt of the mined transaction.
        attempts: Receipt polls it took (1 = mined on the first poll).
    """

    tx_hash: str
    receipt: TransactionReceipt
    attempts: int


@dataclass(frozen=True)
class Confirmation:
    """Confirmation depth of a transaction at one point in time.

    ``found`` is False when the ledger does not report the transaction.
    ``confirmations`` is None unless the transaction is found and mined.
    """

    tx_hash: str
    found: bool
    block_number: int | None = None
    head: int | None = None

    @property
    def pending(self) -> bool:
        return self.found and self.block_number is None

    @property
    def confirmations(self) -> int | None:
        if self.block_number is None or self.head is None:
            return None
        return self.head - self.block_number


# =========================================================================
# ConfirmationTracker
# =========================================================================


class ConfirmationTracker:
    """Computes confirmation depth: chain head minus the transaction's block."""

    def __init__(self, client: LedgerClient, wait_for_confirms: int) -> None:
        self._client = client
        self._wait_for_confirms = wait_for_confirms

    @property
    def wait_for_confirms(self) -> int:
        return self._wait_for_confirms

    async def check(self, tx_hash: str) -> Confirmation:
        """Look up ``tx_hash`` and the current head.

        Raises:
            ConfirmationQueryError: On any RPC failure.
        """
        try:
            lookup = await self._client.get_transaction_by_hash(tx_hash)
        except Exception as exc:
            raise ConfirmationQueryError(
                f"transaction lookup failed: {exc}", details={"tx_hash": tx_hash}
            ) from exc
        if lookup.error is not None:
            raise ConfirmationQueryError(
                f"transaction lookup failed: {lookup.error}",
                details={"tx_hash": tx_hash, "rpc_code": lookup.error.code},
            )
        if lookup.transaction is None:
            return Confirmation(tx_hash=tx_hash, found=False)
        if lookup.transaction.pending:
            return Confirmation(tx_hash=tx_hash, found=True)

        try:
            height = await self._client.get_block_number()
        except Exception as exc:
            raise ConfirmationQueryError(
                f"block number query failed: {exc}", details={"tx_hash": tx_hash}
            ) from exc
        if height.error is not None or height.block_number is None:
            raise ConfirmationQueryError(
                f"block number query failed: {height.error}",
                details={"tx_hash": tx_hash},
            )

        return Confirmation(
            tx_hash=tx_hash,
            found=True,
            block_number=lookup.transaction.block_number,
            head=height.block_number,
        )

    async def confirmations(self, tx_hash: str) -> int | None:
        """Blocks on top of ``tx_hash``'s block; None if unknown or pending."""
        return (await self.check(tx_hash)).confirmations

    async def is_settled(self, tx_hash: str) -> bool:
        """True once ``tx_hash`` has at least ``wait_for_confirms`` confirmations.

        A transaction the ledger no longer reports counts as settled: it
        cannot block further writes. A pending transaction never does.
        """
        status = await self.check(tx_hash)
        if not status.found:
            LOGGER.info("tx %s not reported by ledger; treating as settled", tx_hash)
            return True
        confirmations = status.confirmations
        if confirmations is None:
            return False
        LOGGER.debug(
            "tx %s has %d/%d confirmations", tx_hash, confirmations, self._wait_for_confirms
        )
        return confirmations >= self._wait_for_confirms


# =========================================================================
# TransactionPublisher
# =========================================================================


class TransactionPublisher:
    """Publishes registry operations and tracks the last submitted write.

    Args:
        client: Ledger client for network operations.
        account: Submitting account (``from`` address).
        config: Contract address, fee policy, and wait policy.
        sleep: Async sleep used between receipt polls. Inject for tests.
    """

    def __init__(
        self,
        client: LedgerClient,
        account: LedgerAccount,
        config: PublisherConfig,
        *,
        sleep: SleepFn | None = None,
    ) -> None:
        self._client = client
        self._account = account
        self._config = config
        self._sleep = sleep or asyncio.sleep
        self._tracker = ConfirmationTracker(client, config.wait_for_confirms)
        self._lock = threading.Lock()
        self._last_tx_hash: str | None = None

    @classmethod
    def from_config(
        cls,
        config: PublisherConfig,
        account: LedgerAccount,
        *,
        transport: JsonRpcTransport | None = None,
    ) -> TransactionPublisher:
        """Build a publisher talking JSON-RPC to ``config.rpc_url``."""
        client = JsonRpcClient(
            config.rpc_url,
            transport=transport or HttpxTransport(timeout=config.rpc_timeout),
        )
        return cls(client, account, config)

    @property
    def config(self) -> PublisherConfig:
        return self._config

    @property
    def tracker(self) -> ConfirmationTracker:
        return self._tracker

    @property
    def last_tx_hash(self) -> str | None:
        """Hash of the most recent submission, whether or not it was confirmed."""
        with self._lock:
            return self._last_tx_hash

    def _remember(self, tx_hash: str) -> None:
        with self._lock:
            self._last_tx_hash = tx_hash

    # -----------------------------------------------------------------
    # publish
    # -----------------------------------------------------------------

    async def publish(self, payload: bytes, memo: str | None = None) -> PublishResult:
        """Submit one registry operation and wait for its receipt.

        Args:
            payload: UTF-8 bytes of the signed operation envelope.
            memo: Free-form note attached to log records only.

        Returns:
            PublishResult with the hash, receipt, and poll count.

        Raises:
            ValueError: If the payload cannot be encoded.
            SubmissionError: If the node rejects or cannot take the transaction.
            ReceiptQueryError: If a receipt poll fails at the RPC level.
            ConfirmationTimeoutError: If no receipt appears within the budget.
        """
        data = encode_record_operation(payload)
        tx = plan_registry_call(
            self._account.address,
            self._config.contract_address,
            data,
            self._config.fee_policy,
        )

        tx_hash = await self._submit(tx, memo)
        self._remember(tx_hash)
        LOGGER.info("submitted tx %s from %s (memo=%r)", tx_hash, tx["from"], memo)

        receipt, attempts = await self._wait_for_receipt(tx_hash)
        if receipt.reverted:
            LOGGER.warning(
                "tx %s mined in block %d but reverted", tx_hash, receipt.block_number
            )
        else:
            LOGGER.info(
                "tx %s mined in block %d after %d poll(s)",
                tx_hash,
                receipt.block_number,
                attempts,
            )
        return PublishResult(tx_hash=tx_hash, receipt=receipt, attempts=attempts)

    async def _submit(self, tx: dict[str, object], memo: str | None) -> str:
        try:
            result = await self._client.send_transaction(tx)
        except Exception as exc:
            raise SubmissionError(
                f"error sending transaction: {exc}", details={"memo": memo}
            ) from exc

        if result.error is not None:
            raise SubmissionError(
                f"error sending transaction: {result.error.message}",
                details={"rpc_code": result.error.code, "memo": memo},
            )
        if not result.tx_hash:
            raise SubmissionError("node accepted the transaction but returned no hash")
        return result.tx_hash

    async def _wait_for_receipt(self, tx_hash: str) -> tuple[TransactionReceipt, int]:
        max_attempts = self._config.max_wait_attempts
        for attempt in range(1, max_attempts + 1):
            try:
                result = await self._client.get_transaction_receipt(tx_hash)
            except Exception as exc:
                raise ReceiptQueryError(
                    f"error querying receipt: {exc}", details={"tx_hash": tx_hash}
                ) from exc

            if result.error is not None:
                raise ReceiptQueryError(
                    f"error querying receipt: {result.error.message}",
                    details={"tx_hash": tx_hash, "rpc_code": result.error.code},
                )
            if result.receipt is not None:
                return result.receipt, attempt

            LOGGER.debug("tx %s not mined yet (poll %d/%d)", tx_hash, attempt, max_attempts)
            if attempt < max_attempts:
                await self._sleep(self._config.wait_interval)

        LOGGER.warning("tx %s not mined after %d polls", tx_hash, max_attempts)
        raise ConfirmationTimeoutError(
            f"transaction {tx_hash} not mined after {max_attempts} polls",
            tx_hash=tx_hash,
            attempts=max_attempts,
        )

    # -----------------------------------------------------------------
    # availability
    # -----------------------------------------------------------------

    async def is_available(self) -> bool:
        """True when no earlier write from this publisher is still settling.

        Raises:
            ConfirmationQueryError: On any RPC failure.
        """
        tx_hash = self.last_tx_hash
        if tx_hash is None:
            return True
        return await self._tracker.is_settled(tx_hash)
