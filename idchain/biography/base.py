"""
Biography: the reconstructed history and status of one registry subject.

A biography is an ordered tuple of ``TransactionRecord`` (index 0 is the
earliest operation) plus a status. Two thin variants share everything here:

    - ``DIDBiography``         keyed by a DID,        status DIDStatus
    - ``CredentialBiography``  keyed by a DID URL,    status CredentialStatus

Construction paths:
    - ``Biography.from_dict``: parse a resolver response and sanitize it.
    - ``BiographyBuilder``: append records during a ledger scan, then
      ``build()`` a frozen, sanitized biography.

Either way a caller only ever sees a sanitized biography. There is no
public mutation; the builder is the only place records are appended.

Sanitation rules (``sanitize``):
    1. The subject id is present and well-formed.
    2. NOT_FOUND ⇔ no transactions.
    3. Every record passes ``TransactionRecord.sanitize``; the first failure
       is wrapped as MalformedBiographyError with the record error as cause.
    4. Timestamps never decrease, and a record's previousTxid names the
       record before it.

Wire shape:
    {"did" | "id": "...", "status": 0 | 2 | 3, "transaction": [...]}
    ``transaction`` is omitted when empty.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, ClassVar, Generic, Iterator, TypeVar

from idchain.biography.transaction import OperationVocabulary, TransactionRecord
from idchain.errors import (
    MalformedBiographyError,
    MalformedIdentifierError,
    MalformedTransactionError,
)

STATUS_FIELD = "status"
TRANSACTION_FIELD = "transaction"

# Status code 1 ("expired") is reserved by the wire format and never used.
RESERVED_STATUS_CODE = 1


def decode_status(status_type: type[IntEnum], code: Any) -> Any:
    """Decode a wire status code into ``status_type``.

    Raises:
        ValueError: For non-integers, the reserved code 1, and unknown codes.
    """
    if isinstance(code, bool) or not isinstance(code, int):
        raise ValueError(f"status must be an integer, got: {code!r}")
    if code == RESERVED_STATUS_CODE:
        raise ValueError("status code 1 is reserved")
    return status_type(code)


StatusT = TypeVar("StatusT", bound=IntEnum)
BiographyT = TypeVar("BiographyT", bound="Biography[Any]")


@dataclass(frozen=True)
class Biography(Generic[StatusT]):
    """Ordered registry history of one subject plus its status.

    Subclasses set:
        ID_FIELD: wire name of the subject id ("did" or "id").
        STATUS_TYPE: IntEnum with VALID, NOT_FOUND, and a terminal member.
        TERMINAL_STATUS: status after the vocabulary's terminal operation.
        VOCABULARY: accepted operations.
    """

    ID_FIELD: ClassVar[str]
    STATUS_TYPE: ClassVar[type[IntEnum]]
    TERMINAL_STATUS: ClassVar[IntEnum]
    VOCABULARY: ClassVar[OperationVocabulary]

    subject_id: str | None
    status: StatusT
    transactions: tuple[TransactionRecord, ...] = ()

    # -----------------------------------------------------------------
    # Read-only sequence view
    # -----------------------------------------------------------------

    def __len__(self) -> int:
        return len(self.transactions)

    def __iter__(self) -> Iterator[TransactionRecord]:
        return iter(self.transactions)

    def __getitem__(self, index: int) -> TransactionRecord:
        return self.transactions[index]

    @property
    def latest(self) -> TransactionRecord | None:
        """Most recent transaction, or None when there is none."""
        return self.transactions[-1] if self.transactions else None

    @property
    def not_found(self) -> bool:
        return self.status == self.STATUS_TYPE["NOT_FOUND"]

    # -----------------------------------------------------------------
    # Sanitation
    # -----------------------------------------------------------------

    @classmethod
    def _check_subject(cls, subject_id: str) -> None:
        """Raise MalformedIdentifierError if the subject id is malformed."""
        raise NotImplementedError

    def sanitize(self) -> None:
        """Validate structure and status/transaction consistency.

        Raises:
            MalformedBiographyError: On the first violation found.
        """
        if not self.subject_id:
            raise MalformedBiographyError("missing id")
        try:
            self._check_subject(self.subject_id)
        except MalformedIdentifierError as exc:
            raise MalformedBiographyError(
                f"invalid id: {self.subject_id!r}", details={"id": self.subject_id}
            ) from exc

        if self.not_found:
            if self.transactions:
                raise MalformedBiographyError(
                    "should not include transaction", details={"id": self.subject_id}
                )
            return

        if not self.transactions:
            raise MalformedBiographyError(
                "missing transaction", details={"id": self.subject_id}
            )

        for index, record in enumerate(self.transactions):
            try:
                record.sanitize(self.VOCABULARY, self.subject_id)
            except MalformedTransactionError as exc:
                raise MalformedBiographyError(
                    "invalid transaction",
                    details={"id": self.subject_id, "index": index, "txid": record.txid},
                ) from exc

        self._check_order()

    def _check_order(self) -> None:
        for index in range(1, len(self.transactions)):
            before = self.transactions[index - 1]
            record = self.transactions[index]
            if record.timestamp < before.timestamp:
                raise MalformedBiographyError(
                    "transactions out of order",
                    details={"id": self.subject_id, "index": index, "txid": record.txid},
                )
            previous = record.operation.previous_txid
            if previous is not None and previous != before.txid:
                raise MalformedBiographyError(
                    "broken transaction chain",
                    details={
                        "id": self.subject_id,
                        "index": index,
                        "previous_txid": previous,
                        "expected": before.txid,
                    },
                )

    # -----------------------------------------------------------------
    # Derived status
    # -----------------------------------------------------------------

    @classmethod
    def derive_status(cls, transactions: tuple[TransactionRecord, ...]) -> IntEnum:
        """Status implied by a chronological history."""
        if not transactions:
            return cls.STATUS_TYPE["NOT_FOUND"]
        if transactions[-1].operation.kind == cls.VOCABULARY.terminal_operation:
            return cls.TERMINAL_STATUS
        return cls.STATUS_TYPE["VALID"]

    # -----------------------------------------------------------------
    # Serialization
    # -----------------------------------------------------------------

    def to_dict(self) -> dict[str, object]:
        result: dict[str, object] = {
            self.ID_FIELD: self.subject_id,
            STATUS_FIELD: int(self.status),
        }
        if self.transactions:
            result[TRANSACTION_FIELD] = [tx.to_dict() for tx in self.transactions]
        return result

    @classmethod
    def from_dict(cls: type[BiographyT], data: Any) -> BiographyT:
        """Parse a wire biography and sanitize it.

        Raises:
            MalformedBiographyError: If anything about it is malformed.
        """
        if not isinstance(data, dict):
            raise MalformedBiographyError(
                f"biography must be an object, got: {type(data).__name__}"
            )

        subject_id = data.get(cls.ID_FIELD)
        if not subject_id:
            raise MalformedBiographyError("missing id")
        if not isinstance(subject_id, str):
            raise MalformedBiographyError(f"invalid id: {subject_id!r}")

        if STATUS_FIELD not in data:
            raise MalformedBiographyError("missing status", details={"id": subject_id})
        try:
            status = decode_status(cls.STATUS_TYPE, data[STATUS_FIELD])
        except ValueError as exc:
            raise MalformedBiographyError(
                f"invalid status: {data[STATUS_FIELD]!r}", details={"id": subject_id}
            ) from exc

        raw_txs = data.get(TRANSACTION_FIELD)
        if raw_txs is None:
            raw_txs = []
        if not isinstance(raw_txs, list):
            raise MalformedBiographyError(
                "transaction must be an array", details={"id": subject_id}
            )

        records: list[TransactionRecord] = []
        for index, raw in enumerate(raw_txs):
            try:
                records.append(TransactionRecord.from_dict(raw, subject_id))
            except MalformedTransactionError as exc:
                raise MalformedBiographyError(
                    "invalid transaction", details={"id": subject_id, "index": index}
                ) from exc

        biography = cls(subject_id=subject_id, status=status, transactions=tuple(records))
        biography.sanitize()
        return biography


# =========================================================================
# Builder
# =========================================================================


class BiographyBuilder(Generic[BiographyT]):
    """Append-then-freeze assembly of a biography during a ledger scan.

    Appends are serialized by a lock so a multi-page scan may feed the
    builder from worker callbacks. ``build()`` freezes the result; the
    builder refuses further appends afterwards.
    """

    def __init__(self, biography_type: type[BiographyT], subject_id: str) -> None:
        self._type = biography_type
        self._subject_id = subject_id
        self._records: list[TransactionRecord] = []
        self._lock = threading.Lock()
        self._built = False

    @property
    def subject_id(self) -> str:
        return self._subject_id

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def append(self, record: TransactionRecord) -> None:
        """Append a record at the tail (chronological order)."""
        with self._lock:
            if self._built:
                raise RuntimeError("biography already built; appends are closed")
            self._records.append(record)

    def append_dict(self, data: Any) -> TransactionRecord:
        """Parse a wire transaction for this subject and append it.

        Raises:
            MalformedTransactionError: If the wire transaction is malformed.
        """
        record = TransactionRecord.from_dict(data, self._subject_id)
        self.append(record)
        return record

    def build(self, status: IntEnum | None = None) -> BiographyT:
        """Freeze and sanitize.

        Args:
            status: Explicit status. When None it is derived from the
                history (see ``Biography.derive_status``).

        Raises:
            MalformedBiographyError: If the assembled biography is invalid.
        """
        with self._lock:
            self._built = True
            records = tuple(self._records)
        if status is None:
            status = self._type.derive_status(records)
        biography = self._type(
            subject_id=self._subject_id,
            status=status,
            transactions=records,
        )
        biography.sanitize()
        return biography
