"""
Transaction records: one historical registry operation for one subject.

A record is produced by the resolution layer from ledger data and never
mutated afterwards. Validation happens in two stages:

    - ``TransactionRecord.from_dict`` checks wire structure against
      ``TRANSACTION_SCHEMA`` (jsonschema) and parses the timestamp.
    - ``TransactionRecord.sanitize`` checks semantics against the
      subject and the variant's operation vocabulary.

Both raise ``MalformedTransactionError``; the owning biography wraps it.

Wire shape:
    {
      "txid": "0x...",
      "timestamp": "2024-03-01T10:00:00Z",
      "operation": {
        "header":  {"specification": "elastos/did/1.0",
                    "operation": "update",
                    "previousTxid": "0x..."},          // optional
        "payload": "<base64url, no padding>",
        "proof":   {"type": "ECDSAsecp256r1",
                    "verificationMethod": "did:elastos:abc#primary",
                    "signature": "..."}
      }
    }
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import jsonschema  # type: ignore[import-untyped]

from idchain.encoding import b64url_decode, b64url_encode, canonical_json_bytes
from idchain.errors import MalformedIdentifierError, MalformedTransactionError
from idchain.identifiers import DID, DIDURL

DEFAULT_PROOF_TYPE = "ECDSAsecp256r1"

_TXID_RE = re.compile(r"^(0x)?[0-9a-fA-F]{64}$")

TRANSACTION_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["txid", "timestamp", "operation"],
    "properties": {
        "txid": {"type": "string", "minLength": 1},
        "timestamp": {"type": "string", "minLength": 1},
        "operation": {
            "type": "object",
            "required": ["header", "payload", "proof"],
            "properties": {
                "header": {
                    "type": "object",
                    "required": ["specification", "operation"],
                    "properties": {
                        "specification": {"type": "string"},
                        "operation": {"type": "string"},
                        "previousTxid": {"type": "string"},
                    },
                },
                "payload": {"type": "string"},
                "proof": {
                    "type": "object",
                    "required": ["verificationMethod", "signature"],
                    "properties": {
                        "type": {"type": "string"},
                        "verificationMethod": {"type": "string"},
                        "signature": {"type": "string"},
                    },
                },
            },
        },
    },
}


# =========================================================================
# Operation vocabularies
# =========================================================================


@dataclass(frozen=True)
class OperationVocabulary:
    """Operations a biography variant accepts.

    Attributes:
        specification: Required ``header.specification`` value.
        operations: Accepted ``header.operation`` values.
        document_operations: Operations whose payload is a JSON object.
            The rest carry the subject id as UTF-8 text.
        terminal_operation: Operation that ends the subject's life.
    """

    specification: str
    operations: frozenset[str]
    document_operations: frozenset[str]
    terminal_operation: str


DID_VOCABULARY = OperationVocabulary(
    specification="elastos/did/1.0",
    operations=frozenset({"create", "update", "transfer", "deactivate"}),
    document_operations=frozenset({"create", "update", "transfer"}),
    terminal_operation="deactivate",
)

CREDENTIAL_VOCABULARY = OperationVocabulary(
    specification="elastos/credential/1.0",
    operations=frozenset({"declare", "revoke"}),
    document_operations=frozenset({"declare"}),
    terminal_operation="revoke",
)


# =========================================================================
# Operation envelope
# =========================================================================


@dataclass(frozen=True)
class OperationHeader:
    specification: str
    operation: str
    previous_txid: str | None = None

    def to_dict(self) -> dict[str, str]:
        d = {"specification": self.specification, "operation": self.operation}
        if self.previous_txid is not None:
            d["previousTxid"] = self.previous_txid
        return d


@dataclass(frozen=True)
class OperationProof:
    verification_method: str
    signature: str
    type: str = DEFAULT_PROOF_TYPE

    def to_dict(self) -> dict[str, str]:
        return {
            "type": self.type,
            "verificationMethod": self.verification_method,
            "signature": self.signature,
        }


@dataclass(frozen=True)
class IdOperation:
    """A signed registry operation: the opaque envelope stored on-ledger."""

    header: OperationHeader
    payload: str
    proof: OperationProof

    @classmethod
    def for_document(
        cls,
        *,
        specification: str,
        operation: str,
        document: dict[str, Any],
        proof: OperationProof,
        previous_txid: str | None = None,
    ) -> IdOperation:
        """Build an envelope whose payload is a JSON document."""
        return cls(
            header=OperationHeader(specification, operation, previous_txid),
            payload=b64url_encode(canonical_json_bytes(document)),
            proof=proof,
        )

    @property
    def kind(self) -> str:
        return self.header.operation

    @property
    def previous_txid(self) -> str | None:
        return self.header.previous_txid

    def decoded_payload(self) -> bytes:
        """Raw payload bytes. Raises ValueError if not base64url."""
        return b64url_decode(self.payload)

    def payload_json(self) -> dict[str, Any]:
        """Payload as a JSON object. Raises ValueError otherwise."""
        value = json.loads(self.decoded_payload().decode("utf-8"))
        if not isinstance(value, dict):
            raise ValueError(f"payload is not a JSON object: {type(value).__name__}")
        return value

    def to_dict(self) -> dict[str, object]:
        return {
            "header": self.header.to_dict(),
            "payload": self.payload,
            "proof": self.proof.to_dict(),
        }

    def to_json_bytes(self) -> bytes:
        """Canonical JSON bytes: what gets published."""
        return canonical_json_bytes(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> IdOperation:
        header = data["header"]
        proof = data["proof"]
        return cls(
            header=OperationHeader(
                specification=header["specification"],
                operation=header["operation"],
                previous_txid=header.get("previousTxid"),
            ),
            payload=data["payload"],
            proof=OperationProof(
                verification_method=proof["verificationMethod"],
                signature=proof["signature"],
                type=proof.get("type", DEFAULT_PROOF_TYPE),
            ),
        )


# =========================================================================
# TransactionRecord
# =========================================================================


def _parse_timestamp(value: str) -> datetime:
    try:
        ts = datetime.fromisoformat(value)
    except ValueError as exc:
        raise MalformedTransactionError(f"invalid timestamp: {value!r}") from exc
    if ts.tzinfo is None:
        raise MalformedTransactionError(f"timestamp has no timezone: {value!r}")
    return ts


def _format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass(frozen=True)
class TransactionRecord:
    """One registry operation for one subject, as recorded on the ledger.

    Attributes:
        subject_id: DID (or credential DID URL) the operation applies to.
        txid: Ledger transaction hash.
        timestamp: Block time of the transaction (timezone-aware).
        operation: The signed operation envelope.
    """

    subject_id: str
    txid: str
    timestamp: datetime
    operation: IdOperation

    @classmethod
    def from_dict(cls, data: Any, subject_id: str) -> TransactionRecord:
        """Parse a wire transaction.

        Raises:
            MalformedTransactionError: On structural errors.
        """
        try:
            jsonschema.validate(instance=data, schema=TRANSACTION_SCHEMA)
        except jsonschema.ValidationError as exc:
            path = "/".join(str(p) for p in exc.absolute_path) or "<root>"
            raise MalformedTransactionError(
                f"invalid transaction at {path}: {exc.message}",
                details={"path": path},
            ) from exc

        return cls(
            subject_id=subject_id,
            txid=data["txid"],
            timestamp=_parse_timestamp(data["timestamp"]),
            operation=IdOperation.from_dict(data["operation"]),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "txid": self.txid,
            "timestamp": _format_timestamp(self.timestamp),
            "operation": self.operation.to_dict(),
        }

    def sanitize(self, vocabulary: OperationVocabulary, subject_id: str) -> None:
        """Check this record against its subject and vocabulary.

        Raises:
            MalformedTransactionError: On the first violation found.
        """
        if not _TXID_RE.match(self.txid):
            raise MalformedTransactionError(f"invalid txid: {self.txid!r}")
        if self.subject_id != subject_id:
            raise MalformedTransactionError(
                f"transaction {self.txid} belongs to {self.subject_id!r}, "
                f"not {subject_id!r}"
            )
        if self.timestamp.tzinfo is None:
            raise MalformedTransactionError(f"transaction {self.txid} has a naive timestamp")

        header = self.operation.header
        if header.specification != vocabulary.specification:
            raise MalformedTransactionError(
                f"unsupported specification {header.specification!r} "
                f"(expected {vocabulary.specification!r})"
            )
        if header.operation not in vocabulary.operations:
            raise MalformedTransactionError(
                f"unknown operation {header.operation!r} for {vocabulary.specification}"
            )

        self._check_payload(vocabulary, subject_id)
        self._check_proof(subject_id)

    def _check_payload(self, vocabulary: OperationVocabulary, subject_id: str) -> None:
        try:
            if self.operation.kind in vocabulary.document_operations:
                document = self.operation.payload_json()
                declared = document.get("id")
                if vocabulary is DID_VOCABULARY and declared != subject_id:
                    raise ValueError(f"document id {declared!r} does not match subject")
            else:
                text = self.operation.decoded_payload().decode("utf-8")
                if text != subject_id:
                    raise ValueError(f"payload {text!r} does not name the subject")
        except (ValueError, UnicodeDecodeError) as exc:
            raise MalformedTransactionError(
                f"transaction {self.txid} has an undecodable payload: {exc}"
            ) from exc

    def _check_proof(self, subject_id: str) -> None:
        proof = self.operation.proof
        if not proof.signature:
            raise MalformedTransactionError(f"transaction {self.txid} has no signature")
        if not proof.verification_method:
            raise MalformedTransactionError(
                f"transaction {self.txid} has no verification method"
            )
        try:
            base = DIDURL.parse(subject_id).did if "#" in subject_id else DID.parse(subject_id)
            DIDURL.parse(proof.verification_method, base=base)
        except MalformedIdentifierError as exc:
            raise MalformedTransactionError(
                f"transaction {self.txid} has an invalid verification method: "
                f"{proof.verification_method!r}"
            ) from exc
