"""
Tests for DIDBiography / CredentialBiography sanitation and wire format.

Test plan:
- NOT_FOUND ⇔ no transactions, both directions
- Required id, status decoding (reserved code 1, out-of-range, non-int)
- Record failures are wrapped with the record error as __cause__
- Ordering: timestamps and previousTxid chain
- Read-only view: iteration, indexing, latest, frozen
- Wire round-trip omits "transaction" when empty
- Builder: append-then-freeze, derived status, closed after build
- Credential variant: "id" field, REVOKED status
- Typed id accessors refuse a biography without an id
"""

import dataclasses

import pytest

from idchain.biography import (
    BiographyBuilder,
    CredentialBiography,
    CredentialStatus,
    DIDBiography,
    DIDStatus,
    TransactionRecord,
    decode_status,
)
from idchain.encoding import b64url_encode, canonical_json_bytes
from idchain.errors import (
    MalformedBiographyError,
    MalformedIdentifierError,
    MalformedTransactionError,
)

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

SAMPLE_DID = "did:example:123"
SAMPLE_CREDENTIAL = "did:example:123#profile"
TXID_1 = "0x" + "1" * 64
TXID_2 = "0x" + "2" * 64
TXID_3 = "0x" + "3" * 64


def _document(did: str = SAMPLE_DID) -> dict[str, object]:
    return {
        "id": did,
        "publicKey": [
            {
                "id": "#primary",
                "type": "ECDSAsecp256r1",
                "controller": did,
                "publicKeyBase58": "zxt6NyoorFUFAs7oVAeDVb1vHE5trtMXG4ac5fMeKQ4m",
            }
        ],
    }


def _did_tx(
    txid: str,
    operation: str = "create",
    timestamp: str = "2024-03-01T10:00:00Z",
    previous: str | None = None,
    payload: str | None = None,
    did: str = SAMPLE_DID,
) -> dict[str, object]:
    header: dict[str, str] = {"specification": "elastos/did/1.0", "operation": operation}
    if previous is not None:
        header["previousTxid"] = previous
    if payload is None:
        if operation == "deactivate":
            payload = b64url_encode(did.encode("utf-8"))
        else:
            payload = b64url_encode(canonical_json_bytes(_document(did)))
    return {
        "txid": txid,
        "timestamp": timestamp,
        "operation": {
            "header": header,
            "payload": payload,
            "proof": {
                "type": "ECDSAsecp256r1",
                "verificationMethod": f"{did}#primary",
                "signature": "c2lnbmF0dXJl",
            },
        },
    }


def _credential_tx(
    txid: str,
    operation: str = "declare",
    timestamp: str = "2024-03-01T10:00:00Z",
) -> dict[str, object]:
    if operation == "declare":
        payload = b64url_encode(
            canonical_json_bytes({"id": SAMPLE_CREDENTIAL, "issuer": SAMPLE_DID})
        )
    else:
        payload = b64url_encode(SAMPLE_CREDENTIAL.encode("utf-8"))
    return {
        "txid": txid,
        "timestamp": timestamp,
        "operation": {
            "header": {"specification": "elastos/credential/1.0", "operation": operation},
            "payload": payload,
            "proof": {
                "type": "ECDSAsecp256r1",
                "verificationMethod": "#primary",
                "signature": "c2ln",
            },
        },
    }


def _history() -> list[dict[str, object]]:
    return [
        _did_tx(TXID_1, "create", "2024-03-01T10:00:00Z"),
        _did_tx(TXID_2, "update", "2024-03-02T10:00:00Z", previous=TXID_1),
        _did_tx(TXID_3, "update", "2024-03-03T10:00:00Z", previous=TXID_2),
    ]


# ---------------------------------------------------------------------------
# NOT_FOUND ⇔ empty
# ---------------------------------------------------------------------------


class TestNotFoundConsistency:
    def test_not_found_without_transactions_sanitizes(self) -> None:
        bio = DIDBiography.from_dict({"did": "did:example:123", "status": 3})
        assert bio.status == DIDStatus.NOT_FOUND
        assert bio.not_found
        assert len(bio) == 0
        assert bio.latest is None

    def test_not_found_with_empty_array_sanitizes(self) -> None:
        bio = DIDBiography.from_dict({"did": SAMPLE_DID, "status": 3, "transaction": []})
        assert len(bio) == 0

    def test_not_found_with_transactions_fails(self) -> None:
        data = {"did": "did:example:123", "status": 3, "transaction": [_did_tx(TXID_1)]}
        with pytest.raises(MalformedBiographyError, match="should not include transaction"):
            DIDBiography.from_dict(data)

    @pytest.mark.parametrize("status", [0, 2])
    def test_found_without_transactions_fails(self, status: int) -> None:
        with pytest.raises(MalformedBiographyError, match="missing transaction"):
            DIDBiography.from_dict({"did": SAMPLE_DID, "status": status})

    def test_found_with_transactions_sanitizes(self) -> None:
        bio = DIDBiography.from_dict({"did": SAMPLE_DID, "status": 0, "transaction": _history()})
        assert bio.status == DIDStatus.VALID
        assert len(bio) == 3

    def test_direct_construction_is_checked_by_sanitize(self) -> None:
        bio = DIDBiography(subject_id=SAMPLE_DID, status=DIDStatus.VALID)
        with pytest.raises(MalformedBiographyError, match="missing transaction"):
            bio.sanitize()


# ---------------------------------------------------------------------------
# Required fields and status codes
# ---------------------------------------------------------------------------


class TestRequiredFields:
    def test_missing_did(self) -> None:
        with pytest.raises(MalformedBiographyError, match="missing id"):
            DIDBiography.from_dict({"status": 3})

    def test_missing_id_on_direct_construction(self) -> None:
        bio = DIDBiography(subject_id=None, status=DIDStatus.NOT_FOUND)
        with pytest.raises(MalformedBiographyError, match="missing id"):
            bio.sanitize()

    def test_malformed_did(self) -> None:
        with pytest.raises(MalformedBiographyError, match="invalid id"):
            DIDBiography.from_dict({"did": "not-a-did", "status": 3})

    def test_missing_status(self) -> None:
        with pytest.raises(MalformedBiographyError, match="missing status"):
            DIDBiography.from_dict({"did": SAMPLE_DID})

    @pytest.mark.parametrize("code", [1, 4, -1, "0", None, True, 2.0])
    def test_invalid_status_codes(self, code: object) -> None:
        with pytest.raises(MalformedBiographyError, match="invalid status"):
            DIDBiography.from_dict({"did": SAMPLE_DID, "status": code})

    def test_not_an_object(self) -> None:
        with pytest.raises(MalformedBiographyError):
            DIDBiography.from_dict([SAMPLE_DID, 3])

    def test_transaction_not_an_array(self) -> None:
        with pytest.raises(MalformedBiographyError, match="must be an array"):
            DIDBiography.from_dict({"did": SAMPLE_DID, "status": 0, "transaction": {}})


class TestStatusCodes:
    @pytest.mark.parametrize("status", list(DIDStatus))
    def test_did_status_roundtrip(self, status: DIDStatus) -> None:
        assert decode_status(DIDStatus, int(status)) is status

    @pytest.mark.parametrize("status", list(CredentialStatus))
    def test_credential_status_roundtrip(self, status: CredentialStatus) -> None:
        assert decode_status(CredentialStatus, int(status)) is status

    def test_wire_codes(self) -> None:
        assert [int(s) for s in DIDStatus] == [0, 2, 3]
        assert [int(s) for s in CredentialStatus] == [0, 2, 3]

    @pytest.mark.parametrize("code", [1, 4, 99, -3])
    def test_reserved_and_unknown_codes_rejected(self, code: int) -> None:
        with pytest.raises(ValueError):
            decode_status(DIDStatus, code)

    def test_str_is_lowercase_name(self) -> None:
        assert str(DIDStatus.DEACTIVATED) == "deactivated"
        assert str(CredentialStatus.REVOKED) == "revoked"


# ---------------------------------------------------------------------------
# Record failures
# ---------------------------------------------------------------------------


class TestRecordFailures:
    @pytest.mark.parametrize("index", [0, 1, 2])
    def test_corrupt_payload_is_wrapped(self, index: int) -> None:
        history = _history()
        history[index]["operation"]["payload"] = "!!not-base64!!"  # type: ignore[index]
        with pytest.raises(MalformedBiographyError, match="invalid transaction") as exc_info:
            DIDBiography.from_dict({"did": SAMPLE_DID, "status": 0, "transaction": history})
        assert isinstance(exc_info.value.__cause__, MalformedTransactionError)
        assert exc_info.value.details["index"] == index

    def test_payload_not_json_is_wrapped(self) -> None:
        history = _history()
        history[1]["operation"]["payload"] = b64url_encode(b"not json")  # type: ignore[index]
        with pytest.raises(MalformedBiographyError) as exc_info:
            DIDBiography.from_dict({"did": SAMPLE_DID, "status": 0, "transaction": history})
        assert isinstance(exc_info.value.__cause__, MalformedTransactionError)

    def test_missing_proof_is_wrapped(self) -> None:
        history = _history()
        del history[0]["operation"]["proof"]  # type: ignore[attr-defined]
        with pytest.raises(MalformedBiographyError, match="invalid transaction") as exc_info:
            DIDBiography.from_dict({"did": SAMPLE_DID, "status": 0, "transaction": history})
        assert isinstance(exc_info.value.__cause__, MalformedTransactionError)

    def test_document_for_other_did_is_wrapped(self) -> None:
        history = [_did_tx(TXID_1, payload=b64url_encode(canonical_json_bytes(_document("did:example:999"))))]
        with pytest.raises(MalformedBiographyError) as exc_info:
            DIDBiography.from_dict({"did": SAMPLE_DID, "status": 0, "transaction": history})
        assert isinstance(exc_info.value.__cause__, MalformedTransactionError)


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------


class TestOrdering:
    def test_index_zero_is_earliest(self) -> None:
        bio = DIDBiography.from_dict({"did": SAMPLE_DID, "status": 0, "transaction": _history()})
        assert bio[0].txid == TXID_1
        assert bio.latest is not None
        assert bio.latest.txid == TXID_3
        assert [tx.txid for tx in bio] == [TXID_1, TXID_2, TXID_3]

    def test_timestamps_going_backwards_fail(self) -> None:
        history = [
            _did_tx(TXID_1, "create", "2024-03-02T10:00:00Z"),
            _did_tx(TXID_2, "update", "2024-03-01T10:00:00Z", previous=TXID_1),
        ]
        with pytest.raises(MalformedBiographyError, match="out of order"):
            DIDBiography.from_dict({"did": SAMPLE_DID, "status": 0, "transaction": history})

    def test_broken_previous_txid_chain_fails(self) -> None:
        history = [
            _did_tx(TXID_1, "create", "2024-03-01T10:00:00Z"),
            _did_tx(TXID_2, "update", "2024-03-02T10:00:00Z", previous=TXID_3),
        ]
        with pytest.raises(MalformedBiographyError, match="broken transaction chain"):
            DIDBiography.from_dict({"did": SAMPLE_DID, "status": 0, "transaction": history})


# ---------------------------------------------------------------------------
# Read-only view and wire format
# ---------------------------------------------------------------------------


class TestReadOnlyView:
    def test_frozen(self) -> None:
        bio = DIDBiography.from_dict({"did": SAMPLE_DID, "status": 3})
        with pytest.raises(dataclasses.FrozenInstanceError):
            bio.status = DIDStatus.VALID  # type: ignore[misc]

    def test_transactions_is_a_tuple(self) -> None:
        bio = DIDBiography.from_dict({"did": SAMPLE_DID, "status": 0, "transaction": _history()})
        assert isinstance(bio.transactions, tuple)

    def test_did_property(self) -> None:
        bio = DIDBiography.from_dict({"did": SAMPLE_DID, "status": 3})
        assert str(bio.did) == SAMPLE_DID


class TestWireFormat:
    def test_not_found_omits_transaction(self) -> None:
        bio = DIDBiography.from_dict({"did": SAMPLE_DID, "status": 3})
        assert bio.to_dict() == {"did": SAMPLE_DID, "status": 3}

    def test_roundtrip_with_history(self) -> None:
        data = {"did": SAMPLE_DID, "status": 0, "transaction": _history()}
        bio = DIDBiography.from_dict(data)
        assert bio.to_dict() == data
        assert DIDBiography.from_dict(bio.to_dict()) == bio


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


def _record(data: dict[str, object], subject: str = SAMPLE_DID) -> TransactionRecord:
    return TransactionRecord.from_dict(data, subject)


class TestBuilder:
    def test_empty_builds_not_found(self) -> None:
        bio = BiographyBuilder(DIDBiography, SAMPLE_DID).build()
        assert bio.status == DIDStatus.NOT_FOUND

    def test_derives_valid(self) -> None:
        builder = BiographyBuilder(DIDBiography, SAMPLE_DID)
        for data in _history():
            builder.append_dict(data)
        assert len(builder) == 3
        bio = builder.build()
        assert bio.status == DIDStatus.VALID
        assert [tx.txid for tx in bio] == [TXID_1, TXID_2, TXID_3]

    def test_derives_deactivated(self) -> None:
        builder = BiographyBuilder(DIDBiography, SAMPLE_DID)
        builder.append(_record(_did_tx(TXID_1, "create", "2024-03-01T10:00:00Z")))
        builder.append(
            _record(_did_tx(TXID_2, "deactivate", "2024-03-05T10:00:00Z", previous=TXID_1))
        )
        bio = builder.build()
        assert bio.status == DIDStatus.DEACTIVATED
        assert bio.deactivated

    def test_explicit_status_is_still_checked(self) -> None:
        builder = BiographyBuilder(DIDBiography, SAMPLE_DID)
        builder.append(_record(_did_tx(TXID_1)))
        with pytest.raises(MalformedBiographyError, match="should not include transaction"):
            builder.build(status=DIDStatus.NOT_FOUND)

    def test_appends_closed_after_build(self) -> None:
        builder = BiographyBuilder(DIDBiography, SAMPLE_DID)
        builder.append(_record(_did_tx(TXID_1)))
        builder.build()
        with pytest.raises(RuntimeError):
            builder.append(_record(_did_tx(TXID_2, "update", previous=TXID_1)))

    def test_record_for_other_subject_fails_build(self) -> None:
        builder = BiographyBuilder(DIDBiography, SAMPLE_DID)
        other = "did:example:456"
        builder.append(_record(_did_tx(TXID_1, did=other), subject=other))
        with pytest.raises(MalformedBiographyError, match="invalid transaction"):
            builder.build()

    def test_append_dict_rejects_malformed(self) -> None:
        builder = BiographyBuilder(DIDBiography, SAMPLE_DID)
        with pytest.raises(MalformedTransactionError):
            builder.append_dict({"txid": TXID_1})
        assert len(builder) == 0


# ---------------------------------------------------------------------------
# Credential variant
# ---------------------------------------------------------------------------


class TestCredentialBiography:
    def test_declared_and_revoked(self) -> None:
        data = {
            "id": SAMPLE_CREDENTIAL,
            "status": 2,
            "transaction": [
                _credential_tx(TXID_1, "declare", "2024-03-01T10:00:00Z"),
                _credential_tx(TXID_2, "revoke", "2024-03-02T10:00:00Z"),
            ],
        }
        bio = CredentialBiography.from_dict(data)
        assert bio.status == CredentialStatus.REVOKED
        assert bio.revoked
        assert str(bio.id) == SAMPLE_CREDENTIAL
        assert bio.to_dict() == data

    def test_not_found(self) -> None:
        bio = CredentialBiography.from_dict({"id": SAMPLE_CREDENTIAL, "status": 3})
        assert bio.status == CredentialStatus.NOT_FOUND

    def test_uses_id_field(self) -> None:
        with pytest.raises(MalformedBiographyError, match="missing id"):
            CredentialBiography.from_dict({"did": SAMPLE_CREDENTIAL, "status": 3})

    def test_rejects_did_operations(self) -> None:
        data = {
            "id": SAMPLE_CREDENTIAL,
            "status": 0,
            "transaction": [_did_tx(TXID_1)],
        }
        with pytest.raises(MalformedBiographyError) as exc_info:
            CredentialBiography.from_dict(data)
        assert isinstance(exc_info.value.__cause__, MalformedTransactionError)

    def test_builder_derives_revoked(self) -> None:
        builder = BiographyBuilder(CredentialBiography, SAMPLE_CREDENTIAL)
        builder.append_dict(_credential_tx(TXID_1, "declare", "2024-03-01T10:00:00Z"))
        builder.append_dict(_credential_tx(TXID_2, "revoke", "2024-03-02T10:00:00Z"))
        assert builder.build().status == CredentialStatus.REVOKED


class TestIdAccessors:
    def test_did_without_id(self) -> None:
        bio = DIDBiography(subject_id=None, status=DIDStatus.NOT_FOUND)
        with pytest.raises(MalformedIdentifierError):
            _ = bio.did

    def test_credential_without_id(self) -> None:
        bio = CredentialBiography(subject_id=None, status=CredentialStatus.NOT_FOUND)
        with pytest.raises(MalformedIdentifierError):
            _ = bio.id
