"""
Identity registry facade: publish and resolve through one object.

``publish_operation`` adds three guards in front of the raw publisher:

    1. Admission gate: refuse to publish while this publisher's previous
       write has fewer than ``wait_for_confirms`` confirmations
       (PublisherBusyError). One outstanding write at a time, no queue.
    2. Up-to-date check: a DID update/transfer/deactivate must chain from
       the latest published transaction (DIDNotUpToDateError).
    3. Effective controller: an update/transfer signed by one of the DID's
       controllers must keep that controller in the new document
       (CanNotRemoveEffectiveControllerError).

Everything else is delegated: resolution to ``BiographyResolver``,
submission and confirmation to ``TransactionPublisher``.
"""

from __future__ import annotations

import logging

from idchain.biography.credential import CredentialBiography
from idchain.biography.did import DIDBiography
from idchain.biography.transaction import DID_VOCABULARY, IdOperation
from idchain.document import DIDDocument
from idchain.errors import (
    CanNotRemoveEffectiveControllerError,
    DIDNotUpToDateError,
    MalformedDocumentError,
    PublisherBusyError,
)
from idchain.identifiers import DID, DIDURL
from idchain.publisher import PublishResult, TransactionPublisher
from idchain.resolver import BiographyResolver, document_from_biography

LOGGER = logging.getLogger(__name__)

# DID operations that must name the transaction they supersede.
CHAINED_OPERATIONS = frozenset({"update", "transfer", "deactivate"})
# DID operations that carry a replacement document.
DOCUMENT_OPERATIONS = frozenset({"update", "transfer"})


class IdentityRegistry:
    def __init__(self, publisher: TransactionPublisher, resolver: BiographyResolver) -> None:
        self._publisher = publisher
        self._resolver = resolver

    @property
    def publisher(self) -> TransactionPublisher:
        return self._publisher

    async def publish_operation(
        self,
        subject: DID | str,
        operation: IdOperation,
        memo: str | None = None,
    ) -> PublishResult:
        """Publish a signed operation for ``subject``.

        Raises:
            PublisherBusyError: If the previous write has not settled.
            DIDNotUpToDateError: If a chained DID operation is stale.
            CanNotRemoveEffectiveControllerError: If an update drops the
                controller that signs it.
            SubmissionError, ReceiptQueryError, ConfirmationTimeoutError:
                From the publisher.
        """
        if not await self._publisher.is_available():
            raise PublisherBusyError(
                "previous transaction is still settling",
                details={"last_tx_hash": self._publisher.last_tx_hash},
            )

        if (
            operation.header.specification == DID_VOCABULARY.specification
            and operation.kind in CHAINED_OPERATIONS
        ):
            await self._check_up_to_date(subject, operation)

        LOGGER.info("publishing %s operation for %s", operation.kind, subject)
        return await self._publisher.publish(operation.to_json_bytes(), memo=memo)

    async def _check_up_to_date(self, subject: DID | str, operation: IdOperation) -> None:
        biography = await self._resolver.resolve_did(subject)
        latest = biography.latest
        if latest is None:
            raise DIDNotUpToDateError(
                f"{subject} is not published; cannot {operation.kind}",
                details={"id": str(subject)},
            )
        if operation.previous_txid != latest.txid:
            raise DIDNotUpToDateError(
                f"{subject} was updated by {latest.txid}; operation chains from "
                f"{operation.previous_txid}",
                details={
                    "id": str(subject),
                    "latest_txid": latest.txid,
                    "previous_txid": operation.previous_txid,
                },
            )
        if operation.kind in DOCUMENT_OPERATIONS:
            self._check_effective_controller(biography, operation)

    def _check_effective_controller(
        self, biography: DIDBiography, operation: IdOperation
    ) -> None:
        current = document_from_biography(biography)
        if current is None:
            return
        signer = DIDURL.parse(operation.proof.verification_method, base=current.subject).did
        if not current.has_controller(signer):
            return
        try:
            updated = DIDDocument.from_dict(operation.payload_json())
        except ValueError as exc:
            raise MalformedDocumentError(
                f"{operation.kind} payload is not a DID document: {exc}",
                details={"id": str(current.subject)},
            ) from exc
        if not updated.has_controller(signer):
            raise CanNotRemoveEffectiveControllerError(
                f"{operation.kind} of {current.subject} removes its signing controller {signer}",
                details={"id": str(current.subject), "controller": str(signer)},
            )

    async def resolve_did(self, did: DID | str) -> DIDBiography:
        return await self._resolver.resolve_did(did)

    async def resolve_credential(self, credential_id: DIDURL | str) -> CredentialBiography:
        return await self._resolver.resolve_credential(credential_id)

    async def resolve_document(self, did: DID | str) -> DIDDocument | None:
        return await self._resolver.resolve_document(did)
