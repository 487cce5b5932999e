"""
Biography resolver: the read side of the registry.

Asks a resolver node for the biography of a DID or credential over
JSON-RPC and returns it only after ``from_dict`` has sanitized it:

    - did_resolveDID         params [{"did": <did>, "all": <bool>}]
    - did_resolveCredential  params [{"id": <credential id>}]

The ``result`` member of the response is the biography wire object.

``resolve_document`` goes one step further and decodes the DID document
carried by the latest document operation in the history.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

from idchain.biography.credential import CredentialBiography
from idchain.biography.did import DIDBiography
from idchain.config import ResolverConfig
from idchain.document import DIDDocument
from idchain.errors import IdentifierResolveError, MalformedBiographyError, MalformedDocumentError
from idchain.identifiers import DID, DIDURL
from idchain.ledger.jsonrpc_client import build_request, split_response
from idchain.ledger.transport import HttpxTransport, JsonRpcTransport

LOGGER = logging.getLogger(__name__)

RESOLVE_DID_METHOD = "did_resolveDID"
RESOLVE_CREDENTIAL_METHOD = "did_resolveCredential"


@runtime_checkable
class DocumentResolver(Protocol):
    """What key resolution needs from the read side."""

    async def resolve_document(self, did: DID | str) -> DIDDocument | None:
        ...


class BiographyResolver:
    """Resolves sanitized biographies from a resolver node.

    Args:
        config: Resolver endpoint and timeout.
        transport: Injectable transport. Defaults to HttpxTransport.
    """

    def __init__(
        self,
        config: ResolverConfig,
        transport: JsonRpcTransport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport or HttpxTransport(timeout=config.rpc_timeout)

    async def _call(self, method: str, params: dict[str, Any], subject: str) -> Any:
        try:
            response = await self._transport.post_json(
                self._config.resolver_url, build_request(method, [params])
            )
        except Exception as exc:
            raise IdentifierResolveError(
                f"resolver unreachable while resolving {subject}: {exc}",
                details={"id": subject, "method": method},
            ) from exc

        result, error = split_response(response)
        if error is not None:
            raise IdentifierResolveError(
                f"resolver error for {subject}: {error}",
                details={"id": subject, "method": method, "rpc_code": error.code},
            )
        return result

    async def resolve_did(self, did: DID | str, *, all_transactions: bool = True) -> DIDBiography:
        """Resolve a DID biography.

        Raises:
            MalformedIdentifierError: If ``did`` is not a DID.
            IdentifierResolveError: If the resolver fails.
            MalformedBiographyError: If the response does not sanitize.
        """
        subject = str(DID.parse(did) if isinstance(did, str) else did)
        LOGGER.debug("resolving %s (all=%s)", subject, all_transactions)
        result = await self._call(
            RESOLVE_DID_METHOD, {"did": subject, "all": all_transactions}, subject
        )
        biography = DIDBiography.from_dict(result)
        if biography.subject_id != subject:
            raise MalformedBiographyError(
                f"resolver answered for {biography.subject_id!r}, asked for {subject!r}"
            )
        LOGGER.debug("%s is %s with %d transaction(s)", subject, biography.status, len(biography))
        return biography

    async def resolve_credential(self, credential_id: DIDURL | str) -> CredentialBiography:
        """Resolve a credential biography. Raises as ``resolve_did``."""
        subject = str(
            DIDURL.parse(credential_id) if isinstance(credential_id, str) else credential_id
        )
        LOGGER.debug("resolving credential %s", subject)
        result = await self._call(RESOLVE_CREDENTIAL_METHOD, {"id": subject}, subject)
        biography = CredentialBiography.from_dict(result)
        if biography.subject_id != subject:
            raise MalformedBiographyError(
                f"resolver answered for {biography.subject_id!r}, asked for {subject!r}"
            )
        return biography

    async def resolve_document(self, did: DID | str) -> DIDDocument | None:
        """Current document of ``did``; None if it was never published."""
        biography = await self.resolve_did(did)
        return document_from_biography(biography)


def document_from_biography(biography: DIDBiography) -> DIDDocument | None:
    """Decode the document carried by the latest document operation.

    Returns None for NOT_FOUND. A deactivated DID yields its last document
    with ``deactivated=True``.

    Raises:
        MalformedBiographyError: If no document operation exists or the
            document does not parse.
    """
    if biography.not_found:
        return None
    document_ops = biography.VOCABULARY.document_operations
    for record in reversed(biography.transactions):
        if record.operation.kind not in document_ops:
            continue
        try:
            return DIDDocument.from_dict(
                record.operation.payload_json(), deactivated=biography.deactivated
            )
        except (ValueError, MalformedDocumentError) as exc:
            raise MalformedBiographyError(
                f"transaction {record.txid} carries an unreadable document",
                details={"id": biography.subject_id, "txid": record.txid},
            ) from exc
    raise MalformedBiographyError(
        "biography has no document operation", details={"id": biography.subject_id}
    )
