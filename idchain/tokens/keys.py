"""
Signing-key resolution for token verification.

Two sources, in order of precedence:

    1. A caller-supplied ``KeyProvider``: keys looked up by key id only.
    2. The registry: resolve the signer's DID to its current document and
       take the public half of the verification method named by the key id.

Errors are split so callers can tell "not found" from "corrupt":

    - MalformedIdentifierError: the signer id is not a DID.
    - MalformedBiographyError: the signer's history failed sanitation
      (propagated untouched).
    - MalformedDocumentError: the key is listed but its material is unusable.
    - KeyResolutionError: the DID or the key is not there (or the DID is
      deactivated, or the resolver could not be reached).
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from idchain.document import PublicKey
from idchain.errors import IdentifierResolveError, KeyResolutionError, MalformedDocumentError
from idchain.identifiers import DID
from idchain.resolver import DocumentResolver

LOGGER = logging.getLogger(__name__)


@runtime_checkable
class KeyProvider(Protocol):
    def get_public_key(self, key_id: str) -> PublicKey | None:
        """Public key for ``key_id``, or None if unknown."""
        ...


class StaticKeyProvider:
    """Key provider backed by a fixed mapping."""

    def __init__(self, keys: dict[str, PublicKey]) -> None:
        self._keys = dict(keys)

    def get_public_key(self, key_id: str) -> PublicKey | None:
        return self._keys.get(key_id)


class KeyResolver:
    """Resolves the public key a token was signed with.

    Args:
        resolver: Read side used when no key provider is configured.
        key_provider: Optional caller-supplied key source. Takes precedence.
    """

    def __init__(
        self,
        resolver: DocumentResolver | None = None,
        key_provider: KeyProvider | None = None,
    ) -> None:
        if resolver is None and key_provider is None:
            raise ValueError("KeyResolver needs a resolver or a key provider")
        self._resolver = resolver
        self._key_provider = key_provider

    async def resolve_signing_key(self, signer_id: str | None, key_id: str | None) -> PublicKey:
        """Public key named by ``key_id`` for ``signer_id``.

        Raises:
            KeyResolutionError: If the identifier or key cannot be found.
            MalformedIdentifierError: If ``signer_id`` is not a DID.
            MalformedBiographyError: If the signer's history is corrupt.
            MalformedDocumentError: If the named key carries unusable material.
        """
        if not key_id:
            raise KeyResolutionError(
                "token header has no key id", error_code=KeyResolutionError.KEY_NOT_FOUND
            )

        if self._key_provider is not None:
            key = self._key_provider.get_public_key(key_id)
            if key is None:
                raise KeyResolutionError(
                    f"key provider has no key {key_id!r}",
                    error_code=KeyResolutionError.KEY_NOT_FOUND,
                    details={"key_id": key_id},
                )
            return key

        resolver = self._resolver
        if resolver is None:
            raise KeyResolutionError(
                "no resolver configured", error_code=KeyResolutionError.RESOLVE_FAILED
            )
        if not signer_id:
            raise KeyResolutionError(
                "token has no issuer to resolve",
                error_code=KeyResolutionError.IDENTIFIER_NOT_FOUND,
            )
        did = DID.parse(signer_id)

        try:
            document = await resolver.resolve_document(did)
        except IdentifierResolveError as exc:
            raise KeyResolutionError(
                f"failed to resolve {did}",
                error_code=KeyResolutionError.RESOLVE_FAILED,
                details={"id": str(did)},
            ) from exc

        if document is None:
            raise KeyResolutionError(
                f"can not resolve {did}: not found",
                error_code=KeyResolutionError.IDENTIFIER_NOT_FOUND,
                details={"id": str(did)},
            )
        if document.deactivated:
            raise KeyResolutionError(
                f"{did} is deactivated",
                error_code=KeyResolutionError.IDENTIFIER_DEACTIVATED,
                details={"id": str(did)},
            )

        method = document.get_verification_method(key_id)
        if method is None:
            raise KeyResolutionError(
                f"{did} has no key {key_id!r}",
                error_code=KeyResolutionError.KEY_NOT_FOUND,
                details={"id": str(did), "key_id": key_id},
            )
        try:
            key = method.public_key()
        except ValueError as exc:
            raise MalformedDocumentError(
                f"key {method.id} is not usable: {exc}",
                details={"id": str(did), "key_id": key_id},
            ) from exc
        LOGGER.debug("resolved signing key %s", method.id)
        return key
