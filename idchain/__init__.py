"""
idchain: identity-registry publishing and biography resolution.

Write side:
    ``TransactionPublisher`` encodes a signed operation, submits it to the
    registry contract once, and polls for its receipt within a bounded
    budget. ``is_available()`` gates the next write on confirmation depth.

Read side:
    ``BiographyResolver`` returns sanitized ``DIDBiography`` /
    ``CredentialBiography`` values: ordered history plus status.

Tokens:
    ``KeyResolver`` and ``TokenVerifier`` verify JWTs signed with keys
    from resolved DID documents.
"""

from idchain.biography import (
    BiographyBuilder,
    CredentialBiography,
    CredentialStatus,
    DIDBiography,
    DIDStatus,
    IdOperation,
    OperationHeader,
    OperationProof,
    TransactionRecord,
)
from idchain.config import FeePolicy, PublisherConfig, ResolverConfig
from idchain.document import DIDDocument, VerificationMethod
from idchain.errors import (
    CanNotRemoveEffectiveControllerError,
    ConfigError,
    ConfirmationQueryError,
    ConfirmationTimeoutError,
    DIDNotUpToDateError,
    IdChainError,
    IdentifierResolveError,
    KeyResolutionError,
    LedgerError,
    MalformedBiographyError,
    MalformedDocumentError,
    MalformedIdentifierError,
    MalformedTransactionError,
    PublisherBusyError,
    ReceiptQueryError,
    SubmissionError,
    TokenVerificationError,
)
from idchain.identifiers import DID, DIDURL
from idchain.publisher import (
    Confirmation,
    ConfirmationTracker,
    PublishResult,
    TransactionPublisher,
)
from idchain.registry import IdentityRegistry
from idchain.resolver import BiographyResolver, document_from_biography
from idchain.tokens import KeyResolver, StaticKeyProvider, TokenVerifier

__version__ = "0.1.0"

__all__ = [
    "DID",
    "DIDURL",
    "BiographyBuilder",
    "BiographyResolver",
    "CanNotRemoveEffectiveControllerError",
    "ConfigError",
    "Confirmation",
    "ConfirmationQueryError",
    "ConfirmationTimeoutError",
    "ConfirmationTracker",
    "CredentialBiography",
    "CredentialStatus",
    "DIDBiography",
    "DIDDocument",
    "DIDNotUpToDateError",
    "DIDStatus",
    "FeePolicy",
    "IdChainError",
    "IdOperation",
    "IdentifierResolveError",
    "IdentityRegistry",
    "KeyResolutionError",
    "KeyResolver",
    "LedgerError",
    "MalformedBiographyError",
    "MalformedDocumentError",
    "MalformedIdentifierError",
    "MalformedTransactionError",
    "OperationHeader",
    "OperationProof",
    "PublishResult",
    "PublisherBusyError",
    "PublisherConfig",
    "ReceiptQueryError",
    "ResolverConfig",
    "StaticKeyProvider",
    "SubmissionError",
    "TokenVerificationError",
    "TokenVerifier",
    "TransactionPublisher",
    "TransactionRecord",
    "VerificationMethod",
    "document_from_biography",
]
