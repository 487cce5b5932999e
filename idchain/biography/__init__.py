"""
Biography model: validated registry history for DIDs and credentials.

Public API:
    - ``DIDBiography`` / ``DIDStatus``
    - ``CredentialBiography`` / ``CredentialStatus``
    - ``BiographyBuilder``: append-then-freeze assembly.
    - ``TransactionRecord``, ``IdOperation``, ``OperationHeader``,
      ``OperationProof``: the records a biography holds.
    - ``decode_status``: wire status code decoding.
"""

from idchain.biography.base import Biography, BiographyBuilder, decode_status
from idchain.biography.credential import CredentialBiography, CredentialStatus
from idchain.biography.did import DIDBiography, DIDStatus
from idchain.biography.transaction import (
    CREDENTIAL_VOCABULARY,
    DID_VOCABULARY,
    IdOperation,
    OperationHeader,
    OperationProof,
    OperationVocabulary,
    TransactionRecord,
)

__all__ = [
    "CREDENTIAL_VOCABULARY",
    "DID_VOCABULARY",
    "Biography",
    "BiographyBuilder",
    "CredentialBiography",
    "CredentialStatus",
    "DIDBiography",
    "DIDStatus",
    "IdOperation",
    "OperationHeader",
    "OperationProof",
    "OperationVocabulary",
    "TransactionRecord",
    "decode_status",
]
