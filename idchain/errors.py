"""
Error taxonomy for publication, resolution, and key lookup.

Every exception carries a machine-readable ``error_code`` and a ``details``
dict for diagnostics. Expected RPC failures travel as result objects
(see ``idchain.ledger.client``); these exceptions are what the publisher,
resolver, and key resolver raise once a failure is final.

Publication:
    - SubmissionError: the node rejected or never accepted the transaction.
    - ReceiptQueryError: RPC failure while polling for the receipt.
    - ConfirmationTimeoutError: accepted but not mined within the wait budget.
      The transaction may still land later.
    - ConfirmationQueryError: RPC failure while computing confirmation depth.

Resolution:
    - MalformedTransactionError: one transaction record failed validation.
    - MalformedBiographyError: a biography failed sanitation. Wraps the
      record-level error as ``__cause__`` when one record is at fault.
    - MalformedIdentifierError: a DID or DID URL string does not parse.
    - IdentifierResolveError: the resolver could not be reached or answered
      with an error.
    - DIDNotUpToDateError, CanNotRemoveEffectiveControllerError: a DID
      operation conflicts with the currently published document.
    - KeyResolutionError: "not found" (identifier or key), as opposed to
      "corrupt" (the Malformed*Error classes).
"""

from __future__ import annotations

from typing import Any


class IdChainError(Exception):
    """Base class for all idchain errors."""

    default_code = "IDCHAIN_ERROR"

    def __init__(
        self,
        message: str,
        *,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class ConfigError(IdChainError):
    default_code = "CONFIG_INVALID"


# =========================================================================
# Ledger / publication
# =========================================================================


class LedgerError(IdChainError):
    default_code = "LEDGER_ERROR"


class SubmissionError(LedgerError):
    """The RPC node rejected the transaction or could not be reached.

    Not retried. Resubmitting is a new, distinct ledger write and is the
    caller's decision.
    """

    default_code = "SUBMISSION_FAILED"


class ReceiptQueryError(LedgerError):
    default_code = "RECEIPT_QUERY_FAILED"


class ConfirmationTimeoutError(LedgerError):
    """The transaction was accepted but no receipt appeared in time."""

    default_code = "CONFIRMATION_TIMEOUT"

    def __init__(self, message: str, *, tx_hash: str, attempts: int) -> None:
        super().__init__(
            message,
            details={"tx_hash": tx_hash, "attempts": attempts},
        )
        self.tx_hash = tx_hash
        self.attempts = attempts


class ConfirmationQueryError(LedgerError):
    default_code = "CONFIRMATION_QUERY_FAILED"


class PublisherBusyError(LedgerError):
    """An earlier write from this publisher has not settled yet."""

    default_code = "PUBLISHER_BUSY"


# =========================================================================
# Resolution
# =========================================================================


class MalformedTransactionError(IdChainError):
    default_code = "MALFORMED_TRANSACTION"


class MalformedBiographyError(IdChainError):
    default_code = "MALFORMED_BIOGRAPHY"


class MalformedDocumentError(IdChainError):
    default_code = "MALFORMED_DOCUMENT"


class MalformedIdentifierError(IdChainError, ValueError):
    default_code = "MALFORMED_IDENTIFIER"


class IdentifierResolveError(IdChainError):
    default_code = "RESOLVE_FAILED"


class DIDNotUpToDateError(IdChainError):
    """An update does not chain from the latest published transaction."""

    default_code = "DID_NOT_UP_TO_DATE"


class CanNotRemoveEffectiveControllerError(IdChainError):
    """An update drops the controller whose key signs it."""

    default_code = "CAN_NOT_REMOVE_EFFECTIVE_CONTROLLER"


# =========================================================================
# Keys and tokens
# =========================================================================


class KeyResolutionError(IdChainError):
    """A signing key could not be found.

    ``error_code`` is one of IDENTIFIER_NOT_FOUND, IDENTIFIER_DEACTIVATED,
    RESOLVE_FAILED, KEY_NOT_FOUND.
    """

    IDENTIFIER_NOT_FOUND = "IDENTIFIER_NOT_FOUND"
    IDENTIFIER_DEACTIVATED = "IDENTIFIER_DEACTIVATED"
    RESOLVE_FAILED = "RESOLVE_FAILED"
    KEY_NOT_FOUND = "KEY_NOT_FOUND"

    default_code = KEY_NOT_FOUND


class TokenVerificationError(IdChainError):
    default_code = "TOKEN_INVALID"
