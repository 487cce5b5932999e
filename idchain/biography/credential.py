"""Credential biography: declaration and revocation history of one credential."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

from idchain.biography.base import Biography
from idchain.biography.transaction import CREDENTIAL_VOCABULARY
from idchain.errors import MalformedIdentifierError
from idchain.identifiers import DIDURL


class CredentialStatus(IntEnum):
    """Status of a credential. Codes are part of the wire format; 1 is reserved."""

    VALID = 0
    REVOKED = 2
    NOT_FOUND = 3

    def __str__(self) -> str:
        return self.name.lower()


@dataclass(frozen=True)
class CredentialBiography(Biography[CredentialStatus]):
    ID_FIELD = "id"
    STATUS_TYPE = CredentialStatus
    TERMINAL_STATUS = CredentialStatus.REVOKED
    VOCABULARY = CREDENTIAL_VOCABULARY

    @classmethod
    def _check_subject(cls, subject_id: str) -> None:
        DIDURL.parse(subject_id)

    @property
    def id(self) -> DIDURL:
        if self.subject_id is None:
            raise MalformedIdentifierError("biography carries no credential id")
        return DIDURL.parse(self.subject_id)

    @property
    def revoked(self) -> bool:
        return self.status == CredentialStatus.REVOKED
