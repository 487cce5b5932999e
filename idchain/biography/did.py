"""DID biography: history and status of one DID."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

from idchain.biography.base import Biography
from idchain.biography.transaction import DID_VOCABULARY
from idchain.errors import MalformedIdentifierError
from idchain.identifiers import DID


class DIDStatus(IntEnum):
    """Status of a DID. Codes are part of the wire format; 1 is reserved."""

    VALID = 0
    DEACTIVATED = 2
    NOT_FOUND = 3

    def __str__(self) -> str:
        return self.name.lower()


@dataclass(frozen=True)
class DIDBiography(Biography[DIDStatus]):
    ID_FIELD = "did"
    STATUS_TYPE = DIDStatus
    TERMINAL_STATUS = DIDStatus.DEACTIVATED
    VOCABULARY = DID_VOCABULARY

    @classmethod
    def _check_subject(cls, subject_id: str) -> None:
        DID.parse(subject_id)

    @property
    def did(self) -> DID:
        if self.subject_id is None:
            raise MalformedIdentifierError("biography carries no DID")
        return DID.parse(self.subject_id)

    @property
    def deactivated(self) -> bool:
        return self.status == DIDStatus.DEACTIVATED
