"""
DID and DID URL values.

    DID:      did:<method>:<method-specific-id>
    DID URL:  <DID>#<fragment>  (or "#<fragment>" relative to a base DID)

Credential biographies are keyed by DID URLs; verification methods inside
a DID document are identified by DID URLs too.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from idchain.errors import MalformedIdentifierError

_DID_RE = re.compile(r"^did:([a-z0-9]+):([A-Za-z0-9._%-]+(?::[A-Za-z0-9._%-]+)*)$")
_FRAGMENT_RE = re.compile(r"^[A-Za-z0-9._~!$&'()*+,;=:@/?%-]+$")


@dataclass(frozen=True, order=True)
class DID:
    method: str
    method_specific_id: str

    @classmethod
    def parse(cls, value: str) -> DID:
        """Parse a DID string.

        Raises:
            MalformedIdentifierError: If ``value`` is not a DID.
        """
        if not isinstance(value, str):
            raise MalformedIdentifierError(f"DID must be a string, got: {type(value).__name__}")
        m = _DID_RE.match(value.strip())
        if m is None:
            raise MalformedIdentifierError(
                f"not a valid DID: {value!r}", details={"value": value}
            )
        return cls(method=m.group(1), method_specific_id=m.group(2))

    def __str__(self) -> str:
        return f"did:{self.method}:{self.method_specific_id}"


@dataclass(frozen=True, order=True)
class DIDURL:
    did: DID
    fragment: str

    @classmethod
    def parse(cls, value: str, base: DID | None = None) -> DIDURL:
        """Parse an absolute or ``#fragment``-relative DID URL.

        Args:
            value: "did:x:y#frag" or "#frag".
            base: DID that relative references resolve against.

        Raises:
            MalformedIdentifierError: If the URL is malformed, has no
                fragment, or is relative without a base.
        """
        if not isinstance(value, str) or not value:
            raise MalformedIdentifierError(f"not a valid DID URL: {value!r}")

        did_part, sep, fragment = value.strip().partition("#")
        if not sep or not fragment:
            raise MalformedIdentifierError(f"DID URL has no fragment: {value!r}")
        if not _FRAGMENT_RE.match(fragment):
            raise MalformedIdentifierError(f"invalid DID URL fragment: {value!r}")

        if did_part:
            did = DID.parse(did_part)
        elif base is not None:
            did = base
        else:
            raise MalformedIdentifierError(
                f"relative DID URL without base DID: {value!r}"
            )
        return cls(did=did, fragment=fragment)

    def __str__(self) -> str:
        return f"{self.did}#{self.fragment}"
