"""
DID documents as decoded from a biography's latest document operation.

Only what key resolution and controller checks need is modelled: the subject,
its controllers and verification methods, and whether the DID has been
deactivated. Verification methods are read from either ``verificationMethod``
(W3C) or ``publicKey`` (legacy).

Supported key encodings:
    - ``publicKeyJwk``: RSA, EC (P-256/P-384/P-521), OKP (Ed25519)
    - ``publicKeyBase58``: compressed or uncompressed secp256r1 points
      (``ECDSAsecp256r1``), raw Ed25519 keys (``Ed25519VerificationKey2018``)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

import base58
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa

from idchain.encoding import b64url_decode
from idchain.errors import MalformedDocumentError, MalformedIdentifierError
from idchain.identifiers import DID, DIDURL

PublicKey = Union[rsa.RSAPublicKey, ec.EllipticCurvePublicKey, ed25519.Ed25519PublicKey]

_EC_CURVES: dict[str, ec.EllipticCurve] = {
    "P-256": ec.SECP256R1(),
    "P-384": ec.SECP384R1(),
    "P-521": ec.SECP521R1(),
}


def _jwk_member(jwk: dict[str, Any], name: str) -> bytes:
    value = jwk.get(name)
    if not isinstance(value, str) or not value:
        raise ValueError(f"JWK member {name!r} is missing or not a string")
    return b64url_decode(value)


def _jwk_int(jwk: dict[str, Any], name: str) -> int:
    return int.from_bytes(_jwk_member(jwk, name), "big")


def public_key_from_jwk(jwk: Any) -> PublicKey:
    """Build a public key from a JWK.

    Raises:
        ValueError: If the JWK is not an object, lacks a member the key type
            needs, or describes an unsupported or invalid key.
    """
    if not isinstance(jwk, dict):
        raise ValueError(f"JWK must be an object, got: {type(jwk).__name__}")
    kty = jwk.get("kty")
    if kty == "RSA":
        return rsa.RSAPublicNumbers(_jwk_int(jwk, "e"), _jwk_int(jwk, "n")).public_key()
    if kty == "EC":
        curve = _EC_CURVES.get(jwk.get("crv")) if isinstance(jwk.get("crv"), str) else None
        if curve is None:
            raise ValueError(f"unsupported EC curve: {jwk.get('crv')!r}")
        numbers = ec.EllipticCurvePublicNumbers(_jwk_int(jwk, "x"), _jwk_int(jwk, "y"), curve)
        return numbers.public_key()
    if kty == "OKP" and jwk.get("crv") == "Ed25519":
        return ed25519.Ed25519PublicKey.from_public_bytes(_jwk_member(jwk, "x"))
    raise ValueError(f"unsupported JWK: kty={kty!r} crv={jwk.get('crv')!r}")


def public_key_from_base58(key_type: str, value: Any) -> PublicKey:
    """Build a public key from a base58 key. Raises ValueError if unsupported."""
    if not isinstance(value, str) or not value:
        raise ValueError("publicKeyBase58 is missing or not a string")
    raw = base58.b58decode(value)
    if key_type.startswith("Ed25519"):
        return ed25519.Ed25519PublicKey.from_public_bytes(raw)
    if key_type in ("ECDSAsecp256r1", "EcdsaSecp256r1VerificationKey2019"):
        return ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256R1(), raw)
    raise ValueError(f"unsupported key type for publicKeyBase58: {key_type!r}")


@dataclass(frozen=True)
class VerificationMethod:
    id: DIDURL
    type: str
    controller: DID
    public_key_base58: str | None = None
    public_key_jwk: dict[str, Any] | None = None

    def public_key(self) -> PublicKey:
        """The ``cryptography`` public key object.

        Raises:
            ValueError: If the key material is missing or unsupported.
        """
        if self.public_key_jwk is not None:
            return public_key_from_jwk(self.public_key_jwk)
        if self.public_key_base58 is not None:
            return public_key_from_base58(self.type, self.public_key_base58)
        raise ValueError(f"verification method {self.id} carries no key material")


@dataclass(frozen=True)
class DIDDocument:
    subject: DID
    verification_methods: tuple[VerificationMethod, ...] = ()
    controllers: tuple[DID, ...] = ()
    deactivated: bool = False
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    def get_verification_method(self, key_id: str) -> VerificationMethod | None:
        """Find a method by absolute or ``#fragment`` id.

        Raises:
            MalformedIdentifierError: If ``key_id`` is not a DID URL.
        """
        if not key_id.startswith("#") and "#" not in key_id:
            key_id = "#" + key_id
        wanted = DIDURL.parse(key_id, base=self.subject)
        for method in self.verification_methods:
            if method.id == wanted:
                return method
        return None

    def has_controller(self, did: DID) -> bool:
        return did in self.controllers

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, deactivated: bool = False) -> DIDDocument:
        """Parse a DID document.

        ``controller`` may be a single DID or an array of DIDs.

        Raises:
            MalformedDocumentError: If the subject, a controller, or a
                method is malformed.
        """
        if not isinstance(data, dict):
            raise MalformedDocumentError(f"document must be an object, got: {type(data).__name__}")
        try:
            subject = DID.parse(data["id"])
            entries = data.get("verificationMethod")
            if entries is None:
                entries = data.get("publicKey", [])
            if not isinstance(entries, list):
                raise MalformedDocumentError("verification methods must be an array")
            methods = tuple(_parse_method(entry, subject) for entry in entries)
            controllers = _parse_controllers(data.get("controller"))
        except KeyError as exc:
            raise MalformedDocumentError(f"document is missing {exc}") from exc
        except MalformedIdentifierError as exc:
            raise MalformedDocumentError(f"document has a malformed identifier: {exc}") from exc
        return cls(
            subject=subject,
            verification_methods=methods,
            controllers=controllers,
            deactivated=deactivated,
            raw=dict(data),
        )


def _parse_controllers(value: Any) -> tuple[DID, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (DID.parse(value),)
    if not isinstance(value, list):
        raise MalformedDocumentError("controller must be a DID or an array of DIDs")
    return tuple(DID.parse(item) for item in value)


def _parse_method(entry: Any, subject: DID) -> VerificationMethod:
    if not isinstance(entry, dict):
        raise MalformedDocumentError(f"verification method must be an object: {entry!r}")
    controller = entry.get("controller")
    return VerificationMethod(
        id=DIDURL.parse(entry["id"], base=subject),
        type=entry.get("type", ""),
        controller=DID.parse(controller) if controller else subject,
        public_key_base58=entry.get("publicKeyBase58"),
        public_key_jwk=entry.get("publicKeyJwk"),
    )
