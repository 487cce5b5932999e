"""
Token verification against registry-resolved keys.

The verifier reads ``kid`` from the unverified header and ``iss`` from the
unverified claims, asks ``KeyResolver`` for the matching public key, and
only then verifies the signature and registered claims with PyJWT.

Only asymmetric algorithms are accepted; a token can never select an HMAC
algorithm and have a public key used as its secret.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

import jwt

from idchain.errors import TokenVerificationError
from idchain.tokens.keys import KeyResolver

LOGGER = logging.getLogger(__name__)

ALLOWED_ALGORITHMS = ("ES256", "ES384", "ES512", "RS256", "EdDSA")


class TokenVerifier:
    """Verifies JWS compact tokens signed by registry identities.

    Args:
        key_resolver: Source of signing keys.
        audience: Required ``aud`` value, if any.
        issuer: Required ``iss`` value, if any.
        leeway: Clock skew tolerance in seconds for ``exp``/``nbf``/``iat``.
        required_claims: Claims that must be present with exactly these values.
        algorithms: Accepted ``alg`` values (subset of ALLOWED_ALGORITHMS).
    """

    def __init__(
        self,
        key_resolver: KeyResolver,
        *,
        audience: str | None = None,
        issuer: str | None = None,
        leeway: float = 0.0,
        required_claims: dict[str, Any] | None = None,
        algorithms: Iterable[str] = ALLOWED_ALGORITHMS,
    ) -> None:
        algorithms = tuple(algorithms)
        unsupported = set(algorithms) - set(ALLOWED_ALGORITHMS)
        if unsupported:
            raise ValueError(f"unsupported algorithms: {sorted(unsupported)}")
        self._keys = key_resolver
        self._audience = audience
        self._issuer = issuer
        self._leeway = leeway
        self._required = dict(required_claims or {})
        self._algorithms = algorithms

    async def verify(self, token: str) -> dict[str, Any]:
        """Verify ``token`` and return its claims.

        Raises:
            TokenVerificationError: Bad structure, algorithm, signature or
                claims, or an algorithm that does not fit the resolved key.
            KeyResolutionError, MalformedIdentifierError,
            MalformedBiographyError, MalformedDocumentError: From key
                resolution.
        """
        try:
            header = jwt.get_unverified_header(token)
            unverified = jwt.decode(token, options={"verify_signature": False})
        except jwt.PyJWTError as exc:
            raise TokenVerificationError(f"malformed token: {exc}") from exc

        alg = header.get("alg")
        if alg not in self._algorithms:
            raise TokenVerificationError(
                f"algorithm {alg!r} is not accepted", details={"alg": alg}
            )

        kid, iss = header.get("kid"), unverified.get("iss")
        for name, value in (("kid", kid), ("iss", iss)):
            if value is not None and not isinstance(value, str):
                raise TokenVerificationError(
                    f"{name} must be a string", details={name: value}
                )

        key = await self._keys.resolve_signing_key(iss, kid)

        options: dict[str, Any] = {}
        if self._required:
            options["require"] = sorted(self._required)
        try:
            claims: dict[str, Any] = jwt.decode(
                token,
                key=key,
                algorithms=[alg],
                audience=self._audience,
                issuer=self._issuer,
                leeway=self._leeway,
                options=options,
            )
        except jwt.PyJWTError as exc:
            raise TokenVerificationError(
                f"token rejected: {exc}", details={"kid": kid}
            ) from exc

        for name, expected in self._required.items():
            if claims.get(name) != expected:
                raise TokenVerificationError(
                    f"claim {name!r} does not match",
                    details={"claim": name, "expected": expected, "actual": claims.get(name)},
                )

        LOGGER.debug("verified token kid=%s iss=%s", kid, claims.get("iss"))
        return claims
