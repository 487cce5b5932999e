"""Token verification backed by registry key resolution."""

from idchain.tokens.keys import KeyProvider, KeyResolver, StaticKeyProvider
from idchain.tokens.verifier import ALLOWED_ALGORITHMS, TokenVerifier

__all__ = [
    "ALLOWED_ALGORITHMS",
    "KeyProvider",
    "KeyResolver",
    "StaticKeyProvider",
    "TokenVerifier",
]
