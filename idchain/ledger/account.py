"""
Account provider protocol: the key-material boundary.

The publisher never sees private keys. It needs only the address to put in
``from``; the RPC node (or a signing proxy in front of it) holds the key
that signs transactions for that address.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from web3 import Web3


@runtime_checkable
class LedgerAccount(Protocol):
    @property
    def address(self) -> str:
        """Checksummed 0x address of the submitting account."""
        ...


@dataclass(frozen=True)
class StaticAccount:
    """An account whose address is known up front (node-managed key)."""

    address: str

    def __post_init__(self) -> None:
        if not Web3.is_address(self.address):
            raise ValueError(f"not a valid account address: {self.address!r}")
        object.__setattr__(self, "address", Web3.to_checksum_address(self.address))
