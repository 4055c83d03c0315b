"""Signer protocol — the controlled address and its transaction signatures."""
from typing import Protocol


class Signer(Protocol):
    """Abstract interface for a transaction signing key."""

    @property
    def address(self) -> str: ...

    def sign_transaction(self, tx_bytes: str) -> str: ...
