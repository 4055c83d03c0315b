"""Ed25519 signer for the controlled SUI address."""
from __future__ import annotations

import base64
import binascii
import hashlib

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from ...errors import MissingCredential

ED25519_FLAG = 0x00
# IntentScope::TransactionData, IntentVersion::V0, AppId::Sui
_TRANSACTION_INTENT = bytes([0, 0, 0])


def _blake2b_256(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=32).digest()


class SuiSigner:
    """Holds the bot key; created once at startup and only read afterwards.

    The secret is a SUI keystore entry: base64 of ``flag || 32-byte seed``.
    A bare base64 32-byte seed is accepted too.
    """

    def __init__(self, secret: str) -> None:
        if not secret:
            raise MissingCredential("Wallet secret is not configured")

        try:
            raw = base64.b64decode(secret, validate=True)
        except (binascii.Error, ValueError) as e:
            raise MissingCredential("Wallet secret is not valid base64") from e

        if len(raw) == 33:
            if raw[0] != ED25519_FLAG:
                raise MissingCredential(
                    "Only Ed25519 keys are supported", scheme_flag=raw[0]
                )
            raw = raw[1:]
        if len(raw) != 32:
            raise MissingCredential("Wallet secret must hold a 32-byte Ed25519 seed")

        self._key = Ed25519PrivateKey.from_private_bytes(raw)
        self._public_key = self._key.public_key().public_bytes(
            Encoding.Raw, PublicFormat.Raw
        )
        self._address = "0x" + _blake2b_256(
            bytes([ED25519_FLAG]) + self._public_key
        ).hex()

    @property
    def address(self) -> str:
        return self._address

    def sign_transaction(self, tx_bytes: str) -> str:
        """Serialized signature (``flag || sig || pubkey``, base64)."""
        digest = _blake2b_256(_TRANSACTION_INTENT + base64.b64decode(tx_bytes))
        signature = self._key.sign(digest)
        return base64.b64encode(
            bytes([ED25519_FLAG]) + signature + self._public_key
        ).decode()
