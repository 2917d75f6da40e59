"""Server-side Ed25519 transaction signer.

Signs transaction bytes with the Sui intent scheme:
``blake2b-256(intent || tx_bytes)`` signed with Ed25519, serialized as
``flag || signature || public_key`` and base64-encoded.
"""

from __future__ import annotations

import base64
import binascii
import hashlib

from ecdsa import Ed25519, SigningKey

# Signature scheme flag for Ed25519
ED25519_FLAG = 0x00

# IntentScope::TransactionData, IntentVersion::V0, AppId::Sui
_TRANSACTION_INTENT = bytes([0, 0, 0])

_SEED_LENGTH = 32


def _blake2b256(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=32).digest()


def decode_secret_key(secret: str) -> bytes:
    """Decode a 32-byte Ed25519 seed from hex or base64.

    Base64 keys exported with a leading scheme flag (33 bytes) are accepted.

    Raises:
        ValueError: If the secret cannot be decoded to a 32-byte seed.
    """
    value = secret.strip()
    hex_value = value.removeprefix("0x")
    if len(hex_value) == _SEED_LENGTH * 2:
        try:
            return bytes.fromhex(hex_value)
        except ValueError:
            pass
    try:
        raw = base64.b64decode(value, validate=True)
    except binascii.Error as exc:
        msg = "secret key must be a hex or base64 encoded Ed25519 seed"
        raise ValueError(msg) from exc
    if len(raw) == _SEED_LENGTH + 1 and raw[0] == ED25519_FLAG:
        raw = raw[1:]
    if len(raw) != _SEED_LENGTH:
        msg = f"secret key must decode to {_SEED_LENGTH} bytes, got {len(raw)}"
        raise ValueError(msg)
    return raw


class LedgerSigner:
    """Signs transactions on behalf of the server wallet."""

    def __init__(self, seed: bytes) -> None:
        if len(seed) != _SEED_LENGTH:
            msg = f"Ed25519 seed must be {_SEED_LENGTH} bytes"
            raise ValueError(msg)
        self._key = SigningKey.from_string(seed, curve=Ed25519)
        self._public_key = self._key.get_verifying_key().to_string()

    @classmethod
    def from_secret(cls, secret: str) -> LedgerSigner:
        return cls(decode_secret_key(secret))

    @property
    def public_key(self) -> bytes:
        return self._public_key

    @property
    def address(self) -> str:
        """Sui address: ``0x`` + blake2b-256(flag || public_key)."""
        return "0x" + _blake2b256(bytes([ED25519_FLAG]) + self._public_key).hex()

    def sign_transaction(self, tx_bytes: bytes) -> str:
        """Return the base64 serialized signature for *tx_bytes*."""
        digest = _blake2b256(_TRANSACTION_INTENT + tx_bytes)
        signature = self._key.sign(digest)
        return base64.b64encode(bytes([ED25519_FLAG]) + signature + self._public_key).decode()
