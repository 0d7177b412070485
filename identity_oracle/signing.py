"""
Verifier Signing Identity

The oracle signs settlement transactions with a single Ed25519 key.
Account ids are the 0x-prefixed hex public key.
"""

import hashlib
from typing import Tuple

from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey

from .util import strip_hex_prefix

SEED_SIZE = 32


def seed_from_secret(secret: str) -> bytes:
    """
    Turn configured secret material into a 32 byte Ed25519 seed.

    A 0x-prefixed 64 character hex string is used as the raw seed; anything
    else (a phrase, optionally with a derivation path appended) is hashed
    with BLAKE2b-256.
    """
    if not secret:
        raise ValueError("Signing secret must not be empty")
    if secret.startswith("0x") and len(secret) == 2 + 2 * SEED_SIZE:
        try:
            return bytes.fromhex(secret[2:])
        except ValueError:
            pass
    return hashlib.blake2b(secret.encode("utf-8"), digest_size=SEED_SIZE).digest()


class Ed25519Signer:
    """Ed25519 key pair bound to one ledger account."""

    def __init__(self, seed: bytes):
        if len(seed) != SEED_SIZE:
            raise ValueError(f"Ed25519 seed must be {SEED_SIZE} bytes")
        self._sk = SigningKey(seed)
        self.account_id = account_id_for(bytes(self._sk.verify_key))

    @classmethod
    def from_secret(cls, secret: str) -> "Ed25519Signer":
        return cls(seed_from_secret(secret))

    def sign(self, payload: bytes) -> bytes:
        return self._sk.sign(payload).signature

    def __repr__(self) -> str:
        return f"Ed25519Signer(account_id={self.account_id!r})"


def generate_seed() -> str:
    """Fresh random seed in the 0x hex form accepted by seed_from_secret."""
    return "0x" + bytes(SigningKey.generate()).hex()


def account_id_for(public_key: bytes) -> str:
    return "0x" + public_key.hex()


def signing_identity(secret: str) -> Tuple[str, Ed25519Signer]:
    """Resolve secret material to (account_id, signer)."""
    signer = Ed25519Signer.from_secret(secret)
    return signer.account_id, signer


def verify_signature(account_id: str, payload: bytes, signature: bytes) -> bool:
    """
    Verify an Ed25519 signature against an account id.

    Returns:
        True if signature is valid, False otherwise
    """
    try:
        vk = VerifyKey(bytes.fromhex(strip_hex_prefix(account_id)))
        vk.verify(payload, signature)
        return True
    except (BadSignatureError, ValueError):
        return False
