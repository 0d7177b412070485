"""
Identity Commitment Hashing

The on-chain identity commitment binds an identity type (e.g. "github") to
an identity string (e.g. a GitHub login). Both fields are encoded the way the
ledger encodes its Text type, a SCALE compact length prefix followed by the
UTF-8 bytes, and the concatenation is digested with BLAKE2b-256.

The length prefix is what separates the two fields: ("ab", "c") and
("a", "bc") produce different byte strings and therefore different hashes.
"""

import hashlib
from typing import Union

from .util import constant_time_compare, strip_hex_prefix

DIGEST_SIZE = 32

_SINGLE_BYTE_MAX = 1 << 6
_TWO_BYTE_MAX = 1 << 14
_FOUR_BYTE_MAX = 1 << 30


def compact_encode(n: int) -> bytes:
    """
    SCALE compact encoding of a non-negative integer.

    The two low bits of the first byte select the mode:
    0b00 single byte, 0b01 two bytes, 0b10 four bytes, 0b11 big integer
    (remaining bits of the first byte hold the byte length minus 4).
    """
    if n < 0:
        raise ValueError(f"Cannot compact-encode negative value: {n}")
    if n < _SINGLE_BYTE_MAX:
        return bytes([n << 2])
    if n < _TWO_BYTE_MAX:
        return ((n << 2) | 0b01).to_bytes(2, "little")
    if n < _FOUR_BYTE_MAX:
        return ((n << 2) | 0b10).to_bytes(4, "little")

    raw = n.to_bytes((n.bit_length() + 7) // 8, "little")
    return bytes([((len(raw) - 4) << 2) | 0b11]) + raw


def encode_text(value: Union[str, bytes]) -> bytes:
    """Length-prefixed UTF-8 encoding of a Text value."""
    if isinstance(value, str):
        value = value.encode("utf-8")
    return compact_encode(len(value)) + value


def blake2_256_hex(data: bytes) -> str:
    """BLAKE2b with a 32 byte digest, as 0x-prefixed lowercase hex."""
    return "0x" + hashlib.blake2b(data, digest_size=DIGEST_SIZE).hexdigest()


def hash_identity(identity_type: str, identity: str) -> str:
    """
    Compute the canonical identity commitment.

    hash = BLAKE2b-256(Text(identity_type) || Text(identity))
    """
    return blake2_256_hex(encode_text(identity_type) + encode_text(identity))


def identity_hashes_equal(a: str, b: str) -> bool:
    """
    Compare two hex identity hashes.

    Case and an optional 0x prefix are ignored; the comparison itself runs in
    constant time.
    """
    if not isinstance(a, str) or not isinstance(b, str):
        return False
    return constant_time_compare(strip_hex_prefix(a).lower(), strip_hex_prefix(b).lower())
