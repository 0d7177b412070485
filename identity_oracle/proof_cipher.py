"""
Proof payload encryption.

Claimants encrypt their proof JSON with a passphrase shared with the oracle,
using the OpenSSL "Salted__" envelope that browser crypto libraries emit:

    base64("Salted__" || salt[8] || AES-256-CBC(PKCS7(plaintext)))

The AES key and IV are derived from the passphrase and salt with
EVP_BytesToKey (MD5, one iteration).
"""

import hashlib
import json
import os
from typing import Any, Dict, Tuple

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .errors import DecryptionError
from .util import b64d, b64e

SALT_MAGIC = b"Salted__"
SALT_SIZE = 8
KEY_SIZE = 32
IV_SIZE = 16


def evp_bytes_to_key(passphrase: bytes, salt: bytes,
                     key_size: int = KEY_SIZE, iv_size: int = IV_SIZE) -> Tuple[bytes, bytes]:
    """OpenSSL EVP_BytesToKey with MD5 and a single iteration."""
    derived = b""
    block = b""
    while len(derived) < key_size + iv_size:
        block = hashlib.md5(block + passphrase + salt).digest()
        derived += block
    return derived[:key_size], derived[key_size:key_size + iv_size]


def encrypt_text(plaintext: str, passphrase: str, salt: bytes = None) -> str:
    """Encrypt text into a base64 salted envelope."""
    salt = os.urandom(SALT_SIZE) if salt is None else salt
    if len(salt) != SALT_SIZE:
        raise ValueError(f"salt must be {SALT_SIZE} bytes")
    key, iv = evp_bytes_to_key(passphrase.encode("utf-8"), salt)

    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    ciphertext = encryptor.update(padded) + encryptor.finalize()
    return b64e(SALT_MAGIC + salt + ciphertext)


def decrypt_text(envelope: str, passphrase: str) -> str:
    """
    Decrypt a base64 salted envelope back to text.

    Raises:
        DecryptionError: bad encoding, wrong key (padding check) or
            non-UTF-8 plaintext
    """
    try:
        raw = b64d(envelope.strip())
    except (ValueError, AttributeError) as e:
        raise DecryptionError(f"Proof is not valid base64: {e}") from e

    header_len = len(SALT_MAGIC) + SALT_SIZE
    if not raw.startswith(SALT_MAGIC) or len(raw) <= header_len:
        raise DecryptionError("Proof is missing the salted envelope header")
    ciphertext = raw[header_len:]
    if len(ciphertext) % IV_SIZE:
        raise DecryptionError("Proof ciphertext is not a whole number of blocks")

    key, iv = evp_bytes_to_key(passphrase.encode("utf-8"), raw[len(SALT_MAGIC):header_len])
    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    padded = decryptor.update(ciphertext) + decryptor.finalize()

    unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
    try:
        plaintext = unpadder.update(padded) + unpadder.finalize()
    except ValueError as e:
        raise DecryptionError("Proof padding is invalid (wrong key?)") from e

    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecryptionError("Decrypted proof is not UTF-8") from e


def encrypt_proof(proof: Dict[str, Any], passphrase: str, salt: bytes = None) -> str:
    """Serialize a proof object to JSON and encrypt it."""
    return encrypt_text(json.dumps(proof, separators=(",", ":")), passphrase, salt=salt)


def decrypt_proof(envelope: str, passphrase: str) -> Dict[str, Any]:
    """Decrypt an envelope and parse its JSON object."""
    text = decrypt_text(envelope, passphrase)
    try:
        data = json.loads(text)
    except ValueError as e:
        raise DecryptionError(f"Decrypted proof is not JSON: {e}") from e
    if not isinstance(data, dict):
        raise DecryptionError(f"Decrypted proof is not a JSON object: {type(data).__name__}")
    return data
