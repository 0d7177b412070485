"""Small encoding helpers shared by the cipher, hasher, ledger and config."""

import base64
import hmac
import json
import time
from typing import Any, Union


def canonicalize(obj: Any) -> bytes:
    """Sorted-key, whitespace-free UTF-8 JSON; the bytes a SignedCall signs."""
    return json.dumps(obj, sort_keys=True, separators=(',', ':'), ensure_ascii=False).encode('utf-8')


def now_epoch() -> int:
    return int(time.time())


def b64e(b: bytes) -> str:
    return base64.b64encode(b).decode('ascii')


def b64d(s: str) -> bytes:
    """Strict base64 decode; stray characters raise binascii.Error."""
    return base64.b64decode(s.encode('ascii'), validate=True)


def constant_time_compare(a: Union[str, bytes], b: Union[str, bytes]) -> bool:
    if isinstance(a, str):
        a = a.encode('utf-8')
    if isinstance(b, str):
        b = b.encode('utf-8')
    return hmac.compare_digest(a, b)


def mask_sensitive(value: str, visible_chars: int = 4) -> str:
    """Keep only the last visible_chars of a key or seed for reprs."""
    hidden = max(len(value) - visible_chars, 0)
    return '*' * hidden + value[hidden:] if hidden else '*' * len(value)


def strip_hex_prefix(s: str) -> str:
    return s[2:] if s[:2].lower() == "0x" else s
