# -*- coding: utf-8 -*-
"""
RU: Утилиты: RNG через HKDF‑микширование, best‑effort зануление буферов,
сравнение в константное время и проверка длины буферов.
"""
from __future__ import annotations

import hmac
import logging
import os
import secrets
from typing import Final, Optional, Union

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

_LOGGER: Final = logging.getLogger(__name__)

_MAX_RANDOM_BYTES: Final[int] = 1024 * 1024
_RNG_INFO: Final[bytes] = b"COMPOSITE-KEM-UTILS-RNG-v1"


def generate_random_bytes(n: int) -> bytes:
    """
    Generate cryptographically secure random bytes.

    Uses dual-source XOR (os.urandom + secrets.token_bytes) mixed via HKDF-SHA256.

    Args:
        n: number of bytes to generate (1..1MiB).

    Returns:
        Random bytes of requested length.

    Raises:
        ValueError: if n is out of range or the output is degenerate.
    """
    if not isinstance(n, int) or n <= 0 or n > _MAX_RANDOM_BYTES:
        raise ValueError("Requested random size must be in 1..1MiB")

    src1 = os.urandom(n)
    src2 = secrets.token_bytes(n)
    ikm = bytes(a ^ b for a, b in zip(src1, src2))
    salt = src2[:16]
    hkdf = HKDF(algorithm=hashes.SHA256(), length=n, salt=salt, info=_RNG_INFO)
    out = hkdf.derive(ikm)

    if n > 1 and all(b == out[0] for b in out):
        raise ValueError("Degenerate RNG output (all bytes equal)")

    return out


def zero_memory(buf: Optional[bytearray]) -> None:
    """
    Best-effort zeroization of mutable buffer.

    Args:
        buf: bytearray to wipe (None is silently ignored).

    Notes:
        - Only works on bytearray (mutable); bytes cannot be wiped.
        - Ограничения Python: сборщик мусора и копии внутри библиотек
          означают, что истинное стирание недостижимо на чистом Python.
    """
    if buf is None:
        return
    try:
        for i in range(len(buf)):
            buf[i] = 0
    except (TypeError, AttributeError) as e:
        # Expected for immutable types
        _LOGGER.debug("zero_memory skip (immutable): %s", e.__class__.__name__)


def secure_compare(a: Union[bytes, bytearray], b: Union[bytes, bytearray]) -> bool:
    """
    Constant-time bytes comparison.

    Returns:
        True if sequences are equal, False otherwise.
    """
    return hmac.compare_digest(bytes(a), bytes(b))


def ensure_bytes(value: object, name: str) -> bytes:
    """
    Accept bytes-like input and return immutable bytes.

    Raises:
        TypeError: value is not bytes, bytearray or memoryview.
    """
    if isinstance(value, bytes):
        return value
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    raise TypeError(f"{name} must be bytes, got {type(value).__name__}")


def check_bytes_like(value: object, name: str) -> Union[bytes, bytearray, memoryview]:
    """
    Validate bytes-like input without copying it.

    Secrets held in a bytearray stay the only copy, so a later
    zero_memory on the caller side reaches them.

    Raises:
        TypeError: value is not bytes, bytearray or memoryview.
    """
    if isinstance(value, (bytes, bytearray, memoryview)):
        return value
    raise TypeError(f"{name} must be bytes, got {type(value).__name__}")


__all__ = [
    "generate_random_bytes",
    "zero_memory",
    "secure_compare",
    "ensure_bytes",
    "check_bytes_like",
]
