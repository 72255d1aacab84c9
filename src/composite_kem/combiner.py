"""
KEM combiner для composite ML-KEM + ECDH.

Реализует функцию объединения секретов из draft-ietf-lamps-pq-composite-kem
с SHA3-256:

    ss = SHA3-256(ss_KEM || ss_ECDH || P_eph || P_static || Label)

где P_eph и P_static - точки в несжатой форме 0x04 || X || Y.

Порядок аргументов фиксирован: эфемерная точка всегда идёт первой,
статическая - второй, и на стороне encapsulate, и на стороне decapsulate.
Перестановка любых входов даёт другой секрет.

Example:
    >>> p = EcPoint(b"\\x01" * 32, b"\\x02" * 32)
    >>> q = EcPoint(b"\\x03" * 32, b"\\x04" * 32)
    >>> len(combine(b"a" * 32, b"b" * 32, p, q, b"MLKEM768-P256"))
    32
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Union

from cryptography.hazmat.primitives import hashes

from composite_kem.core.exceptions import InvalidEncodingError
from composite_kem.core.protocols import IncrementalHashProtocol
from composite_kem.core.registry import (
    SHARED_SECRET_SIZE,
    UNCOMPRESSED_POINT_TAG,
    EcCurve,
    coordinate_size,
    public_key_size,
)
from composite_kem.utils import check_bytes_like, ensure_bytes

logger = logging.getLogger(__name__)

HashFactory = Callable[[], IncrementalHashProtocol]


def _sha3_256() -> IncrementalHashProtocol:
    return hashes.Hash(hashes.SHA3_256())


# ==============================================================================
# EC POINT
# ==============================================================================


@dataclass(frozen=True)
class EcPoint:
    """
    Аффинная точка кривой (X, Y) фиксированной длины.

    Значение без привязки к библиотеке: X и Y - big-endian координаты,
    дополненные до длины координаты кривой.
    """

    x: bytes
    y: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "x", ensure_bytes(self.x, "x"))
        object.__setattr__(self, "y", ensure_bytes(self.y, "y"))
        if not self.x or len(self.x) != len(self.y):
            raise InvalidEncodingError(
                "Point coordinates must be non-empty and of equal length",
                expected_size=len(self.x),
                actual_size=len(self.y),
            )

    @property
    def coordinate_size(self) -> int:
        return len(self.x)

    def encode(self) -> bytes:
        """0x04 || X || Y."""
        return bytes([UNCOMPRESSED_POINT_TAG]) + self.x + self.y

    @classmethod
    def decode(cls, data: bytes, curve: Union[EcCurve, str]) -> "EcPoint":
        """
        Разобрать несжатую точку.

        Проверяются только длина и байт формата; принадлежность
        кривой проверяет ECDH backend.

        Raises:
            InvalidEncodingError: Неверная длина или байт формата не 0x04
        """
        data = ensure_bytes(data, "point")
        expected = public_key_size(curve)
        if len(data) != expected:
            raise InvalidEncodingError(
                "Encoded point has wrong length",
                expected_size=expected,
                actual_size=len(data),
            )
        if data[0] != UNCOMPRESSED_POINT_TAG:
            raise InvalidEncodingError(
                f"Unsupported point format 0x{data[0]:02x}, expected uncompressed (0x04)"
            )

        size = coordinate_size(curve)
        return cls(data[1 : 1 + size], data[1 + size :])

    def __repr__(self) -> str:
        return f"EcPoint(coordinate_size={self.coordinate_size})"


# ==============================================================================
# COMBINER
# ==============================================================================


def combine(
    secret_a: bytes,
    secret_b: bytes,
    point_p: EcPoint,
    point_q: EcPoint,
    label: Union[bytes, str],
    *,
    hash_factory: Optional[HashFactory] = None,
) -> bytes:
    """
    Объединить два общих секрета в один 32-байтовый секрет.

    Входы подаются в один экземпляр хеша строго в порядке:
    secret_a, secret_b, 0x04||Xp||Yp, 0x04||Xq||Yq, label.
    Хеш финализируется ровно один раз, после label.

    Args:
        secret_a: Секрет ML-KEM
        secret_b: Сырой секрет ECDH (X-координата общей точки)
        point_p: Эфемерная точка
        point_q: Статическая точка получателя
        label: Domain separator алгоритма (ASCII)
        hash_factory: Фабрика инкрементального хеша; по умолчанию SHA3-256

    Returns:
        32 байта общего секрета
    """
    if isinstance(label, str):
        label = label.encode("ascii")

    hasher = (hash_factory or _sha3_256)()
    hasher.update(check_bytes_like(secret_a, "secret_a"))
    hasher.update(check_bytes_like(secret_b, "secret_b"))
    hasher.update(point_p.encode())
    hasher.update(point_q.encode())
    hasher.update(ensure_bytes(label, "label"))
    digest = hasher.finalize()

    if len(digest) != SHARED_SECRET_SIZE:
        raise ValueError(
            f"Combiner hash must produce {SHARED_SECRET_SIZE} bytes, got {len(digest)}"
        )

    logger.debug(f"Combined shared secret: label={label!r}")
    return digest


__all__ = [
    "EcPoint",
    "HashFactory",
    "combine",
]
