"""
Тесты KEM combiner и EcPoint.

Покрытие:
- Совпадение с прямым вычислением SHA3-256 по конкатенации
- Детерминизм и чувствительность к каждому входу
- Порядок аргументов (эфемерная точка первая)
- Подключаемый hash_factory
- Кодирование/разбор точки
"""

from __future__ import annotations

import hashlib
from typing import List

import pytest

from composite_kem.combiner import EcPoint, combine
from composite_kem.core.exceptions import InvalidEncodingError
from composite_kem.core.registry import EcCurve

SECRET_A = bytes(range(32))
SECRET_B = bytes(range(32, 64))
POINT_P = EcPoint(b"\x11" * 32, b"\x22" * 32)
POINT_Q = EcPoint(b"\x33" * 32, b"\x44" * 32)
LABEL = b"MLKEM768-P256"


def _reference(a: bytes, b: bytes, p: EcPoint, q: EcPoint, label: bytes) -> bytes:
    return hashlib.sha3_256(
        a + b + b"\x04" + p.x + p.y + b"\x04" + q.x + q.y + label
    ).digest()


class RecordingHash:
    """Хеш-двойник: запоминает порядок update и число finalize."""

    def __init__(self) -> None:
        self.chunks: List[bytes] = []
        self.finalized = 0

    def update(self, data: bytes) -> None:
        assert self.finalized == 0
        self.chunks.append(bytes(data))

    def finalize(self) -> bytes:
        self.finalized += 1
        return hashlib.sha3_256(b"".join(self.chunks)).digest()


# ==============================================================================
# TEST: COMBINE
# ==============================================================================


class TestCombine:
    def test_matches_reference(self) -> None:
        assert combine(SECRET_A, SECRET_B, POINT_P, POINT_Q, LABEL) == _reference(
            SECRET_A, SECRET_B, POINT_P, POINT_Q, LABEL
        )

    def test_output_size(self) -> None:
        assert len(combine(b"", b"", POINT_P, POINT_Q, b"")) == 32

    def test_deterministic(self) -> None:
        first = combine(SECRET_A, SECRET_B, POINT_P, POINT_Q, LABEL)
        second = combine(SECRET_A, SECRET_B, POINT_P, POINT_Q, LABEL)
        assert first == second

    def test_accepts_bytearray_and_str_label(self) -> None:
        assert combine(
            bytearray(SECRET_A), bytearray(SECRET_B), POINT_P, POINT_Q, "MLKEM768-P256"
        ) == combine(SECRET_A, SECRET_B, POINT_P, POINT_Q, LABEL)

    @pytest.mark.parametrize("position", [0, 15, 31])
    def test_bit_flip_in_either_secret(self, position: int) -> None:
        baseline = combine(SECRET_A, SECRET_B, POINT_P, POINT_Q, LABEL)

        flipped_a = bytearray(SECRET_A)
        flipped_a[position] ^= 0x01
        flipped_b = bytearray(SECRET_B)
        flipped_b[position] ^= 0x80

        assert combine(bytes(flipped_a), SECRET_B, POINT_P, POINT_Q, LABEL) != baseline
        assert combine(SECRET_A, bytes(flipped_b), POINT_P, POINT_Q, LABEL) != baseline

    def test_bit_flip_in_points(self) -> None:
        baseline = combine(SECRET_A, SECRET_B, POINT_P, POINT_Q, LABEL)
        p2 = EcPoint(POINT_P.x, POINT_P.y[:-1] + b"\x23")
        q2 = EcPoint(b"\x32" + POINT_Q.x[1:], POINT_Q.y)

        assert combine(SECRET_A, SECRET_B, p2, POINT_Q, LABEL) != baseline
        assert combine(SECRET_A, SECRET_B, POINT_P, q2, LABEL) != baseline

    def test_label_separates_domains(self) -> None:
        assert combine(SECRET_A, SECRET_B, POINT_P, POINT_Q, b"MLKEM768-P256") != combine(
            SECRET_A, SECRET_B, POINT_P, POINT_Q, b"MLKEM768-P384"
        )

    def test_swapping_secrets_changes_output(self) -> None:
        assert combine(SECRET_A, SECRET_B, POINT_P, POINT_Q, LABEL) != combine(
            SECRET_B, SECRET_A, POINT_P, POINT_Q, LABEL
        )

    def test_swapping_points_changes_output(self) -> None:
        assert combine(SECRET_A, SECRET_B, POINT_P, POINT_Q, LABEL) != combine(
            SECRET_A, SECRET_B, POINT_Q, POINT_P, LABEL
        )

    def test_feed_order_and_single_finalize(self) -> None:
        recorder = RecordingHash()

        result = combine(
            SECRET_A, SECRET_B, POINT_P, POINT_Q, LABEL, hash_factory=lambda: recorder
        )

        assert recorder.chunks == [
            SECRET_A,
            SECRET_B,
            POINT_P.encode(),
            POINT_Q.encode(),
            LABEL,
        ]
        assert recorder.finalized == 1
        assert result == _reference(SECRET_A, SECRET_B, POINT_P, POINT_Q, LABEL)

    def test_secret_buffers_are_hashed_without_copy(self) -> None:
        """bytearray секреты уходят в хеш как есть, чтобы их можно было стереть."""
        seen: List[object] = []

        class IdentityHash(RecordingHash):
            def update(self, data: bytes) -> None:
                seen.append(data)
                super().update(data)

        secret_a = bytearray(SECRET_A)
        secret_b = bytearray(SECRET_B)

        result = combine(
            secret_a, secret_b, POINT_P, POINT_Q, LABEL, hash_factory=IdentityHash
        )

        assert seen[0] is secret_a
        assert seen[1] is secret_b
        assert result == _reference(SECRET_A, SECRET_B, POINT_P, POINT_Q, LABEL)

    def test_rejects_non_bytes_secret(self) -> None:
        with pytest.raises(TypeError, match="secret_a must be bytes"):
            combine("secret", SECRET_B, POINT_P, POINT_Q, LABEL)  # type: ignore[arg-type]

    def test_hash_with_wrong_digest_size(self) -> None:
        class ShortHash(RecordingHash):
            def finalize(self) -> bytes:
                return b"\x00" * 16

        with pytest.raises(ValueError):
            combine(SECRET_A, SECRET_B, POINT_P, POINT_Q, LABEL, hash_factory=ShortHash)


# ==============================================================================
# TEST: EC POINT
# ==============================================================================


class TestEcPoint:
    def test_encode(self) -> None:
        assert POINT_P.encode() == b"\x04" + b"\x11" * 32 + b"\x22" * 32

    @pytest.mark.parametrize(
        "curve,size", [(EcCurve.P256, 32), (EcCurve.P384, 48), (EcCurve.P521, 66)]
    )
    def test_decode(self, curve: EcCurve, size: int) -> None:
        data = b"\x04" + b"\xaa" * size + b"\xbb" * size
        point = EcPoint.decode(data, curve)

        assert point == EcPoint(b"\xaa" * size, b"\xbb" * size)
        assert point.coordinate_size == size
        assert point.encode() == data

    @pytest.mark.parametrize("tag", [0x00, 0x02, 0x03, 0x06])
    def test_decode_rejects_non_uncompressed_tag(self, tag: int) -> None:
        data = bytes([tag]) + b"\xaa" * 64
        with pytest.raises(InvalidEncodingError, match="0x04"):
            EcPoint.decode(data, EcCurve.P256)

    def test_decode_rejects_wrong_length(self) -> None:
        with pytest.raises(InvalidEncodingError) as exc_info:
            EcPoint.decode(b"\x04" + b"\xaa" * 64, EcCurve.P384)
        assert exc_info.value.expected_size == 97
        assert exc_info.value.actual_size == 65

    def test_unequal_coordinates_rejected(self) -> None:
        with pytest.raises(InvalidEncodingError):
            EcPoint(b"\x01" * 32, b"\x02" * 31)

    def test_empty_coordinates_rejected(self) -> None:
        with pytest.raises(InvalidEncodingError):
            EcPoint(b"", b"")

    def test_repr_hides_coordinates(self) -> None:
        assert repr(POINT_P) == "EcPoint(coordinate_size=32)"
