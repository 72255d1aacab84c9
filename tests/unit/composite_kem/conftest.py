"""
Общие fixtures для тестов composite KEM.

FakeLatticeKem - детерминированный in-memory двойник ML-KEM. Он
соблюдает размеры FIPS 203 и контракт LatticeKemProtocol, но НЕ
является криптографией: нужен, чтобы проверять оркестрацию
CompositeMLKem отдельно от настоящего backend.
"""

from __future__ import annotations

import hashlib
import logging
import os
from typing import Callable, Dict, List, Optional, Tuple

import pytest

from composite_kem.core.exceptions import InvalidEncodingError, NotInitializedError
from composite_kem.core.registry import EcCurve, MLKemParameterSet


class FakeLatticeKey:
    """Handle двойника: ek всегда, seed только для приватного ключа."""

    def __init__(self, encapsulation_key: bytes, seed: Optional[bytes] = None) -> None:
        self.encapsulation_key = encapsulation_key
        self.seed = bytearray(seed) if seed is not None else None
        self.wiped = False

    def wipe(self) -> None:
        if self.seed is not None:
            for i in range(len(self.seed)):
                self.seed[i] = 0
        self.seed = None
        self.wiped = True


class FakeLatticeKem:
    """
    Детерминированный двойник ML-KEM.

    ek = SHAKE-256("ek" || seed), ct = m || 0...0, ss = SHA3-256(ek || m).
    """

    def __init__(self, parameter_set: MLKemParameterSet) -> None:
        self.parameter_set = parameter_set
        self.seed_size = parameter_set.seed_size
        self.encapsulation_key_size = parameter_set.encapsulation_key_size
        self.ciphertext_size = parameter_set.ciphertext_size
        self.shared_secret_size = parameter_set.shared_secret_size
        self.issued_keys: List[FakeLatticeKey] = []
        self.fail_generate = False

    def _derive_ek(self, seed: bytes) -> bytes:
        return hashlib.shake_256(b"ek" + seed).digest(self.encapsulation_key_size)

    def generate(self) -> FakeLatticeKey:
        if self.fail_generate:
            raise RuntimeError("lattice backend unavailable")
        return self.import_private_seed(os.urandom(self.seed_size))

    def import_private_seed(self, seed: bytes) -> FakeLatticeKey:
        if len(seed) != self.seed_size:
            raise InvalidEncodingError(
                "seed", expected_size=self.seed_size, actual_size=len(seed)
            )
        key = FakeLatticeKey(self._derive_ek(bytes(seed)), bytes(seed))
        self.issued_keys.append(key)
        return key

    def import_encapsulation_key(self, data: bytes) -> FakeLatticeKey:
        if len(data) != self.encapsulation_key_size:
            raise InvalidEncodingError(
                "ek", expected_size=self.encapsulation_key_size, actual_size=len(data)
            )
        key = FakeLatticeKey(bytes(data))
        self.issued_keys.append(key)
        return key

    def export_private_seed(self, key: FakeLatticeKey) -> bytes:
        if key.seed is None:
            raise NotInitializedError("no seed")
        return bytes(key.seed)

    def export_encapsulation_key(self, key: FakeLatticeKey) -> bytes:
        return key.encapsulation_key

    def encapsulate(self, key: FakeLatticeKey) -> Tuple[bytes, bytes]:
        message = os.urandom(32)
        ciphertext = message + bytes(self.ciphertext_size - 32)
        return ciphertext, hashlib.sha3_256(key.encapsulation_key + message).digest()

    def decapsulate(self, key: FakeLatticeKey, ciphertext: bytes) -> bytes:
        if key.seed is None:
            raise NotInitializedError("no seed")
        return hashlib.sha3_256(key.encapsulation_key + ciphertext[:32]).digest()


@pytest.fixture
def fake_lattice_kem() -> Callable[[MLKemParameterSet], FakeLatticeKem]:
    """Фабрика двойников ML-KEM для заданного набора параметров."""

    def _factory(parameter_set: MLKemParameterSet) -> FakeLatticeKem:
        return FakeLatticeKem(parameter_set)

    return _factory


@pytest.fixture
def propagate_logs(monkeypatch: pytest.MonkeyPatch) -> None:
    """Пакетный логгер не распространяет записи; caplog слушает root."""
    monkeypatch.setattr(logging.getLogger("composite_kem"), "propagate", True)


@pytest.fixture
def group_orders() -> Dict[EcCurve, int]:
    """Порядок n базовой точки (FIPS 186-5 / SEC 2)."""
    return {
        EcCurve.P256: int(
            "FFFFFFFF00000000FFFFFFFFFFFFFFFFBCE6FAADA7179E84F3B9CAC2FC632551", 16
        ),
        EcCurve.P384: int(
            "F" * 48 + "C7634D81F4372DDF581A0DB248B0A77AECEC196ACCC52973", 16
        ),
        EcCurve.P521: int(
            "1" + "F" * 64
            + "FA51868783BF2F966B7FCC0148F709A5D03BB5C9B8899C47AEBB6FB71E91386409",
            16,
        ),
    }
