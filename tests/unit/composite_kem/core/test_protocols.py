"""Тесты соответствия backend-классов протоколам (runtime_checkable)."""

from __future__ import annotations

from cryptography.hazmat.primitives import hashes

from composite_kem.algorithms.ecdh import CryptographyECDH
from composite_kem.algorithms.ml_kem import KyberPyMLKem
from composite_kem.core.protocols import (
    EllipticDiffieHellmanProtocol,
    IncrementalHashProtocol,
    LatticeKemProtocol,
)
from composite_kem.core.registry import MLKemParameterSet


class TestProtocolConformance:
    def test_cryptography_ecdh(self) -> None:
        assert isinstance(CryptographyECDH(), EllipticDiffieHellmanProtocol)

    def test_kyber_py_backend(self) -> None:
        assert isinstance(KyberPyMLKem(MLKemParameterSet.ML_KEM_768), LatticeKemProtocol)

    def test_fake_backend(self, fake_lattice_kem) -> None:
        assert isinstance(fake_lattice_kem(MLKemParameterSet.ML_KEM_1024), LatticeKemProtocol)

    def test_sha3_hash(self) -> None:
        assert isinstance(hashes.Hash(hashes.SHA3_256()), IncrementalHashProtocol)

    def test_non_conforming_object(self) -> None:
        assert not isinstance(object(), LatticeKemProtocol)
        assert not isinstance(object(), EllipticDiffieHellmanProtocol)
