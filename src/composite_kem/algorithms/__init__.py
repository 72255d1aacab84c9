"""Backend-компоненты: ML-KEM (kyber-py, liboqs) и ECDH (cryptography)."""

from composite_kem.algorithms.ecdh import CryptographyECDH
from composite_kem.algorithms.ml_kem import (
    KyberPyMLKem,
    MLKemKey,
    OqsMLKem,
    create_lattice_kem,
)

__all__ = [
    "CryptographyECDH",
    "KyberPyMLKem",
    "MLKemKey",
    "OqsMLKem",
    "create_lattice_kem",
]
