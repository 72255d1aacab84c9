"""
Реестр композитных алгоритмов ML-KEM + ECDH.

Фиксированный каталог из четырёх параметрических наборов
draft-ietf-lamps-pq-composite-kem (только NIST-кривые):

    MLKEM768-ECDH-P256-SHA3-256   1.3.6.1.5.5.7.6.59
    MLKEM768-ECDH-P384-SHA3-256   1.3.6.1.5.5.7.6.60
    MLKEM1024-ECDH-P384-SHA3-256  1.3.6.1.5.5.7.6.63
    MLKEM1024-ECDH-P521-SHA3-256  1.3.6.1.5.5.7.6.66

Таблица строится один раз при импорте и далее только читается.
Поиск по OID - единственный внешний механизм выбора алгоритма.

Example:
    >>> from composite_kem.core.registry import lookup
    >>> alg = lookup("1.3.6.1.5.5.7.6.59")
    >>> alg.ciphertext_size
    1153
    >>> lookup("1.2.3") is None
    True
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Final, Mapping, Optional, Tuple, Union

from composite_kem.core.exceptions import (
    UnknownAlgorithmError,
    UnsupportedCurveError,
)

__all__ = [
    "EcCurve",
    "MLKemParameterSet",
    "AlgorithmDescriptor",
    "coordinate_size",
    "public_key_size",
    "private_key_size",
    "lookup",
    "get_algorithm",
    "get_algorithm_by_name",
    "list_algorithms",
    "MLKEM768_ECDH_P256_SHA3_256",
    "MLKEM768_ECDH_P384_SHA3_256",
    "MLKEM1024_ECDH_P384_SHA3_256",
    "MLKEM1024_ECDH_P521_SHA3_256",
    "SHARED_SECRET_SIZE",
    "UNCOMPRESSED_POINT_TAG",
]

# Composite shared secret (SHA3-256 output)
SHARED_SECRET_SIZE: Final[int] = 32

# SEC 1 uncompressed point marker
UNCOMPRESSED_POINT_TAG: Final[int] = 0x04


# ==============================================================================
# ELLIPTIC CURVES
# ==============================================================================


class EcCurve(str, Enum):
    """Поддерживаемые NIST-кривые (значение - имя SEC 2)."""

    P256 = "secp256r1"
    P384 = "secp384r1"
    P521 = "secp521r1"

    @property
    def label(self) -> str:
        """Короткое имя для логов: P-256 / P-384 / P-521."""
        return _CURVE_LABELS[self]

    @classmethod
    def from_name(cls, value: Union["EcCurve", str]) -> "EcCurve":
        """
        Разобрать кривую по любому распространённому имени.

        Принимает SEC-имя (secp256r1), NIST-имя (P-256), имя .NET
        (nistP256) и имя OpenSSL (prime256v1); регистр не важен.

        Raises:
            UnsupportedCurveError: Кривая не входит в поддерживаемый набор
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise UnsupportedCurveError(value)

        try:
            return _CURVE_ALIASES[value.strip().lower()]
        except KeyError:
            raise UnsupportedCurveError(value) from None


_CURVE_LABELS: Final[Mapping[EcCurve, str]] = MappingProxyType(
    {
        EcCurve.P256: "P-256",
        EcCurve.P384: "P-384",
        EcCurve.P521: "P-521",
    }
)

_CURVE_ALIASES: Final[Mapping[str, EcCurve]] = MappingProxyType(
    {
        "secp256r1": EcCurve.P256,
        "prime256v1": EcCurve.P256,
        "p-256": EcCurve.P256,
        "p256": EcCurve.P256,
        "nistp256": EcCurve.P256,
        "secp384r1": EcCurve.P384,
        "p-384": EcCurve.P384,
        "p384": EcCurve.P384,
        "nistp384": EcCurve.P384,
        "secp521r1": EcCurve.P521,
        "p-521": EcCurve.P521,
        "p521": EcCurve.P521,
        "nistp521": EcCurve.P521,
    }
)

# Field element size in bytes
_COORDINATE_SIZES: Final[Mapping[EcCurve, int]] = MappingProxyType(
    {
        EcCurve.P256: 32,
        EcCurve.P384: 48,
        EcCurve.P521: 66,
    }
)

# DER length of RFC 5915 ECPrivateKey without the [1] publicKey field
_PRIVATE_KEY_SIZES: Final[Mapping[EcCurve, int]] = MappingProxyType(
    {
        EcCurve.P256: 51,
        EcCurve.P384: 64,
        EcCurve.P521: 82,
    }
)


def coordinate_size(curve: Union[EcCurve, str]) -> int:
    """
    Размер одной аффинной координаты в байтах (32 / 48 / 66).

    Raises:
        UnsupportedCurveError: Кривая не поддерживается
    """
    return _COORDINATE_SIZES[EcCurve.from_name(curve)]


def public_key_size(curve: Union[EcCurve, str]) -> int:
    """Размер несжатой точки: 0x04 || X || Y (65 / 97 / 133)."""
    return 2 * coordinate_size(curve) + 1


def private_key_size(curve: Union[EcCurve, str]) -> int:
    """Размер закодированного приватного скаляра (51 / 64 / 82)."""
    return _PRIVATE_KEY_SIZES[EcCurve.from_name(curve)]


# ==============================================================================
# ML-KEM PARAMETER SETS (FIPS 203)
# ==============================================================================


@dataclass(frozen=True)
class _MLKemSizes:
    seed: int
    encapsulation_key: int
    decapsulation_key: int
    ciphertext: int
    shared_secret: int


class MLKemParameterSet(str, Enum):
    """
    Параметрические наборы ML-KEM, используемые композитными алгоритмами.

    Размеры фиксированы FIPS 203; seed = d || z (64 байта, §7.1).
    """

    ML_KEM_768 = "ML-KEM-768"
    ML_KEM_1024 = "ML-KEM-1024"

    @property
    def _sizes(self) -> _MLKemSizes:
        return _MLKEM_SIZES[self]

    @property
    def seed_size(self) -> int:
        return self._sizes.seed

    @property
    def encapsulation_key_size(self) -> int:
        return self._sizes.encapsulation_key

    @property
    def decapsulation_key_size(self) -> int:
        return self._sizes.decapsulation_key

    @property
    def ciphertext_size(self) -> int:
        return self._sizes.ciphertext

    @property
    def shared_secret_size(self) -> int:
        return self._sizes.shared_secret


_MLKEM_SIZES: Final[Mapping[MLKemParameterSet, _MLKemSizes]] = MappingProxyType(
    {
        MLKemParameterSet.ML_KEM_768: _MLKemSizes(
            seed=64,
            encapsulation_key=1184,
            decapsulation_key=2400,
            ciphertext=1088,
            shared_secret=32,
        ),
        MLKemParameterSet.ML_KEM_1024: _MLKemSizes(
            seed=64,
            encapsulation_key=1568,
            decapsulation_key=3168,
            ciphertext=1568,
            shared_secret=32,
        ),
    }
)


# ==============================================================================
# COMPOSITE ALGORITHM DESCRIPTOR
# ==============================================================================


@dataclass(frozen=True)
class AlgorithmDescriptor:
    """
    Неизменяемое описание композитного алгоритма.

    Attributes:
        name: Полное имя (например, "MLKEM768-ECDH-P256-SHA3-256")
        label: ASCII domain separator для combiner ("MLKEM768-P256")
        oid: Строковый OID
        ml_kem: Параметрический набор ML-KEM
        curve: Кривая ECDH

    Все размеры вычисляются из ml_kem и curve, а не хранятся.
    """

    name: str
    label: str
    oid: str
    ml_kem: MLKemParameterSet
    curve: EcCurve

    def __post_init__(self) -> None:
        if not self.label.isascii():
            raise ValueError("label must be ASCII")

    def __str__(self) -> str:
        return self.name

    @property
    def label_bytes(self) -> bytes:
        return self.label.encode("ascii")

    @property
    def ec_coordinate_size(self) -> int:
        return coordinate_size(self.curve)

    @property
    def ec_public_key_size(self) -> int:
        return public_key_size(self.curve)

    @property
    def ec_private_key_size(self) -> int:
        return private_key_size(self.curve)

    @property
    def private_key_size(self) -> int:
        """seed || ECPrivateKey."""
        return self.ml_kem.seed_size + self.ec_private_key_size

    @property
    def encapsulation_key_size(self) -> int:
        """ek || 0x04 || X || Y."""
        return self.ml_kem.encapsulation_key_size + self.ec_public_key_size

    @property
    def ciphertext_size(self) -> int:
        """ct || 0x04 || X_eph || Y_eph."""
        return self.ml_kem.ciphertext_size + self.ec_public_key_size

    @property
    def shared_secret_size(self) -> int:
        return SHARED_SECRET_SIZE


MLKEM768_ECDH_P256_SHA3_256: Final = AlgorithmDescriptor(
    name="MLKEM768-ECDH-P256-SHA3-256",
    label="MLKEM768-P256",
    oid="1.3.6.1.5.5.7.6.59",
    ml_kem=MLKemParameterSet.ML_KEM_768,
    curve=EcCurve.P256,
)

MLKEM768_ECDH_P384_SHA3_256: Final = AlgorithmDescriptor(
    name="MLKEM768-ECDH-P384-SHA3-256",
    label="MLKEM768-P384",
    oid="1.3.6.1.5.5.7.6.60",
    ml_kem=MLKemParameterSet.ML_KEM_768,
    curve=EcCurve.P384,
)

MLKEM1024_ECDH_P384_SHA3_256: Final = AlgorithmDescriptor(
    name="MLKEM1024-ECDH-P384-SHA3-256",
    label="MLKEM1024-P384",
    oid="1.3.6.1.5.5.7.6.63",
    ml_kem=MLKemParameterSet.ML_KEM_1024,
    curve=EcCurve.P384,
)

MLKEM1024_ECDH_P521_SHA3_256: Final = AlgorithmDescriptor(
    name="MLKEM1024-ECDH-P521-SHA3-256",
    label="MLKEM1024-P521",
    oid="1.3.6.1.5.5.7.6.66",
    ml_kem=MLKemParameterSet.ML_KEM_1024,
    curve=EcCurve.P521,
)

_ALGORITHMS: Final[Tuple[AlgorithmDescriptor, ...]] = (
    MLKEM768_ECDH_P256_SHA3_256,
    MLKEM768_ECDH_P384_SHA3_256,
    MLKEM1024_ECDH_P384_SHA3_256,
    MLKEM1024_ECDH_P521_SHA3_256,
)

_BY_OID: Final[Mapping[str, AlgorithmDescriptor]] = MappingProxyType(
    {alg.oid: alg for alg in _ALGORITHMS}
)

_BY_NAME: Final[Mapping[str, AlgorithmDescriptor]] = MappingProxyType(
    {alg.name.upper(): alg for alg in _ALGORITHMS}
)


# ==============================================================================
# LOOKUP
# ==============================================================================


def lookup(oid: str) -> Optional[AlgorithmDescriptor]:
    """
    Найти дескриптор по OID.

    Returns:
        Дескриптор или None; промах не является ошибкой,
        решение принимает вызывающий код.
    """
    return _BY_OID.get(oid)


def get_algorithm(oid: str) -> AlgorithmDescriptor:
    """
    Найти дескриптор по OID или выбросить исключение.

    Raises:
        UnknownAlgorithmError: OID не зарегистрирован
    """
    descriptor = lookup(oid)
    if descriptor is None:
        raise UnknownAlgorithmError(oid, available=list(_BY_OID))
    return descriptor


def get_algorithm_by_name(name: str) -> AlgorithmDescriptor:
    """
    Найти дескриптор по полному имени (регистр не важен).

    Raises:
        UnknownAlgorithmError: Имя не зарегистрировано
    """
    try:
        return _BY_NAME[name.strip().upper()]
    except KeyError:
        raise UnknownAlgorithmError(
            name, available=[alg.name for alg in _ALGORITHMS]
        ) from None


def list_algorithms() -> Tuple[AlgorithmDescriptor, ...]:
    """Все дескрипторы в порядке таблицы."""
    return _ALGORITHMS
