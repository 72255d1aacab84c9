"""
Протокольные интерфейсы backend-компонент composite KEM.

Ядро (CompositeMLKem) не знает о конкретных библиотеках: оно потребляет
три узких capability-интерфейса, которые внедряются при создании ключа.

- LatticeKemProtocol - ML-KEM (keygen из seed, import/export, encaps/decaps)
- EllipticDiffieHellmanProtocol - ECDH на NIST-кривой, работа с точками
- IncrementalHashProtocol - хеш с поэтапной подачей данных (update/finalize)

Модуль использует typing.Protocol (structural subtyping без явного
наследования). Все Protocol классы помечены @runtime_checkable для
поддержки isinstance() проверок, что удобно для test doubles.

Example:
    >>> from composite_kem.algorithms.ecdh import CryptographyECDH
    >>> isinstance(CryptographyECDH(), EllipticDiffieHellmanProtocol)
    True
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, Tuple, runtime_checkable

if TYPE_CHECKING:
    from composite_kem.core.registry import EcCurve, MLKemParameterSet

__all__ = [
    "LatticeKemProtocol",
    "EllipticDiffieHellmanProtocol",
    "IncrementalHashProtocol",
]


# ==============================================================================
# LATTICE KEM PROTOCOL
# ==============================================================================


@runtime_checkable
class LatticeKemProtocol(Protocol):
    """
    Протокол для lattice-based KEM (ML-KEM, FIPS 203).

    Ключ - непрозрачный handle, который создаёт и понимает только
    сам backend. Размеры полей фиксированы параметрическим набором.

    Attributes:
        parameter_set: Параметрический набор (ML-KEM-768 / ML-KEM-1024)
        seed_size: Размер приватного seed (64)
        encapsulation_key_size: Размер публичного ключа
        ciphertext_size: Размер ciphertext
        shared_secret_size: Размер общего секрета (32)

    Example:
        >>> kem = KyberPyMLKem(MLKemParameterSet.ML_KEM_768)
        >>> key = kem.generate()
        >>> ct, ss = kem.encapsulate(key)
        >>> kem.decapsulate(key, ct) == ss
        True
    """

    parameter_set: "MLKemParameterSet"
    seed_size: int
    encapsulation_key_size: int
    ciphertext_size: int
    shared_secret_size: int

    def generate(self) -> Any:
        """Сгенерировать новый ключ (из свежего seed)."""
        ...

    def import_private_seed(self, seed: bytes) -> Any:
        """Восстановить полную пару ключей из seed."""
        ...

    def import_encapsulation_key(self, data: bytes) -> Any:
        """Импортировать только публичную часть."""
        ...

    def export_private_seed(self, key: Any) -> bytes:
        """Экспортировать seed (ключ должен содержать приватную часть)."""
        ...

    def export_encapsulation_key(self, key: Any) -> bytes:
        """Экспортировать публичный ключ."""
        ...

    def encapsulate(self, key: Any) -> Tuple[bytes, bytes]:
        """
        Encapsulate против публичной части ключа.

        Returns:
            (ciphertext, shared_secret)
        """
        ...

    def decapsulate(self, key: Any, ciphertext: bytes) -> bytes:
        """Извлечь shared secret из ciphertext приватной частью ключа."""
        ...


# ==============================================================================
# ELLIPTIC CURVE DIFFIE-HELLMAN PROTOCOL
# ==============================================================================


@runtime_checkable
class EllipticDiffieHellmanProtocol(Protocol):
    """
    Протокол для ECDH на именованной кривой.

    Точки передаются как пары координат фиксированной длины (big-endian),
    без привязки к нативной кодировке библиотеки.

    Security:
        import_point ОБЯЗАН проверять принадлежность точки кривой:
        это основная защита от invalid-curve атак.
    """

    def generate(self, curve: "EcCurve") -> Any:
        """Сгенерировать приватный ключ на кривой."""
        ...

    def derive_raw_secret(self, private_key: Any, peer_public_key: Any) -> bytes:
        """Сырой ECDH секрет (X-координата общей точки)."""
        ...

    def export_point(self, key: Any) -> Tuple[bytes, bytes]:
        """Аффинные координаты (X, Y) публичной точки ключа."""
        ...

    def import_point(self, curve: "EcCurve", x: bytes, y: bytes) -> Any:
        """Создать публичный ключ из координат (с проверкой на кривой)."""
        ...

    def validate_on_curve(self, curve: "EcCurve", x: bytes, y: bytes) -> bool:
        """True, если (X, Y) лежит на кривой."""
        ...

    def export_private_scalar(self, private_key: Any) -> bytes:
        """Закодировать приватный скаляр (RFC 5915 ECPrivateKey)."""
        ...

    def import_private_scalar(self, curve: "EcCurve", data: bytes) -> Any:
        """Восстановить приватный ключ из кодировки RFC 5915."""
        ...


# ==============================================================================
# INCREMENTAL HASH PROTOCOL
# ==============================================================================


@runtime_checkable
class IncrementalHashProtocol(Protocol):
    """
    Хеш с поэтапной подачей данных.

    Совпадает по форме с cryptography.hazmat.primitives.hashes.Hash,
    поэтому экземпляр Hash(SHA3_256()) подходит без адаптера.
    """

    def update(self, data: bytes) -> None:
        ...

    def finalize(self) -> bytes:
        ...
