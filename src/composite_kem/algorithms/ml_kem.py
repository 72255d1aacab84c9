"""
ML-KEM backends (FIPS 203) для composite KEM.

Модуль реализует LatticeKemProtocol двумя способами:

    1. KyberPyMLKem - kyber-py (чистый Python, backend по умолчанию)
    2. OqsMLKem - liboqs-python (C-библиотека liboqs)

Оба backend работают с приватным ключом в seed-формате (FIPS 203 §7.1):

    seed = d || z  (64 байта)

Из seed детерминированно выводится пара (ek, dk); именно seed, а не
развёрнутый dk, входит в композитный приватный ключ.

Поддерживаемые наборы:
    - ML-KEM-768:  ek=1184 B, dk=2400 B, ct=1088 B, ss=32 B
    - ML-KEM-1024: ek=1568 B, dk=3168 B, ct=1568 B, ss=32 B

Requirements:
    - kyber-py >= 1.0 (key_derive)
    - liboqs-python >= 0.14.0, собранный с поддержкой keypair из seed
      (только для OqsMLKem)

Example:
    >>> kem = create_lattice_kem(MLKemParameterSet.ML_KEM_768)
    >>> receiver = kem.generate()
    >>> ciphertext, shared_a = kem.encapsulate(receiver)
    >>> shared_b = kem.decapsulate(receiver, ciphertext)
    >>> assert shared_a == shared_b
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple, Type, Union

from composite_kem.core.config import LatticeBackend, get_default_config
from composite_kem.core.exceptions import (
    AlgorithmNotSupportedError,
    CryptoError,
    DecapsulationFailedError,
    EncapsulationFailedError,
    InvalidEncodingError,
    KeyGenerationError,
    NotInitializedError,
)
from composite_kem.core.registry import MLKemParameterSet
from composite_kem.utils import ensure_bytes, generate_random_bytes, zero_memory

logger = logging.getLogger(__name__)


# ==============================================================================
# KEY HANDLE
# ==============================================================================


class MLKemKey:
    """
    Handle ключа ML-KEM.

    Содержит публичный ключ всегда, а seed и развёрнутый dk - только
    если ключ создан генерацией или импортом seed.

    Attributes:
        parameter_set: Параметрический набор
        encapsulation_key: Публичный ключ (ek)
    """

    __slots__ = ("parameter_set", "encapsulation_key", "_decapsulation_key", "_seed")

    def __init__(
        self,
        parameter_set: MLKemParameterSet,
        encapsulation_key: bytes,
        *,
        decapsulation_key: Optional[bytes] = None,
        seed: Optional[bytes] = None,
    ) -> None:
        self.parameter_set = parameter_set
        self.encapsulation_key = encapsulation_key
        self._decapsulation_key = decapsulation_key
        self._seed: Optional[bytearray] = bytearray(seed) if seed is not None else None

    @property
    def has_private_key(self) -> bool:
        return self._seed is not None and self._decapsulation_key is not None

    @property
    def decapsulation_key(self) -> Optional[bytes]:
        return self._decapsulation_key

    @property
    def seed(self) -> Optional[bytes]:
        return bytes(self._seed) if self._seed is not None else None

    def wipe(self) -> None:
        """Стереть приватную часть (best-effort); публичный ключ остаётся."""
        zero_memory(self._seed)
        self._seed = None
        self._decapsulation_key = None

    def __repr__(self) -> str:
        return (
            f"MLKemKey(parameter_set={self.parameter_set.value}, "
            f"has_private_key={self.has_private_key})"
        )


# ==============================================================================
# BASE CLASS
# ==============================================================================


class _MLKemBase(ABC):
    """
    Базовый класс ML-KEM backend.

    Общая логика: проверка размеров, работа с handle, перевод ошибок
    библиотеки в иерархию CryptoError. Наследники реализуют только три
    примитива: вывод пары из seed, encaps и decaps.
    """

    BACKEND_NAME: str
    REQUIRED_LIBRARY: str

    def __init__(self, parameter_set: Union[MLKemParameterSet, str]) -> None:
        self.parameter_set = MLKemParameterSet(parameter_set)
        self.seed_size = self.parameter_set.seed_size
        self.encapsulation_key_size = self.parameter_set.encapsulation_key_size
        self.ciphertext_size = self.parameter_set.ciphertext_size
        self.shared_secret_size = self.parameter_set.shared_secret_size
        self._logger = logger.getChild(self.BACKEND_NAME)

    @property
    def algorithm_name(self) -> str:
        return self.parameter_set.value

    # --------------------------------------------------------------------------
    # Backend primitives
    # --------------------------------------------------------------------------

    @abstractmethod
    def _derive_keypair(self, seed: bytes) -> Tuple[bytes, bytes]:
        """(ek, dk) из 64-байтового seed."""
        ...

    @abstractmethod
    def _encaps(self, encapsulation_key: bytes) -> Tuple[bytes, bytes]:
        """(ciphertext, shared_secret)."""
        ...

    @abstractmethod
    def _decaps(self, decapsulation_key: bytes, ciphertext: bytes) -> bytes:
        ...

    # --------------------------------------------------------------------------
    # LatticeKemProtocol
    # --------------------------------------------------------------------------

    def generate(self) -> MLKemKey:
        """Сгенерировать новый ключ из свежего seed."""
        seed = bytearray(generate_random_bytes(self.seed_size))
        try:
            return self.import_private_seed(bytes(seed))
        finally:
            zero_memory(seed)

    def import_private_seed(self, seed: bytes) -> MLKemKey:
        """
        Развернуть seed в полную пару ключей.

        Raises:
            InvalidEncodingError: seed не 64 байта
            AlgorithmNotSupportedError: backend не умеет работать с seed
            KeyGenerationError: вывод ключей не удался
        """
        seed = ensure_bytes(seed, "seed")
        if len(seed) != self.seed_size:
            raise InvalidEncodingError(
                f"{self.algorithm_name} seed must be {self.seed_size} bytes",
                algorithm=self.algorithm_name,
                expected_size=self.seed_size,
                actual_size=len(seed),
            )

        try:
            encapsulation_key, decapsulation_key = self._derive_keypair(seed)
        except CryptoError:
            raise
        except Exception as exc:
            raise KeyGenerationError(
                f"{self.algorithm_name} key derivation failed",
                algorithm=self.algorithm_name,
            ) from exc

        self._logger.debug(
            f"Derived {self.algorithm_name} keypair: "
            f"ek={len(encapsulation_key)}B, dk={len(decapsulation_key)}B"
        )

        return MLKemKey(
            self.parameter_set,
            bytes(encapsulation_key),
            decapsulation_key=bytes(decapsulation_key),
            seed=seed,
        )

    def import_encapsulation_key(self, data: bytes) -> MLKemKey:
        """
        Импортировать публичный ключ.

        Raises:
            InvalidEncodingError: Неверная длина
        """
        data = ensure_bytes(data, "encapsulation_key")
        if len(data) != self.encapsulation_key_size:
            raise InvalidEncodingError(
                f"{self.algorithm_name} encapsulation key must be "
                f"{self.encapsulation_key_size} bytes",
                algorithm=self.algorithm_name,
                expected_size=self.encapsulation_key_size,
                actual_size=len(data),
            )
        return MLKemKey(self.parameter_set, data)

    def export_private_seed(self, key: MLKemKey) -> bytes:
        """
        Raises:
            NotInitializedError: ключ не содержит приватной части
        """
        seed = key.seed
        if seed is None:
            raise NotInitializedError(
                f"{self.algorithm_name} key has no private seed",
                algorithm=self.algorithm_name,
            )
        return seed

    def export_encapsulation_key(self, key: MLKemKey) -> bytes:
        return key.encapsulation_key

    def encapsulate(self, key: MLKemKey) -> Tuple[bytes, bytes]:
        """
        Encapsulate против публичного ключа.

        Returns:
            (ciphertext, shared_secret)

        Raises:
            EncapsulationFailedError: backend отверг ключ или упал
        """
        try:
            ciphertext, shared_secret = self._encaps(key.encapsulation_key)
        except CryptoError:
            raise
        except Exception as exc:
            raise EncapsulationFailedError(
                f"{self.algorithm_name} encapsulation failed",
                algorithm=self.algorithm_name,
            ) from exc

        self._logger.debug(
            f"{self.algorithm_name} encapsulation: "
            f"ciphertext={len(ciphertext)}B, shared={len(shared_secret)}B"
        )
        return bytes(ciphertext), bytes(shared_secret)

    def decapsulate(self, key: MLKemKey, ciphertext: bytes) -> bytes:
        """
        Decapsulate ciphertext приватным ключом.

        Raises:
            NotInitializedError: ключ без приватной части
            InvalidEncodingError: неверная длина ciphertext
            DecapsulationFailedError: backend упал
        """
        decapsulation_key = key.decapsulation_key
        if decapsulation_key is None:
            raise NotInitializedError(
                f"{self.algorithm_name} key has no decapsulation key",
                algorithm=self.algorithm_name,
            )

        ciphertext = ensure_bytes(ciphertext, "ciphertext")
        if len(ciphertext) != self.ciphertext_size:
            raise InvalidEncodingError(
                f"{self.algorithm_name} ciphertext must be {self.ciphertext_size} bytes",
                algorithm=self.algorithm_name,
                expected_size=self.ciphertext_size,
                actual_size=len(ciphertext),
            )

        try:
            shared_secret = self._decaps(decapsulation_key, ciphertext)
        except CryptoError:
            raise
        except Exception as exc:
            raise DecapsulationFailedError(
                f"{self.algorithm_name} decapsulation failed",
                algorithm=self.algorithm_name,
            ) from exc

        self._logger.debug(
            f"{self.algorithm_name} decapsulation: shared={len(shared_secret)}B"
        )
        return bytes(shared_secret)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.algorithm_name!r})"


# ==============================================================================
# KYBER-PY BACKEND
# ==============================================================================


class KyberPyMLKem(_MLKemBase):
    """
    ML-KEM на kyber-py - чистая Python-реализация FIPS 203.

    Медленнее liboqs (~10-50x), но не требует сборки C-библиотеки
    и поддерживает вывод ключей из seed (key_derive).

    Note:
        Реализация не constant-time; для продакшена с требованиями
        к побочным каналам выбирайте LatticeBackend.LIBOQS.
    """

    BACKEND_NAME = "kyber-py"
    REQUIRED_LIBRARY = "kyber-py>=1.0"

    _IMPLEMENTATIONS: Dict[MLKemParameterSet, str] = {
        MLKemParameterSet.ML_KEM_768: "ML_KEM_768",
        MLKemParameterSet.ML_KEM_1024: "ML_KEM_1024",
    }

    def __init__(self, parameter_set: Union[MLKemParameterSet, str]) -> None:
        super().__init__(parameter_set)
        try:
            from kyber_py import ml_kem
        except ImportError as exc:
            raise AlgorithmNotSupportedError(
                algorithm=self.algorithm_name,
                reason="kyber-py not installed",
                required_library=self.REQUIRED_LIBRARY,
            ) from exc

        self._impl: Any = getattr(ml_kem, self._IMPLEMENTATIONS[self.parameter_set])

    def _derive_keypair(self, seed: bytes) -> Tuple[bytes, bytes]:
        encapsulation_key, decapsulation_key = self._impl.key_derive(seed)
        return encapsulation_key, decapsulation_key

    def _encaps(self, encapsulation_key: bytes) -> Tuple[bytes, bytes]:
        # kyber-py returns (K, c)
        shared_secret, ciphertext = self._impl.encaps(encapsulation_key)
        return ciphertext, shared_secret

    def _decaps(self, decapsulation_key: bytes, ciphertext: bytes) -> bytes:
        return self._impl.decaps(decapsulation_key, ciphertext)


# ==============================================================================
# LIBOQS BACKEND
# ==============================================================================


class OqsMLKem(_MLKemBase):
    """
    ML-KEM на liboqs-python.

    Migration Note:
        Имена механизмов - "ML-KEM-768" / "ML-KEM-1024" (НЕ "Kyber768").
        Seed-формат требует KeyEncapsulation.generate_keypair_seed,
        доступного в сборках liboqs с keypair_derand.
    """

    BACKEND_NAME = "liboqs"
    REQUIRED_LIBRARY = "liboqs-python>=0.14.0"

    def __init__(self, parameter_set: Union[MLKemParameterSet, str]) -> None:
        super().__init__(parameter_set)
        try:
            import oqs
        except (ImportError, RuntimeError, OSError) as exc:
            raise AlgorithmNotSupportedError(
                algorithm=self.algorithm_name,
                reason="liboqs-python not installed or liboqs not loadable",
                required_library=self.REQUIRED_LIBRARY,
            ) from exc

        self._oqs: Any = oqs

    def _derive_keypair(self, seed: bytes) -> Tuple[bytes, bytes]:
        with self._oqs.KeyEncapsulation(self.algorithm_name) as kem:
            generate_from_seed = getattr(kem, "generate_keypair_seed", None)
            if generate_from_seed is None:
                raise AlgorithmNotSupportedError(
                    algorithm=self.algorithm_name,
                    reason="liboqs build lacks seed-based key generation",
                    required_library=self.REQUIRED_LIBRARY,
                )
            encapsulation_key = generate_from_seed(seed)
            decapsulation_key = kem.export_secret_key()
            return bytes(encapsulation_key), bytes(decapsulation_key)

    def _encaps(self, encapsulation_key: bytes) -> Tuple[bytes, bytes]:
        with self._oqs.KeyEncapsulation(self.algorithm_name) as kem:
            ciphertext, shared_secret = kem.encap_secret(encapsulation_key)
            return ciphertext, shared_secret

    def _decaps(self, decapsulation_key: bytes, ciphertext: bytes) -> bytes:
        with self._oqs.KeyEncapsulation(
            self.algorithm_name, secret_key=decapsulation_key
        ) as kem:
            return bytes(kem.decap_secret(ciphertext))


# ==============================================================================
# FACTORY
# ==============================================================================

LATTICE_BACKENDS: Dict[LatticeBackend, Type[_MLKemBase]] = {
    LatticeBackend.KYBER_PY: KyberPyMLKem,
    LatticeBackend.LIBOQS: OqsMLKem,
}


def create_lattice_kem(
    parameter_set: Union[MLKemParameterSet, str],
    backend: Union[LatticeBackend, str, None] = None,
) -> _MLKemBase:
    """
    Создать ML-KEM backend.

    Args:
        parameter_set: ML-KEM-768 или ML-KEM-1024
        backend: Имя backend; None - из конфигурации по умолчанию
            (COMPOSITE_KEM_LATTICE_BACKEND, иначе kyber-py)

    Raises:
        AlgorithmNotSupportedError: Неизвестный backend или нет библиотеки
    """
    if backend is None:
        backend = get_default_config().lattice_backend

    try:
        backend = LatticeBackend.parse(backend)
    except ValueError as exc:
        raise AlgorithmNotSupportedError(
            algorithm=str(parameter_set),
            reason=str(exc),
        ) from exc

    return LATTICE_BACKENDS[backend](parameter_set)


__all__ = [
    "MLKemKey",
    "KyberPyMLKem",
    "OqsMLKem",
    "LATTICE_BACKENDS",
    "create_lattice_kem",
]
