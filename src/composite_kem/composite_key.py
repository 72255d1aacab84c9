"""
Композитный ключ ML-KEM + ECDH.

CompositeMLKem связывает ключ ML-KEM и ключ ECDH на NIST-кривой в одну
пару ключей, один ciphertext и один общий секрет. Секрет остаётся
стойким, пока стойка хотя бы одна из компонент.

Форматы (сырые байты, без ASN.1-обёрток SPKI/PKCS#8):

    private key       = seed[64] || ECPrivateKey (RFC 5915 DER)
    encapsulation key = ek || 0x04 || X || Y
    ciphertext        = ct || 0x04 || X_eph || Y_eph

Security:
    - Точка из ciphertext и encapsulation key проверяется на кривой
      ДО вычисления ECDH
    - Эфемерный ключ создаётся заново на каждый encapsulate и не
      сохраняется
    - Промежуточные секреты хранятся в bytearray и зануляются в finally
      (best-effort; см. zero_memory)
    - Объект не потокобезопасен; синхронизация - на вызывающей стороне

Example:
    >>> with CompositeMLKem.generate(MLKEM768_ECDH_P256_SHA3_256) as receiver:
    ...     public = receiver.export_encapsulation_key()
    ...     sender = CompositeMLKem.import_encapsulation_key(
    ...         MLKEM768_ECDH_P256_SHA3_256, public
    ...     )
    ...     ciphertext, secret = sender.encapsulate()
    ...     assert receiver.decapsulate(ciphertext) == secret
"""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Any, Optional, Tuple, Type, Union

from composite_kem.algorithms.ecdh import CryptographyECDH
from composite_kem.algorithms.ml_kem import create_lattice_kem
from composite_kem.combiner import EcPoint, combine
from composite_kem.core.config import CompositeKemConfig, get_default_config
from composite_kem.core.exceptions import (
    AlgorithmError,
    CryptoError,
    DecapsulationFailedError,
    EncapsulationFailedError,
    InvalidCurvePointError,
    InvalidEncodingError,
    KeyGenerationError,
    NotInitializedError,
)
from composite_kem.core.protocols import (
    EllipticDiffieHellmanProtocol,
    LatticeKemProtocol,
)
from composite_kem.core.registry import AlgorithmDescriptor, get_algorithm
from composite_kem.utils import ensure_bytes, zero_memory

logger = logging.getLogger(__name__)

AlgorithmSpec = Union[AlgorithmDescriptor, str]


# ==============================================================================
# HELPERS
# ==============================================================================


def _resolve_algorithm(algorithm: AlgorithmSpec) -> AlgorithmDescriptor:
    if isinstance(algorithm, AlgorithmDescriptor):
        return algorithm
    if isinstance(algorithm, str):
        return get_algorithm(algorithm.strip())
    raise TypeError(
        f"algorithm must be AlgorithmDescriptor or OID string, got {type(algorithm).__name__}"
    )


def _resolve_backends(
    descriptor: AlgorithmDescriptor,
    lattice_kem: Optional[LatticeKemProtocol],
    ecdh: Optional[EllipticDiffieHellmanProtocol],
    config: Optional[CompositeKemConfig],
) -> Tuple[LatticeKemProtocol, EllipticDiffieHellmanProtocol, CompositeKemConfig]:
    if config is None:
        config = get_default_config()

    if lattice_kem is None:
        lattice_kem = create_lattice_kem(descriptor.ml_kem, config.lattice_backend)
    elif lattice_kem.parameter_set != descriptor.ml_kem:
        raise AlgorithmError(
            f"Lattice backend implements {lattice_kem.parameter_set}, "
            f"algorithm requires {descriptor.ml_kem.value}",
            algorithm=descriptor.name,
        )

    if ecdh is None:
        ecdh = CryptographyECDH()

    return lattice_kem, ecdh, config


def _wipe_lattice_key(key: Any) -> None:
    wipe = getattr(key, "wipe", None)
    if callable(wipe):
        wipe()


def _public_half(
    ecdh: EllipticDiffieHellmanProtocol, descriptor: AlgorithmDescriptor, private_key: Any
) -> Any:
    x, y = ecdh.export_point(private_key)
    return ecdh.import_point(descriptor.curve, x, y)


def _check_length(descriptor: AlgorithmDescriptor, what: str, data: bytes, expected: int) -> None:
    if len(data) != expected:
        raise InvalidEncodingError(
            f"{what} must be {expected} bytes",
            algorithm=descriptor.name,
            expected_size=expected,
            actual_size=len(data),
        )


# ==============================================================================
# COMPOSITE KEY
# ==============================================================================


class CompositeMLKem:
    """
    Композитный KEM-ключ: ML-KEM + ECDH + SHA3-256 combiner.

    Создаётся только через фабрики generate / import_private_key /
    import_encapsulation_key. Структура ключа после создания не меняется;
    dispose() освобождает обе компоненты, после чего любая операция
    выбрасывает NotInitializedError.

    Attributes:
        algorithm: Дескриптор композитного алгоритма
    """

    def __init__(
        self,
        algorithm: AlgorithmDescriptor,
        lattice_kem: LatticeKemProtocol,
        ecdh: EllipticDiffieHellmanProtocol,
        lattice_key: Any,
        ec_public_key: Any,
        ec_private_key: Optional[Any] = None,
        *,
        config: CompositeKemConfig,
    ) -> None:
        self._algorithm = algorithm
        self._lattice_kem = lattice_kem
        self._ecdh = ecdh
        self._lattice_key: Optional[Any] = lattice_key
        self._ec_public_key: Optional[Any] = ec_public_key
        self._ec_private_key: Optional[Any] = ec_private_key
        self._static_point: Optional[EcPoint] = EcPoint(*ecdh.export_point(ec_public_key))
        self._config = config
        self._logger = logger.getChild(algorithm.label)

    # --------------------------------------------------------------------------
    # Construction
    # --------------------------------------------------------------------------

    @classmethod
    def generate(
        cls,
        algorithm: AlgorithmSpec,
        *,
        lattice_kem: Optional[LatticeKemProtocol] = None,
        ecdh: Optional[EllipticDiffieHellmanProtocol] = None,
        config: Optional[CompositeKemConfig] = None,
    ) -> "CompositeMLKem":
        """
        Сгенерировать новую композитную пару ключей.

        Компоненты генерируются независимо; если одна из генераций
        не удалась, уже созданная компонента стирается.

        Raises:
            UnknownAlgorithmError: Неизвестный OID
            AlgorithmNotSupportedError: Нет библиотеки backend
            KeyGenerationError: Генерация компоненты не удалась
        """
        descriptor = _resolve_algorithm(algorithm)
        lattice_kem, ecdh, config = _resolve_backends(descriptor, lattice_kem, ecdh, config)

        try:
            lattice_key = lattice_kem.generate()
        except CryptoError:
            raise
        except Exception as exc:
            raise KeyGenerationError(
                "ML-KEM key generation failed", algorithm=descriptor.name
            ) from exc

        try:
            ec_private_key = ecdh.generate(descriptor.curve)
            ec_public_key = _public_half(ecdh, descriptor, ec_private_key)
            instance = cls(
                descriptor,
                lattice_kem,
                ecdh,
                lattice_key,
                ec_public_key,
                ec_private_key,
                config=config,
            )
        except CryptoError:
            _wipe_lattice_key(lattice_key)
            raise
        except Exception as exc:
            _wipe_lattice_key(lattice_key)
            raise KeyGenerationError(
                "ECDH key generation failed", algorithm=descriptor.name
            ) from exc

        logger.debug(f"Generated composite key {descriptor.name}")
        return instance

    @classmethod
    def import_private_key(
        cls,
        algorithm: AlgorithmSpec,
        data: bytes,
        *,
        lattice_kem: Optional[LatticeKemProtocol] = None,
        ecdh: Optional[EllipticDiffieHellmanProtocol] = None,
        config: Optional[CompositeKemConfig] = None,
    ) -> "CompositeMLKem":
        """
        Импортировать приватный ключ seed || ECPrivateKey.

        Raises:
            InvalidEncodingError: Неверная длина, структура DER или скаляр
        """
        descriptor = _resolve_algorithm(algorithm)
        data = ensure_bytes(data, "private_key")
        _check_length(descriptor, "Composite private key", data, descriptor.private_key_size)

        lattice_kem, ecdh, config = _resolve_backends(descriptor, lattice_kem, ecdh, config)

        seed_size = descriptor.ml_kem.seed_size
        seed = bytearray(data[:seed_size])
        try:
            ec_private_key = ecdh.import_private_scalar(descriptor.curve, data[seed_size:])
            lattice_key = lattice_kem.import_private_seed(bytes(seed))
        finally:
            zero_memory(seed)

        logger.debug(f"Imported composite private key {descriptor.name}")
        return cls(
            descriptor,
            lattice_kem,
            ecdh,
            lattice_key,
            _public_half(ecdh, descriptor, ec_private_key),
            ec_private_key,
            config=config,
        )

    @classmethod
    def import_encapsulation_key(
        cls,
        algorithm: AlgorithmSpec,
        data: bytes,
        *,
        lattice_kem: Optional[LatticeKemProtocol] = None,
        ecdh: Optional[EllipticDiffieHellmanProtocol] = None,
        config: Optional[CompositeKemConfig] = None,
    ) -> "CompositeMLKem":
        """
        Импортировать публичный ключ ek || 0x04 || X || Y.

        Точка проверяется на кривой до создания объекта.

        Raises:
            InvalidEncodingError: Неверная длина или байт формата
            InvalidCurvePointError: Точка не на кривой
        """
        descriptor = _resolve_algorithm(algorithm)
        data = ensure_bytes(data, "encapsulation_key")
        _check_length(
            descriptor, "Composite encapsulation key", data, descriptor.encapsulation_key_size
        )

        lattice_kem, ecdh, config = _resolve_backends(descriptor, lattice_kem, ecdh, config)

        split = descriptor.ml_kem.encapsulation_key_size
        point = EcPoint.decode(data[split:], descriptor.curve)
        if not ecdh.validate_on_curve(descriptor.curve, point.x, point.y):
            raise InvalidCurvePointError(
                f"Encapsulation key point is not on {descriptor.curve.label}",
                algorithm=descriptor.name,
            )
        ec_public_key = ecdh.import_point(descriptor.curve, point.x, point.y)
        lattice_key = lattice_kem.import_encapsulation_key(data[:split])

        logger.debug(f"Imported composite encapsulation key {descriptor.name}")
        return cls(
            descriptor,
            lattice_kem,
            ecdh,
            lattice_key,
            ec_public_key,
            config=config,
        )

    # --------------------------------------------------------------------------
    # Properties
    # --------------------------------------------------------------------------

    @property
    def algorithm(self) -> AlgorithmDescriptor:
        return self._algorithm

    @property
    def is_disposed(self) -> bool:
        return self._lattice_key is None or self._ec_public_key is None

    @property
    def has_private_key(self) -> bool:
        return self._ec_private_key is not None

    # --------------------------------------------------------------------------
    # Guards
    # --------------------------------------------------------------------------

    def _ensure_valid(self) -> EcPoint:
        """Вернуть статическую точку или NotInitializedError после dispose."""
        if self.is_disposed or self._static_point is None:
            raise NotInitializedError(
                "Composite key has been disposed", algorithm=self._algorithm.name
            )
        return self._static_point

    def _ensure_private(self, operation: str) -> EcPoint:
        static_point = self._ensure_valid()
        if self._ec_private_key is None:
            raise NotInitializedError(
                f"Cannot {operation}: composite key has no private half",
                algorithm=self._algorithm.name,
            )
        return static_point

    def _wipe(self, *buffers: Optional[bytearray]) -> None:
        if not self._config.wipe_secrets:
            return
        for buf in buffers:
            zero_memory(buf)

    # --------------------------------------------------------------------------
    # Export
    # --------------------------------------------------------------------------

    def export_private_key(self) -> bytes:
        """
        seed || ECPrivateKey.

        Raises:
            NotInitializedError: Ключ освобождён или public-only
        """
        self._ensure_private("export private key")

        buffer = bytearray(self._lattice_kem.export_private_seed(self._lattice_key))
        try:
            buffer += self._ecdh.export_private_scalar(self._ec_private_key)
            return bytes(buffer)
        finally:
            self._wipe(buffer)

    def export_encapsulation_key(self) -> bytes:
        """ek || 0x04 || X || Y."""
        static_point = self._ensure_valid()
        return (
            self._lattice_kem.export_encapsulation_key(self._lattice_key)
            + static_point.encode()
        )

    # --------------------------------------------------------------------------
    # KEM
    # --------------------------------------------------------------------------

    def encapsulate(self) -> Tuple[bytes, bytes]:
        """
        Инкапсулировать новый общий секрет против этого ключа.

        Returns:
            (ciphertext, shared_secret)

        Raises:
            NotInitializedError: Ключ освобождён
            EncapsulationFailedError: Ошибка backend
        """
        static_point = self._ensure_valid()
        descriptor = self._algorithm

        ss_ecdh: Optional[bytearray] = None
        ss_kem: Optional[bytearray] = None
        ephemeral: Optional[Any] = None
        try:
            ephemeral = self._ecdh.generate(descriptor.curve)
            ss_ecdh = bytearray(self._ecdh.derive_raw_secret(ephemeral, self._ec_public_key))
            ephemeral_point = EcPoint(*self._ecdh.export_point(ephemeral))

            kem_ciphertext, kem_secret = self._lattice_kem.encapsulate(self._lattice_key)
            ss_kem = bytearray(kem_secret)
            if len(kem_ciphertext) != descriptor.ml_kem.ciphertext_size:
                raise EncapsulationFailedError(
                    "ML-KEM backend returned ciphertext of wrong size",
                    algorithm=descriptor.name,
                    context={
                        "expected_size": descriptor.ml_kem.ciphertext_size,
                        "actual_size": len(kem_ciphertext),
                    },
                )

            shared_secret = combine(
                ss_kem,
                ss_ecdh,
                ephemeral_point,
                static_point,
                descriptor.label_bytes,
            )
            ciphertext = bytes(kem_ciphertext) + ephemeral_point.encode()
        except CryptoError:
            raise
        except Exception as exc:
            raise EncapsulationFailedError(
                "Composite encapsulation failed", algorithm=descriptor.name
            ) from exc
        finally:
            ephemeral = None
            self._wipe(ss_kem, ss_ecdh)

        self._logger.debug(
            f"Encapsulated: ciphertext={len(ciphertext)}B, shared={len(shared_secret)}B"
        )
        return ciphertext, shared_secret

    def decapsulate(self, ciphertext: bytes) -> bytes:
        """
        Восстановить общий секрет из ciphertext.

        Порядок: длина, ML-KEM decapsulate, разбор и проверка эфемерной
        точки, ECDH, combiner.

        Raises:
            NotInitializedError: Ключ освобождён или public-only
            InvalidEncodingError: Неверная длина или байт формата точки
            InvalidCurvePointError: Эфемерная точка не на кривой
            DecapsulationFailedError: Ошибка backend
        """
        static_point = self._ensure_private("decapsulate")
        descriptor = self._algorithm

        ciphertext = ensure_bytes(ciphertext, "ciphertext")
        _check_length(descriptor, "Composite ciphertext", ciphertext, descriptor.ciphertext_size)
        split = descriptor.ml_kem.ciphertext_size

        ss_kem: Optional[bytearray] = None
        ss_ecdh: Optional[bytearray] = None
        try:
            ss_kem = bytearray(
                self._lattice_kem.decapsulate(self._lattice_key, ciphertext[:split])
            )

            ephemeral_point = EcPoint.decode(ciphertext[split:], descriptor.curve)
            if not self._ecdh.validate_on_curve(
                descriptor.curve, ephemeral_point.x, ephemeral_point.y
            ):
                raise InvalidCurvePointError(
                    f"Ephemeral point is not on {descriptor.curve.label}",
                    algorithm=descriptor.name,
                )
            ephemeral_public = self._ecdh.import_point(
                descriptor.curve, ephemeral_point.x, ephemeral_point.y
            )
            ss_ecdh = bytearray(
                self._ecdh.derive_raw_secret(self._ec_private_key, ephemeral_public)
            )

            shared_secret = combine(
                ss_kem,
                ss_ecdh,
                ephemeral_point,
                static_point,
                descriptor.label_bytes,
            )
        except CryptoError:
            raise
        except Exception as exc:
            raise DecapsulationFailedError(
                "Composite decapsulation failed", algorithm=descriptor.name
            ) from exc
        finally:
            self._wipe(ss_kem, ss_ecdh)

        self._logger.debug(f"Decapsulated: shared={len(shared_secret)}B")
        return shared_secret

    # --------------------------------------------------------------------------
    # Lifecycle
    # --------------------------------------------------------------------------

    def dispose(self) -> None:
        """Освободить обе компоненты. Повторный вызов ничего не делает."""
        if self.is_disposed:
            return

        _wipe_lattice_key(self._lattice_key)
        self._lattice_key = None
        self._ec_private_key = None
        self._ec_public_key = None
        self._static_point = None
        self._logger.debug("Composite key disposed")

    close = dispose

    def __enter__(self) -> "CompositeMLKem":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.dispose()

    def __repr__(self) -> str:
        return (
            f"CompositeMLKem(algorithm={self._algorithm.name!r}, "
            f"has_private_key={self.has_private_key}, "
            f"disposed={self.is_disposed})"
        )


__all__ = [
    "AlgorithmSpec",
    "CompositeMLKem",
]
