"""
Централизованные исключения composite KEM.

Иерархия типизированных исключений для композитного ML-KEM + ECDH.
Все ошибки терминальные: повторная попытка с теми же входными данными
даст тот же результат, частичный ключ или секрет никогда не возвращается.

Example:
    >>> from composite_kem.core.exceptions import CryptoError
    >>> try:
    ...     key.decapsulate(ciphertext)
    ... except CryptoError as e:
    ...     print(f"Algorithm: {e.algorithm}")

Иерархия:
    CryptoError (базовое)
    ├── AlgorithmError
    │   ├── UnknownAlgorithmError
    │   ├── UnsupportedCurveError
    │   └── AlgorithmNotSupportedError
    ├── CryptoKeyError
    │   ├── NotInitializedError
    │   └── KeyGenerationError
    ├── ValidationError
    │   ├── InvalidEncodingError
    │   └── InvalidCurvePointError
    └── KemError
        ├── EncapsulationFailedError
        └── DecapsulationFailedError

Security Note:
    Исключения НЕ раскрывают ключи, секреты или содержимое ciphertext.
    В context попадают только размеры и имена.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

__all__: list[str] = [
    "CryptoError",
    # Algorithm errors
    "AlgorithmError",
    "UnknownAlgorithmError",
    "UnsupportedCurveError",
    "AlgorithmNotSupportedError",
    # Key errors
    "CryptoKeyError",
    "NotInitializedError",
    "KeyGenerationError",
    # Validation errors
    "ValidationError",
    "InvalidEncodingError",
    "InvalidCurvePointError",
    # KEM errors
    "KemError",
    "EncapsulationFailedError",
    "DecapsulationFailedError",
]


# ==============================================================================
# BASE EXCEPTION
# ==============================================================================


class CryptoError(Exception):
    """
    Базовое исключение для всех ошибок composite KEM.

    Attributes:
        message: Человекочитаемое сообщение об ошибке
        algorithm: Имя алгоритма, вызвавшего ошибку (опционально)
        context: Дополнительный контекст для отладки (без секретов!)

    Example:
        >>> str(CryptoError("Operation failed", algorithm="MLKEM768-ECDH-P256-SHA3-256"))
        'CryptoError: Operation failed [algorithm=MLKEM768-ECDH-P256-SHA3-256]'
    """

    def __init__(
        self,
        message: str,
        *,
        algorithm: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.algorithm = algorithm
        self.context = context or {}

    def __str__(self) -> str:
        parts = [self.__class__.__name__, ": ", self.message]

        if self.algorithm:
            parts.append(f" [algorithm={self.algorithm}]")

        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f" ({ctx_str})")

        return "".join(parts)

    def __repr__(self) -> str:
        """Представление для отладки."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"algorithm={self.algorithm!r}, "
            f"context={self.context!r})"
        )


# ==============================================================================
# ALGORITHM ERRORS
# ==============================================================================


class AlgorithmError(CryptoError):
    """Ошибки выбора или доступности алгоритма."""

    pass


class UnknownAlgorithmError(AlgorithmError):
    """
    OID (или имя) не найден в реестре композитных алгоритмов.

    Attributes:
        identifier: Запрошенный OID или имя
        available: Список зарегистрированных OID

    Example:
        >>> raise UnknownAlgorithmError("1.2.3.4", available=["1.3.6.1.5.5.7.6.59"])
    """

    def __init__(
        self,
        identifier: str,
        *,
        available: Optional[list[str]] = None,
    ) -> None:
        message = f"Composite algorithm '{identifier}' is not registered"
        if available:
            message += f". Available: {', '.join(available)}"

        super().__init__(
            message,
            context={"available_count": len(available) if available else 0},
        )
        self.identifier = identifier
        self.available = available or []


class UnsupportedCurveError(AlgorithmError):
    """
    Запрошена кривая вне P-256 / P-384 / P-521.

    Не должно происходить при работе через реестр: проверка защитная,
    размер для неизвестной кривой никогда не угадывается.
    """

    def __init__(self, curve: Any) -> None:
        super().__init__(
            f"Unsupported elliptic curve: {curve!r}",
            context={"curve": str(curve)},
        )
        self.curve = curve


class AlgorithmNotSupportedError(AlgorithmError):
    """
    Backend не поддерживается в текущем окружении.

    Raises когда:
    - Отсутствует библиотека (kyber-py, liboqs-python)
    - Сборка liboqs не умеет генерировать ключи из seed
    - Запрошено неизвестное имя backend

    Attributes:
        reason: Причина отсутствия поддержки
        required_library: Требуемая библиотека (если применимо)
    """

    def __init__(
        self,
        algorithm: str,
        reason: str,
        *,
        required_library: Optional[str] = None,
    ) -> None:
        message = f"Algorithm '{algorithm}' not supported: {reason}"

        context: Dict[str, Any] = {"reason": reason}
        if required_library:
            context["required_library"] = required_library

        super().__init__(message, algorithm=algorithm, context=context)
        self.reason = reason
        self.required_library = required_library


# ==============================================================================
# KEY ERRORS
# ==============================================================================


class CryptoKeyError(CryptoError):
    """
    Базовая ошибка для операций с ключами.

    Note:
        Названа CryptoKeyError чтобы не конфликтовать с builtin KeyError.
    """

    pass


class NotInitializedError(CryptoKeyError):
    """
    Операция над освобождённым (dispose) или неполным ключом.

    Также возникает, когда public-only ключ просят выполнить операцию,
    требующую приватной части (decapsulate, export_private_key).
    """

    pass


class KeyGenerationError(CryptoKeyError):
    """Не удалось сгенерировать одну из компонент композитного ключа."""

    pass


# ==============================================================================
# VALIDATION ERRORS
# ==============================================================================


class ValidationError(CryptoError):
    """Базовая ошибка валидации входных буферов."""

    pass


class InvalidEncodingError(ValidationError):
    """
    Неверная длина буфера или неверный байт формата.

    Attributes:
        expected_size: Ожидаемый размер в байтах (если применимо)
        actual_size: Фактический размер в байтах (если применимо)

    Example:
        >>> raise InvalidEncodingError(
        ...     "Ciphertext has wrong length",
        ...     algorithm="MLKEM768-ECDH-P256-SHA3-256",
        ...     expected_size=1153,
        ...     actual_size=1152,
        ... )
    """

    def __init__(
        self,
        message: str,
        *,
        algorithm: Optional[str] = None,
        expected_size: Optional[int] = None,
        actual_size: Optional[int] = None,
    ) -> None:
        context: Dict[str, Any] = {}
        if expected_size is not None:
            context["expected_size"] = expected_size
        if actual_size is not None:
            context["actual_size"] = actual_size

        super().__init__(message, algorithm=algorithm, context=context)
        self.expected_size = expected_size
        self.actual_size = actual_size


class InvalidCurvePointError(ValidationError):
    """
    Точка не лежит на заданной кривой.

    Основная защита от invalid-curve атак: точка из ciphertext или
    encapsulation key отвергается ДО любого вычисления с ней.
    """

    pass


# ==============================================================================
# KEM ERRORS
# ==============================================================================


class KemError(CryptoError):
    """Ошибки выполнения encapsulate / decapsulate в backend."""

    pass


class EncapsulationFailedError(KemError):
    """Backend не смог выполнить encapsulation."""

    pass


class DecapsulationFailedError(KemError):
    """Backend не смог выполнить decapsulation."""

    pass
