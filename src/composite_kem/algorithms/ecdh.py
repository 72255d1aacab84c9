"""
ECDH на NIST-кривых (P-256, P-384, P-521) для composite KEM.

Реализует EllipticDiffieHellmanProtocol поверх библиотеки cryptography.
Ключи - нативные объекты cryptography (EllipticCurvePrivateKey /
EllipticCurvePublicKey); наружу точки выходят только как пары
координат фиксированной длины.

Кодировка приватного ключа:
    RFC 5915 ECPrivateKey (DER) без поля [1] publicKey:

        SEQUENCE {
            version     INTEGER 1,
            privateKey  OCTET STRING (скаляр, дополненный до длины координаты),
            parameters  [0] OBJECT IDENTIFIER namedCurve
        }

    Длины: P-256 - 51, P-384 - 64, P-521 - 82 байта. Для каждой кривой
    кодировка однозначна: экспорт собирается по шаблону, импорт
    разбирает cryptography и сверяет с каноническим экспортом.

Security:
    - import_point проверяет принадлежность точки кривой (invalid-curve атаки)
    - Скаляр при импорте проверяется на диапазон [1, n-1] (OpenSSL)
    - Сырой ECDH секрет - X-координата общей точки (NIST SP 800-56A),
      его НЕ следует использовать напрямую как ключ

Example:
    >>> ecdh = CryptographyECDH()
    >>> alice = ecdh.generate(EcCurve.P256)
    >>> bob = ecdh.generate(EcCurve.P256)
    >>> x, y = ecdh.export_point(bob)
    >>> bob_pub = ecdh.import_point(EcCurve.P256, x, y)
    >>> secret = ecdh.derive_raw_secret(alice, bob_pub)
    >>> len(secret)
    32
"""

from __future__ import annotations

import logging
from typing import Callable, Final, Mapping, Tuple, Union

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from composite_kem.core.exceptions import (
    CryptoError,
    InvalidCurvePointError,
    InvalidEncodingError,
    KeyGenerationError,
)
from composite_kem.core.registry import (
    UNCOMPRESSED_POINT_TAG,
    EcCurve,
    coordinate_size,
    private_key_size,
)

logger = logging.getLogger(__name__)

EcPrivateKey = ec.EllipticCurvePrivateKey
EcPublicKey = ec.EllipticCurvePublicKey


# ==============================================================================
# CONSTANTS
# ==============================================================================

# RFC 5915 DER for export: SEQUENCE header, version, OCTET STRING header
_DER_PREFIX: Final[Mapping[EcCurve, bytes]] = {
    EcCurve.P256: bytes.fromhex("30310201010420"),
    EcCurve.P384: bytes.fromhex("303e0201010430"),
    EcCurve.P521: bytes.fromhex("30500201010442"),
}

# [0] namedCurve OID
_DER_SUFFIX: Final[Mapping[EcCurve, bytes]] = {
    EcCurve.P256: bytes.fromhex("a00a06082a8648ce3d030107"),
    EcCurve.P384: bytes.fromhex("a00706052b81040022"),
    EcCurve.P521: bytes.fromhex("a00706052b81040023"),
}


_CURVE_FACTORIES: Final[Mapping[EcCurve, Callable[[], ec.EllipticCurve]]] = {
    EcCurve.P256: ec.SECP256R1,
    EcCurve.P384: ec.SECP384R1,
    EcCurve.P521: ec.SECP521R1,
}


def _curve_object(curve: EcCurve) -> ec.EllipticCurve:
    return _CURVE_FACTORIES[EcCurve.from_name(curve)]()


def _curve_of(key: Union[EcPrivateKey, EcPublicKey]) -> EcCurve:
    return EcCurve.from_name(key.curve.name)


# ==============================================================================
# ECDH BACKEND
# ==============================================================================


class CryptographyECDH:
    """
    ECDH backend на библиотеке cryptography (OpenSSL).

    Stateless: один экземпляр можно использовать для всех кривых
    и всех ключей.
    """

    def __init__(self) -> None:
        self._logger = logger.getChild("cryptography")

    def generate(self, curve: Union[EcCurve, str]) -> EcPrivateKey:
        """
        Сгенерировать приватный ключ на кривой.

        Raises:
            UnsupportedCurveError: Кривая не поддерживается
            KeyGenerationError: Генерация не удалась
        """
        curve = EcCurve.from_name(curve)
        try:
            private_key = ec.generate_private_key(_curve_object(curve))
        except Exception as exc:
            raise KeyGenerationError(
                f"ECDH {curve.label} key generation failed"
            ) from exc

        self._logger.debug(f"Generated ECDH {curve.label} key")
        return private_key

    def derive_raw_secret(
        self, private_key: EcPrivateKey, peer_public_key: EcPublicKey
    ) -> bytes:
        """
        Вычислить сырой ECDH секрет.

        Returns:
            X-координата общей точки (coordinate_size байт)

        Raises:
            InvalidCurvePointError: Ключи на разных кривых
            CryptoError: Вычисление не удалось
        """
        if _curve_of(private_key) is not _curve_of(peer_public_key):
            raise InvalidCurvePointError(
                "Peer public key is on a different curve",
                context={
                    "expected": _curve_of(private_key).label,
                    "actual": _curve_of(peer_public_key).label,
                },
            )
        try:
            return private_key.exchange(ec.ECDH(), peer_public_key)
        except Exception as exc:
            raise CryptoError(
                f"ECDH {_curve_of(private_key).label} key agreement failed"
            ) from exc

    def export_point(self, key: Union[EcPrivateKey, EcPublicKey]) -> Tuple[bytes, bytes]:
        """
        Аффинные координаты публичной точки (big-endian, фиксированной длины).

        Принимает как приватный, так и публичный ключ.
        """
        public_key = key.public_key() if isinstance(key, EcPrivateKey) else key
        size = coordinate_size(_curve_of(public_key))
        numbers = public_key.public_numbers()
        return numbers.x.to_bytes(size, "big"), numbers.y.to_bytes(size, "big")

    def import_point(self, curve: Union[EcCurve, str], x: bytes, y: bytes) -> EcPublicKey:
        """
        Создать публичный ключ из координат.

        Raises:
            InvalidEncodingError: Неверная длина координат
            InvalidCurvePointError: Точка не на кривой
        """
        curve = EcCurve.from_name(curve)
        size = coordinate_size(curve)
        if len(x) != size or len(y) != size:
            raise InvalidEncodingError(
                f"{curve.label} point coordinates must be {size} bytes each",
                expected_size=2 * size,
                actual_size=len(x) + len(y),
            )

        encoded = bytes([UNCOMPRESSED_POINT_TAG]) + bytes(x) + bytes(y)
        try:
            return ec.EllipticCurvePublicKey.from_encoded_point(
                _curve_object(curve), encoded
            )
        except ValueError as exc:
            raise InvalidCurvePointError(
                f"Point is not on curve {curve.label}"
            ) from exc

    def validate_on_curve(self, curve: Union[EcCurve, str], x: bytes, y: bytes) -> bool:
        """True, если (X, Y) - корректная точка кривой."""
        try:
            self.import_point(curve, x, y)
        except (InvalidCurvePointError, InvalidEncodingError):
            return False
        return True

    def export_private_scalar(self, private_key: EcPrivateKey) -> bytes:
        """Закодировать приватный ключ как RFC 5915 ECPrivateKey без publicKey."""
        curve = _curve_of(private_key)
        scalar = private_key.private_numbers().private_value.to_bytes(
            coordinate_size(curve), "big"
        )
        return _DER_PREFIX[curve] + scalar + _DER_SUFFIX[curve]

    def import_private_scalar(self, curve: Union[EcCurve, str], data: bytes) -> EcPrivateKey:
        """
        Восстановить приватный ключ из RFC 5915 ECPrivateKey.

        DER разбирает cryptography (load_der_private_key); OpenSSL
        проверяет скаляр на диапазон [1, n-1]. Принимается только
        каноническая кодировка без publicKey: повторный экспорт должен
        дать те же байты.

        Raises:
            InvalidEncodingError: Неверная длина, структура, кривая
                или скаляр вне [1, n-1]
        """
        curve = EcCurve.from_name(curve)
        data = bytes(data)
        expected = private_key_size(curve)
        if len(data) != expected:
            raise InvalidEncodingError(
                f"{curve.label} private key must be {expected} bytes",
                expected_size=expected,
                actual_size=len(data),
            )

        try:
            private_key = serialization.load_der_private_key(data, password=None)
        except Exception as exc:
            raise InvalidEncodingError(
                f"{curve.label} private key rejected"
            ) from exc

        if (
            not isinstance(private_key, ec.EllipticCurvePrivateKey)
            or private_key.curve.name != curve.value
        ):
            raise InvalidEncodingError(f"Not a {curve.label} ECPrivateKey encoding")
        if self.export_private_scalar(private_key) != data:
            raise InvalidEncodingError(
                f"{curve.label} private key is not in canonical form"
            )

        # derive_private_key enforces 1 <= d < n
        try:
            return ec.derive_private_key(
                private_key.private_numbers().private_value, _curve_object(curve)
            )
        except ValueError as exc:
            raise InvalidEncodingError(
                f"{curve.label} private scalar is out of range"
            ) from exc


__all__ = [
    "CryptographyECDH",
    "EcPrivateKey",
    "EcPublicKey",
]
