"""
Пакет composite KEM
===================

Композитный постквантовый/классический механизм инкапсуляции ключей:
ML-KEM (FIPS 203) + ECDH на NIST-кривых + SHA3-256 combiner по
draft-ietf-lamps-pq-composite-kem.

Этот пакет предоставляет:
    - Четыре композитных алгоритма (ML-KEM-768/1024 с P-256/P-384/P-521)
    - Генерацию, экспорт и импорт ключей в сырых байтовых форматах
    - Encapsulate / decapsulate с проверкой точек на кривой
    - Подключаемые backend-компоненты (kyber-py, liboqs, cryptography)

Пример базового использования:
    >>> from composite_kem import CompositeMLKem, MLKEM768_ECDH_P256_SHA3_256
    >>>
    >>> receiver = CompositeMLKem.generate(MLKEM768_ECDH_P256_SHA3_256)
    >>> public = receiver.export_encapsulation_key()
    >>>
    >>> sender = CompositeMLKem.import_encapsulation_key("1.3.6.1.5.5.7.6.59", public)
    >>> ciphertext, secret = sender.encapsulate()
    >>> assert receiver.decapsulate(ciphertext) == secret
    >>> receiver.dispose()

Управление логированием:
    >>> import os
    >>> os.environ['COMPOSITE_KEM_LOG_LEVEL'] = 'DEBUG'
    >>> os.environ['COMPOSITE_KEM_LOG_FILE'] = 'logs/composite_kem.log'

Версия: 0.1.0
Лицензия: MIT
Python: 3.11+
"""

import importlib.util
import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Dict

# =============================================================================
# МЕТАДАННЫЕ ВЕРСИИ
# =============================================================================

__version__ = "0.1.0"
__description__ = "Composite ML-KEM + ECDH key encapsulation (SHA3-256 combiner)"
__license__ = "MIT"
__python_requires__ = ">=3.11"

VERSION_MAJOR = 0
VERSION_MINOR = 1
VERSION_PATCH = 0

if sys.version_info < (3, 11):
    raise RuntimeError(
        f"composite_kem требует Python 3.11 или выше. "
        f"Текущая версия: {sys.version_info.major}."
        f"{sys.version_info.minor}.{sys.version_info.micro}"
    )

# =============================================================================
# КОНФИГУРАЦИЯ ЛОГИРОВАНИЯ
# =============================================================================

ENV_LOG_LEVEL = "COMPOSITE_KEM_LOG_LEVEL"
ENV_LOG_FILE = "COMPOSITE_KEM_LOG_FILE"
PACKAGE_LOGGER_NAME = "composite_kem"
_HANDLER_MARKER = "_composite_kem_handler"


def _setup_logging() -> None:
    """
    Инициализировать логирование пакета.

    Настраивает логгер "composite_kem" с:
    - Консольным обработчиком (stderr) для WARNING и выше
    - Ротирующим файловым обработчиком, если задан COMPOSITE_KEM_LOG_FILE

    Уровень задаётся переменной COMPOSITE_KEM_LOG_LEVEL
    (DEBUG, INFO, WARNING, ERROR, CRITICAL; по умолчанию INFO).

    Функция идемпотентна: если обработчики пакета уже установлены,
    повторный вызов ничего не делает.
    """
    log_level_str = os.environ.get(ENV_LOG_LEVEL, "INFO").upper()
    log_level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    log_level = log_level_map.get(log_level_str, logging.INFO)

    package_logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    # Чужие обработчики (например, pytest caplog) не считаются настройкой
    if any(getattr(h, _HANDLER_MARKER, False) for h in package_logger.handlers):
        return

    package_logger.setLevel(log_level)

    formatter = logging.Formatter(
        fmt="[%(asctime)s] %(levelname)-8s [%(name)s.%(funcName)s:%(lineno)d] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.WARNING)
    console_handler.setFormatter(formatter)
    setattr(console_handler, _HANDLER_MARKER, True)
    package_logger.addHandler(console_handler)

    log_file = os.environ.get(ENV_LOG_FILE, "").strip()
    if log_file:
        try:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.handlers.RotatingFileHandler(
                filename=log_path,
                maxBytes=10 * 1024 * 1024,  # 10 МБ
                backupCount=5,
                encoding="utf-8",
            )
            file_handler.setLevel(log_level)
            file_handler.setFormatter(formatter)
            setattr(file_handler, _HANDLER_MARKER, True)
            package_logger.addHandler(file_handler)
        except OSError as e:
            package_logger.warning(
                f"Не удалось инициализировать файловое логирование: {e}. "
                f"Используется только консоль."
            )

    package_logger.propagate = False


def get_logger(module_name: str) -> logging.Logger:
    """
    Получить логгер в пространстве имён composite_kem.

    Аргументы:
        module_name: Обычно `__name__`; "__main__" отображается
            в "composite_kem.main".

    Пример:
        >>> get_logger("my_service").name
        'composite_kem.my_service'
    """
    if module_name == PACKAGE_LOGGER_NAME or module_name.startswith(PACKAGE_LOGGER_NAME + "."):
        return logging.getLogger(module_name)
    if module_name == "__main__":
        return logging.getLogger(f"{PACKAGE_LOGGER_NAME}.main")
    return logging.getLogger(f"{PACKAGE_LOGGER_NAME}.{module_name.lstrip('.')}")


def check_dependencies() -> Dict[str, bool]:
    """
    Проверить доступность backend-библиотек.

    Обязательные: cryptography, kyber-py.
    Опциональные: liboqs-python (backend "liboqs"); проверяется только
    наличие пакета, сама C-библиотека не загружается.

    Возвращает:
        Словарь {имя пакета: доступен ли}.
    """
    dependencies: Dict[str, bool] = {}

    try:
        import cryptography  # noqa: F401

        dependencies["cryptography"] = True
    except ImportError:
        dependencies["cryptography"] = False

    try:
        import kyber_py  # noqa: F401

        dependencies["kyber-py"] = True
    except ImportError:
        dependencies["kyber-py"] = False

    # Importing oqs loads (or builds) the liboqs shared library; only look it up
    dependencies["liboqs-python"] = importlib.util.find_spec("oqs") is not None

    return dependencies


_setup_logging()

# =============================================================================
# ПУБЛИЧНЫЙ API
# =============================================================================

from composite_kem.algorithms import (  # noqa: E402
    CryptographyECDH,
    KyberPyMLKem,
    MLKemKey,
    OqsMLKem,
    create_lattice_kem,
)
from composite_kem.combiner import EcPoint, combine  # noqa: E402
from composite_kem.composite_key import CompositeMLKem  # noqa: E402
from composite_kem.core import *  # noqa: E402,F401,F403
from composite_kem.core import __all__ as _core_all  # noqa: E402
from composite_kem.core.registry import (  # noqa: E402
    MLKEM768_ECDH_P256_SHA3_256,
    MLKEM768_ECDH_P384_SHA3_256,
    MLKEM1024_ECDH_P384_SHA3_256,
    MLKEM1024_ECDH_P521_SHA3_256,
)

__all__ = [
    "__version__",
    "get_logger",
    "check_dependencies",
    "CompositeMLKem",
    "EcPoint",
    "combine",
    "CryptographyECDH",
    "KyberPyMLKem",
    "OqsMLKem",
    "MLKemKey",
    "create_lattice_kem",
    "MLKEM768_ECDH_P256_SHA3_256",
    "MLKEM768_ECDH_P384_SHA3_256",
    "MLKEM1024_ECDH_P384_SHA3_256",
    "MLKEM1024_ECDH_P521_SHA3_256",
    *_core_all,
]
