"""
Модульные тесты для composite_kem/__init__.py.

Тестирует метаданные, публичный API, логирование и проверку зависимостей.
"""

from __future__ import annotations

import logging
import logging.handlers
import re
from pathlib import Path
from typing import Iterator, List

import pytest

import composite_kem


def _own_handlers(package_logger: logging.Logger) -> List[logging.Handler]:
    return [
        h for h in package_logger.handlers if getattr(h, "_composite_kem_handler", False)
    ]


@pytest.fixture
def isolated_package_logger() -> Iterator[logging.Logger]:
    """Снять обработчики пакета (не чужие) и вернуть их после теста."""
    package_logger = logging.getLogger("composite_kem")
    saved_handlers = _own_handlers(package_logger)
    saved_level = package_logger.level
    saved_propagate = package_logger.propagate
    for handler in saved_handlers:
        package_logger.removeHandler(handler)

    yield package_logger

    for handler in _own_handlers(package_logger):
        package_logger.removeHandler(handler)
        handler.close()
    for handler in saved_handlers:
        package_logger.addHandler(handler)
    package_logger.setLevel(saved_level)
    package_logger.propagate = saved_propagate


class TestVersionMetadata:
    def test_version_format(self) -> None:
        assert re.match(r"^\d+\.\d+\.\d+$", composite_kem.__version__)

    def test_version_components(self) -> None:
        expected = (
            f"{composite_kem.VERSION_MAJOR}."
            f"{composite_kem.VERSION_MINOR}."
            f"{composite_kem.VERSION_PATCH}"
        )
        assert composite_kem.__version__ == expected


class TestPublicAPI:
    def test_all_exports_exist(self) -> None:
        for name in composite_kem.__all__:
            assert hasattr(composite_kem, name), f"{name} exported but missing"

    def test_no_duplicate_exports(self) -> None:
        assert len(composite_kem.__all__) == len(set(composite_kem.__all__))

    def test_core_names_reexported(self) -> None:
        for name in ("CompositeMLKem", "lookup", "CryptoError", "InvalidCurvePointError"):
            assert name in composite_kem.__all__

    def test_end_to_end_through_package(self) -> None:
        receiver = composite_kem.CompositeMLKem.generate(
            composite_kem.MLKEM768_ECDH_P256_SHA3_256,
            config=composite_kem.CompositeKemConfig(),
        )
        sender = composite_kem.CompositeMLKem.import_encapsulation_key(
            "1.3.6.1.5.5.7.6.59",
            receiver.export_encapsulation_key(),
            config=composite_kem.CompositeKemConfig(),
        )
        ciphertext, secret = sender.encapsulate()
        assert receiver.decapsulate(ciphertext) == secret


class TestLogging:
    def test_get_logger_name_format(self) -> None:
        assert composite_kem.get_logger("my_service").name == "composite_kem.my_service"

    def test_get_logger_with_qualified_name(self) -> None:
        name = "composite_kem.composite_key"
        assert composite_kem.get_logger(name).name == name

    def test_get_logger_with_main(self) -> None:
        assert composite_kem.get_logger("__main__").name == "composite_kem.main"

    def test_get_logger_strips_relative_dots(self) -> None:
        assert composite_kem.get_logger(".plugin").name == "composite_kem.plugin"

    def test_package_logger_configured(self) -> None:
        package_logger = logging.getLogger("composite_kem")
        assert package_logger.handlers
        assert any(
            isinstance(h, logging.StreamHandler) and h.level == logging.WARNING
            for h in package_logger.handlers
        )

    def test_log_level_from_environment(
        self, isolated_package_logger: logging.Logger, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("COMPOSITE_KEM_LOG_LEVEL", "DEBUG")
        monkeypatch.delenv("COMPOSITE_KEM_LOG_FILE", raising=False)

        composite_kem._setup_logging()

        assert isolated_package_logger.level == logging.DEBUG
        assert isolated_package_logger.propagate is False
        assert len(_own_handlers(isolated_package_logger)) == 1

    def test_invalid_level_defaults_to_info(
        self, isolated_package_logger: logging.Logger, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("COMPOSITE_KEM_LOG_LEVEL", "VERBOSE")
        monkeypatch.delenv("COMPOSITE_KEM_LOG_FILE", raising=False)

        composite_kem._setup_logging()

        assert isolated_package_logger.level == logging.INFO

    def test_file_handler_from_environment(
        self,
        isolated_package_logger: logging.Logger,
        monkeypatch: pytest.MonkeyPatch,
        tmp_path: Path,
    ) -> None:
        log_file = tmp_path / "logs" / "composite_kem.log"
        monkeypatch.setenv("COMPOSITE_KEM_LOG_FILE", str(log_file))

        composite_kem._setup_logging()

        assert log_file.parent.is_dir()
        assert any(
            isinstance(h, logging.handlers.RotatingFileHandler)
            for h in isolated_package_logger.handlers
        )

    def test_setup_is_idempotent(self, isolated_package_logger: logging.Logger) -> None:
        composite_kem._setup_logging()
        count = len(isolated_package_logger.handlers)

        composite_kem._setup_logging()

        assert len(isolated_package_logger.handlers) == count

    def test_foreign_handler_does_not_block_setup(
        self, isolated_package_logger: logging.Logger, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Обработчик, добавленный извне (например, caplog), не отменяет настройку."""
        monkeypatch.setenv("COMPOSITE_KEM_LOG_LEVEL", "ERROR")
        monkeypatch.delenv("COMPOSITE_KEM_LOG_FILE", raising=False)
        foreign = logging.NullHandler()
        isolated_package_logger.addHandler(foreign)
        try:
            composite_kem._setup_logging()

            assert isolated_package_logger.level == logging.ERROR
            assert foreign in isolated_package_logger.handlers
            assert len(_own_handlers(isolated_package_logger)) == 1
        finally:
            isolated_package_logger.removeHandler(foreign)


class TestDependencyCheck:
    def test_keys_and_values(self) -> None:
        deps = composite_kem.check_dependencies()
        assert set(deps) == {"cryptography", "kyber-py", "liboqs-python"}
        assert all(isinstance(v, bool) for v in deps.values())

    def test_required_present(self) -> None:
        deps = composite_kem.check_dependencies()
        assert deps["cryptography"] is True
        assert deps["kyber-py"] is True
