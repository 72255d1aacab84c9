# -*- coding: utf-8 -*-
"""
RU: Конфигурация composite KEM: выбор ML-KEM backend и политика стирания секретов.
EN: Composite KEM configuration: ML-KEM backend selection and secret-wiping policy.

Источники (по возрастанию приоритета):
    1. Значения по умолчанию
    2. JSON-файл (load_config)
    3. Переменные окружения (CompositeKemConfig.from_env)
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, replace
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Final, Optional, Union

_LOGGER: Final = logging.getLogger(__name__)

ENV_LATTICE_BACKEND: Final[str] = "COMPOSITE_KEM_LATTICE_BACKEND"
ENV_WIPE_SECRETS: Final[str] = "COMPOSITE_KEM_WIPE_SECRETS"
ENV_CONFIG_FILE: Final[str] = "COMPOSITE_KEM_CONFIG_FILE"
DEFAULT_CONFIG_FILENAME: Final[str] = "composite_kem.json"


class LatticeBackend(str, Enum):
    """Available ML-KEM implementations."""

    # Pure Python FIPS 203 (kyber-py), default
    KYBER_PY = "kyber-py"

    # liboqs C library via liboqs-python
    LIBOQS = "liboqs"

    @classmethod
    def parse(cls, value: Union["LatticeBackend", str]) -> "LatticeBackend":
        """
        Parse backend name; accepts "kyber-py", "kyber_py", "liboqs", "oqs".

        Raises:
            ValueError: unknown backend name.
        """
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower().replace("_", "-")
        if normalized == "oqs":
            normalized = cls.LIBOQS.value
        try:
            return cls(normalized)
        except ValueError:
            allowed = ", ".join(b.value for b in cls)
            raise ValueError(
                f"Unknown lattice backend {value!r}; expected one of: {allowed}"
            ) from None


@dataclass(frozen=True)
class CompositeKemConfig:
    """
    Composite KEM configuration.

    Attributes:
        lattice_backend: ML-KEM implementation used by default factories.
        wipe_secrets: Zero intermediate secret buffers after use.
            Disable only for diagnostics.

    Examples:
        >>> CompositeKemConfig().lattice_backend
        <LatticeBackend.KYBER_PY: 'kyber-py'>

        >>> CompositeKemConfig(lattice_backend="oqs").lattice_backend
        <LatticeBackend.LIBOQS: 'liboqs'>
    """

    lattice_backend: LatticeBackend = LatticeBackend.KYBER_PY
    wipe_secrets: bool = True

    def __post_init__(self) -> None:
        """Validate and normalize parameters."""
        object.__setattr__(
            self, "lattice_backend", LatticeBackend.parse(self.lattice_backend)
        )
        if not isinstance(self.wipe_secrets, bool):
            raise ValueError("wipe_secrets must be a boolean")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CompositeKemConfig":
        """
        Build configuration from a mapping; unknown keys are ignored.

        Raises:
            ValueError: invalid value for a known key.
        """
        known = {k: data[k] for k in ("lattice_backend", "wipe_secrets") if k in data}
        return cls(**known)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lattice_backend": self.lattice_backend.value,
            "wipe_secrets": self.wipe_secrets,
        }

    def with_env_overrides(self) -> "CompositeKemConfig":
        """Apply COMPOSITE_KEM_* environment overrides on top of this config."""
        changes: Dict[str, Any] = {}

        backend = os.environ.get(ENV_LATTICE_BACKEND, "").strip()
        if backend:
            changes["lattice_backend"] = LatticeBackend.parse(backend)

        wipe = os.environ.get(ENV_WIPE_SECRETS, "").strip().lower()
        if wipe:
            if wipe not in ("0", "1", "true", "false", "yes", "no"):
                raise ValueError(f"{ENV_WIPE_SECRETS} must be a boolean flag")
            changes["wipe_secrets"] = wipe in ("1", "true", "yes")

        return replace(self, **changes) if changes else self

    @classmethod
    def from_env(cls) -> "CompositeKemConfig":
        """Defaults with environment overrides applied."""
        return cls().with_env_overrides()


def load_config(config_path: Optional[Path] = None) -> CompositeKemConfig:
    """
    Load configuration from a JSON file, falling back to defaults.

    A missing, unreadable or malformed file is logged as a warning and the
    defaults are used. A well-formed file with an invalid value raises.

    Args:
        config_path: JSON file path; defaults to ./composite_kem.json.

    Returns:
        Configuration with environment overrides applied.

    Raises:
        ValueError: the file contains an invalid value for a known key.
    """
    if config_path is None:
        config_path = Path(DEFAULT_CONFIG_FILENAME)

    config = CompositeKemConfig()

    if config_path.exists():
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                user_config = json.load(f)
        except json.JSONDecodeError as e:
            _LOGGER.warning(
                "Cannot parse %s: invalid JSON at line %d, column %d; using defaults",
                config_path,
                e.lineno,
                e.colno,
            )
            return config.with_env_overrides()
        except OSError as e:
            _LOGGER.warning("Cannot read %s: %s; using defaults", config_path, e)
            return config.with_env_overrides()

        if not isinstance(user_config, dict):
            _LOGGER.warning(
                "Config file %s must contain a JSON object, got %s; using defaults",
                config_path,
                type(user_config).__name__,
            )
            return config.with_env_overrides()

        config = CompositeKemConfig.from_dict(user_config)
        _LOGGER.info("Configuration loaded from %s", config_path)
    else:
        _LOGGER.debug("Config file %s not found; using defaults", config_path)

    return config.with_env_overrides()


@lru_cache(maxsize=1)
def get_default_config() -> CompositeKemConfig:
    """
    Process-wide default configuration, cached.

    Read through load_config: the file named by COMPOSITE_KEM_CONFIG_FILE,
    else ./composite_kem.json when present, then environment overrides.
    Call get_default_config.cache_clear() after changing either.
    """
    config_file = os.environ.get(ENV_CONFIG_FILE, "").strip()
    return load_config(Path(config_file) if config_file else None)


__all__ = [
    "LatticeBackend",
    "CompositeKemConfig",
    "load_config",
    "get_default_config",
    "ENV_LATTICE_BACKEND",
    "ENV_WIPE_SECRETS",
    "ENV_CONFIG_FILE",
]
