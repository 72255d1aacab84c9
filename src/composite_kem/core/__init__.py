"""
Ядро composite KEM: исключения, протоколы backend-компонент,
реестр алгоритмов и конфигурация.
"""

from composite_kem.core.exceptions import (
    AlgorithmError,
    AlgorithmNotSupportedError,
    CryptoError,
    CryptoKeyError,
    DecapsulationFailedError,
    EncapsulationFailedError,
    InvalidCurvePointError,
    InvalidEncodingError,
    KemError,
    KeyGenerationError,
    NotInitializedError,
    UnknownAlgorithmError,
    UnsupportedCurveError,
    ValidationError,
)
from composite_kem.core.protocols import (
    EllipticDiffieHellmanProtocol,
    IncrementalHashProtocol,
    LatticeKemProtocol,
)
from composite_kem.core.registry import (
    AlgorithmDescriptor,
    EcCurve,
    MLKemParameterSet,
    get_algorithm,
    get_algorithm_by_name,
    list_algorithms,
    lookup,
)
from composite_kem.core.config import (
    CompositeKemConfig,
    LatticeBackend,
    get_default_config,
    load_config,
)

__all__ = [
    # Exceptions
    "CryptoError",
    "AlgorithmError",
    "UnknownAlgorithmError",
    "UnsupportedCurveError",
    "AlgorithmNotSupportedError",
    "CryptoKeyError",
    "NotInitializedError",
    "KeyGenerationError",
    "ValidationError",
    "InvalidEncodingError",
    "InvalidCurvePointError",
    "KemError",
    "EncapsulationFailedError",
    "DecapsulationFailedError",
    # Protocols
    "LatticeKemProtocol",
    "EllipticDiffieHellmanProtocol",
    "IncrementalHashProtocol",
    # Registry
    "AlgorithmDescriptor",
    "EcCurve",
    "MLKemParameterSet",
    "lookup",
    "get_algorithm",
    "get_algorithm_by_name",
    "list_algorithms",
    # Config
    "CompositeKemConfig",
    "LatticeBackend",
    "load_config",
    "get_default_config",
]
