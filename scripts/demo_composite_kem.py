#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Demo script for composite ML-KEM + ECDH key encapsulation.

Usage:
    python demo_composite_kem.py
    python demo_composite_kem.py --backend liboqs
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

# Add src to path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root / "src"))

from composite_kem import (
    CompositeKemConfig,
    CompositeMLKem,
    CryptoError,
    InvalidCurvePointError,
    InvalidEncodingError,
    check_dependencies,
    list_algorithms,
)
from composite_kem.core.registry import AlgorithmDescriptor
from composite_kem.utils import secure_compare


def print_banner(text: str) -> None:
    """Print section banner."""
    print()
    print("=" * 70)
    print(f"  {text}")
    print("=" * 70)


def print_success(text: str) -> None:
    print(f"✅ {text}")


def print_info(text: str) -> None:
    print(f"ℹ️  {text}")


def print_data(label: str, data: bytes, max_len: int = 64) -> None:
    """Print data preview."""
    hex_data = data.hex()
    if len(hex_data) > max_len:
        preview = f"{hex_data[:max_len]}... ({len(data)} bytes)"
    else:
        preview = f"{hex_data} ({len(data)} bytes)"
    print(f"   {label}: {preview}")


def check_availability() -> None:
    print_banner("🔍 Checking backend availability")

    deps = check_dependencies()
    for name, available in deps.items():
        print_info(f"{name}: {available}")

    if not (deps["cryptography"] and deps["kyber-py"]):
        print()
        print("❌ Required libraries missing!")
        print("   Install: pip install cryptography kyber-py")
        sys.exit(1)


def demo_algorithm(algorithm: AlgorithmDescriptor, config: CompositeKemConfig) -> None:
    """Alice/Bob round trip for one composite algorithm."""
    print_banner(f"📦 Demo: {algorithm.name} (OID {algorithm.oid})")

    # Step 1: receiver key pair
    print()
    print("Step 1: Bob generates a composite key pair...")
    start = time.time()
    bob = CompositeMLKem.generate(algorithm, config=config)
    duration = (time.time() - start) * 1000
    print_success(f"Key pair generated in {duration:.2f}ms")

    public_key = bob.export_encapsulation_key()
    private_key = bob.export_private_key()
    print_data("Encapsulation key", public_key)
    print_data("Private key", private_key)

    # Step 2: sender encapsulates
    print()
    print("Step 2: Alice imports Bob's key and encapsulates...")
    with CompositeMLKem.import_encapsulation_key(
        algorithm.oid, public_key, config=config
    ) as alice:
        start = time.time()
        ciphertext, secret_alice = alice.encapsulate()
        duration = (time.time() - start) * 1000
    print_success(f"Encapsulation completed in {duration:.2f}ms")
    print_data("Ciphertext", ciphertext)
    print_data("Shared secret", secret_alice)

    # Step 3: receiver decapsulates
    print()
    print("Step 3: Bob decapsulates...")
    start = time.time()
    secret_bob = bob.decapsulate(ciphertext)
    duration = (time.time() - start) * 1000
    print_success(f"Decapsulation completed in {duration:.2f}ms")

    if secure_compare(secret_alice, secret_bob):
        print_success("✨ Secrets match!")
    else:
        print("❌ Secrets don't match!")

    # Step 4: private key round trip
    print()
    print("Step 4: Re-importing Bob's private key...")
    with CompositeMLKem.import_private_key(algorithm, private_key, config=config) as restored:
        if restored.decapsulate(ciphertext) == secret_bob:
            print_success("Restored key recovers the same secret")

    # Step 5: tampering
    print()
    print("Step 5: Tampering with the ciphertext...")
    split = algorithm.ml_kem.ciphertext_size

    bad_tag = bytearray(ciphertext)
    bad_tag[split] = 0x02
    try:
        bob.decapsulate(bytes(bad_tag))
        print("❌ Compressed point tag should be rejected!")
    except InvalidEncodingError as e:
        print_success(f"Rejected: {e.message}")

    off_curve = bytearray(ciphertext)
    off_curve[-1] ^= 0x01
    try:
        bob.decapsulate(bytes(off_curve))
        print("❌ Off-curve point should be rejected!")
    except InvalidCurvePointError as e:
        print_success(f"Rejected: {e.message}")

    bob.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Composite ML-KEM + ECDH demo")
    parser.add_argument(
        "--backend",
        default=None,
        help="ML-KEM backend: kyber-py (default) or liboqs",
    )
    args = parser.parse_args()

    print()
    print("╔════════════════════════════════════════════════════════════════════╗")
    print("║                                                                    ║")
    print("║        🔐 COMPOSITE ML-KEM + ECDH DEMONSTRATION 🔐                ║")
    print("║                                                                    ║")
    print("╚════════════════════════════════════════════════════════════════════╝")

    try:
        check_availability()

        config = CompositeKemConfig.from_env()
        if args.backend:
            config = CompositeKemConfig(lattice_backend=args.backend)
        print_info(f"ML-KEM backend: {config.lattice_backend.value}")

        for algorithm in list_algorithms():
            demo_algorithm(algorithm, config)

        print()
        print_banner("🎉 All Demos Completed Successfully!")
        print()
        print("Security properties:")
        print("   • ML-KEM protects against quantum attacks")
        print("   • ECDH protects if the lattice assumption breaks")
        print("   • SHA3-256 combiner binds both secrets, both points and the label")
        print()

    except KeyboardInterrupt:
        print()
        print("❌ Demo interrupted by user")
        sys.exit(1)
    except (CryptoError, ValueError) as e:
        print()
        print(f"❌ Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
