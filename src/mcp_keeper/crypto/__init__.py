"""Hashing utilities for lockfile entries."""

from .hash import compute_integrity, verify_integrity

__all__ = [
    "compute_integrity",
    "verify_integrity"
]
