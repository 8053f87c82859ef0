"""Integrity digests for lockfile entries."""

import base64
import hashlib


def compute_integrity(resolved: str) -> str:
    """Compute the SRI-style integrity string for a resolved locator."""
    digest = hashlib.sha512(resolved.encode("utf-8")).digest()
    return "sha512-" + base64.b64encode(digest).decode("ascii")


def verify_integrity(resolved: str, integrity: str) -> bool:
    """Check that ``integrity`` was computed from ``resolved``."""
    return compute_integrity(resolved) == integrity
