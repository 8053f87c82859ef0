"""Version comparison for update checks."""

from typing import List, Optional


def _parts(version: str) -> List[Optional[int]]:
    parts: List[Optional[int]] = []
    for segment in version.strip().lstrip("v").split("."):
        parts.append(int(segment) if segment.isdigit() else None)
    return parts


def compare_versions(a: str, b: str) -> int:
    """
    Compare two dotted versions: -1 if a < b, 0 if equal, 1 if a > b.

    Missing segments count as 0. As soon as a non-numeric segment is reached
    (``1.0.0-beta``, ``rc1``) the versions compare equal; prerelease tags are
    not ordered.
    """
    a_parts = _parts(a)
    b_parts = _parts(b)
    for i in range(max(len(a_parts), len(b_parts))):
        a_n = a_parts[i] if i < len(a_parts) else 0
        b_n = b_parts[i] if i < len(b_parts) else 0
        if a_n is None or b_n is None:
            return 0
        if a_n < b_n:
            return -1
        if a_n > b_n:
            return 1
    return 0


def detect_update_type(current: str, latest: str) -> str:
    """'major', 'minor' or 'patch' depending on the first bumped segment."""
    cur = [p or 0 for p in _parts(current)] + [0, 0]
    new = [p or 0 for p in _parts(latest)] + [0, 0]
    if new[0] > cur[0]:
        return "major"
    if new[1] > cur[1]:
        return "minor"
    return "patch"
