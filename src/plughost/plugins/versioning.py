"""
Plugin version ordering.

Versions are dot-separated numeric segments compared segment by segment,
so "1.10.0" sorts above "1.9.9".
"""

from __future__ import annotations

import re

_SEGMENT = re.compile(r"^(\d+)")
VERSION_PATTERN = re.compile(r"^\d+(\.\d+)*$")


def version_key(version: str) -> tuple[int, ...]:
    """
    Build a comparable key for a version string.

    Trailing zero segments are dropped so "1.2" and "1.2.0" compare equal.
    A segment without a leading number counts as 0.
    """
    parts: list[int] = []
    for segment in version.strip().split("."):
        match = _SEGMENT.match(segment)
        parts.append(int(match.group(1)) if match else 0)
    while len(parts) > 1 and parts[-1] == 0:
        parts.pop()
    return tuple(parts)


def compare_versions(v1: str, v2: str) -> int:
    """Return -1 if v1 < v2, 0 if equal, 1 if v1 > v2."""
    k1, k2 = version_key(v1), version_key(v2)
    if k1 < k2:
        return -1
    if k1 > k2:
        return 1
    return 0


def is_valid_version(version: str) -> bool:
    return bool(VERSION_PATTERN.match(version.strip()))
