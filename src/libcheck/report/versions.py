"""Relaxed semantic version ordering.

Library and core versions are mostly semver (``1.2.3``, ``2.0.0-beta.1``) but
often not strictly: a leading ``v``, missing components (``1.2``) or free-form
strings show up. ``version_key`` sorts them as follows:

- strings that are not versions at all sort before every valid version
- missing minor/patch components count as 0
- a pre-release sorts before the corresponding release
- build metadata (``+sha``) is ignored
"""

import re
from typing import Any

_VERSION_RE = re.compile(
    r"^v?(?P<major>\d+)(?:\.(?P<minor>\d+))?(?:\.(?P<patch>\d+))?"
    r"(?:-(?P<prerelease>[0-9A-Za-z.\-]+))?(?:\+[0-9A-Za-z.\-]+)?$"
)


def _prerelease_key(prerelease: str) -> tuple[Any, ...]:
    parts = []
    for identifier in prerelease.split("."):
        if identifier.isdigit():
            parts.append((0, int(identifier), ""))
        else:
            parts.append((1, 0, identifier))
    return tuple(parts)


def version_key(version: str) -> tuple[Any, ...]:
    """Sort key for a version string.

    Example:
        >>> sorted(["1.10.0", "1.2.0", "1.2.0-rc.1"], key=version_key)
        ['1.2.0-rc.1', '1.2.0', '1.10.0']
    """
    match = _VERSION_RE.match(version.strip())
    if match is None:
        return (0,)

    numbers = tuple(int(match.group(part) or 0) for part in ("major", "minor", "patch"))
    prerelease = match.group("prerelease")
    if prerelease:
        return (1, numbers, 0, _prerelease_key(prerelease))
    return (1, numbers, 1, ())


def sort_versions(versions: list[str]) -> list[str]:
    """Sort version strings ascending, ties broken alphabetically."""
    return sorted(versions, key=lambda v: (version_key(v), v))
