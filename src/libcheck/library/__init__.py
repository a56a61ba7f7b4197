"""Library metadata and on-disk layout helpers."""

from .layout import LibraryLayout
from .manifest import (
    LibraryManifest,
    ManifestError,
    ManifestInvalid,
    ManifestNotFound,
    read_manifest,
    sanitize_name,
)

__all__ = [
    "LibraryLayout",
    "LibraryManifest",
    "ManifestError",
    "ManifestInvalid",
    "ManifestNotFound",
    "read_manifest",
    "sanitize_name",
]
