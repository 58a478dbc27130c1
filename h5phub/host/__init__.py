"""
Host framework boundary.

``protocols`` declares the capabilities the sync engine needs from an H5P
installation; ``local`` implements them against a plain directory.
"""

from __future__ import annotations

from .local import LocalHost, LocalHostRuntime, LocalLibraryStore
from .package import LibraryManifest, PackageError
from .protocols import (
    MANAGE_LIBRARIES,
    CatalogSource,
    HostRuntime,
    LibraryRegistry,
    PackageStore,
    PackageValidator,
    elevated,
    silence_messages,
)

__all__ = [
    "CatalogSource",
    "HostRuntime",
    "LibraryManifest",
    "LibraryRegistry",
    "LocalHost",
    "LocalHostRuntime",
    "LocalLibraryStore",
    "MANAGE_LIBRARIES",
    "PackageError",
    "PackageStore",
    "PackageValidator",
    "elevated",
    "silence_messages",
]
