"""
Capabilities the sync engine consumes from the host H5P framework.

Each protocol covers one concern so that callers inject exactly what they
need. :mod:`h5phub.host.local` ships a filesystem-backed implementation of
all of them.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Protocol, runtime_checkable

from h5phub.hub.models import Catalog, CoreApiVersion, LibraryVersion

LOGGER = logging.getLogger(__name__)

MANAGE_LIBRARIES = "manage_h5p_libraries"
MESSAGE_KINDS: tuple[str, ...] = ("error", "info")


@runtime_checkable
class CatalogSource(Protocol):
    def fetch_catalog(self, site_uuid: str | None = None) -> Catalog:
        ...

    def fetch_archive(self, machine_name: str) -> bytes:
        ...


@runtime_checkable
class PackageValidator(Protocol):
    def is_valid(self, package_path: Path) -> bool:
        ...


@runtime_checkable
class PackageStore(Protocol):
    def persist(self, package_path: Path) -> None:
        ...


@runtime_checkable
class LibraryRegistry(Protocol):
    """Read access to installed libraries plus the few fields we patch."""

    def get_library_id(self, machine_name: str) -> Optional[int]:
        ...

    def get_installed_version(self, library_id: int) -> Optional[LibraryVersion]:
        ...

    def get_core_api_version(self) -> CoreApiVersion:
        ...

    def is_restricted(self, machine_name: str, major: int, minor: int) -> Optional[bool]:
        ...

    def installed_library_id(self, versioned_name: str) -> Optional[int]:
        ...

    def update_library(self, library_id: int, *, tutorial_url: str | None = None) -> None:
        ...


@runtime_checkable
class HostRuntime(Protocol):
    """Per-process host services: temp paths, messages, capabilities."""

    def uploaded_package_path(self) -> Path:
        ...

    def uploaded_package_folder(self) -> Path:
        ...

    def drain_messages(self, kind: str) -> list[str]:
        ...

    def has_capability(self, name: str) -> bool:
        ...

    def grant_capability(self, name: str) -> None:
        ...

    def revoke_capability(self, name: str) -> None:
        ...

    def update_content_type_cache(self, catalog: Catalog) -> None:
        ...


@contextmanager
def elevated(runtime: HostRuntime, capability: str = MANAGE_LIBRARIES) -> Iterator[None]:
    """Hold ``capability`` for the duration of the block.

    Nothing is granted when the principal already holds it, and a temporary
    grant is always revoked on exit.
    """
    granted = False
    if not runtime.has_capability(capability):
        runtime.grant_capability(capability)
        granted = True
        LOGGER.debug("Temporarily granted %s", capability)
    try:
        yield
    finally:
        if granted:
            runtime.revoke_capability(capability)
            LOGGER.debug("Revoked temporary %s", capability)


def silence_messages(runtime: HostRuntime) -> None:
    """Discard queued host messages so they do not surface in unrelated UI."""
    for kind in MESSAGE_KINDS:
        runtime.drain_messages(kind)


__all__ = [
    "CatalogSource",
    "HostRuntime",
    "LibraryRegistry",
    "MANAGE_LIBRARIES",
    "MESSAGE_KINDS",
    "PackageStore",
    "PackageValidator",
    "elevated",
    "silence_messages",
]
