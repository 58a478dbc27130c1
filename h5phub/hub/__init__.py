"""
Hub access for h5phub.

Wire models for the content type catalog, the version comparator and the
HTTP client live here. Nothing in this package touches host state.
"""

from __future__ import annotations

from .client import (
    HTTP_TIMEOUT,
    HubClient,
    HubDecodeError,
    HubError,
    HubProtocolError,
    HubStatusError,
    HubTransportError,
    create_site_uuid,
    parse_catalog,
)
from .models import (
    Catalog,
    CatalogEntry,
    CoreApiVersion,
    InstalledLibrary,
    LibraryVersion,
    library_key,
)
from .versions import VersionOrder, compare, is_newer_than_installed

__all__ = [
    "Catalog",
    "CatalogEntry",
    "CoreApiVersion",
    "HTTP_TIMEOUT",
    "HubClient",
    "HubDecodeError",
    "HubError",
    "HubProtocolError",
    "HubStatusError",
    "HubTransportError",
    "InstalledLibrary",
    "LibraryVersion",
    "VersionOrder",
    "compare",
    "create_site_uuid",
    "is_newer_than_installed",
    "library_key",
    "parse_catalog",
]
