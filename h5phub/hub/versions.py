from __future__ import annotations

from enum import Enum

from h5phub.hub.models import LibraryVersion


class VersionOrder(str, Enum):
    OLDER_INSTALLED = "older_installed"
    NEWER_INSTALLED = "newer_installed"
    EQUAL = "equal"


def compare(installed: LibraryVersion, offered: LibraryVersion) -> VersionOrder:
    """Order the installed version against the offered one.

    Components are scanned major, minor, patch; the first differing position
    decides.
    """
    for have, want in zip(installed.as_tuple(), offered.as_tuple()):
        if have < want:
            return VersionOrder.OLDER_INSTALLED
        if have > want:
            return VersionOrder.NEWER_INSTALLED
    return VersionOrder.EQUAL


def is_newer_than_installed(installed: LibraryVersion, offered: LibraryVersion) -> bool:
    # Equal versions are not an update.
    return compare(installed, offered) is VersionOrder.OLDER_INSTALLED


__all__ = ["VersionOrder", "compare", "is_newer_than_installed"]
