from __future__ import annotations

import logging
from typing import Optional

from h5phub.host.protocols import LibraryRegistry
from h5phub.hub.models import CoreApiVersion

LOGGER = logging.getLogger(__name__)


def is_restricted(
    registry: LibraryRegistry,
    machine_name: Optional[str],
    major: Optional[int],
    minor: Optional[int],
) -> bool:
    """Return ``True`` only when the admin flagged this major.minor.

    Missing arguments, a missing record and lookup failures are all treated
    as unrestricted.
    """
    if machine_name is None or major is None or minor is None:
        return False
    try:
        flag = registry.is_restricted(machine_name, major, minor)
    except Exception as exc:
        LOGGER.warning(
            "Restriction lookup for %s-%s.%s failed, treating as unrestricted: %s",
            machine_name,
            major,
            minor,
            exc,
        )
        return False
    return bool(flag)


def is_core_api_compatible(
    needed: Optional[CoreApiVersion], host: CoreApiVersion
) -> bool:
    if needed is None:
        return True
    if host.major != needed.major:
        return host.major > needed.major
    return host.minor >= needed.minor


__all__ = ["is_core_api_compatible", "is_restricted"]
