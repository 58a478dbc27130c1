"""
Content type synchronization engine.

:class:`SyncOrchestrator` drives a pass; :class:`PackageInstaller` installs a
single entry. Both take their host collaborators explicitly.
"""

from __future__ import annotations

from .errors import (
    FetchError,
    InstallError,
    PostInstallCheckError,
    StorageError,
    ValidationError,
    WriteError,
)
from .filters import is_core_api_compatible, is_restricted
from .installer import PackageInstaller
from .lock import PassLock
from .orchestrator import SyncOrchestrator
from .results import InstallFailed, Installed, SkipReason, Skipped, SyncReport, SyncResult
from .schedule import SCHEDULES, SyncSchedule

__all__ = [
    "FetchError",
    "InstallError",
    "InstallFailed",
    "Installed",
    "PackageInstaller",
    "PassLock",
    "PostInstallCheckError",
    "SCHEDULES",
    "SkipReason",
    "Skipped",
    "StorageError",
    "SyncOrchestrator",
    "SyncReport",
    "SyncResult",
    "SyncSchedule",
    "ValidationError",
    "WriteError",
    "is_core_api_compatible",
    "is_restricted",
]
