"""
One synchronization pass against the content type hub.

The pass fetches the catalog once and folds every entry into a
:class:`~h5phub.sync.results.SyncResult`. Entries are independent: a failed
install is logged and recorded, and the next entry is processed as if
nothing happened. A catalog failure aborts the pass before any install.
"""

from __future__ import annotations

import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Iterable, Iterator, Optional

from h5phub.host.protocols import CatalogSource, HostRuntime, LibraryRegistry, silence_messages
from h5phub.hub.client import HubError
from h5phub.hub.models import CatalogEntry
from h5phub.hub.versions import is_newer_than_installed
from h5phub.logging_config import pass_context
from h5phub.sync.errors import InstallError
from h5phub.sync.filters import is_core_api_compatible, is_restricted
from h5phub.sync.installer import PackageInstaller
from h5phub.sync.lock import PassLock
from h5phub.sync.results import (
    InstallFailed,
    Installed,
    SkipReason,
    Skipped,
    SyncReport,
    SyncResult,
)

LOGGER = logging.getLogger(__name__)


class SyncOrchestrator:
    def __init__(
        self,
        *,
        source: CatalogSource,
        registry: LibraryRegistry,
        installer: PackageInstaller,
        runtime: Optional[HostRuntime] = None,
        lock: Optional[PassLock] = None,
        cancel: Optional[threading.Event] = None,
    ) -> None:
        self.source = source
        self.registry = registry
        self.installer = installer
        self.runtime = runtime
        self.lock = lock
        self.cancel = cancel

    # ------------------------------------------------------------------ Public
    def run_sync_pass(self) -> SyncReport:
        """Update every installed content type the hub offers a newer version of."""
        report = SyncReport(pass_id=uuid.uuid4().hex[:12])
        with pass_context(report.pass_id):
            try:
                if self.lock is not None and not self.lock.acquire():
                    LOGGER.warning(
                        "Another sync pass holds %s; skipping this one", self.lock.lock_path
                    )
                    report.aborted = "locked"
                else:
                    try:
                        self._run(report)
                    finally:
                        if self.lock is not None:
                            self.lock.release()
            finally:
                report.finished_at = datetime.now(timezone.utc)
        return report

    def sync_entry(self, entry: CatalogEntry) -> SyncResult:
        """Decide on and act for one catalog entry; never raises for host failures."""
        try:
            reason = self.skip_reason(entry)
            if reason is not None:
                LOGGER.debug("Skipping %s %s: %s", entry.id, entry.version, reason.value)
                return Skipped(entry.id, reason)
            library_id = self.installer.install(entry)
        except InstallError as exc:
            LOGGER.error("Could not update %s to %s: %s", entry.id, entry.version, exc)
            return InstallFailed(entry.id, exc.message, exc.stage)
        except Exception as exc:
            LOGGER.error(
                "Unexpected error while syncing %s %s: %s",
                entry.id,
                entry.version,
                exc,
                exc_info=True,
            )
            return InstallFailed(entry.id, str(exc), "install")
        return Installed(entry.id, library_id, str(entry.version))

    def skip_reason(self, entry: CatalogEntry) -> Optional[SkipReason]:
        version = entry.version
        if is_restricted(self.registry, entry.id, version.major, version.minor):
            return SkipReason.RESTRICTED
        if not is_core_api_compatible(
            entry.core_api_version_needed, self.registry.get_core_api_version()
        ):
            return SkipReason.CORE_API_INCOMPATIBLE
        library_id = self.registry.get_library_id(entry.id)
        if library_id is None:
            return SkipReason.NOT_INSTALLED
        installed = self.registry.get_installed_version(library_id)
        if installed is None:
            return SkipReason.NOT_INSTALLED
        if not is_newer_than_installed(installed, version):
            return SkipReason.UP_TO_DATE
        return None

    def refresh_hub_cache(self) -> bool:
        """Reload the host's content type cache from the configured hub."""
        if self.runtime is None:
            raise RuntimeError("refreshing the hub cache needs a host runtime")
        try:
            catalog = self.source.fetch_catalog()
        except HubError as exc:
            LOGGER.error("Error refreshing content type cache: %s", exc)
            return False
        try:
            self.runtime.update_content_type_cache(catalog)
        finally:
            silence_messages(self.runtime)
        LOGGER.info("Content type cache refreshed with %d entries", len(catalog))
        return True

    # ------------------------------------------------------------------ Helpers
    def _run(self, report: SyncReport) -> None:
        try:
            catalog = self.source.fetch_catalog()
        except HubError as exc:
            LOGGER.error("Error fetching content types: %s", exc)
            report.aborted = f"catalog fetch failed: {exc}"
            return
        LOGGER.info("Hub offers %d content types", len(catalog))
        report.results.extend(self._fold(catalog.content_types, report))
        LOGGER.info("Sync pass finished: %s", report.summary())

    def _fold(
        self, entries: Iterable[CatalogEntry], report: SyncReport
    ) -> Iterator[SyncResult]:
        for entry in entries:
            if self.cancel is not None and self.cancel.is_set():
                LOGGER.info("Sync pass cancelled before %s", entry.id)
                report.cancelled = True
                return
            yield self.sync_entry(entry)


__all__ = ["SyncOrchestrator"]
