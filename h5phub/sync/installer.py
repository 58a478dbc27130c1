"""
Install a single content type version from the hub.

The sequence is fetch, stage, validate, persist, clean up, verify and patch
metadata. Validation and persistence run with ``manage_h5p_libraries``
held only for the duration of the host call. Whatever happens after the
archive is staged, the staged file, its extraction folder and any host
messages are cleared before :meth:`PackageInstaller.install` returns.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from h5phub.host.protocols import (
    MANAGE_LIBRARIES,
    CatalogSource,
    HostRuntime,
    LibraryRegistry,
    PackageStore,
    PackageValidator,
    elevated,
    silence_messages,
)
from h5phub.hub.client import HubError
from h5phub.hub.models import CatalogEntry
from h5phub.sync.errors import (
    FetchError,
    InstallError,
    PostInstallCheckError,
    StorageError,
    ValidationError,
    WriteError,
)

LOGGER = logging.getLogger(__name__)


class PackageInstaller:
    def __init__(
        self,
        *,
        source: CatalogSource,
        validator: PackageValidator,
        store: PackageStore,
        registry: LibraryRegistry,
        runtime: HostRuntime,
        capability: str = MANAGE_LIBRARIES,
    ) -> None:
        self.source = source
        self.validator = validator
        self.store = store
        self.registry = registry
        self.runtime = runtime
        self.capability = capability

    # ------------------------------------------------------------------ Public
    def install(self, entry: CatalogEntry) -> int:
        """Install ``entry`` and return the library id assigned by the host.

        Raises an :class:`InstallError` subclass describing the failed step.
        """
        machine_name = entry.machine_name
        archive = self._fetch(machine_name)

        package_path = self.runtime.uploaded_package_path()
        package_folder = self.runtime.uploaded_package_folder()
        try:
            self._stage(machine_name, archive, package_path)
            self._validate(machine_name, package_path)
            self._persist(machine_name, package_path)
        finally:
            self._leave_cleanly(package_path, package_folder)

        library_id = self._check_after_install(entry)
        self._patch_metadata(entry, library_id)
        LOGGER.info(
            "Installed %s %s (library id %s)", machine_name, entry.version, library_id
        )
        return library_id

    # ------------------------------------------------------------------ Steps
    def _fetch(self, machine_name: str) -> bytes:
        try:
            return self.source.fetch_archive(machine_name)
        except HubError as exc:
            raise FetchError(
                machine_name, f"Error fetching content type {machine_name}: {exc}"
            ) from exc

    def _stage(self, machine_name: str, archive: bytes, package_path: Path) -> None:
        try:
            package_path.parent.mkdir(parents=True, exist_ok=True)
            package_path.write_bytes(archive)
        except OSError as exc:
            raise WriteError(
                machine_name, f"Could not write to file {package_path}: {exc}"
            ) from exc

    def _validate(self, machine_name: str, package_path: Path) -> None:
        try:
            with elevated(self.runtime, self.capability):
                valid = self.validator.is_valid(package_path)
        except Exception as exc:
            raise ValidationError(
                machine_name, f"Error validating content type {machine_name}: {exc}"
            ) from exc
        if not valid:
            reasons = " / ".join(self.runtime.drain_messages("error"))
            raise ValidationError(
                machine_name,
                f"Not a valid H5P package for content type {machine_name}: {reasons}",
            )

    def _persist(self, machine_name: str, package_path: Path) -> None:
        try:
            with elevated(self.runtime, self.capability):
                self.store.persist(package_path)
        except Exception as exc:
            raise StorageError(
                machine_name, f"Error saving content type {machine_name}: {exc}"
            ) from exc

    def _leave_cleanly(self, package_path: Path, package_folder: Path) -> None:
        for path in (package_folder, package_path):
            try:
                if path.is_dir():
                    shutil.rmtree(path)
                elif path.exists():
                    path.unlink()
            except OSError:
                LOGGER.warning("Could not remove temporary path %s", path, exc_info=True)
        silence_messages(self.runtime)

    def _check_after_install(self, entry: CatalogEntry) -> int:
        versioned_name = entry.versioned_name
        try:
            library_id = self.registry.installed_library_id(versioned_name)
        except Exception as exc:
            raise PostInstallCheckError(
                entry.machine_name,
                f"Error while installing content type {versioned_name}: "
                f"could not look up library ID: {exc}",
            ) from exc
        if library_id is None:
            raise PostInstallCheckError(
                entry.machine_name,
                f"Error while installing content type {versioned_name}: "
                "Library ID is missing.",
            )
        return library_id

    def _patch_metadata(self, entry: CatalogEntry, library_id: int) -> None:
        if entry.tutorial is None:
            return
        try:
            self.registry.update_library(library_id, tutorial_url=entry.tutorial)
        except Exception:
            LOGGER.warning(
                "Could not store tutorial URL for %s (library id %s)",
                entry.machine_name,
                library_id,
                exc_info=True,
            )


__all__ = ["InstallError", "PackageInstaller"]
