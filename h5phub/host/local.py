"""
Filesystem-backed H5P host.

Implements every capability in :mod:`h5phub.host.protocols` on top of a
single directory so the sync engine can run without a WordPress install::

    <root>/libraries.json                  library records
    <root>/libraries/<name>-<maj>.<min>/   installed library files
    <root>/tmp/hub-upload.h5p              staged archive
    <root>/tmp/hub-upload/                 extraction folder
    <root>/content_type_cache.json         last catalog seen from the hub
"""

from __future__ import annotations

import json
import logging
import shutil
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, MutableMapping, Optional

from h5phub.host.package import (
    LibraryManifest,
    PackageError,
    discover_libraries,
    extract_archive,
)
from h5phub.host.protocols import MANAGE_LIBRARIES, MESSAGE_KINDS
from h5phub.hub.models import (
    Catalog,
    CoreApiVersion,
    InstalledLibrary,
    LibraryVersion,
    library_key,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_CORE_API = CoreApiVersion(major=1, minor=27)
STATE_FILENAME = "libraries.json"
CACHE_FILENAME = "content_type_cache.json"
UPLOAD_NAME = "hub-upload"


@dataclass
class LibraryRecord:
    id: int
    machine_name: str
    major_version: int
    minor_version: int
    patch_version: int
    title: str = ""
    restricted: bool = False
    tutorial_url: str | None = None

    @property
    def version(self) -> LibraryVersion:
        return LibraryVersion(
            major=self.major_version,
            minor=self.minor_version,
            patch=self.patch_version,
        )

    @property
    def key(self) -> str:
        return library_key(self.machine_name, self.major_version, self.minor_version)

    def to_installed(self) -> InstalledLibrary:
        return InstalledLibrary(
            library_id=self.id,
            machine_name=self.machine_name,
            version=self.version,
            restricted=self.restricted,
            tutorial_url=self.tutorial_url,
        )

    @classmethod
    def from_payload(cls, payload: MutableMapping[str, Any]) -> "LibraryRecord":
        return cls(
            id=int(payload["id"]),
            machine_name=str(payload["machine_name"]),
            major_version=int(payload["major_version"]),
            minor_version=int(payload["minor_version"]),
            patch_version=int(payload["patch_version"]),
            title=str(payload.get("title") or ""),
            restricted=bool(payload.get("restricted", False)),
            tutorial_url=payload.get("tutorial_url") or None,
        )


class LocalLibraryStore:
    """Library records persisted as JSON next to the library files."""

    def __init__(
        self,
        root: Path | str,
        *,
        core_api: CoreApiVersion = DEFAULT_CORE_API,
    ) -> None:
        self.root = Path(root).expanduser()
        self.libraries_dir = self.root / "libraries"
        self.state_path = self.root / STATE_FILENAME
        self.core_api = core_api
        # Keyed ``{machine}-{major}.{minor}``; filled by validation, given a
        # ``libraryId`` once the library is saved.
        self.libraries_json_data: dict[str, dict[str, Any]] = {}
        self._records: dict[int, LibraryRecord] = self._load_state()

    # ------------------------------------------------------------------ State IO
    def _load_state(self) -> dict[int, LibraryRecord]:
        if not self.state_path.exists():
            return {}
        data = json.loads(self.state_path.read_text(encoding="utf-8"))
        records: dict[int, LibraryRecord] = {}
        for raw in data.get("libraries", []):
            record = LibraryRecord.from_payload(raw)
            records[record.id] = record
        return records

    def _save_state(self) -> None:
        payload = {
            "libraries": [asdict(record) for record in self._records.values()],
        }
        self.state_path.parent.mkdir(parents=True, exist_ok=True)
        self.state_path.write_text(
            json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8"
        )

    def _next_id(self) -> int:
        return max(self._records, default=0) + 1

    # ------------------------------------------------------------------ Registry
    def find(self, machine_name: str, major: int, minor: int) -> LibraryRecord | None:
        for record in self._records.values():
            if (
                record.machine_name == machine_name
                and record.major_version == major
                and record.minor_version == minor
            ):
                return record
        return None

    def get_library_id(self, machine_name: str) -> Optional[int]:
        matches = [r for r in self._records.values() if r.machine_name == machine_name]
        if not matches:
            return None
        newest = max(matches, key=lambda r: r.version.as_tuple())
        return newest.id

    def get_installed_version(self, library_id: int) -> Optional[LibraryVersion]:
        record = self._records.get(library_id)
        return record.version if record else None

    def get_core_api_version(self) -> CoreApiVersion:
        return self.core_api

    def is_restricted(self, machine_name: str, major: int, minor: int) -> Optional[bool]:
        record = self.find(machine_name, major, minor)
        return record.restricted if record else None

    def installed_library_id(self, versioned_name: str) -> Optional[int]:
        data = self.libraries_json_data.get(versioned_name)
        if not data:
            return None
        library_id = data.get("libraryId")
        return int(library_id) if library_id is not None else None

    def update_library(self, library_id: int, *, tutorial_url: str | None = None) -> None:
        record = self._records.get(library_id)
        if record is None:
            raise KeyError(f"library {library_id} is not installed")
        if tutorial_url is not None:
            record.tutorial_url = tutorial_url
        self._save_state()

    # ------------------------------------------------------------------ Admin
    def set_restricted(
        self, machine_name: str, major: int, minor: int, restricted: bool = True
    ) -> bool:
        record = self.find(machine_name, major, minor)
        if record is None:
            return False
        record.restricted = restricted
        self._save_state()
        return True

    def list_libraries(self) -> list[InstalledLibrary]:
        records = sorted(
            self._records.values(), key=lambda r: (r.machine_name, r.version.as_tuple())
        )
        return [record.to_installed() for record in records]

    def save_library(self, manifest: LibraryManifest, source: Path) -> int:
        """Copy an extracted library into place and upsert its record."""
        target = self.libraries_dir / manifest.key
        if target.exists():
            shutil.rmtree(target)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copytree(source, target)

        record = self.find(
            manifest.machine_name, manifest.major_version, manifest.minor_version
        )
        if record is None:
            record = LibraryRecord(
                id=self._next_id(),
                machine_name=manifest.machine_name,
                major_version=manifest.major_version,
                minor_version=manifest.minor_version,
                patch_version=manifest.patch_version,
            )
            self._records[record.id] = record
        record.patch_version = manifest.patch_version
        record.title = manifest.title
        self._save_state()
        return record.id


class LocalHostRuntime:
    """Temp paths, message queues and capabilities for the local host."""

    def __init__(self, root: Path | str, *, capabilities: Iterable[str] = ()) -> None:
        self.root = Path(root).expanduser()
        self.tmp_dir = self.root / "tmp"
        self.cache_path = self.root / CACHE_FILENAME
        self._permanent = frozenset(capabilities)
        self._granted: set[str] = set()
        self._messages: dict[str, list[str]] = {kind: [] for kind in MESSAGE_KINDS}

    def uploaded_package_path(self) -> Path:
        return self.tmp_dir / f"{UPLOAD_NAME}.h5p"

    def uploaded_package_folder(self) -> Path:
        return self.tmp_dir / UPLOAD_NAME

    # ------------------------------------------------------------------ Messages
    def add_message(self, kind: str, message: str) -> None:
        self._messages.setdefault(kind, []).append(message)

    def drain_messages(self, kind: str) -> list[str]:
        messages = self._messages.get(kind, [])
        self._messages[kind] = []
        return messages

    # ------------------------------------------------------------------ Capabilities
    def has_capability(self, name: str) -> bool:
        return name in self._permanent or name in self._granted

    def grant_capability(self, name: str) -> None:
        self._granted.add(name)

    def revoke_capability(self, name: str) -> None:
        self._granted.discard(name)

    def require_capability(self, name: str) -> None:
        if not self.has_capability(name):
            raise PermissionError(f"capability '{name}' is required")

    # ------------------------------------------------------------------ Hub cache
    def update_content_type_cache(self, catalog: Catalog) -> None:
        payload = {
            "updated_at": datetime.now(timezone.utc).isoformat(),
            "contentTypes": [entry.to_payload() for entry in catalog.content_types],
        }
        self.cache_path.parent.mkdir(parents=True, exist_ok=True)
        self.cache_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        self.add_message("info", f"Content type cache updated ({len(catalog)} entries)")


class LocalPackageValidator:
    def __init__(self, runtime: LocalHostRuntime, store: LocalLibraryStore) -> None:
        self.runtime = runtime
        self.store = store
        self.validated: dict[Path, LibraryManifest] = {}

    def is_valid(self, package_path: Path) -> bool:
        self.runtime.require_capability(MANAGE_LIBRARIES)
        self.validated = {}
        folder = self.runtime.uploaded_package_folder()
        if folder.exists():
            shutil.rmtree(folder)
        folder.mkdir(parents=True, exist_ok=True)
        try:
            extract_archive(Path(package_path), folder)
            libraries = discover_libraries(folder)
        except PackageError as exc:
            self.runtime.add_message("error", str(exc))
            return False

        core = self.store.get_core_api_version()
        for manifest in libraries.values():
            needed = manifest.core_api
            if needed and (needed.major_version, needed.minor_version) > (core.major, core.minor):
                self.runtime.add_message(
                    "error",
                    f"{manifest.key} requires core API "
                    f"{needed.major_version}.{needed.minor_version}, host has {core}",
                )
                return False

        for manifest in libraries.values():
            self.store.libraries_json_data[manifest.key] = manifest.model_dump(
                by_alias=True, exclude_none=True
            )
        self.validated = libraries
        return True


class LocalPackageStore:
    def __init__(
        self,
        runtime: LocalHostRuntime,
        store: LocalLibraryStore,
        validator: LocalPackageValidator,
    ) -> None:
        self.runtime = runtime
        self.store = store
        self.validator = validator

    def persist(self, package_path: Path) -> None:
        self.runtime.require_capability(MANAGE_LIBRARIES)
        libraries = self.validator.validated
        if not libraries:
            raise PackageError(f"{Path(package_path).name} has not been validated")
        for folder, manifest in libraries.items():
            existing = self.store.find(
                manifest.machine_name, manifest.major_version, manifest.minor_version
            )
            if existing is not None and existing.patch_version >= manifest.patch_version:
                library_id = existing.id
                self.runtime.add_message("info", f"{manifest.key} is already up to date")
            else:
                library_id = self.store.save_library(manifest, folder)
                self.runtime.add_message(
                    "info", f"Installed {manifest.key}.{manifest.patch_version}"
                )
            self.store.libraries_json_data.setdefault(manifest.key, {})["libraryId"] = library_id
        self.validator.validated = {}


class LocalHost:
    """Bundle of local capabilities sharing one root directory."""

    def __init__(
        self,
        root: Path | str,
        *,
        capabilities: Iterable[str] = (),
        core_api: CoreApiVersion = DEFAULT_CORE_API,
    ) -> None:
        self.root = Path(root).expanduser()
        self.root.mkdir(parents=True, exist_ok=True)
        self.runtime = LocalHostRuntime(self.root, capabilities=capabilities)
        self.registry = LocalLibraryStore(self.root, core_api=core_api)
        self.validator = LocalPackageValidator(self.runtime, self.registry)
        self.storage = LocalPackageStore(self.runtime, self.registry, self.validator)


__all__ = [
    "DEFAULT_CORE_API",
    "LibraryRecord",
    "LocalHost",
    "LocalHostRuntime",
    "LocalLibraryStore",
    "LocalPackageStore",
    "LocalPackageValidator",
]
