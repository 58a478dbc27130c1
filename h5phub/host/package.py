"""
Helpers for reading H5P library archives.

An archive downloaded from the hub is a zip file whose top-level folders are
libraries, each carrying a ``library.json`` that names the machine name and
version. Extraction refuses members that would escape the target folder.
"""

from __future__ import annotations

import json
import shutil
from pathlib import Path
from typing import Any, Optional
from zipfile import BadZipFile, ZipFile

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, ValidationError

from h5phub.hub.models import LibraryVersion, library_key

LIBRARY_FILE = "library.json"


class PackageError(ValueError):
    """Raised when an archive cannot be read as an H5P library package."""


class CoreApiRequirement(BaseModel):
    model_config = ConfigDict(extra="ignore")

    major_version: NonNegativeInt = Field(alias="majorVersion")
    minor_version: NonNegativeInt = Field(alias="minorVersion")


class LibraryManifest(BaseModel):
    """The subset of ``library.json`` the local host cares about."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    title: str = ""
    machine_name: str = Field(alias="machineName", pattern=r"^[A-Za-z0-9_.\-]{1,255}$")
    major_version: NonNegativeInt = Field(alias="majorVersion")
    minor_version: NonNegativeInt = Field(alias="minorVersion")
    patch_version: NonNegativeInt = Field(alias="patchVersion")
    runnable: int = 0
    core_api: Optional[CoreApiRequirement] = Field(default=None, alias="coreApi")

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


def extract_archive(package_path: Path, destination: Path) -> None:
    try:
        with ZipFile(package_path, "r") as archive:
            for member in archive.infolist():
                name = member.filename
                if not name or name.endswith("/"):
                    continue
                rel = Path(name)
                if rel.is_absolute() or ".." in rel.parts:
                    raise PackageError(f"package member escapes extraction folder: {name}")
                target = destination / rel
                target.parent.mkdir(parents=True, exist_ok=True)
                with archive.open(member, "r") as src, target.open("wb") as dst:
                    shutil.copyfileobj(src, dst)
    except BadZipFile as exc:
        raise PackageError(f"{package_path.name} is not a valid H5P package: {exc}") from exc


def read_library_manifest(folder: Path) -> LibraryManifest:
    path = folder / LIBRARY_FILE
    try:
        payload: Any = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise PackageError(f"could not read {folder.name}/{LIBRARY_FILE}: {exc}") from exc
    try:
        manifest = LibraryManifest.model_validate(payload)
    except ValidationError as exc:
        raise PackageError(f"invalid {folder.name}/{LIBRARY_FILE}: {exc}") from exc
    expected = manifest.key
    if folder.name not in (expected, manifest.machine_name):
        raise PackageError(
            f"library folder {folder.name} does not match {LIBRARY_FILE} ({expected})"
        )
    return manifest


def discover_libraries(folder: Path) -> dict[Path, LibraryManifest]:
    """Map each top-level library folder to its manifest."""
    found: dict[Path, LibraryManifest] = {}
    for child in sorted(folder.iterdir()):
        if not child.is_dir() or child.name.startswith("."):
            continue
        if not (child / LIBRARY_FILE).exists():
            continue
        found[child] = read_library_manifest(child)
    if not found:
        raise PackageError("package does not contain any libraries")
    return found


__all__ = [
    "LIBRARY_FILE",
    "LibraryManifest",
    "PackageError",
    "discover_libraries",
    "extract_archive",
    "read_library_manifest",
]
