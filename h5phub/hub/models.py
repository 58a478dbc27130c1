from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt


class LibraryVersion(BaseModel):
    """Three-part library version as published by the hub."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    major: NonNegativeInt
    minor: NonNegativeInt
    patch: NonNegativeInt

    def as_tuple(self) -> tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


class CoreApiVersion(BaseModel):
    """Major/minor pair describing the host framework core API."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    major: NonNegativeInt
    minor: NonNegativeInt

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}"


class CatalogEntry(BaseModel):
    """A single content type offered by the hub."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    id: str = Field(min_length=1)
    version: LibraryVersion
    core_api_version_needed: Optional[CoreApiVersion] = Field(
        default=None, alias="coreApiVersionNeeded"
    )
    example: Optional[str] = None
    tutorial: Optional[str] = None

    @property
    def machine_name(self) -> str:
        return self.id

    @property
    def versioned_name(self) -> str:
        return library_key(self.id, self.version.major, self.version.minor)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Catalog(BaseModel):
    model_config = ConfigDict(frozen=True)

    content_types: tuple[CatalogEntry, ...] = ()

    def __len__(self) -> int:
        return len(self.content_types)

    def find(self, machine_name: str) -> CatalogEntry | None:
        for entry in self.content_types:
            if entry.id == machine_name:
                return entry
        return None


@dataclass(frozen=True)
class InstalledLibrary:
    library_id: int
    machine_name: str
    version: LibraryVersion
    restricted: bool = False
    tutorial_url: str | None = None

    @property
    def versioned_name(self) -> str:
        return library_key(self.machine_name, self.version.major, self.version.minor)

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.library_id,
            "machine_name": self.machine_name,
            "version": str(self.version),
            "restricted": self.restricted,
            "tutorial_url": self.tutorial_url,
        }


def library_key(machine_name: str, major: int, minor: int) -> str:
    """Render the ``{machine_name}-{major}.{minor}`` registry key."""
    return f"{machine_name}-{major}.{minor}"


__all__ = [
    "Catalog",
    "CatalogEntry",
    "CoreApiVersion",
    "InstalledLibrary",
    "LibraryVersion",
    "library_key",
]
