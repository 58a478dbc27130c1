from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union


class SkipReason(str, Enum):
    RESTRICTED = "restricted"
    CORE_API_INCOMPATIBLE = "core_api_incompatible"
    NOT_INSTALLED = "not_installed"
    UP_TO_DATE = "up_to_date"


@dataclass(frozen=True)
class Skipped:
    machine_name: str
    reason: SkipReason

    def to_payload(self) -> dict[str, Any]:
        return {"id": self.machine_name, "status": "skipped", "reason": self.reason.value}


@dataclass(frozen=True)
class InstallFailed:
    machine_name: str
    message: str
    stage: str = "install"

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.machine_name,
            "status": "failed",
            "stage": self.stage,
            "message": self.message,
        }


@dataclass(frozen=True)
class Installed:
    machine_name: str
    library_id: int
    version: str = ""

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.machine_name,
            "status": "installed",
            "library_id": self.library_id,
            "version": self.version,
        }


SyncResult = Union[Skipped, InstallFailed, Installed]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SyncReport:
    """Outcome of one synchronization pass. Logged, never persisted."""

    pass_id: str
    started_at: datetime = field(default_factory=_utcnow)
    finished_at: Optional[datetime] = None
    results: list[SyncResult] = field(default_factory=list)
    aborted: Optional[str] = None
    cancelled: bool = False

    @property
    def installed(self) -> list[Installed]:
        return [r for r in self.results if isinstance(r, Installed)]

    @property
    def failed(self) -> list[InstallFailed]:
        return [r for r in self.results if isinstance(r, InstallFailed)]

    @property
    def skipped(self) -> list[Skipped]:
        return [r for r in self.results if isinstance(r, Skipped)]

    @property
    def ok(self) -> bool:
        return self.aborted is None

    def summary(self) -> str:
        if self.aborted:
            return f"pass aborted: {self.aborted}"
        text = (
            f"{len(self.results)} checked, {len(self.installed)} installed, "
            f"{len(self.failed)} failed, {len(self.skipped)} skipped"
        )
        if self.cancelled:
            text += " (cancelled)"
        return text

    def to_payload(self) -> dict[str, Any]:
        return {
            "pass_id": self.pass_id,
            "ok": self.ok,
            "aborted": self.aborted,
            "cancelled": self.cancelled,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "summary": self.summary(),
            "results": [result.to_payload() for result in self.results],
        }


__all__ = [
    "InstallFailed",
    "Installed",
    "SkipReason",
    "Skipped",
    "SyncReport",
    "SyncResult",
]
