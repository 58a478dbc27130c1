from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from h5phub.config.runtime_paths import config_dir, data_dir, logs_dir

LOGGER = logging.getLogger(__name__)

DEFAULT_ENDPOINT_URL_BASE = "hub-api.h5p.org/v1"
DEFAULT_UPDATE_SCHEDULE = "never"
VALID_SCHEDULES: tuple[str, ...] = ("never", "daily", "weekly")
SETTINGS_FILENAME = "h5phub.json"
PERSISTED_FIELDS: tuple[str, ...] = ("endpoint_url_base", "update_schedule")


class HubSettings(BaseSettings):
    """Operator settings. Values from the settings file win over ``H5PHUB_*`` env vars."""

    model_config = SettingsConfigDict(env_prefix="H5PHUB_", extra="ignore")

    endpoint_url_base: str = DEFAULT_ENDPOINT_URL_BASE
    update_schedule: str = DEFAULT_UPDATE_SCHEDULE
    log_level: str = "INFO"
    state_dir: Path = Field(default_factory=lambda: data_dir("host"))
    log_dir: Path = Field(default_factory=logs_dir)

    @field_validator("endpoint_url_base", mode="before")
    @classmethod
    def _sanitize_endpoint(cls, value: Any) -> str:
        text = str(value or "").strip()
        if not text:
            return DEFAULT_ENDPOINT_URL_BASE
        return text.rstrip("/")

    @field_validator("update_schedule", mode="before")
    @classmethod
    def _sanitize_schedule(cls, value: Any) -> str:
        text = str(value or "").strip().lower()
        return text if text in VALID_SCHEDULES else DEFAULT_UPDATE_SCHEDULE

    @field_validator("state_dir", "log_dir", mode="before")
    @classmethod
    def _resolve_paths(cls, value: Any) -> Path:
        return Path(value).expanduser()

    @property
    def lock_path(self) -> Path:
        return self.state_dir / "sync.lock"

    @property
    def schedule_state_path(self) -> Path:
        return self.state_dir / "schedule.json"


@dataclass(frozen=True)
class SettingsChange:
    old: HubSettings
    new: HubSettings

    @property
    def endpoint_changed(self) -> bool:
        return self.old.endpoint_url_base != self.new.endpoint_url_base

    @property
    def schedule_changed(self) -> bool:
        return self.old.update_schedule != self.new.update_schedule


def default_settings_path() -> Path:
    return config_dir(SETTINGS_FILENAME)


def _read_json(path: Path) -> Dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except json.JSONDecodeError:
        LOGGER.warning("Ignoring unreadable settings file %s", path)
        return {}
    return data if isinstance(data, dict) else {}


def load_settings(path: Optional[Path] = None) -> HubSettings:
    payload = _read_json(path or default_settings_path())
    overrides = {key: payload[key] for key in PERSISTED_FIELDS if key in payload}
    return HubSettings(**overrides)


def save_settings(settings: HubSettings, path: Optional[Path] = None) -> Path:
    target = path or default_settings_path()
    payload = _read_json(target)
    payload.update(settings.model_dump(include=set(PERSISTED_FIELDS)))
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
    return target


def update_settings(
    path: Optional[Path] = None,
    *,
    endpoint_url_base: Optional[str] = None,
    update_schedule: Optional[str] = None,
) -> SettingsChange:
    """Persist new option values and report what changed."""
    old = load_settings(path)
    patch: Dict[str, Any] = {}
    if endpoint_url_base is not None:
        patch["endpoint_url_base"] = endpoint_url_base
    if update_schedule is not None:
        patch["update_schedule"] = update_schedule
    new = HubSettings(**{**old.model_dump(include=set(PERSISTED_FIELDS)), **patch})
    save_settings(new, path)
    return SettingsChange(old=old, new=new)


__all__ = [
    "DEFAULT_ENDPOINT_URL_BASE",
    "DEFAULT_UPDATE_SCHEDULE",
    "HubSettings",
    "SettingsChange",
    "VALID_SCHEDULES",
    "default_settings_path",
    "load_settings",
    "save_settings",
    "update_settings",
]
