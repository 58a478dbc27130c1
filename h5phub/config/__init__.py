from __future__ import annotations

from .runtime_paths import config_dir, data_dir, logs_dir
from .settings import (
    DEFAULT_ENDPOINT_URL_BASE,
    DEFAULT_UPDATE_SCHEDULE,
    HubSettings,
    SettingsChange,
    load_settings,
    save_settings,
    update_settings,
)

__all__ = [
    "DEFAULT_ENDPOINT_URL_BASE",
    "DEFAULT_UPDATE_SCHEDULE",
    "HubSettings",
    "SettingsChange",
    "config_dir",
    "data_dir",
    "load_settings",
    "logs_dir",
    "save_settings",
    "update_settings",
]
