"""
Runtime paths helpers for h5phub.

Mutable directories (data, config, logs) default to OS-appropriate locations
from ``platformdirs``. ``H5PHUB_RUNTIME_ROOT`` relocates all of them at once;
the per-directory variables win over both.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from platformdirs import PlatformDirs

APP_NAME = "h5phub"
APP_AUTHOR = "h5phub"


def _expand(path: Optional[str]) -> Optional[Path]:
    if not path:
        return None
    return Path(path).expanduser().resolve()


@dataclass(frozen=True)
class _RuntimeRoots:
    data: Path
    config: Path
    logs: Path


@lru_cache(maxsize=1)
def _runtime_roots() -> _RuntimeRoots:
    override_root = _expand(os.getenv("H5PHUB_RUNTIME_ROOT"))
    if override_root:
        data = override_root / "data"
        config = override_root / "config"
        logs = override_root / "logs"
    else:
        dirs = PlatformDirs(appname=APP_NAME, appauthor=APP_AUTHOR, roaming=False)
        data = Path(dirs.user_data_path)
        config = Path(dirs.user_config_path)
        logs = Path(dirs.user_log_path)

    data = _expand(os.getenv("H5PHUB_DATA_DIR")) or data
    config = _expand(os.getenv("H5PHUB_CONFIG_DIR")) or config
    logs = _expand(os.getenv("H5PHUB_LOG_DIR")) or logs

    for root in (data, config, logs):
        if root.exists() and not root.is_dir():
            raise RuntimeError(
                f"Runtime path {root} exists but is not a directory. "
                "Remove or relocate the conflicting file and retry."
            )
    return _RuntimeRoots(data=data, config=config, logs=logs)


def data_dir(*parts: str) -> Path:
    return _runtime_roots().data.joinpath(*parts)


def config_dir(*parts: str) -> Path:
    return _runtime_roots().config.joinpath(*parts)


def logs_dir(*parts: str) -> Path:
    return _runtime_roots().logs.joinpath(*parts)


def reset_cache() -> None:
    """Forget resolved roots, e.g. after changing the environment in tests."""
    _runtime_roots.cache_clear()


__all__ = ["config_dir", "data_dir", "logs_dir", "reset_cache"]
