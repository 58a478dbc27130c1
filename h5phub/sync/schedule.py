from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional, TypeVar

from croniter import croniter

LOGGER = logging.getLogger(__name__)

SCHEDULES: dict[str, Optional[str]] = {
    "never": None,
    "daily": "@daily",
    "weekly": "@weekly",
}

T = TypeVar("T")


class SyncSchedule:
    """Decide when the "update libraries" tick should fire.

    The last run is stored as JSON so separate processes (cron, systemd
    timers) share the same cadence.
    """

    def __init__(self, update_schedule: str, state_path: Path | str) -> None:
        if update_schedule not in SCHEDULES:
            raise ValueError(f"unknown update schedule '{update_schedule}'")
        self.update_schedule = update_schedule
        self.state_path = Path(state_path).expanduser()

    @property
    def enabled(self) -> bool:
        return SCHEDULES[self.update_schedule] is not None

    def last_run(self) -> Optional[datetime]:
        if not self.state_path.exists():
            return None
        try:
            data = json.loads(self.state_path.read_text(encoding="utf-8"))
            return datetime.fromisoformat(data["last_run"])
        except (OSError, ValueError, KeyError, TypeError):
            LOGGER.debug("Ignoring unreadable schedule state %s", self.state_path, exc_info=True)
            return None

    def next_run(self, after: Optional[datetime] = None) -> Optional[datetime]:
        expression = SCHEDULES[self.update_schedule]
        if expression is None:
            return None
        base = after or self.last_run() or datetime.now(timezone.utc)
        return croniter(expression, base).get_next(datetime)

    def is_due(self, now: Optional[datetime] = None) -> bool:
        if not self.enabled:
            return False
        last = self.last_run()
        if last is None:
            return True
        now = now or datetime.now(timezone.utc)
        upcoming = self.next_run(after=last)
        return upcoming is not None and now >= upcoming

    def mark_ran(self, at: Optional[datetime] = None) -> None:
        moment = at or datetime.now(timezone.utc)
        self.state_path.parent.mkdir(parents=True, exist_ok=True)
        self.state_path.write_text(
            json.dumps({"last_run": moment.isoformat(), "schedule": self.update_schedule}),
            encoding="utf-8",
        )

    def tick(self, run: Callable[[], T], now: Optional[datetime] = None) -> Optional[T]:
        """Call ``run`` when due and record the run; otherwise return ``None``."""
        if not self.is_due(now):
            return None
        result = run()
        self.mark_ran(now)
        return result


__all__ = ["SCHEDULES", "SyncSchedule"]
