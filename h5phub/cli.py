from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

import typer

from h5phub.config.settings import HubSettings, load_settings, update_settings
from h5phub.host.local import LocalHost
from h5phub.hub.client import HubClient, HubError
from h5phub.logging_config import init_logging
from h5phub.sync.installer import PackageInstaller
from h5phub.sync.lock import PassLock
from h5phub.sync.orchestrator import SyncOrchestrator
from h5phub.sync.schedule import SyncSchedule

app = typer.Typer(
    add_completion=False,
    help="Keep installed H5P content types in sync with a content type hub.",
)
logger = logging.getLogger(__name__)

ConfigOption = typer.Option(None, "--config", help="Settings file (defaults to the user config dir).")
RootOption = typer.Option(None, "--root", help="Local H5P host directory.")


def make_hub_client(config: Optional[Path]) -> HubClient:
    # Settings are re-read per request so a changed endpoint applies immediately.
    return HubClient(lambda: load_settings(config).endpoint_url_base)


def _bootstrap(config: Optional[Path]) -> HubSettings:
    settings = load_settings(config)
    init_logging(settings.log_dir, level=settings.log_level)
    return settings


def build_orchestrator(
    settings: HubSettings, host: LocalHost, config: Optional[Path]
) -> SyncOrchestrator:
    source = make_hub_client(config)
    installer = PackageInstaller(
        source=source,
        validator=host.validator,
        store=host.storage,
        registry=host.registry,
        runtime=host.runtime,
    )
    return SyncOrchestrator(
        source=source,
        registry=host.registry,
        installer=installer,
        runtime=host.runtime,
        lock=PassLock(settings.lock_path),
    )


def _echo(payload: Any) -> None:
    print(json.dumps(payload, indent=2))


@app.command()
def sync(config: Optional[Path] = ConfigOption, root: Optional[Path] = RootOption) -> None:
    """Run one synchronization pass now."""
    settings = _bootstrap(config)
    host = LocalHost(root or settings.state_dir)
    logger.info("Syncing %s against %s", host.root, settings.endpoint_url_base)
    report = build_orchestrator(settings, host, config).run_sync_pass()
    _echo(report.to_payload())
    raise SystemExit(0 if report.ok else 1)


@app.command()
def tick(config: Optional[Path] = ConfigOption, root: Optional[Path] = RootOption) -> None:
    """Run a pass only if the configured schedule says one is due."""
    settings = _bootstrap(config)
    host = LocalHost(root or settings.state_dir)
    schedule = SyncSchedule(settings.update_schedule, settings.schedule_state_path)
    report = schedule.tick(build_orchestrator(settings, host, config).run_sync_pass)
    if report is None:
        next_run = schedule.next_run()
        _echo(
            {
                "ok": True,
                "ran": False,
                "schedule": settings.update_schedule,
                "next_run": next_run.isoformat() if next_run else None,
            }
        )
        return
    _echo({"ran": True, **report.to_payload()})
    raise SystemExit(0 if report.ok else 1)


@app.command()
def catalog(config: Optional[Path] = ConfigOption) -> None:
    """List the content types offered by the configured hub."""
    _bootstrap(config)
    try:
        result = make_hub_client(config).fetch_catalog()
    except HubError as exc:
        logger.error("Error fetching content types: %s", exc)
        _echo({"ok": False, "error": str(exc)})
        raise SystemExit(1)
    _echo({"ok": True, "contentTypes": [entry.to_payload() for entry in result.content_types]})


@app.command()
def configure(
    endpoint: Optional[str] = typer.Option(None, help="Hub base URL without protocol, e.g. hub-api.h5p.org/v1."),
    schedule: Optional[str] = typer.Option(None, help="Automatic update schedule: never, daily or weekly."),
    config: Optional[Path] = ConfigOption,
    root: Optional[Path] = RootOption,
) -> None:
    """Update settings; a new endpoint refreshes the local content type cache."""
    change = update_settings(config, endpoint_url_base=endpoint, update_schedule=schedule)
    settings = _bootstrap(config)
    refreshed = None
    if change.endpoint_changed:
        logger.info(
            "Hub endpoint changed from %s to %s",
            change.old.endpoint_url_base,
            change.new.endpoint_url_base,
        )
        host = LocalHost(root or settings.state_dir)
        refreshed = build_orchestrator(settings, host, config).refresh_hub_cache()
    _echo(
        {
            "ok": True,
            "endpoint_url_base": settings.endpoint_url_base,
            "update_schedule": settings.update_schedule,
            "cache_refreshed": refreshed,
        }
    )


@app.command()
def libraries(config: Optional[Path] = ConfigOption, root: Optional[Path] = RootOption) -> None:
    """List locally installed libraries."""
    settings = load_settings(config)
    host = LocalHost(root or settings.state_dir)
    _echo({"items": [lib.to_payload() for lib in host.registry.list_libraries()]})


@app.command()
def restrict(
    machine_name: str,
    major: int,
    minor: int,
    clear: bool = typer.Option(False, "--clear", help="Lift the restriction instead."),
    config: Optional[Path] = ConfigOption,
    root: Optional[Path] = RootOption,
) -> None:
    """Block (or unblock) automatic updates for one library version."""
    settings = load_settings(config)
    host = LocalHost(root or settings.state_dir)
    found = host.registry.set_restricted(machine_name, major, minor, not clear)
    _echo({"ok": found, "id": f"{machine_name}-{major}.{minor}", "restricted": not clear})
    raise SystemExit(0 if found else 1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
