from __future__ import annotations

import io
import json
import sys
import zipfile
from pathlib import Path
from typing import Callable, Dict, Optional

import httpx
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from h5phub.config import runtime_paths  # noqa: E402
from h5phub.host.local import LocalHost  # noqa: E402
from h5phub.hub.client import HubClient  # noqa: E402

HUB_BASE = "hub.example.test/v1"


@pytest.fixture(autouse=True)
def _isolated_runtime(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    for name in (
        "H5PHUB_ENDPOINT_URL_BASE",
        "H5PHUB_UPDATE_SCHEDULE",
        "H5PHUB_LOG_LEVEL",
        "H5PHUB_STATE_DIR",
        "H5PHUB_LOG_DIR",
        "H5PHUB_DATA_DIR",
        "H5PHUB_CONFIG_DIR",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("H5PHUB_RUNTIME_ROOT", str(tmp_path / "runtime"))
    runtime_paths.reset_cache()
    yield
    runtime_paths.reset_cache()


def build_library_archive(
    machine_name: str,
    major: int,
    minor: int,
    patch: int,
    *,
    core_api: Optional[Dict[str, int]] = None,
    extra_files: Optional[Dict[str, str]] = None,
) -> bytes:
    """Return zip bytes laid out like a hub library package."""
    folder = f"{machine_name}-{major}.{minor}"
    library = {
        "title": machine_name,
        "machineName": machine_name,
        "majorVersion": major,
        "minorVersion": minor,
        "patchVersion": patch,
        "runnable": 1,
    }
    if core_api:
        library["coreApi"] = core_api
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("h5p.json", json.dumps({"title": machine_name}))
        archive.writestr(f"{folder}/library.json", json.dumps(library))
        archive.writestr(f"{folder}/scripts/main.js", "// main\n")
        for name, content in (extra_files or {}).items():
            archive.writestr(name, content)
    return buffer.getvalue()


@pytest.fixture()
def library_archive() -> Callable[..., bytes]:
    return build_library_archive


@pytest.fixture()
def local_host(tmp_path: Path) -> LocalHost:
    return LocalHost(tmp_path / "host")


def install_locally(host: LocalHost, machine_name: str, major: int, minor: int, patch: int) -> int:
    """Seed ``host`` with an installed library, bypassing the sync engine."""
    package = host.runtime.uploaded_package_path()
    package.parent.mkdir(parents=True, exist_ok=True)
    package.write_bytes(build_library_archive(machine_name, major, minor, patch))
    host.runtime.grant_capability("manage_h5p_libraries")
    assert host.validator.is_valid(package)
    host.storage.persist(package)
    host.runtime.revoke_capability("manage_h5p_libraries")
    package.unlink()
    library_id = host.registry.get_library_id(machine_name)
    assert library_id is not None
    # Start every test with an empty in-memory registry, as a fresh request would.
    host.registry.libraries_json_data.clear()
    for kind in ("error", "info"):
        host.runtime.drain_messages(kind)
    return library_id


@pytest.fixture()
def seed_library() -> Callable[..., int]:
    return install_locally


class FakeHub:
    """Minimal hub served through ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.content_types: list[dict] = []
        self.archives: Dict[str, bytes] = {}
        self.catalog_status = 200
        self.catalog_body: Optional[bytes] = None
        self.requests: list[httpx.Request] = []

    def offer(self, machine_name: str, major: int, minor: int, patch: int, **extra) -> dict:
        entry = {
            "id": machine_name,
            "version": {"major": major, "minor": minor, "patch": patch},
            **extra,
        }
        self.content_types.append(entry)
        self.archives[machine_name] = build_library_archive(machine_name, major, minor, patch)
        return entry

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if request.method == "POST" and path.endswith("/content-types"):
            if self.catalog_status != 200:
                return httpx.Response(self.catalog_status, text="hub error")
            if self.catalog_body is not None:
                return httpx.Response(200, content=self.catalog_body)
            return httpx.Response(200, json={"contentTypes": self.content_types})
        if request.method == "GET" and "/content-types/" in path:
            machine_name = path.rsplit("/", 1)[-1]
            archive = self.archives.get(machine_name)
            if archive is None:
                return httpx.Response(404, text="not found")
            return httpx.Response(200, content=archive)
        raise AssertionError(f"Unexpected request {request.method} {request.url}")

    def client(self, base: str = HUB_BASE) -> HubClient:
        transport = httpx.MockTransport(self.handler)
        return HubClient(base, client=httpx.Client(transport=transport))


@pytest.fixture()
def fake_hub() -> FakeHub:
    return FakeHub()
