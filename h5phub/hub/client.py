"""
HTTP client for an H5P content type hub.

The hub exposes two endpoints below a configurable base URL:

* ``POST /content-types`` returns the catalog of available content types.
* ``GET /content-types/<machineName>`` returns the library archive.

The base URL is resolved on every call so that operators can switch hubs
between passes without rebuilding the client.
"""

from __future__ import annotations

import json
import logging
import secrets
from typing import Any, Callable, Optional, Union

import httpx
from pydantic import ValidationError

from h5phub.hub.models import Catalog, CatalogEntry

LOGGER = logging.getLogger(__name__)

HTTP_TIMEOUT = 30.0
PROTOCOL = "https"
CONTENT_TYPES_ENDPOINT = "content-types"
UUID_TEMPLATE = "xxxxxxxx-xxxx-4xxx-yxxx-xxxxxxxxxxxx"


class HubError(RuntimeError):
    """Base class for failures talking to the hub."""


class HubTransportError(HubError):
    """Network failure or timeout."""


class HubProtocolError(HubError):
    """The hub answered, but not with something usable."""


class HubStatusError(HubProtocolError):
    def __init__(self, status_code: int, url: str) -> None:
        super().__init__(f"hub returned HTTP {status_code} for {url}")
        self.status_code = status_code
        self.url = url


class HubDecodeError(HubProtocolError):
    """The catalog response body could not be decoded."""


def create_site_uuid() -> str:
    """Return a random v4-shaped identifier.

    The hub expects a site uuid but never checks that it was registered.
    """

    def _digit(char: str) -> str:
        value = secrets.randbelow(16)
        if char == "y":
            value = (value & 0x3) | 0x8
        return format(value, "x")

    return "".join(_digit(c) if c in "xy" else c for c in UUID_TEMPLATE)


BaseUrlProvider = Union[str, Callable[[], str]]


class HubClient:
    """Fetch the catalog and library archives from a content type hub."""

    def __init__(
        self,
        base_url: BaseUrlProvider,
        *,
        client: Optional[httpx.Client] = None,
        timeout: float = HTTP_TIMEOUT,
    ) -> None:
        self._base_url = base_url
        self.client = client
        self.timeout = timeout

    # ------------------------------------------------------------------ Helpers
    def endpoint_url_base(self) -> str:
        base = self._base_url() if callable(self._base_url) else self._base_url
        return str(base).strip().rstrip("/")

    def build_endpoint(self, machine_name: str | None = None) -> str:
        url = f"{PROTOCOL}://{self.endpoint_url_base()}/{CONTENT_TYPES_ENDPOINT}"
        if machine_name:
            url = f"{url}/{machine_name}"
        return url

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            if self.client is not None:
                response = self.client.request(
                    method, url, timeout=self.timeout, **kwargs
                )
            else:
                with httpx.Client(timeout=self.timeout) as session:
                    response = session.request(method, url, **kwargs)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise HubTransportError(f"{method} {url} failed: {exc}") from exc
        if response.status_code != 200:
            raise HubStatusError(response.status_code, url)
        return response

    # ------------------------------------------------------------------ Public
    def fetch_catalog(self, site_uuid: str | None = None) -> Catalog:
        url = self.build_endpoint()
        uuid = site_uuid or create_site_uuid()
        LOGGER.debug("Fetching content type catalog from %s", url)
        response = self._request("POST", url, data={"uuid": uuid})
        return parse_catalog(response.content)

    def fetch_archive(self, machine_name: str) -> bytes:
        url = self.build_endpoint(machine_name)
        LOGGER.debug("Fetching archive for %s from %s", machine_name, url)
        response = self._request("GET", url)
        return response.content


def parse_catalog(body: bytes | str) -> Catalog:
    """Decode a ``{"contentTypes": [...]}`` payload.

    A body that is not JSON or lacks the ``contentTypes`` array raises
    :class:`HubDecodeError`; individual malformed entries are skipped.
    """
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise HubDecodeError(f"catalog is not valid JSON: {exc}") from exc
    items = payload.get("contentTypes") if isinstance(payload, dict) else None
    if not isinstance(items, list):
        raise HubDecodeError("catalog is missing the 'contentTypes' array")

    entries: list[CatalogEntry] = []
    for raw in items:
        try:
            entries.append(CatalogEntry.model_validate(raw))
        except ValidationError as exc:
            ident = raw.get("id") if isinstance(raw, dict) else None
            LOGGER.warning(
                "Skipping malformed catalog entry %s: %s",
                ident or "<unknown>",
                exc.errors(include_url=False),
            )
    return Catalog(content_types=tuple(entries))


__all__ = [
    "HTTP_TIMEOUT",
    "HubClient",
    "HubDecodeError",
    "HubError",
    "HubProtocolError",
    "HubStatusError",
    "HubTransportError",
    "create_site_uuid",
    "parse_catalog",
]
