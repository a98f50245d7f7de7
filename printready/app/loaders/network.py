"""
Network asset loader.

Resolves the interpreter payload and ICC presets against a base URL, e.g.
a static asset directory served next to a Pyodide application. The base
path is normalized to an absolute URL with a trailing slash.
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urljoin

import httpx

from printready.app.errors import AssetResolutionError, ConfigurationError
from printready.app.interpreter.module import ModuleFactory
from printready.app.loaders.base import INTERPRETER_PAYLOAD
from printready.app.loaders.filesystem import load_module_factory

logger = logging.getLogger(__name__)


def normalize_asset_path(path: str, origin: Optional[str] = None) -> str:
    """
    Normalize an asset base path to an absolute URL ending in ``/``.

    Relative paths (e.g. ``/assets/wasm``) are resolved against ``origin``.
    Without an origin a relative path cannot be fetched and is rejected.
    """
    normalized = path if path.endswith("/") else path + "/"

    if normalized.startswith(("http://", "https://")):
        return normalized

    if not origin:
        raise ConfigurationError(
            f"Asset path '{path}' is not an absolute http(s) URL and no page "
            "origin is available to resolve it. Pass a full URL such as "
            "'https://example.com/assets/'."
        )

    return urljoin(origin.rstrip("/") + "/", normalized.lstrip("/"))


class NetworkAssetLoader:
    """
    Loads assets over HTTP(S).

    An ``httpx.AsyncClient`` may be injected; otherwise a short-lived client
    is created per fetch.
    """

    def __init__(
        self,
        base_url: str,
        *,
        origin: Optional[str] = None,
        timeout_seconds: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._base_url = normalize_asset_path(base_url, origin)
        self._timeout = httpx.Timeout(timeout_seconds)
        self._client = http_client

    @property
    def base_url(self) -> str:
        return self._base_url

    async def load_interpreter_module(self) -> ModuleFactory:
        # The runtime glue ships with this package; only the payload is remote.
        return load_module_factory()

    def get_binary_payload_path(self) -> str:
        return urljoin(self._base_url, INTERPRETER_PAYLOAD)

    async def load_icc_profile(self, name: str) -> bytes:
        url = urljoin(self._base_url, name)

        try:
            response = await self._get(url)
        except httpx.HTTPError as exc:
            raise AssetResolutionError(
                f"Failed to load ICC profile {name} from {url}: {exc}"
            ) from exc

        if not response.is_success:
            raise AssetResolutionError(
                f"Failed to load ICC profile {name}: "
                f"HTTP {response.status_code} {response.reason_phrase}"
            )

        logger.debug("Fetched ICC profile %s (%d bytes)", name, len(response.content))
        return response.content

    async def _get(self, url: str) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(url, timeout=self._timeout)

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.get(url)
