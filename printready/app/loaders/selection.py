"""
Asset loader selection.

Selection policy, in order:

    1. explicit loader instance from the caller
    2. explicit asset path from the caller (network loader)
    3. native runtime: filesystem loader rooted at the configured asset dir
    4. browser runtime: network loader from the configured asset path,
       otherwise a configuration error (assets are never guessed)
"""

from __future__ import annotations

import logging

from printready.app.config import Settings
from printready.app.errors import ConfigurationError
from printready.app.loaders.base import AssetLoader
from printready.app.loaders.filesystem import FilesystemAssetLoader
from printready.app.loaders.network import NetworkAssetLoader
from printready.app.loaders.runtime import (
    RuntimeEnvironment,
    browser_origin,
    detect_runtime,
)
from printready.app.schemas.conversion import ConversionOptions

logger = logging.getLogger(__name__)


def resolve_asset_loader(
    options: ConversionOptions,
    settings: Settings,
) -> AssetLoader:
    if options.asset_loader is not None:
        return options.asset_loader

    if options.asset_path:
        return NetworkAssetLoader(
            options.asset_path,
            origin=browser_origin(),
            timeout_seconds=settings.asset_fetch_timeout_seconds,
        )

    runtime = detect_runtime()

    if runtime is RuntimeEnvironment.NATIVE:
        return FilesystemAssetLoader(settings.asset_dir)

    if settings.asset_path:
        logger.debug("Using configured asset path %s", settings.asset_path)
        return NetworkAssetLoader(
            settings.asset_path,
            origin=browser_origin(),
            timeout_seconds=settings.asset_fetch_timeout_seconds,
        )

    raise ConfigurationError(
        "Could not locate interpreter assets in a browser runtime. "
        "Serve gs.wasm and the *.icc presets from a static directory and "
        "pass asset_path='/assets/' (or set PRINTREADY_ASSET_PATH)."
    )
