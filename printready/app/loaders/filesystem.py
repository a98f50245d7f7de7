"""
Filesystem asset loader.

Resolves the interpreter payload and the bundled ICC presets from a local
directory, by default the ``assets`` directory installed beside the
application code. No configuration is needed in native runtimes.
"""

from __future__ import annotations

import asyncio
import importlib
import logging
from pathlib import Path

from printready.app.config import DEFAULT_ASSET_DIR
from printready.app.errors import AssetResolutionError
from printready.app.interpreter.module import ModuleFactory
from printready.app.loaders.base import (
    INTERPRETER_FACTORY_MODULE,
    INTERPRETER_PAYLOAD,
)

logger = logging.getLogger(__name__)


def load_module_factory() -> ModuleFactory:
    """
    Import the interpreter runtime module and return its factory.

    The import is deferred so the WASM runtime is only loaded once a
    conversion actually needs it.
    """
    try:
        runtime = importlib.import_module(INTERPRETER_FACTORY_MODULE)
    except ImportError as exc:
        raise AssetResolutionError(
            f"Failed to import interpreter module {INTERPRETER_FACTORY_MODULE}: {exc}"
        ) from exc
    return runtime.create_ghostscript_module


class FilesystemAssetLoader:
    """Loads assets from files relative to a base directory."""

    def __init__(self, asset_dir: Path | str | None = None) -> None:
        self._asset_dir = Path(asset_dir or DEFAULT_ASSET_DIR).resolve()

    @property
    def asset_dir(self) -> Path:
        return self._asset_dir

    async def load_interpreter_module(self) -> ModuleFactory:
        return load_module_factory()

    def get_binary_payload_path(self) -> str:
        return str(self._asset_dir / INTERPRETER_PAYLOAD)

    async def load_icc_profile(self, name: str) -> bytes:
        profile_path = self._resolve(name)

        if not profile_path.is_file():
            raise AssetResolutionError(
                f"ICC profile {name} not found: {profile_path}"
            )

        try:
            data = await asyncio.to_thread(profile_path.read_bytes)
        except OSError as exc:
            raise AssetResolutionError(
                f"Failed to read ICC profile {name}: {exc}"
            ) from exc

        logger.debug("Loaded ICC profile %s (%d bytes)", name, len(data))
        return data

    def _resolve(self, name: str) -> Path:
        # Profile names are file names; they must not leave the asset directory.
        candidate = (self._asset_dir / name).resolve()
        try:
            candidate.relative_to(self._asset_dir)
        except ValueError:
            raise AssetResolutionError(
                f"ICC profile path escapes asset directory: {name}"
            )
        return candidate
