"""
Ghostscript compiled to WebAssembly (WASI), executed with wasmtime.

The compiled ``wasmtime.Module`` is the expensive, shareable part and is
created once per process. Each ``call_main`` instantiates a fresh WASI
instance, because a WASI command can only run its ``_start`` once.

The interpreter's filesystem is a private sandbox directory pre-opened
into the guest as ``/``. Files written into it through ``fs`` are visible
to Ghostscript under the same absolute paths, and vice versa.

Ghostscript is AGPL-3.0 licensed; source is available at
https://github.com/ArtifexSoftware/ghostpdl.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import tempfile
import weakref
from pathlib import Path
from typing import Optional, Sequence

import httpx
from wasmtime import (
    Engine,
    ExitTrap,
    Linker,
    Module,
    Store,
    Trap,
    WasiConfig,
    WasmtimeError,
)

from printready.app.errors import AssetResolutionError, InterpreterExecutionError
from printready.app.interpreter.module import ModuleConfig
from printready.app.interpreter.sandbox_fs import SandboxFS
from printready.app.loaders.base import INTERPRETER_PAYLOAD

logger = logging.getLogger(__name__)


class GhostscriptModule:
    """A compiled Ghostscript WASI module plus its sandbox filesystem."""

    def __init__(
        self,
        engine: Engine,
        module: Module,
        *,
        version: Optional[str] = None,
    ) -> None:
        self._engine = engine
        self._module = module
        self._linker = Linker(engine)
        self._linker.define_wasi()

        base = Path(tempfile.mkdtemp(prefix="printready-gs-"))
        self._finalizer = weakref.finalize(self, shutil.rmtree, str(base), True)

        root = base / "root"
        root.mkdir()
        self._stdio_dir = base / "stdio"
        self._stdio_dir.mkdir()

        self.fs = SandboxFS(root)
        self.fs.mkdir("/tmp")
        self.version = version

    async def call_main(self, args: Sequence[str]) -> int:
        return await asyncio.to_thread(self._run, list(args))

    def _run(self, args: list[str]) -> int:
        stdout_path = self._stdio_dir / "stdout.log"
        stderr_path = self._stdio_dir / "stderr.log"

        wasi = WasiConfig()
        wasi.argv = ["gs", *args]
        wasi.preopen_dir(str(self.fs.root), "/")
        wasi.stdout_file = str(stdout_path)
        wasi.stderr_file = str(stderr_path)

        store = Store(self._engine)
        store.set_wasi(wasi)

        try:
            instance = self._linker.instantiate(store, self._module)
            start = instance.exports(store)["_start"]
            start(store)
            exit_code = 0
        # ExitTrap derives from WasmtimeError; it must be matched first.
        except ExitTrap as exc:
            exit_code = exc.code
        except (Trap, WasmtimeError) as exc:
            stderr = _read_log(stderr_path)
            logger.error("Ghostscript aborted: %s\n%s", exc, stderr)
            detail = f": {stderr}" if stderr else ""
            raise InterpreterExecutionError(
                f"Ghostscript aborted ({exc}){detail}",
                exit_code=None,
            ) from exc

        stdout = _read_log(stdout_path)
        stderr = _read_log(stderr_path)

        if stdout:
            logger.debug("Ghostscript stdout:\n%s", stdout)
        if exit_code != 0 and stderr:
            logger.warning("Ghostscript exited with %d:\n%s", exit_code, stderr)
        elif stderr:
            logger.debug("Ghostscript stderr:\n%s", stderr)

        return exit_code


def _read_log(path: Path) -> str:
    if not path.exists():
        return ""
    return path.read_text(encoding="utf-8", errors="replace").strip()


async def _read_payload(location: str, timeout_seconds: float) -> bytes:
    if location.startswith(("http://", "https://")):
        try:
            async with httpx.AsyncClient(timeout=timeout_seconds) as client:
                response = await client.get(location)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise AssetResolutionError(
                f"Failed to fetch interpreter payload {location}: {exc}"
            ) from exc
        return response.content

    try:
        return await asyncio.to_thread(Path(location).read_bytes)
    except OSError as exc:
        raise AssetResolutionError(
            f"Failed to read interpreter payload {location}: {exc}"
        ) from exc


async def create_ghostscript_module(config: ModuleConfig) -> GhostscriptModule:
    """Module factory: fetch the payload, compile it, return a ready module."""
    location = config.locate_file(INTERPRETER_PAYLOAD)
    payload = await _read_payload(location, config.fetch_timeout_seconds)

    logger.info("Compiling Ghostscript module (%d bytes) from %s", len(payload), location)

    engine = Engine()
    module = await asyncio.to_thread(Module, engine, payload)

    return GhostscriptModule(engine, module)
