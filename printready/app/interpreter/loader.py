"""
Interpreter loader.

Loads the interpreter module at most once per process and shares the
result between all callers.

State machine:

    UNLOADED -> LOADING -> LOADED    (terminal)
                LOADING -> FAILED    (next load() re-attempts)

Concurrent callers await the same in-flight load. A failed load does not
poison the loader: the following call starts a new attempt, which lets a
transient failure (e.g. a flaky network fetch) recover on the next
request. ``reset()`` returns the loader to UNLOADED and exists for tests;
it must not be called while a conversion is in flight.
"""

from __future__ import annotations

import asyncio
import importlib.util
import logging
from enum import Enum
from functools import lru_cache
from typing import Callable, Optional

from printready.app.config import get_settings
from printready.app.errors import (
    CapabilityError,
    InterpreterLoadError,
    LoadTimeoutError,
)
from printready.app.interpreter.module import InterpreterModule, ModuleConfig
from printready.app.loaders.base import INTERPRETER_PAYLOAD, AssetLoader

logger = logging.getLogger(__name__)

DEFAULT_LOAD_TIMEOUT_SECONDS = 30.0


class LoaderState(str, Enum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


def supports_webassembly() -> bool:
    """Return True if a WebAssembly runtime is available to this process."""
    if importlib.util.find_spec("wasmtime") is None:
        return False

    try:
        from wasmtime import Engine

        Engine()
    except Exception as exc:
        logger.debug("wasmtime engine unavailable: %s", exc)
        return False

    return True


class InterpreterLoader:
    """Shared, lazily-initialized handle to the interpreter module."""

    def __init__(
        self,
        *,
        timeout_seconds: float = DEFAULT_LOAD_TIMEOUT_SECONDS,
        fetch_timeout_seconds: float = 30.0,
        capability_check: Callable[[], bool] = supports_webassembly,
    ) -> None:
        self._timeout_seconds = timeout_seconds
        self._fetch_timeout_seconds = fetch_timeout_seconds
        self._capability_check = capability_check
        self._module: Optional[InterpreterModule] = None
        self._pending: Optional[asyncio.Future[InterpreterModule]] = None
        self._state = LoaderState.UNLOADED

    @property
    def state(self) -> LoaderState:
        return self._state

    async def load(
        self,
        asset_loader: AssetLoader,
        *,
        timeout_seconds: Optional[float] = None,
    ) -> InterpreterModule:
        """
        Return the interpreter module, loading it on first use.

        The first caller's ``asset_loader`` wins; once loaded, later loaders
        are ignored for the lifetime of the process.
        """
        if self._module is not None:
            return self._module

        if self._pending is None:
            self._state = LoaderState.LOADING
            self._pending = asyncio.ensure_future(
                self._load_internal(
                    asset_loader,
                    timeout_seconds or self._timeout_seconds,
                )
            )

        pending = self._pending

        try:
            # Shielded so one cancelled waiter does not abort the shared load.
            module = await asyncio.shield(pending)
        except BaseException:
            if self._pending is pending and pending.done():
                self._pending = None
                self._state = LoaderState.FAILED
            raise

        if self._pending is pending:
            self._module = module
            self._pending = None
            self._state = LoaderState.LOADED

        return module

    def reset(self) -> None:
        self._module = None
        self._pending = None
        self._state = LoaderState.UNLOADED

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _load_internal(
        self,
        asset_loader: AssetLoader,
        timeout_seconds: float,
    ) -> InterpreterModule:
        if not self._capability_check():
            raise CapabilityError(
                "failed to load interpreter: WebAssembly is not supported "
                "in this runtime (the wasmtime runtime is unavailable)"
            )

        logger.info("Loading bundled Ghostscript (AGPL-3.0 licensed)")

        try:
            module = await asyncio.wait_for(
                self._load_from_assets(asset_loader),
                timeout=timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            logger.error("Interpreter loading timed out after %ss", timeout_seconds)
            raise LoadTimeoutError(
                f"failed to load interpreter: loading timed out after {timeout_seconds}s"
            ) from exc
        except Exception as exc:
            logger.error("Interpreter loading failed: %s", exc)
            raise InterpreterLoadError(
                f"failed to load interpreter: {exc}"
            ) from exc

        logger.info(
            "Interpreter module initialized (version=%s)",
            getattr(module, "version", None) or "unknown",
        )
        return module

    async def _load_from_assets(self, asset_loader: AssetLoader) -> InterpreterModule:
        factory = await asset_loader.load_interpreter_module()

        def locate_file(name: str) -> str:
            if name == INTERPRETER_PAYLOAD:
                return asset_loader.get_binary_payload_path()
            return name

        config = ModuleConfig(
            locate_file=locate_file,
            fetch_timeout_seconds=self._fetch_timeout_seconds,
        )
        return await factory(config)


# ---------------------------------------------------------------------------
# Process-wide handle
# ---------------------------------------------------------------------------

@lru_cache(maxsize=1)
def get_interpreter_loader() -> InterpreterLoader:
    """Return the process-wide interpreter loader."""
    settings = get_settings()
    return InterpreterLoader(
        timeout_seconds=settings.load_timeout_seconds,
        fetch_timeout_seconds=settings.asset_fetch_timeout_seconds,
    )


def reset_interpreter_loader() -> None:
    """Discard the cached interpreter module (tests and debugging only)."""
    get_interpreter_loader().reset()
