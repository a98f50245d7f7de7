"""
Interpreter module contract.

An ``InterpreterModule`` is a loaded, runnable PostScript interpreter
exposing a sandboxed filesystem and a command-line entry point. The
conversion core depends only on this contract; the concrete runtime
(Ghostscript compiled to WASI, executed by wasmtime) lives in
``printready.app.interpreter.ghostscript``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Protocol, Sequence


class InterpreterFS(Protocol):
    """
    Filesystem of the interpreter sandbox.

    Paths are absolute guest paths. Errors are raised as ``OSError``
    subclasses (``FileExistsError`` for an existing directory,
    ``FileNotFoundError`` for a missing path).
    """

    def mkdir(self, path: str) -> None:
        ...

    def write_file(self, path: str, data: bytes) -> None:
        ...

    def read_file(self, path: str) -> bytes:
        ...

    def unlink(self, path: str) -> None:
        ...

    def stat(self, path: str) -> os.stat_result:
        ...


class InterpreterModule(Protocol):
    fs: InterpreterFS
    version: Optional[str]

    async def call_main(self, args: Sequence[str]) -> int:
        """Run the interpreter with ``args`` and return its exit code."""
        ...


@dataclass(frozen=True)
class ModuleConfig:
    """
    Configuration handed to a module factory.

    ``locate_file`` maps a resource name (e.g. ``gs.wasm``) to the path or
    URL it should be loaded from.
    """

    locate_file: Callable[[str], str]
    fetch_timeout_seconds: float = 30.0


ModuleFactory = Callable[[ModuleConfig], Awaitable[InterpreterModule]]
