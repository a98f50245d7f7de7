"""
Tests for the wasmtime runtime bridge.

Tiny WASI command modules written in WAT stand in for gs.wasm; they
exercise exit codes, traps, stdio capture and the sandbox preopen.
"""

import logging

import httpx
import pytest
from wasmtime import Engine, Module, wat2wasm

from printready.app.errors import AssetResolutionError, InterpreterExecutionError
from printready.app.interpreter import ghostscript
from printready.app.interpreter.ghostscript import (
    GhostscriptModule,
    create_ghostscript_module,
)
from printready.app.interpreter.module import ModuleConfig

pytestmark = pytest.mark.anyio


EXIT_ZERO = """
(module
  (memory (export "memory") 1)
  (func (export "_start")))
"""

EXIT_THREE = """
(module
  (import "wasi_snapshot_preview1" "proc_exit" (func $proc_exit (param i32)))
  (memory (export "memory") 1)
  (func (export "_start")
    (call $proc_exit (i32.const 3))))
"""

# Writes "hello" to stdout.
HELLO_STDOUT = """
(module
  (import "wasi_snapshot_preview1" "fd_write"
    (func $fd_write (param i32 i32 i32 i32) (result i32)))
  (memory (export "memory") 1)
  (data (i32.const 0) "\\08\\00\\00\\00\\05\\00\\00\\00")
  (data (i32.const 8) "hello")
  (func (export "_start")
    (drop (call $fd_write (i32.const 1) (i32.const 0) (i32.const 1) (i32.const 32)))))
"""

# Writes "oops" to stderr, then aborts.
ABORT_WITH_STDERR = """
(module
  (import "wasi_snapshot_preview1" "fd_write"
    (func $fd_write (param i32 i32 i32 i32) (result i32)))
  (memory (export "memory") 1)
  (data (i32.const 0) "\\08\\00\\00\\00\\04\\00\\00\\00")
  (data (i32.const 8) "oops")
  (func (export "_start")
    (drop (call $fd_write (i32.const 2) (i32.const 0) (i32.const 1) (i32.const 32)))
    unreachable))
"""

# Opens tmp/staged.txt under the preopened root; exits with the WASI errno.
OPEN_STAGED_FILE = """
(module
  (import "wasi_snapshot_preview1" "path_open"
    (func $path_open (param i32 i32 i32 i32 i32 i64 i64 i32 i32) (result i32)))
  (import "wasi_snapshot_preview1" "proc_exit" (func $proc_exit (param i32)))
  (memory (export "memory") 1)
  (data (i32.const 16) "tmp/staged.txt")
  (func (export "_start")
    (call $proc_exit
      (call $path_open
        (i32.const 3) (i32.const 0) (i32.const 16) (i32.const 14)
        (i32.const 0) (i64.const 2) (i64.const 0) (i32.const 0) (i32.const 64)))))
"""

UNRESOLVED_IMPORT = """
(module
  (import "env" "missing" (func))
  (memory (export "memory") 1)
  (func (export "_start")))
"""


def _module(wat: str) -> GhostscriptModule:
    engine = Engine()
    return GhostscriptModule(engine, Module(engine, wat))


# ---------------------------------------------------------------------------
# Exit codes and traps
# ---------------------------------------------------------------------------

async def test_clean_return_is_exit_code_zero():
    assert await _module(EXIT_ZERO).call_main(["-v"]) == 0


async def test_proc_exit_code_is_returned():
    assert await _module(EXIT_THREE).call_main(["-v"]) == 3


async def test_module_can_run_repeatedly():
    module = _module(EXIT_THREE)

    assert await module.call_main([]) == 3
    assert await module.call_main([]) == 3


async def test_trap_becomes_execution_error_with_stderr():
    with pytest.raises(InterpreterExecutionError, match="oops") as exc_info:
        await _module(ABORT_WITH_STDERR).call_main(["-v"])

    assert exc_info.value.exit_code is None
    assert "unreachable" in str(exc_info.value)


async def test_instantiation_failure_becomes_execution_error():
    with pytest.raises(InterpreterExecutionError, match="aborted"):
        await _module(UNRESOLVED_IMPORT).call_main([])


async def test_stdout_is_logged(caplog):
    with caplog.at_level(logging.DEBUG, logger="printready.app.interpreter.ghostscript"):
        assert await _module(HELLO_STDOUT).call_main([]) == 0

    assert "hello" in caplog.text


# ---------------------------------------------------------------------------
# Sandbox filesystem
# ---------------------------------------------------------------------------

async def test_staged_file_is_visible_to_guest():
    module = _module(OPEN_STAGED_FILE)
    module.fs.write_file("/tmp/staged.txt", b"%PDF-1.4")

    assert await module.call_main([]) == 0


async def test_missing_file_is_not_visible_to_guest():
    assert await _module(OPEN_STAGED_FILE).call_main([]) != 0


def test_sandbox_starts_with_tmp():
    module = _module(EXIT_ZERO)

    assert module.fs.stat("/tmp") is not None
    assert module.fs.root.is_dir()


# ---------------------------------------------------------------------------
# Module factory
# ---------------------------------------------------------------------------

async def test_factory_compiles_payload_from_path(tmp_path):
    (tmp_path / "gs.wasm").write_bytes(wat2wasm(EXIT_THREE))
    config = ModuleConfig(locate_file=lambda name: str(tmp_path / name))

    module = await create_ghostscript_module(config)

    assert await module.call_main([]) == 3


async def test_factory_fetches_payload_from_url(monkeypatch):
    requested = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(str(request.url))
        return httpx.Response(200, content=bytes(wat2wasm(EXIT_ZERO)))

    real_client = httpx.AsyncClient
    monkeypatch.setattr(
        ghostscript.httpx,
        "AsyncClient",
        lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs),
    )
    config = ModuleConfig(locate_file=lambda name: f"https://cdn.example.com/assets/{name}")

    module = await create_ghostscript_module(config)

    assert requested == ["https://cdn.example.com/assets/gs.wasm"]
    assert await module.call_main([]) == 0


async def test_factory_reports_missing_payload(tmp_path):
    config = ModuleConfig(locate_file=lambda name: str(tmp_path / name))

    with pytest.raises(AssetResolutionError, match="gs.wasm"):
        await create_ghostscript_module(config)
