from __future__ import annotations

from typing import Protocol, runtime_checkable

from printready.app.interpreter.module import ModuleFactory


# Resource name of the interpreter's WebAssembly payload.
INTERPRETER_PAYLOAD = "gs.wasm"

# Module providing ``create_ghostscript_module``; imported on first load.
INTERPRETER_FACTORY_MODULE = "printready.app.interpreter.ghostscript"


@runtime_checkable
class AssetLoader(Protocol):
    """
    Interface for resolving interpreter and ICC profile assets.

    Implementations must be:
    - independently retryable per operation
    - side-effect free beyond caching
    - read-only after construction
    """

    async def load_interpreter_module(self) -> ModuleFactory:
        """Return the factory that yields a ready interpreter module."""
        ...

    def get_binary_payload_path(self) -> str:
        """Return the path or URL of the interpreter's WASM payload."""
        ...

    async def load_icc_profile(self, name: str) -> bytes:
        """
        Load a named ICC profile as raw bytes.

        Raises AssetResolutionError if the profile cannot be found.
        """
        ...
