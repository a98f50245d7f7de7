"""
Host directory exposed to the interpreter as its root filesystem.

Guest paths are absolute POSIX paths (``/tmp/pdfx/input/input.pdf``).
Each is mapped under the sandbox root; a path that would resolve outside
the root is rejected before any host I/O happens.
"""

from __future__ import annotations

import os
import posixpath
from pathlib import Path


class SandboxFS:
    def __init__(self, root: Path | str) -> None:
        self._root = Path(root).resolve()

    @property
    def root(self) -> Path:
        return self._root

    def host_path(self, path: str) -> Path:
        """Map a guest path to its host location inside the sandbox."""
        if not path.startswith("/"):
            raise ValueError(f"Guest path must be absolute: {path}")

        relative = posixpath.normpath(path).lstrip("/")
        candidate = (self._root / relative).resolve()

        try:
            candidate.relative_to(self._root)
        except ValueError:
            raise ValueError(f"Guest path escapes sandbox: {path}")

        return candidate

    def mkdir(self, path: str) -> None:
        self.host_path(path).mkdir()

    def write_file(self, path: str, data: bytes) -> None:
        self.host_path(path).write_bytes(data)

    def read_file(self, path: str) -> bytes:
        return self.host_path(path).read_bytes()

    def unlink(self, path: str) -> None:
        self.host_path(path).unlink()

    def stat(self, path: str) -> os.stat_result:
        return self.host_path(path).stat()
