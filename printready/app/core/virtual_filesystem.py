"""
Ownership-tracked bridge over the interpreter's virtual filesystem.

One ``VirtualFileSystem`` instance is created per conversion. Every file it
writes with ``managed=True`` (and every interpreter output registered with
``manage()``) is deleted by ``cleanup()``.

Cleanup is best-effort: a file that cannot be deleted is logged and
reported, and the remaining files are still attempted. The returned
``CleanupReport`` states what was actually removed; it never raises.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from printready.app.errors import VirtualFilesystemError
from printready.app.interpreter.module import InterpreterModule

logger = logging.getLogger(__name__)

DEFAULT_WORKING_DIR = "/tmp/pdfx"
WORKING_SUBDIRS = ("input", "output", "profiles", "temp")


@dataclass(frozen=True)
class CleanupReport:
    attempted: int
    removed: int
    missing: int = 0
    failed: tuple[str, ...] = field(default_factory=tuple)

    @property
    def complete(self) -> bool:
        return not self.failed


class VirtualFileSystem:
    def __init__(
        self,
        module: InterpreterModule,
        working_dir: str = DEFAULT_WORKING_DIR,
    ) -> None:
        self._fs = module.fs
        self._working_dir = working_dir.rstrip("/") or "/"
        self._managed: set[str] = set()
        self._initialize()

    @property
    def working_dir(self) -> str:
        return self._working_dir

    @property
    def managed_paths(self) -> frozenset[str]:
        return frozenset(self._managed)

    def path(self, *parts: str) -> str:
        """Join ``parts`` onto the working directory."""
        return "/".join((self._working_dir.rstrip("/"), *parts))

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def _initialize(self) -> None:
        try:
            self._create_dir_if_not_exists(self._working_dir)
            for subdir in WORKING_SUBDIRS:
                self._create_dir_if_not_exists(self.path(subdir))
        except OSError as exc:
            logger.error("Failed to initialize virtual filesystem: %s", exc)
            raise VirtualFilesystemError(
                f"Virtual filesystem initialization failed: {exc}",
                path=self._working_dir,
            ) from exc

        logger.debug("Virtual filesystem initialized at %s", self._working_dir)

    def _create_dir_if_not_exists(self, path: str) -> None:
        try:
            self._fs.mkdir(path)
        except FileExistsError:
            pass

    # ------------------------------------------------------------------
    # File operations
    # ------------------------------------------------------------------

    def write_bytes(self, path: str, data: bytes, managed: bool = True) -> None:
        try:
            self._fs.write_file(path, bytes(data))
        except (OSError, ValueError) as exc:
            logger.error("Failed to write %s: %s", path, exc)
            raise VirtualFilesystemError(
                f"Failed to write file {path}: {exc}",
                path=path,
            ) from exc

        if managed:
            self._managed.add(path)

        logger.debug("File written: %s (%d bytes)", path, len(data))

    def write_text(self, path: str, text: str, managed: bool = True) -> None:
        self.write_bytes(path, text.encode("utf-8"), managed=managed)

    def read_bytes(self, path: str) -> bytes:
        try:
            data = self._fs.read_file(path)
        except (OSError, ValueError) as exc:
            logger.error("Failed to read %s: %s", path, exc)
            raise VirtualFilesystemError(
                f"Failed to read file {path}: {exc}",
                path=path,
            ) from exc

        logger.debug("File read: %s (%d bytes)", path, len(data))
        return data

    def exists(self, path: str) -> bool:
        try:
            self._fs.stat(path)
        except (OSError, ValueError):
            return False
        return True

    def manage(self, path: str) -> None:
        """Take ownership of a file the interpreter will create."""
        self._managed.add(path)

    # ------------------------------------------------------------------
    # Cleanup
    # ------------------------------------------------------------------

    def cleanup(self) -> CleanupReport:
        attempted = len(self._managed)
        removed = 0
        missing = 0
        failed: list[str] = []

        for path in sorted(self._managed):
            try:
                self._fs.unlink(path)
            except FileNotFoundError:
                missing += 1
            except (OSError, ValueError) as exc:
                logger.warning("Failed to clean up %s: %s", path, exc)
                failed.append(path)
            else:
                removed += 1

        # Paths that failed stay tracked so a later cleanup can retry them.
        self._managed = set(failed)

        report = CleanupReport(
            attempted=attempted,
            removed=removed,
            missing=missing,
            failed=tuple(failed),
        )

        if report.complete:
            logger.info("Filesystem cleanup completed: %d removed", removed)
        else:
            logger.warning(
                "Filesystem cleanup incomplete: %d removed, %d failed",
                removed,
                len(failed),
            )

        return report
