"""
Error taxonomy for PDF/X-3 conversion.

Every failure raised by the conversion core derives from ``PdfX3Error``.
Errors are raised where they are detected, wrapped with exactly one layer
of context when they cross a component boundary, and chained to their
original cause (``raise ... from exc``).

Nothing is retried automatically. The interpreter loader re-attempts a
failed load on the *next* call only.
"""

from __future__ import annotations


class PdfX3Error(RuntimeError):
    """Base class for all conversion failures."""


# ---------------------------------------------------------------------------
# Local, synchronous failures (never touch the interpreter)
# ---------------------------------------------------------------------------

class InputValidationError(PdfX3Error, ValueError):
    """Raised when an input document violates a size or format constraint."""


class InvalidProfileError(PdfX3Error, ValueError):
    """Raised when ICC profile bytes cannot be interpreted."""


class ConfigurationError(PdfX3Error):
    """Raised when assets cannot be located with the given configuration."""


# ---------------------------------------------------------------------------
# Asset and interpreter acquisition
# ---------------------------------------------------------------------------

class AssetResolutionError(PdfX3Error):
    """Raised when an ICC profile or interpreter payload cannot be loaded."""


class CapabilityError(PdfX3Error):
    """Raised when the host runtime cannot execute WebAssembly."""


class InterpreterLoadError(PdfX3Error):
    """Raised when the interpreter module fails to load."""


class LoadTimeoutError(InterpreterLoadError):
    """Raised when loading the interpreter module exceeds its time budget."""


# ---------------------------------------------------------------------------
# Conversion execution
# ---------------------------------------------------------------------------

class VirtualFilesystemError(PdfX3Error):
    """Raised when a virtual filesystem read or write fails."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class InterpreterExecutionError(PdfX3Error):
    """
    Raised when the interpreter exits with a non-zero code.

    ``exit_code`` is None when the interpreter trapped before exiting.
    """

    def __init__(self, message: str, *, exit_code: int | None) -> None:
        super().__init__(message)
        self.exit_code = exit_code


class OutputVerificationError(PdfX3Error):
    """Raised when the produced document lacks PDF/X-3 identification."""


class BatchConversionError(PdfX3Error):
    """Raised when one document of a batch fails; ``index`` is 1-based."""

    def __init__(self, message: str, *, index: int, total: int) -> None:
        super().__init__(message)
        self.index = index
        self.total = total
