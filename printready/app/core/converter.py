"""
PDF/X-3 conversion orchestrator.

Public entry point of the conversion core. Turns RGB PDF bytes into a
PDF/X-3:2003 document with an embedded OutputIntent by driving the
Ghostscript interpreter through its virtual filesystem.

Guarantees:
- Input validation never touches assets or the interpreter.
- The interpreter module is loaded lazily, once per process.
- Every managed file is removed before control returns, on success and on
  failure.
- Output is returned only after a zero exit code, a successful read-back
  and (by default) PDF/X-3 verification, as an independent bytes object.

Concurrency:
    Conversions are not re-entrant. The interpreter keeps global state
    (its filesystem, stdio), so callers must not run ``convert_one``
    concurrently without external serialization. ``convert_many`` runs
    strictly sequentially. There is no cancellation once the interpreter
    has started.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional, Sequence

from printready.app.config import Settings, get_settings
from printready.app.core.command_builder import (
    CommandBuilder,
    build_pdfx_definition,
    detect_color_space,
)
from printready.app.core.verification import verify_pdfx3_output
from printready.app.core.virtual_filesystem import VirtualFileSystem
from printready.app.errors import (
    BatchConversionError,
    InputValidationError,
    InterpreterExecutionError,
)
from printready.app.interpreter.loader import (
    InterpreterLoader,
    get_interpreter_loader,
)
from printready.app.interpreter.module import InterpreterModule
from printready.app.loaders.base import AssetLoader
from printready.app.loaders.selection import resolve_asset_loader
from printready.app.schemas.conversion import (
    ConversionOptions,
    resolve_output_intent,
)

logger = logging.getLogger(__name__)

MAX_INPUT_BYTES = 100 * 1024 * 1024
PDF_MAGIC = b"%PDF"

INPUT_FILE = ("input", "input.pdf")
OUTPUT_FILE = ("output", "output.pdf")
DEFINITION_FILE = ("temp", "pdfx_def.ps")
CUSTOM_PROFILE_FILE = "custom.icc"


def validate_pdf_document(document: bytes) -> None:
    """Reject empty, oversized or non-PDF input."""
    if not isinstance(document, (bytes, bytearray, memoryview)):
        raise InputValidationError("Input document must be bytes")

    size = len(document)

    if size == 0:
        raise InputValidationError("Input PDF is empty")

    if size > MAX_INPUT_BYTES:
        raise InputValidationError(
            f"Input PDF too large ({size} bytes). Maximum: 100MB"
        )

    if bytes(document[: len(PDF_MAGIC)]) != PDF_MAGIC:
        raise InputValidationError(
            "Invalid PDF format: input does not start with %PDF"
        )


class PdfX3Converter:
    def __init__(
        self,
        *,
        interpreter_loader: Optional[InterpreterLoader] = None,
        settings: Optional[Settings] = None,
        command_builder: Optional[CommandBuilder] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._interpreter_loader = interpreter_loader or get_interpreter_loader()
        self._command_builder = command_builder or CommandBuilder()

    @property
    def interpreter_loader(self) -> InterpreterLoader:
        return self._interpreter_loader

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def convert_one(
        self,
        document: bytes,
        options: ConversionOptions,
    ) -> bytes:
        """Convert one PDF document to PDF/X-3."""
        validate_pdf_document(document)

        asset_loader = resolve_asset_loader(options, self._settings)
        module = await self._interpreter_loader.load(asset_loader)

        vfs = VirtualFileSystem(module, self._settings.working_dir)

        try:
            return await self._convert_staged(
                vfs, module, asset_loader, document, options
            )
        finally:
            report = vfs.cleanup()
            if not report.complete:
                logger.warning(
                    "Conversion left %d file(s) in the virtual filesystem: %s",
                    len(report.failed),
                    ", ".join(report.failed),
                )

    async def convert_many(
        self,
        documents: Sequence[bytes],
        options: ConversionOptions,
    ) -> list[bytes]:
        """
        Convert documents one after another.

        Aborts at the first failure; the error names the 1-based position of
        the failing document.
        """
        if not documents:
            return []

        total = len(documents)
        results: list[bytes] = []

        for index, document in enumerate(documents, start=1):
            try:
                results.append(await self.convert_one(document, options))
            except Exception as exc:
                logger.error("Batch conversion failed at document %d of %d", index, total)
                raise BatchConversionError(
                    f"failed to convert document {index} of {total}: {exc}",
                    index=index,
                    total=total,
                ) from exc

        return results

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _convert_staged(
        self,
        vfs: VirtualFileSystem,
        module: InterpreterModule,
        asset_loader: AssetLoader,
        document: bytes,
        options: ConversionOptions,
    ) -> bytes:
        input_path = vfs.path(*INPUT_FILE)
        output_path = vfs.path(*OUTPUT_FILE)
        definition_path = vfs.path(*DEFINITION_FILE)

        vfs.write_bytes(input_path, document)

        preset = options.preset
        if preset is None:
            profile_path = vfs.path("profiles", CUSTOM_PROFILE_FILE)
            profile_bytes = options.custom_profile or b""
        else:
            profile_path = vfs.path("profiles", preset.file)
            profile_bytes = await asset_loader.load_icc_profile(preset.file)

        vfs.write_bytes(profile_path, profile_bytes)

        # The color space comes from the staged bytes, never from the preset name.
        icc_profile = vfs.read_bytes(profile_path)
        color_space = detect_color_space(icc_profile)
        intent = resolve_output_intent(options)

        vfs.write_text(definition_path, build_pdfx_definition(intent, icc_profile))

        command = self._command_builder.build_conversion_command(
            input_path=input_path,
            output_path=output_path,
            definition_path=definition_path,
            color_space=color_space,
            flatten_transparency=options.flatten_transparency,
        )

        vfs.manage(output_path)

        logger.info(
            "%s (profile=%s, identifier='%s')",
            command.description,
            options.output_profile.value,
            intent.identifier,
        )

        exit_code = await module.call_main(list(command.args))
        if exit_code != 0:
            raise InterpreterExecutionError(
                f"Ghostscript conversion failed with exit code {exit_code}",
                exit_code=exit_code,
            )

        output = bytes(vfs.read_bytes(output_path))

        if self._settings.verify_output:
            verify_pdfx3_output(output, expected_identifier=intent.identifier)

        return output


# ---------------------------------------------------------------------------
# Module-level convenience API
# ---------------------------------------------------------------------------

@lru_cache(maxsize=1)
def get_converter() -> PdfX3Converter:
    """Return the process-wide converter bound to the shared interpreter."""
    return PdfX3Converter()


async def convert_to_pdfx3(
    document: bytes,
    options: ConversionOptions,
) -> bytes:
    return await get_converter().convert_one(document, options)


async def convert_many_to_pdfx3(
    documents: Sequence[bytes],
    options: ConversionOptions,
) -> list[bytes]:
    return await get_converter().convert_many(documents, options)
