"""
Ghostscript command and PDF/X-3 definition builder.

Produces, from one logical step:

1. the interpreter argument vector (pdfwrite device, PDF 1.4, prepress
   settings, color conversion strategy chosen from the ICC profile's
   color space), and
2. the PostScript definition document declaring PDF/X-3:2003 conformance
   and embedding the ICC profile as an OutputIntent.

The profile is inlined as a hex string literal. The sandboxed runtime
cannot embed it through ``(file) (r) file``.

Argument order matters: output file, then the definition file, then the
input document. The definition must be processed before the document.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from printready.app.errors import InvalidProfileError
from printready.app.schemas.conversion import OutputIntent

logger = logging.getLogger(__name__)

# ICC header: data colour space signature occupies bytes 16-19.
ICC_COLOR_SPACE_OFFSET = 16
ICC_COLOR_SPACE_LENGTH = 4

PDFX_VERSION = "PDF/X-3:2003"
ICC_REGISTRY = "http://www.color.org"

# Marks a PDF text string as UTF-16BE.
UTF16_BOM = b"\xfe\xff"


class ColorSpace(str, Enum):
    RGB = "RGB"
    CMYK = "CMYK"


def detect_color_space(icc_profile: bytes) -> ColorSpace:
    """
    Read the data colour space tag from ICC profile bytes.

    ``CMYK`` selects the CMYK strategy. Any other tag (``RGB ``, ``GRAY``,
    ``Lab `` ...) selects the RGB strategy.
    """
    end = ICC_COLOR_SPACE_OFFSET + ICC_COLOR_SPACE_LENGTH
    if len(icc_profile) < end:
        raise InvalidProfileError(
            f"ICC profile too short ({len(icc_profile)} bytes) "
            "to contain a color space signature"
        )

    tag = icc_profile[ICC_COLOR_SPACE_OFFSET:end].decode("ascii", errors="replace")

    if tag.strip() == ColorSpace.CMYK.value:
        return ColorSpace.CMYK

    if tag.strip() != ColorSpace.RGB.value:
        logger.warning("Unexpected ICC color space %r; using RGB conversion", tag)

    return ColorSpace.RGB


@dataclass(frozen=True)
class GhostscriptCommand:
    args: tuple[str, ...]
    description: str


class GhostscriptArgs:
    """Ordered builder for Ghostscript ``-d``/``-s`` switches."""

    def __init__(self) -> None:
        self._args: list[str] = []

    def flag(self, name: str) -> "GhostscriptArgs":
        self._args.append(f"-d{name}")
        return self

    def define(self, name: str, value: bool | int | float | str) -> "GhostscriptArgs":
        if isinstance(value, bool):
            value = "true" if value else "false"
        self._args.append(f"-d{name}={value}")
        return self

    def string(self, name: str, value: str) -> "GhostscriptArgs":
        self._args.append(f"-s{name}={value}")
        return self

    def operand(self, value: str) -> "GhostscriptArgs":
        self._args.append(value)
        return self

    def build(self) -> tuple[str, ...]:
        return tuple(self._args)


class CommandBuilder:
    def build_conversion_command(
        self,
        *,
        input_path: str,
        output_path: str,
        definition_path: str,
        color_space: ColorSpace,
        flatten_transparency: bool = True,
    ) -> GhostscriptCommand:
        args = (
            GhostscriptArgs()
            .flag("BATCH")
            .flag("NOPAUSE")
            .string("DEVICE", "pdfwrite")
            .define("CompatibilityLevel", "1.4")
            # PDF 1.5+ structures produce warnings at 1.4 compatibility
            .define("WriteObjStms", False)
            .define("WriteXRefStm", False)
            .define("PDFSETTINGS", "/prepress")
            .define("SetPageSize", False)
            .define("AutoRotatePages", "/None")
        )

        # The target viewer is declared unable to render transparency, so
        # Ghostscript rasterizes transparent page content.
        if flatten_transparency:
            args.define("HaveTransparency", False)

        if color_space is ColorSpace.CMYK:
            args.string("ColorConversionStrategy", "CMYK")
            args.define("ProcessColorModel", "/DeviceCMYK")
            args.define("ConvertCMYKImagesToRGB", False)
        else:
            args.string("ColorConversionStrategy", "RGB")

        args.string("OutputFile", output_path)
        args.operand(definition_path)
        args.operand(input_path)

        command = GhostscriptCommand(
            args=args.build(),
            description=(
                f"Converting to {PDFX_VERSION} with {color_space.value} "
                "color conversion"
            ),
        )
        logger.debug("Built conversion command: %s", command.args)
        return command


def escape_ps_string(value: str) -> str:
    """Escape text for a PostScript ``( ... )`` string literal."""
    return (
        value.replace("\\", "\\\\")
        .replace("(", "\\(")
        .replace(")", "\\)")
        .replace("\r", "\\r")
        .replace("\n", "\\n")
    )


def ps_text(value: str) -> str:
    """
    Encode text as a PostScript string operand for a pdfmark.

    pdfwrite copies string bytes into the PDF unchanged, where they are
    read as PDFDocEncoding. ASCII text stays a ``( ... )`` literal; any
    other text becomes a UTF-16BE hex string with a byte order mark.
    """
    if value.isascii():
        return f"({escape_ps_string(value)})"
    encoded = UTF16_BOM + value.encode("utf-16-be")
    return f"<{encoded.hex().upper()}>"


def build_pdfx_definition(intent: OutputIntent, icc_profile: bytes) -> str:
    """Generate the PDF/X-3 definition (pdfmark) document."""
    title = ps_text(intent.title)
    condition = ps_text(intent.condition)
    identifier = ps_text(intent.identifier)
    icc_hex = icc_profile.hex()

    return f"""%!
% PDF/X-3 Definition File
[ /Title {title} /DOCINFO pdfmark
[ /Trapped /False /DOCINFO pdfmark

% Set PDF/X-3 conformance
[ /GTS_PDFXVersion ({PDFX_VERSION}) /GTS_PDFXConformance ({PDFX_VERSION}) /DOCINFO pdfmark

% Set TrimBox to match MediaBox for all pages (required for PDF/X)
[/TrimBox [0 0 0 0] /PAGE pdfmark

% Embed ICC profile as hex stream
[/_objdef {{icc_PDFX}} /type /stream /OBJ pdfmark
[{{icc_PDFX}} <</N 4>> /PUT pdfmark
[{{icc_PDFX}} <{icc_hex}> /PUT pdfmark

% Define OutputIntent with embedded ICC profile
[/_objdef {{OutputIntent_PDFX}} /type /dict /OBJ pdfmark
[{{OutputIntent_PDFX}} <<
  /Type /OutputIntent
  /S /GTS_PDFX
  /OutputCondition {condition}
  /OutputConditionIdentifier {identifier}
  /RegistryName ({ICC_REGISTRY})
  /DestOutputProfile {{icc_PDFX}}
>> /PUT pdfmark

% Add OutputIntent to Catalog
[{{Catalog}} <</OutputIntents [{{OutputIntent_PDFX}}]>> /PUT pdfmark
"""
