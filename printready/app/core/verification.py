"""
PDF/X-3 output verification.

Hard post-condition on every produced document: it must parse, declare
PDF/X-3:2003 in its Info dictionary, and carry a GTS_PDFX OutputIntent
for the requested output condition. A document failing any of these is
never returned to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from io import BytesIO
from typing import Optional

import pikepdf

from printready.app.core.command_builder import PDFX_VERSION
from printready.app.errors import OutputVerificationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutputIntentInfo:
    pdfx_version: Optional[str]
    output_condition_identifier: Optional[str]
    output_condition: Optional[str]
    has_dest_output_profile: bool


def _text(value: object) -> Optional[str]:
    return None if value is None else str(value)


def inspect_output_intent(pdf_bytes: bytes) -> OutputIntentInfo:
    """
    Read PDF/X identification and the first GTS_PDFX OutputIntent.

    Raises OutputVerificationError if the document cannot be parsed.
    """
    try:
        with pikepdf.open(BytesIO(pdf_bytes)) as pdf:
            version = _text(pdf.docinfo.get("/GTS_PDFXVersion"))

            intents = pdf.Root.get("/OutputIntents")
            for intent in intents or []:
                subtype = intent.get("/S")
                if subtype is None or str(subtype) != "/GTS_PDFX":
                    continue
                return OutputIntentInfo(
                    pdfx_version=version,
                    output_condition_identifier=_text(
                        intent.get("/OutputConditionIdentifier")
                    ),
                    output_condition=_text(intent.get("/OutputCondition")),
                    has_dest_output_profile=intent.get("/DestOutputProfile") is not None,
                )

            return OutputIntentInfo(
                pdfx_version=version,
                output_condition_identifier=None,
                output_condition=None,
                has_dest_output_profile=False,
            )

    except pikepdf.PdfError as exc:
        raise OutputVerificationError(
            f"Produced document could not be parsed: {exc}"
        ) from exc


def verify_pdfx3_output(
    pdf_bytes: bytes,
    *,
    expected_identifier: str,
) -> OutputIntentInfo:
    info = inspect_output_intent(pdf_bytes)

    if info.pdfx_version != PDFX_VERSION:
        raise OutputVerificationError(
            f"Produced document is missing PDF/X-3 identification "
            f"(GTS_PDFXVersion={info.pdfx_version!r})"
        )

    if info.output_condition_identifier != expected_identifier:
        raise OutputVerificationError(
            f"Produced document has no OutputIntent for "
            f"'{expected_identifier}' "
            f"(found {info.output_condition_identifier!r})"
        )

    logger.debug("Verified PDF/X-3 output for '%s'", expected_identifier)
    return info
