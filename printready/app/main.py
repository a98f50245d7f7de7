"""
FastAPI entrypoint for the PDF/X-3 conversion service.

Accepts an RGB PDF upload plus output-intent options and returns the
converted PDF/X-3 document. The conversion core is not re-entrant, so
requests are serialized through a single lock.
"""

from __future__ import annotations

import asyncio
import io
import logging
import string
from typing import Optional
from urllib.parse import quote

from fastapi import Depends, FastAPI, File, Form, HTTPException, UploadFile
from fastapi.responses import StreamingResponse
from pydantic import ValidationError

from printready.app.config import Settings, get_settings
from printready.app.core.converter import PdfX3Converter, get_converter
from printready.app.errors import (
    AssetResolutionError,
    CapabilityError,
    ConfigurationError,
    InputValidationError,
    InterpreterLoadError,
    InvalidProfileError,
    PdfX3Error,
)
from printready.app.schemas.conversion import (
    ConversionOptions,
    resolve_output_intent,
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="print-ready-pdfs",
    description="Color-managed PDF/X-3 conversion service",
    version="0.1.0",
)

# One conversion at a time: the interpreter keeps process-global state.
_conversion_lock = asyncio.Lock()

# Printable ASCII passes through; "%" and everything else is percent-encoded.
_HEADER_SAFE = string.punctuation.replace("%", "") + " "


def _header_value(text: str) -> str:
    return quote(text, safe=_HEADER_SAFE)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post(
    "/convert",
    summary="Convert a PDF into a PDF/X-3 document",
)
async def convert_document(
    file: UploadFile = File(..., description="RGB PDF document"),
    output_profile: str = Form(..., description="gracol, fogra39, srgb or custom"),
    custom_profile: Optional[UploadFile] = File(None, description="ICC profile for 'custom'"),
    title: Optional[str] = Form(None),
    output_condition_identifier: Optional[str] = Form(None),
    output_condition: Optional[str] = Form(None),
    flatten_transparency: bool = Form(True),
    converter: PdfX3Converter = Depends(get_converter),
    settings: Settings = Depends(get_settings),
) -> StreamingResponse:
    """
    Convert an uploaded PDF.

    Returns application/pdf. The X-Output-Condition-Identifier response
    header carries the OutputIntent identifier embedded in the document,
    percent-encoded (UTF-8) where it is not printable ASCII.
    """

    # ------------------------------------------------------------------
    # Upload limits
    # ------------------------------------------------------------------
    document = await file.read()
    max_bytes = settings.max_upload_mb * 1024 * 1024
    if len(document) > max_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"Upload exceeds {settings.max_upload_mb} MB",
        )

    # ------------------------------------------------------------------
    # Options validation
    # ------------------------------------------------------------------
    try:
        options = ConversionOptions(
            output_profile=output_profile,
            custom_profile=await custom_profile.read() if custom_profile else None,
            title=title,
            output_condition_identifier=output_condition_identifier,
            output_condition=output_condition,
            flatten_transparency=flatten_transparency,
        )
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------
    try:
        async with _conversion_lock:
            converted = await converter.convert_one(document, options)

    except (InputValidationError, InvalidProfileError) as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    except (
        ConfigurationError,
        AssetResolutionError,
        CapabilityError,
        InterpreterLoadError,
    ) as exc:
        logger.error("Conversion unavailable: %s", exc)
        raise HTTPException(
            status_code=503,
            detail=f"Conversion unavailable: {exc}",
        ) from exc

    except PdfX3Error as exc:
        logger.exception(
            "PDF/X-3 conversion failed for profile='%s'",
            options.output_profile.value,
        )
        raise HTTPException(
            status_code=500,
            detail="PDF/X-3 conversion failed. See service logs for details.",
        ) from exc

    intent = resolve_output_intent(options)

    return StreamingResponse(
        io.BytesIO(converted),
        media_type="application/pdf",
        headers={
            "Content-Disposition": 'inline; filename="document-pdfx3.pdf"',
            "X-Output-Condition-Identifier": _header_value(intent.identifier),
        },
    )
