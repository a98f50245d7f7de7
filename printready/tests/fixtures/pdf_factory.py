import io

import pikepdf


# ------------------------------------------------------------------
# Input documents
# ------------------------------------------------------------------

def minimal_valid_pdf(pages: int = 1) -> bytes:
    """
    Produce a small structurally valid PDF with blank A4 pages.

    Used as conversion input across tests.
    """
    buffer = io.BytesIO()
    with pikepdf.new() as pdf:
        for _ in range(pages):
            pdf.add_blank_page(page_size=(595, 842))
        pdf.save(buffer)
    return buffer.getvalue()


def not_a_pdf() -> bytes:
    return b"GIF89a this is not a document"


# ------------------------------------------------------------------
# PDF/X-3 output as produced by Ghostscript from a definition file
# ------------------------------------------------------------------

def pdfx3_from(
    input_pdf: bytes,
    *,
    title: str | bytes,
    identifier: str | bytes,
    condition: str | bytes,
    icc_profile: bytes,
) -> bytes:
    """
    Apply the definition-file marks to ``input_pdf`` the way pdfwrite does.

    ``bytes`` values are stored as raw PDF string bytes, exactly as
    pdfwrite copies them from the pdfmark operands. Object streams are
    disabled so Info and OutputIntent strings appear verbatim in the
    output bytes.
    """
    buffer = io.BytesIO()

    with pikepdf.open(io.BytesIO(input_pdf)) as pdf:
        pdf.docinfo[pikepdf.Name("/Title")] = pikepdf.String(title)
        pdf.docinfo[pikepdf.Name("/Trapped")] = pikepdf.Name("/False")
        pdf.docinfo[pikepdf.Name("/GTS_PDFXVersion")] = pikepdf.String("PDF/X-3:2003")
        pdf.docinfo[pikepdf.Name("/GTS_PDFXConformance")] = pikepdf.String("PDF/X-3:2003")

        icc_stream = pikepdf.Stream(pdf, icc_profile)
        icc_stream[pikepdf.Name("/N")] = 4

        intent = pdf.make_indirect(
            pikepdf.Dictionary(
                Type=pikepdf.Name("/OutputIntent"),
                S=pikepdf.Name("/GTS_PDFX"),
                OutputCondition=pikepdf.String(condition),
                OutputConditionIdentifier=pikepdf.String(identifier),
                RegistryName=pikepdf.String("http://www.color.org"),
                DestOutputProfile=pdf.make_indirect(icc_stream),
            )
        )
        pdf.Root[pikepdf.Name("/OutputIntents")] = pikepdf.Array([intent])

        pdf.save(
            buffer,
            object_stream_mode=pikepdf.ObjectStreamMode.disable,
        )

    return buffer.getvalue()
