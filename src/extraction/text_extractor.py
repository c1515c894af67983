"""
Per-format raw text extraction.

- images go through a vision-capable language model
- PDFs use their embedded text layer (pdfminer.six); no OCR is attempted
- DOCX paragraphs (tables included) are read with python-docx
"""

from __future__ import annotations

import io
import logging
from zipfile import BadZipFile

from docx import Document as DocxDocument
from docx.opc.exceptions import PackageNotFoundError
from docx.table import Table
from PIL import Image, UnidentifiedImageError

from cleanops.errors import ExtractionFailure, UnsupportedFormat
from cleanops.models import ExtractedText
from llm.llm_client import LLMClient

logger = logging.getLogger(__name__)

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
ACCEPTED_FORMATS = (PDF_MIME, DOCX_MIME, "image/*")

METHOD_VISION = "vision"
METHOD_PDF = "pdf-text-layer"
METHOD_DOCX = "docx-text"

MAX_IMAGE_SIDE = 1024

VISION_INSTRUCTION = (
    "Extract cleaning tasks from this image. Transcribe every cleaning or maintenance "
    "task you can read, one per line, starting each line with '- '. Keep any title, "
    "area or room labels, and annotate frequencies as (Frequency: ...) and durations "
    "where they are shown."
)


def _downscale(image: bytes) -> tuple[bytes, str]:
    """Fit the image into MAX_IMAGE_SIDE x MAX_IMAGE_SIDE and re-encode as PNG."""
    try:
        with Image.open(io.BytesIO(image)) as img:
            img.load()
            if img.mode not in ("RGB", "L", "RGBA"):
                img = img.convert("RGB")
            img.thumbnail((MAX_IMAGE_SIDE, MAX_IMAGE_SIDE))
            out = io.BytesIO()
            img.save(out, format="PNG")
            return out.getvalue(), "image/png"
    except (UnidentifiedImageError, OSError) as e:
        raise ExtractionFailure("The image could not be read. Please upload a clearer picture.") from e


def docx_paragraphs(buffer: bytes) -> list[str]:
    """Return the text of each paragraph in the document body, in order.

    Table cells are read row by row; a merged cell is read once.
    """
    try:
        doc = DocxDocument(io.BytesIO(buffer))
    except (PackageNotFoundError, BadZipFile, KeyError, ValueError) as e:
        logger.warning(f"python-docx could not open the file: {e}")
        raise ExtractionFailure("Failed to extract text from DOCX file") from e

    paragraphs = []
    for block in doc.iter_inner_content():
        if isinstance(block, Table):
            for row in block.rows:
                seen = set()
                for cell in row.cells:
                    if id(cell._tc) in seen:
                        continue
                    seen.add(id(cell._tc))
                    paragraphs.extend(p.text for p in cell.paragraphs)
        else:
            paragraphs.append(block.text)
    return paragraphs


class TextExtractor:
    def __init__(self, llm_client: LLMClient | None = None):
        self.llm = llm_client or LLMClient()

    def extract(self, buffer: bytes, mime_type: str) -> ExtractedText:
        mime = (mime_type or "").split(";")[0].strip().lower()

        if mime.startswith("image/"):
            return self._extract_image(buffer, mime)
        if mime == PDF_MIME:
            return self._extract_pdf(buffer)
        if mime == DOCX_MIME:
            return self._extract_docx(buffer)

        logger.warning(f"Rejected upload with unsupported type: {mime_type!r}")
        raise UnsupportedFormat(mime_type, ACCEPTED_FORMATS)

    def _extract_image(self, buffer: bytes, mime: str) -> ExtractedText:
        image, image_mime = _downscale(buffer)
        text = self.llm.describe_image(image, image_mime, VISION_INSTRUCTION)
        logger.info(f"Vision extraction returned {len(text)} chars")
        return ExtractedText(text=text, method=METHOD_VISION)

    def _extract_pdf(self, buffer: bytes) -> ExtractedText:
        from pdfminer.high_level import extract_text as pdf_extract_text

        try:
            text = pdf_extract_text(io.BytesIO(buffer)) or ""
        except Exception as e:
            logger.warning(f"pdfminer failed: {e}")
            raise ExtractionFailure("Failed to extract text from PDF file") from e

        if not text.strip():
            raise ExtractionFailure(
                "This PDF has no text layer (it looks like a scan). "
                "Upload a photo of the page or a text-based PDF instead."
            )
        if "(cid:" in text:
            logger.warning("PDF text layer contains unmapped (cid:) glyphs; results may be poor")
        logger.info(f"PDF text layer extracted; chars={len(text)}")
        return ExtractedText(text=text, method=METHOD_PDF)

    def _extract_docx(self, buffer: bytes) -> ExtractedText:
        text = "\n".join(docx_paragraphs(buffer))
        logger.info(f"DOCX text extracted; chars={len(text)}")
        return ExtractedText(text=text, method=METHOD_DOCX)
