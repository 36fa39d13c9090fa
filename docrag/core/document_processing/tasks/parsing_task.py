"""
Document text extraction task.

Converts uploaded binary content into plain text by declared media type:
PDF (pypdf, OCR fallback for scanned pages), images (Tesseract OCR),
DOCX (python-docx), spreadsheets and CSV (pandas), and plain text.
Unsupported types yield empty text; corrupt content raises ExtractionError.

Dependencies: pypdf, pdf2image, pytesseract, Pillow, python-docx, pandas
System role: First stage of document ingestion pipeline
"""

import io
import logging
from dataclasses import dataclass, field
from pathlib import PurePath

import pandas as pd
import pytesseract
from docx import Document as DocxDocument
from pdf2image import convert_from_bytes
from PIL import Image
from pypdf import PdfReader

from docrag.core.exceptions import ExtractionError

logger = logging.getLogger(__name__)

PDF_TYPES = {"application/pdf"}
DOCX_TYPES = {"application/vnd.openxmlformats-officedocument.wordprocessingml.document"}
EXCEL_TYPES = {
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-excel",
}
CSV_TYPES = {"text/csv", "application/csv"}
TEXT_TYPES = {"application/json", "application/xml", "text/markdown"}

EXTENSION_TYPES = {
    ".pdf": "application/pdf",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".xls": "application/vnd.ms-excel",
    ".csv": "text/csv",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".json": "application/json",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",
}


@dataclass(frozen=True)
class ExtractedText:
    """Plain text extracted from a document plus tags implied by its format."""

    text: str
    tags: dict[str, str] = field(default_factory=dict)


def resolve_mime_type(filename: str, declared: str | None) -> str:
    """
    Resolve a usable media type, falling back to the file extension.

    Browsers often send application/octet-stream for office files.

    Args:
        filename: Original filename
        declared: Media type declared by the client

    Returns:
        str: Media type (lower-case)
    """
    declared = (declared or "").split(";")[0].strip().lower()
    if declared and declared != "application/octet-stream":
        return declared
    return EXTENSION_TYPES.get(PurePath(filename).suffix.lower(), declared or "application/octet-stream")


class DocumentExtractor:
    """Extract plain text from binary documents."""

    def __init__(self, ocr_language: str = "eng") -> None:
        """
        Initialize extractor.

        Args:
            ocr_language: Tesseract language code for OCR
        """
        self._ocr_language = ocr_language

    def extract(self, content: bytes, mime_type: str, name: str = "") -> ExtractedText:
        """
        Extract text from document content.

        Args:
            content: Raw document bytes
            mime_type: Declared media type
            name: Document name (for error context)

        Returns:
            ExtractedText: Extracted text; empty for unsupported types

        Raises:
            ExtractionError: When the content is corrupt or unreadable
        """
        mime_type = resolve_mime_type(name, mime_type)
        try:
            if mime_type in PDF_TYPES:
                return ExtractedText(self._extract_pdf(content))
            if mime_type.startswith("image/"):
                return ExtractedText(self._ocr_image(content))
            if mime_type in DOCX_TYPES:
                return ExtractedText(self._extract_docx(content))
            if mime_type in EXCEL_TYPES:
                return ExtractedText(self._extract_excel(content), {"format": "tabular"})
            if mime_type in CSV_TYPES:
                return ExtractedText(self._extract_csv(content), {"format": "tabular"})
            if mime_type.startswith("text/") or mime_type in TEXT_TYPES:
                return ExtractedText(content.decode("utf-8", errors="replace"))
        except ExtractionError:
            raise
        except Exception as e:
            raise ExtractionError(
                f"Failed to extract text: {type(e).__name__}: {e}",
                document_name=name or None,
                mime_type=mime_type,
            ) from e

        logger.info(f"{__name__}:extract - Unsupported media type {mime_type} for {name!r}")
        return ExtractedText("")

    def _extract_pdf(self, content: bytes) -> str:
        reader = PdfReader(io.BytesIO(content))
        text = "\n".join(page.extract_text() or "" for page in reader.pages)
        if text.strip():
            return text
        # No text layer: scanned document
        logger.info(f"{__name__}:_extract_pdf - No text layer, falling back to OCR")
        images = convert_from_bytes(content)
        return "\n".join(
            pytesseract.image_to_string(image, lang=self._ocr_language) for image in images
        )

    def _ocr_image(self, content: bytes) -> str:
        with Image.open(io.BytesIO(content)) as image:
            return pytesseract.image_to_string(image, lang=self._ocr_language)

    def _extract_docx(self, content: bytes) -> str:
        document = DocxDocument(io.BytesIO(content))
        parts = [paragraph.text for paragraph in document.paragraphs if paragraph.text.strip()]
        for table in document.tables:
            for row in table.rows:
                parts.append(" | ".join(cell.text.strip() for cell in row.cells))
        return "\n".join(parts)

    def _extract_excel(self, content: bytes) -> str:
        sheets = pd.read_excel(io.BytesIO(content), sheet_name=None)
        return "\n\n".join(
            f"Sheet: {sheet_name}\n{self._frame_to_text(frame)}"
            for sheet_name, frame in sheets.items()
            if not frame.empty
        )

    def _extract_csv(self, content: bytes) -> str:
        frame = pd.read_csv(io.BytesIO(content), sep=None, engine="python")
        return self._frame_to_text(frame)

    @staticmethod
    def _frame_to_text(frame: pd.DataFrame) -> str:
        """Render a DataFrame as pipe-delimited rows with a header line."""
        frame = frame.fillna("")
        lines = [" | ".join(str(column) for column in frame.columns)]
        lines.extend(" | ".join(str(value) for value in row) for row in frame.itertuples(index=False))
        return "\n".join(lines)
