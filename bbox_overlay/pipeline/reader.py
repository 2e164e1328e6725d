"""PDF reading functionality using pdfplumber."""

import logging
from pathlib import Path
from typing import List, cast

import pdfplumber

from ..models.document import Document
from ..models.page import Page

logger = logging.getLogger(__name__)


class PDFReadError(Exception):
    """Raised when PDF reading fails."""
    pass


def _page_box(pdfplumber_page) -> tuple:
    """Unrotated crop box (x0, y0, x1, y1) in points, falling back to the media box.

    pdfplumber's own width/height follow /Rotate, so the raw pdfminer boxes
    are used instead.
    """
    page_obj = pdfplumber_page.page_obj
    box = getattr(page_obj, "cropbox", None) or page_obj.mediabox
    return tuple(float(v) for v in box)


def read_pdf(filepath: str) -> Document:
    """Read a PDF file and create Document object with all pages.

    Args:
        filepath: Path to PDF file

    Returns:
        Document object with unrotated page sizes and rotations

    Raises:
        PDFReadError: If PDF cannot be read or is corrupt
        FileNotFoundError: If filepath does not exist
    """
    if not Path(filepath).exists():
        raise FileNotFoundError(f"PDF file not found: {filepath}")

    try:
        with pdfplumber.open(filepath) as pdf:
            filename = Path(filepath).name
            page_count = len(pdf.pages)

            pages: List[Page] = []
            # Placeholder; document set on pages after Document creation
            temp_doc = cast(Document, object())

            for i, pdfplumber_page in enumerate(pdf.pages, start=1):
                x0, y0, x1, y1 = _page_box(pdfplumber_page)
                rotation = int(getattr(pdfplumber_page.page_obj, "rotate", 0) or 0)
                page = Page(
                    page_number=i,
                    document=temp_doc,
                    width=abs(x1 - x0),
                    height=abs(y1 - y0),
                    rotation=rotation,
                )
                pages.append(page)

        doc = Document(
            filename=filename,
            filepath=str(filepath),
            page_count=page_count,
            pages=pages,
            metadata={},
        )
        for page in pages:
            page.document = doc

        logger.info("Read PDF %s (%d pages)", filename, page_count)
        return doc

    except Exception as e:
        raise PDFReadError(f"Failed to read PDF {filepath}: {str(e)}") from e
