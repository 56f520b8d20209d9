"""
PDF page text for sales target documents.

Each page keeps its number and the method that produced its text, so a
bad extraction can be traced back to the page and reader involved.
"""

import hashlib
import logging
from dataclasses import dataclass
from typing import BinaryIO, Callable, List, Tuple

import pdfplumber
import pytesseract
from PIL import Image, ImageOps
from PyPDF2 import PdfReader

from ..exceptions import DocumentReadError

logger = logging.getLogger(__name__)

OCR_RESOLUTION = 300
HASH_CHUNK_SIZE = 64 * 1024


@dataclass
class PageText:
    """Text read from one page."""
    page_number: int
    text: str
    extraction_method: str  # 'pdfplumber', 'pypdf2' or 'ocr'
    has_content: bool

    def __str__(self) -> str:
        return f"Page {self.page_number}: {len(self.text)} chars ({self.extraction_method})"


def compute_sha256(file_obj: BinaryIO) -> str:
    """SHA-256 of the whole file. The file is rewound before and after."""
    digest = hashlib.sha256()
    file_obj.seek(0)
    while True:
        chunk = file_obj.read(HASH_CHUNK_SIZE)
        if not chunk:
            break
        digest.update(chunk)
    file_obj.seek(0)
    return digest.hexdigest()


def _page(number: int, text: str, method: str) -> PageText:
    text = (text or '').strip()
    return PageText(page_number=number, text=text, extraction_method=method, has_content=bool(text))


def _read_pdfplumber(file_obj: BinaryIO) -> List[PageText]:
    with pdfplumber.open(file_obj) as pdf:
        return [_page(n, page.extract_text(), 'pdfplumber') for n, page in enumerate(pdf.pages, start=1)]


def _read_pypdf2(file_obj: BinaryIO) -> List[PageText]:
    reader = PdfReader(file_obj)
    return [_page(n, page.extract_text(), 'pypdf2') for n, page in enumerate(reader.pages, start=1)]


# Tried in order; the first reader that returns pages wins.
READERS: Tuple[Tuple[str, Callable[[BinaryIO], List[PageText]]], ...] = (
    ('pdfplumber', _read_pdfplumber),
    ('pypdf2', _read_pypdf2),
)


def prepare_for_ocr(image: Image.Image) -> Image.Image:
    """Grayscale copy of a rendered page for Tesseract."""
    return ImageOps.grayscale(image)


def _ocr_empty_pages(file_obj: BinaryIO, pages: List[PageText]) -> None:
    """Fill pages that have no text layer with OCR output, in place."""
    empty = [page for page in pages if not page.has_content]
    if not empty:
        return

    file_obj.seek(0)
    try:
        with pdfplumber.open(file_obj) as pdf:
            for page in empty:
                if page.page_number > len(pdf.pages):
                    continue
                image = pdf.pages[page.page_number - 1].to_image(resolution=OCR_RESOLUTION).original
                text = pytesseract.image_to_string(prepare_for_ocr(image)).strip()
                if text:
                    page.text = text
                    page.extraction_method = 'ocr'
                    page.has_content = True
    except Exception as e:
        logger.error(f"OCR failed: {e}")


def extract_text_with_pages(file_obj: BinaryIO, use_ocr_fallback: bool = True) -> List[PageText]:
    """
    Read the text of every page of a PDF.

    Readers are tried in order (pdfplumber, then PyPDF2). Pages that come
    back empty are sent through Tesseract OCR when ``use_ocr_fallback`` is
    set.

    Raises:
        DocumentReadError: if no reader could open the file
    """
    pages: List[PageText] = []
    for name, read in READERS:
        file_obj.seek(0)
        try:
            pages = read(file_obj)
        except Exception as e:
            logger.warning(f"{name} could not read PDF: {e}")
            continue
        if pages:
            break

    if not pages:
        raise DocumentReadError("Failed to extract text from PDF - no extraction method succeeded")

    if use_ocr_fallback:
        _ocr_empty_pages(file_obj, pages)

    for page in pages:
        logger.info(f"Raw PDF text - {page}")
        logger.debug(page.text)

    return pages
