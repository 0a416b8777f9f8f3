"""PDF text extraction."""
from dataclasses import dataclass
from typing import List, Tuple

import pdfplumber

from citeqa.exceptions import ExtractionError
from citeqa.utils.logger import logger
from citeqa.utils.text_cleaner import clean_text

EXTRACTION_PLACEHOLDER = (
    "PDF content extraction failed. File is available for viewing, "
    "but text search and AI features will be limited."
)
MIN_EXTRACTED_CHARS = 50


@dataclass(frozen=True)
class ExtractedText:
    text: str
    page_count: int


def read_pdf_pages(file_path: str) -> Tuple[List[str], int]:
    """
    Read the cleaned text of every page.

    Pages whose text cannot be extracted are skipped.

    Returns:
        (non-empty page texts, total page count)

    Raises:
        ExtractionError: If the PDF cannot be opened
    """
    try:
        with pdfplumber.open(file_path) as pdf:
            page_count = len(pdf.pages)
            pages = []
            for page_num, page in enumerate(pdf.pages, 1):
                try:
                    page_text = clean_text(page.extract_text() or "")
                except Exception as e:
                    logger.warning(f"Failed to extract text from page {page_num}: {str(e)}")
                    continue
                if page_text:
                    pages.append(page_text)
    except Exception as e:
        raise ExtractionError(f"Invalid or unreadable PDF file: {str(e)}") from e

    return pages, page_count


def extract_pdf_text(file_path: str) -> ExtractedText:
    """
    Extract text from a PDF with pdfplumber.

    Each page is cleaned separately and pages are joined by a blank line,
    so paragraph boundaries survive for chunking. A PDF that cannot be read,
    or that yields fewer than 50 characters, is replaced by a placeholder
    string rather than failing the upload.

    Args:
        file_path: Path to PDF file

    Returns:
        ExtractedText with the document text and its page count
    """
    try:
        pages, page_count = read_pdf_pages(file_path)
    except ExtractionError as e:
        logger.error(f"Error reading PDF {file_path}: {str(e)}", exc_info=True)
        return ExtractedText(text=EXTRACTION_PLACEHOLDER, page_count=1)

    page_count = max(1, page_count)
    text = "\n\n".join(pages)
    if len(text.strip()) < MIN_EXTRACTED_CHARS:
        logger.warning(
            f"Extracted only {len(text.strip())} characters from {file_path}, using placeholder"
        )
        return ExtractedText(text=EXTRACTION_PLACEHOLDER, page_count=page_count)

    logger.info(f"Extracted {len(text)} characters from {page_count} pages")
    return ExtractedText(text=text, page_count=page_count)
