"""Document loading service for PDF processing."""
import logging
from typing import Callable, List, Optional

import fitz  # PyMuPDF

from exceptions import ExtractionError
from models.document import Document, Page

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]


class DocumentLoader:
    """Loads and extracts text from PDF files page by page."""

    def load_pdf_bytes(
        self,
        data: bytes,
        filename: str,
        on_progress: Optional[ProgressCallback] = None
    ) -> Document:
        """
        Extract text page-by-page from an in-memory PDF.

        Args:
            data: Raw PDF bytes
            filename: Name of the uploaded file
            on_progress: Optional status callback

        Returns:
            Document object with extracted text

        Raises:
            ExtractionError: If the bytes are empty, corrupt or not a PDF
        """
        notify = on_progress or (lambda status: None)

        if not data:
            raise ExtractionError(f"{filename} is empty")

        notify("Loading PDF...")
        try:
            pdf_document = fitz.open(stream=data, filetype="pdf")
        except Exception as e:
            logger.error(f"Failed to open PDF {filename}: {e}")
            raise ExtractionError(f"Unable to read {filename} as a PDF: {e}") from e

        pages: List[Page] = []
        try:
            total = len(pdf_document)
            for page_index in range(total):
                notify(f"Parsing page {page_index + 1} of {total}...")
                text = pdf_document[page_index].get_text()
                pages.append(Page(page_number=page_index + 1, text=text))
        except Exception as e:
            logger.error(f"Failed to extract text from {filename}: {e}", exc_info=True)
            raise ExtractionError(f"Unable to extract text from {filename}: {e}") from e
        finally:
            pdf_document.close()

        if not pages:
            raise ExtractionError(f"{filename} has no pages")

        if not any(page.text.strip() for page in pages):
            logger.warning(f"{filename} contains no extractable text")

        logger.info(f"Loaded {filename}: {len(pages)} pages")
        return Document(filename=filename, pages=pages, total_pages=len(pages))
