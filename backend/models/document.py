"""Document data models."""
from dataclasses import dataclass
from typing import List, Tuple

from models.chunk import Chunk

PAGE_SEPARATOR = "\n\n"


@dataclass(frozen=True)
class Page:
    """Represents a single page from a document."""
    page_number: int  # 1-indexed
    text: str

    def __post_init__(self):
        if self.page_number < 1:
            raise ValueError(f"Page numbers start at 1, got {self.page_number}")


@dataclass
class Document:
    """Represents a loaded PDF document."""
    filename: str
    pages: List[Page]
    total_pages: int

    @property
    def full_text(self) -> str:
        """All page texts in page order, separated by a blank line."""
        return PAGE_SEPARATOR.join(page.text for page in self.pages)


@dataclass(frozen=True)
class ProcessedDocument:
    """An uploaded document after extraction, chunking and embedding."""
    filename: str
    chunks: Tuple[Chunk, ...]
    full_text: str
    total_pages: int

    @property
    def chunk_count(self) -> int:
        return len(self.chunks)
